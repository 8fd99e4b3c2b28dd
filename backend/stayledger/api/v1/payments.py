"""Payments API router — hand the outstanding booking fee to Stripe."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from stayledger.api.deps import get_current_active_user, get_db
from stayledger.config import settings
from stayledger.errors import BookingValidationError, InvalidState
from stayledger.models.booking import BookingFeeStatus, BookingStatus
from stayledger.models.user import User
from stayledger.payments.stripe_client import create_payment_intent
from stayledger.schemas.payment import PaymentIntentRequest, PaymentIntentResponse
from stayledger.services import booking_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/payments", tags=["payments"])


@router.post(
    "/intent",
    response_model=PaymentIntentResponse,
    summary="Create a card payment intent for a booking's outstanding fee",
)
async def create_intent(
    body: PaymentIntentRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> dict:
    booking = await booking_service.load_booking(db, body.booking_id, current_user.id, for_update=True)

    if booking.status == BookingStatus.CANCELLED:
        raise InvalidState("Booking is cancelled")
    if booking.booking_fee_status != BookingFeeStatus.PENDING:
        raise InvalidState("Payment already completed")
    amount = booking.amount_due
    if amount <= 0:
        raise BookingValidationError("Nothing left to pay for this booking")

    intent = await create_payment_intent(booking, amount)
    await booking_service.attach_payment_reference(db, booking, intent.id)
    await db.commit()
    logger.info("Payment intent %s created for booking %s", intent.id, booking.id)
    return {
        "payment_intent_id": intent.id,
        "client_secret": intent.client_secret,
        "amount": amount,
        "currency": settings.stripe_currency,
    }
