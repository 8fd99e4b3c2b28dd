"""Stripe webhook event handlers — settle booking fees paid by card."""

import logging
import uuid

import stripe
from sqlalchemy.ext.asyncio import AsyncSession

from stayledger.errors import BookingError, InvalidState
from stayledger.payments.stripe_client import from_minor_units
from stayledger.services.booking_service import confirm_payment
from stayledger.services.cancellation_service import credit_late_payment

logger = logging.getLogger(__name__)


def _booking_id_from_intent(intent) -> uuid.UUID | None:
    metadata = getattr(intent, "metadata", None) or {}
    raw = metadata.get("booking_id")
    if not raw:
        return None
    try:
        return uuid.UUID(raw)
    except ValueError:
        return None


def _log_unapplied(intent, booking_id: uuid.UUID, error: BookingError) -> None:
    # The charge went through but the booking can't take it; needs a manual refund.
    logger.warning(
        "Payment intent %s for booking %s not applied: %s (%s)",
        intent.id,
        booking_id,
        error.message,
        error.kind,
    )


async def handle_payment_intent_succeeded(db: AsyncSession, event: stripe.Event) -> None:
    """Handle payment_intent.succeeded — mark the booking fee as paid.

    A payment that lands after the guest cancelled is credited to their
    wallet instead.
    """
    intent = event.data.object
    booking_id = _booking_id_from_intent(intent)
    if booking_id is None:
        logger.info("Payment intent %s carries no booking id, skipping", intent.id)
        return

    amount = from_minor_units(getattr(intent, "amount_received", None) or intent.amount)
    try:
        await confirm_payment(db, booking_id, amount, intent.id)
    except InvalidState as e:
        try:
            await credit_late_payment(db, booking_id, amount, intent.id)
        except InvalidState:
            _log_unapplied(intent, booking_id, e)
    except BookingError as e:
        _log_unapplied(intent, booking_id, e)


async def handle_payment_intent_failed(db: AsyncSession, event: stripe.Event) -> None:
    """Handle payment_intent.payment_failed — the hold stays PENDING until it expires."""
    intent = event.data.object
    error = getattr(intent, "last_payment_error", None)
    logger.info(
        "Payment intent %s failed for booking %s: %s",
        intent.id,
        _booking_id_from_intent(intent),
        getattr(error, "message", None),
    )
