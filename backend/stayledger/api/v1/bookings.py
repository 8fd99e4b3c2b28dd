"""Bookings API router.

Ownership rule: a user can only see and act on bookings they made. The
services re-check ownership on every call, including token scans.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from stayledger.api.deps import get_clock, get_current_active_user, get_db
from stayledger.auth.jwt import decode_booking_token
from stayledger.clock import Clock
from stayledger.models.booking import Booking
from stayledger.models.user import User
from stayledger.schemas.booking import (
    BookingCreate,
    BookingCreatedResponse,
    BookingListResponse,
    BookingResponse,
    BookingSummary,
    CancellationPreviewResponse,
    CancellationResponse,
    CancelRequest,
    ScanRequest,
)
from stayledger.services import booking_service, cancellation_service
from stayledger.services.allocator import StayRange
from stayledger.services.booking_service import GuestInfo, UnitRequest
from stayledger.services.payment_plan import PaymentRequest

router = APIRouter(prefix="/api/v1/bookings", tags=["bookings"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _booking_id_from_token(token: str) -> uuid.UUID:
    try:
        return decode_booking_token(token)["booking_id"]
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid booking code",
        ) from None


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post(
    "",
    response_model=BookingCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a booking",
)
async def create_booking(
    body: BookingCreate,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: User = Depends(get_current_active_user),
) -> dict:
    """Allocate a unit and settle the booking fee.

    When ``requires_payment`` is true the client must send the guest to a
    payment gateway for ``amount_due``; the booking is held for a limited time.
    """
    receipt = await booking_service.create_booking(
        db,
        user_id=current_user.id,
        hotel_id=body.hotel_id,
        unit=UnitRequest(
            room_id=body.room_id,
            candidate_room_ids=body.candidate_room_ids,
            room_type=body.room_type,
        ),
        guest=GuestInfo(name=body.guest_name, phone=body.guest_phone, email=body.guest_email),
        stay=StayRange(body.check_in, body.check_out),
        payment=PaymentRequest(
            total_amount=body.total_amount,
            method=body.payment_method,
            use_wallet_balance=body.use_wallet_balance,
            wallet_amount=body.wallet_amount,
        ),
        clock=clock,
    )
    await db.commit()
    return {
        "booking_id": receipt.booking.id,
        "booking_fee": receipt.plan.booking_fee,
        "requires_payment": receipt.requires_payment,
        "amount_due": receipt.booking.amount_due,
        "advance_amount": receipt.plan.advance_amount,
        "wallet_payment_success": receipt.wallet_payment_success,
        "booking": receipt.booking,
    }


@router.get(
    "",
    response_model=BookingListResponse,
    summary="List the current user's bookings",
)
async def list_bookings(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> dict:
    items = await booking_service.list_user_bookings(db, current_user.id)
    return {"items": items, "total": len(items)}


@router.post(
    "/scan/check-in",
    response_model=BookingSummary,
    summary="Check in by scanning a booking code",
)
async def scan_check_in(
    body: ScanRequest,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: User = Depends(get_current_active_user),
) -> Booking:
    booking_id = _booking_id_from_token(body.token)
    booking = await booking_service.check_in(db, booking_id, current_user.id, clock)
    await db.commit()
    return booking


@router.post(
    "/scan/check-out",
    response_model=BookingSummary,
    summary="Check out by scanning a booking code",
)
async def scan_check_out(
    body: ScanRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Booking:
    booking_id = _booking_id_from_token(body.token)
    booking = await booking_service.check_out(db, booking_id, current_user.id)
    await db.commit()
    return booking


@router.get(
    "/{booking_id}",
    response_model=BookingResponse,
    summary="Get booking detail",
)
async def get_booking(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Booking:
    return await booking_service.load_booking(db, booking_id, current_user.id)


@router.get(
    "/{booking_id}/cancellation",
    response_model=CancellationPreviewResponse,
    summary="Preview the refund for cancelling now",
)
async def preview_cancellation(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: User = Depends(get_current_active_user),
) -> dict:
    """Read-only: uses the same arithmetic as the cancel endpoint."""
    quote = await cancellation_service.preview_cancellation(db, booking_id, current_user.id, clock)
    if quote is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Booking can no longer be cancelled",
        )
    return {
        "is_late": quote.is_late,
        "is_very_late": quote.is_very_late,
        "hours_remaining": quote.hours_remaining,
        "penalty_description": quote.penalty_description,
        "penalty_amount": quote.penalty_amount,
        "refund_amount": quote.refund_amount,
    }


@router.post(
    "/{booking_id}/cancel",
    response_model=CancellationResponse,
    summary="Cancel a booking",
)
async def cancel_booking(
    booking_id: uuid.UUID,
    body: CancelRequest | None = None,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: User = Depends(get_current_active_user),
) -> dict:
    result = await cancellation_service.cancel_booking(
        db,
        booking_id,
        current_user.id,
        reason=body.reason if body else None,
        details=body.details if body else None,
        clock=clock,
    )
    await db.commit()
    return {
        "booking_id": result.booking.id,
        "status": result.booking.status,
        "refund_amount": result.refund_amount,
        "is_late": result.is_late,
    }


@router.post(
    "/{booking_id}/check-in",
    response_model=BookingSummary,
    summary="Check in a booking",
)
async def check_in(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: User = Depends(get_current_active_user),
) -> Booking:
    booking = await booking_service.check_in(db, booking_id, current_user.id, clock)
    await db.commit()
    return booking


@router.post(
    "/{booking_id}/check-out",
    response_model=BookingSummary,
    summary="Check out a booking",
)
async def check_out(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Booking:
    booking = await booking_service.check_out(db, booking_id, current_user.id)
    await db.commit()
    return booking
