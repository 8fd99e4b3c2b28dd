"""Cancellation — preview and commit time-tiered refunds."""

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from stayledger.clock import Clock, system_clock, to_naive_utc
from stayledger.errors import AlreadyCancelled, InvalidState
from stayledger.models.booking import (
    TERMINAL_STATUSES,
    Booking,
    BookingStatus,
    CancellationReason,
    PaymentStatus,
)
from stayledger.models.user import User
from stayledger.models.wallet import TransactionReason, WalletTransaction
from stayledger.services import wallet_service
from stayledger.services.booking_service import list_expired_holds, load_booking
from stayledger.services.cancellation_policy import (
    CancellationPolicy,
    CancellationQuote,
    quote_cancellation,
)

logger = logging.getLogger(__name__)

HOLD_EXPIRED_REASON = "HOLD_EXPIRED"

# Nothing left to refund or release once the guest is in.
_NOT_CANCELLABLE = TERMINAL_STATUSES | {BookingStatus.CHECKED_IN}


@dataclass(frozen=True)
class CancellationResult:
    booking: Booking
    quote: CancellationQuote

    @property
    def refund_amount(self) -> int:
        return self.quote.refund_amount

    @property
    def is_late(self) -> bool:
        return self.quote.is_late


def describe_reason(reason: CancellationReason | None, details: str | None = None) -> str | None:
    """Stored form of a cancellation reason: the code, then the guest's own words."""
    details = (details or "").strip()
    if reason is None and not details:
        return None
    code = (reason or CancellationReason.OTHER).value
    return f"{code}: {details}" if details else code


def _ensure_cancellable(booking: Booking) -> None:
    if booking.status == BookingStatus.CANCELLED:
        raise AlreadyCancelled("Booking already cancelled")
    if booking.status in _NOT_CANCELLABLE:
        raise InvalidState("Cannot cancel a booking after check-in")


async def preview_cancellation(
    db: AsyncSession,
    booking_id: uuid.UUID,
    user_id: uuid.UUID,
    clock: Clock = system_clock,
    policy: CancellationPolicy | None = None,
) -> CancellationQuote | None:
    """Quote a cancellation without changing anything.

    Returns ``None`` when the booking is past the point of cancelling.
    """
    booking = await load_booking(db, booking_id, user_id)
    if booking.status in _NOT_CANCELLABLE:
        return None
    return quote_cancellation(booking, clock.now(), policy)


async def _apply_cancellation(
    db: AsyncSession,
    booking: Booking,
    reason: str | None,
    clock: Clock,
    policy: CancellationPolicy | None,
) -> CancellationResult:
    now = clock.now()
    quote = quote_cancellation(booking, now, policy)

    if quote.refund_amount > 0:
        await wallet_service.credit(
            db,
            booking.user_id,
            quote.refund_amount,
            TransactionReason.REFUND,
            booking_id=booking.id,
            description="Refund for cancelled booking",
        )
        booking.payment_status = PaymentStatus.REFUNDED

    booking.status = BookingStatus.CANCELLED
    booking.cancellation_reason = reason
    booking.cancelled_at = to_naive_utc(now)
    booking.refund_amount = quote.refund_amount
    booking.expires_at = None
    await db.flush()

    logger.info(
        "Booking %s cancelled (reason=%s, %.1fh before check-in): charged=%d penalty=%d refund=%d",
        booking.id,
        reason,
        quote.hours_remaining,
        quote.amount_charged,
        quote.penalty_amount,
        quote.refund_amount,
    )
    return CancellationResult(booking=booking, quote=quote)


async def _backfill_phone(db: AsyncSession, user_id: uuid.UUID, phone: str) -> None:
    """Give the account the booking's guest phone if it has none yet."""
    user = await db.get(User, user_id)
    if user is not None and not user.phone and phone:
        user.phone = phone
        await db.flush()
        logger.info("Backfilled phone for user %s from booking", user_id)


async def cancel_booking(
    db: AsyncSession,
    booking_id: uuid.UUID,
    user_id: uuid.UUID,
    reason: CancellationReason | None = None,
    details: str | None = None,
    clock: Clock = system_clock,
    policy: CancellationPolicy | None = None,
) -> CancellationResult:
    """Cancel the caller's booking and credit any refund to their wallet.

    The booking row is locked first, so a concurrent cancel or payment
    confirmation on the same booking waits for this one.

    Raises:
        NotFound / Unauthorized: Unknown booking or not the caller's.
        AlreadyCancelled: Booking is already CANCELLED.
        InvalidState: Booking is CHECKED_IN or CHECKED_OUT.
    """
    booking = await load_booking(db, booking_id, user_id, for_update=True)
    _ensure_cancellable(booking)

    result = await _apply_cancellation(db, booking, describe_reason(reason, details), clock, policy)
    await _backfill_phone(db, user_id, booking.guest_phone)
    return result


async def release_expired_holds(
    db: AsyncSession,
    clock: Clock = system_clock,
    policy: CancellationPolicy | None = None,
) -> list[CancellationResult]:
    """Cancel unpaid holds past their expiry, returning any partial wallet debit.

    Meant for an externally scheduled job; the caller owns the transaction.
    """
    released = []
    for stale in await list_expired_holds(db, clock.now()):
        booking = await load_booking(db, stale.id, for_update=True)
        if booking.status != BookingStatus.PENDING:
            continue
        released.append(await _apply_cancellation(db, booking, HOLD_EXPIRED_REASON, clock, policy))
    if released:
        logger.info("Released %d expired holds", len(released))
    return released


async def credit_late_payment(
    db: AsyncSession,
    booking_id: uuid.UUID,
    amount: int,
    reference: str,
) -> WalletTransaction:
    """Return a gateway payment that settled after the booking was cancelled.

    The captured amount goes to the owner's wallet as a refund. The ledger
    entry carries the gateway ``reference``, so a redelivered payment event
    gets the existing entry back instead of a second credit.

    Raises:
        NotFound: Unknown booking.
        InvalidState: Booking is not CANCELLED.
    """
    booking = await load_booking(db, booking_id, for_update=True)
    if booking.status != BookingStatus.CANCELLED:
        raise InvalidState(f"Booking is {booking.status.value}, not cancelled")

    existing = await wallet_service.find_by_reference(db, reference)
    if existing is not None:
        logger.info("Late payment %s for booking %s already credited", reference, booking.id)
        return existing

    transaction = await wallet_service.credit(
        db,
        booking.user_id,
        amount,
        TransactionReason.REFUND,
        booking_id=booking.id,
        description="Card payment received after cancellation",
        reference=reference,
    )
    booking.payment_reference = reference
    booking.payment_status = PaymentStatus.REFUNDED
    booking.refund_amount = (booking.refund_amount or 0) + amount
    await db.flush()

    logger.info("Credited late payment %s (%d) for cancelled booking %s", reference, amount, booking.id)
    return transaction
