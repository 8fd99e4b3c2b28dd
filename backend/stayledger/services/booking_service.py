"""Booking ledger — create bookings and drive their status machine.

Every function here works inside the caller's session and never commits;
the request's unit of work (``get_db``) commits or rolls back the whole
thing, so a booking row, its wallet debit and the ledger entry always land
together or not at all.
"""

import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from stayledger.auth.jwt import create_booking_token
from stayledger.clock import Clock, local_today, system_clock, to_naive_utc
from stayledger.config import settings
from stayledger.errors import (
    BookingValidationError,
    InvalidState,
    NotFound,
    PaymentRequired,
    Unauthorized,
)
from stayledger.models.booking import (
    TERMINAL_STATUSES,
    Booking,
    BookingFeeStatus,
    BookingStatus,
    PaymentMethod,
    PaymentStatus,
)
from stayledger.models.hotel import Hotel
from stayledger.models.wallet import TransactionReason
from stayledger.money import format_amount, percent_of
from stayledger.services import wallet_service
from stayledger.services.allocator import (
    StayRange,
    allocate_from_candidates,
    allocate_room,
    room_ids_for_type,
)
from stayledger.services.payment_plan import (
    PaymentPlan,
    PaymentPolicy,
    PaymentRequest,
    WalletUsage,
    plan_payment,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GuestInfo:
    name: str
    phone: str
    email: str | None = None


@dataclass(frozen=True)
class UnitRequest:
    """Exactly one of the three ways to say which unit to book."""

    room_id: uuid.UUID | None = None
    candidate_room_ids: Sequence[uuid.UUID] | None = None
    room_type: str | None = None

    def __post_init__(self) -> None:
        given = [self.room_id is not None, bool(self.candidate_room_ids), bool(self.room_type)]
        if sum(given) != 1:
            raise BookingValidationError(
                "Provide exactly one of room_id, candidate_room_ids or room_type"
            )


@dataclass(frozen=True)
class BookingReceipt:
    booking: Booking
    plan: PaymentPlan

    @property
    def requires_payment(self) -> bool:
        return self.plan.requires_payment

    @property
    def wallet_payment_success(self) -> bool:
        return self.plan.wallet_payment_success


def split_commission(total_amount: int) -> tuple[int, int]:
    """Return ``(commission, net)``; they always add back up to the total."""
    commission = percent_of(total_amount, settings.commission_percent)
    return commission, total_amount - commission


async def _lock_wallet_balance(
    db: AsyncSession, user_id: uuid.UUID, request: PaymentRequest
) -> int:
    """Lock and read the wallet only when the plan could touch it."""
    touches_wallet = (
        request.method in (PaymentMethod.WALLET, PaymentMethod.PAY_AT_HOTEL)
        or request.wallet_usage == WalletUsage.EXPLICIT
    )
    if not touches_wallet:
        return 0
    wallet = await wallet_service.get_or_create_wallet(db, user_id, for_update=True)
    return wallet.balance


async def create_booking(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    hotel_id: uuid.UUID,
    unit: UnitRequest,
    guest: GuestInfo,
    stay: StayRange,
    payment: PaymentRequest,
    clock: Clock = system_clock,
    policy: PaymentPolicy | None = None,
) -> BookingReceipt:
    """Allocate a unit, settle what can be settled and persist the booking.

    The unit rows and the wallet row are locked for the rest of the
    transaction, so a racing request for the same unit or wallet waits and
    then re-checks against what this one committed.

    Raises:
        BookingValidationError: Bad dates or amounts.
        NotFound: Unknown hotel or explicit room.
        RoomUnavailable / NoAvailability: The stay clashes with a booking.
        InsufficientFunds: Wallet payment not covered.
    """
    now = clock.now()
    if stay.check_in < local_today(clock):
        raise BookingValidationError("check_in cannot be in the past")

    hotel = await db.get(Hotel, hotel_id)
    if hotel is None:
        raise NotFound("Hotel not found")

    if unit.room_id is not None:
        room = await allocate_room(db, hotel_id, unit.room_id, stay)
    else:
        candidates = unit.candidate_room_ids or await room_ids_for_type(db, hotel_id, unit.room_type)
        room = await allocate_from_candidates(db, hotel_id, candidates, stay)

    balance = await _lock_wallet_balance(db, user_id, payment)
    plan = plan_payment(payment, balance, policy)

    commission, net = split_commission(payment.total_amount)
    paid = plan.booking_fee_status == BookingFeeStatus.PAID
    booking_id = uuid.uuid4()
    booking = Booking(
        id=booking_id,
        hotel_id=hotel_id,
        room_id=room.id,
        user_id=user_id,
        guest_name=guest.name,
        guest_phone=guest.phone,
        guest_email=guest.email,
        check_in=stay.check_in,
        check_out=stay.check_out,
        nights=stay.nights,
        total_amount=payment.total_amount,
        commission_amount=commission,
        net_amount=net,
        booking_fee=plan.booking_fee,
        booking_fee_status=plan.booking_fee_status,
        wallet_amount_used=plan.wallet_debit,
        payment_method=payment.method,
        payment_status=plan.payment_status,
        status=BookingStatus.CONFIRMED if paid else BookingStatus.PENDING,
        expires_at=None if paid else to_naive_utc(now + timedelta(minutes=settings.hold_minutes)),
        qr_token=create_booking_token(booking_id, hotel_id, room.id),
    )
    db.add(booking)
    await db.flush()

    if plan.wallet_debit > 0:
        await wallet_service.debit(
            db,
            user_id,
            plan.wallet_debit,
            TransactionReason.BOOKING_FEE,
            booking_id=booking.id,
            description=f"Booking fee for {hotel.name}",
        )

    await db.refresh(booking)
    logger.info(
        "Booking %s created: room=%s %s..%s method=%s fee=%d (%s) wallet=%d status=%s",
        booking.id,
        room.id,
        stay.check_in,
        stay.check_out,
        payment.method.value,
        plan.booking_fee,
        plan.booking_fee_status.value,
        plan.wallet_debit,
        booking.status.value,
    )
    return BookingReceipt(booking=booking, plan=plan)


async def load_booking(
    db: AsyncSession,
    booking_id: uuid.UUID,
    user_id: uuid.UUID | None = None,
    *,
    for_update: bool = False,
) -> Booking:
    """Fetch a booking, optionally locking it and checking the owner.

    Raises:
        NotFound: No such booking.
        Unauthorized: ``user_id`` given and it does not own the booking.
    """
    query = select(Booking).where(Booking.id == booking_id)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    booking = result.scalar_one_or_none()

    if booking is None:
        raise NotFound("Booking not found")
    if user_id is not None and booking.user_id != user_id:
        raise Unauthorized("You do not own this booking")
    return booking


async def list_user_bookings(db: AsyncSession, user_id: uuid.UUID) -> list[Booking]:
    result = await db.execute(
        select(Booking).where(Booking.user_id == user_id).order_by(Booking.created_at.desc())
    )
    return list(result.scalars().all())


async def check_in(
    db: AsyncSession,
    booking_id: uuid.UUID,
    user_id: uuid.UUID,
    clock: Clock = system_clock,
) -> Booking:
    """Move a CONFIRMED booking to CHECKED_IN on its check-in day.

    Scanning twice is harmless: an already checked-in booking is returned
    as is.
    """
    booking = await load_booking(db, booking_id, user_id, for_update=True)

    if booking.status == BookingStatus.CHECKED_IN:
        return booking
    if booking.status == BookingStatus.PENDING:
        raise PaymentRequired(
            f"Booking fee of {format_amount(booking.amount_due)} must be paid before check-in"
        )
    if booking.status != BookingStatus.CONFIRMED:
        raise InvalidState(f"Cannot check in a booking that is {booking.status.value}")

    today = local_today(clock)
    if today != booking.check_in:
        raise InvalidState(f"Check-in is only possible on {booking.check_in:%d %b %Y}")

    booking.status = BookingStatus.CHECKED_IN
    await db.flush()
    logger.info("Booking %s checked in", booking.id)
    return booking


async def check_out(db: AsyncSession, booking_id: uuid.UUID, user_id: uuid.UUID) -> Booking:
    """Move a CHECKED_IN booking to CHECKED_OUT. Irreversible."""
    booking = await load_booking(db, booking_id, user_id, for_update=True)

    if booking.status == BookingStatus.CHECKED_OUT:
        raise InvalidState("You have already checked out")
    if booking.status != BookingStatus.CHECKED_IN:
        raise InvalidState(
            f"Your booking status is {booking.status.value}. You must be checked in to check out."
        )

    booking.status = BookingStatus.CHECKED_OUT
    await db.flush()
    logger.info("Booking %s checked out", booking.id)
    return booking


async def confirm_payment(
    db: AsyncSession,
    booking_id: uuid.UUID,
    amount_paid: int,
    reference: str,
) -> Booking:
    """Record a successful gateway payment for the outstanding fee.

    Idempotent for a booking whose fee is already PAID.

    Raises:
        InvalidState: Booking cancelled or finished.
        BookingValidationError: ``amount_paid`` does not cover what is due.
    """
    booking = await load_booking(db, booking_id, for_update=True)

    if booking.booking_fee_status == BookingFeeStatus.PAID:
        logger.info("Booking %s already paid, ignoring payment %s", booking.id, reference)
        return booking
    if booking.status in TERMINAL_STATUSES:
        raise InvalidState(f"Cannot take payment for a booking that is {booking.status.value}")
    if amount_paid < booking.amount_due:
        raise BookingValidationError(
            f"Payment of {format_amount(amount_paid)} does not cover "
            f"{format_amount(booking.amount_due)} due"
        )

    booking.booking_fee_status = BookingFeeStatus.PAID
    booking.payment_status = (
        PaymentStatus.PAY_AT_HOTEL
        if booking.payment_method == PaymentMethod.PAY_AT_HOTEL
        else PaymentStatus.PAID
    )
    if booking.status == BookingStatus.PENDING:
        booking.status = BookingStatus.CONFIRMED
    booking.expires_at = None
    booking.payment_reference = reference
    await db.flush()
    logger.info("Booking %s payment confirmed (%s, %d)", booking.id, reference, amount_paid)
    return booking


async def attach_payment_reference(db: AsyncSession, booking: Booking, reference: str) -> Booking:
    booking.payment_reference = reference
    await db.flush()
    return booking


async def list_expired_holds(db: AsyncSession, now: datetime) -> list[Booking]:
    """Unpaid PENDING holds whose expiry has passed."""
    result = await db.execute(
        select(Booking)
        .where(
            Booking.status == BookingStatus.PENDING,
            Booking.booking_fee_status == BookingFeeStatus.PENDING,
            Booking.expires_at.is_not(None),
            Booking.expires_at < to_naive_utc(now),
        )
        .order_by(Booking.expires_at)
    )
    return list(result.scalars().all())
