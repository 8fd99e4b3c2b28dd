"""Booking model — one guest stay on one room unit."""

import enum
import uuid
from datetime import date, datetime

from sqlalchemy import Date, DateTime, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from stayledger.database import Base, TimestampMixin, UUIDPrimaryKeyMixin


class BookingStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CHECKED_IN = "CHECKED_IN"
    CHECKED_OUT = "CHECKED_OUT"
    CANCELLED = "CANCELLED"


class BookingFeeStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    WAIVED = "WAIVED"


class PaymentMethod(str, enum.Enum):
    WALLET = "WALLET"
    PAY_AT_HOTEL = "PAY_AT_HOTEL"
    BKASH = "BKASH"
    NAGAD = "NAGAD"
    CARD = "CARD"

    @property
    def is_online(self) -> bool:
        """Online gateways collect the whole stay up front."""
        return self in (PaymentMethod.BKASH, PaymentMethod.NAGAD, PaymentMethod.CARD)


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    PAY_AT_HOTEL = "PAY_AT_HOTEL"
    REFUNDED = "REFUNDED"


class CancellationReason(str, enum.Enum):
    """Why the guest cancelled, as picked from the cancel form."""

    PLAN_CHANGED = "PLAN_CHANGED"
    FOUND_BETTER_DEAL = "FOUND_BETTER_DEAL"
    EMERGENCY = "EMERGENCY"
    TRAVEL_CANCELLED = "TRAVEL_CANCELLED"
    PRICE_ISSUE = "PRICE_ISSUE"
    OTHER = "OTHER"


# Statuses after which nothing may change.
TERMINAL_STATUSES = frozenset({BookingStatus.CANCELLED, BookingStatus.CHECKED_OUT})


def _enum_column(enum_cls: type[enum.Enum]) -> Enum:
    return Enum(enum_cls, native_enum=False, length=20, validate_strings=True)


class Booking(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A reservation of a room unit for the half-open stay ``[check_in, check_out)``."""

    __tablename__ = "bookings"

    hotel_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("hotels.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    room_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("rooms.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    guest_name: Mapped[str] = mapped_column(String(255), nullable=False)
    guest_phone: Mapped[str] = mapped_column(String(50), nullable=False)
    guest_email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    check_in: Mapped[date] = mapped_column(Date, nullable=False)
    check_out: Mapped[date] = mapped_column(Date, nullable=False)
    nights: Mapped[int] = mapped_column(Integer, nullable=False)

    # Money, whole BDT. total_amount == commission_amount + net_amount.
    total_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    commission_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    net_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    booking_fee: Mapped[int] = mapped_column(Integer, nullable=False)
    booking_fee_status: Mapped[BookingFeeStatus] = mapped_column(
        _enum_column(BookingFeeStatus), default=BookingFeeStatus.PENDING, nullable=False
    )
    wallet_amount_used: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    payment_method: Mapped[PaymentMethod] = mapped_column(_enum_column(PaymentMethod), nullable=False)
    payment_status: Mapped[PaymentStatus] = mapped_column(
        _enum_column(PaymentStatus), default=PaymentStatus.PENDING, nullable=False
    )
    payment_reference: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)

    status: Mapped[BookingStatus] = mapped_column(
        _enum_column(BookingStatus), default=BookingStatus.PENDING, nullable=False, index=True
    )
    expires_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)  # naive UTC

    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    refund_amount: Mapped[int | None] = mapped_column(Integer, nullable=True)

    qr_token: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_bookings_room_stay", "room_id", "check_in", "check_out"),
        Index("ix_bookings_status_expires", "status", "expires_at"),
    )
    __mapper_args__ = {"eager_defaults": True}

    @property
    def amount_due(self) -> int:
        """What the external gateway still has to collect."""
        if self.booking_fee_status != BookingFeeStatus.PENDING:
            return 0
        return max(0, self.booking_fee - self.wallet_amount_used)

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, room_id={self.room_id}, user_id={self.user_id}, status={self.status})>"
