"""Time-tiered cancellation/refund arithmetic.

``quote_cancellation`` is the only place refund amounts are computed; the
preview endpoint and the committing cancel path both call it.

| hours until 14:00 on check-in day | outcome                                  |
|-----------------------------------|------------------------------------------|
| >= 24                             | full refund of what was charged          |
| 2 <= h < 24                       | forfeit min(advance, charged)            |
| < 2                               | nothing refunded                         |
"""

from dataclasses import dataclass
from datetime import datetime, time

from stayledger.clock import hotel_tz
from stayledger.config import Settings, settings
from stayledger.models.booking import Booking, BookingFeeStatus
from stayledger.money import format_amount, percent_of


@dataclass(frozen=True)
class CancellationPolicy:
    full_refund_hours: int = 24
    late_cancellation_hours: int = 2
    penalty_percent: int = 20
    check_in_hour: int = 14

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "CancellationPolicy":
        return cls(
            full_refund_hours=config.full_refund_hours,
            late_cancellation_hours=config.late_cancellation_hours,
            penalty_percent=config.advance_percent,
            check_in_hour=config.check_in_hour,
        )


@dataclass(frozen=True)
class CancellationQuote:
    hours_remaining: float
    is_late: bool
    is_very_late: bool
    amount_charged: int
    penalty_amount: int
    refund_amount: int
    penalty_description: str | None


def amount_charged(booking: Booking) -> int:
    """What the guest actually paid toward the fee."""
    if booking.wallet_amount_used > 0:
        return booking.wallet_amount_used
    if booking.booking_fee_status == BookingFeeStatus.PAID:
        return booking.booking_fee
    return 0


def hours_until_check_in(booking: Booking, now: datetime, policy: CancellationPolicy) -> float:
    check_in_at = datetime.combine(booking.check_in, time(hour=policy.check_in_hour), tzinfo=hotel_tz())
    return (check_in_at - now).total_seconds() / 3600


def quote_cancellation(
    booking: Booking,
    now: datetime,
    policy: CancellationPolicy | None = None,
) -> CancellationQuote:
    """Work out what cancelling ``booking`` at ``now`` would refund.

    Tiers apply only to a PAID fee. An unpaid hold that already took a partial
    wallet debit gets that debit back whatever the timing.
    """
    policy = policy or CancellationPolicy.from_settings()
    hours = hours_until_check_in(booking, now, policy)
    is_late = hours < policy.full_refund_hours
    is_very_late = hours < policy.late_cancellation_hours
    charged = amount_charged(booking)

    if charged <= 0 or booking.booking_fee_status != BookingFeeStatus.PAID:
        penalty = 0
    elif not is_late:
        penalty = 0
    elif not is_very_late:
        penalty = min(percent_of(booking.total_amount, policy.penalty_percent), charged)
    else:
        penalty = charged

    refund = max(0, charged - penalty)

    if penalty == 0:
        description = None
    elif is_very_late:
        description = (
            f"Cancelled less than {policy.late_cancellation_hours} hours before check-in: "
            f"the full {format_amount(penalty)} paid is forfeited"
        )
    else:
        description = (
            f"Cancelled less than {policy.full_refund_hours} hours before check-in: "
            f"{policy.penalty_percent}% of the booking ({format_amount(penalty)}) is forfeited"
        )

    return CancellationQuote(
        hours_remaining=round(max(0.0, hours), 2),
        is_late=is_late,
        is_very_late=is_very_late,
        amount_charged=charged,
        penalty_amount=penalty,
        refund_amount=refund,
        penalty_description=description,
    )
