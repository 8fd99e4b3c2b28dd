"""Payment orchestrator — decide how a booking fee gets settled.

``plan_payment`` is pure: given the stay total, the payment method, what the
guest asked to take from their wallet and the wallet balance, it returns a
``PaymentPlan`` describing the fee, the wallet debit and whether the caller
must send the guest to an external gateway. The booking service applies the
plan inside the booking transaction.

Dispatch is a table keyed by ``(PaymentMethod, WalletUsage)``; every pair has
an entry.
"""

import enum
from collections.abc import Callable
from dataclasses import dataclass

from stayledger.config import Settings, settings
from stayledger.errors import BookingValidationError, InsufficientFunds
from stayledger.models.booking import BookingFeeStatus, PaymentMethod, PaymentStatus
from stayledger.money import format_amount, percent_of


class WalletUsage(str, enum.Enum):
    NONE = "NONE"
    EXPLICIT = "EXPLICIT"


class OverdrawPolicy(str, enum.Enum):
    """What to do when an explicit wallet request exceeds the balance."""

    PARTIAL = "partial"  # debit whatever is there
    SKIP = "skip"  # debit nothing, collect everything at the gateway
    REJECT = "reject"  # fail with InsufficientFunds


@dataclass(frozen=True)
class PaymentPolicy:
    advance_percent: int = 20
    settle_online_from_wallet: bool = True
    overdraw: OverdrawPolicy = OverdrawPolicy.PARTIAL

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "PaymentPolicy":
        return cls(
            advance_percent=config.advance_percent,
            settle_online_from_wallet=config.settle_online_from_wallet,
            overdraw=OverdrawPolicy(config.wallet_overdraw_policy),
        )


@dataclass(frozen=True)
class PaymentRequest:
    total_amount: int
    method: PaymentMethod
    use_wallet_balance: bool = False
    wallet_amount: int = 0

    @property
    def wallet_usage(self) -> WalletUsage:
        if self.use_wallet_balance and self.wallet_amount > 0:
            return WalletUsage.EXPLICIT
        return WalletUsage.NONE


@dataclass(frozen=True)
class PaymentPlan:
    booking_fee: int
    booking_fee_status: BookingFeeStatus
    payment_status: PaymentStatus
    wallet_debit: int
    requires_payment: bool
    advance_amount: int | None = None

    @property
    def wallet_payment_success(self) -> bool:
        return self.wallet_debit > 0

    @property
    def amount_due(self) -> int:
        if self.booking_fee_status == BookingFeeStatus.PAID:
            return 0
        return max(0, self.booking_fee - self.wallet_debit)


def booking_fee_for(total_amount: int, method: PaymentMethod, policy: PaymentPolicy) -> int:
    """Online methods collect the whole stay; pay-at-hotel collects the advance."""
    if method == PaymentMethod.PAY_AT_HOTEL:
        return percent_of(total_amount, policy.advance_percent)
    return total_amount


def _explicit_debit(request: PaymentRequest, balance: int, policy: PaymentPolicy) -> int:
    wanted = min(request.wallet_amount, request.total_amount)
    if wanted <= balance:
        return wanted
    if policy.overdraw == OverdrawPolicy.PARTIAL:
        return balance
    if policy.overdraw == OverdrawPolicy.SKIP:
        return 0
    raise InsufficientFunds(
        f"Insufficient wallet balance: {format_amount(balance)} available, "
        f"{format_amount(wanted)} requested"
    )


def _settle_from_wallet(request: PaymentRequest, balance: int, policy: PaymentPolicy) -> PaymentPlan:
    if balance < request.total_amount:
        raise InsufficientFunds(
            f"Insufficient wallet balance: {format_amount(balance)} available, "
            f"{format_amount(request.total_amount)} required"
        )
    return PaymentPlan(
        booking_fee=request.total_amount,
        booking_fee_status=BookingFeeStatus.PAID,
        payment_status=PaymentStatus.PAID,
        wallet_debit=request.total_amount,
        requires_payment=False,
    )


def _wallet_toward_advance(request: PaymentRequest, balance: int, policy: PaymentPolicy) -> PaymentPlan:
    advance = booking_fee_for(request.total_amount, PaymentMethod.PAY_AT_HOTEL, policy)
    debit = _explicit_debit(request, balance, policy)
    paid = debit >= advance
    return PaymentPlan(
        booking_fee=advance,
        booking_fee_status=BookingFeeStatus.PAID if paid else BookingFeeStatus.PENDING,
        payment_status=PaymentStatus.PAY_AT_HOTEL,
        wallet_debit=debit,
        requires_payment=not paid,
        advance_amount=advance,
    )


def _wallet_toward_online(request: PaymentRequest, balance: int, policy: PaymentPolicy) -> PaymentPlan:
    debit = _explicit_debit(request, balance, policy)
    covered = debit >= request.total_amount
    if covered and policy.settle_online_from_wallet:
        return PaymentPlan(
            booking_fee=request.total_amount,
            booking_fee_status=BookingFeeStatus.PAID,
            payment_status=PaymentStatus.PAID,
            wallet_debit=debit,
            requires_payment=False,
        )
    return PaymentPlan(
        booking_fee=request.total_amount,
        booking_fee_status=BookingFeeStatus.PENDING,
        payment_status=PaymentStatus.PENDING,
        wallet_debit=debit,
        requires_payment=True,
    )


def _auto_cover_advance(request: PaymentRequest, balance: int, policy: PaymentPolicy) -> PaymentPlan:
    advance = booking_fee_for(request.total_amount, PaymentMethod.PAY_AT_HOTEL, policy)
    covered = advance > 0 and balance >= advance
    return PaymentPlan(
        booking_fee=advance,
        booking_fee_status=BookingFeeStatus.PAID if covered else BookingFeeStatus.PENDING,
        payment_status=PaymentStatus.PAY_AT_HOTEL,
        wallet_debit=advance if covered else 0,
        requires_payment=not covered,
        advance_amount=advance,
    )


def _gateway_only(request: PaymentRequest, balance: int, policy: PaymentPolicy) -> PaymentPlan:
    return PaymentPlan(
        booking_fee=request.total_amount,
        booking_fee_status=BookingFeeStatus.PENDING,
        payment_status=PaymentStatus.PENDING,
        wallet_debit=0,
        requires_payment=True,
    )


PlanRule = Callable[[PaymentRequest, int, PaymentPolicy], PaymentPlan]

_ONLINE = [m for m in PaymentMethod if m.is_online]

DECISION_TABLE: dict[tuple[PaymentMethod, WalletUsage], PlanRule] = {
    (PaymentMethod.WALLET, WalletUsage.NONE): _settle_from_wallet,
    (PaymentMethod.WALLET, WalletUsage.EXPLICIT): _settle_from_wallet,
    (PaymentMethod.PAY_AT_HOTEL, WalletUsage.NONE): _auto_cover_advance,
    (PaymentMethod.PAY_AT_HOTEL, WalletUsage.EXPLICIT): _wallet_toward_advance,
    **{(m, WalletUsage.NONE): _gateway_only for m in _ONLINE},
    **{(m, WalletUsage.EXPLICIT): _wallet_toward_online for m in _ONLINE},
}


def plan_payment(
    request: PaymentRequest,
    balance: int,
    policy: PaymentPolicy | None = None,
) -> PaymentPlan:
    """Resolve the fee, wallet debit and redirect requirement for a booking.

    Raises:
        BookingValidationError: Non-positive total or negative wallet request.
        InsufficientFunds: Wallet method without enough balance, or an
            explicit wallet request over balance under the ``reject`` policy.
    """
    if request.total_amount <= 0:
        raise BookingValidationError("Total amount must be positive")
    if request.wallet_amount < 0:
        raise BookingValidationError("Wallet amount cannot be negative")

    policy = policy or PaymentPolicy.from_settings()
    rule = DECISION_TABLE[(request.method, request.wallet_usage)]
    return rule(request, max(0, balance), policy)
