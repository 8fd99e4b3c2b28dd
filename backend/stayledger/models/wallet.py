"""Wallet account and its append-only transaction ledger."""

import enum
import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from stayledger.clock import utcnow
from stayledger.database import Base, TimestampMixin, UUIDPrimaryKeyMixin


class TransactionType(str, enum.Enum):
    CREDIT = "CREDIT"
    DEBIT = "DEBIT"


class TransactionReason(str, enum.Enum):
    BOOKING_FEE = "BOOKING_FEE"
    REFUND = "REFUND"
    TOP_UP = "TOP_UP"


class WalletAccount(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Per-user balance. Created lazily on first access, one per user."""

    __tablename__ = "wallet_accounts"

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    balance: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    __table_args__ = (CheckConstraint("balance >= 0", name="ck_wallet_balance_non_negative"),)
    __mapper_args__ = {"eager_defaults": True}

    def __repr__(self) -> str:
        return f"<WalletAccount id={self.id} user_id={self.user_id} balance={self.balance}>"


class WalletTransaction(UUIDPrimaryKeyMixin, Base):
    """One ledger entry. Rows are only ever inserted."""

    __tablename__ = "wallet_transactions"

    wallet_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("wallet_accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[TransactionType] = mapped_column(
        Enum(TransactionType, native_enum=False, length=10), nullable=False
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[TransactionReason] = mapped_column(
        Enum(TransactionReason, native_enum=False, length=20), nullable=False
    )
    booking_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("bookings.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    # Gateway payment id; one ledger entry per external payment
    reference: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, index=True)

    __table_args__ = (CheckConstraint("amount > 0", name="ck_wallet_tx_amount_positive"),)

    @property
    def signed_amount(self) -> int:
        return self.amount if self.type == TransactionType.CREDIT else -self.amount

    def __repr__(self) -> str:
        return f"<WalletTransaction id={self.id} {self.type.value} {self.amount} reason={self.reason.value}>"
