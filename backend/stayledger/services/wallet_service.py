"""Wallet service — balance reads and ledger-backed debits/credits.

The balance column is a cache of the ledger: every change to it is paired
with exactly one ``WalletTransaction`` row in the same session, so
``balance == ledger_balance`` holds after every commit.
"""

import logging
import uuid

from sqlalchemy import case, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from stayledger.config import settings
from stayledger.errors import BookingValidationError, InsufficientFunds
from stayledger.models.wallet import (
    TransactionReason,
    TransactionType,
    WalletAccount,
    WalletTransaction,
)
from stayledger.money import format_amount

logger = logging.getLogger(__name__)

# INSERT ... ON CONFLICT DO NOTHING, per supported dialect
_INSERT_IGNORING_CONFLICT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


async def get_or_create_wallet(
    db: AsyncSession, user_id: uuid.UUID, *, for_update: bool = False
) -> WalletAccount:
    """Get the user's wallet, creating an empty one on first access.

    With ``for_update`` the row is locked until the session's transaction
    ends, guarding the read-modify-write of ``balance``. Two first accesses
    racing on the ``user_id`` unique key both end up with the same row: the
    losing insert is a no-op and the select that follows waits for the
    winner.
    """
    query = select(WalletAccount).where(WalletAccount.user_id == user_id)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    wallet = (await db.execute(query)).scalar_one_or_none()
    if wallet is not None:
        return wallet

    insert = _INSERT_IGNORING_CONFLICT[db.get_bind().dialect.name]
    result = await db.execute(
        insert(WalletAccount.__table__)
        .values(id=uuid.uuid4(), user_id=user_id, balance=0)
        .on_conflict_do_nothing(index_elements=["user_id"])
    )
    if result.rowcount:
        logger.info("Created wallet for user %s", user_id)
    return (await db.execute(query)).scalar_one()


async def get_balance(db: AsyncSession, user_id: uuid.UUID) -> int:
    wallet = await get_or_create_wallet(db, user_id)
    return wallet.balance


async def _append(
    db: AsyncSession,
    wallet: WalletAccount,
    tx_type: TransactionType,
    amount: int,
    reason: TransactionReason,
    booking_id: uuid.UUID | None,
    description: str | None,
    reference: str | None = None,
) -> WalletTransaction:
    if amount <= 0:
        raise BookingValidationError("Wallet amount must be positive")

    if tx_type == TransactionType.DEBIT:
        if wallet.balance < amount:
            raise InsufficientFunds(
                f"Insufficient wallet balance: {format_amount(wallet.balance)} available, "
                f"{format_amount(amount)} required"
            )
        wallet.balance -= amount
    else:
        wallet.balance += amount

    transaction = WalletTransaction(
        wallet_id=wallet.id,
        type=tx_type,
        amount=amount,
        reason=reason,
        booking_id=booking_id,
        description=description,
        reference=reference,
    )
    db.add(transaction)
    await db.flush()
    logger.info(
        "Wallet %s %s %d (%s) booking=%s balance=%d",
        wallet.id,
        tx_type.value,
        amount,
        reason.value,
        booking_id,
        wallet.balance,
    )
    return transaction


async def debit(
    db: AsyncSession,
    user_id: uuid.UUID,
    amount: int,
    reason: TransactionReason,
    booking_id: uuid.UUID | None = None,
    description: str | None = None,
) -> WalletTransaction:
    """Take ``amount`` out of the user's wallet.

    Raises:
        InsufficientFunds: If the locked balance is below ``amount``.
        BookingValidationError: If ``amount`` is not positive.
    """
    wallet = await get_or_create_wallet(db, user_id, for_update=True)
    return await _append(db, wallet, TransactionType.DEBIT, amount, reason, booking_id, description)


async def credit(
    db: AsyncSession,
    user_id: uuid.UUID,
    amount: int,
    reason: TransactionReason,
    booking_id: uuid.UUID | None = None,
    description: str | None = None,
    reference: str | None = None,
) -> WalletTransaction:
    """Add ``amount`` to the user's wallet."""
    wallet = await get_or_create_wallet(db, user_id, for_update=True)
    return await _append(
        db, wallet, TransactionType.CREDIT, amount, reason, booking_id, description, reference
    )


async def top_up(db: AsyncSession, user_id: uuid.UUID, amount: int) -> WalletAccount:
    """Simulated top-up; a real deployment credits after the gateway confirms."""
    if amount < settings.min_top_up_amount:
        raise BookingValidationError(
            f"Minimum top-up is {format_amount(settings.min_top_up_amount)}"
        )
    await credit(
        db,
        user_id,
        amount,
        TransactionReason.TOP_UP,
        description=f"Added {format_amount(amount)} to wallet",
    )
    return await get_or_create_wallet(db, user_id)


async def list_transactions(
    db: AsyncSession, user_id: uuid.UUID, limit: int = 50
) -> list[WalletTransaction]:
    """Return the user's ledger, newest first."""
    wallet = await get_or_create_wallet(db, user_id)
    result = await db.execute(
        select(WalletTransaction)
        .where(WalletTransaction.wallet_id == wallet.id)
        .order_by(WalletTransaction.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def find_by_reference(db: AsyncSession, reference: str) -> WalletTransaction | None:
    result = await db.execute(select(WalletTransaction).where(WalletTransaction.reference == reference))
    return result.scalar_one_or_none()


async def ledger_balance(db: AsyncSession, wallet_id: uuid.UUID) -> int:
    """Signed sum of every ledger entry for the wallet."""
    signed = case(
        (WalletTransaction.type == TransactionType.CREDIT, WalletTransaction.amount),
        else_=-WalletTransaction.amount,
    )
    result = await db.execute(
        select(func.coalesce(func.sum(signed), 0)).where(WalletTransaction.wallet_id == wallet_id)
    )
    return int(result.scalar_one())
