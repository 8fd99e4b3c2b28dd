"""Wallet API router — balance, ledger history and top-ups."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from stayledger.api.deps import get_current_active_user, get_db
from stayledger.models.user import User
from stayledger.models.wallet import WalletAccount
from stayledger.schemas.wallet import (
    TopUpRequest,
    WalletResponse,
    WalletTransactionListResponse,
)
from stayledger.services import wallet_service

router = APIRouter(prefix="/api/v1/wallet", tags=["wallet"])


@router.get("", response_model=WalletResponse, summary="Get the current user's wallet")
async def get_wallet(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> WalletAccount:
    wallet = await wallet_service.get_or_create_wallet(db, current_user.id)
    # First read creates the wallet
    await db.commit()
    return wallet


@router.get(
    "/transactions",
    response_model=WalletTransactionListResponse,
    summary="List wallet transactions, newest first",
)
async def list_transactions(
    limit: int = Query(50, ge=1, le=200, description="Maximum number of entries"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> dict:
    items = await wallet_service.list_transactions(db, current_user.id, limit=limit)
    await db.commit()
    return {"items": items}


@router.post(
    "/top-up",
    response_model=WalletResponse,
    status_code=status.HTTP_200_OK,
    summary="Add money to the wallet",
)
async def top_up(
    body: TopUpRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> WalletAccount:
    wallet = await wallet_service.top_up(db, current_user.id, body.amount)
    await db.commit()
    return wallet
