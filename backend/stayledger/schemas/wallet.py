"""Pydantic v2 schemas for wallet endpoints."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from stayledger.models.wallet import TransactionReason, TransactionType


class WalletResponse(BaseModel):
    id: uuid.UUID
    balance: int

    model_config = ConfigDict(from_attributes=True)


class WalletTransactionResponse(BaseModel):
    id: uuid.UUID
    type: TransactionType
    amount: int
    reason: TransactionReason
    booking_id: uuid.UUID | None = None
    description: str | None = None
    reference: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class WalletTransactionListResponse(BaseModel):
    items: list[WalletTransactionResponse]


class TopUpRequest(BaseModel):
    amount: int = Field(..., gt=0)
