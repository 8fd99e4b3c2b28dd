"""Pydantic v2 schemas for gateway payment endpoints."""

import uuid

from pydantic import BaseModel


class PaymentIntentRequest(BaseModel):
    booking_id: uuid.UUID


class PaymentIntentResponse(BaseModel):
    payment_intent_id: str
    client_secret: str
    amount: int
    currency: str
