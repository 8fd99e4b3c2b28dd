"""Pydantic v2 request/response schemas for booking endpoints."""

import uuid
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from stayledger.models.booking import (
    BookingFeeStatus,
    BookingStatus,
    CancellationReason,
    PaymentMethod,
    PaymentStatus,
)

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class BookingCreate(BaseModel):
    """Schema for creating a booking.

    Give exactly one of ``room_id`` (a specific unit), ``candidate_room_ids``
    (interchangeable units, tried in order) or ``room_type`` (let the server
    pick among the hotel's units of that type).
    """

    hotel_id: uuid.UUID
    room_id: uuid.UUID | None = None
    candidate_room_ids: list[uuid.UUID] | None = Field(None, min_length=1)
    room_type: str | None = Field(None, min_length=1, max_length=100)

    guest_name: str = Field(..., min_length=2, max_length=100)
    guest_phone: str = Field(..., min_length=10, max_length=20)
    guest_email: str | None = Field(None, max_length=255)

    check_in: date
    check_out: date
    payment_method: PaymentMethod
    total_amount: int = Field(..., gt=0)

    use_wallet_balance: bool = False
    wallet_amount: int = Field(0, ge=0)

    @model_validator(mode="after")
    def check_dates(self) -> "BookingCreate":
        """Validate that check_out is strictly after check_in."""
        if self.check_out <= self.check_in:
            raise ValueError("check_out must be after check_in")
        return self

    @model_validator(mode="after")
    def check_unit_selector(self) -> "BookingCreate":
        given = [self.room_id is not None, bool(self.candidate_room_ids), bool(self.room_type)]
        if sum(given) != 1:
            raise ValueError("Provide exactly one of room_id, candidate_room_ids or room_type")
        return self


class CancelRequest(BaseModel):
    """Optional cancel-form input: a reason code and/or free text."""

    reason: CancellationReason | None = None
    details: str | None = Field(None, max_length=500)


class ScanRequest(BaseModel):
    """Body posted by the check-in/out scanner."""

    token: str = Field(..., min_length=1)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BookingResponse(BaseModel):
    """Booking as returned to its owner."""

    id: uuid.UUID
    hotel_id: uuid.UUID
    room_id: uuid.UUID
    guest_name: str
    guest_phone: str
    guest_email: str | None = None
    check_in: date
    check_out: date
    nights: int
    total_amount: int
    commission_amount: int
    net_amount: int
    booking_fee: int
    booking_fee_status: BookingFeeStatus
    wallet_amount_used: int
    amount_due: int
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    status: BookingStatus
    expires_at: datetime | None = None
    cancellation_reason: str | None = None
    cancelled_at: datetime | None = None
    refund_amount: int | None = None
    qr_token: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BookingCreatedResponse(BaseModel):
    booking_id: uuid.UUID
    booking_fee: int
    requires_payment: bool
    amount_due: int
    advance_amount: int | None = None
    wallet_payment_success: bool
    booking: BookingResponse


class BookingListResponse(BaseModel):
    items: list[BookingResponse]
    total: int


class BookingSummary(BaseModel):
    """Compact view returned to the check-in/out scanner."""

    id: uuid.UUID
    hotel_id: uuid.UUID
    room_id: uuid.UUID
    guest_name: str
    check_in: date
    check_out: date
    status: BookingStatus

    model_config = ConfigDict(from_attributes=True)


class CancellationPreviewResponse(BaseModel):
    is_late: bool
    is_very_late: bool
    hours_remaining: float
    penalty_description: str | None = None
    penalty_amount: int
    refund_amount: int


class CancellationResponse(BaseModel):
    booking_id: uuid.UUID
    status: BookingStatus
    refund_amount: int
    is_late: bool
