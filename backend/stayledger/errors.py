"""Typed business errors raised by the booking services.

Each error carries a stable ``kind`` (what API clients switch on), a
human-readable message and the HTTP status the API layer maps it to.
Infrastructure failures are not modelled here; they surface as
SQLAlchemy/Stripe exceptions and are translated to a retry-later response at
the HTTP boundary.
"""

from datetime import date

from fastapi import status


class BookingError(Exception):
    """Base class for business-rule failures."""

    kind: str = "BookingError"
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __repr__(self) -> str:
        return f"<{type(self).__name__} kind={self.kind!r} message={self.message!r}>"


class NoAvailability(BookingError):
    kind = "NoAvailability"
    status_code = status.HTTP_409_CONFLICT


class RoomUnavailable(BookingError):
    """The requested unit already has a booking overlapping the stay."""

    kind = "RoomUnavailable"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, conflict_check_in: date, conflict_check_out: date) -> None:
        self.conflict_check_in = conflict_check_in
        self.conflict_check_out = conflict_check_out
        super().__init__(
            "Room is already booked from "
            f"{conflict_check_in:%d %b %Y} to {conflict_check_out:%d %b %Y}"
        )


class InsufficientFunds(BookingError):
    kind = "InsufficientFunds"
    status_code = status.HTTP_402_PAYMENT_REQUIRED


class PaymentRequired(BookingError):
    kind = "PaymentRequired"
    status_code = status.HTTP_402_PAYMENT_REQUIRED


class NotFound(BookingError):
    kind = "NotFound"
    status_code = status.HTTP_404_NOT_FOUND


class Unauthorized(BookingError):
    kind = "Unauthorized"
    status_code = status.HTTP_403_FORBIDDEN


class InvalidState(BookingError):
    kind = "InvalidState"
    status_code = status.HTTP_409_CONFLICT


class AlreadyCancelled(BookingError):
    kind = "AlreadyCancelled"
    status_code = status.HTTP_409_CONFLICT


class BookingValidationError(BookingError):
    kind = "ValidationError"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
