"""SQLAlchemy models for StayLedger.

All models are imported here so that ``Base.metadata`` knows every table
before ``create_all`` or alembic autogenerate runs. If you add a new model,
import it in this file and add a revision under ``alembic/versions``.
"""

from stayledger.models.booking import (
    Booking,
    BookingFeeStatus,
    BookingStatus,
    CancellationReason,
    PaymentMethod,
    PaymentStatus,
)
from stayledger.models.hotel import Hotel, Room
from stayledger.models.user import User
from stayledger.models.wallet import (
    TransactionReason,
    TransactionType,
    WalletAccount,
    WalletTransaction,
)

__all__ = [
    "Booking",
    "BookingFeeStatus",
    "BookingStatus",
    "CancellationReason",
    "Hotel",
    "PaymentMethod",
    "PaymentStatus",
    "Room",
    "TransactionReason",
    "TransactionType",
    "User",
    "WalletAccount",
    "WalletTransaction",
]
