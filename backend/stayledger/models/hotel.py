"""Hotel and room-unit models."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from stayledger.database import Base, UUIDPrimaryKeyMixin


class Hotel(UUIDPrimaryKeyMixin, Base):
    """A hotel listing. Search, content and ranking live elsewhere."""

    __tablename__ = "hotels"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str | None] = mapped_column(String(512), default=None)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())

    def __repr__(self) -> str:
        return f"<Hotel(id={self.id}, name={self.name!r})>"


class Room(UUIDPrimaryKeyMixin, Base):
    """One concrete bookable unit.

    Units sharing a ``room_type`` are interchangeable and sold at one price;
    the allocator picks among them.
    """

    __tablename__ = "rooms"

    hotel_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("hotels.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    room_type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)  # e.g. "101"
    price_per_night: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (UniqueConstraint("hotel_id", "name", name="uq_rooms_hotel_name"),)

    def __repr__(self) -> str:
        return f"<Room(id={self.id}, hotel_id={self.hotel_id}, name={self.name!r}, type={self.room_type!r})>"
