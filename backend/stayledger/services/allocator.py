"""Inventory allocator — pick a free room unit for a stay.

The overlap rule is a pure function over data read *after* the candidate
room rows are locked, so a candidate list computed earlier (and possibly
stale) is always re-validated inside the booking transaction.
"""

import logging
import uuid
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from stayledger.errors import BookingValidationError, NoAvailability, NotFound, RoomUnavailable
from stayledger.models.booking import Booking, BookingStatus
from stayledger.models.hotel import Room

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StayRange:
    """Half-open night range ``[check_in, check_out)``."""

    check_in: date
    check_out: date

    def __post_init__(self) -> None:
        if self.check_out <= self.check_in:
            raise BookingValidationError("check_out must be after check_in")

    @property
    def nights(self) -> int:
        return max(1, (self.check_out - self.check_in).days)

    def overlaps(self, other: "StayRange") -> bool:
        return other.check_in < self.check_out and other.check_out > self.check_in


@dataclass(frozen=True)
class Allocation:
    room_id: uuid.UUID | None
    conflict: StayRange | None = None


def pick_first_available(
    candidates: Sequence[uuid.UUID],
    booked: Mapping[uuid.UUID, Iterable[StayRange]],
    stay: StayRange,
) -> Allocation:
    """First candidate, in caller order, with no booked range overlapping ``stay``.

    When nothing is free the earliest conflict of the first candidate is
    reported so a single-unit request can name the clashing dates.
    """
    first_conflict: StayRange | None = None
    for room_id in candidates:
        clashes = sorted(
            (r for r in booked.get(room_id, ()) if r.overlaps(stay)),
            key=lambda r: r.check_in,
        )
        if not clashes:
            return Allocation(room_id=room_id)
        if first_conflict is None:
            first_conflict = clashes[0]
    return Allocation(room_id=None, conflict=first_conflict)


async def _lock_rooms(
    db: AsyncSession, hotel_id: uuid.UUID, room_ids: Iterable[uuid.UUID]
) -> dict[uuid.UUID, Room]:
    """Lock the candidate unit rows, always in id order to avoid deadlocks."""
    result = await db.execute(
        select(Room)
        .where(Room.id.in_(list(room_ids)), Room.hotel_id == hotel_id)
        .order_by(Room.id)
        .with_for_update()
    )
    return {room.id: room for room in result.scalars().all()}


async def _booked_ranges(
    db: AsyncSession, room_ids: Sequence[uuid.UUID], stay: StayRange
) -> dict[uuid.UUID, list[StayRange]]:
    """Non-cancelled bookings on ``room_ids`` that overlap ``stay``."""
    if not room_ids:
        return {}
    result = await db.execute(
        select(Booking.room_id, Booking.check_in, Booking.check_out).where(
            Booking.room_id.in_(list(room_ids)),
            Booking.status != BookingStatus.CANCELLED,
            Booking.check_in < stay.check_out,
            Booking.check_out > stay.check_in,
        )
    )
    booked: dict[uuid.UUID, list[StayRange]] = {}
    for room_id, check_in, check_out in result.all():
        booked.setdefault(room_id, []).append(StayRange(check_in, check_out))
    return booked


async def room_ids_for_type(db: AsyncSession, hotel_id: uuid.UUID, room_type: str) -> list[uuid.UUID]:
    """Active units of one type, ordered by room name (the first-fit order)."""
    result = await db.execute(
        select(Room.id)
        .where(Room.hotel_id == hotel_id, Room.room_type == room_type, Room.is_active.is_(True))
        .order_by(Room.name)
    )
    return list(result.scalars().all())


async def allocate_room(
    db: AsyncSession, hotel_id: uuid.UUID, room_id: uuid.UUID, stay: StayRange
) -> Room:
    """Lock and validate one explicitly requested unit.

    Raises:
        NotFound: Unknown unit, other hotel, or inactive.
        RoomUnavailable: An overlapping booking exists; names its dates.
    """
    rooms = await _lock_rooms(db, hotel_id, [room_id])
    room = rooms.get(room_id)
    if room is None or not room.is_active:
        raise NotFound("Room not found")

    booked = await _booked_ranges(db, [room_id], stay)
    allocation = pick_first_available([room_id], booked, stay)
    if allocation.room_id is None:
        conflict = allocation.conflict
        logger.info(
            "Room %s unavailable for %s..%s (booked %s..%s)",
            room_id,
            stay.check_in,
            stay.check_out,
            conflict.check_in,
            conflict.check_out,
        )
        raise RoomUnavailable(conflict.check_in, conflict.check_out)
    return room


async def allocate_from_candidates(
    db: AsyncSession,
    hotel_id: uuid.UUID,
    candidates: Sequence[uuid.UUID],
    stay: StayRange,
) -> Room:
    """Lock the candidates and take the first free one in the given order.

    Unknown, foreign or inactive candidates are skipped.

    Raises:
        NoAvailability: No candidate is free for the stay.
    """
    ordered = list(dict.fromkeys(candidates))
    rooms = await _lock_rooms(db, hotel_id, ordered)
    usable = [room_id for room_id in ordered if room_id in rooms and rooms[room_id].is_active]

    booked = await _booked_ranges(db, usable, stay)
    allocation = pick_first_available(usable, booked, stay)
    if allocation.room_id is None:
        logger.info(
            "No availability among %d candidates for %s..%s",
            len(usable),
            stay.check_in,
            stay.check_out,
        )
        raise NoAvailability("No rooms of this type are available for the selected dates")
    return rooms[allocation.room_id]
