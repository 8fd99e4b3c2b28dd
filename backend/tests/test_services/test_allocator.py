"""Tests for the room-unit allocator: the pure overlap rule and the locked DB path."""

import uuid
from datetime import date

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from stayledger.errors import BookingValidationError, NoAvailability, NotFound, RoomUnavailable
from stayledger.models import BookingStatus, Hotel, Room
from stayledger.services.allocator import (
    StayRange,
    allocate_from_candidates,
    allocate_room,
    pick_first_available,
    room_ids_for_type,
)


def _stay(start: int, end: int) -> StayRange:
    return StayRange(date(2024, 6, start), date(2024, 6, end))


# ---------------------------------------------------------------------------
# StayRange
# ---------------------------------------------------------------------------


class TestStayRange:
    def test_nights(self):
        assert _stay(10, 12).nights == 2

    def test_rejects_empty_range(self):
        with pytest.raises(BookingValidationError):
            _stay(10, 10)

    def test_rejects_reversed_range(self):
        with pytest.raises(BookingValidationError):
            _stay(12, 10)

    def test_overlap_inside(self):
        assert _stay(10, 12).overlaps(_stay(11, 13))

    def test_overlap_containing(self):
        assert _stay(10, 20).overlaps(_stay(12, 13))

    def test_touching_ranges_do_not_overlap(self):
        """Half-open: checking out on the day the next guest checks in is fine."""
        assert not _stay(10, 12).overlaps(_stay(12, 14))
        assert not _stay(12, 14).overlaps(_stay(10, 12))


# ---------------------------------------------------------------------------
# pick_first_available (pure)
# ---------------------------------------------------------------------------


class TestPickFirstAvailable:
    def test_first_free_candidate_in_order(self):
        a, b, c = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
        booked = {a: [_stay(10, 12)]}
        result = pick_first_available([a, b, c], booked, _stay(11, 13))
        assert result.room_id == b
        assert result.conflict is None

    def test_caller_order_wins(self):
        a, b = uuid.uuid4(), uuid.uuid4()
        result = pick_first_available([b, a], {}, _stay(10, 12))
        assert result.room_id == b

    def test_boundary_booking_does_not_block(self):
        a = uuid.uuid4()
        result = pick_first_available([a], {a: [_stay(10, 12)]}, _stay(12, 14))
        assert result.room_id == a

    def test_nothing_free_reports_earliest_conflict(self):
        a, b = uuid.uuid4(), uuid.uuid4()
        booked = {a: [_stay(12, 15), _stay(9, 11)], b: [_stay(10, 11)]}
        result = pick_first_available([a, b], booked, _stay(10, 13))
        assert result.room_id is None
        assert result.conflict == _stay(9, 11)

    def test_empty_candidates(self):
        result = pick_first_available([], {}, _stay(10, 12))
        assert result.room_id is None
        assert result.conflict is None


# ---------------------------------------------------------------------------
# Database-backed allocation
# ---------------------------------------------------------------------------


class TestAllocateRoom:
    @pytest.mark.asyncio
    async def test_free_room(self, db_session: AsyncSession, hotel: Hotel, rooms: list[Room]):
        room = await allocate_room(db_session, hotel.id, rooms[0].id, _stay(10, 12))
        assert room.id == rooms[0].id

    @pytest.mark.asyncio
    async def test_conflict_names_the_booked_dates(
        self, db_session: AsyncSession, hotel: Hotel, rooms: list[Room], book, fund_wallet, test_user
    ):
        await fund_wallet(test_user, 5000)
        await book(check_in=date(2024, 6, 10), check_out=date(2024, 6, 12))

        with pytest.raises(RoomUnavailable) as exc_info:
            await allocate_room(db_session, hotel.id, rooms[0].id, _stay(11, 13))

        err = exc_info.value
        assert err.conflict_check_in == date(2024, 6, 10)
        assert err.conflict_check_out == date(2024, 6, 12)
        assert "10 Jun 2024 to 12 Jun 2024" in err.message

    @pytest.mark.asyncio
    async def test_cancelled_booking_frees_the_room(
        self, db_session: AsyncSession, hotel: Hotel, rooms: list[Room], book, fund_wallet, test_user
    ):
        await fund_wallet(test_user, 5000)
        booking = await book()
        booking.status = BookingStatus.CANCELLED
        await db_session.flush()

        room = await allocate_room(db_session, hotel.id, rooms[0].id, _stay(10, 12))
        assert room.id == rooms[0].id

    @pytest.mark.asyncio
    async def test_unknown_room(self, db_session: AsyncSession, hotel: Hotel, rooms: list[Room]):
        with pytest.raises(NotFound):
            await allocate_room(db_session, hotel.id, uuid.uuid4(), _stay(10, 12))

    @pytest.mark.asyncio
    async def test_room_of_another_hotel(self, db_session: AsyncSession, rooms: list[Room]):
        other = Hotel(name="Other Hotel")
        db_session.add(other)
        await db_session.flush()
        with pytest.raises(NotFound):
            await allocate_room(db_session, other.id, rooms[0].id, _stay(10, 12))

    @pytest.mark.asyncio
    async def test_inactive_room(self, db_session: AsyncSession, hotel: Hotel, rooms: list[Room]):
        rooms[0].is_active = False
        await db_session.flush()
        with pytest.raises(NotFound):
            await allocate_room(db_session, hotel.id, rooms[0].id, _stay(10, 12))


class TestAllocateFromCandidates:
    @pytest.mark.asyncio
    async def test_skips_booked_candidate(
        self, db_session: AsyncSession, hotel: Hotel, rooms: list[Room], book, fund_wallet, test_user
    ):
        await fund_wallet(test_user, 5000)
        await book(room=rooms[0])

        room = await allocate_from_candidates(
            db_session, hotel.id, [r.id for r in rooms], _stay(11, 13)
        )
        assert room.id == rooms[1].id

    @pytest.mark.asyncio
    async def test_skips_unknown_and_inactive(
        self, db_session: AsyncSession, hotel: Hotel, rooms: list[Room]
    ):
        rooms[0].is_active = False
        await db_session.flush()

        room = await allocate_from_candidates(
            db_session, hotel.id, [uuid.uuid4(), rooms[0].id, rooms[2].id], _stay(10, 12)
        )
        assert room.id == rooms[2].id

    @pytest.mark.asyncio
    async def test_all_booked(
        self, db_session: AsyncSession, hotel: Hotel, rooms: list[Room], book, fund_wallet, test_user
    ):
        await fund_wallet(test_user, 15000)
        for room in rooms:
            await book(room=room)

        with pytest.raises(NoAvailability):
            await allocate_from_candidates(
                db_session, hotel.id, [r.id for r in rooms], _stay(10, 12)
            )

    @pytest.mark.asyncio
    async def test_room_ids_for_type_ordered_by_name(
        self, db_session: AsyncSession, hotel: Hotel, rooms: list[Room]
    ):
        suite = Room(hotel_id=hotel.id, room_type="SUITE", name="201", price_per_night=6000)
        db_session.add(suite)
        await db_session.flush()

        ids = await room_ids_for_type(db_session, hotel.id, "DELUXE")
        assert ids == [r.id for r in rooms]
