"""Racing booking requests on committed data, each in its own transaction."""

import asyncio
import uuid
from datetime import date

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from stayledger.errors import BookingError, InsufficientFunds, NoAvailability, RoomUnavailable
from stayledger.models import Booking, BookingStatus, Hotel, PaymentMethod, Room, User, WalletAccount
from stayledger.models.wallet import TransactionReason
from stayledger.services import booking_service, wallet_service
from stayledger.services.allocator import StayRange
from stayledger.services.booking_service import GuestInfo, UnitRequest
from stayledger.services.payment_plan import PaymentRequest

pytestmark = pytest.mark.asyncio

RACERS = 6


async def _seed(factory: async_sessionmaker[AsyncSession], units: int = 1, balance: int = 0):
    async with factory() as session:
        user = User(email=f"race-{uuid.uuid4().hex[:8]}@test.com", name="Racer")
        hotel = Hotel(name="Race Hotel")
        session.add_all([user, hotel])
        await session.flush()
        rooms = [
            Room(hotel_id=hotel.id, room_type="DELUXE", name=str(100 + i), price_per_night=2500)
            for i in range(units)
        ]
        session.add_all(rooms)
        await session.flush()
        if balance:
            await wallet_service.credit(session, user.id, balance, TransactionReason.TOP_UP)
        await session.commit()
        return user.id, hotel.id, [room.id for room in rooms]


async def _attempt(factory, clock, *, user_id, hotel_id, unit, stay, method=PaymentMethod.CARD):
    """Run one booking in its own unit of work; return the error kind or "ok"."""
    async with factory() as session:
        try:
            await booking_service.create_booking(
                session,
                user_id=user_id,
                hotel_id=hotel_id,
                unit=unit,
                guest=GuestInfo(name="Racer", phone="01712345678"),
                stay=stay,
                payment=PaymentRequest(total_amount=5000, method=method),
                clock=clock,
            )
            await session.commit()
            return "ok"
        except BookingError as e:
            await session.rollback()
            return e.kind


async def _live_bookings(factory) -> list[Booking]:
    async with factory() as session:
        result = await session.execute(select(Booking).where(Booking.status != BookingStatus.CANCELLED))
        return list(result.scalars().all())


async def test_same_unit_same_range_books_once(session_factory, clock):
    user_id, hotel_id, [room_id] = await _seed(session_factory)
    stay = StayRange(date(2024, 6, 10), date(2024, 6, 12))

    outcomes = await asyncio.gather(
        *[
            _attempt(
                session_factory,
                clock,
                user_id=user_id,
                hotel_id=hotel_id,
                unit=UnitRequest(room_id=room_id),
                stay=stay,
            )
            for _ in range(RACERS)
        ]
    )

    assert outcomes.count("ok") == 1
    assert outcomes.count(RoomUnavailable.kind) == RACERS - 1
    assert len(await _live_bookings(session_factory)) == 1


async def test_overlapping_ranges_never_share_a_unit(session_factory, clock):
    user_id, hotel_id, [room_id] = await _seed(session_factory)
    stays = [StayRange(date(2024, 6, 10 + i), date(2024, 6, 12 + i)) for i in range(RACERS)]

    await asyncio.gather(
        *[
            _attempt(
                session_factory,
                clock,
                user_id=user_id,
                hotel_id=hotel_id,
                unit=UnitRequest(room_id=room_id),
                stay=s,
            )
            for s in stays
        ]
    )

    booked = [StayRange(b.check_in, b.check_out) for b in await _live_bookings(session_factory)]
    assert booked
    for i, a in enumerate(booked):
        for b in booked[i + 1 :]:
            assert not a.overlaps(b)


async def test_candidate_pool_is_handed_out_once_per_unit(session_factory, clock):
    user_id, hotel_id, room_ids = await _seed(session_factory, units=3)
    stay = StayRange(date(2024, 6, 10), date(2024, 6, 12))

    outcomes = await asyncio.gather(
        *[
            _attempt(
                session_factory,
                clock,
                user_id=user_id,
                hotel_id=hotel_id,
                unit=UnitRequest(candidate_room_ids=room_ids),
                stay=stay,
            )
            for _ in range(RACERS)
        ]
    )

    assert outcomes.count("ok") == 3
    assert outcomes.count(NoAvailability.kind) == RACERS - 3
    bookings = await _live_bookings(session_factory)
    assert sorted(b.room_id for b in bookings) == sorted(room_ids)


async def test_concurrent_wallet_debits_never_overdraw(session_factory, clock):
    user_id, hotel_id, room_ids = await _seed(session_factory, units=RACERS, balance=12000)
    stay = StayRange(date(2024, 6, 10), date(2024, 6, 12))

    outcomes = await asyncio.gather(
        *[
            _attempt(
                session_factory,
                clock,
                user_id=user_id,
                hotel_id=hotel_id,
                unit=UnitRequest(room_id=room_id),
                stay=stay,
                method=PaymentMethod.WALLET,
            )
            for room_id in room_ids
        ]
    )

    assert outcomes.count("ok") == 2
    assert outcomes.count(InsufficientFunds.kind) == RACERS - 2
    async with session_factory() as session:
        wallet = await wallet_service.get_or_create_wallet(session, user_id)
        assert wallet.balance == 2000
        assert await wallet_service.ledger_balance(session, wallet.id) == 2000


async def test_first_wallet_access_creates_one_wallet(session_factory):
    user_id, _, _ = await _seed(session_factory)
    amounts = [100 * (i + 1) for i in range(RACERS)]

    async def _credit(amount: int) -> None:
        async with session_factory() as session:
            await wallet_service.credit(session, user_id, amount, TransactionReason.TOP_UP)
            await session.commit()

    await asyncio.gather(*[_credit(amount) for amount in amounts])

    async with session_factory() as session:
        result = await session.execute(select(WalletAccount).where(WalletAccount.user_id == user_id))
        [wallet] = result.scalars().all()
        assert wallet.balance == sum(amounts)
        assert await wallet_service.ledger_balance(session, wallet.id) == sum(amounts)
