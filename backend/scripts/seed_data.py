"""Seed the database with a sample hotel, room units and a funded guest.

Creates the tables if they do not exist, then (re)creates:
- Hotel Sea Pearl, Cox's Bazar, with three DELUXE and two SUITE units
- a demo guest with a topped-up wallet
- one confirmed wallet-paid booking a week from today

Run from ``backend/``:
    python -m scripts.seed_data
"""

import asyncio
import sys
from datetime import date, timedelta
from pathlib import Path

# Add backend to path so imports work when run as a script
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import delete, select

from stayledger.auth.jwt import create_access_token
from stayledger.database import Base, async_session_factory, engine
from stayledger.models import Booking, Hotel, Room, User, WalletAccount, WalletTransaction
from stayledger.models.booking import PaymentMethod
from stayledger.services import booking_service, wallet_service
from stayledger.services.allocator import StayRange
from stayledger.services.booking_service import GuestInfo, UnitRequest
from stayledger.services.payment_plan import PaymentRequest

# ---------------------------------------------------------------------------
# Seed data definitions
# ---------------------------------------------------------------------------

DEMO_USER = {
    "email": "guest@stayledger.test",
    "name": "Demo Guest",
}

DEMO_HOTEL = {
    "name": "Hotel Sea Pearl",
    "address": "Kolatoli Road, Cox's Bazar",
}

ROOMS = [
    {"name": "101", "room_type": "DELUXE", "price_per_night": 2500},
    {"name": "102", "room_type": "DELUXE", "price_per_night": 2500},
    {"name": "103", "room_type": "DELUXE", "price_per_night": 2500},
    {"name": "201", "room_type": "SUITE", "price_per_night": 6000},
    {"name": "202", "room_type": "SUITE", "price_per_night": 6000},
]

WALLET_TOP_UP = 20000


# ---------------------------------------------------------------------------
# Main seed function
# ---------------------------------------------------------------------------


async def _clear(session) -> None:
    """Remove a previous seed run, children first."""
    result = await session.execute(select(User).where(User.email == DEMO_USER["email"]))
    existing_user = result.scalar_one_or_none()
    if existing_user is not None:
        print(f"⚠️  Demo user '{DEMO_USER['email']}' already exists. Deleting and re-seeding...")
        wallet_ids = select(WalletAccount.id).where(WalletAccount.user_id == existing_user.id)
        await session.execute(delete(WalletTransaction).where(WalletTransaction.wallet_id.in_(wallet_ids)))
        await session.execute(delete(WalletAccount).where(WalletAccount.user_id == existing_user.id))
        await session.execute(delete(Booking).where(Booking.user_id == existing_user.id))
        await session.execute(delete(User).where(User.id == existing_user.id))

    hotel_ids = select(Hotel.id).where(Hotel.name == DEMO_HOTEL["name"])
    await session.execute(delete(Booking).where(Booking.hotel_id.in_(hotel_ids)))
    await session.execute(delete(Room).where(Room.hotel_id.in_(hotel_ids)))
    await session.execute(delete(Hotel).where(Hotel.name == DEMO_HOTEL["name"]))
    await session.flush()


async def seed() -> None:
    """Populate the database with sample inventory and a funded guest.

    Idempotent: an earlier seed run is deleted before re-seeding.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_factory() as session:
        await _clear(session)

        # ------------------------------------------------------------------
        # 1. Hotel and units
        # ------------------------------------------------------------------
        hotel = Hotel(**DEMO_HOTEL)
        session.add(hotel)
        await session.flush()

        for room_data in ROOMS:
            session.add(Room(hotel_id=hotel.id, **room_data))
        await session.flush()
        print(f"✅ Created {hotel.name} with {len(ROOMS)} units")

        # ------------------------------------------------------------------
        # 2. Guest and wallet
        # ------------------------------------------------------------------
        user = User(**DEMO_USER)
        session.add(user)
        await session.flush()
        wallet = await wallet_service.top_up(session, user.id, WALLET_TOP_UP)
        print(f"✅ Created demo guest: {user.email} (id={user.id}), wallet ৳{wallet.balance:,}")

        # ------------------------------------------------------------------
        # 3. One confirmed booking paid from the wallet
        # ------------------------------------------------------------------
        check_in = date.today() + timedelta(days=7)
        stay = StayRange(check_in, check_in + timedelta(days=2))
        receipt = await booking_service.create_booking(
            session,
            user_id=user.id,
            hotel_id=hotel.id,
            unit=UnitRequest(room_type="DELUXE"),
            guest=GuestInfo(name=user.name, phone="01712345678", email=user.email),
            stay=stay,
            payment=PaymentRequest(total_amount=2500 * stay.nights, method=PaymentMethod.WALLET),
        )
        await session.commit()
        print(f"✅ Created booking {receipt.booking.id} ({receipt.booking.status.value})")

        token = create_access_token({"sub": str(user.id)}, expires_delta=timedelta(days=7))
        print()
        print("=" * 60)
        print("📊 Seed Summary")
        print("=" * 60)
        print(f"   Hotel:     {hotel.name} (id={hotel.id})")
        print(f"   Units:     {len(ROOMS)}")
        print(f"   Guest:     {user.email}")
        print(f"   Bookings:  1")
        print("=" * 60)
        print(f"🎉 Done! Bearer token for the demo guest:\n{token}")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed())
