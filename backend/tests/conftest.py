"""Shared test configuration and fixtures.

Uses a transactional rollback strategy per test for full isolation:
- Each test gets a fresh SQLite database file (or ``TEST_DATABASE_URL``).
- The ``db_session`` fixture wraps the test in a transaction that rolls back.
- Concurrency tests skip ``db_session`` and open committed sessions of their
  own from ``session_factory``.
"""

import os
import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import date, datetime, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from stayledger.auth.jwt import create_access_token
from stayledger.clock import get_clock
from stayledger.database import Base, get_db, make_engine
from stayledger.main import app
from stayledger.models import Booking, Hotel, PaymentMethod, Room, User
from stayledger.models.wallet import TransactionReason
from stayledger.services import booking_service, wallet_service
from stayledger.services.allocator import StayRange
from stayledger.services.booking_service import GuestInfo, UnitRequest
from stayledger.services.payment_plan import PaymentRequest

# 2024-06-01 12:00 in Dhaka: comfortably before the June stays used in tests.
NOW = datetime(2024, 6, 1, 6, 0, tzinfo=timezone.utc)


class FixedClock:
    """Clock frozen at ``current``; tests move it by assigning a new instant."""

    def __init__(self, current: datetime) -> None:
        self.current = current

    def now(self) -> datetime:
        return self.current


# ---------------------------------------------------------------------------
# Per-test database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def test_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Create all tables on a fresh database and drop them afterwards."""
    url = os.environ.get("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'stayledger_test.db'}"
    engine = make_engine(url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(test_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Yield an async session wrapped in a transaction that always rolls back."""
    async with test_engine.connect() as connection:
        transaction = await connection.begin()
        session = AsyncSession(bind=connection, expire_on_commit=False)

        try:
            yield session
        finally:
            await session.close()
            await transaction.rollback()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest_asyncio.fixture
async def client(db_session: AsyncSession, clock: FixedClock) -> AsyncGenerator[AsyncClient, None]:
    """Provide an httpx AsyncClient wired to the test DB session and clock."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Convenience fixtures: users, inventory, wallet
# ---------------------------------------------------------------------------


async def _make_user(db: AsyncSession, phone: str | None = None) -> User:
    unique = uuid.uuid4().hex[:8]
    user = User(email=f"guest-{unique}@test.com", name="Test Guest", phone=phone, is_active=True)
    db.add(user)
    await db.flush()
    return user


def _bearer(user: User) -> dict[str, str]:
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create and return a test user directly in the DB."""
    return await _make_user(db_session)


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session)


@pytest_asyncio.fixture
async def auth_headers(test_user: User) -> dict[str, str]:
    """Return Authorization headers for the test user."""
    return _bearer(test_user)


@pytest_asyncio.fixture
async def hotel(db_session: AsyncSession) -> Hotel:
    hotel = Hotel(name="Hotel Sea Pearl", address="Cox's Bazar")
    db_session.add(hotel)
    await db_session.flush()
    return hotel


@pytest_asyncio.fixture
async def rooms(db_session: AsyncSession, hotel: Hotel) -> list[Room]:
    """Three interchangeable DELUXE units, returned in name order."""
    units = [
        Room(hotel_id=hotel.id, room_type="DELUXE", name=name, price_per_night=2500)
        for name in ("101", "102", "103")
    ]
    db_session.add_all(units)
    await db_session.flush()
    return units


@pytest_asyncio.fixture
async def fund_wallet(db_session: AsyncSession) -> Callable[[User, int], Awaitable[None]]:
    """Return a helper that credits a user's wallet through the ledger."""

    async def _fund(user: User, amount: int) -> None:
        await wallet_service.credit(
            db_session, user.id, amount, TransactionReason.TOP_UP, description="Test top-up"
        )

    return _fund


@pytest_asyncio.fixture
async def other_headers(other_user: User) -> dict[str, str]:
    return _bearer(other_user)


@pytest_asyncio.fixture
async def book(db_session: AsyncSession, test_user: User, hotel: Hotel, rooms: list[Room], clock: FixedClock):
    """Return a helper that books one unit through the booking service.

    Defaults: ``rooms[0]`` for 2024-06-10..12, paid from the wallet, 5000 total.
    """

    async def _book(
        *,
        check_in: date = date(2024, 6, 10),
        check_out: date = date(2024, 6, 12),
        room: Room | None = None,
        method: PaymentMethod = PaymentMethod.WALLET,
        total: int = 5000,
        use_wallet: bool = False,
        wallet_amount: int = 0,
        user: User | None = None,
        phone: str = "01712345678",
    ) -> Booking:
        receipt = await booking_service.create_booking(
            db_session,
            user_id=(user or test_user).id,
            hotel_id=hotel.id,
            unit=UnitRequest(room_id=(room or rooms[0]).id),
            guest=GuestInfo(name="Rahim Uddin", phone=phone),
            stay=StayRange(check_in, check_out),
            payment=PaymentRequest(
                total_amount=total,
                method=method,
                use_wallet_balance=use_wallet,
                wallet_amount=wallet_amount,
            ),
            clock=clock,
        )
        return receipt.booking

    return _book
