"""
Pytest fixtures for test database, client, settings and seeded bookings.

Tables are created before and dropped after every test for isolation. The
default test database is a local SQLite file; point TEST_DATABASE_URL at a
PostgreSQL database to run the suite against the production dialect.
"""

import os

# Must be set before the application modules read their settings
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_guesthouse_app.db")

from datetime import date
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from guesthouse.core.config import Settings, get_settings
from guesthouse.db.base import Base
from guesthouse.db.session import get_db
from guesthouse.main import app
from guesthouse.models.booking import Booking, BookingStatus
from guesthouse.services import booking_store
from guesthouse.services.booking_service import sync_rooms

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite:///./test_guesthouse.db")

test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
TestSessionLocal = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Deterministic settings: 5 rooms, 600 MVR/night, no Telegram, temp upload dir."""
    return Settings(
        _env_file=None,
        ROOM_COUNT=5,
        NIGHTLY_RATE_MVR=600,
        EXTRA_BED_RATE_MVR=100,
        USD_EXCHANGE_RATE=19.50,
        UPLOAD_DIR=str(tmp_path / "uploads"),
        MAX_UPLOAD_BYTES=1024,
        REDIS_ENABLED=False,
        TELEGRAM_BOT_TOKEN=None,
        TELEGRAM_CHAT_ID=None,
        TELEGRAM_EXTRA_CHAT_IDS=[],
        TELEGRAM_WEBHOOK_SECRET=None,
        APP_BASE_URL=None,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(test_settings: Settings) -> AsyncGenerator[AsyncSession, None]:
    """Create tables and rooms, yield session, then drop tables for isolation."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        await sync_rooms(session, test_settings.ROOM_COUNT)
        await session.commit()
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession, test_settings: Settings) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB and settings dependencies."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: test_settings

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def make_booking(
    db: AsyncSession,
    rooms=(2,),
    check_in=date(2025, 12, 24),
    check_out=date(2025, 12, 25),
    status: str = BookingStatus.PENDING,
    extra_beds=(),
    full_name: str = "Ahmed Ali",
) -> Booking:
    nights = (check_out - check_in).days
    booking = await booking_store.create_booking(db, {
        "full_name": full_name,
        "id_number": "A123456",
        "phone_number": "7771234",
        "customer_notes": None,
        "room_numbers": list(rooms),
        "extra_beds": list(extra_beds),
        "check_in_date": check_in,
        "check_out_date": check_out,
        "total_nights": nights,
        "total_mvr": nights * 600 * len(rooms),
        "total_usd": "30.77",
    })
    if status != BookingStatus.PENDING:
        booking.status = status
    await db.commit()
    return booking


@pytest_asyncio.fixture
async def pending_booking(db_session: AsyncSession) -> Booking:
    """Room 2, 2025-12-24 -> 2025-12-25, Pending."""
    return await make_booking(db_session)


@pytest_asyncio.fixture
async def confirmed_booking(db_session: AsyncSession) -> Booking:
    """Room 3, 2026-01-10 -> 2026-01-13, Confirmed."""
    return await make_booking(
        db_session,
        rooms=(3,),
        check_in=date(2026, 1, 10),
        check_out=date(2026, 1, 13),
        status=BookingStatus.CONFIRMED,
    )


def booking_form(**overrides) -> dict:
    """Valid multipart form fields for POST /api/bookings."""
    form = {
        "fullName": "Jo Smith",
        "idNumber": "P998877",
        "phoneNumber": "7654321",
        "customerNotes": "Late arrival",
        "roomNumber": "1",
        "checkInDate": "2025-12-24",
        "checkOutDate": "2025-12-26",
    }
    form.update(overrides)
    return {k: v for k, v in form.items() if v is not None}
