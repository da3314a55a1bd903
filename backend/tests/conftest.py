"""
Pytest fixtures for test database, sessions and HTTP client.

Each test gets its own SQLite file database. A file (not :memory:) is used
so separate sessions get separate connections and really contend for
locks, which the concurrency tests rely on.
"""

import os
import tempfile
from pathlib import Path
from typing import AsyncGenerator

os.environ.setdefault(
    "DATABASE_URL",
    f"sqlite+aiosqlite:///{Path(tempfile.gettempdir()) / 'auditorium_app.db'}",
)
os.environ["REDIS_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "testing"

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from auditorium.main import app
from auditorium.db.base import Base
from auditorium.db.session import build_session_factory, get_db
from auditorium.models.booking import Booking, BookingStatus
from auditorium.models.attachment import Attachment
from auditorium.services.seat_service import initialize_inventory

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'auditorium_test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(test_engine)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose requests each get a fresh session on the test database."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def seeded(session_factory) -> int:
    """Rows A and B, 5 seats each."""
    async with session_factory() as session:
        return await initialize_inventory(session, ["A", "B"], 5)


@pytest.fixture
def make_booking(session_factory):
    """Insert a pending booking requesting `labels`; returns its id."""

    async def _make(labels: list[str], email: str = "guest@example.com") -> int:
        async with session_factory() as session:
            attachment = Attachment(
                filename="proof.png",
                content_type="image/png",
                size=len(PNG_BYTES),
                data=PNG_BYTES,
            )
            session.add(attachment)
            await session.flush()
            booking = Booking(
                email=email,
                phone="9876543210",
                amount=500,
                requested_seat_labels=labels,
                attachment_id=attachment.id,
                status=BookingStatus.PENDING,
            )
            session.add(booking)
            await session.commit()
            return booking.id

    return _make


@pytest.fixture
def submit(client):
    """POST a booking over HTTP with a PNG screenshot; returns the new booking id."""

    async def _submit(seats: str, **overrides) -> int:
        form = {"email": "guest@example.com", "phone": "9876543210", "amount": "500", "seats": seats}
        form.update(overrides)
        response = await client.post(
            "/api/bookings",
            data=form,
            files={"screenshot": ("proof.png", PNG_BYTES, "image/png")},
        )
        assert response.status_code == 201, response.text
        return response.json()["booking_id"]

    return _submit
