#!/usr/bin/env python3
"""
Pytest configuration and shared fixtures.

Every test gets its own in-memory SQLite database (aiosqlite + StaticPool),
a FastAPI app built from explicit test settings, and helpers to mint
bearer tokens for admin and regular principals.
"""

import os
import sys
from datetime import date, datetime, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Add the project root to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_JWT_SECRET = "test-jwt-secret"

# Set before anything imports app.main (it builds a module-level app)
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("DATABASE_URL", TEST_DATABASE_URL)
os.environ.setdefault("JWT_SECRET", TEST_JWT_SECRET)

from app.api.auth import TokenVerifier
from app.core.business import Role
from app.core.config import Settings
from app.crud.therapy import create_therapy
from app.crud.user import create_user
from app.db.base import init_db
from app.main import create_app
from app.schemas.auth import Principal
from app.schemas.therapy import TherapyCreate

SLOT_DAY = date(2030, 5, 6)


def at(hour: int, minute: int = 0, day: date = SLOT_DAY) -> datetime:
    """UTC timestamp on ``day``."""
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=timezone.utc)


@pytest.fixture
def test_settings():
    return Settings(
        APP_ENV="testing",
        DATABASE_URL=TEST_DATABASE_URL,
        JWT_SECRET=TEST_JWT_SECRET,
        _env_file=None,
    )


@pytest_asyncio.fixture
async def app(test_settings):
    application = create_app(test_settings)
    await init_db(application.state.engine)
    yield application
    await application.state.engine.dispose()


@pytest_asyncio.fixture
async def db_session(app):
    async with app.state.session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def verifier():
    return TokenVerifier(TEST_JWT_SECRET)


@pytest.fixture
def auth_header(verifier):
    """Build an Authorization header for a principal id/role."""
    def _make(principal_id: str, role: Role = Role.USER) -> dict:
        token = verifier.sign(Principal(id=principal_id, role=role))
        return {"Authorization": f"Bearer {token}"}
    return _make


@pytest_asyncio.fixture
async def seeded(app):
    """Therapy plus admin and two regular users, committed in their own session."""
    async with app.state.session_factory() as session:
        therapy = await create_therapy(session, TherapyCreate(title="Reiki", description="Energy work"))
        other_therapy = await create_therapy(session, TherapyCreate(title="Massage"))
        admin = await create_user(session, name="Admin", email="admin@example.com", role=Role.ADMIN)
        alice = await create_user(session, name="Alice", email="alice@example.com")
        bob = await create_user(session, name="Bob", email="bob@example.com")
    return {
        "therapy_id": therapy.id,
        "other_therapy_id": other_therapy.id,
        "admin_id": admin.id,
        "alice_id": alice.id,
        "bob_id": bob.id,
    }


@pytest.fixture
def slot_payload(seeded):
    """camelCase request body for a 10:00-11:00 slot."""
    def _make(start: datetime = None, end: datetime = None, **extra) -> dict:
        start = start or at(10)
        end = end or at(11)
        body = {
            "date": start.date().isoformat(),
            "startTime": start.isoformat(),
            "endTime": end.isoformat(),
            "therapyId": seeded["therapy_id"],
        }
        body.update(extra)
        return body
    return _make


# Pytest configuration hooks
def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line("markers", "unit: Pure unit tests with no external dependencies")
    config.addinivalue_line("markers", "integration: Tests that hit the database or the HTTP app")
