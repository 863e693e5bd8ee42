"""
Merit Badge Counselor Backend — Test Configuration (conftest.py)
=================================================================

What:  Shared pytest fixtures for the entire test suite.
Why:   Provides reusable test infrastructure (SQLite database, upload
       directory, API client, fake uploads).
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── database:         SQLite file database with tables and a seeded catalog
    ├── db_session:       Session on that database
    ├── mock_db_session:  Mock async session (no database at all)
    ├── upload_gate:      UploadGate writing into a temporary directory
    ├── valid_form_data:  Raw form fields of a complete submission
    └── test_client:      HTTPX AsyncClient bound to a fresh app
"""

import io
import os
import tempfile
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

# Override settings for testing BEFORE any counselor imports
# Why: Prevents tests from using a real database or upload directory
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="counselor_test_")
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from starlette.datastructures import UploadFile

from counselor.database import Database
from counselor.models.application import Application, ApplicationBadge, Certification  # noqa: F401
from counselor.models.merit_badge import MeritBadge
from counselor.services.upload_gate import UploadGate

SEEDED_BADGES = ["Swimming", "Camping", "First Aid", "Archery", "Cooking"]


def make_upload(filename: str, content: bytes = b"%PDF-1.4 card", size: Optional[int] = None) -> UploadFile:
    """In-memory UploadFile; `size` defaults to the real content length."""
    return UploadFile(
        file=io.BytesIO(content),
        filename=filename,
        size=len(content) if size is None else size,
    )


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def database(tmp_path):
    """
    Real SQLite database per test.

    What:    Tables from Base.metadata plus the merit badge catalog.
    Why:     The writer's all-or-nothing behavior can only be checked
             against a database that really rolls back.
    """
    db = Database(url=f"sqlite+aiosqlite:///{tmp_path / 'counselor.db'}")
    await db.create_all()
    async with db.session() as session:
        session.add_all([MeritBadge(name=name) for name in SEEDED_BADGES])
        await session.commit()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def db_session(database):
    async with database.session() as session:
        yield session


@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        mock_db_session.execute.side_effect = OperationalError(...)
        await application_service.get_by_id(mock_db_session, 1)
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    session.add_all = MagicMock()
    return session


# ══════════════════════════════════════════════════════════════════════════
# Upload / Form Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def upload_dir(tmp_path):
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture
def upload_gate(upload_dir):
    """UploadGate with the production limits, writing under tmp_path."""
    return UploadGate(upload_dir=str(upload_dir), max_files=10, max_total_size=31_457_280)


@pytest.fixture
def valid_form_data():
    """Raw multipart text fields of a complete, valid submission."""
    return {
        "firstName": "Jo",
        "lastName": "Scout",
        "age": "30",
        "phone": "555-0100",
        "email": "jo.scout@scouting.org",
        "isVolunteer": "No",
        "purpose": "Become a Counselor",
        "qualifications": "Eagle Scout, lifeguard certified",
        "badgesToCounsel": '["Camping", "First Aid"]',
        "badgesToDrop": "[]",
    }


# ══════════════════════════════════════════════════════════════════════════
# API Client
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(database, upload_gate):
    """
    Provides an async HTTP test client for endpoint testing.

    ASGITransport does not run the lifespan, so the app gets the test
    database and upload gate injected directly.
    """
    from counselor.main import create_app

    app = create_app(database=database, upload_gate=upload_gate)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
