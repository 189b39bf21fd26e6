"""
Tourbook Backend — Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Environment variables are set BEFORE tourbook is imported, so the
       module-level engine points at a throwaway SQLite file.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── db_tables:      create_all / drop_all around a test
    ├── public_dir:     temporary public/ with css/style.css
    ├── make_client:    factory for AsyncClient(create_app(Settings(**overrides)))
    ├── test_client:    default-settings client with tables in place
    ├── mock_db_session: AsyncMock session for service unit tests
    ├── tour_payload / user_payload: valid request bodies
    └── create_tour / create_user: POST through test_client, return the data
"""

import os
import tempfile

# Override settings for testing BEFORE any tourbook imports
_TEST_DIR = tempfile.mkdtemp(prefix="tourbook_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/test.db"
os.environ["NODE_ENV"] = "test"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["PUBLIC_DIR"] = os.path.join(_TEST_DIR, "public")

from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

import tourbook.models  # noqa: E402,F401
from tourbook.config import Settings  # noqa: E402
from tourbook.database import Base, engine  # noqa: E402
from tourbook.main import create_app  # noqa: E402


@pytest_asyncio.fixture
async def db_tables():
    """Fresh schema for one test."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def public_dir(tmp_path):
    css = tmp_path / "css"
    css.mkdir()
    (css / "style.css").write_text("body { color: #777; }\n")
    return tmp_path


@pytest.fixture
def make_client(public_dir):
    """
    Build a client for an app with custom settings.

    Usage:
        async with make_client(node_env="development") as client:
            response = await client.get("/nope")
    """
    def _make(**overrides) -> AsyncClient:
        overrides.setdefault("public_dir", str(public_dir))
        app = create_app(Settings(**overrides))
        return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")

    return _make


@pytest_asyncio.fixture
async def test_client(db_tables, make_client):
    async with make_client() as client:
        yield client


@pytest.fixture
def mock_db_session():
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def tour_payload():
    return {
        "name": "The Forest Hiker",
        "duration": 5,
        "maxGroupSize": 25,
        "difficulty": "easy",
        "price": 397,
        "summary": "Breathtaking hike through the Canadian Banff National Park",
        "imageCover": "tour-1-cover.jpg",
        "startDates": ["2025-04-25T09:00:00Z", "2025-07-20T09:00:00Z"],
    }


@pytest.fixture
def user_payload():
    return {"name": "Laura Wilson", "email": "Laura@Example.com"}


@pytest.fixture
def create_tour(test_client, tour_payload):
    """POST a tour (payload overridable per field) and return its data."""
    async def _create(**changes) -> dict:
        response = await test_client.post("/api/v1/tours", json={**tour_payload, **changes})
        assert response.status_code == 201, response.text
        return response.json()["data"]["data"]

    return _create


@pytest.fixture
def create_user(test_client):
    async def _create(name: str = "Laura Wilson", email: str = "laura@example.com") -> dict:
        response = await test_client.post("/api/v1/users", json={"name": name, "email": email})
        assert response.status_code == 201, response.text
        return response.json()["data"]["data"]

    return _create
