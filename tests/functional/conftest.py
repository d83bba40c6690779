"""
Shared fixtures for functional tests.
Uses httpx.AsyncClient against the real FastAPI app with an in-memory SQLite DB.
"""
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from app.db.session import Database
from app.main import app, rate_limiter


# ─── DB wiring ──────────────────────────────────────────────────

@pytest_asyncio.fixture
async def test_database():
    """An isolated in-memory database attached to the app for one test."""
    database = Database("sqlite+aiosqlite:///:memory:")
    await database.create_all()
    app.state.database = database

    yield database

    del app.state.database
    await database.drop_all()
    await database.dispose()


@pytest_asyncio.fixture
async def client(test_database):
    """Provide an httpx.AsyncClient talking to the app."""
    rate_limiter.reset()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    rate_limiter.reset()


# ─── Data helpers ───────────────────────────────────────────────

@pytest.fixture
def book_payload():
    """Factory for valid book request bodies with a unique ISBN."""
    def _make(**overrides) -> dict:
        data = {
            "title": "The Pragmatic Programmer",
            "author": "Andrew Hunt",
            "genre": "Software",
            "isbn": f"978{uuid4().int % 10**10:010d}",
            "description": "From journeyman to master",
            "copies": 5,
        }
        data.update(overrides)
        return data
    return _make


@pytest_asyncio.fixture
async def create_book(client: AsyncClient, book_payload):
    """Create a book through the API and return its JSON."""
    async def _create(**overrides) -> dict:
        resp = await client.post("/api/books", json=book_payload(**overrides))
        assert resp.status_code == 201, resp.text
        return resp.json()
    return _create


@pytest_asyncio.fixture
async def borrow(client: AsyncClient):
    """Borrow copies through the API and return the response."""
    async def _borrow(book_id: str, quantity: int, due_date: str = "2030-06-30"):
        return await client.post(
            "/api/borrow",
            json={"bookId": book_id, "quantity": quantity, "dueDate": due_date},
        )
    return _borrow
