"""
Shared fixtures for unit tests.
Uses an in-memory SQLite database for fast isolated testing.
"""
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import Book, Borrow
from app.db.session import Database


@pytest_asyncio.fixture
async def database():
    """A fresh in-memory database with all tables created."""
    db = Database("sqlite+aiosqlite:///:memory:")
    await db.create_all()

    yield db

    await db.drop_all()
    await db.dispose()


@pytest_asyncio.fixture
async def db_session(database) -> AsyncSession:
    """Provide a transactional database session for each test."""
    async with database.session_factory() as session:
        yield session
        await session.rollback()


# ─── Helper factories ───────────────────────────────────────────


@pytest.fixture
def make_book():
    """Factory fixture to create Book instances."""
    def _make(
        title: str = "Test Book",
        author: str = "Test Author",
        genre: str = "Fiction",
        isbn: str = None,
        description: str = "A test book",
        copies: int = 5,
        created_at: datetime = None,
    ) -> Book:
        book = Book(
            id=str(uuid4()),
            title=title,
            author=author,
            genre=genre,
            isbn=isbn or f"978{uuid4().int % 10**10:010d}",
            description=description,
            copies=copies,
        )
        if created_at is not None:
            book.created_at = created_at
        return book
    return _make


@pytest.fixture
def make_borrow():
    """Factory fixture to create Borrow instances."""
    def _make(
        book_id: str = None,
        quantity: int = 1,
        due_date: datetime = None,
    ) -> Borrow:
        return Borrow(
            id=str(uuid4()),
            book_id=book_id or str(uuid4()),
            quantity=quantity,
            due_date=due_date or datetime.now(timezone.utc) + timedelta(days=14),
        )
    return _make
