import math
from typing import Optional, List, Tuple
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import DuplicateISBNError
from app.core.logging import get_logger, log_fields
from app.db.models import Book

logger = get_logger("services.book")


def is_valid_id(value: str) -> bool:
    """Record ids are UUID strings; anything else cannot match a row."""
    try:
        UUID(str(value))
    except ValueError:
        return False
    return True


def _is_isbn_conflict(error: IntegrityError) -> bool:
    return "isbn" in str(error.orig).lower()


async def _flush_book(db: AsyncSession, isbn: str) -> None:
    """Flush pending book changes, turning an ISBN collision into DuplicateISBNError.

    A failed flush expires every instance in the session, so callers pass the
    ISBN they are writing rather than the instance.
    """
    try:
        await db.flush()
    except IntegrityError as e:
        if _is_isbn_conflict(e):
            logger.warning("Duplicate ISBN rejected", extra=log_fields(isbn=isbn))
            raise DuplicateISBNError() from e
        raise


async def create_book(db: AsyncSession, data: dict) -> Book:
    """Create a new book. Raises DuplicateISBNError on an ISBN collision."""
    book = Book(**data)
    db.add(book)
    await _flush_book(db, data.get("isbn"))
    await db.refresh(book)

    logger.info(
        "Book created",
        extra=log_fields(book_id=book.id, isbn=book.isbn, copies=book.copies),
    )
    return book


async def get_books(
    db: AsyncSession,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[Book], int]:
    """List books newest first, one page at a time."""
    offset = (page - 1) * limit
    query = (
        select(Book)
        .order_by(Book.created_at.desc(), Book.id)
        .offset(offset)
        .limit(limit)
    )

    result = await db.execute(query)
    books = list(result.scalars().all())

    total_result = await db.execute(select(func.count()).select_from(Book))
    total = total_result.scalar()

    return books, total


async def get_book_by_id(db: AsyncSession, book_id: str) -> Optional[Book]:
    """Get a single book by ID."""
    if not is_valid_id(book_id):
        return None
    result = await db.execute(select(Book).where(Book.id == book_id))
    return result.scalar_one_or_none()


async def update_book(db: AsyncSession, book_id: str, data: dict) -> Optional[Book]:
    """Replace a book's fields. Returns None if the book does not exist."""
    book = await get_book_by_id(db, book_id)
    if not book:
        return None

    for key, value in data.items():
        setattr(book, key, value)

    await _flush_book(db, data.get("isbn"))
    await db.refresh(book)

    logger.info(
        "Book updated",
        extra=log_fields(book_id=book_id, copies=book.copies, available=book.available),
    )
    return book


async def delete_book(db: AsyncSession, book_id: str) -> bool:
    """Delete a book. Its borrow records, if any, are left in place."""
    book = await get_book_by_id(db, book_id)
    if not book:
        return False

    await db.delete(book)
    await db.flush()

    logger.info("Book deleted", extra=log_fields(book_id=book_id))
    return True


def calculate_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit > 0 else 0
