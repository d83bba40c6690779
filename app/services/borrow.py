from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    BookNotFoundError,
    BorrowNotFoundError,
    InsufficientCopiesError,
)
from app.core.logging import get_logger, log_fields
from app.db.models import Book, Borrow
from app.services.book import get_book_by_id, is_valid_id

logger = get_logger("services.borrow")


async def _adjust_copies(
    db: AsyncSession, book_id: str, delta: int, minimum: Optional[int] = None
) -> bool:
    """Apply ``copies += delta`` in the store.

    With ``minimum`` set the update only matches while ``copies >= minimum``,
    so concurrent borrows cannot both take the last copies. Returns whether a
    row was changed.
    """
    stmt = update(Book).where(Book.id == book_id)
    if minimum is not None:
        stmt = stmt.where(Book.copies >= minimum)
    stmt = stmt.values(**Book.adjust_copies_values(delta)).execution_options(
        synchronize_session=False
    )
    result = await db.execute(stmt)
    return result.rowcount > 0


async def borrow_book(
    db: AsyncSession, book_id: str, quantity: int, due_date: datetime
) -> Borrow:
    """Lend ``quantity`` copies of a book.

    The copies decrement and the borrow record are written in the caller's
    transaction.
    """
    book = await get_book_by_id(db, book_id)
    if not book:
        raise BookNotFoundError()

    if quantity > book.copies:
        logger.warning(
            "Borrow rejected: not enough copies",
            extra=log_fields(book_id=book.id, requested=quantity, available=book.copies),
        )
        raise InsufficientCopiesError(book.copies)

    if not await _adjust_copies(db, book.id, -quantity, minimum=quantity):
        # Another borrow took the copies after our read
        await db.refresh(book)
        logger.warning(
            "Borrow rejected: copies taken by a concurrent borrow",
            extra=log_fields(book_id=book.id, requested=quantity, available=book.copies),
        )
        raise InsufficientCopiesError(book.copies)

    borrow = Borrow(book_id=book.id, quantity=quantity, due_date=due_date)
    db.add(borrow)
    await db.flush()
    await db.refresh(borrow)
    await db.refresh(book)

    logger.info(
        "Book borrowed",
        extra=log_fields(
            borrow_id=borrow.id, book_id=book.id, quantity=quantity, copies_left=book.copies
        ),
    )
    return borrow


async def get_borrow_by_id(db: AsyncSession, borrow_id: str) -> Optional[Borrow]:
    """Get a single borrow record by ID."""
    if not is_valid_id(borrow_id):
        return None
    result = await db.execute(select(Borrow).where(Borrow.id == borrow_id))
    return result.scalar_one_or_none()


async def return_book(db: AsyncSession, borrow_id: str) -> None:
    """Put a borrow's copies back on the shelf and remove the record."""
    borrow = await get_borrow_by_id(db, borrow_id)
    if not borrow:
        raise BorrowNotFoundError()

    restocked = await _adjust_copies(db, borrow.book_id, borrow.quantity)
    if not restocked:
        logger.warning(
            "Returned borrow references a missing book",
            extra=log_fields(borrow_id=borrow_id, book_id=borrow.book_id),
        )

    await db.delete(borrow)
    await db.flush()

    # Loaded Book instances may hold the pre-return count
    book = await db.get(Book, borrow.book_id, populate_existing=True)

    logger.info(
        "Book returned",
        extra=log_fields(
            borrow_id=borrow_id,
            book_id=borrow.book_id,
            quantity=borrow.quantity,
            copies_now=book.copies if book else None,
        ),
    )


async def get_borrow_summary(db: AsyncSession) -> List[Dict]:
    """Total borrowed quantity per book, for books with at least one borrow."""
    total_quantity = func.sum(Borrow.quantity).label("total_quantity")
    query = (
        select(Borrow.book_id, Book.title, Book.isbn, total_quantity)
        .join(Book, Book.id == Borrow.book_id)
        .group_by(Borrow.book_id, Book.title, Book.isbn)
        .order_by(total_quantity.desc(), Book.title)
    )
    result = await db.execute(query)
    return [
        {
            "book_id": row.book_id,
            "title": row.title,
            "isbn": row.isbn,
            "total_quantity": int(row.total_quantity),
        }
        for row in result.all()
    ]
