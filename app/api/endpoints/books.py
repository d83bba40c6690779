from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.errors import server_error
from app.core.config import settings
from app.core.exceptions import CatalogError
from app.db.session import get_db
from app.schemas.book import BookCreate, BookUpdate, BookResponse, BookListResponse
from app.schemas.common import MessageResponse
from app.services.book import (
    create_book,
    get_books,
    get_book_by_id,
    update_book,
    delete_book,
    calculate_pages,
)

router = APIRouter(prefix="/books", tags=["Books"])


def parse_page_param(value: Optional[str], default: int) -> int:
    """Read a pagination query value; missing, non-numeric or non-positive gives ``default``."""
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


@router.get(
    "",
    response_model=BookListResponse,
    summary="List books",
    description="Retrieve a page of books, most recently created first.",
    responses={
        200: {"description": "Paginated list of books"},
        500: {"description": "Store failure"},
    },
)
async def list_books(
    db: Annotated[AsyncSession, Depends(get_db)],
    page: Optional[str] = Query(None, description="Page number, 1-based. Invalid values fall back to 1."),
    limit: Optional[str] = Query(
        None, description=f"Page size. Invalid values fall back to {settings.DEFAULT_PAGE_SIZE}."
    ),
):
    page = parse_page_param(page, 1)
    limit = parse_page_param(limit, settings.DEFAULT_PAGE_SIZE)
    try:
        books, total = await get_books(db, page=page, limit=limit)
    except SQLAlchemyError as e:
        raise server_error("Error fetching books", e)
    return BookListResponse(
        books=books,
        current_page=page,
        total_pages=calculate_pages(total, limit),
        total_books=total,
    )


@router.post(
    "",
    response_model=BookResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a book",
    description="Add a new book to the catalog. The ISBN must be unique.",
    responses={
        201: {"description": "Book created successfully"},
        400: {"description": "Validation error or duplicate ISBN"},
        500: {"description": "Store failure"},
    },
)
async def create_book_endpoint(
    data: BookCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    try:
        book = await create_book(db, data.model_dump())
    except CatalogError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except SQLAlchemyError as e:
        raise server_error("Error creating book", e)
    return book


@router.get(
    "/{book_id}",
    response_model=BookResponse,
    summary="Get book details",
    description="Retrieve a single book by its ID.",
    responses={
        200: {"description": "Book details"},
        404: {"description": "Book not found"},
        500: {"description": "Store failure"},
    },
)
async def get_book(
    book_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    try:
        book = await get_book_by_id(db, book_id)
    except SQLAlchemyError as e:
        raise server_error("Error fetching book", e)
    if not book:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Book not found")
    return book


@router.put(
    "/{book_id}",
    response_model=BookResponse,
    summary="Update a book",
    description="Replace all fields of a book. Availability is recomputed from copies.",
    responses={
        200: {"description": "Book updated successfully"},
        400: {"description": "Validation error or duplicate ISBN"},
        404: {"description": "Book not found"},
        500: {"description": "Store failure"},
    },
)
async def update_book_endpoint(
    book_id: str,
    data: BookUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    try:
        book = await update_book(db, book_id, data.model_dump())
    except CatalogError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except SQLAlchemyError as e:
        raise server_error("Error updating book", e)
    if not book:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Book not found")
    return book


@router.delete(
    "/{book_id}",
    response_model=MessageResponse,
    summary="Delete a book",
    description="Remove a book from the catalog. Outstanding borrow records are kept.",
    responses={
        200: {"description": "Book deleted successfully"},
        404: {"description": "Book not found"},
        500: {"description": "Store failure"},
    },
)
async def delete_book_endpoint(
    book_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    try:
        deleted = await delete_book(db, book_id)
    except SQLAlchemyError as e:
        raise server_error("Error deleting book", e)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Book not found")
    return MessageResponse(message="Book deleted successfully")
