from typing import Annotated, List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.errors import server_error
from app.core.exceptions import CatalogError
from app.db.session import get_db
from app.schemas.borrow import BorrowCreate, BorrowResponse, BorrowSummaryItem
from app.schemas.common import MessageResponse
from app.services.borrow import borrow_book, get_borrow_summary, return_book

router = APIRouter(prefix="/borrow", tags=["Borrow"])


@router.post(
    "",
    response_model=BorrowResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Borrow a book",
    description="Lend copies of a book until the due date. The book's copies are decremented.",
    responses={
        201: {"description": "Borrow record created"},
        400: {"description": "Validation error or not enough copies"},
        404: {"description": "Book not found"},
        500: {"description": "Store failure"},
    },
)
async def borrow_book_endpoint(
    data: BorrowCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    try:
        borrow = await borrow_book(
            db, book_id=data.book_id, quantity=data.quantity, due_date=data.due_date
        )
    except CatalogError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except SQLAlchemyError as e:
        raise server_error("Error borrowing book", e)
    return borrow


@router.get(
    "/summary",
    response_model=List[BorrowSummaryItem],
    summary="Borrow summary",
    description="Total quantity borrowed per book. Books that are not borrowed are omitted.",
    responses={
        200: {"description": "One row per borrowed book"},
        500: {"description": "Store failure"},
    },
)
async def borrow_summary(db: Annotated[AsyncSession, Depends(get_db)]):
    try:
        return await get_borrow_summary(db)
    except SQLAlchemyError as e:
        raise server_error("Error fetching borrow summary", e)


@router.delete(
    "/{borrow_id}",
    response_model=MessageResponse,
    summary="Return a book",
    description="Return a borrow: its copies go back to the book and the record is removed.",
    responses={
        200: {"description": "Book returned successfully"},
        404: {"description": "Borrow record not found"},
        500: {"description": "Store failure"},
    },
)
async def return_book_endpoint(
    borrow_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    try:
        await return_book(db, borrow_id)
    except CatalogError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except SQLAlchemyError as e:
        raise server_error("Error returning book", e)
    return MessageResponse(message="Book returned successfully")
