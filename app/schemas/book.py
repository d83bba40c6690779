from datetime import datetime
from typing import List

from pydantic import Field, StrictInt, field_validator

from app.schemas.common import CamelModel


class BookCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    author: str = Field(..., min_length=1, max_length=255)
    genre: str = Field(..., min_length=1, max_length=100)
    isbn: str = Field(..., min_length=1, max_length=32)
    description: str = Field(..., min_length=1)
    copies: StrictInt = Field(..., ge=0)

    @field_validator("title", "author", "genre", "isbn", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value

    # Stored as sent, but must contain more than whitespace
    @field_validator("description")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Description is required")
        return value


# PUT replaces the whole document, so it is validated like a create.
BookUpdate = BookCreate


class BookResponse(CamelModel):
    id: str
    title: str
    author: str
    genre: str
    isbn: str
    description: str
    copies: int
    available: bool
    created_at: datetime
    updated_at: datetime

    model_config = {**CamelModel.model_config, "from_attributes": True}


class BookListResponse(CamelModel):
    books: List[BookResponse]
    current_page: int
    total_pages: int
    total_books: int
