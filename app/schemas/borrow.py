from datetime import datetime

from pydantic import Field, StrictInt

from app.schemas.common import CamelModel


class BorrowCreate(CamelModel):
    book_id: str = Field(..., min_length=1)
    quantity: StrictInt = Field(..., ge=1)
    due_date: datetime

    model_config = {**CamelModel.model_config, "str_strip_whitespace": True}


class BorrowResponse(CamelModel):
    id: str
    book_id: str
    quantity: int
    due_date: datetime
    created_at: datetime
    updated_at: datetime

    model_config = {**CamelModel.model_config, "from_attributes": True}


class BorrowSummaryItem(CamelModel):
    book_id: str
    title: str
    isbn: str
    total_quantity: int
