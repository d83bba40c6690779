from typing import Any, Dict, List, Sequence

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

# Client-facing message per field, keyed by the JSON field name.
FIELD_MESSAGES: Dict[str, str] = {
    "title": "Title is required",
    "author": "Author is required",
    "genre": "Genre is required",
    "isbn": "ISBN is required",
    "description": "Description is required",
    "copies": "Copies must be a non-negative integer",
    "bookId": "Book ID is required",
    "quantity": "Quantity must be at least 1",
    "dueDate": "Due date must be a valid date",
}


class CamelModel(BaseModel):
    """Base schema exposing camelCase JSON names."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
    }


class MessageResponse(BaseModel):
    message: str


class FieldError(BaseModel):
    field: str
    message: str


def format_validation_errors(errors: Sequence[Dict[str, Any]]) -> List[Dict[str, str]]:
    """Collapse pydantic error dicts into one ``{field, message}`` pair per field."""
    formatted: List[Dict[str, str]] = []
    seen = set()
    for error in errors:
        loc = [part for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field = str(loc[0]) if loc else "body"
        if field in seen:
            continue
        seen.add(field)
        if field == "body":
            message = "Request body is required"
        else:
            message = FIELD_MESSAGES.get(field, error.get("msg", "Invalid value"))
        formatted.append(FieldError(field=field, message=message).model_dump())
    return formatted
