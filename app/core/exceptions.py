"""Domain errors raised by the service layer.

Endpoints translate these into HTTP responses; each class carries the status
code it maps to.
"""


class CatalogError(Exception):
    """Base class for catalog domain errors."""

    status_code: int = 400
    default_message: str = "Catalog error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class BookNotFoundError(CatalogError):
    status_code = 404
    default_message = "Book not found"


class BorrowNotFoundError(CatalogError):
    status_code = 404
    default_message = "Borrow record not found"


class DuplicateISBNError(CatalogError):
    """A book with the same ISBN is already stored."""

    default_message = "ISBN already exists"


class InsufficientCopiesError(CatalogError):
    """Requested quantity exceeds the copies on the shelf."""

    def __init__(self, available: int):
        self.available = available
        super().__init__(
            f"Not enough copies available. Only {available} copies left."
        )
