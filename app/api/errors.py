from fastapi import HTTPException, status

from app.core.logging import get_logger, log_fields

logger = get_logger("api.errors")


def server_error(message: str, error: Exception) -> HTTPException:
    """Log a store failure and wrap it as a 500 echoing the raw error."""
    logger.error(message, exc_info=error, extra=log_fields(error=str(error)))
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"message": message, "error": str(error)},
    )
