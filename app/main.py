import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings
from app.core.logging import setup_logging, get_logger, log_fields, request_id_ctx
from app.core.rate_limit import SlidingWindowRateLimiter
from app.db.session import Database
from app.schemas.common import MessageResponse, format_validation_errors

logger = get_logger("app.main")

rate_limiter = SlidingWindowRateLimiter(
    max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
    window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: acquire the database on startup, release it on shutdown."""
    setup_logging()
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    # A database already attached (e.g. by tests) is used as is
    database = getattr(app.state, "database", None)
    owns_database = database is None
    if owns_database:
        database = Database(settings.DATABASE_URL, echo=settings.DEBUG)
        app.state.database = database

    await database.create_all()

    yield

    if owns_database:
        await database.dispose()
        del app.state.database
    logger.info("Application shutdown complete")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=(
        "## Library Catalog API\n\n"
        "Manage the book catalog and lend copies out:\n\n"
        "- **Books** – CRUD with pagination; ISBNs are unique and availability "
        "follows the number of copies on the shelf\n"
        "- **Borrow** – borrow and return copies, and see how many of each book are out\n\n"
        "Requests are rate limited per client address."
    ),
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {
            "name": "Health",
            "description": "Application health checks",
        },
        {
            "name": "Books",
            "description": "Book catalog management",
        },
        {
            "name": "Borrow",
            "description": "Borrow and return copies, borrow summary",
        },
    ],
    license_info={
        "name": "MIT",
    },
    servers=[
        {"url": f"http://localhost:{settings.PORT}", "description": "Local development"},
    ],
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def rate_limit_middleware(request: Request, call_next):
    if not settings.RATE_LIMIT_ENABLED:
        return await call_next(request)

    client = request.client.host if request.client else "unknown"
    allowed, remaining = rate_limiter.hit(client)
    if not allowed:
        retry_after = rate_limiter.retry_after(client)
        logger.warning("Rate limit exceeded", extra=log_fields(client=client))
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={"message": "Too many requests, please try again later."},
            headers={
                "Retry-After": str(int(retry_after) + 1),
                "X-RateLimit-Limit": str(rate_limiter.max_requests),
                "X-RateLimit-Remaining": "0",
            },
        )

    response = await call_next(request)
    response.headers["X-RateLimit-Limit"] = str(rate_limiter.max_requests)
    response.headers["X-RateLimit-Remaining"] = str(remaining)
    return response


# Request ID and timing middleware
@app.middleware("http")
async def request_middleware(request: Request, call_next):
    req_id = str(uuid.uuid4())[:8]
    request_id_ctx.set(req_id)

    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time

    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code}",
        extra=log_fields(
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round(duration * 1000, 1),
        ),
    )

    response.headers["X-Request-ID"] = req_id
    return response


# ─── Error responses ────────────────────────────────────────────


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED or (
        exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found"
    ):
        # Raised by the router itself: no route for this method and path
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"message": "Route not found"},
        )

    content = exc.detail if isinstance(exc.detail, dict) else {"message": exc.detail}
    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = format_validation_errors(exc.errors())
    logger.info(
        "Validation failed",
        extra=log_fields(path=request.url.path, fields=[e["field"] for e in errors]),
    )
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"errors": errors})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Something went wrong", "error": str(exc)},
    )


# Health check
@app.get(
    "/api/health",
    response_model=MessageResponse,
    tags=["Health"],
    summary="Health check",
    description="Returns a fixed message while the server is up.",
)
async def health_check():
    return MessageResponse(message="Server is running")


# Include routers
from app.api.endpoints.books import router as books_router
from app.api.endpoints.borrow import router as borrow_router

app.include_router(books_router, prefix="/api")
app.include_router(borrow_router, prefix="/api")
