"""
FastAPI main application for the Book Library API.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.config import config
from api.database import BookDatabaseService, MongoDBManager
from api.errors import (
    BadRequestError, BookAPIError, BookValidationError,
    ConflictError, InternalError, NotFoundError
)
from api.models import (
    APIResponse, BookEnvelope, BookListEnvelope, BookListQuery, BookPayload,
    BulkOperation, BulkOperationEnvelope, BulkOperationRequest, ErrorResponse,
    HealthResponse, SearchEnvelope, SortOrder, StatsEnvelope
)
from api.validation import format_validation_errors, validate_book_payload
from utilities.logger import setup_logging

# Setup logging
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.log_file,
        debug=config.debug
    )
    logger.info("Starting Book Library API", environment=config.environment)

    db_manager = MongoDBManager(
        connection_url=config.mongodb_url,
        database_name=config.mongodb_database,
        collection_name=config.mongodb_collection
    )
    try:
        await db_manager.connect()
        logger.info("Database connection established")
    except Exception as e:
        logger.error("Failed to connect to database", error=str(e))
        raise

    app.state.db_service = db_manager.book_service()

    yield

    logger.info("Shutting down Book Library API")
    app.state.db_service = None
    await db_manager.disconnect()


# Create FastAPI application
app = FastAPI(
    title=config.api_title,
    description=f"""
    {config.api_description}.

    ## Features

    * **Books**: Create, read, update and delete book records
    * **Search**: Case-insensitive substring search on title and author
    * **Pagination**: Offset/limit pagination with sorting
    * **Bulk operations**: Delete many books in one request
    * **Statistics**: Catalog totals and top authors
    """,
    version=config.api_version,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=config.cors_allow_credentials,
    allow_methods=config.cors_allow_methods,
    allow_headers=config.cors_allow_headers,
)


def envelope_response(envelope: APIResponse, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    """Render an envelope as a JSON response."""
    return JSONResponse(status_code=status_code, content=envelope.render())


def get_db_service(request: Request) -> BookDatabaseService:
    """Database service attached to the application at startup."""
    db_service = getattr(request.app.state, "db_service", None)
    if db_service is None:
        raise InternalError("Database service not available")
    return db_service


# Exception handlers
@app.exception_handler(BookAPIError)
async def book_api_error_handler(request: Request, exc: BookAPIError):
    """Render taxonomy errors as unsuccessful envelopes."""
    return envelope_response(
        ErrorResponse.from_error(exc.message, error=exc.error, errors=exc.errors),
        status_code=exc.status_code
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    """Report unparseable bodies and query strings as validation errors."""
    error = BookValidationError(format_validation_errors(exc.errors()))
    return await book_api_error_handler(request, error)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions raised by routing."""
    if exc.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_405_METHOD_NOT_ALLOWED):
        return envelope_response(
            ErrorResponse.from_error("Route not found"),
            status_code=status.HTTP_404_NOT_FOUND
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse.from_error(str(exc.detail)).render(),
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.error("Unhandled exception", error=str(exc), path=request.url.path)
    return envelope_response(
        ErrorResponse.from_error(
            "Internal server error",
            error=str(exc) if config.expose_error_details() else "Something went wrong"
        ),
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
    )


# Health check endpoint
@app.get("/api/health", response_model=HealthResponse, tags=["Health"])
async def health_check(request: Request):
    """Health check endpoint."""
    db_status = "unavailable"
    db_service = getattr(request.app.state, "db_service", None)
    if db_service:
        health_info = await db_service.health_check()
        db_status = health_info.get("status", "unknown")

    health = HealthResponse(
        status="OK",
        message="Book Library API is running",
        timestamp=datetime.now(timezone.utc),
        version=config.api_version,
        database_status=db_status
    )
    return JSONResponse(content=health.model_dump(mode="json", by_alias=True))


# Books endpoints
@app.get("/api/books", response_model=BookListEnvelope, tags=["Books"])
async def get_books(
    page: int = 1,
    limit: int = 50,
    search: Optional[str] = None,
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query(SortOrder.DESC.value, alias="sortOrder"),
    db_service: BookDatabaseService = Depends(get_db_service)
):
    """
    Get books with search, sorting, and pagination.

    - **page**: Page number (starts from 1)
    - **limit**: Books per page
    - **search**: Case-insensitive substring matched against title and author
    - **sortBy**: Sort field (default createdAt)
    - **sortOrder**: Sort order (asc, desc)
    """
    try:
        query = BookListQuery(
            page=page,
            limit=limit,
            search=search,
            sort_by=sort_by,
            sort_order=sort_order
        )
        books, pagination = await db_service.get_books(query)

        return envelope_response(
            BookListEnvelope(success=True, data=books, pagination=pagination)
        )

    except BookAPIError:
        raise
    except Exception as e:
        logger.error("Failed to fetch books", error=str(e))
        raise InternalError("Failed to fetch books", error=str(e))


@app.get("/api/books/search", response_model=SearchEnvelope, tags=["Books"])
async def search_books(
    q: Optional[str] = None,
    limit: int = 10,
    db_service: BookDatabaseService = Depends(get_db_service)
):
    """
    Search books by title or author.

    - **q**: Text to look for (required)
    - **limit**: Maximum number of matches (default 10)
    """
    if not q:
        raise BadRequestError("Search query is required")

    try:
        books = await db_service.search_books(q, limit)

        # total counts the returned matches only, not every match in the store
        return envelope_response(
            SearchEnvelope(success=True, data=books, total=len(books))
        )

    except Exception as e:
        logger.error("Failed to search books", q=q, error=str(e))
        raise InternalError("Failed to search books", error=str(e))


@app.post("/api/books/bulk", response_model=BulkOperationEnvelope, tags=["Books"])
async def bulk_operation(
    payload: Optional[BulkOperationRequest] = None,
    db_service: BookDatabaseService = Depends(get_db_service)
):
    """
    Apply one operation to many books.

    - **operation**: Operation name (only `delete` is supported)
    - **bookIds**: Identifiers of the books to apply it to
    """
    payload = payload or BulkOperationRequest()
    if not payload.operation or not isinstance(payload.book_ids, list):
        raise BadRequestError("Operation and bookIds array are required")

    if payload.operation != BulkOperation.DELETE.value:
        raise BadRequestError("Invalid operation")

    try:
        deleted_count = await db_service.bulk_delete(payload.book_ids)
        logger.info("Bulk delete completed", requested=len(payload.book_ids), deleted=deleted_count)

        return envelope_response(
            BulkOperationEnvelope(
                success=True,
                message=f"{deleted_count} books deleted successfully",
                deleted_count=deleted_count
            )
        )

    except Exception as e:
        logger.error("Failed to perform bulk operation", error=str(e))
        raise InternalError("Failed to perform bulk operation", error=str(e))


@app.get("/api/books/{book_id}", response_model=BookEnvelope, tags=["Books"])
async def get_book(
    book_id: str,
    db_service: BookDatabaseService = Depends(get_db_service)
):
    """
    Get a single book by ID.

    - **book_id**: Book identifier (MongoDB ObjectId)
    """
    try:
        book = await db_service.get_book_by_id(book_id)

        if not book:
            raise NotFoundError("Book not found")

        return envelope_response(BookEnvelope(success=True, data=book))

    except BookAPIError:
        raise
    except Exception as e:
        logger.error("Failed to fetch book", book_id=book_id, error=str(e))
        raise InternalError("Failed to fetch book", error=str(e))


@app.post(
    "/api/books",
    response_model=BookEnvelope,
    status_code=status.HTTP_201_CREATED,
    tags=["Books"]
)
async def create_book(
    payload: Optional[BookPayload] = None,
    db_service: BookDatabaseService = Depends(get_db_service)
):
    """
    Create a new book.

    Title and author are required; a book whose title and author match an
    existing one (ignoring case) is rejected.
    """
    try:
        fields = validate_book_payload(payload or BookPayload(), config.default_image)

        if await db_service.find_duplicate(fields.title, fields.author):
            raise ConflictError("A book with this title and author already exists")

        book = await db_service.create_book(fields)
        logger.info("Book created", book_id=book.id, title=book.title)

        return envelope_response(
            BookEnvelope(success=True, message="Book created successfully", data=book),
            status_code=status.HTTP_201_CREATED
        )

    except BookAPIError:
        raise
    except Exception as e:
        logger.error("Failed to create book", error=str(e))
        raise InternalError("Failed to create book", error=str(e))


@app.put("/api/books/{book_id}", response_model=BookEnvelope, tags=["Books"])
async def update_book(
    book_id: str,
    payload: Optional[BookPayload] = None,
    db_service: BookDatabaseService = Depends(get_db_service)
):
    """
    Replace the title, author, published year and image of a book.

    Omitted optional fields are reset: publishedYear to null, image to the
    placeholder.
    """
    try:
        fields = validate_book_payload(payload or BookPayload(), config.default_image)

        book = await db_service.update_book(book_id, fields)
        if not book:
            raise NotFoundError("Book not found")

        logger.info("Book updated", book_id=book.id)
        return envelope_response(
            BookEnvelope(success=True, message="Book updated successfully", data=book)
        )

    except BookAPIError:
        raise
    except Exception as e:
        logger.error("Failed to update book", book_id=book_id, error=str(e))
        raise InternalError("Failed to update book", error=str(e))


@app.delete("/api/books/{book_id}", response_model=BookEnvelope, tags=["Books"])
async def delete_book(
    book_id: str,
    db_service: BookDatabaseService = Depends(get_db_service)
):
    """Delete a book and return it."""
    try:
        book = await db_service.delete_book(book_id)
        if not book:
            raise NotFoundError("Book not found")

        logger.info("Book deleted", book_id=book.id)
        return envelope_response(
            BookEnvelope(success=True, message="Book deleted successfully", data=book)
        )

    except BookAPIError:
        raise
    except Exception as e:
        logger.error("Failed to delete book", book_id=book_id, error=str(e))
        raise InternalError("Failed to delete book", error=str(e))


# Statistics endpoint
@app.get("/api/stats", response_model=StatsEnvelope, tags=["Statistics"])
async def get_stats(db_service: BookDatabaseService = Depends(get_db_service)):
    """Get catalog statistics."""
    try:
        stats = await db_service.get_stats()
        return envelope_response(StatsEnvelope(success=True, data=stats))

    except Exception as e:
        logger.error("Failed to fetch statistics", error=str(e))
        raise InternalError("Failed to fetch statistics", error=str(e))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level=config.log_level.lower()
    )
