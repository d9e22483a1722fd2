"""
API models and schemas for the FastAPI application.

Request structs mirror the JSON bodies and query strings clients send;
response models carry camelCase aliases so the wire format matches the
stored documents.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class SortOrder(str, Enum):
    """Sort order options."""
    ASC = "asc"
    DESC = "desc"


class BulkOperation(str, Enum):
    """Supported bulk operations."""
    DELETE = "delete"


class BookPayload(BaseModel):
    """Body of create and update requests, before validation."""
    title: Optional[str] = Field(None, description="Book title")
    author: Optional[str] = Field(None, description="Author name")
    published_year: Optional[int] = Field(None, alias="publishedYear", description="Year of publication")
    image: Optional[str] = Field(None, description="Cover image path or URL")

    model_config = {"populate_by_name": True}


class BulkOperationRequest(BaseModel):
    """Body of a bulk operation request."""
    operation: Optional[str] = Field(None, description="Operation to apply (only 'delete')")
    book_ids: Optional[Any] = Field(None, alias="bookIds", description="Identifiers to apply it to")

    model_config = {"populate_by_name": True}


class BookListQuery(BaseModel):
    """Query parameters for book listing."""
    page: int = Field(1, description="Page number")
    limit: int = Field(50, description="Items per page")
    search: Optional[str] = Field(None, description="Substring matched against title and author")
    sort_by: str = Field("createdAt", description="Sort field")
    sort_order: str = Field(SortOrder.DESC.value, description="Sort order")


class BookResponse(BaseModel):
    """Book record as returned by the API."""
    id: str = Field(..., description="Unique book identifier")
    title: str = Field(..., description="Book title")
    author: str = Field(..., description="Author name")
    published_year: Optional[int] = Field(None, alias="publishedYear", description="Year of publication")
    image: str = Field(..., description="Cover image path or URL")
    created_at: Optional[datetime] = Field(None, alias="createdAt", description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt", description="Last update timestamp")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "BookResponse":
        """Build a response model from a raw MongoDB document."""
        return cls(
            id=str(document["_id"]),
            title=document["title"],
            author=document["author"],
            published_year=document.get("publishedYear"),
            image=document.get("image"),
            created_at=document.get("createdAt"),
            updated_at=document.get("updatedAt")
        )


class PaginationInfo(BaseModel):
    """Pagination metadata for book listings."""
    current_page: int = Field(..., alias="currentPage")
    total_pages: int = Field(..., alias="totalPages")
    total_books: int = Field(..., alias="totalBooks")
    has_next_page: bool = Field(..., alias="hasNextPage")
    has_prev_page: bool = Field(..., alias="hasPrevPage")

    model_config = {"populate_by_name": True}


class TopAuthor(BaseModel):
    """Author with the number of books they have in the catalog."""
    author: Optional[str] = Field(None, description="Author name")
    count: int = Field(..., description="Number of books")


class BookStats(BaseModel):
    """Aggregate catalog statistics."""
    total_books: int = Field(..., alias="totalBooks")
    books_this_year: int = Field(..., alias="booksThisYear")
    books_this_month: int = Field(..., alias="booksThisMonth")
    top_authors: List[TopAuthor] = Field(default_factory=list, alias="topAuthors")

    model_config = {"populate_by_name": True}


class APIResponse(BaseModel):
    """
    Uniform response envelope.

    Only fields that were explicitly set are rendered, so a ``None`` that was
    set on purpose (``publishedYear: null``) survives while unused envelope
    keys stay out of the payload.
    """
    success: bool = Field(..., description="Whether the operation succeeded")
    message: Optional[str] = Field(None, description="Human-readable outcome")
    data: Optional[Any] = Field(None, description="Operation result")
    error: Optional[str] = Field(None, description="Diagnostic error message")
    errors: Optional[List[str]] = Field(None, description="Field validation messages")

    model_config = {"populate_by_name": True}

    def render(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible dict using wire aliases."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class BookEnvelope(APIResponse):
    """Envelope carrying a single book."""
    data: Optional[BookResponse] = None


class BookListEnvelope(APIResponse):
    """Envelope carrying a page of books."""
    data: List[BookResponse] = Field(default_factory=list)
    pagination: Optional[PaginationInfo] = None


class SearchEnvelope(APIResponse):
    """Envelope carrying search matches."""
    data: List[BookResponse] = Field(default_factory=list)
    total: Optional[int] = Field(None, description="Number of matches returned")


class BulkOperationEnvelope(APIResponse):
    """Envelope describing a bulk operation outcome."""
    deleted_count: Optional[int] = Field(None, alias="deletedCount")


class StatsEnvelope(APIResponse):
    """Envelope carrying catalog statistics."""
    data: Optional[BookStats] = None


class ErrorResponse(APIResponse):
    """Envelope for failed operations."""

    @classmethod
    def from_error(cls, message: str, error: Optional[str] = None, errors: Optional[List[str]] = None) -> "ErrorResponse":
        """Build a failure envelope, leaving out detail fields that are not present."""
        fields: Dict[str, Any] = {"success": False, "message": message}
        if error is not None:
            fields["error"] = error
        if errors is not None:
            fields["errors"] = errors
        return cls(**fields)


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    message: str = Field(..., description="Service message")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., alias="databaseStatus", description="Database connection status")

    model_config = {"populate_by_name": True}
