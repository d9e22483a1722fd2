"""
Field rules for book records.

Request bodies are first parsed into ``BookPayload``; the helpers here decide
whether the payload describes a storable book and produce the normalized
``BookFields`` written to the database.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError, validator
from pydantic_core import PydanticCustomError

from api.errors import BadRequestError, BookValidationError
from api.models import BookPayload

TITLE_MAX_LENGTH = 200
AUTHOR_MAX_LENGTH = 100
MIN_PUBLISHED_YEAR = 1000
DEFAULT_IMAGE = "assets/libro.jpg"

# Error type for messages that are already human-readable
FIELD_ERROR_TYPE = "book_field"


def max_published_year() -> int:
    """Latest accepted publication year (next calendar year)."""
    return datetime.now(timezone.utc).year + 1


class BookFields(BaseModel):
    """Validated, normalized mutable fields of a book."""
    title: str = Field(..., description="Trimmed book title")
    author: str = Field(..., description="Trimmed author name")
    published_year: Optional[int] = Field(None, alias="publishedYear")
    image: str = Field(DEFAULT_IMAGE, description="Cover image path or URL")

    model_config = {"populate_by_name": True}

    @validator('title')
    def validate_title(cls, v):
        """Trim the title and enforce its length limits."""
        v = v.strip()
        if not v:
            raise PydanticCustomError(FIELD_ERROR_TYPE, "Book title is required")
        if len(v) > TITLE_MAX_LENGTH:
            raise PydanticCustomError(
                FIELD_ERROR_TYPE, f"Title cannot be more than {TITLE_MAX_LENGTH} characters"
            )
        return v

    @validator('author')
    def validate_author(cls, v):
        """Trim the author and enforce its length limits."""
        v = v.strip()
        if not v:
            raise PydanticCustomError(FIELD_ERROR_TYPE, "Author name is required")
        if len(v) > AUTHOR_MAX_LENGTH:
            raise PydanticCustomError(
                FIELD_ERROR_TYPE, f"Author name cannot be more than {AUTHOR_MAX_LENGTH} characters"
            )
        return v

    @validator('published_year')
    def validate_published_year(cls, v):
        """Keep the publication year between 1000 and next year."""
        if v is None:
            return v
        if v < MIN_PUBLISHED_YEAR:
            raise PydanticCustomError(
                FIELD_ERROR_TYPE, f"Published year must be at least {MIN_PUBLISHED_YEAR}"
            )
        if v > max_published_year():
            raise PydanticCustomError(FIELD_ERROR_TYPE, "Published year cannot be in the future")
        return v

    def to_document(self) -> Dict[str, Any]:
        """Fields as stored in MongoDB."""
        return {
            "title": self.title,
            "author": self.author,
            "publishedYear": self.published_year,
            "image": self.image
        }


def format_validation_errors(errors: List[Dict[str, Any]]) -> List[str]:
    """Turn pydantic error dicts into the messages returned to clients."""
    messages = []
    for error in errors:
        if error.get("type") == FIELD_ERROR_TYPE:
            messages.append(error["msg"])
            continue
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        if location:
            messages.append(f"{'.'.join(location)}: {error['msg']}")
        else:
            messages.append(error["msg"])
    return messages


def require_title_and_author(payload: BookPayload) -> None:
    """Reject payloads without a title or an author."""
    if not payload.title or not payload.author:
        raise BadRequestError("Title and author are required")


def validate_book_payload(payload: BookPayload, default_image: str = DEFAULT_IMAGE) -> BookFields:
    """
    Validate a create/update payload.

    Args:
        payload: Parsed request body
        default_image: Image used when the payload has none

    Returns:
        BookFields ready to be stored

    Raises:
        BadRequestError: If title or author is missing
        BookValidationError: If any field rule is violated
    """
    require_title_and_author(payload)
    try:
        return BookFields(
            title=payload.title,
            author=payload.author,
            published_year=payload.published_year or None,
            image=payload.image or default_image
        )
    except ValidationError as e:
        raise BookValidationError(format_validation_errors(e.errors()))
