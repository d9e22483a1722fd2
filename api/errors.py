"""
Error taxonomy for the Book Library API.

Every failure a route can report is one of the classes below. The exception
handler registered in ``api.main`` turns them into the JSON envelope, so route
code only has to raise.
"""

from typing import List, Optional

from fastapi import status


class BookAPIError(Exception):
    """Base class for errors rendered as an unsuccessful envelope."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        error: Optional[str] = None,
        errors: Optional[List[str]] = None
    ):
        self.message = message or self.default_message
        self.error = error
        self.errors = errors
        super().__init__(self.message)


class BadRequestError(BookAPIError):
    """Missing or malformed input."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Bad request"


class BookValidationError(BadRequestError):
    """Field constraint violations, reported as a list of messages."""

    default_message = "Validation error"

    def __init__(self, errors: List[str], message: Optional[str] = None):
        super().__init__(message=message, errors=list(errors))


class ConflictError(BookAPIError):
    """A book with the same title and author already exists."""

    status_code = status.HTTP_409_CONFLICT
    default_message = "A book with this title and author already exists"


class NotFoundError(BookAPIError):
    """Missing record or unknown route."""

    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Book not found"


class InternalError(BookAPIError):
    """Unexpected store or runtime failure."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
