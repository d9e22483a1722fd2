"""
Pytest configuration and shared fixtures.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId

from api.database import BookDatabaseService


def make_cursor(documents):
    """Mock Motor cursor supporting chained sort/skip/limit calls."""
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.skip.return_value = cursor
    cursor.limit.return_value = cursor
    cursor.to_list = AsyncMock(return_value=documents)
    return cursor


@pytest.fixture
def cursor_factory():
    """Factory for mock cursors returning the given documents."""
    return make_cursor


@pytest.fixture
def mock_collection():
    """Create a mock books collection."""
    collection = MagicMock()
    collection.find.return_value = make_cursor([])
    collection.aggregate.return_value = make_cursor([])
    collection.find_one = AsyncMock(return_value=None)
    collection.insert_one = AsyncMock()
    collection.insert_many = AsyncMock()
    collection.find_one_and_update = AsyncMock(return_value=None)
    collection.find_one_and_delete = AsyncMock(return_value=None)
    collection.delete_many = AsyncMock()
    collection.count_documents = AsyncMock(return_value=0)
    return collection


@pytest.fixture
def mock_database(mock_collection):
    """Create a mock Motor database whose every collection is ``mock_collection``."""
    database = MagicMock()
    database.__getitem__.return_value = mock_collection
    database.command = AsyncMock(return_value={"ok": 1})
    return database


@pytest.fixture
def db_service(mock_database):
    """Book database service backed by the mock database."""
    return BookDatabaseService(mock_database, "books")


@pytest.fixture
def mock_db_service():
    """Create a mock book database service."""
    return AsyncMock(spec=BookDatabaseService)


@pytest.fixture
def sample_timestamp():
    """Fixed creation timestamp."""
    return datetime(2025, 1, 15, 10, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_book_document(sample_timestamp):
    """Create a sample stored book document."""
    return {
        "_id": ObjectId("65a4f1c2e4b0a1b2c3d4e5f6"),
        "title": "Dune",
        "author": "Frank Herbert",
        "publishedYear": 1965,
        "image": "assets/libro.jpg",
        "createdAt": sample_timestamp,
        "updatedAt": sample_timestamp
    }


@pytest.fixture
def sample_book_documents(sample_timestamp):
    """Three stored books, newest first."""
    return [
        {
            "_id": ObjectId("65a4f1c2e4b0a1b2c3d4e5f1"),
            "title": "The Great Gatsby",
            "author": "F. Scott Fitzgerald",
            "publishedYear": 1925,
            "image": "assets/demon5.jpg",
            "createdAt": sample_timestamp,
            "updatedAt": sample_timestamp
        },
        {
            "_id": ObjectId("65a4f1c2e4b0a1b2c3d4e5f2"),
            "title": "Pride and Prejudice",
            "author": "Jane Austen",
            "publishedYear": 1813,
            "image": "assets/demon6.jpg",
            "createdAt": sample_timestamp,
            "updatedAt": sample_timestamp
        },
        {
            "_id": ObjectId("65a4f1c2e4b0a1b2c3d4e5f3"),
            "title": "Kuko Ng Agila",
            "author": "Harper Lee",
            "publishedYear": None,
            "image": "assets/libro.jpg",
            "createdAt": sample_timestamp,
            "updatedAt": sample_timestamp
        }
    ]


@pytest.fixture
def sample_book(sample_book_document):
    """Sample book as returned by the service layer."""
    from api.models import BookResponse
    return BookResponse.from_document(sample_book_document)
