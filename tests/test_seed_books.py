"""
Tests for the sample data seeding utility.
"""

from unittest.mock import AsyncMock

import pytest

from api.database import BookDatabaseService
from seed_books import SAMPLE_BOOKS, sample_books, seed_database


def test_sample_books_are_valid():
    """Every sample book passes field validation."""
    books = sample_books()
    assert len(books) == len(SAMPLE_BOOKS) == 6
    assert all(book.published_year for book in books)


@pytest.mark.asyncio
async def test_seed_skips_populated_collection():
    """Existing data is left untouched."""
    db_service = AsyncMock(spec=BookDatabaseService)
    db_service.count_books.return_value = 3

    inserted = await seed_database(db_service)

    assert inserted == 0
    db_service.insert_books.assert_not_awaited()


@pytest.mark.asyncio
async def test_seed_inserts_into_empty_collection(sample_book):
    """An empty collection receives all sample books."""
    db_service = AsyncMock(spec=BookDatabaseService)
    db_service.count_books.return_value = 0
    db_service.insert_books.return_value = [sample_book] * 6

    inserted = await seed_database(db_service)

    assert inserted == 6
    books = db_service.insert_books.await_args[0][0]
    assert [book.title for book in books][:2] == ["Kuko Ng Agila", "Deathly Hallows"]
