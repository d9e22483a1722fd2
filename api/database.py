"""
Database service layer for the FastAPI application.

``MongoDBManager`` owns the Motor client and indexes; ``BookDatabaseService``
builds the queries behind every book endpoint.
"""

import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

import structlog
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import ConnectionFailure

from api.models import BookListQuery, BookResponse, BookStats, PaginationInfo, SortOrder, TopAuthor
from api.validation import BookFields

logger = structlog.get_logger(__name__)

TOP_AUTHORS_LIMIT = 5


def utcnow() -> datetime:
    """Current time as an aware UTC datetime, truncated to BSON's millisecond precision."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def to_object_id(value: Any) -> Optional[ObjectId]:
    """
    Convert a client-supplied identifier to an ObjectId.

    Returns None for anything that is not a 24-character hex string, so a
    malformed id behaves like a missing one.
    """
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and len(value) == 24 and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def build_search_filter(text: Optional[str]) -> Dict[str, Any]:
    """Case-insensitive substring match on title or author."""
    if not text:
        return {}
    pattern = re.escape(text)
    return {
        "$or": [
            {"title": {"$regex": pattern, "$options": "i"}},
            {"author": {"$regex": pattern, "$options": "i"}}
        ]
    }


def build_duplicate_filter(title: str, author: str) -> Dict[str, Any]:
    """Exact, case-insensitive match on both title and author."""
    return {
        "title": {"$regex": f"^{re.escape(title)}$", "$options": "i"},
        "author": {"$regex": f"^{re.escape(author)}$", "$options": "i"}
    }


def build_pagination(page: int, limit: int, total: int) -> PaginationInfo:
    """Pagination metadata for an offset/limit page."""
    return PaginationInfo(
        current_page=page,
        total_pages=math.ceil(total / limit),
        total_books=total,
        has_next_page=page * limit < total,
        has_prev_page=page > 1
    )


class MongoDBManager:
    """
    Async MongoDB connection manager.
    Handles connection, indexing and shutdown of the books collection.
    """

    def __init__(self, connection_url: str, database_name: str, collection_name: str):
        """
        Initialize MongoDB manager.

        Args:
            connection_url: MongoDB connection URL
            database_name: Name of the database
            collection_name: Name of the books collection
        """
        self.connection_url = connection_url
        self.database_name = database_name
        self.collection_name = collection_name
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None

    async def connect(self) -> None:
        """Establish connection to MongoDB and make sure indexes exist."""
        try:
            self.client = AsyncIOMotorClient(self.connection_url, tz_aware=True)
            self.database = self.client[self.database_name]

            # Test connection
            await self.database.command("ping")
            logger.info("Successfully connected to MongoDB",
                        database=self.database_name,
                        collection=self.collection_name)

            await self._create_indexes()

        except ConnectionFailure as e:
            logger.error("Failed to connect to MongoDB", error=str(e))
            raise

    async def disconnect(self) -> None:
        """Close MongoDB connection."""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")

    async def _create_indexes(self) -> None:
        """Create indexes used by duplicate checks and default sorting."""
        collection = self.database[self.collection_name]
        try:
            await collection.create_index([("title", ASCENDING), ("author", ASCENDING)])
            await collection.create_index([("createdAt", DESCENDING)])
            logger.info("Successfully created MongoDB indexes")
        except Exception as e:
            logger.error("Failed to create indexes", error=str(e))
            raise

    def book_service(self) -> "BookDatabaseService":
        """Database service bound to this connection."""
        return BookDatabaseService(self.database, self.collection_name)


class BookDatabaseService:
    """Database service for book operations."""

    def __init__(self, database: AsyncIOMotorDatabase, collection_name: str = "books"):
        self.database = database
        self.books_collection: AsyncIOMotorCollection = database[collection_name]

    async def get_books(self, query: BookListQuery) -> Tuple[List[BookResponse], PaginationInfo]:
        """
        Get books with search, sorting and pagination.

        Args:
            query: Listing parameters

        Returns:
            The requested page of books and its pagination metadata
        """
        try:
            filter_query = build_search_filter(query.search)

            sort_field = "_id" if query.sort_by == "id" else query.sort_by
            sort_direction = DESCENDING if query.sort_order == SortOrder.DESC.value else ASCENDING

            skip = (query.page - 1) * query.limit

            cursor = (
                self.books_collection.find(filter_query)
                .sort([(sort_field, sort_direction)])
                .skip(skip)
                .limit(query.limit)
            )
            docs = await cursor.to_list(length=None)

            total = await self.books_collection.count_documents(filter_query)

            books = [BookResponse.from_document(doc) for doc in docs]
            return books, build_pagination(query.page, query.limit, total)

        except Exception as e:
            logger.error("Failed to get books", error=str(e), query=query.model_dump())
            raise

    async def get_book_by_id(self, book_id: str) -> Optional[BookResponse]:
        """
        Get a single book by ID.

        Returns:
            BookResponse if found, None if missing or the ID is malformed
        """
        object_id = to_object_id(book_id)
        if object_id is None:
            return None

        doc = await self.books_collection.find_one({"_id": object_id})
        if doc:
            return BookResponse.from_document(doc)
        return None

    async def find_duplicate(self, title: str, author: str) -> Optional[BookResponse]:
        """Find a book whose title and author match, ignoring case."""
        doc = await self.books_collection.find_one(build_duplicate_filter(title, author))
        if doc:
            return BookResponse.from_document(doc)
        return None

    async def create_book(self, fields: BookFields) -> BookResponse:
        """Insert a new book; the store assigns the id, timestamps are set here."""
        now = utcnow()
        doc = fields.to_document()
        doc["createdAt"] = now
        doc["updatedAt"] = now

        result = await self.books_collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        logger.debug("Inserted book", book_id=str(result.inserted_id), title=fields.title)
        return BookResponse.from_document(doc)

    async def insert_books(self, books: Iterable[BookFields]) -> List[BookResponse]:
        """Insert several books at once."""
        now = utcnow()
        docs = []
        for fields in books:
            doc = fields.to_document()
            doc["createdAt"] = now
            doc["updatedAt"] = now
            docs.append(doc)

        if not docs:
            return []

        result = await self.books_collection.insert_many(docs)
        for doc, inserted_id in zip(docs, result.inserted_ids):
            doc["_id"] = inserted_id
        return [BookResponse.from_document(doc) for doc in docs]

    async def update_book(self, book_id: str, fields: BookFields) -> Optional[BookResponse]:
        """
        Replace the mutable fields of a book and refresh updatedAt.

        Returns:
            The updated book, or None if no book has this ID
        """
        object_id = to_object_id(book_id)
        if object_id is None:
            return None

        update = fields.to_document()
        update["updatedAt"] = utcnow()

        doc = await self.books_collection.find_one_and_update(
            {"_id": object_id},
            {"$set": update},
            return_document=ReturnDocument.AFTER
        )
        if doc:
            return BookResponse.from_document(doc)
        return None

    async def delete_book(self, book_id: str) -> Optional[BookResponse]:
        """Delete a book and return it, or None if no book has this ID."""
        object_id = to_object_id(book_id)
        if object_id is None:
            return None

        doc = await self.books_collection.find_one_and_delete({"_id": object_id})
        if doc:
            return BookResponse.from_document(doc)
        return None

    async def bulk_delete(self, book_ids: Iterable[Any]) -> int:
        """
        Delete every book whose ID is listed.

        Malformed and unknown IDs are ignored.

        Returns:
            Number of books deleted
        """
        object_ids = [oid for oid in (to_object_id(book_id) for book_id in book_ids) if oid is not None]
        if not object_ids:
            return 0

        result = await self.books_collection.delete_many({"_id": {"$in": object_ids}})
        return result.deleted_count

    async def search_books(self, text: str, limit: int = 10) -> List[BookResponse]:
        """Newest books whose title or author contains ``text``."""
        cursor = (
            self.books_collection.find(build_search_filter(text))
            .sort([("createdAt", DESCENDING)])
            .limit(limit)
        )
        docs = await cursor.to_list(length=None)
        return [BookResponse.from_document(doc) for doc in docs]

    async def count_books(self) -> int:
        """Total number of books in the collection."""
        return await self.books_collection.count_documents({})

    async def get_stats(self) -> BookStats:
        """
        Aggregate catalog statistics.

        Top authors are ordered by book count, then by name so ties are stable.
        """
        now = utcnow()
        month_start = datetime(now.year, now.month, 1, tzinfo=timezone.utc)

        total_books = await self.books_collection.count_documents({})
        books_this_year = await self.books_collection.count_documents({"publishedYear": now.year})
        books_this_month = await self.books_collection.count_documents(
            {"createdAt": {"$gte": month_start}}
        )

        pipeline = [
            {"$group": {"_id": "$author", "count": {"$sum": 1}}},
            {"$sort": {"count": -1, "_id": 1}},
            {"$limit": TOP_AUTHORS_LIMIT}
        ]
        top_authors = await self.books_collection.aggregate(pipeline).to_list(length=None)

        return BookStats(
            total_books=total_books,
            books_this_year=books_this_year,
            books_this_month=books_this_month,
            top_authors=[TopAuthor(author=row["_id"], count=row["count"]) for row in top_authors]
        )

    async def health_check(self) -> Dict:
        """
        Perform database health check.

        Returns:
            Dictionary with health status
        """
        try:
            await self.database.command("ping")
            books_count = await self.books_collection.count_documents({})

            return {
                "status": "healthy",
                "books_collection": "accessible",
                "books_count": books_count
            }
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {
                "status": "unhealthy",
                "error": str(e)
            }
