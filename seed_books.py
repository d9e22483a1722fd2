#!/usr/bin/env python3
"""
Sample data seeding utility.

Inserts a handful of sample books when the books collection is empty, then
prints a short summary of the catalog. Safe to run repeatedly.
"""

import asyncio
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from api.config import config
from api.database import MongoDBManager
from api.validation import BookFields
from utilities.logger import setup_logging, get_logger

SAMPLE_BOOKS = [
    {"title": "Kuko Ng Agila", "author": "Harper Lee", "published_year": 1960, "image": "assets/demon1.jpg"},
    {"title": "Deathly Hallows", "author": "George Orwell", "published_year": 1949, "image": "assets/demon2.jpg"},
    {"title": "Order of the Phoenix", "author": "F. Scott Fitzgerald", "published_year": 1925, "image": "assets/demon3.jpg"},
    {"title": "The Sorcerers Stone", "author": "Jane Austen", "published_year": 1813, "image": "assets/demon4.jpg"},
    {"title": "The Great Gatsby", "author": "F. Scott Fitzgerald", "published_year": 1925, "image": "assets/demon5.jpg"},
    {"title": "Pride and Prejudice", "author": "Jane Austen", "published_year": 1813, "image": "assets/demon6.jpg"},
]


def sample_books():
    """Sample books as validated fields."""
    return [BookFields(**book) for book in SAMPLE_BOOKS]


async def seed_database(db_service) -> int:
    """
    Insert the sample books if the collection is empty.

    Returns:
        Number of books inserted
    """
    logger = get_logger(__name__)

    existing_books = await db_service.count_books()
    if existing_books > 0:
        logger.info("Collection already populated, skipping sample data", existing_books=existing_books)
        print(f"📚 Database already contains {existing_books} books.")
        print("💡 Skipping sample data insertion.\n")
        return 0

    inserted = await db_service.insert_books(sample_books())
    logger.info("Inserted sample books", count=len(inserted))

    print(f"✅ Successfully inserted {len(inserted)} sample books!\n")
    print("📋 Sample books added:")
    for i, book in enumerate(inserted, 1):
        print(f"   {i}. \"{book.title}\" by {book.author} ({book.published_year})")
    print()
    return len(inserted)


async def main():
    """Connect, seed and report."""
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.log_file,
        debug=config.debug
    )
    logger = get_logger(__name__)

    print("🚀 Setting up Book Library Database...\n")

    db_manager = MongoDBManager(
        connection_url=config.mongodb_url,
        database_name=config.mongodb_database,
        collection_name=config.mongodb_collection
    )

    try:
        await db_manager.connect()
        db_service = db_manager.book_service()

        await seed_database(db_service)

        stats = await db_service.get_stats()
        print("📊 Database Statistics:")
        print(f"   Total Books: {stats.total_books}")
        print(f"   Books Published This Year: {stats.books_this_year}")
        print()
        print("🎉 Database setup completed successfully!")
        print("🚀 You can now start the server with: python run_api.py")
        print("🔍 Test the API with: python smoke_test_api.py")

    except Exception as e:
        logger.error("Database setup failed", error=str(e))
        print(f"❌ Setup failed: {e}\n")
        print("💡 Troubleshooting tips:")
        print("   1. Make sure MongoDB is running")
        print("   2. Check MONGODB_URL in your .env file")
        print("   3. Ensure the database name is correct")
        sys.exit(1)

    finally:
        await db_manager.disconnect()
        print("🔌 Database connection closed.")


if __name__ == "__main__":
    asyncio.run(main())
