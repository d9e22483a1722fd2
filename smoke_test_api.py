#!/usr/bin/env python3
"""
End-to-end smoke test for a running Book Library API.

Usage:
    python smoke_test_api.py                          # http://localhost:3000/api
    python smoke_test_api.py http://host:port/api     # custom base URL
"""

import asyncio
import sys

import httpx

DEFAULT_BASE_URL = "http://localhost:3000/api"

TEST_BOOK = {
    "title": "Smoke Test Book",
    "author": "Smoke Test Author",
    "publishedYear": 2023,
    "image": "assets/libro.jpg"
}


class SmokeTestError(Exception):
    """A step returned an unexpected response."""


def expect_status(response: httpx.Response, expected: int, step: str) -> dict:
    """Return the JSON body, or fail the step on an unexpected status."""
    if response.status_code != expected:
        raise SmokeTestError(
            f"{step}: expected HTTP {expected}, got {response.status_code}: {response.text}"
        )
    return response.json()


async def run_smoke_test(client: httpx.AsyncClient) -> None:
    """Exercise every endpoint once, cleaning up the book it creates."""
    print("1. Testing Health Check...")
    health = expect_status(await client.get("/health"), 200, "health")
    print(f"✅ Health Check: {health['status']} ({health.get('databaseStatus')})\n")

    print("2. Testing Create Book...")
    created = expect_status(await client.post("/books", json=TEST_BOOK), 201, "create")
    book_id = created["data"]["id"]
    print(f"✅ Book Created: {book_id}\n")

    try:
        print("3. Testing Get All Books...")
        listing = expect_status(await client.get("/books"), 200, "list")
        print(f"✅ Books Retrieved: {len(listing['data'])} books "
              f"({listing['pagination']['totalBooks']} total)\n")

        print("4. Testing Get Single Book...")
        single = expect_status(await client.get(f"/books/{book_id}"), 200, "get")
        print(f"✅ Single Book Retrieved: {single['data']['title']}\n")

        print("5. Testing Update Book...")
        update_data = {**TEST_BOOK, "title": "Updated Smoke Test Book"}
        updated = expect_status(await client.put(f"/books/{book_id}", json=update_data), 200, "update")
        print(f"✅ Book Updated: {updated['data']['title']}\n")

        print("6. Testing Search Books...")
        search = expect_status(await client.get("/books/search", params={"q": "smoke"}), 200, "search")
        print(f"✅ Search Results: {search['total']} books found\n")

        print("7. Testing Get Statistics...")
        stats = expect_status(await client.get("/stats"), 200, "stats")
        print(f"✅ Statistics: {stats['data']}\n")

    finally:
        print("8. Testing Delete Book...")
        deleted = expect_status(await client.delete(f"/books/{book_id}"), 200, "delete")
        print(f"✅ Book Deleted: {deleted['message']}\n")


async def main():
    """Run the smoke test against the configured base URL."""
    base_url = sys.argv[1] if len(sys.argv) > 1 else DEFAULT_BASE_URL
    print(f"🧪 Testing Book Library API at {base_url}...\n")

    try:
        async with httpx.AsyncClient(base_url=base_url, timeout=10.0) as client:
            await run_smoke_test(client)
    except (httpx.HTTPError, SmokeTestError) as e:
        print(f"❌ Test failed: {e}\n")
        print("💡 Make sure:")
        print("   1. The server is running (python run_api.py)")
        print("   2. MongoDB is connected")
        print("   3. The base URL is correct")
        sys.exit(1)

    print("🎉 All tests passed successfully!")


if __name__ == "__main__":
    asyncio.run(main())
