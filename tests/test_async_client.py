"""Tests for the async bookstore client."""
import asyncio
import json

import httpx

from bookstore.async_client import AsyncBookstoreClient
from bookstore.models import Book

BOOKS = [
    {"id": 1, "categoryId": 1, "name": "The Great Gatsby", "author": "F. Scott Fitzgerald", "value": 15.99},
    {"id": 2, "categoryId": 2, "name": "To Kill a Mockingbird", "author": "Harper Lee", "value": 12.99},
]


def handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if request.method == "GET" and path == "/api/Books":
        return httpx.Response(200, json=BOOKS)
    if request.method == "GET" and path.startswith("/api/Books/search-book-with-category/"):
        term = path.rsplit("/", 1)[1].lower()
        return httpx.Response(200, json=[b for b in BOOKS if term in b["name"].lower()])
    if request.method == "POST" and path == "/api/Books":
        body = json.loads(request.content)
        return httpx.Response(201, json={"id": 3, **body})
    if request.method == "DELETE" and path == "/api/Books/1":
        return httpx.Response(200, json=BOOKS[0])
    return httpx.Response(404, json={"error": "not found"})


def make_client():
    return AsyncBookstoreClient(base_url="http://api.test/api", transport=httpx.MockTransport(handler))


def test_get_books():
    """Test listing books."""
    async def run():
        async with make_client() as client:
            return await client.get_books()

    books = asyncio.run(run())

    assert [b.id for b in books] == [1, 2]


def test_create_and_delete():
    """Test create returns the server copy and delete reports success."""
    async def run():
        async with make_client() as client:
            created = await client.create_book(Book(category_id=1, name="New", value=1.0))
            deleted = await client.delete_book(1)
            missing = await client.delete_book(99)
            return created, deleted, missing

    created, deleted, missing = asyncio.run(run())

    assert created.id == 3
    assert created.name == "New"
    assert deleted is True
    assert missing is False


def test_not_found_returns_none():
    """Test failure outcome for queries."""
    async def run():
        async with make_client() as client:
            return await client.get_category(5)

    assert asyncio.run(run()) is None


def test_search_multiple():
    """Test parallel searches keep query order."""
    async def run():
        async with make_client() as client:
            return await client.search_multiple(["gatsby", "mockingbird"])

    results = asyncio.run(run())

    assert [[b.id for b in r] for r in results] == [[1], [2]]


def test_transport_error_returns_none():
    """Test that transport failures don't raise."""
    def broken(request):
        raise httpx.ConnectError("refused")

    async def run():
        async with AsyncBookstoreClient(transport=httpx.MockTransport(broken)) as client:
            return await client.get_books()

    assert asyncio.run(run()) is None
