"""Async HTTP client used by the feature controllers."""
import asyncio
import httpx
from typing import List, Optional, Dict, Any
from urllib.parse import quote
import logging

from bookstore.models import Book, Category
from bookstore.parse import (
    parse_book,
    parse_books_response,
    parse_category,
    parse_categories_response,
    book_to_dict,
    category_to_dict,
)

logger = logging.getLogger(__name__)


def _segment(value: Any) -> str:
    return quote(str(value), safe="")


class AsyncBookstoreClient:
    """Async catalog accessors; each call resolves to a result or None/False on failure."""

    def __init__(
        self,
        base_url: str = "http://localhost:82/api",
        timeout: int = 10,
        max_concurrent: int = 5,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize async client.

        Args:
            base_url: API root
            timeout: Request timeout
            max_concurrent: Maximum concurrent requests
            transport: Optional httpx transport (e.g. MockTransport in tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.semaphore = asyncio.Semaphore(max_concurrent)

        # Create async HTTP client
        self.client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def get_books(self) -> Optional[List[Book]]:
        return await self._get_books("/Books")

    async def get_book(self, book_id: int) -> Optional[Book]:
        response = await self._request("GET", f"/Books/{_segment(book_id)}")
        return parse_book(self._decode(response)) if response is not None else None

    async def create_book(self, book: Book) -> Optional[Book]:
        response = await self._request("POST", "/Books", book_to_dict(book))
        return parse_book(self._decode(response)) if response is not None else None

    async def update_book(self, book_id: int, book: Book) -> bool:
        response = await self._request("PUT", f"/Books/{_segment(book_id)}", book_to_dict(book))
        return response is not None

    async def delete_book(self, book_id: int) -> bool:
        response = await self._request("DELETE", f"/Books/{_segment(book_id)}")
        return response is not None

    async def get_books_by_category(self, category_id: int) -> Optional[List[Book]]:
        return await self._get_books(f"/Books/get-books-by-category/{_segment(category_id)}")

    async def search_books(self, book_name: str) -> Optional[List[Book]]:
        return await self._get_books(f"/Books/search/{_segment(book_name)}")

    async def search_books_with_category(self, searched_value: str) -> Optional[List[Book]]:
        return await self._get_books(f"/Books/search-book-with-category/{_segment(searched_value)}")

    async def search_books_in_category(self, searched_value: str, category_id: int) -> Optional[List[Book]]:
        return await self._get_books(
            f"/Books/search-book-in-category/{_segment(searched_value)}/{_segment(category_id)}"
        )

    async def get_categories(self) -> Optional[List[Category]]:
        return await self._get_categories("/Categories")

    async def get_category(self, category_id: int) -> Optional[Category]:
        response = await self._request("GET", f"/Categories/{_segment(category_id)}")
        return parse_category(self._decode(response)) if response is not None else None

    async def create_category(self, category: Category) -> Optional[Category]:
        response = await self._request("POST", "/Categories", category_to_dict(category))
        return parse_category(self._decode(response)) if response is not None else None

    async def update_category(self, category_id: int, category: Category) -> bool:
        response = await self._request(
            "PUT", f"/Categories/{_segment(category_id)}", category_to_dict(category)
        )
        return response is not None

    async def delete_category(self, category_id: int) -> bool:
        response = await self._request("DELETE", f"/Categories/{_segment(category_id)}")
        return response is not None

    async def search_categories(self, name: str) -> Optional[List[Category]]:
        return await self._get_categories(f"/Categories/search/{_segment(name)}")

    async def search_multiple(self, queries: List[str]) -> List[List[Book]]:
        """
        Run several book searches in parallel.

        Args:
            queries: Search strings

        Returns:
            Result lists for the searches that succeeded, in query order
        """
        tasks = [
            self.search_books_with_category(query)
            for query in queries
        ]

        results = await asyncio.gather(*tasks)
        return [r for r in results if r is not None]

    async def _get_books(self, path: str) -> Optional[List[Book]]:
        response = await self._request("GET", path)
        return parse_books_response(self._decode(response)) if response is not None else None

    async def _get_categories(self, path: str) -> Optional[List[Category]]:
        response = await self._request("GET", path)
        return parse_categories_response(self._decode(response)) if response is not None else None

    async def _request(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None
    ) -> Optional[httpx.Response]:
        url = f"{self.base_url}{path}"

        # Use semaphore to limit concurrency
        async with self.semaphore:
            try:
                logger.info(f"Async {method}: {url}")
                response = await self.client.request(method, url, json=payload)

                if response.is_success:
                    return response
                else:
                    logger.warning(f"Status {response.status_code} for {method} {url}")
                    return None

            except Exception as e:
                logger.error(f"Async request failed: {e}")
                return None

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            logger.warning(f"Response body is not JSON ({response.status_code})")
            return None

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
