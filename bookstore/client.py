"""HTTP client for the bookstore REST API with resilience patterns."""
import time
import random
import requests
from typing import Optional, List, Dict, Any
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

# POST is not idempotent; a retried create could insert twice
RETRYABLE_METHODS = ("GET", "PUT", "DELETE")


def _segment(value: Any) -> str:
    """Quote a value for use as a single URL path segment."""
    return quote(str(value), safe="")


def _decode(response) -> Any:
    """Decode a JSON body; an empty or non-JSON body yields None."""
    try:
        return response.json()
    except ValueError:
        logger.warning(f"Response body is not JSON ({response.status_code})")
        return None


class BookstoreClient:
    """Client for the books and categories API with timeouts, retries, and backoff."""

    def __init__(
        self,
        base_url: str = "http://localhost:82/api",
        timeout: int = 10,
        max_retries: int = 3,
        base_backoff: float = 1.0,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize bookstore API client.

        Args:
            base_url: API root, e.g. http://localhost:82/api
            timeout: Request timeout in seconds
            max_retries: Maximum number of attempts for idempotent requests
            base_backoff: Base delay for exponential backoff
            session: Optional preconfigured session
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.base_backoff = base_backoff

        # Create session for connection pooling
        self.session = session or requests.Session()

    # Books

    def get_books(self) -> Optional[List[Book]]:
        """Fetch all books; None if the request failed."""
        return self._get_books("/Books")

    def get_book(self, book_id: int) -> Optional[Book]:
        response = self._make_request_with_retry("GET", f"/Books/{_segment(book_id)}")
        return parse_book(_decode(response)) if response is not None else None

    def create_book(self, book: Book) -> Optional[Book]:
        """
        Create a book.

        Args:
            book: Book to create (its id is ignored by the server)

        Returns:
            The created book with its server-assigned id, or None
        """
        response = self._make_request_with_retry("POST", "/Books", book_to_dict(book))
        return parse_book(_decode(response)) if response is not None else None

    def update_book(self, book_id: int, book: Book) -> bool:
        response = self._make_request_with_retry("PUT", f"/Books/{_segment(book_id)}", book_to_dict(book))
        return response is not None

    def delete_book(self, book_id: int) -> bool:
        response = self._make_request_with_retry("DELETE", f"/Books/{_segment(book_id)}")
        return response is not None

    def get_books_by_category(self, category_id: int) -> Optional[List[Book]]:
        return self._get_books(f"/Books/get-books-by-category/{_segment(category_id)}")

    def search_books(self, book_name: str) -> Optional[List[Book]]:
        """Search books by name or author."""
        return self._get_books(f"/Books/search/{_segment(book_name)}")

    def search_books_with_category(self, searched_value: str) -> Optional[List[Book]]:
        """Search books by name, author, description or category name."""
        return self._get_books(f"/Books/search-book-with-category/{_segment(searched_value)}")

    def search_books_in_category(self, searched_value: str, category_id: int) -> Optional[List[Book]]:
        return self._get_books(
            f"/Books/search-book-in-category/{_segment(searched_value)}/{_segment(category_id)}"
        )

    # Categories

    def get_categories(self) -> Optional[List[Category]]:
        return self._get_categories("/Categories")

    def get_category(self, category_id: int) -> Optional[Category]:
        response = self._make_request_with_retry("GET", f"/Categories/{_segment(category_id)}")
        return parse_category(_decode(response)) if response is not None else None

    def create_category(self, category: Category) -> Optional[Category]:
        response = self._make_request_with_retry("POST", "/Categories", category_to_dict(category))
        return parse_category(_decode(response)) if response is not None else None

    def update_category(self, category_id: int, category: Category) -> bool:
        response = self._make_request_with_retry(
            "PUT", f"/Categories/{_segment(category_id)}", category_to_dict(category)
        )
        return response is not None

    def delete_category(self, category_id: int) -> bool:
        response = self._make_request_with_retry("DELETE", f"/Categories/{_segment(category_id)}")
        return response is not None

    def search_categories(self, name: str) -> Optional[List[Category]]:
        return self._get_categories(f"/Categories/search/{_segment(name)}")

    def _get_books(self, path: str) -> Optional[List[Book]]:
        response = self._make_request_with_retry("GET", path)
        return parse_books_response(_decode(response)) if response is not None else None

    def _get_categories(self, path: str) -> Optional[List[Category]]:
        response = self._make_request_with_retry("GET", path)
        return parse_categories_response(_decode(response)) if response is not None else None

    def _make_request_with_retry(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None
    ) -> Optional[requests.Response]:
        """
        Make HTTP request with retry logic.

        Args:
            method: HTTP verb
            path: Path below the API root
            payload: Optional JSON body

        Returns:
            Successful response or None if all retries exhausted
        """
        url = f"{self.base_url}{path}"
        attempts = self.max_retries if method in RETRYABLE_METHODS else 1

        for attempt in range(attempts):
            try:
                logger.info(f"{method} attempt {attempt + 1}/{attempts}: {url}")

                response = self.session.request(
                    method,
                    url,
                    json=payload,
                    timeout=self.timeout
                )

                # Handle different status codes
                if 200 <= response.status_code < 300:
                    logger.info(f"Success: {response.status_code}")
                    return response

                elif response.status_code == 429:
                    # Rate limited - must retry with backoff
                    logger.warning(f"Rate limited (429) on attempt {attempt + 1}")
                    if attempt < attempts - 1:
                        self._backoff(attempt)
                        continue

                elif response.status_code >= 500:
                    # Server error - retryable
                    logger.warning(f"Server error ({response.status_code}) on attempt {attempt + 1}")
                    if attempt < attempts - 1:
                        self._backoff(attempt)
                        continue

                elif response.status_code >= 400:
                    # Client error - don't retry
                    logger.error(f"Client error ({response.status_code}): {response.text}")
                    return None

            except requests.exceptions.Timeout:
                logger.warning(f"Timeout on attempt {attempt + 1}")
                if attempt < attempts - 1:
                    self._backoff(attempt)
                    continue

            except requests.exceptions.ConnectionError as e:
                logger.warning(f"Connection error on attempt {attempt + 1}: {e}")
                if attempt < attempts - 1:
                    self._backoff(attempt)
                    continue

            except Exception as e:
                logger.error(f"Unexpected error: {e}")
                return None

        logger.error(f"All {attempts} attempts failed: {method} {url}")
        return None

    def _backoff(self, attempt: int):
        """
        Sleep with exponential backoff and jitter.

        Args:
            attempt: Current attempt number (0-indexed)
        """
        # Exponential backoff: base * 2^attempt
        delay = self.base_backoff * (2 ** attempt)

        # Add jitter: random value between 0 and delay
        jitter = random.uniform(0, delay)
        total_delay = delay + jitter

        logger.info(f"Backing off for {total_delay:.2f} seconds")
        time.sleep(total_delay)

    def close(self):
        """Close the session."""
        self.session.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
