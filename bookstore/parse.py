"""Parse and serialize bookstore API payloads."""
import json
import logging
from typing import Dict, Any, List, Optional

from bookstore.models import Book, Category, CartItem

logger = logging.getLogger(__name__)


def parse_book(item: Dict[str, Any]) -> Optional[Book]:
    """
    Parse a single book from the bookstore API.

    Args:
        item: Book JSON object (camelCase keys)

    Returns:
        Book object or None if parsing fails
    """
    try:
        book_id = item.get("id")
        return Book(
            id=int(book_id) if book_id is not None else None,
            category_id=int(item.get("categoryId") or 0),
            name=item.get("name") or "",
            author=item.get("author") or "",
            description=item.get("description") or "",
            value=float(item.get("value") or 0),
            publish_date=item.get("publishDate") or ""
        )
    except Exception as e:
        # Log but don't crash - one bad record shouldn't hide the catalog
        logger.warning(f"Failed to parse book: {e}")
        return None


def parse_books_response(response_json: Any) -> List[Book]:
    """
    Parse a list of books.

    Args:
        response_json: Decoded JSON array

    Returns:
        List of Book objects (empty if the payload is not a list)
    """
    if not isinstance(response_json, list):
        return []

    books = []
    for item in response_json:
        book = parse_book(item) if isinstance(item, dict) else None
        if book:
            books.append(book)

    return books


def parse_category(item: Dict[str, Any]) -> Optional[Category]:
    """Parse a single category; returns None if parsing fails."""
    try:
        category_id = item.get("id")
        books = item.get("books")
        return Category(
            id=int(category_id) if category_id is not None else None,
            name=item.get("name") or "",
            books=[str(title) for title in books] if isinstance(books, list) else None
        )
    except Exception as e:
        logger.warning(f"Failed to parse category: {e}")
        return None


def parse_categories_response(response_json: Any) -> List[Category]:
    """Parse a list of categories, skipping malformed entries."""
    if not isinstance(response_json, list):
        return []

    categories = []
    for item in response_json:
        category = parse_category(item) if isinstance(item, dict) else None
        if category:
            categories.append(category)

    return categories


def book_to_dict(book: Book) -> Dict[str, Any]:
    """Serialize a book to the API's JSON shape. ``id`` is omitted when unset."""
    data = {
        "categoryId": book.category_id,
        "name": book.name,
        "author": book.author,
        "description": book.description,
        "value": book.value,
        "publishDate": book.publish_date
    }
    if book.id is not None:
        data = {"id": book.id, **data}
    return data


def category_to_dict(category: Category) -> Dict[str, Any]:
    """Serialize a category to the API's JSON shape."""
    data: Dict[str, Any] = {"name": category.name}
    if category.id is not None:
        data["id"] = category.id
    if category.books is not None:
        data["books"] = list(category.books)
    return data


def parse_cart_items(data: Any) -> List[CartItem]:
    """
    Parse persisted cart line items.

    Args:
        data: Decoded JSON, expected to be a list of {"book": ..., "quantity": n}

    Entries with a quantity below 1 are dropped and entries sharing a book
    id are merged, so the result holds at most one line item per id.

    Returns:
        List of CartItem objects (empty for any other shape)
    """
    if not isinstance(data, list):
        return []

    items = []
    by_id: Dict[int, CartItem] = {}
    for entry in data:
        if not isinstance(entry, dict) or not isinstance(entry.get("book"), dict):
            logger.warning(f"Skipping malformed cart entry: {entry!r}")
            continue
        book = parse_book(entry["book"])
        if book is None:
            continue
        try:
            quantity = int(entry.get("quantity", 1))
        except (TypeError, ValueError):
            logger.warning(f"Skipping cart entry with bad quantity: {entry!r}")
            continue
        if quantity < 1:
            logger.warning(f"Skipping cart entry with quantity {quantity}: {book.name}")
            continue

        existing = by_id.get(book.id) if book.id is not None else None
        if existing:
            existing.quantity += quantity
            continue
        item = CartItem(book=book, quantity=quantity)
        if book.id is not None:
            by_id[book.id] = item
        items.append(item)

    return items


def cart_items_to_json(items: List[CartItem]) -> str:
    """Serialize cart line items for the persistence slot."""
    return json.dumps([
        {"book": book_to_dict(item.book), "quantity": item.quantity}
        for item in items
    ])


def deduplicate_books(books: List[Book]) -> List[Book]:
    """
    Remove duplicate books by ID.

    Books without an ID are always kept.

    Args:
        books: List of Book objects

    Returns:
        Deduplicated list of books
    """
    seen_ids = set()
    unique_books = []

    for book in books:
        if book.id is None:
            unique_books.append(book)
        elif book.id not in seen_ids:
            seen_ids.add(book.id)
            unique_books.append(book)

    return unique_books
