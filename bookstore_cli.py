#!/usr/bin/env python3
"""Bookstore CLI - catalog browsing and a persistent cart."""
import argparse
import asyncio
import sys
import json
from tabulate import tabulate
from bookstore.client import BookstoreClient
from bookstore.async_client import AsyncBookstoreClient
from bookstore.cart import CartStore
from bookstore.parse import book_to_dict, category_to_dict, deduplicate_books
from bookstore.storage import build_storage
from bookstore.config import Config
import logging

logger = logging.getLogger(__name__)


def make_client(config: Config) -> BookstoreClient:
    return BookstoreClient(
        base_url=config.API_BASE_URL,
        timeout=config.DEFAULT_TIMEOUT,
        max_retries=config.DEFAULT_MAX_RETRIES
    )


def display_books(books, format_type: str):
    """Display books in specified format."""
    if format_type == "table":
        headers = ["ID", "Name", "Author", "Category", "Price", "Published"]
        rows = [
            [
                book.id,
                book.name[:50] + "..." if len(book.name) > 50 else book.name,
                book.author[:30] + "..." if len(book.author) > 30 else book.author,
                book.category_id,
                f"{book.value:.2f}",
                book.publish_date or "Unknown"
            ]
            for book in books
        ]
        print("\n" + tabulate(rows, headers=headers, tablefmt="grid"))

    elif format_type == "json":
        print(json.dumps([book_to_dict(book) for book in books], indent=2))

    elif format_type == "compact":
        for i, book in enumerate(books, 1):
            print(f"{i}. {book.name} - {book.author}")


def display_categories(categories, format_type: str):
    """Display categories in specified format."""
    if format_type == "table":
        rows = [[c.id, c.name, c.books_str] for c in categories]
        print("\n" + tabulate(rows, headers=["ID", "Name", "Books"], tablefmt="grid"))

    elif format_type == "json":
        print(json.dumps([category_to_dict(c) for c in categories], indent=2))

    elif format_type == "compact":
        for i, category in enumerate(categories, 1):
            print(f"{i}. {category.name}")


def display_cart(cart: CartStore, format_type: str):
    """Display cart line items and totals."""
    items = cart.get_items()

    if format_type == "json":
        print(json.dumps({
            "items": [{"book": book_to_dict(i.book), "quantity": i.quantity} for i in items],
            "subtotal": round(cart.subtotal(), 2),
            "tax": round(cart.tax(), 2),
            "total": round(cart.total(), 2),
            "item_count": cart.item_count()
        }, indent=2))
        return

    if not items:
        print("Your cart is empty.")
        return

    rows = [
        [item.book.id, item.book.name, item.quantity, f"{item.book.value:.2f}", f"{item.subtotal:.2f}"]
        for item in items
    ]
    print("\n" + tabulate(rows, headers=["ID", "Name", "Qty", "Price", "Subtotal"], tablefmt="grid"))
    print(f"Items:    {cart.item_count()}")
    print(f"Subtotal: {cart.subtotal():.2f}")
    print(f"Tax:      {cart.tax():.2f}")
    print(f"Total:    {cart.total():.2f}")


def list_books(args, config: Config) -> int:
    with make_client(config) as client:
        if args.category is not None:
            books = client.get_books_by_category(args.category)
        else:
            books = client.get_books()

    if books is None:
        logger.error("Failed to fetch books")
        return 1
    display_books(books, args.format)
    return 0


def list_categories(args, config: Config) -> int:
    with make_client(config) as client:
        categories = client.get_categories()

    if categories is None:
        logger.error("Failed to fetch categories")
        return 1
    display_categories(categories, args.format)
    return 0


def search_sync(args, config: Config) -> int:
    """Search using the sync client."""
    with make_client(config) as client:
        if args.categories:
            categories = client.search_categories(args.query)
            if categories is None:
                logger.error("Search failed")
                return 1
            display_categories(categories, args.format)
            return 0

        if args.category is not None:
            books = client.search_books_in_category(args.query, args.category)
        else:
            books = client.search_books_with_category(args.query)

    if books is None:
        logger.error("Search failed")
        return 1
    display_books(deduplicate_books(books), args.format)
    return 0


async def search_async(args, config: Config) -> int:
    """Search every comma-separated query in parallel using the async client."""
    queries = [q.strip() for q in args.query.split(",") if q.strip()]

    async with AsyncBookstoreClient(
        base_url=config.API_BASE_URL,
        timeout=config.DEFAULT_TIMEOUT,
        max_concurrent=config.DEFAULT_MAX_CONCURRENT
    ) as client:
        logger.info(f"Searching for: {queries}")
        results = await client.search_multiple(queries)

    books = deduplicate_books([book for result in results for book in result])
    logger.info(f"Found {len(books)} books")
    display_books(books, args.format)
    return 0


def cart_command(args, config: Config) -> int:
    cart = CartStore(build_storage(config))

    if args.action == "add":
        with make_client(config) as client:
            book = client.get_book(args.book_id)
        if book is None:
            logger.error(f"Book {args.book_id} not found")
            return 1
        cart.add(book)
        print(f'Added "{book.name}" to cart.')

    elif args.action == "remove":
        cart.remove(args.book_id)

    elif args.action == "qty":
        cart.set_quantity(args.book_id, args.quantity)

    elif args.action == "clear":
        cart.clear()
        print("Cart cleared.")
        return 0

    display_cart(cart, args.format)
    return 0


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Bookstore - catalog and cart CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s books --category 1
  %(prog)s search "gatsby" --format compact
  %(prog)s search "fiction,history" --async
  %(prog)s cart add 2
  %(prog)s cart qty 2 3
  %(prog)s cart show
        """
    )
    parser.add_argument("--format", choices=["table", "json", "compact"], default="table", help="Output format")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    books_parser = subparsers.add_parser("books", help="List books")
    books_parser.add_argument("--category", type=int, help="Only books in this category id")

    subparsers.add_parser("categories", help="List categories")

    search_parser = subparsers.add_parser("search", help="Search books or categories")
    search_parser.add_argument("query", help="Search query (comma-separated with --async)")
    search_parser.add_argument("--category", type=int, help="Search inside this category id")
    search_parser.add_argument("--categories", action="store_true", help="Search categories instead of books")
    search_parser.add_argument("--async", dest="use_async", action="store_true", help="Use async client")

    cart_parser = subparsers.add_parser("cart", help="Manage the cart")
    cart_sub = cart_parser.add_subparsers(dest="action", required=True)
    cart_sub.add_parser("show", help="Show cart contents and totals")
    add_parser = cart_sub.add_parser("add", help="Add one unit of a book")
    add_parser.add_argument("book_id", type=int)
    remove_parser = cart_sub.add_parser("remove", help="Remove a book")
    remove_parser.add_argument("book_id", type=int)
    qty_parser = cart_sub.add_parser("qty", help="Set a book's quantity (0 removes it)")
    qty_parser.add_argument("book_id", type=int)
    qty_parser.add_argument("quantity", type=int)
    cart_sub.add_parser("clear", help="Empty the cart")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.command == "search" and args.use_async and (args.categories or args.category is not None):
        parser.error("--async searches books across all categories; drop --category/--categories")

    config = Config()
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    try:
        if args.command == "books":
            code = list_books(args, config)
        elif args.command == "categories":
            code = list_categories(args, config)
        elif args.command == "search":
            if args.use_async:
                code = asyncio.run(search_async(args, config))
            else:
                code = search_sync(args, config)
        else:
            code = cart_command(args, config)

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Error: {e}", exc_info=True)
        sys.exit(1)

    sys.exit(code)


if __name__ == "__main__":
    main()
