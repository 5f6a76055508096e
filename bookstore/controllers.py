"""Feature controllers: per-screen coordinators over the shared application context."""
import dataclasses
import logging
from datetime import datetime, timezone
from typing import List, Optional

from bookstore.models import Book, BookstoreState, CartItem, Category

logger = logging.getLogger(__name__)

BOOK_SUGGESTIONS = [
    "fiction", "mystery", "romance", "science fiction", "biography",
    "history", "self-help", "cooking", "travel", "children"
]

CATEGORY_SUGGESTIONS = [
    "Fiction", "Non-Fiction", "Science", "History", "Biography",
    "Children", "Cooking", "Travel", "Health", "Technology"
]

PRICE_RANGES = {
    "0-20": lambda price: 0 <= price <= 20,
    "20-50": lambda price: 20 < price <= 50,
    "50-100": lambda price: 50 < price <= 100,
    "100+": lambda price: price > 100,
}


def _publish_datetime(book: Book) -> datetime:
    """Parse a book's publish date for sorting; unknown formats sort first."""
    value = (book.publish_date or "").strip()
    if not value:
        return datetime.min
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        try:
            parsed = datetime.strptime(value, "%m/%d/%Y")
        except ValueError:
            return datetime.min
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _date_input_value(publish_date: str) -> str:
    """Reduce an ISO timestamp to the YYYY-MM-DD a date field expects."""
    parsed = _publish_datetime(Book(publish_date=publish_date))
    return parsed.date().isoformat() if parsed != datetime.min else ""


class FeatureController:
    """
    Base for the screen controllers.

    ``start`` subscribes to state snapshots, ``stop`` unsubscribes. Loads go
    through the async catalog; a failed load is logged and leaves the state
    untouched.
    """

    def __init__(self, context):
        self.context = context
        self.state = context.state
        self.catalog = context.catalog
        self.notifier = context.notifier
        self.confirmation = context.confirmation
        self._subscription = None

    async def start(self):
        if self._subscription is None:
            self._subscription = self.state.subscribe(self.on_state)

    def stop(self):
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def on_state(self, state: BookstoreState):
        pass

    async def load_books(self) -> bool:
        books = await self.catalog.get_books()
        if books is None:
            logger.error("Error loading books")
            return False
        self.state.set_books(books)
        return True

    async def load_categories(self) -> bool:
        categories = await self.catalog.get_categories()
        if categories is None:
            logger.error("Error loading categories")
            return False
        self.state.set_categories(categories)
        return True

    def filter_by_category(self, category_id: int) -> List[Book]:
        filtered = [book for book in self.state.get_books() if book.category_id == category_id]
        self.state.set_filtered_books(filtered)
        return filtered

    def add_to_cart(self, book: Book):
        logger.info(f"Adding to cart: {book.name}")
        self.state.add_to_cart(book)
        self.notifier.success(
            "Added to Cart!",
            f'"{book.name}" by {book.author} has been added to your cart.'
        )


class ShopController(FeatureController):
    """Catalog listing with category filtering."""

    def __init__(self, context):
        super().__init__(context)
        self.books: List[Book] = []
        self.categories: List[Category] = []
        self.filtered_books: List[Book] = []

    async def start(self):
        await super().start()
        await self.load_books()
        await self.load_categories()

    def on_state(self, state: BookstoreState):
        self.books = state.books
        self.categories = state.categories
        self.filtered_books = state.filtered_books


class SearchController(FeatureController):
    """
    Book and category search with client-side filters.

    Only the latest search may publish results: each request takes a
    sequence number and a response that arrives after a newer request was
    issued is discarded.
    """

    def __init__(self, context):
        super().__init__(context)
        self.search_query = ""
        self.search_type = "books"
        self.selected_search_category: Optional[int] = None
        self.selected_category: Optional[int] = None
        self.price_range = ""
        self.sort_by = "name"
        self.is_searching = False
        self.show_books_results = False
        self.show_categories_results = False
        self.search_results: List[Book] = []
        self.filtered_books: List[Book] = []
        self.filtered_categories: List[Category] = []
        self.suggestions: List[str] = []
        self.selected_browse_category: Optional[int] = None
        self.category_books: List[Book] = []
        self.all_books: List[Book] = []
        self.categories: List[Category] = []
        self._search_sequence = 0

    async def start(self):
        await super().start()
        await self.load_categories()
        await self.load_books()

    def on_state(self, state: BookstoreState):
        self.all_books = state.books
        self.categories = state.categories
        self.filtered_books = state.filtered_books

    def set_search_type(self, search_type: str):
        if search_type not in ("books", "categories"):
            raise ValueError(f"Unknown search type: {search_type}")
        self.search_type = search_type
        self.clear_results()
        self.selected_browse_category = None
        self.category_books = []

    async def search(self, query: Optional[str] = None):
        """
        Run a search for ``query`` (or the current query).

        A blank query clears the results instead.
        """
        if query is not None:
            self.search_query = query
        if not self.search_query.strip():
            self.clear_results()
            return

        self.generate_suggestions(self.search_query)
        self._search_sequence += 1
        sequence = self._search_sequence
        self.is_searching = True

        if self.search_type == "books":
            await self._search_books(sequence)
        else:
            await self._search_categories(sequence)

    def _is_stale(self, sequence: int) -> bool:
        if sequence != self._search_sequence:
            logger.info(f"Discarding stale search response #{sequence} (latest #{self._search_sequence})")
            return True
        return False

    async def _search_books(self, sequence: int):
        self.show_categories_results = False
        query = self.search_query

        if self.selected_search_category:
            results = await self.catalog.search_books_in_category(query, self.selected_search_category)
        else:
            results = await self.catalog.search_books_with_category(query)

        if self._is_stale(sequence):
            return
        if results is None:
            logger.error(f"Error searching books for '{query}'")
            results = []

        self.search_results = results
        self.apply_filters()
        self.show_books_results = True
        self.is_searching = False

    async def _search_categories(self, sequence: int):
        self.show_books_results = False
        query = self.search_query

        results = await self.catalog.search_categories(query)

        if self._is_stale(sequence):
            return
        if results is None:
            logger.error(f"Error searching categories for '{query}'")
            results = []

        self.filtered_categories = results
        self.show_categories_results = True
        self.is_searching = False

    def apply_filters(self) -> List[Book]:
        """Filter and sort the current search results into the shared state."""
        filtered = list(self.search_results)

        if self.selected_category:
            filtered = [book for book in filtered if book.category_id == self.selected_category]

        in_range = PRICE_RANGES.get(self.price_range)
        if in_range:
            filtered = [book for book in filtered if in_range(book.value)]

        if self.sort_by == "name":
            filtered.sort(key=lambda book: book.name.casefold())
        elif self.sort_by == "author":
            filtered.sort(key=lambda book: book.author.casefold())
        elif self.sort_by == "price":
            filtered.sort(key=lambda book: book.value)
        elif self.sort_by == "publishDate":
            filtered.sort(key=_publish_datetime)

        self.state.set_filtered_books(filtered)
        return filtered

    def generate_suggestions(self, query: str) -> List[str]:
        if len(query) < 2:
            self.suggestions = []
            return self.suggestions

        pool = BOOK_SUGGESTIONS if self.search_type == "books" else CATEGORY_SUGGESTIONS
        needle = query.lower()
        self.suggestions = [s for s in pool if needle in s.lower()][:5]
        return self.suggestions

    async def select_suggestion(self, suggestion: str):
        self.suggestions = []
        await self.search(suggestion)

    def browse_category(self, category_id: int) -> List[Book]:
        self.clear_results()
        self.selected_browse_category = category_id
        if not any(c.id == category_id for c in self.categories):
            self.category_books = []
            return self.category_books
        self.category_books = self.filter_by_category(category_id)
        return self.category_books

    def get_category_name(self, category_id: int) -> str:
        category = next((c for c in self.categories if c.id == category_id), None)
        return category.name if category else ""

    def clear_results(self):
        # Also invalidates any search still in flight
        self._search_sequence += 1
        self.is_searching = False
        self.show_books_results = False
        self.show_categories_results = False
        self.search_results = []
        self.filtered_categories = []
        self.suggestions = []
        self.state.set_filtered_books([])

    async def clear_search(self):
        self.search_query = ""
        self.selected_category = None
        self.selected_search_category = None
        self.price_range = ""
        self.sort_by = "name"
        self.clear_results()
        await self.load_categories()


class AdminController(FeatureController):
    """Category and book maintenance through the shared form state."""

    def __init__(self, context):
        super().__init__(context)
        self.books: List[Book] = []
        self.categories: List[Category] = []

    async def start(self):
        await super().start()
        await self.load_books()
        await self.load_categories()

    def on_state(self, state: BookstoreState):
        self.books = state.books
        self.categories = state.categories

    # Categories

    def open_category_form(self, category: Optional[Category] = None):
        self.state.set_show_category_form(True)
        if category:
            self.state.set_editing_category(category)
            self.state.set_category_form(dataclasses.replace(category))
        else:
            self.state.set_editing_category(None)
            self.state.reset_category_form()

    def cancel_category_edit(self):
        self.state.set_show_category_form(False)
        self.state.set_editing_category(None)
        self.state.reset_category_form()

    async def submit_category(self) -> bool:
        form = self.state.get_category_form()
        if not form.name.strip():
            self.notifier.warning("Invalid Category", "Please enter a category name.")
            return False

        editing = self.state.get_editing_category()
        if editing:
            ok = await self.catalog.update_category(editing.id, form)
            action = "Updated"
        else:
            ok = await self.catalog.create_category(form) is not None
            action = "Created"

        if not ok:
            logger.error(f"Error saving category '{form.name}'")
            self.notifier.error("Save Failed", "Failed to save category. Please try again.")
            return False

        await self.load_categories()
        self.cancel_category_edit()
        self.notifier.success(
            f"Category {action}",
            f'Category "{form.name}" has been {action.lower()} successfully.'
        )
        return True

    async def delete_category(self, category_id: int) -> bool:
        category = next((c for c in self.state.get_categories() if c.id == category_id), None)
        category_name = category.name if category else "this category"

        result = await self.confirmation.confirm_delete(category_name)
        if not result.confirmed:
            return False

        if not await self.catalog.delete_category(category_id):
            logger.error(f"Error deleting category {category_id}")
            self.notifier.error("Delete Failed", "Failed to delete category. Please try again.")
            return False

        await self.load_categories()
        self.notifier.success(
            "Category Deleted",
            f'Category "{category_name}" has been deleted successfully.'
        )
        return True

    # Books

    def open_book_form(self, book: Optional[Book] = None):
        self.state.set_show_book_form(True)
        if book:
            self.state.set_editing_book(book)
            self.state.set_book_form(
                dataclasses.replace(book, publish_date=_date_input_value(book.publish_date))
            )
        else:
            self.state.set_editing_book(None)
            self.state.reset_book_form()

    def edit_book(self, book: Book):
        self.state.set_editing_book(book)
        self.state.set_book_form(dataclasses.replace(book))
        self.state.set_show_book_form(True)

    def cancel_book_edit(self):
        self.state.set_show_book_form(False)
        self.state.set_editing_book(None)
        self.state.reset_book_form()

    async def submit_book(self) -> bool:
        form = self.state.get_book_form()
        editing = self.state.get_editing_book()

        if editing:
            if not await self.catalog.update_book(editing.id, form):
                logger.error(f"Error updating book {editing.id}")
                self.notifier.error("Update Failed", "Failed to update book. Please try again.")
                return False
            self.state.update_book_in_books(editing.id, dataclasses.replace(form, id=editing.id))
            await self.load_books()
            self.state.set_editing_book(None)
            self.state.reset_book_form()
            self.notifier.success("Book Updated", f'Book "{form.name}" has been updated successfully.')
            return True

        if not form.category_id or form.category_id <= 0:
            self.notifier.warning(
                "Invalid Category",
                "Please select a valid category before saving the book."
            )
            return False

        if await self.catalog.create_book(form) is None:
            logger.error(f"Error creating book '{form.name}'")
            self.notifier.error("Create Failed", "Failed to create book. Please try again.")
            return False

        await self.load_books()
        self.state.set_editing_book(None)
        self.state.reset_book_form()
        self.notifier.success("Book Created", "Book has been created successfully.")
        return True

    async def delete_book(self, book_id: int) -> bool:
        book = next((b for b in self.state.get_books() if b.id == book_id), None)
        book_name = book.name if book else "this book"

        result = await self.confirmation.confirm_delete(book_name)
        if not result.confirmed:
            return False

        if not await self.catalog.delete_book(book_id):
            logger.error(f"Error deleting book {book_id}")
            self.notifier.error("Delete Failed", "Failed to delete book. Please try again.")
            return False

        await self.load_books()
        self.notifier.success("Book Deleted", f'Book "{book_name}" has been deleted successfully.')
        return True


class CartController(FeatureController):
    """Cart screen: quantities, removal and checkout."""

    def __init__(self, context):
        super().__init__(context)
        self.cart_items: List[CartItem] = []
        self.categories: List[Category] = []

    def on_state(self, state: BookstoreState):
        self.cart_items = state.cart_items
        self.categories = state.categories

    def _item_at(self, index: int) -> Optional[CartItem]:
        if 0 <= index < len(self.cart_items):
            return self.cart_items[index]
        return None

    def update_quantity(self, index: int, new_quantity: int) -> bool:
        """Set the quantity of the line item at ``index``; only positive values apply."""
        item = self._item_at(index)
        if new_quantity <= 0 or item is None or item.book.id is None:
            return False

        self.state.update_cart_item_quantity(item.book.id, new_quantity)
        self.notifier.info(
            "Quantity Updated",
            f'Quantity of "{item.book.name or "Item"}" updated to {new_quantity}.'
        )
        return True

    async def remove_from_cart(self, index: int) -> bool:
        item = self._item_at(index)
        if item is None:
            return False

        result = await self.confirmation.confirm_delete(item.book.name)
        if not result.confirmed:
            return False

        self.state.remove_from_cart(item.book.id)
        self.notifier.success(
            "Removed from Cart",
            f'"{item.book.name}" has been removed from your cart.'
        )
        return True

    def subtotal(self) -> float:
        return self.context.cart.subtotal()

    def tax(self) -> float:
        return self.context.cart.tax()

    def total(self) -> float:
        return self.context.cart.total()

    async def buy_cart(self) -> bool:
        total = self.total()

        result = await self.confirmation.confirm_custom_action(
            "Confirm Purchase",
            f"Are you sure you want to complete your purchase totaling ${total:.2f}? This will clear your cart.",
            "Purchase"
        )
        if not result.confirmed:
            return False

        self.notifier.success(
            "Order Completed!",
            f"Thank you for your purchase! Your order totaling ${total:.2f} has been processed successfully."
        )
        self.state.clear_cart()
        return True
