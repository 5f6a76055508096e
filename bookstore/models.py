"""Data models for the bookstore catalog, cart and UI state."""
from dataclasses import dataclass, field
from typing import Optional, List


@dataclass
class Book:
    """Catalog book. ``id`` stays None until the server assigns one."""
    id: Optional[int] = None
    category_id: int = 0
    name: str = ""
    author: str = ""
    description: str = ""
    value: float = 0.0
    publish_date: str = ""


@dataclass
class Category:
    """Catalog category."""
    id: Optional[int] = None
    name: str = ""
    # Denormalized titles for display only
    books: Optional[List[str]] = None

    @property
    def books_str(self) -> str:
        """Format contained titles as comma-separated string."""
        return ", ".join(self.books) if self.books else "None"


@dataclass
class CartItem:
    """A (book, quantity) pairing inside the cart."""
    book: Book
    quantity: int = 1

    @property
    def subtotal(self) -> float:
        return self.book.value * self.quantity


@dataclass(frozen=True)
class BookstoreState:
    """Immutable snapshot emitted by the state container after each change."""
    books: List[Book] = field(default_factory=list)
    categories: List[Category] = field(default_factory=list)
    filtered_books: List[Book] = field(default_factory=list)
    show_category_form: bool = False
    editing_category: Optional[Category] = None
    category_form: Category = field(default_factory=Category)
    show_book_form: bool = False
    editing_book: Optional[Book] = None
    book_form: Book = field(default_factory=Book)
    cart_items: List[CartItem] = field(default_factory=list)
