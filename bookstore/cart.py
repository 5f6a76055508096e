"""Cart store: authoritative line items, persistence and derived totals."""
import copy
import json
import logging
from typing import List, Optional

from bookstore.models import Book, CartItem
from bookstore.parse import parse_cart_items, cart_items_to_json

logger = logging.getLogger(__name__)

STORAGE_KEY = "bookstore-cart"
TAX_RATE = 0.10


class CartStore:
    """
    Owns the cart's line items and persists them to a key-value slot.

    At most one line item exists per book id and quantities stay >= 1.
    Persistence is best effort: load and save failures are logged and the
    cart carries on in memory.
    """

    def __init__(self, storage=None, storage_key: str = STORAGE_KEY):
        """
        Initialize the cart and load any persisted line items.

        Args:
            storage: Object with get_item/set_item/remove_item, or None to
                disable persistence
            storage_key: Slot key the cart is stored under
        """
        self.storage = storage
        self.storage_key = storage_key
        self._items: List[CartItem] = self._load()

    def _load(self) -> List[CartItem]:
        if self.storage is None:
            return []

        try:
            stored = self.storage.get_item(self.storage_key)
            if not stored:
                logger.info("No stored cart found")
                return []
            items = parse_cart_items(json.loads(stored))
            logger.info(f"Loaded {len(items)} cart items from storage")
            return items
        except Exception as e:
            logger.warning(f"Failed to load cart from storage: {e}")
            return []

    def _save(self):
        if self.storage is None:
            return

        try:
            self.storage.set_item(self.storage_key, cart_items_to_json(self._items))
        except Exception as e:
            logger.warning(f"Failed to save cart to storage: {e}")

    def _find(self, book_id: Optional[int]) -> Optional[CartItem]:
        # Books without an id never match an existing line item
        if book_id is None:
            return None
        return next((item for item in self._items if item.book.id == book_id), None)

    def get_items(self) -> List[CartItem]:
        """Return a copy of the line items; mutating it leaves the cart untouched."""
        return copy.deepcopy(self._items)

    def add(self, book: Book):
        """Add one unit of ``book``, merging with an existing line item by id."""
        existing = self._find(book.id)
        if existing:
            existing.quantity += 1
        else:
            self._items.append(CartItem(book=copy.copy(book), quantity=1))

        logger.debug(f"Added '{book.name}' to cart, item count now {self.item_count()}")
        self._save()

    def set_quantity(self, book_id: Optional[int], quantity: int):
        """Overwrite a line item's quantity; zero or less removes it."""
        if quantity <= 0:
            self.remove(book_id)
            return

        item = self._find(book_id)
        if item:
            item.quantity = quantity
        self._save()

    def remove(self, book_id: Optional[int]):
        """Drop every line item for ``book_id``; None drops the items without an id."""
        self._items = [item for item in self._items if item.book.id != book_id]
        self._save()

    def clear(self):
        self._items = []
        self._save()

    def is_in_cart(self, book_id: Optional[int]) -> bool:
        return self._find(book_id) is not None

    def get_item_quantity(self, book_id: Optional[int]) -> int:
        item = self._find(book_id)
        return item.quantity if item else 0

    def subtotal(self) -> float:
        return sum(item.subtotal for item in self._items)

    def tax(self) -> float:
        return self.subtotal() * TAX_RATE

    def total(self) -> float:
        return self.subtotal() + self.tax()

    def item_count(self) -> int:
        """Sum of quantities, not the number of line items."""
        return sum(item.quantity for item in self._items)
