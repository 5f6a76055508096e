"""Tests for the cart store."""
import json

import pytest

from bookstore.cart import CartStore, STORAGE_KEY
from bookstore.models import Book
from bookstore.storage import MemoryStorage

BOOK_A = Book(id=1, category_id=1, name="Book A", author="Author A", value=19.99, publish_date="2020-01-01")
BOOK_B = Book(id=2, category_id=1, name="Book B", author="Author B", value=29.99, publish_date="2021-01-01")


class FailingStorage:
    """Storage whose every operation raises."""

    def get_item(self, key):
        raise OSError("storage unavailable")

    def set_item(self, key, value):
        raise OSError("disk full")

    def remove_item(self, key):
        raise OSError("storage unavailable")


def test_repeated_add_increments_single_line_item():
    """Test that adding the same book merges into one line item."""
    cart = CartStore()
    for _ in range(4):
        cart.add(BOOK_A)

    items = cart.get_items()
    assert len(items) == 1
    assert items[0].quantity == 4


def test_add_book_without_id_always_appends():
    """Test that books without an id never merge."""
    cart = CartStore()
    unsaved = Book(name="Draft", value=5.0)
    cart.add(unsaved)
    cart.add(unsaved)

    assert [item.quantity for item in cart.get_items()] == [1, 1]


def test_add_none_raises():
    """Test that a missing book is a caller error."""
    with pytest.raises(AttributeError):
        CartStore().add(None)


@pytest.mark.parametrize("quantity", [0, -5])
def test_set_quantity_non_positive_removes(quantity):
    """Test that zero or negative quantities remove the line item."""
    cart = CartStore()
    cart.add(BOOK_A)
    cart.add(BOOK_B)

    cart.set_quantity(BOOK_A.id, quantity)

    assert [item.book.id for item in cart.get_items()] == [BOOK_B.id]


def test_set_quantity_overwrites_and_ignores_missing():
    """Test overwriting a quantity and targeting an unknown book."""
    cart = CartStore()
    cart.add(BOOK_A)

    cart.set_quantity(BOOK_A.id, 7)
    cart.set_quantity(99, 3)

    items = cart.get_items()
    assert len(items) == 1
    assert items[0].quantity == 7


def test_remove_missing_leaves_cart_unchanged():
    """Test that removing an unknown id is a no-op."""
    cart = CartStore()
    cart.add(BOOK_A)
    before = cart.get_items()

    cart.remove(42)

    assert cart.get_items() == before


def test_totals():
    """Test subtotal, tax and total."""
    cart = CartStore()
    cart.add(BOOK_A)
    cart.add(BOOK_A)
    cart.add(BOOK_B)

    assert cart.subtotal() == pytest.approx(69.97)
    assert cart.tax() == pytest.approx(6.997)
    assert cart.total() == pytest.approx(76.967)
    assert cart.item_count() == 3


def test_get_items_is_a_copy():
    """Test that callers cannot mutate the cart through get_items."""
    cart = CartStore()
    cart.add(BOOK_A)

    items = cart.get_items()
    items[0].quantity = 50
    items[0].book.value = 0
    items.clear()

    assert cart.get_item_quantity(BOOK_A.id) == 1
    assert cart.subtotal() == pytest.approx(19.99)


def test_added_book_is_copied():
    """Test that later edits to the caller's book don't leak into the cart."""
    book = Book(id=5, name="Mutable", value=10.0)
    cart = CartStore()
    cart.add(book)
    book.value = 1000.0

    assert cart.subtotal() == pytest.approx(10.0)


def test_is_in_cart_and_quantity():
    """Test lookup helpers."""
    cart = CartStore()
    cart.add(BOOK_B)

    assert cart.is_in_cart(BOOK_B.id)
    assert not cart.is_in_cart(BOOK_A.id)
    assert cart.get_item_quantity(BOOK_A.id) == 0


def test_persistence_round_trip():
    """Test that a fresh cart on the same storage reproduces the items."""
    storage = MemoryStorage()
    cart = CartStore(storage)
    cart.add(BOOK_A)
    cart.add(BOOK_B)
    cart.set_quantity(BOOK_B.id, 3)

    reloaded = CartStore(storage)

    assert reloaded.get_items() == cart.get_items()


def test_clear_persists_empty_list():
    """Test that clearing writes an empty list."""
    storage = MemoryStorage()
    cart = CartStore(storage)
    cart.add(BOOK_A)
    cart.clear()

    assert storage.get_item(STORAGE_KEY) == "[]"
    assert CartStore(storage).get_items() == []


def test_loaded_cart_drops_empty_and_merges_duplicates():
    """Test that a stored cart is brought back to one positive line item per id."""
    stored = json.dumps([
        {"book": {"id": 1, "name": "Book A", "value": 19.99}, "quantity": 0},
        {"book": {"id": 2, "name": "Book B", "value": 29.99}, "quantity": 1},
        {"book": {"id": 2, "name": "Book B", "value": 29.99}, "quantity": 2},
    ])
    cart = CartStore(MemoryStorage({STORAGE_KEY: stored}))

    assert [(item.book.id, item.quantity) for item in cart.get_items()] == [(2, 3)]

    cart.remove(2)
    assert cart.get_items() == []


def test_book_without_id_can_be_removed():
    """Test that id-less line items are removed by a None id."""
    cart = CartStore()
    cart.add(BOOK_A)
    cart.add(Book(name="Draft", value=5.0))
    cart.add(Book(name="Draft", value=5.0))

    cart.remove(None)
    assert [item.book.id for item in cart.get_items()] == [BOOK_A.id]

    cart.add(Book(name="Draft", value=5.0))
    cart.set_quantity(None, 0)
    assert cart.total() == pytest.approx(BOOK_A.value * 1.1)


def test_corrupt_storage_yields_empty_cart():
    """Test that non-JSON data doesn't raise."""
    storage = MemoryStorage({STORAGE_KEY: "{not json"})

    assert CartStore(storage).get_items() == []


def test_wrong_shape_yields_empty_cart():
    """Test that valid JSON of the wrong shape is ignored."""
    storage = MemoryStorage({STORAGE_KEY: '{"book": 1}'})

    assert CartStore(storage).get_items() == []


def test_failing_storage_is_absorbed():
    """Test that load and save failures never reach the caller."""
    cart = CartStore(FailingStorage())
    cart.add(BOOK_A)
    cart.remove(BOOK_A.id)
    cart.add(BOOK_B)

    assert cart.item_count() == 1


def test_no_storage_disables_persistence():
    """Test that a cart without storage works in memory."""
    cart = CartStore(None)
    cart.add(BOOK_A)

    assert cart.item_count() == 1
