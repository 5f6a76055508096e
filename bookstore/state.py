"""Application state container shared by the feature controllers."""
import dataclasses
from datetime import date
from typing import Callable, List, Optional

from bookstore.cart import CartStore
from bookstore.models import Book, BookstoreState, CartItem, Category
from bookstore.observable import SnapshotChannel, Subscription


class StateContainer:
    """
    Single source of truth for UI-observable state.

    Every mutation builds a new ``BookstoreState`` by shallow-merging the
    changed fields into the current one and publishes it once. ``cart_items``
    is a read-through copy of the cart store, refreshed right after each
    cart call made through this container.
    """

    def __init__(self, cart: CartStore):
        self.cart = cart
        self._channel: SnapshotChannel[BookstoreState] = SnapshotChannel(
            BookstoreState(cart_items=cart.get_items())
        )

    @property
    def state(self) -> BookstoreState:
        return self._channel.value

    def subscribe(self, callback: Callable[[BookstoreState], None], replay: bool = True) -> Subscription:
        return self._channel.subscribe(callback, replay=replay)

    def update_state(self, **changes):
        self._channel.publish(dataclasses.replace(self.state, **changes))

    def dispose(self):
        self._channel.close()

    # Setters

    def set_books(self, books: List[Book]):
        self.update_state(books=list(books))

    def set_categories(self, categories: List[Category]):
        self.update_state(categories=list(categories))

    def set_filtered_books(self, filtered_books: List[Book]):
        self.update_state(filtered_books=list(filtered_books))

    def set_show_category_form(self, show: bool):
        self.update_state(show_category_form=show)

    def set_editing_category(self, category: Optional[Category]):
        self.update_state(editing_category=category)

    def set_category_form(self, form: Category):
        self.update_state(category_form=form)

    def set_show_book_form(self, show: bool):
        self.update_state(show_book_form=show)

    def set_book_form(self, form: Book):
        self.update_state(book_form=form)

    def set_editing_book(self, book: Optional[Book]):
        self.update_state(editing_book=book)

    def set_cart_items(self, items: List[CartItem]):
        self.update_state(cart_items=list(items))

    def reset_category_form(self):
        self.update_state(category_form=Category(name=""))

    def reset_book_form(self):
        """Blank book draft with today's date prefilled."""
        self.update_state(book_form=Book(publish_date=date.today().isoformat()))

    # Getters

    def get_books(self) -> List[Book]:
        return list(self.state.books)

    def get_categories(self) -> List[Category]:
        return list(self.state.categories)

    def get_filtered_books(self) -> List[Book]:
        return list(self.state.filtered_books)

    def get_show_category_form(self) -> bool:
        return self.state.show_category_form

    def get_editing_category(self) -> Optional[Category]:
        return self.state.editing_category

    def get_category_form(self) -> Category:
        return self.state.category_form

    def get_show_book_form(self) -> bool:
        return self.state.show_book_form

    def get_editing_book(self) -> Optional[Book]:
        return self.state.editing_book

    def get_book_form(self) -> Book:
        return self.state.book_form

    def get_cart_items(self) -> List[CartItem]:
        return self.cart.get_items()

    def update_book_in_books(self, book_id: int, updated_book: Book):
        """Replace the book whose id matches ``book_id``; no-op if absent."""
        books = [updated_book if book.id == book_id else book for book in self.state.books]
        self.update_state(books=books)

    # Cart proxies

    def _sync_cart(self):
        self.update_state(cart_items=self.cart.get_items())

    def add_to_cart(self, book: Book):
        self.cart.add(book)
        self._sync_cart()

    def update_cart_item_quantity(self, book_id: Optional[int], quantity: int):
        self.cart.set_quantity(book_id, quantity)
        self._sync_cart()

    def remove_from_cart(self, book_id: Optional[int]):
        self.cart.remove(book_id)
        self._sync_cart()

    def clear_cart(self):
        self.cart.clear()
        self._sync_cart()
