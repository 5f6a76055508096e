"""Publish/subscribe channel carrying immutable snapshots."""
import logging
from typing import Callable, Generic, List, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Subscription:
    """Handle returned by ``SnapshotChannel.subscribe``; call ``unsubscribe`` to stop."""

    def __init__(self, channel: "SnapshotChannel", callback: Callable):
        self._channel = channel
        self._callback = callback
        self.active = True

    def unsubscribe(self):
        if self.active:
            self.active = False
            self._channel._remove(self._callback)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.unsubscribe()


class SnapshotChannel(Generic[T]):
    """
    Holds the latest value and pushes every new one to subscribers.

    Subscribers are called synchronously, in subscription order, from
    inside ``publish``.
    """

    def __init__(self, initial: T):
        self._value = initial
        self._subscribers: List[Callable[[T], None]] = []

    @property
    def value(self) -> T:
        return self._value

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, callback: Callable[[T], None], replay: bool = True) -> Subscription:
        """
        Register a callback for future values.

        Args:
            callback: Called with each published value
            replay: Also call it right away with the current value

        Returns:
            Subscription handle
        """
        self._subscribers.append(callback)
        subscription = Subscription(self, callback)
        if replay:
            self._deliver(callback, self._value)
        return subscription

    def publish(self, value: T):
        self._value = value
        for callback in list(self._subscribers):
            self._deliver(callback, value)

    def close(self):
        """Drop every subscriber."""
        self._subscribers.clear()

    def _deliver(self, callback: Callable[[T], None], value: T):
        try:
            callback(value)
        except Exception:
            logger.exception("Subscriber %r failed", callback)

    def _remove(self, callback: Callable):
        try:
            self._subscribers.remove(callback)
        except ValueError:
            pass
