"""Application context: the one owner of the per-session services."""
import logging
from typing import Optional

from bookstore.async_client import AsyncBookstoreClient
from bookstore.cart import CartStore
from bookstore.config import Config
from bookstore.notifications import ConfirmationService, NotificationCenter
from bookstore.state import StateContainer
from bookstore.storage import build_storage

logger = logging.getLogger(__name__)


class AppContext:
    """
    Services shared by the feature controllers of one running session.

    Build it once with ``AppContext.create`` (or the constructor when
    injecting fakes) and pass it to every controller; ``aclose`` releases
    the state subscriptions, the HTTP client and the storage backend.
    """

    def __init__(
        self,
        catalog,
        cart: CartStore,
        notifier: Optional[NotificationCenter] = None,
        confirmation: Optional[ConfirmationService] = None,
        storage=None,
        config: Optional[Config] = None
    ):
        self.config = config or Config()
        self.catalog = catalog
        self.cart = cart
        self.state = StateContainer(cart)
        self.notifier = notifier or NotificationCenter()
        self.confirmation = confirmation or ConfirmationService()
        self.storage = storage

    @classmethod
    def create(cls, config: Optional[Config] = None) -> "AppContext":
        """
        Wire up the production services from configuration.

        Args:
            config: Config instance (defaults to environment-driven Config())

        Returns:
            A ready AppContext
        """
        config = config or Config()
        storage = build_storage(config)
        catalog = AsyncBookstoreClient(
            base_url=config.API_BASE_URL,
            timeout=config.DEFAULT_TIMEOUT,
            max_concurrent=config.DEFAULT_MAX_CONCURRENT
        )
        logger.info(f"Bookstore context created for {config.API_BASE_URL}")
        return cls(catalog=catalog, cart=CartStore(storage), storage=storage, config=config)

    async def aclose(self):
        self.state.dispose()
        self.confirmation.cancel()
        close = getattr(self.catalog, "close", None)
        if close is not None:
            await close()
        if self.storage is not None:
            self.storage.close()
        logger.info("Bookstore context closed")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
