"""
Stock ledger: a continuously refreshed, read-only cache of every product's
current stock, fed by a live listener on the inventory collection.

The cache is eventually consistent with the store. It is used to validate
orders before a write is attempted; the guarded batch write in the store is
what actually prevents overselling. ``last_refreshed_at`` tells callers how
old the cached view is.
"""

import logging
from collections.abc import Callable, Iterable
from datetime import datetime

from pydantic import ValidationError

from config.config import InventoryConfig
from connectors.document_store import Document, DocumentStore, ListenerRegistration
from models.inventory import Product

from .notifications import NotificationCenter

logger = logging.getLogger(__name__)

ProductsListener = Callable[[list[Product]], None]


def low_stock_items(products: Iterable[Product], threshold: int) -> list[Product]:
    """Products that are in stock but at or under ``threshold`` units."""
    return [p for p in products if 0 < p.current_stock <= threshold]


class LedgerSubscription:
    """Handle returned by StockLedger.subscribe."""

    def __init__(self, ledger: "StockLedger", listener: ProductsListener):
        self._ledger = ledger
        self._listener = listener

    def cancel(self) -> None:
        if self._listener in self._ledger._listeners:
            self._ledger._listeners.remove(self._listener)


class StockLedger:
    """Single writer (the store listener), many readers."""

    def __init__(
        self,
        store: DocumentStore,
        config: InventoryConfig | None = None,
        notifications: NotificationCenter | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.config = config or InventoryConfig()
        self.notifications = notifications
        self._clock = clock
        self._products: dict[str, Product] = {}
        self._listeners: list[ProductsListener] = []
        self._registration: ListenerRegistration | None = None
        self.last_refreshed_at: datetime | None = None
        # Incremented on every snapshot
        self.version = 0

    # --- Lifecycle --- #

    async def start(self) -> None:
        """Attach to the inventory collection; returns after the first snapshot."""
        if self._registration is not None:
            return
        self._registration = await self.store.subscribe(
            self.config.inventory_collection, self._on_snapshot
        )
        logger.info(f"Stock ledger started with {len(self._products)} products")

    def stop(self) -> None:
        if self._registration is not None:
            self._registration.cancel()
            self._registration = None
            logger.info("Stock ledger stopped")

    @property
    def is_running(self) -> bool:
        return self._registration is not None

    @property
    def is_loaded(self) -> bool:
        return self.last_refreshed_at is not None

    # --- Change feed --- #

    def subscribe(self, on_change: ProductsListener) -> LedgerSubscription:
        """
        Register for the full product list on every refresh. If a snapshot is
        already loaded it is delivered immediately.
        """
        if not callable(on_change):
            raise TypeError("on_change must be callable")
        self._listeners.append(on_change)
        if self.is_loaded:
            on_change(self.products)
        return LedgerSubscription(self, on_change)

    def _on_snapshot(self, docs: list[Document]) -> None:
        products: dict[str, Product] = {}
        for doc in docs:
            try:
                product = Product.from_document(doc)
            except ValidationError as e:
                logger.warning(f"Skipping malformed inventory document {doc.get('id')}: {e.error_count()} error(s)")
                continue
            products[product.id] = product
        self._products = products
        self.last_refreshed_at = self._clock()
        self.version += 1
        logger.debug(f"Stock ledger refreshed: {len(products)} products")

        if self.notifications is not None:
            self.notifications.notify_low_stock(self.low_stock_items())

        snapshot = self.products
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"Stock ledger listener failed: {e}", exc_info=True)

    # --- Reads --- #

    @property
    def products(self) -> list[Product]:
        return list(self._products.values())

    @property
    def total_products(self) -> int:
        return len(self._products)

    @property
    def low_stock_count(self) -> int:
        return len(self.low_stock_items())

    def get(self, product_id: str) -> Product | None:
        return self._products.get(product_id)

    def current_stock(self, product_id: str) -> int | None:
        product = self._products.get(product_id)
        return product.current_stock if product is not None else None

    def low_stock_items(self, threshold: int | None = None) -> list[Product]:
        if threshold is None:
            threshold = self.config.low_stock_threshold
        return low_stock_items(self._products.values(), threshold)
