"""
InventoryCore: wires the store, ledger, recorder, alerts and fulfillment
engine together and exposes the surface the staff UI calls into.
"""

import logging
from collections.abc import AsyncIterator, Callable, Iterable
from datetime import datetime

from config.config import InventoryConfig
from connectors.document_store import DocumentStore
from models.fulfillment import FulfillmentResult
from models.inventory import Product
from models.movements import StockMovement
from utils.event_bus import EventBus

from .alerts import AlertService
from .fulfillment import LineItemInput, OrderFulfillmentEngine
from .movements import MovementRecorder
from .notifications import NotificationCenter
from .stock_ledger import StockLedger

logger = logging.getLogger(__name__)


class InventoryCore:
    def __init__(
        self,
        store: DocumentStore,
        config: InventoryConfig | None = None,
        event_bus: EventBus | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        ``clock`` must be the clock the store stamps server timestamps with;
        the ledger staleness and the alert retention sweep compare against it.
        """
        self.store = store
        self.config = config or InventoryConfig()
        self.event_bus = event_bus or EventBus()
        self.notifications = NotificationCenter(dedupe=self.config.dedupe_low_stock_notifications)
        self.ledger = StockLedger(store, self.config, notifications=self.notifications, clock=clock)
        self.recorder = MovementRecorder(store, self.config, event_bus=self.event_bus)
        self.alerts = AlertService(store, self.config, event_bus=self.event_bus, clock=clock)
        self.engine = OrderFulfillmentEngine(
            store,
            self.ledger,
            self.recorder,
            alerts=self.alerts,
            event_bus=self.event_bus,
            config=self.config,
        )

    async def start(self) -> None:
        await self.ledger.start()
        logger.info("Inventory core started")

    def stop(self) -> None:
        self.ledger.stop()
        logger.info("Inventory core stopped")

    async def __aenter__(self) -> "InventoryCore":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.stop()

    async def fulfill_order(self, order_id: str, items: Iterable[LineItemInput]) -> FulfillmentResult:
        return await self.engine.fulfill_order(order_id, items)

    async def fulfill_ad_hoc(self, items: Iterable[LineItemInput]) -> FulfillmentResult:
        return await self.engine.fulfill_ad_hoc(items)

    def low_stock_items(self, threshold: int | None = None) -> list[Product]:
        return self.ledger.low_stock_items(threshold)

    async def reserved_quantity(self, product_id: str) -> int:
        return await self.recorder.reserved_quantity(product_id)

    async def available_quantity(self, product_id: str) -> int:
        """Cached stock minus stock reserved by pending orders, never below zero."""
        stock = self.ledger.current_stock(product_id) or 0
        reserved = await self.recorder.reserved_quantity(product_id)
        return max(stock - reserved, 0)

    def history(self, product_id: str, page_size: int | None = None) -> AsyncIterator[StockMovement]:
        return self.recorder.history(product_id, page_size=page_size)
