"""
Movement recorder: append-only stock movement audit trail, plus reservation
accounting over pending orders.
"""

import logging
from collections.abc import AsyncIterator

from pydantic import ValidationError

from config.config import InventoryConfig
from connectors.document_store import SERVER_TIMESTAMP, DocumentStore, FieldFilter
from models.enums import Component, MovementType, OrderStatus
from models.fulfillment import Order
from models.movements import StockMovement

from .base import BaseService

logger = logging.getLogger(__name__)


class MovementRecorder(BaseService):
    """Writes and reads StockMovement records; never updates or deletes them."""

    def __init__(self, store: DocumentStore, config: InventoryConfig | None = None, event_bus=None):
        super().__init__(Component.MOVEMENTS, event_bus)
        self.store = store
        self.config = config or InventoryConfig()

    async def record(
        self,
        product_id: str,
        order_id: str | None,
        quantity: int,
        movement_type: MovementType,
        remaining_stock: int,
        notes: str = "",
    ) -> str:
        """
        Append one immutable movement record and return its id.

        Store errors propagate; the fulfillment engine decides they are
        non-fatal.
        """
        movement = StockMovement(
            product_id=product_id,
            order_id=order_id,
            quantity=quantity,
            movement_type=movement_type,
            remaining_stock=remaining_stock,
            notes=notes,
        )
        data = movement.model_dump(mode="json", exclude={"id", "timestamp"})
        data["timestamp"] = SERVER_TIMESTAMP
        movement_id = await self.store.add(self.config.movements_collection, data)
        logger.debug(
            f"Recorded {movement_type.value} movement {movement_id} for {product_id}: "
            f"{quantity:+d}, {remaining_stock} remaining"
        )
        return movement_id

    async def reserved_quantity(self, product_id: str) -> int:
        """
        Units of ``product_id`` held by pending, unprocessed orders.

        Point-in-time scan; cost grows with the number of outstanding orders.
        """
        docs = await self.store.query(
            self.config.orders_collection,
            filters=[
                FieldFilter("status", "==", OrderStatus.PENDING.value),
                FieldFilter("processed", "==", False),
            ],
        )
        reserved = 0
        for doc in docs:
            try:
                order = Order.from_document(doc)
            except ValidationError as e:
                logger.warning(f"Skipping malformed order {doc.get('id')} in reservation scan: {e.error_count()} error(s)")
                continue
            reserved += order.quantity_for(product_id)
        return reserved

    async def history(self, product_id: str, page_size: int | None = None) -> AsyncIterator[StockMovement]:
        """
        Movements for ``product_id``, most recent first, fetched page by page.

        Each page resumes after the last movement already yielded, so
        movements recorded while iterating are not repeated or skipped over.
        """
        page_size = page_size or self.config.history_page_size
        cursor: str | None = None
        while True:
            page = await self.store.query(
                self.config.movements_collection,
                filters=[FieldFilter("product_id", "==", product_id)],
                order_by="timestamp",
                descending=True,
                limit=page_size,
                start_after=cursor,
            )
            for doc in page:
                yield StockMovement.from_document(doc)
            if len(page) < page_size:
                return
            cursor = page[-1]["id"]
