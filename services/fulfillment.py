"""
Order fulfillment engine: the only component that turns submitted orders
into stock decrements.

Each call goes through three phases:

1. idempotency read (orders only) - an already processed order is a no-op;
2. validation against the stock ledger cache, all-or-nothing;
3. one guarded write batch holding every decrement plus ``processed = True``.

Alerts, movement records and bus events follow the commit on a best-effort
basis. The batch guards (``current_stock >= requested`` per product and
``processed != True`` on the order) are checked by the store itself, so two
racing calls can neither oversell a product nor apply the same order twice.
"""

import logging
from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

from config.config import InventoryConfig
from connectors.document_store import (
    SERVER_TIMESTAMP,
    DocumentStore,
    DocumentStoreError,
    FieldFilter,
    Increment,
    WriteConflictError,
)
from models.enums import Component, MovementType
from models.fulfillment import FulfillmentResult, LineItem, Order
from utils.event_bus import EventBus

from .alerts import AlertService
from .base import BaseService
from .exceptions import (
    AuditWriteError,
    CommitFailureError,
    InsufficientStockError,
    InvalidLineItemsError,
    LedgerNotReadyError,
    OrderNotFoundError,
    ProductNotFoundError,
)
from .movements import MovementRecorder
from .stock_ledger import StockLedger

logger = logging.getLogger(__name__)

LineItemInput = LineItem | dict[str, Any]


class OrderFulfillmentEngine(BaseService):
    """Validates, commits and audits stock decrements for orders."""

    def __init__(
        self,
        store: DocumentStore,
        ledger: StockLedger,
        recorder: MovementRecorder,
        alerts: AlertService | None = None,
        event_bus: EventBus | None = None,
        config: InventoryConfig | None = None,
    ):
        super().__init__(Component.FULFILLMENT, event_bus)
        self.store = store
        self.ledger = ledger
        self.recorder = recorder
        self.alerts = alerts
        self.config = config or InventoryConfig()

    # --- Public operations --- #

    async def fulfill_order(self, order_id: str, items: Iterable[LineItemInput]) -> FulfillmentResult:
        """
        Fulfill a stored order exactly once.

        Returns a result with ``applied=False`` if the order was already
        processed. Raises OrderNotFoundError, InvalidLineItemsError,
        ProductNotFoundError, InsufficientStockError or CommitFailureError;
        in every one of those cases no stock has changed.
        """
        if not order_id:
            raise InvalidLineItemsError("order_id is required; use fulfill_ad_hoc for unsaved orders")
        line_items = self._parse_items(items)

        doc = await self.store.get(self.config.orders_collection, order_id)
        if doc is None:
            raise OrderNotFoundError(order_id)
        if doc.get("processed"):
            logger.info(f"Order {order_id} already processed; skipping")
            return FulfillmentResult(order_id=order_id, applied=False)

        return await self._fulfill(order_id, line_items)

    async def fulfill_ad_hoc(self, items: Iterable[LineItemInput]) -> FulfillmentResult:
        """
        Decrement stock for items that have no stored order.
        No idempotency: submitting the same items twice decrements twice.
        """
        return await self._fulfill(None, self._parse_items(items))

    async def fulfill_stored_order(self, order_id: str) -> FulfillmentResult:
        """Load an order document and fulfill it with its own line items."""
        doc = await self.store.get(self.config.orders_collection, order_id)
        if doc is None:
            raise OrderNotFoundError(order_id)
        try:
            order = Order.from_document(doc)
        except ValidationError as e:
            raise InvalidLineItemsError(f"order {order_id} is malformed: {e.error_count()} error(s)") from e
        return await self.fulfill_order(order.id, order.items)

    # --- Phases --- #

    def _parse_items(self, items: Iterable[LineItemInput]) -> list[LineItem]:
        try:
            parsed = [item if isinstance(item, LineItem) else LineItem.model_validate(item) for item in items]
        except ValidationError as e:
            raise InvalidLineItemsError(str(e)) from e
        if not parsed:
            raise InvalidLineItemsError("at least one line item is required")
        return parsed

    def _validate(self, line_items: list[LineItem]) -> dict[str, int]:
        """Aggregate quantities per product and check them against the ledger."""
        if not self.ledger.is_loaded:
            raise LedgerNotReadyError()

        requested: dict[str, int] = {}
        names: dict[str, str] = {}
        for item in line_items:
            requested[item.product_id] = requested.get(item.product_id, 0) + item.quantity
            names.setdefault(item.product_id, item.name)

        for product_id, quantity in requested.items():
            product = self.ledger.get(product_id)
            if product is None:
                raise ProductNotFoundError(product_id, names[product_id])
            if product.current_stock < quantity:
                raise InsufficientStockError(
                    product_id, product.name or names[product_id], quantity, product.current_stock
                )
        return requested

    async def _fulfill(self, order_id: str | None, line_items: list[LineItem]) -> FulfillmentResult:
        requested = self._validate(line_items)

        # Used until the ledger reflects the commit
        expected_remaining = {
            product_id: self.ledger.get(product_id).current_stock - quantity
            for product_id, quantity in requested.items()
        }

        batch = self.store.batch()
        # Order guard first, so a duplicate is reported as such even when it
        # would also fail a stock guard
        if order_id is not None:
            batch.update(
                self.config.orders_collection,
                order_id,
                {"processed": True, "processed_at": SERVER_TIMESTAMP},
                preconditions=[FieldFilter("processed", "!=", True)],
            )
        for product_id, quantity in requested.items():
            batch.update(
                self.config.inventory_collection,
                product_id,
                {"current_stock": Increment(-quantity), "last_updated": SERVER_TIMESTAMP},
                preconditions=[FieldFilter("current_stock", ">=", quantity)],
            )

        ledger_version = self.ledger.version
        try:
            await batch.commit()
        except WriteConflictError as e:
            if (
                order_id is not None
                and e.collection == self.config.orders_collection
                and e.failed.field == "processed"
            ):
                # A concurrent submission of the same order committed first
                logger.info(f"Order {order_id} was processed concurrently; skipping")
                return FulfillmentResult(order_id=order_id, applied=False)
            logger.warning(f"Stock commit rejected for order {order_id or '<ad hoc>'}: {e}")
            raise CommitFailureError(order_id, str(e)) from e
        except DocumentStoreError as e:
            logger.warning(f"Stock commit rejected for order {order_id or '<ad hoc>'}: {e}")
            raise CommitFailureError(order_id, str(e)) from e

        logger.info(
            f"Fulfilled order {order_id or '<ad hoc>'}: "
            + ", ".join(f"{pid} -{qty}" for pid, qty in requested.items())
        )

        result = FulfillmentResult(order_id=order_id, applied=True, decrements=dict(requested))
        for product_id, quantity in requested.items():
            remaining = expected_remaining[product_id]
            if self.ledger.version != ledger_version:
                # The ledger has seen a snapshot taken after our write
                remaining = self.ledger.current_stock(product_id) or 0
            result.remaining[product_id] = remaining
            if remaining <= self.config.low_stock_threshold:
                result.low_stock.append(product_id)

        await self._after_commit(result)
        return result

    async def _after_commit(self, result: FulfillmentResult) -> None:
        """Movements, alerts and events. Failures are logged, never raised."""
        threshold = self.config.low_stock_threshold
        for product_id, quantity in result.decrements.items():
            remaining = result.remaining[product_id]
            is_low = remaining <= threshold
            product = self.ledger.get(product_id)
            name = product.name if product is not None else product_id

            try:
                await self.recorder.record(
                    product_id,
                    result.order_id,
                    -quantity,
                    MovementType.LOW_STOCK if is_low else MovementType.SALE,
                    remaining,
                    notes=f"Order {result.order_id}" if result.order_id else "Ad hoc sale",
                )
            except Exception as e:
                await self._audit_failed(result, product_id, "movement", e)

            if not is_low:
                continue

            if self.alerts is not None:
                try:
                    await self.alerts.create_low_stock_alert(product_id, name, remaining)
                except Exception as e:
                    await self._audit_failed(result, product_id, "alert", e)

            await self._publish_safely(
                "inventory.low_stock",
                {"product_id": product_id, "name": name, "current_stock": remaining, "threshold": threshold},
            )

        await self._publish_safely(
            "order.fulfilled",
            {"order_id": result.order_id, "decrements": result.decrements, "remaining": result.remaining},
        )

    async def _audit_failed(self, result: FulfillmentResult, product_id: str, stage: str, error: Exception) -> None:
        result.audit_failures.append(f"{stage}:{product_id}")
        await self.handle_exception(
            AuditWriteError(product_id, result.order_id, str(error)),
            {"stage": stage, "order_id": result.order_id, "product_id": product_id},
        )

    async def _publish_safely(self, event_type: str, payload: dict[str, Any]) -> None:
        try:
            await self.publish_event(event_type, payload)
        except Exception as e:
            logger.error(f"Failed to publish {event_type}: {e}")
