"""
Demonstrates order fulfillment against shared inventory.

Seeds an in-memory store with a few hardware products and orders, then walks
through a low-stock sale, a rejected oversized order, a duplicate submission
and two orders racing for the same product.
Run with: python -m demos.fulfillment_demo
"""

import asyncio

from config.config import InventoryConfig
from connectors.memory_store import InMemoryDocumentStore
from models.events import InventoryEvent
from services.core import InventoryCore
from services.exceptions import CommitFailureError, InsufficientStockError
from utils.logger import get_logger

logger = get_logger("demos.fulfillment_demo")


def seed_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore(
        initial={
            "inventory": {
                "P1": {"name": "Portland Cement 40kg", "category": "cement", "price": 12.5, "cost": 8.0, "current_stock": 12},
                "P2": {"name": "Claw Hammer", "category": "tools", "price": 18.0, "cost": 9.5, "current_stock": 3},
                "P3": {"name": "2x4 Stud 8ft", "category": "lumber", "price": 4.25, "cost": 2.1, "current_stock": 5},
            },
            "orders": {
                "O1": {"items": [{"product_id": "P1", "name": "Portland Cement 40kg", "quantity": 5}], "status": "pending", "processed": False, "total": 62.5},
                "O2": {"items": [{"product_id": "P2", "name": "Claw Hammer", "quantity": 5}], "status": "pending", "processed": False, "total": 90.0},
                "O4": {"items": [{"product_id": "P3", "name": "2x4 Stud 8ft", "quantity": 4}], "status": "pending", "processed": False, "total": 17.0},
                "O5": {"items": [{"product_id": "P3", "name": "2x4 Stud 8ft", "quantity": 4}], "status": "pending", "processed": False, "total": 17.0},
            },
        }
    )


async def run_demo(store: InMemoryDocumentStore | None = None) -> InventoryCore:
    store = store or seed_store()
    core = InventoryCore(store, InventoryConfig())

    async def on_low_stock(event: InventoryEvent) -> None:
        logger.info(f"[bus] low stock: {event.payload['name']} ({event.payload['current_stock']} left)")

    core.event_bus.subscribe("inventory.low_stock", on_low_stock)

    async with core:
        logger.info(f"Reserved P1 before fulfillment: {await core.reserved_quantity('P1')}")

        result = await core.fulfill_order("O1", [{"product_id": "P1", "name": "Portland Cement 40kg", "quantity": 5}])
        logger.info(f"O1 applied={result.applied} remaining={result.remaining} low_stock={result.low_stock}")

        try:
            await core.fulfill_order("O2", [{"product_id": "P2", "name": "Claw Hammer", "quantity": 5}])
        except InsufficientStockError as e:
            logger.info(f"O2 rejected: {e} (code={e.code})")

        again = await core.fulfill_order("O1", [{"product_id": "P1", "name": "Portland Cement 40kg", "quantity": 5}])
        logger.info(f"O1 resubmitted: applied={again.applied}")

        outcomes = await asyncio.gather(
            core.fulfill_order("O4", [{"product_id": "P3", "quantity": 4}]),
            core.fulfill_order("O5", [{"product_id": "P3", "quantity": 4}]),
            return_exceptions=True,
        )
        for order_id, outcome in zip(("O4", "O5"), outcomes):
            if isinstance(outcome, CommitFailureError):
                logger.info(f"{order_id} lost the race: {outcome.reason}")
            elif isinstance(outcome, Exception):
                logger.info(f"{order_id} failed: {outcome}")
            else:
                logger.info(f"{order_id} fulfilled, P3 remaining {outcome.remaining['P3']}")

        async for movement in core.history("P1"):
            logger.info(f"P1 movement: {movement.movement_type.value} {movement.quantity:+d} -> {movement.remaining_stock}")

        for notification in core.notifications.notifications:
            logger.info(f"Notification: {notification.message}")

    return core


if __name__ == "__main__":
    asyncio.run(run_demo())
