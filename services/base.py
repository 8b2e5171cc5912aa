"""
Base class for inventory core services.
"""

import logging
from typing import Any

from models.enums import Component
from models.events import InventoryEvent
from utils.event_bus import EventBus

logger_base = logging.getLogger(__name__)


class BaseService:
    """Shared event publishing and failure reporting for core services"""

    def __init__(self, component: Component, event_bus: EventBus | None = None):
        self.component = component
        self.event_bus = event_bus

    async def publish_event(self, event_type: str, payload: dict[str, Any]) -> None:
        """Publish an event to the event bus, if one is attached"""
        if self.event_bus is None:
            logger_base.debug(f"{self.component.value} has no event bus; dropping {event_type}")
            return

        event = InventoryEvent(event_type=event_type, payload=payload, source=self.component)
        await self.event_bus.publish(event)

    async def handle_exception(self, exception: Exception, context: dict[str, Any]) -> None:
        """Log a non-fatal failure and announce it on the bus"""
        error_details = {
            "error_type": type(exception).__name__,
            "error_code": getattr(exception, "code", None),
            "error_message": str(exception),
            "context": context,
        }
        logger_base.error(
            f"Exception in {self.component.value}: {exception}",
            exc_info=exception,
        )
        try:
            await self.publish_event("system.exception", {"error_details": error_details})
        except Exception as publish_err:
            logger_base.error(f"Failed to publish exception event from {self.component.value}: {publish_err}")
