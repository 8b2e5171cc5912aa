"""
Simple asynchronous event bus used by the inventory core to announce
fulfilled orders and low-stock conditions to the UI layer.
"""

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from models.events import InventoryEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[InventoryEvent], Coroutine[Any, Any, None]]


def _name(callback: Any) -> str:
    return getattr(callback, "__name__", type(callback).__name__)


class EventBus:
    """In-process publish/subscribe for InventoryEvent objects"""

    def __init__(self):
        self.subscribers: dict[str, list[EventHandler]] = {}

    def subscribe(self, event_type: str, callback: EventHandler) -> None:
        """Subscribe to an event type."""
        if not callable(callback):
            raise TypeError("Callback must be a callable async function.")
        handlers = self.subscribers.setdefault(event_type, [])
        if callback in handlers:
            logger.warning(f"Callback {_name(callback)} already subscribed to {event_type}")
            return
        handlers.append(callback)
        logger.debug(f"Callback {_name(callback)} subscribed to {event_type}")

    def unsubscribe(self, event_type: str, callback: EventHandler) -> None:
        """Unsubscribe a specific callback from an event type."""
        if event_type not in self.subscribers:
            return
        try:
            self.subscribers[event_type].remove(callback)
            logger.debug(f"Callback {_name(callback)} unsubscribed from {event_type}")
        except ValueError:
            logger.warning(f"Callback {_name(callback)} not found for event type {event_type}")
            return
        if not self.subscribers[event_type]:
            del self.subscribers[event_type]

    async def publish(self, event: InventoryEvent) -> None:
        """Publish an event; handler failures are logged, never raised."""
        if not isinstance(event, InventoryEvent):
            logger.error(f"Attempted to publish invalid event type: {type(event)}")
            return

        logger.info(f"Event published: {event.event_type} from {event.source.value}")
        handlers = list(self.subscribers.get(event.event_type, []))
        if not handlers:
            return
        tasks = [asyncio.create_task(callback(event)) for callback in handlers]
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for callback, result in zip(handlers, results):
            if isinstance(result, Exception):
                logger.error(
                    f"Error in subscriber callback '{_name(callback)}' for event {event.event_type}: {result}"
                )
