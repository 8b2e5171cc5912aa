"""
In-memory notification feed for the staff notification panel.
"""

import logging
from collections.abc import Iterable

from models.alerts import Notification
from models.inventory import Product

logger = logging.getLogger(__name__)


class NotificationCenter:
    """
    Holds notifications newest first.

    Low-stock notifications are de-duplicated by product id when ``dedupe`` is
    on: a product is notified when it enters the low-stock set and only again
    after it has left the set and come back.
    """

    def __init__(self, dedupe: bool = True):
        self.dedupe = dedupe
        self._notifications: list[Notification] = []
        self._flagged_low_stock: set[str] = set()

    @property
    def notifications(self) -> list[Notification]:
        return list(self._notifications)

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self._notifications if not n.read)

    def add_notification(
        self,
        type: str,
        title: str,
        message: str,
        severity: str = "info",
        product_id: str | None = None,
    ) -> Notification:
        notification = Notification(
            type=type, title=title, message=message, severity=severity, product_id=product_id
        )
        self._notifications.insert(0, notification)
        return notification

    def mark_as_read(self, notification_id: str) -> bool:
        for notification in self._notifications:
            if notification.id == notification_id:
                notification.read = True
                return True
        logger.warning(f"Notification {notification_id} not found")
        return False

    def notify_low_stock(self, items: Iterable[Product]) -> list[Notification]:
        """Emit low-stock notifications for the current low-stock set."""
        items = list(items)
        current_ids = {item.id for item in items}
        emitted = []
        for item in items:
            if self.dedupe and item.id in self._flagged_low_stock:
                continue
            emitted.append(
                self.add_notification(
                    type="low_stock",
                    title="Low Stock Alert",
                    message=f"{item.name} - only {item.current_stock} left in stock",
                    severity="warning",
                    product_id=item.id,
                )
            )
        self._flagged_low_stock = current_ids
        if emitted:
            logger.info(f"Emitted {len(emitted)} low-stock notification(s)")
        return emitted
