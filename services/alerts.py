"""
Alert service: persisted alerts, rule evaluation and the retention sweep.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from pydantic import ValidationError

from config.config import InventoryConfig
from connectors.document_store import (
    SERVER_TIMESTAMP,
    DocumentNotFoundError,
    DocumentStore,
    FieldFilter,
    ListenerRegistration,
)
from models.alerts import Alert, AlertFilters, AlertRule
from models.enums import AlertPriority, AlertType, Component

from .base import BaseService
from .exceptions import AlertNotFoundError

logger = logging.getLogger(__name__)

AlertsListener = Callable[[list[Alert]], None]

# rule type -> (metric key in the checked data, comparison against the rule threshold)
_RULE_CHECKS: dict[AlertType, tuple[str, Callable[[float, float], bool]]] = {
    AlertType.LOW_STOCK: ("current_stock", lambda value, threshold: value <= threshold),
    AlertType.EXPIRY: ("days_until_expiry", lambda value, threshold: value <= threshold),
    AlertType.OVERDUE_ORDER: ("days_overdue", lambda value, threshold: value >= threshold),
}


class AlertService(BaseService):
    """Create, stream, read/acknowledge and archive alerts."""

    def __init__(
        self,
        store: DocumentStore,
        config: InventoryConfig | None = None,
        event_bus=None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        super().__init__(Component.ALERTS, event_bus)
        self.store = store
        self.config = config or InventoryConfig()
        self._clock = clock

    @property
    def collection(self) -> str:
        return self.config.alerts_collection

    async def create_alert(self, alert: Alert | dict[str, Any]) -> str:
        """Persist a new unread, unacknowledged alert and return its id."""
        if not isinstance(alert, Alert):
            alert = Alert.model_validate(alert)
        data = alert.model_dump(
            mode="json", exclude={"id", "created_at", "updated_at", "acknowledged_at"}
        )
        data.update(
            read=False,
            acknowledged=False,
            archived=False,
            created_at=SERVER_TIMESTAMP,
            updated_at=SERVER_TIMESTAMP,
        )
        alert_id = await self.store.add(self.collection, data)
        logger.info(f"Created {alert.priority.value} {alert.type.value} alert {alert_id}: {alert.title}")
        return alert_id

    async def create_low_stock_alert(self, product_id: str, name: str, remaining: int) -> str:
        threshold = self.config.low_stock_threshold
        if remaining <= 0:
            priority = AlertPriority.CRITICAL
        elif remaining <= threshold // 2:
            priority = AlertPriority.HIGH
        else:
            priority = AlertPriority.MEDIUM
        return await self.create_alert(
            Alert(
                type=AlertType.LOW_STOCK,
                priority=priority,
                title="Low Stock Alert",
                message=f"{name or product_id} is running low ({remaining} remaining)",
                product_id=product_id,
                data={"current_stock": remaining, "threshold": threshold},
            )
        )

    async def subscribe_alerts(
        self, on_change: AlertsListener, filters: AlertFilters | None = None
    ) -> ListenerRegistration:
        """Live alert feed, newest first, narrowed by ``filters``."""
        filters = filters or AlertFilters()
        conditions = []
        if filters.type is not None:
            conditions.append(FieldFilter("type", "==", filters.type.value))
        if filters.priority is not None:
            conditions.append(FieldFilter("priority", "==", filters.priority.value))
        if filters.read is not None:
            conditions.append(FieldFilter("read", "==", filters.read))
        if filters.user_id is not None:
            conditions.append(FieldFilter("user_id", "==", filters.user_id))
        if not filters.include_archived:
            conditions.append(FieldFilter("archived", "!=", True))

        def deliver(docs: list[dict[str, Any]]) -> None:
            alerts = []
            for doc in docs:
                try:
                    alerts.append(Alert.from_document(doc))
                except ValidationError as e:
                    logger.warning(f"Skipping malformed alert {doc.get('id')}: {e.error_count()} error(s)")
            on_change(alerts)

        return await self.store.subscribe(
            self.collection,
            deliver,
            filters=conditions,
            order_by="created_at",
            descending=True,
            limit=filters.limit,
        )

    async def mark_alert_as_read(self, alert_id: str) -> None:
        await self._update(alert_id, {"read": True, "updated_at": SERVER_TIMESTAMP})

    async def acknowledge_alert(self, alert_id: str, user_id: str, notes: str = "") -> None:
        await self._update(
            alert_id,
            {
                "acknowledged": True,
                "acknowledged_by": user_id,
                "acknowledged_at": SERVER_TIMESTAMP,
                "acknowledgment_notes": notes,
                "updated_at": SERVER_TIMESTAMP,
            },
        )
        logger.info(f"Alert {alert_id} acknowledged by {user_id}")

    async def _update(self, alert_id: str, data: dict[str, Any]) -> None:
        try:
            await self.store.update(self.collection, alert_id, data)
        except DocumentNotFoundError as e:
            raise AlertNotFoundError(alert_id) from e

    async def get_alert_rules(self) -> list[AlertRule]:
        """All alert rules, most urgent priority first."""
        docs = await self.store.query(self.config.alert_rules_collection)
        rules = []
        for doc in docs:
            try:
                rules.append(AlertRule.model_validate(doc))
            except ValidationError as e:
                logger.warning(f"Skipping malformed alert rule {doc.get('id')}: {e.error_count()} error(s)")
        rules.sort(key=lambda rule: rule.priority.rank)
        return rules

    async def check_alert_rules(self, data: dict[str, Any]) -> list[Alert]:
        """
        Evaluate every rule against ``data`` and return the alerts that should
        fire. Nothing is persisted; callers pass the result to create_alert.
        """
        triggered = []
        for rule in await self.get_alert_rules():
            check = _RULE_CHECKS.get(rule.type)
            if check is None:
                continue
            metric, compare = check
            value = data.get(metric)
            if value is None or not compare(value, rule.threshold):
                continue
            triggered.append(
                Alert(
                    type=rule.type,
                    priority=rule.priority,
                    title=rule.title,
                    message=rule.message,
                    product_id=data.get("product_id"),
                    rule_id=rule.id,
                    data=dict(data),
                )
            )
        return triggered

    async def cleanup_old_alerts(self, days: int | None = None) -> int:
        """
        Archive acknowledged alerts created more than ``days`` ago.
        Unacknowledged alerts are never archived. Returns how many were archived.
        """
        if days is None:
            days = self.config.alert_retention_days
        cutoff = self._clock() - timedelta(days=days)
        docs = await self.store.query(
            self.collection,
            filters=[
                FieldFilter("created_at", "<", cutoff),
                FieldFilter("acknowledged", "==", True),
                FieldFilter("archived", "!=", True),
            ],
        )
        results = await asyncio.gather(
            *(
                self.store.update(self.collection, doc["id"], {"archived": True, "updated_at": SERVER_TIMESTAMP})
                for doc in docs
            ),
            return_exceptions=True,
        )
        archived = 0
        for doc, result in zip(docs, results):
            if isinstance(result, Exception):
                logger.error(f"Failed to archive alert {doc['id']}: {result}")
            else:
                archived += 1
        if archived:
            logger.info(f"Archived {archived} alert(s) older than {days} days")
        return archived
