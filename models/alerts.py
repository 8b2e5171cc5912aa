"""
Alert, alert rule and in-app notification models.
"""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .enums import AlertPriority, AlertType


class Alert(BaseModel):
    """Persisted alert shown to staff until acknowledged."""

    id: str | None = None
    type: AlertType
    priority: AlertPriority = AlertPriority.MEDIUM
    title: str = ""
    message: str = ""
    product_id: str | None = None
    rule_id: str | None = None
    user_id: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)
    read: bool = False
    acknowledged: bool = False
    acknowledged_by: str | None = None
    acknowledged_at: datetime | None = None
    acknowledgment_notes: str = ""
    archived: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "Alert":
        return cls.model_validate(doc)


class AlertRule(BaseModel):
    """Threshold rule evaluated against current data to raise alerts."""

    id: str | None = None
    type: AlertType
    priority: AlertPriority = AlertPriority.MEDIUM
    threshold: float
    title: str = ""
    message: str = ""


class AlertFilters(BaseModel):
    """Filter options for the live alert feed."""

    type: AlertType | None = None
    priority: AlertPriority | None = None
    read: bool | None = None
    user_id: str | None = None
    limit: int | None = Field(default=None, gt=0)
    include_archived: bool = False


class Notification(BaseModel):
    """In-memory notification for the staff notification panel."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    type: str
    title: str
    message: str
    severity: str = "info"
    product_id: str | None = None
    timestamp: datetime = Field(default_factory=datetime.now)
    read: bool = False
