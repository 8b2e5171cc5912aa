"""
Data models for events published on the inventory event bus.
"""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .enums import Component


class InventoryEvent(BaseModel):
    """Base event for inventory core interactions."""

    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    event_type: str  # e.g. "order.fulfilled", "inventory.low_stock"
    payload: dict[str, Any]
    source: Component
    timestamp: datetime = Field(default_factory=datetime.now)
