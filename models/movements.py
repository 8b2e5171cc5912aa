"""
Stock movement audit record.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

from .enums import MovementType


class StockMovement(BaseModel):
    """Immutable audit entry describing one stock-affecting event"""

    model_config = ConfigDict(frozen=True)

    id: str | None = None
    product_id: str
    order_id: str | None = None
    quantity: int  # Signed delta, negative for decrements
    movement_type: MovementType
    remaining_stock: int
    notes: str = ""
    timestamp: datetime | None = None

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "StockMovement":
        return cls.model_validate(doc)
