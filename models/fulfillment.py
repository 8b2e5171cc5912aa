"""
Data models for orders and order fulfillment.
Includes LineItem, Order and the FulfillmentResult returned by the engine.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .enums import OrderStatus


class LineItem(BaseModel):
    """Individual (product, quantity) pair within an order"""

    product_id: str = Field(min_length=1)
    name: str = ""
    quantity: int = Field(gt=0)
    price: float | None = None


class Order(BaseModel):
    """Order document as written by the order-taking UI."""

    id: str
    items: list[LineItem] = Field(default_factory=list)
    status: OrderStatus = OrderStatus.PENDING
    processed: bool = False
    total: float = 0.0
    created_at: datetime | None = None
    processed_at: datetime | None = None

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "Order":
        return cls.model_validate(doc)

    @property
    def is_reserving_stock(self) -> bool:
        """Pending and not yet processed, so its items are still reserved."""
        return self.status == OrderStatus.PENDING and not self.processed

    def quantity_for(self, product_id: str) -> int:
        return sum(item.quantity for item in self.items if item.product_id == product_id)


@dataclass
class FulfillmentResult:
    """
    Outcome of a fulfillment call.

    ``applied`` is False only for an order that had already been processed.
    ``audit_failures`` lists the post-commit writes that failed; the stock
    change itself has landed regardless.
    """

    order_id: str | None
    applied: bool
    decrements: dict[str, int] = field(default_factory=dict)
    remaining: dict[str, int] = field(default_factory=dict)
    low_stock: list[str] = field(default_factory=list)
    audit_failures: list[str] = field(default_factory=list)

    @property
    def already_processed(self) -> bool:
        return not self.applied
