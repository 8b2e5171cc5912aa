"""
Inventory-related data models.
Includes the Product document stored in the inventory collection.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .enums import ProductCategory


class Product(BaseModel):
    """
    Inventory record for a single product, as held in the store and in the
    stock ledger cache.
    """

    id: str
    name: str
    category: ProductCategory
    price: float = 0.0
    cost: float = 0.0
    current_stock: int = Field(default=0, ge=0)
    last_updated: datetime | None = None

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "Product":
        return cls.model_validate(doc)

    def is_low_stock(self, threshold: int) -> bool:
        """In stock, but at or under the threshold."""
        return 0 < self.current_stock <= threshold
