"""
Centralized Enum definitions for the project.
"""

from enum import Enum


class Component(str, Enum):
    """Parts of the inventory core that publish events"""

    STOCK_LEDGER = "stock_ledger"
    FULFILLMENT = "fulfillment"
    MOVEMENTS = "movements"
    ALERTS = "alerts"
    NOTIFICATIONS = "notifications"
    SYSTEM = "system"


class ProductCategory(str, Enum):
    """Catalog categories carried by the hardware store"""

    CEMENT = "cement"
    LUMBER = "lumber"
    TOOLS = "tools"
    PAINT = "paint"
    ELECTRICAL = "electrical"
    PLUMBING = "plumbing"


class OrderStatus(str, Enum):
    """Possible states of a staff-entered order"""

    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class MovementType(str, Enum):
    """Types of stock movements written to the audit trail"""

    SALE = "sale"  # Stock sold through an order
    LOW_STOCK = "low_stock"  # Decrement that left the product at or under the threshold
    RESTOCK = "restock"
    ADJUSTMENT = "adjustment"


class AlertType(str, Enum):
    """Alert categories"""

    LOW_STOCK = "low_stock"
    EXPIRY = "expiry"
    OVERDUE_ORDER = "overdue_order"
    SYSTEM_HEALTH = "system_health"
    USER_ACTIVITY = "user_activity"


class AlertPriority(str, Enum):
    """Alert priorities, most urgent first"""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return list(AlertPriority).index(self)
