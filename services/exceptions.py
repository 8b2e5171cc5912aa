"""
Typed exceptions for the inventory core.

Every class carries a machine-readable ``code`` and the structured data the
UI needs to explain the failure, so callers catch by type rather than by
message text.

    InventoryError
    +-- InvalidLineItemsError
    +-- InsufficientStockError
    +-- NotFoundError
    |   +-- ProductNotFoundError
    |   +-- OrderNotFoundError
    |   +-- AlertNotFoundError
    +-- CommitFailureError
    +-- AuditWriteError
    +-- LedgerNotReadyError
"""


class InventoryError(Exception):
    """Base exception for all inventory core errors."""

    code: str = "INVENTORY_ERROR"


class InvalidLineItemsError(InventoryError):
    """Submitted line items are empty or malformed."""

    code: str = "INVALID_LINE_ITEMS"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid line items: {reason}")


class InsufficientStockError(InventoryError):
    """Requested quantity exceeds the product's current stock."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, product_id: str, name: str, requested: int, available: int):
        self.product_id = product_id
        self.name = name
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for {name or product_id}: "
            f"requested {requested}, available {available}"
        )


class NotFoundError(InventoryError):
    """A referenced record does not exist."""

    code: str = "NOT_FOUND"


class ProductNotFoundError(NotFoundError):
    code: str = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: str, name: str = ""):
        self.product_id = product_id
        self.name = name
        super().__init__(f"Product not found in stock ledger: {name or product_id}")


class OrderNotFoundError(NotFoundError):
    code: str = "ORDER_NOT_FOUND"

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order not found: {order_id}")


class AlertNotFoundError(NotFoundError):
    code: str = "ALERT_NOT_FOUND"

    def __init__(self, alert_id: str):
        self.alert_id = alert_id
        super().__init__(f"Alert not found: {alert_id}")


class CommitFailureError(InventoryError):
    """
    The atomic stock write was rejected (conflict, connectivity, permission).
    Nothing was applied; the whole fulfillment call may be retried.
    """

    code: str = "COMMIT_FAILURE"

    def __init__(self, order_id: str | None, reason: str):
        self.order_id = order_id
        self.reason = reason
        super().__init__(f"Stock commit rejected for order {order_id or '<ad hoc>'}: {reason}")


class AuditWriteError(InventoryError):
    """A post-commit audit or alert write failed. Logged, never propagated."""

    code: str = "AUDIT_WRITE_FAILURE"

    def __init__(self, product_id: str, order_id: str | None, reason: str):
        self.product_id = product_id
        self.order_id = order_id
        self.reason = reason
        super().__init__(f"Audit write failed for {product_id} (order {order_id}): {reason}")


class LedgerNotReadyError(InventoryError):
    """The stock ledger has not received its first snapshot yet."""

    code: str = "LEDGER_NOT_READY"

    def __init__(self):
        super().__init__("Stock ledger has not loaded the inventory yet")
