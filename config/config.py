"""
Configuration classes for the inventory core.
Defines thresholds, retention windows and collection names in a type-safe,
extensible way, with optional overrides from the environment / project .env.
"""

import os
from dataclasses import dataclass, field

from utils.env import load_project_dotenv


@dataclass
class InventoryConfig:
    low_stock_threshold: int = 10
    alert_retention_days: int = 30
    dedupe_low_stock_notifications: bool = True
    history_page_size: int = 50
    categories: list[str] = field(
        default_factory=lambda: ["cement", "lumber", "tools", "paint", "electrical", "plumbing"]
    )
    inventory_collection: str = "inventory"
    orders_collection: str = "orders"
    movements_collection: str = "stock_movements"
    alerts_collection: str = "alerts"
    alert_rules_collection: str = "alert_rules"

    def __post_init__(self):
        if self.low_stock_threshold < 0:
            raise ValueError("low_stock_threshold must be non-negative")
        if self.alert_retention_days < 0:
            raise ValueError("alert_retention_days must be non-negative")
        if self.history_page_size <= 0:
            raise ValueError("history_page_size must be positive")

    @classmethod
    def from_env(cls) -> "InventoryConfig":
        """Build a config from INVENTORY_* variables (after loading the project .env)."""
        load_project_dotenv()
        overrides: dict = {}
        if (value := os.getenv("INVENTORY_LOW_STOCK_THRESHOLD")) is not None:
            overrides["low_stock_threshold"] = int(value)
        if (value := os.getenv("INVENTORY_ALERT_RETENTION_DAYS")) is not None:
            overrides["alert_retention_days"] = int(value)
        if (value := os.getenv("INVENTORY_DEDUPE_LOW_STOCK")) is not None:
            overrides["dedupe_low_stock_notifications"] = value.strip().lower() in ("1", "true", "yes", "on")
        if (value := os.getenv("INVENTORY_HISTORY_PAGE_SIZE")) is not None:
            overrides["history_page_size"] = int(value)
        return cls(**overrides)


# Example usage:
# config = InventoryConfig.from_env()
# ledger = StockLedger(store, config)
