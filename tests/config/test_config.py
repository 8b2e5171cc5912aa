from unittest.mock import patch

import pytest

from config.config import InventoryConfig


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "INVENTORY_LOW_STOCK_THRESHOLD",
        "INVENTORY_ALERT_RETENTION_DAYS",
        "INVENTORY_DEDUPE_LOW_STOCK",
        "INVENTORY_HISTORY_PAGE_SIZE",
    ):
        monkeypatch.delenv(name, raising=False)
    # Keep a developer's local .env out of the picture
    with patch("config.config.load_project_dotenv", return_value=False):
        yield monkeypatch


def test_inventory_config_defaults():
    """Test InventoryConfig initializes with correct default values."""
    config = InventoryConfig()
    assert config.low_stock_threshold == 10
    assert config.alert_retention_days == 30
    assert config.dedupe_low_stock_notifications is True
    assert config.history_page_size == 50
    assert config.categories == ["cement", "lumber", "tools", "paint", "electrical", "plumbing"]
    assert config.inventory_collection == "inventory"
    assert config.orders_collection == "orders"
    assert config.movements_collection == "stock_movements"
    assert config.alerts_collection == "alerts"
    assert config.alert_rules_collection == "alert_rules"


def test_inventory_config_custom():
    config = InventoryConfig(low_stock_threshold=3, alerts_collection="staff_alerts")
    assert config.low_stock_threshold == 3
    assert config.alerts_collection == "staff_alerts"
    # Check a default value is still correct
    assert config.alert_retention_days == 30


def test_inventory_config_default_factory():
    """Test that the default_factory creates separate list instances."""
    config1 = InventoryConfig()
    config2 = InventoryConfig()
    config1.categories.append("garden")
    assert "garden" not in config2.categories


@pytest.mark.parametrize(
    "kwargs",
    [{"low_stock_threshold": -1}, {"alert_retention_days": -5}, {"history_page_size": 0}],
)
def test_inventory_config_rejects_invalid_values(kwargs):
    with pytest.raises(ValueError):
        InventoryConfig(**kwargs)


def test_from_env_without_overrides(clean_env):
    assert InventoryConfig.from_env() == InventoryConfig()


def test_from_env_reads_overrides(clean_env):
    clean_env.setenv("INVENTORY_LOW_STOCK_THRESHOLD", "5")
    clean_env.setenv("INVENTORY_ALERT_RETENTION_DAYS", "90")
    clean_env.setenv("INVENTORY_DEDUPE_LOW_STOCK", "off")
    clean_env.setenv("INVENTORY_HISTORY_PAGE_SIZE", "20")

    config = InventoryConfig.from_env()

    assert config.low_stock_threshold == 5
    assert config.alert_retention_days == 90
    assert config.dedupe_low_stock_notifications is False
    assert config.history_page_size == 20


@pytest.mark.parametrize("raw", ["1", "true", "YES", " on "])
def test_from_env_truthy_dedupe_values(clean_env, raw):
    clean_env.setenv("INVENTORY_DEDUPE_LOW_STOCK", raw)
    assert InventoryConfig.from_env().dedupe_low_stock_notifications is True


def test_from_env_rejects_bad_numbers(clean_env):
    clean_env.setenv("INVENTORY_LOW_STOCK_THRESHOLD", "lots")
    with pytest.raises(ValueError):
        InventoryConfig.from_env()


def test_from_env_loads_project_dotenv(clean_env):
    with patch("config.config.load_project_dotenv") as mock_load:
        InventoryConfig.from_env()
    mock_load.assert_called_once()
