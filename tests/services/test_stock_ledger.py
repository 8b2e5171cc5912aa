import logging
import random

import pytest

from config.config import InventoryConfig
from connectors.memory_store import InMemoryDocumentStore
from models.inventory import Product
from services.notifications import NotificationCenter
from services.stock_ledger import StockLedger, low_stock_items


def _product(pid: str, stock: int) -> Product:
    return Product(id=pid, name=f"Item {pid}", category="tools", current_stock=stock)


# --- low_stock_items --- #


def test_low_stock_items_keeps_only_in_stock_items_at_or_under_threshold():
    products = [_product("zero", 0), _product("one", 1), _product("edge", 10), _product("above", 11)]

    result = low_stock_items(products, threshold=10)

    assert sorted(p.id for p in result) == ["edge", "one"]


def test_low_stock_items_is_independent_of_input_order():
    products = [_product(f"P{i}", i) for i in range(0, 20)]
    expected = {f"P{i}" for i in range(1, 8)}

    for _ in range(5):
        random.shuffle(products)
        assert {p.id for p in low_stock_items(products, threshold=7)} == expected


def test_low_stock_items_empty_input():
    assert low_stock_items([], threshold=10) == []


# --- StockLedger --- #


@pytest.mark.asyncio
async def test_ledger_loads_initial_snapshot(ledger: StockLedger):
    assert ledger.is_running
    assert ledger.is_loaded
    assert ledger.total_products == 4
    assert ledger.current_stock("P1") == 12
    assert ledger.get("P2").name == "Claw Hammer"
    assert ledger.get("NOPE") is None
    assert ledger.current_stock("NOPE") is None


@pytest.mark.asyncio
async def test_ledger_low_stock_uses_configured_threshold(ledger: StockLedger):
    assert [p.id for p in ledger.low_stock_items()] == ["P2"]
    assert ledger.low_stock_count == 1
    assert sorted(p.id for p in ledger.low_stock_items(threshold=12)) == ["P1", "P2"]


@pytest.mark.asyncio
async def test_ledger_refreshes_on_store_change(ledger: StockLedger, store):
    version = ledger.version
    refreshed_at = ledger.last_refreshed_at

    await store.update("inventory", "P1", {"current_stock": 4})

    assert ledger.current_stock("P1") == 4
    assert ledger.version == version + 1
    assert ledger.last_refreshed_at > refreshed_at


@pytest.mark.asyncio
async def test_ledger_subscribe_delivers_current_then_changes(ledger: StockLedger, store):
    deliveries: list[list[Product]] = []
    subscription = ledger.subscribe(deliveries.append)

    assert len(deliveries) == 1
    assert len(deliveries[0]) == 4

    await store.update("inventory", "P3", {"current_stock": 24})
    assert len(deliveries) == 2
    assert next(p for p in deliveries[1] if p.id == "P3").current_stock == 24

    subscription.cancel()
    await store.update("inventory", "P3", {"current_stock": 23})
    assert len(deliveries) == 2


@pytest.mark.asyncio
async def test_ledger_subscribe_before_start_waits_for_first_snapshot(store, config):
    ledger = StockLedger(store, config)
    deliveries = []
    ledger.subscribe(deliveries.append)
    assert deliveries == []

    await ledger.start()
    assert len(deliveries) == 1
    ledger.stop()


@pytest.mark.asyncio
async def test_ledger_listener_failure_is_logged(ledger: StockLedger, store, caplog):
    def broken(_products):
        raise ValueError("ui callback failed")

    ledger._listeners.append(broken)
    with caplog.at_level(logging.ERROR):
        await store.update("inventory", "P1", {"current_stock": 11})

    assert ledger.current_stock("P1") == 11
    assert "ui callback failed" in caplog.text


@pytest.mark.asyncio
async def test_ledger_skips_malformed_documents(clock, caplog):
    store = InMemoryDocumentStore(
        initial={
            "inventory": {
                "good": {"name": "Drill", "category": "tools", "current_stock": 5},
                "negative": {"name": "Saw", "category": "tools", "current_stock": -1},
                "unknown_category": {"name": "Sofa", "category": "furniture", "current_stock": 3},
            }
        },
        clock=clock,
    )
    ledger = StockLedger(store)

    with caplog.at_level(logging.WARNING):
        await ledger.start()

    assert [p.id for p in ledger.products] == ["good"]
    assert "Skipping malformed inventory document negative" in caplog.text
    assert "Skipping malformed inventory document unknown_category" in caplog.text


@pytest.mark.asyncio
async def test_ledger_stop_detaches_from_store(ledger: StockLedger, store):
    ledger.stop()
    assert not ledger.is_running

    await store.update("inventory", "P1", {"current_stock": 1})
    assert ledger.current_stock("P1") == 12

    # Restart picks up the latest state
    await ledger.start()
    assert ledger.current_stock("P1") == 1


@pytest.mark.asyncio
async def test_ledger_start_is_idempotent(ledger: StockLedger):
    version = ledger.version
    await ledger.start()
    assert ledger.version == version


# --- Low-stock notifications on refresh --- #


@pytest.mark.asyncio
async def test_refresh_notifies_low_stock_once_per_product(ledger: StockLedger, notifications, store):
    assert [n.product_id for n in notifications.notifications] == ["P2"]

    # Unrelated change; P2 is still low and already notified
    await store.update("inventory", "P3", {"current_stock": 20})
    assert len(notifications.notifications) == 1

    # P1 enters the low-stock set
    await store.update("inventory", "P1", {"current_stock": 6})
    assert [n.product_id for n in notifications.notifications] == ["P1", "P2"]


@pytest.mark.asyncio
async def test_refresh_without_dedupe_renotifies_every_time(store, clock):
    notifications = NotificationCenter(dedupe=False)
    ledger = StockLedger(store, InventoryConfig(dedupe_low_stock_notifications=False), notifications=notifications)
    await ledger.start()

    await store.update("inventory", "P3", {"current_stock": 20})
    await store.update("inventory", "P3", {"current_stock": 19})

    assert [n.product_id for n in notifications.notifications] == ["P2", "P2", "P2"]
    ledger.stop()
