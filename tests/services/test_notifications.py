import logging

from models.inventory import Product
from services.notifications import NotificationCenter


def _low(pid: str, stock: int) -> Product:
    return Product(id=pid, name=f"Item {pid}", category="plumbing", current_stock=stock)


def test_add_notification_newest_first():
    center = NotificationCenter()
    first = center.add_notification("info", "Hello", "First message")
    second = center.add_notification("info", "Hello", "Second message", severity="success")

    assert [n.id for n in center.notifications] == [second.id, first.id]
    assert center.unread_count == 2
    assert second.severity == "success"


def test_mark_as_read():
    center = NotificationCenter()
    note = center.add_notification("info", "Hello", "Message")

    assert center.mark_as_read(note.id) is True
    assert center.notifications[0].read is True
    assert center.unread_count == 0


def test_mark_unknown_notification_as_read(caplog):
    center = NotificationCenter()
    with caplog.at_level(logging.WARNING):
        assert center.mark_as_read("missing") is False
    assert "Notification missing not found" in caplog.text


def test_notify_low_stock_message():
    center = NotificationCenter()
    emitted = center.notify_low_stock([_low("A", 2)])

    assert len(emitted) == 1
    assert emitted[0].type == "low_stock"
    assert emitted[0].severity == "warning"
    assert emitted[0].product_id == "A"
    assert emitted[0].message == "Item A - only 2 left in stock"


def test_notify_low_stock_dedupes_until_product_recovers():
    center = NotificationCenter(dedupe=True)

    assert len(center.notify_low_stock([_low("A", 2)])) == 1
    assert center.notify_low_stock([_low("A", 1)]) == []

    # A recovers, then drops again
    assert center.notify_low_stock([]) == []
    assert len(center.notify_low_stock([_low("A", 3)])) == 1
    assert len(center.notifications) == 2


def test_notify_low_stock_without_dedupe():
    center = NotificationCenter(dedupe=False)
    center.notify_low_stock([_low("A", 2), _low("B", 1)])
    center.notify_low_stock([_low("A", 2)])

    assert [n.product_id for n in center.notifications] == ["A", "B", "A"]
