"""Test doubles shared across the suite."""

from datetime import datetime, timedelta


class FakeClock:
    """Deterministic clock; every call moves time forward by ``step``."""

    def __init__(self, start: datetime | None = None, step: timedelta = timedelta(seconds=1)):
        self.now = start or datetime(2024, 1, 10, 9, 0, 0)
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.step
        return current

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def inventory_seed() -> dict:
    """Products and orders used by most service tests."""
    return {
        "inventory": {
            "P1": {"name": "Portland Cement 40kg", "category": "cement", "price": 12.5, "cost": 8.0, "current_stock": 12},
            "P2": {"name": "Claw Hammer", "category": "tools", "price": 18.0, "cost": 9.5, "current_stock": 3},
            "P3": {"name": "2x4 Stud 8ft", "category": "lumber", "price": 4.25, "cost": 2.1, "current_stock": 25},
            "P4": {"name": "Exterior Paint 1gal", "category": "paint", "price": 32.0, "cost": 20.0, "current_stock": 0},
        },
        "orders": {
            "O1": {
                "items": [{"product_id": "P1", "name": "Portland Cement 40kg", "quantity": 5}],
                "status": "pending",
                "processed": False,
                "total": 62.5,
            },
            "O2": {
                "items": [{"product_id": "P2", "name": "Claw Hammer", "quantity": 5}],
                "status": "pending",
                "processed": False,
                "total": 90.0,
            },
            "O3": {
                "items": [{"product_id": "P1", "name": "Portland Cement 40kg", "quantity": 2}],
                "status": "pending",
                "processed": True,
                "total": 25.0,
            },
            "O6": {
                "items": [
                    {"product_id": "P1", "name": "Portland Cement 40kg", "quantity": 3},
                    {"product_id": "P3", "name": "2x4 Stud 8ft", "quantity": 2},
                ],
                "status": "pending",
                "processed": False,
                "total": 46.0,
            },
        },
    }
