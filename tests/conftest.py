import sys
from pathlib import Path

import pytest
import pytest_asyncio

# Ensure project root is on sys.path to allow `import services`, `import utils`, etc.
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))
TESTS_DIR = Path(__file__).resolve().parent
if str(TESTS_DIR) not in sys.path:
    sys.path.append(str(TESTS_DIR))

from config.config import InventoryConfig  # noqa: E402
from connectors.memory_store import InMemoryDocumentStore  # noqa: E402
from mocks import FakeClock, inventory_seed  # noqa: E402
from services.alerts import AlertService  # noqa: E402
from services.fulfillment import OrderFulfillmentEngine  # noqa: E402
from services.movements import MovementRecorder  # noqa: E402
from services.notifications import NotificationCenter  # noqa: E402
from services.stock_ledger import StockLedger  # noqa: E402
from utils.event_bus import EventBus  # noqa: E402


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config() -> InventoryConfig:
    return InventoryConfig()


@pytest.fixture
def store(clock: FakeClock) -> InMemoryDocumentStore:
    """A store seeded with four products and four orders."""
    return InMemoryDocumentStore(initial=inventory_seed(), clock=clock)


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def notifications(config: InventoryConfig) -> NotificationCenter:
    return NotificationCenter(dedupe=config.dedupe_low_stock_notifications)


@pytest_asyncio.fixture
async def ledger(store, config, notifications, clock) -> StockLedger:
    """A started stock ledger over the seeded store."""
    ledger = StockLedger(store, config, notifications=notifications, clock=clock)
    await ledger.start()
    yield ledger
    ledger.stop()


@pytest.fixture
def recorder(store, config, event_bus) -> MovementRecorder:
    return MovementRecorder(store, config, event_bus=event_bus)


@pytest.fixture
def alert_service(store, config, event_bus, clock) -> AlertService:
    return AlertService(store, config, event_bus=event_bus, clock=clock)


@pytest.fixture
def engine(store, ledger, recorder, alert_service, event_bus, config) -> OrderFulfillmentEngine:
    return OrderFulfillmentEngine(
        store, ledger, recorder, alerts=alert_service, event_bus=event_bus, config=config
    )
