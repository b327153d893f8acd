"""
Pytest configuration and fixtures.

Provides shared fixtures for testing including:
- Temporary SQLite database and ledger
- Fake scale transport
- Static camera and plate identifier
- Test client
"""

import asyncio
import os
import uuid
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator, Callable

# Required settings must exist before the application modules are imported
os.environ.setdefault("API_KEY", "test-station-key")
os.environ.setdefault("LOG_FORMAT", "text")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from weighstation.application.ledger import TicketLedger
from weighstation.application.stability import StabilityDetector
from weighstation.application.transaction import TransactionController
from weighstation.application.weight import WeightMonitor
from weighstation.domain.models import Ticket, TicketStatus
from weighstation.domain.services import TicketPricing
from weighstation.infrastructure.db.session import (
    create_session_factory,
    create_test_engine,
    init_db,
)
from weighstation.infrastructure.devices.camera import StaticFrameSource
from weighstation.infrastructure.devices.printer import LogTicketPrinter
from weighstation.infrastructure.ml.identifier import StaticPlateIdentifier
from weighstation.infrastructure.scale.transport import (
    ScaleConnectionError,
    ScaleTransport,
    SerialConfig,
    TransportError,
)
from weighstation.infrastructure.storage.storage import ImageStorage

API_KEY = os.environ["API_KEY"]
QUIET_PERIOD = 0.05


class RecordingPrinter(LogTicketPrinter):
    """Log printer that also keeps every receipt it was handed."""

    def __init__(self) -> None:
        self.printed: list[Ticket] = []

    def print_ticket(self, ticket: Ticket) -> None:
        self.printed.append(ticket)
        super().print_ticket(ticket)


class FakeTransport(ScaleTransport):
    """In-memory scale transport fed by the test."""

    def __init__(self, available: bool = True, fail_open: bool = False):
        self.available = available
        self.fail_open = fail_open
        self.opened = 0
        self.closed = 0
        self._open = False
        self._chunks: asyncio.Queue[bytes | Exception] = asyncio.Queue()

    @property
    def is_open(self) -> bool:
        return self._open

    async def request_device(self) -> str:
        if not self.available:
            raise ScaleConnectionError("No serial ports found")
        return "/dev/ttyFAKE0"

    async def open(self, config: SerialConfig) -> None:
        if self.fail_open:
            raise TransportError("Failed to open /dev/ttyFAKE0: busy")
        self.opened += 1
        self._open = True

    async def read(self) -> bytes:
        item = await self._chunks.get()
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self) -> None:
        self.closed += 1
        self._open = False

    def push(self, chunk: bytes) -> None:
        self._chunks.put_nowait(chunk)

    def end(self) -> None:
        self._chunks.put_nowait(b"")

    def fail(self, error: Exception) -> None:
        self._chunks.put_nowait(error)


@pytest.fixture
async def engine(tmp_path) -> AsyncIterator[AsyncEngine]:
    """Create a test database in a temporary file."""
    engine = create_test_engine(f"sqlite+aiosqlite:///{tmp_path / 'tickets.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(engine)


@pytest.fixture
async def ledger(session_factory) -> TicketLedger:
    ledger = TicketLedger(session_factory)
    await ledger.load()
    return ledger


@pytest.fixture
async def detector() -> AsyncIterator[StabilityDetector]:
    detector = StabilityDetector(quiet_period=QUIET_PERIOD)
    yield detector
    detector.close()


@pytest.fixture
def monitor(detector: StabilityDetector) -> WeightMonitor:
    return WeightMonitor(detector)


@pytest.fixture
def camera() -> StaticFrameSource:
    return StaticFrameSource()


@pytest.fixture
def identifier() -> StaticPlateIdentifier:
    return StaticPlateIdentifier("ABC123", 0.93)


@pytest.fixture
def storage(tmp_path) -> ImageStorage:
    return ImageStorage(tmp_path / "images")


@pytest.fixture
def printer() -> RecordingPrinter:
    return RecordingPrinter()


@pytest.fixture
def controller(ledger, monitor, identifier, camera, storage, printer) -> TransactionController:
    return TransactionController(
        ledger=ledger,
        monitor=monitor,
        identifier=identifier,
        camera=camera,
        storage=storage,
        printer=printer,
        pricing=TicketPricing(rate_per_kg=0.25),
    )


@pytest.fixture
def make_transport() -> type[FakeTransport]:
    return FakeTransport


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def make_ticket() -> Callable[..., Ticket]:
    """Build an open ticket, optionally hours in the past."""

    def _make(
        plate: str = "ABC123",
        weight: float = 20000.0,
        hours_ago: float = 0.0,
        **overrides,
    ) -> Ticket:
        fields = dict(
            id=str(uuid.uuid4()),
            license_plate=plate,
            material_type="Mixed Metal",
            inbound_weight=weight,
            inbound_time=datetime.now(timezone.utc) - timedelta(hours=hours_ago),
            inbound_image="2026-10-19/080000_inbound_UNKNOWN_0000abcd.jpg",
            status=TicketStatus.OPEN,
        )
        fields.update(overrides)
        return Ticket(**fields)

    return _make


@pytest.fixture
def api_headers() -> dict[str, str]:
    return {"X-API-Key": API_KEY}


@pytest.fixture
def test_client(tmp_path) -> TestClient:
    """Create test client on a console with fake hardware."""
    from weighstation.application.console import WeighStationConsole
    from weighstation.main import create_app

    database = create_test_engine(f"sqlite+aiosqlite:///{tmp_path / 'api.db'}")

    async def console_factory(settings) -> WeighStationConsole:
        await init_db(database)
        settings = settings.model_copy(update={"stability_quiet_ms": int(QUIET_PERIOD * 1000)})
        return WeighStationConsole.from_settings(
            settings,
            create_session_factory(database),
            transport=FakeTransport(),
            identifier=StaticPlateIdentifier("ABC123", 0.93),
            camera=StaticFrameSource(),
            printer=LogTicketPrinter(),
            storage=ImageStorage(tmp_path / "images"),
        )

    app = create_app(console_factory=console_factory)
    with TestClient(app) as client:
        yield client
