"""
Weigh station console: wires the scale, stability, ledger and
transaction components into one station.
"""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from weighstation.application.ledger import TicketLedger
from weighstation.application.stability import StabilityDetector
from weighstation.application.transaction import TransactionController
from weighstation.application.weight import WeightMonitor
from weighstation.core.config import Settings
from weighstation.core.logging import get_logger
from weighstation.domain.models import ScaleMode
from weighstation.domain.services import TicketPricing
from weighstation.infrastructure.devices.camera import FrameSource, OpenCVCamera
from weighstation.infrastructure.devices.printer import LogTicketPrinter, TicketPrinter
from weighstation.infrastructure.ml.identifier import OCRPlateIdentifier, PlateIdentifier
from weighstation.infrastructure.ml.ocr import get_ocr_engine
from weighstation.infrastructure.scale.session import ScaleSession
from weighstation.infrastructure.scale.simulator import SimulatedScale
from weighstation.infrastructure.scale.transport import (
    ScaleTransport,
    SerialConfig,
    SerialTransport,
)
from weighstation.infrastructure.storage.storage import ImageStorage

logger = get_logger(__name__)


class WeighStationConsole:
    """
    One weigh station: scale session, weight monitor, ledger, controller.

    The monitor is the session's only subscriber, so readings keep
    flowing into stability detection while a transaction is pending.

    Example:
        console = WeighStationConsole.from_settings(settings, get_session_factory())
        await console.start()
        await console.scale.start_simulation()
        draft = await console.transactions.capture()
    """

    def __init__(
        self,
        scale: ScaleSession,
        monitor: WeightMonitor,
        ledger: TicketLedger,
        transactions: TransactionController,
        camera: FrameSource,
    ):
        self.scale = scale
        self.monitor = monitor
        self.ledger = ledger
        self.transactions = transactions
        self.camera = camera

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession],
        transport: ScaleTransport | None = None,
        identifier: PlateIdentifier | None = None,
        camera: FrameSource | None = None,
        printer: TicketPrinter | None = None,
        storage: ImageStorage | None = None,
    ) -> "WeighStationConsole":
        """
        Build a console from configuration.

        Collaborators default to the hardware-backed implementations;
        tests and demos pass their own.
        """
        scale = ScaleSession(
            transport or SerialTransport(port=settings.serial_port),
            config=SerialConfig(
                baud_rate=settings.baud_rate,
                byte_size=settings.byte_size,
                parity=settings.parity,
                stop_bits=settings.stop_bits,
                read_timeout=settings.read_timeout_seconds,
            ),
            simulator_factory=lambda: SimulatedScale(target=settings.simulation_target_kg),
            simulation_interval=settings.simulation_tick_ms / 1000.0,
        )
        monitor = WeightMonitor(
            StabilityDetector(
                quiet_period=settings.stability_quiet_seconds,
                tolerance=settings.stability_tolerance_kg,
            )
        )
        ledger = TicketLedger(session_factory)
        camera = camera or OpenCVCamera(index=settings.camera_index)
        identifier = identifier or OCRPlateIdentifier(
            get_ocr_engine(gpu=settings.ocr_use_gpu),
            confidence_threshold=settings.ocr_confidence_threshold,
        )
        transactions = TransactionController(
            ledger=ledger,
            monitor=monitor,
            identifier=identifier,
            camera=camera,
            storage=storage or ImageStorage(settings.image_storage_path),
            printer=printer or LogTicketPrinter(),
            pricing=TicketPricing(rate_per_kg=settings.rate_per_kg),
            default_material=settings.default_material,
        )
        return cls(scale, monitor, ledger, transactions, camera)

    async def start(self) -> None:
        """Load the ledger and attach the monitor to the scale feed."""
        await self.ledger.load()
        self.scale.subscribe(self.monitor.on_reading)
        self.scale.on_offline(self._scale_lost)
        logger.info("console_started", tickets=len(self.ledger))

    async def stop(self) -> None:
        """Release the scale, the stability timer and the camera."""
        await self.scale.disconnect()
        self.scale.subscribe(None)
        self.scale.on_offline(None)
        self.monitor.close()
        self.camera.close()
        logger.info("console_stopped")

    async def connect_scale(self) -> ScaleMode:
        """Open the physical scale (replacing a simulation)."""
        was_simulating = self.scale.is_simulating
        await self.scale.connect()
        if was_simulating:
            self.monitor.reset_live()
        return self.scale.mode

    async def disconnect_scale(self) -> ScaleMode:
        await self.scale.disconnect()
        self.monitor.reset_live()
        return self.scale.mode

    async def toggle_simulation(self) -> ScaleMode:
        """Switch between simulated and no weight source, zeroing the display."""
        mode = await self.scale.toggle_simulation()
        self.monitor.reset_live()
        return mode

    def _scale_lost(self) -> None:
        # The last reading from a dead stream must not stay capturable
        logger.warning("scale_lost", weight=self.monitor.live_weight)
        self.monitor.reset_live()
