"""
Scale session: owns the weight source and publishes readings.

Exactly one source feeds the console at a time: the physical transport
or the simulator. Readings are pushed to a single subscriber.
"""

import asyncio
import codecs
from collections.abc import Callable

from weighstation.core.logging import get_logger
from weighstation.domain.models import ScaleMode, WeightReading
from weighstation.infrastructure.scale.framer import StreamFramer
from weighstation.infrastructure.scale.simulator import SimulatedScale
from weighstation.infrastructure.scale.transport import (
    ScaleTransport,
    SerialConfig,
    TransportError,
)

logger = get_logger(__name__)

WeightSubscriber = Callable[[WeightReading], None]


class ScaleSession:
    """
    Connection lifecycle and read loop for the scale.

    Example:
        session = ScaleSession(SerialTransport())
        session.subscribe(lambda reading: print(reading.value))
        await session.connect()
        ...
        await session.disconnect()
    """

    def __init__(
        self,
        transport: ScaleTransport,
        config: SerialConfig | None = None,
        simulator_factory: Callable[[], SimulatedScale] | None = None,
        simulation_interval: float = 0.1,
    ):
        """
        Initialize scale session.

        Args:
            transport: Physical transport to the indicator.
            config: Line settings used when opening the transport.
            simulator_factory: Builds a fresh simulator for each simulation run.
            simulation_interval: Seconds between simulated readings.
        """
        self._transport = transport
        self._config = config or SerialConfig()
        self._simulator_factory = simulator_factory or SimulatedScale
        self._simulation_interval = simulation_interval

        self._framer = StreamFramer()
        self._decoder: codecs.IncrementalDecoder | None = None
        self._subscriber: WeightSubscriber | None = None
        self._offline_listener: Callable[[], None] | None = None
        self._task: asyncio.Task | None = None
        self._mode = ScaleMode.OFFLINE
        self._lock = asyncio.Lock()
        self._last_reading: WeightReading | None = None

    @property
    def mode(self) -> ScaleMode:
        return self._mode

    @property
    def is_connected(self) -> bool:
        return self._mode == ScaleMode.CONNECTED

    @property
    def is_simulating(self) -> bool:
        return self._mode == ScaleMode.SIMULATING

    @property
    def last_reading(self) -> WeightReading | None:
        return self._last_reading

    def subscribe(self, subscriber: WeightSubscriber | None) -> None:
        """Set the single reading subscriber, replacing any previous one."""
        self._subscriber = subscriber

    def on_offline(self, listener: Callable[[], None] | None) -> None:
        """Set the callback run when the stream ends or the read loop fails."""
        self._offline_listener = listener

    async def connect(self) -> None:
        """
        Open the physical scale and start the read loop.

        No-op when already connected. Stops a running simulation first.

        Raises:
            ScaleConnectionError: If no device is available or selected.
            TransportError: If the selected device cannot be opened.
        """
        async with self._lock:
            if self._mode == ScaleMode.CONNECTED:
                logger.debug("scale_already_connected")
                return

            if self._mode == ScaleMode.SIMULATING:
                await self._stop_task()
                self._mode = ScaleMode.OFFLINE

            device = await self._transport.request_device()
            await self._transport.open(self._config)

            self._framer.reset()
            self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
            self._mode = ScaleMode.CONNECTED
            self._task = asyncio.create_task(self._read_loop(), name="scale-read-loop")

            logger.info("scale_connected", device=device, baud_rate=self._config.baud_rate)

    async def disconnect(self) -> None:
        """
        Stop the read loop and close the transport.

        Safe to call when never connected.
        """
        async with self._lock:
            await self._release()

    async def start_simulation(self) -> None:
        """Replace any real connection with the simulated source."""
        async with self._lock:
            if self._mode == ScaleMode.SIMULATING:
                return

            await self._release()
            self._mode = ScaleMode.SIMULATING
            self._task = asyncio.create_task(
                self._simulation_loop(self._simulator_factory()),
                name="scale-simulation",
            )
            logger.info("scale_simulation_started")

    async def stop_simulation(self) -> None:
        async with self._lock:
            if self._mode != ScaleMode.SIMULATING:
                return
            await self._release()

    async def toggle_simulation(self) -> ScaleMode:
        """Flip simulation on or off and return the resulting mode."""
        if self.is_simulating:
            await self.stop_simulation()
        else:
            await self.start_simulation()
        return self._mode

    async def _release(self) -> None:
        """Tear down whichever source is active."""
        previous = self._mode
        await self._stop_task()

        if self._decoder is not None:
            try:
                self._publish_text(self._decoder.decode(b"", final=True))
            except Exception as e:
                logger.warning("scale_decoder_cleanup_failed", error=str(e))
            self._decoder = None

        if previous == ScaleMode.CONNECTED or self._transport.is_open:
            try:
                await self._transport.close()
            except Exception as e:
                logger.warning("scale_transport_close_failed", error=str(e))

        self._framer.reset()
        self._mode = ScaleMode.OFFLINE

        if previous != ScaleMode.OFFLINE:
            logger.info("scale_disconnected", previous_mode=previous.value)

    async def _stop_task(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _read_loop(self) -> None:
        """Read chunks until end-of-stream, transport failure or cancellation."""
        try:
            while True:
                chunk = await self._transport.read()
                if not chunk:
                    logger.info("scale_stream_ended")
                    break
                self._publish_text(self._decoder.decode(chunk))
        except TransportError as e:
            logger.error("scale_read_failed", error=str(e))
        except Exception as e:
            logger.error("scale_read_loop_crashed", error=str(e), error_type=type(e).__name__)

        # Ended on its own: release the port so a reconnect can reopen it
        self._task = None
        try:
            await self._transport.close()
        except Exception as e:
            logger.warning("scale_transport_close_failed", error=str(e))
        self._decoder = None
        self._framer.reset()
        self._mode = ScaleMode.OFFLINE

        if self._offline_listener is not None:
            self._offline_listener()

    async def _simulation_loop(self, simulator: SimulatedScale) -> None:
        while True:
            self._publish(WeightReading(simulator.next_weight()))
            await asyncio.sleep(self._simulation_interval)

    def _publish_text(self, text: str) -> None:
        for reading in self._framer.feed(text):
            self._publish(reading)

    def _publish(self, reading: WeightReading) -> None:
        self._last_reading = reading
        if self._subscriber is not None:
            self._subscriber(reading)
