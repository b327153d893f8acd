"""
Physical transport to the scale indicator.

The session only depends on the ScaleTransport contract; SerialTransport
implements it on top of pyserial for RS232/USB-serial indicators.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

import serial
from fastapi.concurrency import run_in_threadpool
from serial.tools import list_ports

from weighstation.core.logging import get_logger

logger = get_logger(__name__)


class ScaleConnectionError(ConnectionError):
    """Raised when no scale device is available or the device was declined."""

    pass


class TransportError(Exception):
    """Raised when the selected scale device cannot be opened or read."""

    pass


@dataclass(frozen=True)
class SerialConfig:
    """
    Line settings of the scale indicator.

    Most truck scale indicators ship configured for 9600 8N1.
    """

    baud_rate: int = 9600
    byte_size: int = 8
    parity: str = "N"
    stop_bits: int = 1
    read_timeout: float = 0.1


class ScaleTransport(ABC):
    """
    Minimal byte transport contract used by the scale session.

    Implementations must provide device selection, open/close and
    chunked reads. read() returns b"" once the stream has ended.
    """

    @abstractmethod
    async def request_device(self) -> str:
        """
        Select the device to open.

        Returns:
            str: Device identifier (e.g. "/dev/ttyUSB0").

        Raises:
            ScaleConnectionError: If no device is available or none was selected.
        """
        pass

    @abstractmethod
    async def open(self, config: SerialConfig) -> None:
        """
        Open the selected device.

        Raises:
            TransportError: If the device cannot be opened.
        """
        pass

    @abstractmethod
    async def read(self) -> bytes:
        """Return the next chunk of bytes, or b"" at end-of-stream."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the device. Must be safe to call when not open."""
        pass

    @property
    @abstractmethod
    def is_open(self) -> bool:
        pass


class SerialTransport(ScaleTransport):
    """
    Scale transport over a serial port using pyserial.

    Blocking pyserial calls run in the threadpool so the event loop keeps
    serving the API while the line is idle.

    Example:
        transport = SerialTransport(port="/dev/ttyUSB0")
        await transport.request_device()
        await transport.open(SerialConfig())
        chunk = await transport.read()
    """

    def __init__(self, port: str | None = None):
        """
        Initialize serial transport.

        Args:
            port: Preferred device. When None the first detected port is used.
        """
        self._preferred_port = port
        self._device: str | None = None
        self._serial: serial.Serial | None = None

    @property
    def device(self) -> str | None:
        return self._device

    @property
    def is_open(self) -> bool:
        return self._serial is not None and self._serial.is_open

    async def request_device(self) -> str:
        ports = await run_in_threadpool(list_ports.comports)
        available = [p.device for p in ports]

        logger.debug("serial_ports_detected", ports=available)

        if self._preferred_port is not None:
            # Configured ports may be symlinks (udev rules) not listed by comports()
            self._device = self._preferred_port
            return self._device

        if not available:
            raise ScaleConnectionError(
                "No serial ports found. Check the scale cable or use simulation mode."
            )

        self._device = available[0]
        return self._device

    async def open(self, config: SerialConfig) -> None:
        if self._device is None:
            raise ScaleConnectionError("No scale device selected")

        try:
            self._serial = await run_in_threadpool(
                serial.Serial,
                port=self._device,
                baudrate=config.baud_rate,
                bytesize=config.byte_size,
                parity=config.parity,
                stopbits=config.stop_bits,
                timeout=config.read_timeout,
            )
        except (serial.SerialException, ValueError, OSError) as e:
            self._serial = None
            raise TransportError(f"Failed to open {self._device}: {e}") from e

        logger.info(
            "serial_port_opened",
            device=self._device,
            baud_rate=config.baud_rate,
        )

    async def read(self) -> bytes:
        while self.is_open:
            try:
                data = await run_in_threadpool(self._read_available)
            except (serial.SerialException, OSError) as e:
                raise TransportError(f"Read from {self._device} failed: {e}") from e
            if data:
                return data
        return b""

    def _read_available(self) -> bytes:
        """Blocking read of whatever is buffered (at least one byte or timeout)."""
        port = self._serial
        if port is None or not port.is_open:
            return b""
        return port.read(port.in_waiting or 1)

    async def close(self) -> None:
        port, self._serial = self._serial, None
        if port is None:
            return

        await run_in_threadpool(port.close)
        logger.info("serial_port_closed", device=self._device)
