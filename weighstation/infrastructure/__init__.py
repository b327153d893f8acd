"""Infrastructure layer package."""

from weighstation.infrastructure.db import (
    TicketRepository,
    close_db,
    get_session_factory,
    init_db,
)
from weighstation.infrastructure.devices import (
    CameraError,
    FrameSource,
    LogTicketPrinter,
    OpenCVCamera,
    StaticFrameSource,
    TicketPrinter,
)
from weighstation.infrastructure.ml import (
    OCRPlateIdentifier,
    PlateIdentifier,
    RecognitionFailure,
    StaticPlateIdentifier,
    get_ocr_engine,
)
from weighstation.infrastructure.scale import (
    ScaleConnectionError,
    ScaleSession,
    ScaleTransport,
    SerialConfig,
    SerialTransport,
    StreamFramer,
    TransportError,
)
from weighstation.infrastructure.storage import ImageStorage, StorageError

__all__ = [
    # Database
    "TicketRepository",
    "get_session_factory",
    "init_db",
    "close_db",
    # Devices
    "FrameSource",
    "OpenCVCamera",
    "StaticFrameSource",
    "CameraError",
    "TicketPrinter",
    "LogTicketPrinter",
    # ML
    "PlateIdentifier",
    "OCRPlateIdentifier",
    "StaticPlateIdentifier",
    "RecognitionFailure",
    "get_ocr_engine",
    # Scale
    "ScaleSession",
    "ScaleTransport",
    "SerialTransport",
    "SerialConfig",
    "StreamFramer",
    "ScaleConnectionError",
    "TransportError",
    # Storage
    "ImageStorage",
    "StorageError",
]
