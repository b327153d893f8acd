"""Camera and printer collaborators."""

from weighstation.infrastructure.devices.camera import (
    CameraError,
    FrameSource,
    OpenCVCamera,
    StaticFrameSource,
)
from weighstation.infrastructure.devices.printer import LogTicketPrinter, TicketPrinter

__all__ = [
    # Camera
    "FrameSource",
    "OpenCVCamera",
    "StaticFrameSource",
    "CameraError",
    # Printer
    "TicketPrinter",
    "LogTicketPrinter",
]
