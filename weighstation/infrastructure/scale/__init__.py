"""Scale infrastructure package."""

from weighstation.infrastructure.scale.framer import StreamFramer, parse_weight
from weighstation.infrastructure.scale.session import ScaleSession, WeightSubscriber
from weighstation.infrastructure.scale.simulator import SimulatedScale
from weighstation.infrastructure.scale.transport import (
    ScaleConnectionError,
    ScaleTransport,
    SerialConfig,
    SerialTransport,
    TransportError,
)

__all__ = [
    # Framing
    "StreamFramer",
    "parse_weight",
    # Session
    "ScaleSession",
    "WeightSubscriber",
    "SimulatedScale",
    # Transport
    "ScaleTransport",
    "SerialTransport",
    "SerialConfig",
    "ScaleConnectionError",
    "TransportError",
]
