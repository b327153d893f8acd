"""Application layer package - use cases and services."""

from weighstation.application.console import WeighStationConsole
from weighstation.application.ledger import PersistenceError, TicketLedger
from weighstation.application.stability import StabilityDetector
from weighstation.application.transaction import (
    NotStableError,
    TransactionController,
    TransactionStateError,
)
from weighstation.application.weight import WeightMonitor, WeightStatus

__all__ = [
    "WeighStationConsole",
    "TicketLedger",
    "PersistenceError",
    "StabilityDetector",
    "TransactionController",
    "NotStableError",
    "TransactionStateError",
    "WeightMonitor",
    "WeightStatus",
]
