"""Domain layer package - business rules and core models."""

from weighstation.domain.models import (
    UNKNOWN_PLATE,
    LedgerSummary,
    MaterialType,
    RecognitionResult,
    ScaleMode,
    StabilityState,
    Ticket,
    TicketStatus,
    TransactionDraft,
    TransactionState,
    WeightReading,
)
from weighstation.domain.services import (
    PlateTextNormalizer,
    PlateValidator,
    TicketClosedError,
    TicketPricing,
)

__all__ = [
    # Models
    "UNKNOWN_PLATE",
    "LedgerSummary",
    "MaterialType",
    "RecognitionResult",
    "ScaleMode",
    "StabilityState",
    "Ticket",
    "TicketStatus",
    "TransactionDraft",
    "TransactionState",
    "WeightReading",
    # Services
    "PlateTextNormalizer",
    "PlateValidator",
    "TicketClosedError",
    "TicketPricing",
]
