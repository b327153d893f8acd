"""
Domain models for the Weigh Station Console.

These are pure domain objects with no infrastructure dependencies.
They represent the core business concepts and rules.
"""

import math
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

# Sentinel plate for vehicles the identifier could not read
UNKNOWN_PLATE = "UNKNOWN"


class StabilityState(str, Enum):
    """
    Whether the scale reading can be trusted for a capture.

    MOTION: Weight changed within the quiet period.
    STABLE: Weight unchanged for the whole quiet period, or manual entry.
    """

    MOTION = "MOTION"
    STABLE = "STABLE"


class TicketStatus(str, Enum):
    """
    Lifecycle status of a weigh ticket.

    OPEN: Weighed in, awaiting outbound weighing.
    CLOSED: Weighed out, net weight and cost computed.
    """

    OPEN = "OPEN"
    CLOSED = "CLOSED"


class MaterialType(str, Enum):
    """Materials accepted at the station."""

    MIXED_METAL = "Mixed Metal"
    CARDBOARD = "Cardboard"
    PLASTIC = "Plastic"
    E_WASTE = "E-Waste"
    CONSTRUCTION_DEBRIS = "Construction Debris"
    CLEAN_WOOD = "Clean Wood"


class TransactionState(str, Enum):
    """States of the weighing transaction state machine."""

    IDLE = "IDLE"
    RESOLVING = "RESOLVING"
    INBOUND_DRAFT = "INBOUND_DRAFT"
    OUTBOUND_DRAFT = "OUTBOUND_DRAFT"


class ScaleMode(str, Enum):
    """Which weight source currently feeds the console."""

    OFFLINE = "OFFLINE"
    CONNECTED = "CONNECTED"
    SIMULATING = "SIMULATING"


@dataclass(frozen=True)
class WeightReading:
    """
    A single decoded scale reading.

    Attributes:
        value: Gross weight in kg.
        observed_at: Monotonic clock time of the observation.
    """

    value: float
    observed_at: float = field(default_factory=time.monotonic)

    def __post_init__(self) -> None:
        """Validate weight is finite and non-negative."""
        if not math.isfinite(self.value) or self.value < 0:
            raise ValueError(f"Weight must be a finite non-negative number, got {self.value}")


@dataclass(frozen=True)
class RecognitionResult:
    """
    Plate identification result for a captured frame.

    Attributes:
        license_plate: Normalized plate, or UNKNOWN_PLATE.
        confidence: Identifier confidence score (0.0 to 1.0).
    """

    license_plate: str
    confidence: float

    def __post_init__(self) -> None:
        """Validate confidence is in valid range."""
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence must be between 0 and 1, got {self.confidence}")

    @classmethod
    def unknown(cls) -> "RecognitionResult":
        """Result used whenever no usable plate was read."""
        return cls(license_plate=UNKNOWN_PLATE, confidence=0.0)

    @property
    def is_unknown(self) -> bool:
        return self.license_plate == UNKNOWN_PLATE


@dataclass(frozen=True)
class Ticket:
    """
    A weigh ticket: one truck's inbound and, later, outbound weighing.

    Tickets are immutable values. Closing a ticket produces a new value
    with the same id (see TicketPricing.close_ticket).

    Attributes:
        id: Globally unique identifier assigned at inbound.
        license_plate: Normalized plate number.
        material_type: Material carried by the truck.
        inbound_weight: Gross weight at weigh-in (kg).
        inbound_time: When the truck weighed in.
        inbound_image: Stored path of the weigh-in snapshot.
        status: OPEN or CLOSED.
        company_name: Optional hauling company.
        outbound_weight: Gross weight at weigh-out (kg), CLOSED only.
        outbound_time: When the truck weighed out, CLOSED only.
        outbound_image: Stored path of the weigh-out snapshot, CLOSED only.
        net_weight: |inbound - outbound| (kg), CLOSED only.
        rate_per_kg: Price per kg applied, CLOSED only.
        total_cost: net_weight * rate_per_kg, CLOSED only.
    """

    id: str
    license_plate: str
    material_type: str
    inbound_weight: float
    inbound_time: datetime
    inbound_image: str
    status: TicketStatus = TicketStatus.OPEN
    company_name: str | None = None
    outbound_weight: float | None = None
    outbound_time: datetime | None = None
    outbound_image: str | None = None
    net_weight: float | None = None
    rate_per_kg: float | None = None
    total_cost: float | None = None

    def __post_init__(self) -> None:
        """Outbound and financial fields exist if and only if the ticket is closed."""
        closing_fields = (
            self.outbound_weight,
            self.outbound_time,
            self.outbound_image,
            self.net_weight,
            self.rate_per_kg,
            self.total_cost,
        )
        if self.status == TicketStatus.CLOSED:
            if any(value is None for value in closing_fields):
                raise ValueError(f"Closed ticket {self.id} is missing outbound or financial fields")
        elif any(value is not None for value in closing_fields):
            raise ValueError(f"Open ticket {self.id} must not carry outbound or financial fields")

    @property
    def is_open(self) -> bool:
        return self.status == TicketStatus.OPEN

    @property
    def ticket_number(self) -> str:
        """Short number printed on receipts."""
        return self.id[:8]

    @property
    def last_activity(self) -> datetime:
        """Outbound time if the truck weighed out, otherwise inbound time."""
        return self.outbound_time or self.inbound_time


@dataclass
class TransactionDraft:
    """
    The in-flight weighing transaction.

    Attributes:
        transaction_id: Trace identifier for logging.
        state: Current state machine state.
        captured_weight: Effective weight at capture time (kg).
        captured_at: When the capture was requested.
        captured_image: Stored path of the capture snapshot.
        license_plate: Recognized or operator-corrected plate.
        confidence: Identifier confidence for the recognized plate.
        material_type: Material selected for an inbound ticket.
        company_name: Optional hauling company for an inbound ticket.
        matched_ticket: Open ticket being closed (outbound only).
        persistence_failed: Set when the last confirm could not be saved.
    """

    transaction_id: str
    state: TransactionState
    captured_weight: float
    captured_at: datetime
    captured_image: str
    material_type: str
    license_plate: str = UNKNOWN_PLATE
    confidence: float = 0.0
    company_name: str | None = None
    matched_ticket: Ticket | None = None
    persistence_failed: bool = False


@dataclass(frozen=True)
class LedgerSummary:
    """Aggregate figures for the history dashboard."""

    total_tickets: int
    open_tickets: int
    closed_tickets: int
    total_net_weight: float
    total_revenue: float
