"""
Domain services for plate normalization and ticket pricing.

These services contain pure business logic with no infrastructure
dependencies. They can be easily unit tested.
"""

import re
from dataclasses import dataclass, replace
from datetime import datetime

from weighstation.domain.models import UNKNOWN_PLATE, Ticket, TicketStatus


class TicketClosedError(ValueError):
    """Raised when an already closed ticket is closed again."""

    pass


@dataclass
class PlateTextNormalizer:
    """
    Normalizes recognized or keyed-in text to the stored plate format.

    Plates are kept as upper-case alphanumerics without spaces,
    hyphens or other separators.

    Example:
        >>> normalizer = PlateTextNormalizer()
        >>> normalizer.normalize("abc-123")
        'ABC123'
        >>> normalizer.to_plate("  ")
        'UNKNOWN'
    """

    def normalize(self, text: str | None) -> str:
        """
        Uppercase and strip everything that is not A-Z or 0-9.

        Args:
            text: Raw plate text.

        Returns:
            str: Normalized plate, empty if nothing usable remains.
        """
        if not text:
            return ""

        return re.sub(r"[^A-Z0-9]", "", text.upper())

    def to_plate(self, text: str | None) -> str:
        """Normalize, falling back to the UNKNOWN sentinel when empty."""
        return self.normalize(text) or UNKNOWN_PLATE


@dataclass
class PlateValidator:
    """
    Sanity check for OCR output before it is trusted as a plate.

    Example:
        >>> validator = PlateValidator()
        >>> validator.is_valid("ABC123")
        True
        >>> validator.is_valid("X")
        False
    """

    min_length: int = 2
    max_length: int = 10

    def is_valid(self, plate_number: str) -> bool:
        """
        Check a normalized plate is a plausible registration.

        Args:
            plate_number: Normalized plate number to validate.

        Returns:
            bool: True if the plate has a plausible length and charset.
        """
        if not plate_number or plate_number == UNKNOWN_PLATE:
            return False

        if not self.min_length <= len(plate_number) <= self.max_length:
            return False

        return plate_number.isalnum()


@dataclass
class TicketPricing:
    """
    Computes net weight and cost, and closes tickets.

    Net weight is the absolute difference of the two gross readings, so
    both delivery (truck leaves lighter) and pickup (truck leaves heavier)
    produce a non-negative figure.

    Attributes:
        rate_per_kg: Price per kg of net weight.

    Example:
        >>> pricing = TicketPricing(rate_per_kg=0.25)
        >>> pricing.net_weight(20000, 15000)
        5000
        >>> pricing.total_cost(5000)
        1250.0
    """

    rate_per_kg: float = 0.25

    def net_weight(self, inbound_weight: float, outbound_weight: float) -> float:
        return abs(inbound_weight - outbound_weight)

    def total_cost(self, net_weight: float) -> float:
        """Cost rounded to cents."""
        return round(net_weight * self.rate_per_kg, 2)

    def close_ticket(
        self,
        ticket: Ticket,
        outbound_weight: float,
        outbound_time: datetime,
        outbound_image: str,
    ) -> Ticket:
        """
        Produce the CLOSED version of an open ticket.

        Args:
            ticket: Open ticket to close.
            outbound_weight: Gross weight at weigh-out (kg).
            outbound_time: Weigh-out time.
            outbound_image: Stored path of the weigh-out snapshot.

        Returns:
            Ticket: New closed ticket with the same id.

        Raises:
            TicketClosedError: If the ticket is already closed.
        """
        if ticket.status == TicketStatus.CLOSED:
            raise TicketClosedError(f"Ticket {ticket.id} is already closed")

        net = self.net_weight(ticket.inbound_weight, outbound_weight)

        return replace(
            ticket,
            status=TicketStatus.CLOSED,
            outbound_weight=outbound_weight,
            outbound_time=outbound_time,
            outbound_image=outbound_image,
            net_weight=net,
            rate_per_kg=self.rate_per_kg,
            total_cost=self.total_cost(net),
        )
