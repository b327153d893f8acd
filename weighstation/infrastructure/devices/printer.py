"""
Receipt printer collaborators.

Printing is fire-and-forget for the console: a closed ticket is handed
over and the transaction completes regardless of the outcome.
"""

from abc import ABC, abstractmethod

from weighstation.core.logging import get_logger
from weighstation.domain.models import Ticket

logger = get_logger(__name__)


class TicketPrinter(ABC):
    """Abstract receipt printer."""

    @abstractmethod
    def print_ticket(self, ticket: Ticket) -> None:
        """Render a closed ticket."""
        pass


class LogTicketPrinter(TicketPrinter):
    """
    Printer that emits the receipt as a structured log event.

    Stands in for a spooler on stations without a receipt printer; the
    event carries every field printed on the paper receipt.
    """

    def print_ticket(self, ticket: Ticket) -> None:
        logger.info(
            "receipt_printed",
            ticket_number=ticket.ticket_number,
            plate=ticket.license_plate,
            material=ticket.material_type,
            inbound_weight=ticket.inbound_weight,
            inbound_time=ticket.inbound_time.isoformat(),
            outbound_weight=ticket.outbound_weight,
            outbound_time=ticket.outbound_time.isoformat() if ticket.outbound_time else None,
            net_weight=ticket.net_weight,
            total_cost=f"{ticket.total_cost:.2f}" if ticket.total_cost is not None else None,
        )
