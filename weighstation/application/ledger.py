"""
Ticket ledger: the authoritative set of weigh tickets.

Tickets are held in memory in weigh-in order and every change is written
through to the database before it becomes visible.
"""

import asyncio

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from weighstation.core.logging import get_logger
from weighstation.domain.models import UNKNOWN_PLATE, LedgerSummary, Ticket
from weighstation.domain.services import PlateTextNormalizer
from weighstation.infrastructure.db.repository import TicketRepository

logger = get_logger(__name__)


class PersistenceError(Exception):
    """Raised when a ticket could not be written."""

    pass


class TicketLedger:
    """
    In-memory ticket set backed by the ticket repository.

    Example:
        ledger = TicketLedger(get_session_factory())
        await ledger.load()
        await ledger.append(ticket)
        open_ticket = ledger.find_open_by_plate("ABC123")
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        normalizer: PlateTextNormalizer | None = None,
    ):
        """
        Initialize ledger.

        Args:
            session_factory: Factory for database sessions.
            normalizer: Plate normalizer used for lookups.
        """
        self._session_factory = session_factory
        self._normalizer = normalizer or PlateTextNormalizer()
        self._tickets: list[Ticket] = []
        self._write_lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._tickets)

    async def load(self) -> int:
        """
        Replace the in-memory set with the stored tickets.

        Returns:
            int: Number of tickets loaded.

        Raises:
            PersistenceError: If the database cannot be read.
        """
        try:
            async with self._session_factory() as session:
                tickets = await TicketRepository(session).load_all()
        except SQLAlchemyError as e:
            logger.error("ledger_load_failed", error=str(e))
            raise PersistenceError(f"Failed to load tickets: {e}") from e

        self._tickets = list(tickets)
        logger.info("ledger_loaded", tickets=len(self._tickets))
        return len(self._tickets)

    async def append(self, ticket: Ticket) -> Ticket:
        """
        Insert a ticket or replace the one with the same id.

        The database write happens first; on failure the in-memory set is
        left untouched.

        Args:
            ticket: Ticket to store.

        Returns:
            Ticket: The stored ticket.

        Raises:
            PersistenceError: If the write fails.
        """
        async with self._write_lock:
            try:
                async with self._session_factory() as session:
                    async with session.begin():
                        await TicketRepository(session).upsert(ticket)
            except (SQLAlchemyError, OSError) as e:
                logger.error(
                    "ticket_persist_failed",
                    ticket_id=ticket.id,
                    status=ticket.status.value,
                    error=str(e),
                )
                raise PersistenceError(f"Failed to save ticket {ticket.ticket_number}: {e}") from e

            for index, existing in enumerate(self._tickets):
                if existing.id == ticket.id:
                    self._tickets[index] = ticket
                    break
            else:
                self._tickets.append(ticket)

        logger.info(
            "ticket_saved",
            ticket_id=ticket.id,
            plate=ticket.license_plate,
            status=ticket.status.value,
        )
        return ticket

    async def ping(self) -> bool:
        """Check the database answers."""
        try:
            async with self._session_factory() as session:
                await session.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.warning("database_ping_failed", error=str(e))
            return False
        return True

    def get(self, ticket_id: str) -> Ticket | None:
        for ticket in self._tickets:
            if ticket.id == ticket_id:
                return ticket
        return None

    def find_open_by_plate(self, plate: str | None) -> Ticket | None:
        """
        Find the open ticket of a plate.

        If several open tickets share the plate, the earliest weigh-in wins.

        Args:
            plate: Plate as recognized or keyed in.

        Returns:
            Ticket: Matching open ticket, or None (always None for UNKNOWN).
        """
        normalized = self._normalizer.normalize(plate)
        if not normalized or normalized == UNKNOWN_PLATE:
            return None

        matches = [
            ticket
            for ticket in self._tickets
            if ticket.is_open and ticket.license_plate == normalized
        ]
        if not matches:
            return None
        return min(matches, key=lambda t: t.inbound_time)

    def list_all(self) -> list[Ticket]:
        """All tickets, most recent activity first."""
        return sorted(self._tickets, key=lambda t: t.last_activity, reverse=True)

    def recent(self, limit: int = 10) -> list[Ticket]:
        return self.list_all()[:limit]

    def summary(self) -> LedgerSummary:
        """Totals for the history dashboard."""
        closed = [t for t in self._tickets if not t.is_open]
        return LedgerSummary(
            total_tickets=len(self._tickets),
            open_tickets=len(self._tickets) - len(closed),
            closed_tickets=len(closed),
            total_net_weight=sum(t.net_weight or 0.0 for t in closed),
            total_revenue=round(sum(t.total_cost or 0.0 for t in closed), 2),
        )
