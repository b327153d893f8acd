"""
Repository pattern implementation for ticket persistence.

The repository abstracts database operations and provides
a clean interface for the application layer.
"""

from datetime import datetime, timezone
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from weighstation.domain.models import Ticket, TicketStatus
from weighstation.infrastructure.db.models import TicketDB


class TicketRepository:
    """
    Repository for weigh tickets.

    Last write wins: upsert overwrites every column of an existing id.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize repository with database session.

        Args:
            session: Async SQLAlchemy session.
        """
        self._session = session

    async def load_all(self) -> Sequence[Ticket]:
        """
        Load every ticket in weigh-in order.

        Returns:
            list: All tickets, oldest inbound first.
        """
        stmt = select(TicketDB).order_by(TicketDB.inbound_time.asc(), TicketDB.id.asc())
        result = await self._session.execute(stmt)
        return [self._to_domain(row) for row in result.scalars().all()]

    async def get_by_id(self, ticket_id: str) -> Ticket | None:
        """
        Get ticket by ID.

        Args:
            ticket_id: Ticket identifier.

        Returns:
            Ticket: Domain model if found, None otherwise.
        """
        db_ticket = await self._session.get(TicketDB, ticket_id)
        if db_ticket is None:
            return None
        return self._to_domain(db_ticket)

    async def upsert(self, ticket: Ticket) -> None:
        """
        Insert a new ticket or overwrite the stored one with the same id.

        Args:
            ticket: Domain model to persist.
        """
        await self._session.merge(self._to_db(ticket))
        await self._session.flush()

    def _to_db(self, ticket: Ticket) -> TicketDB:
        """Convert domain model to database model."""
        return TicketDB(
            id=ticket.id,
            license_plate=ticket.license_plate,
            company_name=ticket.company_name,
            material_type=ticket.material_type,
            status=ticket.status.value,
            inbound_weight=ticket.inbound_weight,
            inbound_time=ticket.inbound_time,
            inbound_image=ticket.inbound_image,
            outbound_weight=ticket.outbound_weight,
            outbound_time=ticket.outbound_time,
            outbound_image=ticket.outbound_image,
            net_weight=ticket.net_weight,
            rate_per_kg=ticket.rate_per_kg,
            total_cost=ticket.total_cost,
        )

    def _to_domain(self, db_ticket: TicketDB) -> Ticket:
        """Convert database model to domain model."""
        return Ticket(
            id=db_ticket.id,
            license_plate=db_ticket.license_plate,
            company_name=db_ticket.company_name,
            material_type=db_ticket.material_type,
            status=TicketStatus(db_ticket.status),
            inbound_weight=db_ticket.inbound_weight,
            inbound_time=_as_utc(db_ticket.inbound_time),
            inbound_image=db_ticket.inbound_image,
            outbound_weight=db_ticket.outbound_weight,
            outbound_time=_as_utc(db_ticket.outbound_time),
            outbound_image=db_ticket.outbound_image,
            net_weight=db_ticket.net_weight,
            rate_per_kg=db_ticket.rate_per_kg,
            total_cost=db_ticket.total_cost,
        )


def _as_utc(value: datetime | None) -> datetime | None:
    """SQLite drops tzinfo; stored times are always UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)
