"""
Integration tests for ledger → database flow.

Tests the TicketLedger against a real SQLite database.
"""

from datetime import datetime, timezone

import pytest

from weighstation.application.ledger import PersistenceError, TicketLedger
from weighstation.domain.models import UNKNOWN_PLATE, TicketStatus
from weighstation.domain.services import TicketPricing
from weighstation.infrastructure.db.models import Base
from weighstation.infrastructure.db.repository import TicketRepository

OUTBOUND_TIME = datetime(2026, 10, 19, 15, 0, tzinfo=timezone.utc)


class TestTicketRepository:
    """Tests for TicketRepository."""

    @pytest.mark.asyncio
    async def test_round_trip_keeps_utc(self, session_factory, make_ticket):
        """Test stored times come back timezone-aware."""
        ticket = make_ticket(company_name="Acme Haulage")

        async with session_factory() as session:
            async with session.begin():
                await TicketRepository(session).upsert(ticket)

        async with session_factory() as session:
            stored = await TicketRepository(session).get_by_id(ticket.id)

        assert stored == ticket
        assert stored.inbound_time.tzinfo is not None

    @pytest.mark.asyncio
    async def test_get_missing(self, session_factory):
        async with session_factory() as session:
            assert await TicketRepository(session).get_by_id("missing") is None


class TestTicketLedger:
    """Tests for TicketLedger."""

    @pytest.mark.asyncio
    async def test_append_persists(self, ledger, session_factory, make_ticket):
        ticket = await ledger.append(make_ticket())

        reloaded = TicketLedger(session_factory)
        assert await reloaded.load() == 1
        assert reloaded.get(ticket.id) == ticket

    @pytest.mark.asyncio
    async def test_upsert_replaces_without_duplicating(self, ledger, session_factory, make_ticket):
        """Test closing a ticket updates the one record."""
        ticket = await ledger.append(make_ticket(weight=20000))
        closed = TicketPricing(0.25).close_ticket(ticket, 15000, OUTBOUND_TIME, "")

        await ledger.append(closed)

        assert len(ledger) == 1
        assert ledger.get(ticket.id).status == TicketStatus.CLOSED

        reloaded = TicketLedger(session_factory)
        await reloaded.load()
        assert len(reloaded) == 1
        stored = reloaded.get(ticket.id)
        assert stored.status == TicketStatus.CLOSED
        assert stored.net_weight == 5000
        assert stored.total_cost == 1250.0

    @pytest.mark.asyncio
    async def test_find_open_by_plate(self, ledger, make_ticket):
        ticket = await ledger.append(make_ticket(plate="ABC123"))

        assert ledger.find_open_by_plate("ABC123") == ticket
        assert ledger.find_open_by_plate("abc-123") == ticket
        assert ledger.find_open_by_plate("XYZ789") is None

    @pytest.mark.asyncio
    async def test_unknown_never_matches(self, ledger, make_ticket):
        await ledger.append(make_ticket(plate=UNKNOWN_PLATE))

        assert ledger.find_open_by_plate(UNKNOWN_PLATE) is None
        assert ledger.find_open_by_plate("") is None
        assert ledger.find_open_by_plate(None) is None

    @pytest.mark.asyncio
    async def test_closed_ticket_not_matched(self, ledger, make_ticket):
        ticket = await ledger.append(make_ticket())
        await ledger.append(TicketPricing().close_ticket(ticket, 15000, OUTBOUND_TIME, ""))

        assert ledger.find_open_by_plate("ABC123") is None

    @pytest.mark.asyncio
    async def test_duplicate_open_plates_earliest_wins(self, ledger, make_ticket):
        await ledger.append(make_ticket(hours_ago=1))
        earliest = await ledger.append(make_ticket(hours_ago=5))
        await ledger.append(make_ticket(hours_ago=3))

        assert ledger.find_open_by_plate("ABC123") == earliest

    @pytest.mark.asyncio
    async def test_list_all_most_recent_activity_first(self, ledger, make_ticket):
        old = await ledger.append(make_ticket(plate="OLD1", hours_ago=10))
        new = await ledger.append(make_ticket(plate="NEW1", hours_ago=1))
        closed = await ledger.append(
            TicketPricing().close_ticket(
                make_ticket(plate="DONE1", hours_ago=20),
                14000,
                datetime.now(timezone.utc),
                "",
            )
        )

        assert [t.id for t in ledger.list_all()] == [closed.id, new.id, old.id]
        assert [t.id for t in ledger.recent(2)] == [closed.id, new.id]

    @pytest.mark.asyncio
    async def test_summary(self, ledger, make_ticket):
        await ledger.append(make_ticket(plate="OPEN1"))
        for plate, outbound in (("DONE1", 15000), ("DONE2", 18000)):
            await ledger.append(
                TicketPricing(0.25).close_ticket(
                    make_ticket(plate=plate, weight=20000), outbound, OUTBOUND_TIME, ""
                )
            )

        summary = ledger.summary()

        assert summary.total_tickets == 3
        assert summary.open_tickets == 1
        assert summary.closed_tickets == 2
        assert summary.total_net_weight == 7000
        assert summary.total_revenue == 1750.0

    @pytest.mark.asyncio
    async def test_ping(self, ledger):
        assert await ledger.ping() is True


class TestLedgerFailures:
    """Tests for database failures."""

    @pytest.mark.asyncio
    async def test_append_failure_leaves_memory_untouched(self, ledger, engine, make_ticket):
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

        with pytest.raises(PersistenceError):
            await ledger.append(make_ticket())

        assert len(ledger) == 0
        assert ledger.find_open_by_plate("ABC123") is None

    @pytest.mark.asyncio
    async def test_load_failure(self, session_factory, engine):
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

        with pytest.raises(PersistenceError):
            await TicketLedger(session_factory).load()
