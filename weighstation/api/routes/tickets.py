"""
Ticket history API routes.

Read-only views of the ledger.
"""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, HTTPException, Path, Query, status
from pydantic import BaseModel, Field

from weighstation.api.deps import Ledger
from weighstation.domain.models import LedgerSummary, Ticket, TicketStatus

router = APIRouter(prefix="/tickets", tags=["tickets"])


class TicketResponse(BaseModel):
    """Response model for a weigh ticket."""

    id: str
    ticket_number: str = Field(description="Short ticket number printed on receipts")
    license_plate: str = Field(examples=["ABC123"])
    company_name: str | None
    material_type: str = Field(examples=["Mixed Metal"])
    status: TicketStatus
    inbound_weight: float
    inbound_time: datetime
    inbound_image: str
    outbound_weight: float | None = None
    outbound_time: datetime | None = None
    outbound_image: str | None = None
    net_weight: float | None = None
    rate_per_kg: float | None = None
    total_cost: float | None = None

    @classmethod
    def from_ticket(cls, ticket: Ticket) -> "TicketResponse":
        return cls(
            id=ticket.id,
            ticket_number=ticket.ticket_number,
            license_plate=ticket.license_plate,
            company_name=ticket.company_name,
            material_type=ticket.material_type,
            status=ticket.status,
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


class TicketListResponse(BaseModel):
    """Response for listing tickets."""

    tickets: list[TicketResponse]
    count: int
    total: int


class TicketSummaryResponse(BaseModel):
    total_tickets: int
    open_tickets: int
    closed_tickets: int
    total_net_weight: float
    total_revenue: float

    @classmethod
    def from_summary(cls, summary: LedgerSummary) -> "TicketSummaryResponse":
        return cls(
            total_tickets=summary.total_tickets,
            open_tickets=summary.open_tickets,
            closed_tickets=summary.closed_tickets,
            total_net_weight=summary.total_net_weight,
            total_revenue=summary.total_revenue,
        )


@router.get(
    "",
    response_model=TicketListResponse,
    summary="List tickets",
    description="Tickets ordered by most recent activity.",
)
async def list_tickets(
    ledger: Ledger,
    status_filter: TicketStatus | None = Query(None, alias="status"),
    limit: int = Query(default=50, ge=1, le=500),
) -> TicketListResponse:
    tickets = ledger.list_all()
    if status_filter is not None:
        tickets = [t for t in tickets if t.status == status_filter]
    page = tickets[:limit]

    return TicketListResponse(
        tickets=[TicketResponse.from_ticket(t) for t in page],
        count=len(page),
        total=len(tickets),
    )


@router.get(
    "/summary",
    response_model=TicketSummaryResponse,
    summary="Ticket totals",
)
async def get_summary(ledger: Ledger) -> TicketSummaryResponse:
    return TicketSummaryResponse.from_summary(ledger.summary())


@router.get(
    "/{ticket_id}",
    response_model=TicketResponse,
    summary="Get ticket",
)
async def get_ticket(
    ticket_id: Annotated[str, Path(description="Ticket ID")],
    ledger: Ledger,
) -> TicketResponse:
    ticket = ledger.get(ticket_id)
    if ticket is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Ticket not found",
        )
    return TicketResponse.from_ticket(ticket)
