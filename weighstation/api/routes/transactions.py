"""
Weighing transaction API routes.

Capture, review, confirm or cancel the transaction of the truck on the
platform.
"""

from datetime import datetime

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from weighstation.api.deps import ApiKeyAuth, Transactions
from weighstation.api.routes.tickets import TicketResponse
from weighstation.application.ledger import PersistenceError
from weighstation.application.transaction import NotStableError, TransactionStateError
from weighstation.core.logging import get_logger
from weighstation.domain.models import MaterialType, TransactionDraft, TransactionState
from weighstation.infrastructure.devices.camera import CameraError

logger = get_logger(__name__)

router = APIRouter(prefix="/transactions", tags=["transactions"])


class DraftResponse(BaseModel):
    """The transaction awaiting confirmation, if any."""

    state: TransactionState = Field(examples=["INBOUND_DRAFT"])
    transaction_id: str | None = None
    license_plate: str | None = Field(default=None, examples=["ABC123"])
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    captured_weight: float | None = None
    captured_at: datetime | None = None
    captured_image: str | None = None
    material_type: str | None = None
    company_name: str | None = None
    matched_ticket: TicketResponse | None = None
    persistence_failed: bool = False

    @classmethod
    def idle(cls) -> "DraftResponse":
        return cls(state=TransactionState.IDLE)

    @classmethod
    def from_draft(cls, draft: TransactionDraft | None) -> "DraftResponse":
        if draft is None:
            return cls.idle()
        return cls(
            state=draft.state,
            transaction_id=draft.transaction_id,
            license_plate=draft.license_plate,
            confidence=draft.confidence,
            captured_weight=draft.captured_weight,
            captured_at=draft.captured_at,
            captured_image=draft.captured_image,
            material_type=draft.material_type,
            company_name=draft.company_name,
            matched_ticket=(
                TicketResponse.from_ticket(draft.matched_ticket)
                if draft.matched_ticket
                else None
            ),
            persistence_failed=draft.persistence_failed,
        )


class DraftUpdateRequest(BaseModel):
    """Operator corrections to the draft."""

    license_plate: str | None = Field(default=None, max_length=20, examples=["ABC123"])
    material_type: MaterialType | None = None
    company_name: str | None = Field(default=None, max_length=120)


def _conflict(e: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.get(
    "/current",
    response_model=DraftResponse,
    summary="Get current transaction",
)
async def get_current(transactions: Transactions) -> DraftResponse:
    return DraftResponse.from_draft(transactions.draft)


@router.post(
    "/capture",
    response_model=DraftResponse,
    summary="Capture the truck on the platform",
    description="Weigh, photograph and identify the truck, then open an inbound or outbound draft.",
    responses={
        409: {"description": "Scale unstable or a transaction is already in progress"},
        503: {"description": "Camera unavailable"},
    },
)
async def capture(transactions: Transactions, _: ApiKeyAuth) -> DraftResponse:
    try:
        draft = await transactions.capture()
    except (NotStableError, TransactionStateError) as e:
        raise _conflict(e)
    except CameraError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Camera unavailable: {e}",
        )
    return DraftResponse.from_draft(draft)


@router.patch(
    "/current",
    response_model=DraftResponse,
    summary="Correct the current draft",
    responses={409: {"description": "No draft to correct"}},
)
async def update_current(
    request: DraftUpdateRequest,
    transactions: Transactions,
    _: ApiKeyAuth,
) -> DraftResponse:
    try:
        draft = transactions.update_draft(
            license_plate=request.license_plate,
            material_type=request.material_type.value if request.material_type else None,
            company_name=request.company_name,
        )
    except TransactionStateError as e:
        raise _conflict(e)
    return DraftResponse.from_draft(draft)


@router.post(
    "/confirm",
    response_model=TicketResponse,
    summary="Confirm the current draft",
    responses={
        409: {"description": "No draft to confirm"},
        500: {"description": "Ticket could not be saved"},
    },
)
async def confirm(transactions: Transactions, _: ApiKeyAuth) -> TicketResponse:
    """
    Commit the draft: a new OPEN ticket for inbound, a CLOSED ticket for
    outbound. On a save failure the draft stays in place for a retry.
    """
    try:
        ticket = await transactions.confirm()
    except TransactionStateError as e:
        raise _conflict(e)
    except PersistenceError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Transaction not saved: {e}",
        )
    return TicketResponse.from_ticket(ticket)


@router.post(
    "/cancel",
    response_model=DraftResponse,
    summary="Cancel the current draft",
    responses={409: {"description": "No draft to cancel"}},
)
async def cancel(transactions: Transactions, _: ApiKeyAuth) -> DraftResponse:
    try:
        transactions.cancel()
    except TransactionStateError as e:
        raise _conflict(e)
    return DraftResponse.idle()


@router.post(
    "/acknowledge-loss",
    response_model=DraftResponse,
    summary="Discard a draft that could not be saved",
    responses={409: {"description": "The draft has not failed to save"}},
)
async def acknowledge_loss(transactions: Transactions, _: ApiKeyAuth) -> DraftResponse:
    try:
        transactions.acknowledge_loss()
    except TransactionStateError as e:
        raise _conflict(e)
    return DraftResponse.idle()
