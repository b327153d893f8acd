"""
Scale API routes.

Live weight, stability, and control of the weight source: the serial
scale, the simulator and manual entry.
"""

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from weighstation.api.deps import ApiKeyAuth, Console
from weighstation.core.logging import get_logger
from weighstation.domain.models import ScaleMode, StabilityState
from weighstation.infrastructure.scale.transport import ScaleConnectionError, TransportError

logger = get_logger(__name__)

router = APIRouter(prefix="/scale", tags=["scale"])


class ScaleStatusResponse(BaseModel):
    """What the weight display shows."""

    mode: ScaleMode = Field(description="Weight source", examples=["CONNECTED"])
    weight: float = Field(description="Effective weight in kg", examples=[15400.0])
    live_weight: float = Field(description="Last weight reported by the scale", examples=[15400.0])
    stability: StabilityState = Field(description="Stability indicator", examples=["STABLE"])
    manual: bool = Field(description="Manual entry override active")
    capture_ready: bool = Field(description="A capture would be accepted now")


class ManualEntryRequest(BaseModel):
    """Manual entry override."""

    enabled: bool
    weight: float = Field(default=0.0, ge=0.0, description="Keyed-in weight in kg")


def _status(console: Console) -> ScaleStatusResponse:
    weight = console.monitor.status()
    return ScaleStatusResponse(
        mode=console.scale.mode,
        weight=weight.weight,
        live_weight=weight.live_weight,
        stability=weight.state,
        manual=weight.manual,
        capture_ready=weight.is_usable,
    )


@router.get(
    "",
    response_model=ScaleStatusResponse,
    summary="Get scale status",
)
async def get_scale_status(console: Console) -> ScaleStatusResponse:
    return _status(console)


@router.post(
    "/connect",
    response_model=ScaleStatusResponse,
    summary="Connect to the serial scale",
    responses={503: {"description": "Scale unavailable"}},
)
async def connect_scale(console: Console, _: ApiKeyAuth) -> ScaleStatusResponse:
    """
    Open the serial scale. Stops the simulator if it is running.

    Connecting while already connected is a no-op.
    """
    try:
        await console.connect_scale()
    except (ScaleConnectionError, TransportError) as e:
        logger.warning("scale_connect_rejected", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        )
    return _status(console)


@router.post(
    "/disconnect",
    response_model=ScaleStatusResponse,
    summary="Disconnect the scale",
)
async def disconnect_scale(console: Console, _: ApiKeyAuth) -> ScaleStatusResponse:
    await console.disconnect_scale()
    return _status(console)


@router.post(
    "/simulation",
    response_model=ScaleStatusResponse,
    summary="Toggle the simulated scale",
)
async def toggle_simulation(console: Console, _: ApiKeyAuth) -> ScaleStatusResponse:
    await console.toggle_simulation()
    return _status(console)


@router.put(
    "/manual",
    response_model=ScaleStatusResponse,
    summary="Set manual entry",
    description="Enable manual weight entry with a keyed-in weight, or disable it.",
)
async def set_manual_entry(
    request: ManualEntryRequest,
    console: Console,
    _: ApiKeyAuth,
) -> ScaleStatusResponse:
    console.monitor.set_manual(request.enabled, request.weight)
    logger.info("manual_entry_set", enabled=request.enabled, weight=request.weight)
    return _status(console)
