"""
FastAPI application entry point.

Configures the application with:
- Lifespan handlers for database setup and the station console
- CORS middleware
- Correlation ID middleware
- Health and readiness probes
- API routes
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from weighstation.api import api_router
from weighstation.application.console import WeighStationConsole
from weighstation.core.config import Settings, get_settings
from weighstation.core.logging import (
    get_correlation_id,
    get_logger,
    set_correlation_id,
    setup_logging,
)
from weighstation.domain.models import ScaleMode
from weighstation.infrastructure.db.session import close_db, get_session_factory, init_db

# Initialize logging
setup_logging()
logger = get_logger(__name__)

ConsoleFactory = Callable[[Settings], Awaitable[WeighStationConsole]]


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str = "1.0.0"


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    status: str
    database_connected: bool
    scale_mode: ScaleMode
    tickets_loaded: int


async def build_console(settings: Settings) -> WeighStationConsole:
    """Create the tables and build the console on the configured database."""
    await init_db()
    logger.info("database_initialized")
    return WeighStationConsole.from_settings(settings, get_session_factory())


def create_app(console_factory: ConsoleFactory | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        console_factory: Builds the station console at startup. Defaults to
            the hardware-backed console on the configured database.

    Returns:
        FastAPI: Configured application instance.
    """
    settings = get_settings()
    factory = console_factory or build_console

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """
        Application lifespan manager.

        - Startup: build the console, load the ledger
        - Shutdown: release the scale and camera, close connections
        """
        logger.info("application_starting")

        try:
            console = await factory(settings)
            await console.start()
        except Exception as e:
            logger.error("startup_failed", error=str(e))
            raise

        app.state.console = console
        logger.info("application_started")

        yield

        logger.info("application_shutting_down")
        await console.stop()
        app.state.console = None
        await close_db()
        logger.info("application_shutdown_complete")

    app = FastAPI(
        title="Weigh Station Console",
        description="Truck weighbridge console with plate recognition and ticketing",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else ["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next):
        """Add correlation ID to each request."""
        set_correlation_id(request.headers.get("X-Correlation-ID"))

        response = await call_next(request)
        response.headers["X-Correlation-ID"] = get_correlation_id()
        return response

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["health"],
    )
    async def health_check() -> HealthResponse:
        """
        Basic liveness probe.

        Returns 200 if the application is running.
        """
        return HealthResponse(status="healthy")

    @app.get(
        "/ready",
        response_model=ReadinessResponse,
        tags=["health"],
    )
    async def readiness_check(request: Request) -> ReadinessResponse:
        """
        Readiness probe.

        Returns 200 only if the console is running and the database
        answers. A disconnected scale does not make the station unready:
        manual entry still works.
        """
        console: WeighStationConsole | None = getattr(request.app.state, "console", None)
        if console is None:
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "not_ready"},
            )

        database_connected = await console.ledger.ping()
        response = ReadinessResponse(
            status="ready" if database_connected else "not_ready",
            database_connected=database_connected,
            scale_mode=console.scale.mode,
            tickets_loaded=len(console.ledger),
        )

        if not database_connected:
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content=response.model_dump(mode="json"),
            )

        return response

    app.include_router(api_router)

    return app


def run() -> None:
    """Serve the console API."""
    settings = get_settings()
    uvicorn.run(
        "weighstation.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_config=None,
    )


# Create app instance
app = create_app()
