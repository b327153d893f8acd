"""API routes package."""

from fastapi import APIRouter

from weighstation.api.routes import scale, tickets, transactions

# Main API router
api_router = APIRouter(prefix="/api/v1")

# Include route modules
api_router.include_router(scale.router)
api_router.include_router(transactions.router)
api_router.include_router(tickets.router)
