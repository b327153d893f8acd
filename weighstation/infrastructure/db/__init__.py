"""Database infrastructure package."""

from weighstation.infrastructure.db.models import Base, TicketDB
from weighstation.infrastructure.db.repository import TicketRepository
from weighstation.infrastructure.db.session import (
    close_db,
    create_session_factory,
    get_engine,
    get_session_factory,
    init_db,
)

__all__ = [
    # Models
    "Base",
    "TicketDB",
    # Repositories
    "TicketRepository",
    # Session
    "close_db",
    "create_session_factory",
    "get_engine",
    "get_session_factory",
    "init_db",
]
