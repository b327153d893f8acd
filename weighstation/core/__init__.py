"""Core configuration and utilities package."""

from weighstation.core.config import Settings, get_settings
from weighstation.core.logging import (
    get_logger,
    set_correlation_id,
    set_transaction_id,
    setup_logging,
)
from weighstation.core.security import verify_api_key

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Logging
    "get_logger",
    "set_correlation_id",
    "set_transaction_id",
    "setup_logging",
    # Security
    "verify_api_key",
]
