"""
Operator authentication for the console API.

Mutating endpoints (scale control, captures, confirmations) require the
station API key in the X-API-Key header.
"""

import secrets
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import APIKeyHeader

from weighstation.core.config import get_settings
from weighstation.core.logging import get_logger

logger = get_logger(__name__)

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_api_key(
    api_key: Annotated[str | None, Depends(api_key_header)],
) -> None:
    """
    Verify the operator API key.

    Args:
        api_key: API key from X-API-Key header.

    Raises:
        HTTPException: If API key is missing or invalid.
    """
    if api_key is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key required",
        )

    settings = get_settings()
    if not secrets.compare_digest(api_key, settings.api_key):
        logger.warning("api_key_invalid", reason="key_mismatch")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )
