"""
FastAPI dependencies for dependency injection.

Provides the station console and authentication dependencies for route
handlers.
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from weighstation.application.console import WeighStationConsole
from weighstation.application.ledger import TicketLedger
from weighstation.application.transaction import TransactionController
from weighstation.core.security import verify_api_key


def get_console(request: Request) -> WeighStationConsole:
    """
    Dependency to get the station console built at startup.

    Raises:
        HTTPException: If the console has not been started.
    """
    console = getattr(request.app.state, "console", None)
    if console is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Console is not running",
        )
    return console


Console = Annotated[WeighStationConsole, Depends(get_console)]
ApiKeyAuth = Annotated[None, Depends(verify_api_key)]


def get_transactions(console: Console) -> TransactionController:
    return console.transactions


def get_ledger(console: Console) -> TicketLedger:
    return console.ledger


Transactions = Annotated[TransactionController, Depends(get_transactions)]
Ledger = Annotated[TicketLedger, Depends(get_ledger)]
