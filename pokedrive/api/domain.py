"""
Operator actions: connect, disconnect, refresh, and connection status.

Lifecycle failures are returned to the caller as readable messages:
409 for guarded state transitions, 502 when the host or the upstream
catalog fails.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from pokedrive.core.dependencies import get_domain_controller
from pokedrive.domain.errors import (
    AlreadyConnectedError,
    FetchFailedError,
    HostRejectedError,
    NotConnectedError,
    PokeDriveError,
)
from pokedrive.services.domain_controller import DomainController

logger = logging.getLogger(__name__)
router = APIRouter()


def _to_http_error(error: PokeDriveError) -> HTTPException:
    if isinstance(error, (AlreadyConnectedError, NotConnectedError)):
        code = status.HTTP_409_CONFLICT
    elif isinstance(error, (HostRejectedError, FetchFailedError)):
        code = status.HTTP_502_BAD_GATEWAY
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=str(error))


def _status_body(controller: DomainController) -> dict:
    current = controller.status()
    return {
        "state": current.state,
        "connected": current.connected,
        "domain_identifier": current.domain_identifier,
        "display_name": current.display_name,
        "last_update": current.last_update.isoformat() if current.last_update else None,
    }


@router.get("/status")
async def get_status(controller: DomainController = Depends(get_domain_controller)) -> dict:
    return _status_body(controller)


@router.post("/connect")
async def connect(controller: DomainController = Depends(get_domain_controller)) -> dict:
    try:
        await controller.connect()
    except PokeDriveError as e:
        raise _to_http_error(e)
    return _status_body(controller)


@router.post("/disconnect")
async def disconnect(controller: DomainController = Depends(get_domain_controller)) -> dict:
    try:
        await controller.disconnect()
    except PokeDriveError as e:
        raise _to_http_error(e)
    return _status_body(controller)


@router.post("/refresh")
async def refresh(controller: DomainController = Depends(get_domain_controller)) -> dict:
    """
    Re-fetch the catalog and signal the host to re-enumerate the drive.
    """
    try:
        await controller.refresh()
    except PokeDriveError as e:
        logger.error(f"Refresh failed: {e}")
        raise _to_http_error(e)
    return _status_body(controller)
