"""
Host-facing endpoints of the virtual drive.

These routes translate host calls (item lookup, enumeration, content
fetch, working set, change enumeration) into VirtualFileSystem queries.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import List

import aiofiles
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from fastapi.responses import FileResponse

from pokedrive.core.dependencies import get_config, get_file_system, get_host
from pokedrive.domain.errors import NotFoundError, NotSupportedError
from pokedrive.domain.models import ChangeSet, DriveConfig, NodeKind, VirtualNode
from pokedrive.domain.projector import NO_ANCHOR, VirtualFileSystem
from pokedrive.services.host import LocalDomainHost

logger = logging.getLogger(__name__)
router = APIRouter()

_CONTENT_DIR = Path(tempfile.gettempdir()) / "pokedrive"


@router.get("/items/{identifier}")
async def get_item(identifier: str, fs: VirtualFileSystem = Depends(get_file_system)) -> VirtualNode:
    logger.info(f"Requesting item for identifier: {identifier}")
    try:
        return await fs.resolve(identifier)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/items/{identifier}/children")
async def get_children(
    identifier: str, fs: VirtualFileSystem = Depends(get_file_system)
) -> List[VirtualNode]:
    logger.info(f"Enumerating container: {identifier}")
    try:
        return await fs.list_children(identifier)
    except NotSupportedError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/items/{identifier}/contents")
async def get_contents(
    identifier: str,
    background_tasks: BackgroundTasks,
    fs: VirtualFileSystem = Depends(get_file_system),
) -> FileResponse:
    """
    Materialize a leaf into a temporary file and serve it.

    The file is named after the leaf identifier only and is removed once
    the response has been sent.
    """
    logger.info(f"Fetching contents for item: {identifier}")
    try:
        node = await fs.resolve(identifier)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    if node.kind is not NodeKind.LEAF:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(NotSupportedError(identifier)),
        )

    content = fs.materialize_content(node)

    _CONTENT_DIR.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(dir=_CONTENT_DIR, prefix=f"{node.identifier}-", suffix=".txt")
    os.close(fd)
    temp_path = Path(temp_name)
    try:
        async with aiofiles.open(temp_path, "wb") as f:
            await f.write(content)
    except OSError as e:
        temp_path.unlink(missing_ok=True)
        logger.error(f"Failed to write contents for {identifier}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to materialize {identifier}",
        )

    background_tasks.add_task(temp_path.unlink, missing_ok=True)
    return FileResponse(temp_path, media_type="text/plain; charset=utf-8", filename=node.filename)


@router.get("/working-set")
async def get_working_set(fs: VirtualFileSystem = Depends(get_file_system)) -> List[VirtualNode]:
    return await fs.list_all_known_nodes()


@router.get("/sync-anchor")
async def get_sync_anchor(fs: VirtualFileSystem = Depends(get_file_system)) -> dict:
    return {"anchor": fs.current_sync_anchor()}


@router.get("/items/{identifier}/changes")
async def get_changes(
    identifier: str,
    anchor: str = Query(default=NO_ANCHOR),
    fs: VirtualFileSystem = Depends(get_file_system),
) -> ChangeSet:
    try:
        return await fs.enumerate_changes(identifier, anchor)
    except NotSupportedError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/signals")
async def get_signals(
    host: LocalDomainHost = Depends(get_host),
    config: DriveConfig = Depends(get_config),
) -> dict:
    """
    Containers the host was asked to re-enumerate since the last call.
    """
    return {"containers": host.drain_signals(config.domain_identifier)}
