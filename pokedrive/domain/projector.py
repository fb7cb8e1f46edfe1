"""
Projection of the cached catalog onto a two-level virtual folder.

    root
    └── collection
        ├── bulbasaur.txt   (item_1)
        ├── ivysaur.txt     (item_2)
        └── ...

Every query reads the cache store again, so a refresh that completed
before the query is always visible. When the cache is empty and
`fetch_on_empty` is enabled, the first query fetches the catalog and
serves the result; a failed fetch is logged and the drive looks empty.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional

from pokedrive.domain.errors import FetchError, NotFoundError, NotSupportedError
from pokedrive.domain.models import (
    COLLECTION_IDENTIFIER,
    LEAF_PREFIX,
    ROOT_IDENTIFIER,
    CatalogSnapshot,
    ChangeSet,
    NodeKind,
    VirtualNode,
    leaf_identifier,
)
from pokedrive.services.catalog_client import CatalogClient
from pokedrive.storage.cache_store import CacheStore

logger = logging.getLogger(__name__)

NO_ANCHOR = "0"

_CONTENT_TEMPLATE = """Pokémon Information
==================

Name: {display_name}
ID: {numeric_id}
API URL: {url}

This file represents a Pokémon from the PokéAPI database.
The Pokémon as Files app creates virtual files for each of the
first {limit} Pokémon, allowing you to browse them in your file manager.

Last updated: {rendered_at}
"""


class VirtualFileSystem:
    """
    Read-only filesystem view over the catalog cache.

    This is the only interface the host adapter talks to: lookups,
    enumeration, content, the working set, and change enumeration.
    """

    def __init__(
        self,
        cache_store: CacheStore,
        catalog_client: Optional[CatalogClient] = None,
        fetch_on_empty: bool = True,
        catalog_limit: int = 151,
        fetch_timeout: Optional[float] = None,
    ):
        self.cache_store = cache_store
        self.catalog_client = catalog_client
        self.fetch_on_empty = fetch_on_empty and catalog_client is not None
        self.catalog_limit = catalog_limit
        self.fetch_timeout = fetch_timeout

    # ========================================================================
    # Snapshot access
    # ========================================================================

    async def current_snapshot(self) -> Optional[CatalogSnapshot]:
        snapshot = self.cache_store.get()
        if snapshot is not None or not self.fetch_on_empty:
            return snapshot

        logger.info("Catalog cache is empty, fetching before serving")
        try:
            return await asyncio.wait_for(
                self.catalog_client.fetch_catalog(self.catalog_limit),
                timeout=self.fetch_timeout,
            )
        except asyncio.TimeoutError:
            logger.error(f"Fetch on demand exceeded {self.fetch_timeout}s")
        except FetchError as e:
            logger.error(f"Fetch on demand failed: {e}")
        return None

    async def _leaves(self) -> List[VirtualNode]:
        snapshot = await self.current_snapshot()
        if snapshot is None:
            return []

        # First entry wins when two URLs derive the same numeric id.
        leaves: List[VirtualNode] = []
        seen = set()
        for entry in snapshot.entries:
            identifier = leaf_identifier(entry)
            if identifier in seen:
                logger.debug(f"Skipping duplicate entry {entry.name!r} for {identifier}")
                continue
            seen.add(identifier)
            leaf = VirtualNode.leaf(entry)
            # The rendered timestamp has a fixed width, so the size is stable.
            size = len(self.materialize_content(leaf))
            leaves.append(leaf.model_copy(update={"document_size": size}))
        return leaves

    # ========================================================================
    # Lookup and enumeration
    # ========================================================================

    async def resolve(self, identifier: str) -> VirtualNode:
        """
        Return the node for `identifier`.

        Raises:
            NotFoundError: no node has this identifier.
        """
        if identifier == ROOT_IDENTIFIER:
            return VirtualNode.root()

        if identifier == COLLECTION_IDENTIFIER:
            leaves = await self._leaves()
            return VirtualNode.collection(child_count=len(leaves))

        if identifier.startswith(LEAF_PREFIX):
            for leaf in await self._leaves():
                if leaf.identifier == identifier:
                    return leaf

        raise NotFoundError(identifier)

    async def list_children(self, identifier: str) -> List[VirtualNode]:
        """
        Return the children of a container, in snapshot order.

        Raises:
            NotSupportedError: `identifier` is a leaf or unknown.
        """
        if identifier == ROOT_IDENTIFIER:
            leaves = await self._leaves()
            return [VirtualNode.collection(child_count=len(leaves))]

        if identifier == COLLECTION_IDENTIFIER:
            return await self._leaves()

        raise NotSupportedError(identifier)

    async def list_all_known_nodes(self) -> List[VirtualNode]:
        """Working set: root, collection, and every leaf, flattened."""
        leaves = await self._leaves()
        return [VirtualNode.root(), VirtualNode.collection(child_count=len(leaves))] + leaves

    # ========================================================================
    # Content
    # ========================================================================

    def materialize_content(
        self, node: VirtualNode, rendered_at: Optional[datetime] = None
    ) -> bytes:
        """
        Render the text file for a leaf.

        Only the embedded timestamp changes between calls for the same leaf.
        """
        if node.kind is not NodeKind.LEAF or node.entry is None:
            raise NotSupportedError(node.identifier)

        rendered_at = rendered_at or datetime.now(timezone.utc)
        text = _CONTENT_TEMPLATE.format(
            display_name=node.entry.display_name,
            numeric_id=node.entry.numeric_id,
            url=node.entry.source_url,
            limit=self.catalog_limit,
            rendered_at=rendered_at.strftime("%Y-%m-%d %H:%M:%S %Z").strip(),
        )
        return text.encode("utf-8")

    # ========================================================================
    # Change enumeration
    # ========================================================================

    def current_sync_anchor(self) -> str:
        """Opaque token that changes whenever a new snapshot is cached."""
        last_update = self.cache_store.last_updated()
        if last_update is None:
            return NO_ANCHOR
        return last_update.isoformat()

    async def enumerate_changes(self, identifier: str, anchor: str) -> ChangeSet:
        """
        Report the children of a container that changed since `anchor`.

        Snapshots are replaced wholesale, so any anchor other than the
        current one reports the full listing.

        Raises:
            NotSupportedError: `identifier` is a leaf or unknown.
        """
        children = await self.list_children(identifier)
        current = self.current_sync_anchor()
        if anchor == current:
            return ChangeSet(updated=[], anchor=current)
        return ChangeSet(updated=children, anchor=current)
