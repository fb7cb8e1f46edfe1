"""
Lifecycle of the drive's registration with the host.

    Disconnected --connect--> Connected --disconnect--> Disconnected
    Connected --refresh--> Connected

Guarded transitions raise instead of calling the host: connecting twice
raises AlreadyConnectedError, and disconnecting or refreshing while
disconnected raises NotConnectedError.
"""
from __future__ import annotations

import asyncio
import logging

from pokedrive.domain.errors import (
    AlreadyConnectedError,
    FetchError,
    FetchFailedError,
    HostError,
    HostRejectedError,
    NotConnectedError,
)
from pokedrive.domain.models import (
    COLLECTION_IDENTIFIER,
    ROOT_IDENTIFIER,
    Domain,
    DomainStatus,
)
from pokedrive.services.catalog_client import CatalogClient
from pokedrive.services.host import DomainHost
from pokedrive.storage.cache_store import CacheStore

logger = logging.getLogger(__name__)


class DomainController:
    def __init__(
        self,
        host: DomainHost,
        catalog_client: CatalogClient,
        cache_store: CacheStore,
        domain: Domain,
        catalog_limit: int = 151,
    ):
        self.host = host
        self.catalog_client = catalog_client
        self.cache_store = cache_store
        self.domain = domain
        self.catalog_limit = catalog_limit
        self._connected = False
        self._lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        return self._connected

    def status(self) -> DomainStatus:
        return DomainStatus(
            connected=self._connected,
            domain_identifier=self.domain.identifier,
            display_name=self.domain.display_name,
            last_update=self.cache_store.last_updated(),
        )

    def sync_with_host(self) -> bool:
        """Adopt the host's view of the registration, e.g. after a restart."""
        self._connected = self.host.is_registered(self.domain.identifier)
        logger.info(f"Connection status updated: {self._connected}")
        return self._connected

    async def connect(self) -> None:
        async with self._lock:
            if self._connected:
                raise AlreadyConnectedError()

            logger.info(f"Attempting to connect domain {self.domain.identifier!r}")
            try:
                await self.host.add_domain(self.domain)
            except HostError as e:
                logger.error(f"Failed to connect domain: {e}")
                raise HostRejectedError(str(e)) from e

            self._connected = True
            logger.info("Successfully connected domain")

    async def disconnect(self) -> None:
        async with self._lock:
            if not self._connected:
                raise NotConnectedError()

            logger.info(f"Attempting to disconnect domain {self.domain.identifier!r}")
            try:
                await self.host.remove_domain(self.domain.identifier)
            except HostError as e:
                logger.error(f"Failed to disconnect domain: {e}")
                raise HostRejectedError(str(e)) from e

            self._connected = False
            logger.info("Successfully disconnected domain")

    async def refresh(self) -> None:
        """
        Fetch the catalog again, then ask the host to re-enumerate the
        root and collection containers.
        """
        async with self._lock:
            if not self._connected:
                logger.warning("Domain not connected, cannot refresh")
                raise NotConnectedError()

            logger.info("Refreshing domain")
            try:
                await self.catalog_client.fetch_catalog(self.catalog_limit)
            except FetchError as e:
                raise FetchFailedError(e) from e

            try:
                for container in (ROOT_IDENTIFIER, COLLECTION_IDENTIFIER):
                    await self.host.signal_enumerator(self.domain.identifier, container)
            except HostError as e:
                logger.error(f"Failed to signal enumerators: {e}")
                raise HostRejectedError(str(e)) from e
