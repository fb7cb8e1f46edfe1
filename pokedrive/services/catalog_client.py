"""
Client for the upstream catalog API (PokéAPI).

Fetches a bounded list of entries, validates it, and publishes every
successful result to the shared cache store. The client keeps no state
between calls, so overlapping fetches are independent of each other.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

import httpx
from pydantic import ValidationError

from pokedrive.domain.errors import (
    BadStatusError,
    DecodeError,
    InvalidRequestError,
    TransportError,
)
from pokedrive.domain.models import CatalogListResponse, CatalogSnapshot, DriveConfig
from pokedrive.storage.cache_store import CacheStore

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 151


class CatalogClient:
    """
    Fetches the catalog list endpoint and writes the result to the cache.

    An `httpx.AsyncClient` may be injected; otherwise a short-lived client
    is created per fetch using the configured timeouts and connect retries.
    Passing `transport` keeps that client but swaps the network layer.
    """

    def __init__(
        self,
        config: DriveConfig,
        cache_store: CacheStore,
        http_client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.cache_store = cache_store
        self._http_client = http_client
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return f"{self.config.base_url.rstrip('/')}/pokemon"

    def _build_transport(self) -> httpx.AsyncBaseTransport:
        # Connect retries let a request wait out a short network outage
        # instead of failing on the first refused connection.
        return httpx.AsyncHTTPTransport(retries=self.config.connect_retries)

    def _build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=self._transport or self._build_transport(),
            timeout=httpx.Timeout(self.config.request_timeout),
            follow_redirects=True,
            headers=self._headers(),
        )

    def _headers(self) -> dict:
        return {
            "User-Agent": self.config.user_agent,
            "Accept": "application/json",
        }

    def _build_request(self, client: httpx.AsyncClient, limit: int) -> httpx.Request:
        if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
            raise InvalidRequestError(f"limit must be a positive integer, got {limit!r}")
        try:
            request = client.build_request(
                "GET",
                self.endpoint,
                params={"limit": limit},
                headers=self._headers(),
            )
        except (httpx.InvalidURL, ValueError) as e:
            raise InvalidRequestError(f"Invalid catalog URL {self.endpoint!r}: {e}") from e
        if request.url.scheme not in ("http", "https") or not request.url.host:
            raise InvalidRequestError(f"Invalid catalog URL {self.endpoint!r}")
        return request

    async def fetch_catalog(self, limit: int = DEFAULT_LIMIT) -> CatalogSnapshot:
        """
        Fetch up to `limit` entries and publish them to the cache store.

        Raises:
            InvalidRequestError: the request could not be built.
            TransportError: connection failure, redirect loop, bad encoding or timeout.
            BadStatusError: the API answered with a non-2xx status.
            DecodeError: the body is not a valid catalog list.
        """
        logger.info(f"Fetching catalog with limit: {limit}")

        if self._http_client is not None:
            snapshot = await self._fetch_with(self._http_client, limit)
        else:
            async with self._build_client() as client:
                snapshot = await self._fetch_with(client, limit)

        self.cache_store.put(snapshot)
        logger.info(f"Successfully fetched {len(snapshot.entries)} catalog entries")
        return snapshot

    async def _fetch_with(self, client: httpx.AsyncClient, limit: int) -> CatalogSnapshot:
        request = self._build_request(client, limit)

        try:
            response = await asyncio.wait_for(
                client.send(request),
                timeout=self.config.resource_timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Catalog request timed out after {self.config.resource_timeout}s")
            raise TransportError(
                f"Request exceeded {self.config.resource_timeout}s total timeout"
            ) from e
        except httpx.HTTPError as e:
            # Covers redirect loops and undecodable content as well as
            # connection failures.
            logger.error(f"Network error: {e!r}")
            raise TransportError(f"Network request failed: {e}") from e

        if not response.is_success:
            logger.error(f"Catalog request failed with HTTP {response.status_code}")
            raise BadStatusError(response.status_code)

        try:
            payload = CatalogListResponse.model_validate_json(response.content)
        except ValidationError as e:
            logger.error(f"Decoding error: {e}")
            raise DecodeError("Failed to decode catalog response") from e

        return CatalogSnapshot(
            entries=payload.results[:limit],
            fetched_at=datetime.now(timezone.utc),
        )
