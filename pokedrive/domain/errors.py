"""
Exceptions raised by the drive's services.

Fetch errors come from the catalog client, lookup errors from the virtual
filesystem, and the lifecycle errors from the domain controller. Each
lifecycle operation has its own base class so callers can catch exactly
what a given operation may raise.
"""
from __future__ import annotations

from typing import Optional


class PokeDriveError(Exception):
    """Base class for all drive errors."""


# ---------------------------------------------------------------------------
# Catalog fetch
# ---------------------------------------------------------------------------


class FetchError(PokeDriveError):
    """The upstream catalog could not be fetched."""


class InvalidRequestError(FetchError):
    """The request to the upstream API could not be built."""


class TransportError(FetchError):
    """DNS, connection, or timeout failure while talking to the upstream API."""


class BadStatusError(FetchError):
    """The upstream API answered with a non-2xx status."""

    def __init__(self, status_code: int, message: Optional[str] = None):
        self.status_code = status_code
        super().__init__(message or f"Upstream returned HTTP {status_code}")


class DecodeError(FetchError):
    """The upstream response body does not match the expected schema."""


# ---------------------------------------------------------------------------
# Virtual filesystem lookups
# ---------------------------------------------------------------------------


class NodeLookupError(PokeDriveError):
    """Base class for identifier lookup failures."""

    def __init__(self, identifier: str, message: Optional[str] = None):
        self.identifier = identifier
        super().__init__(message or identifier)


class NotFoundError(NodeLookupError):
    def __init__(self, identifier: str):
        super().__init__(identifier, f"No such item: {identifier}")


class NotSupportedError(NodeLookupError):
    def __init__(self, identifier: str):
        super().__init__(identifier, f"Operation not supported for item: {identifier}")


# ---------------------------------------------------------------------------
# Domain lifecycle
# ---------------------------------------------------------------------------


class HostError(PokeDriveError):
    """Raised by a DomainHost when it refuses a registration call."""


class ConnectError(PokeDriveError):
    pass


class DisconnectError(PokeDriveError):
    pass


class RefreshError(PokeDriveError):
    pass


class AlreadyConnectedError(ConnectError):
    def __init__(self) -> None:
        super().__init__("Domain is already connected")


class NotConnectedError(DisconnectError, RefreshError):
    def __init__(self) -> None:
        super().__init__("Domain not connected")


class HostRejectedError(ConnectError, DisconnectError, RefreshError):
    """The host refused a registration, removal, or enumerator signal."""


class FetchFailedError(RefreshError):
    """A refresh could not fetch the catalog. The original error is in `cause`."""

    def __init__(self, cause: FetchError):
        self.cause = cause
        super().__init__(f"Failed to fetch catalog: {cause}")
