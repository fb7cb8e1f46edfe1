"""
Pydantic models for the Pokémon drive.

This module defines the data models used throughout the application:
- Drive configuration
- Catalog entries and snapshots fetched from the upstream API
- Virtual filesystem nodes projected from a snapshot
- Host domain registration and change enumeration results

All models use Pydantic for validation, serialization, and type safety.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


ROOT_IDENTIFIER = "root"
COLLECTION_IDENTIFIER = "collection"
LEAF_PREFIX = "item_"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class DriveConfig(BaseModel):
    """
    Top-level configuration describing the drive.
    Persisted at: <DATA_DIR>/drive.json
    """

    base_url: str = Field(
        default="https://pokeapi.co/api/v2",
        description="Base URL of the upstream catalog API.",
    )
    catalog_limit: int = Field(
        default=151,
        gt=0,
        description="Number of entries requested from the upstream catalog.",
    )
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Timeout in seconds for each phase of an upstream request.",
    )
    resource_timeout: float = Field(
        default=60.0,
        gt=0,
        description="Timeout in seconds for the whole upstream transfer.",
    )
    connect_retries: int = Field(
        default=3,
        ge=0,
        description="Connection attempts retried while the network is unavailable.",
    )
    user_agent: str = Field(
        default="Pokemon-as-Files/1.0",
        description="User-Agent header sent to the upstream API.",
    )
    cache_namespace: str = Field(
        default="group.pokedrive",
        description="Shared namespace the catalog cache is persisted under.",
    )
    domain_identifier: str = Field(
        default="pokemon",
        description="Identifier the drive is registered under with the host.",
    )
    display_name: str = Field(
        default="Pokémon Drive",
        description="Human-friendly name shown by the host for the drive.",
    )
    fetch_on_empty: bool = Field(
        default=True,
        description="If True, lookups fetch the catalog when the cache is empty.",
    )


# ---------------------------------------------------------------------------
# Catalog Models
# ---------------------------------------------------------------------------


class CatalogEntry(BaseModel):
    """
    A single named entity of the upstream catalog.

    The numeric identifier is not stored; it is derived from the URL,
    e.g. https://pokeapi.co/api/v2/pokemon/25/ -> 25.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    source_url: str = Field(alias="url")

    @property
    def numeric_id(self) -> int:
        parts = self.source_url.split("/")
        if len(parts) < 2:
            return 0
        try:
            value = int(parts[-2])
        except ValueError:
            return 0
        return value if value >= 0 else 0

    @property
    def filename(self) -> str:
        return f"{self.name}.txt"

    @property
    def display_name(self) -> str:
        return self.name.capitalize()


class CatalogListResponse(BaseModel):
    """One page of the upstream list endpoint. Only `results` is consumed."""

    count: Optional[int] = None
    next: Optional[str] = None
    previous: Optional[str] = None
    results: List[CatalogEntry]


class CatalogSnapshot(BaseModel):
    """Immutable, timestamped copy of the catalog."""

    model_config = ConfigDict(frozen=True)

    entries: List[CatalogEntry] = Field(default_factory=list)
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# ---------------------------------------------------------------------------
# Virtual Filesystem Models
# ---------------------------------------------------------------------------


class NodeKind(str, Enum):
    ROOT = "root"
    COLLECTION = "collection"
    LEAF = "leaf"


class VirtualNode(BaseModel):
    """
    A synthetic filesystem entry derived from the current snapshot.

    Root and collection nodes are containers; leaves carry the catalog
    entry they were projected from.
    """

    model_config = ConfigDict(frozen=True)

    kind: NodeKind
    identifier: str
    parent_identifier: str
    filename: str
    content_type: str = "folder"
    child_count: Optional[int] = None
    document_size: Optional[int] = Field(
        default=None,
        description="Size in bytes of the materialized text; set on leaves only.",
    )
    entry: Optional[CatalogEntry] = None

    @property
    def is_container(self) -> bool:
        return self.kind is not NodeKind.LEAF

    @classmethod
    def root(cls) -> VirtualNode:
        return cls(
            kind=NodeKind.ROOT,
            identifier=ROOT_IDENTIFIER,
            parent_identifier=ROOT_IDENTIFIER,
            filename="Pokémon Drive",
            child_count=1,
        )

    @classmethod
    def collection(cls, child_count: int) -> VirtualNode:
        return cls(
            kind=NodeKind.COLLECTION,
            identifier=COLLECTION_IDENTIFIER,
            parent_identifier=ROOT_IDENTIFIER,
            filename="Pokémon",
            child_count=child_count,
        )

    @classmethod
    def leaf(cls, entry: CatalogEntry) -> VirtualNode:
        return cls(
            kind=NodeKind.LEAF,
            identifier=leaf_identifier(entry),
            parent_identifier=COLLECTION_IDENTIFIER,
            filename=entry.filename,
            content_type="text/plain",
            entry=entry,
        )


def leaf_identifier(entry: CatalogEntry) -> str:
    return f"{LEAF_PREFIX}{entry.numeric_id}"


class ChangeSet(BaseModel):
    """Items changed in a container since a sync anchor, plus the new anchor."""

    updated: List[VirtualNode] = Field(default_factory=list)
    anchor: str


# ---------------------------------------------------------------------------
# Host Domain Models
# ---------------------------------------------------------------------------


class Domain(BaseModel):
    """A virtual filesystem registration as seen by the host."""

    identifier: str
    display_name: str


class DomainStatus(BaseModel):
    """Connection status reported to the operator."""

    connected: bool
    domain_identifier: str
    display_name: str
    last_update: Optional[datetime] = None

    @property
    def state(self) -> str:
        return "connected" if self.connected else "disconnected"
