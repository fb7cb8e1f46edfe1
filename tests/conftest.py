"""Shared fixtures: a temporary data directory and a fake PokéAPI."""

from typing import Callable, List, Optional

import httpx
import pytest

from pokedrive.domain.models import CatalogEntry, CatalogSnapshot, DriveConfig
from pokedrive.services.catalog_client import CatalogClient
from pokedrive.storage.json_cache_store import JsonCacheStore

POKEAPI = "https://pokeapi.co/api/v2"

STARTERS = [
    ("bulbasaur", 1),
    ("ivysaur", 2),
    ("venusaur", 3),
    ("charmander", 4),
    ("pikachu", 25),
]


def entry(name: str, numeric_id: int) -> CatalogEntry:
    return CatalogEntry(name=name, url=f"{POKEAPI}/pokemon/{numeric_id}/")


def catalog_payload(pairs=STARTERS) -> dict:
    return {
        "count": 1302,
        "next": f"{POKEAPI}/pokemon?offset={len(pairs)}&limit={len(pairs)}",
        "previous": None,
        "results": [
            {"name": name, "url": f"{POKEAPI}/pokemon/{numeric_id}/"}
            for name, numeric_id in pairs
        ],
    }


class FakePokeAPI:
    """Records requests and answers them through httpx.MockTransport."""

    def __init__(self, payload: Optional[dict] = None, status_code: int = 200):
        self.payload = payload if payload is not None else catalog_payload()
        self.status_code = status_code
        self.requests: List[httpx.Request] = []
        self.error: Optional[Exception] = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, json=self.payload)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def data_dir(tmp_path):
    d = tmp_path / "data"
    d.mkdir()
    return d


@pytest.fixture
def config() -> DriveConfig:
    return DriveConfig()


@pytest.fixture
def store(data_dir, config) -> JsonCacheStore:
    return JsonCacheStore(data_dir, config.cache_namespace)


@pytest.fixture
def fake_api() -> FakePokeAPI:
    return FakePokeAPI()


@pytest.fixture
def catalog_client(config, store, fake_api) -> CatalogClient:
    return CatalogClient(config, store, http_client=fake_api.client())


@pytest.fixture
def snapshot() -> CatalogSnapshot:
    return CatalogSnapshot(entries=[entry(name, i) for name, i in STARTERS])


@pytest.fixture
def make_snapshot() -> Callable[..., CatalogSnapshot]:
    def _make(pairs) -> CatalogSnapshot:
        return CatalogSnapshot(entries=[entry(name, i) for name, i in pairs])

    return _make
