from typing import Optional

from pokedrive.core.config import get_data_dir, load_drive_config
from pokedrive.domain.models import Domain, DriveConfig
from pokedrive.domain.projector import VirtualFileSystem
from pokedrive.services.catalog_client import CatalogClient
from pokedrive.services.domain_controller import DomainController
from pokedrive.services.host import LocalDomainHost
from pokedrive.storage.cache_store import CacheStore
from pokedrive.storage.json_cache_store import JsonCacheStore

_config: Optional[DriveConfig] = None
_cache_store: Optional[CacheStore] = None
_catalog_client: Optional[CatalogClient] = None
_host: Optional[LocalDomainHost] = None
_file_system: Optional[VirtualFileSystem] = None
_domain_controller: Optional[DomainController] = None


def get_config() -> DriveConfig:
    global _config
    if _config is None:
        _config = load_drive_config(get_data_dir())
    return _config


def get_cache_store() -> CacheStore:
    global _cache_store
    if _cache_store is None:
        _cache_store = JsonCacheStore(get_data_dir(), get_config().cache_namespace)
    return _cache_store


def get_catalog_client() -> CatalogClient:
    global _catalog_client
    if _catalog_client is None:
        _catalog_client = CatalogClient(get_config(), get_cache_store())
    return _catalog_client


def get_host() -> LocalDomainHost:
    global _host
    if _host is None:
        _host = LocalDomainHost(get_data_dir())
    return _host


def get_file_system() -> VirtualFileSystem:
    global _file_system
    if _file_system is None:
        config = get_config()
        _file_system = VirtualFileSystem(
            get_cache_store(),
            get_catalog_client(),
            fetch_on_empty=config.fetch_on_empty,
            catalog_limit=config.catalog_limit,
            fetch_timeout=config.resource_timeout,
        )
    return _file_system


def get_domain_controller() -> DomainController:
    global _domain_controller
    if _domain_controller is None:
        config = get_config()
        _domain_controller = DomainController(
            get_host(),
            get_catalog_client(),
            get_cache_store(),
            Domain(identifier=config.domain_identifier, display_name=config.display_name),
            catalog_limit=config.catalog_limit,
        )
        _domain_controller.sync_with_host()
    return _domain_controller


def reset_services() -> None:
    """Drop the cached service objects so the next call rebuilds them."""
    global _config, _cache_store, _catalog_client, _host, _file_system, _domain_controller
    _config = None
    _cache_store = None
    _catalog_client = None
    _host = None
    _file_system = None
    _domain_controller = None
