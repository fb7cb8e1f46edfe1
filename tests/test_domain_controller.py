"""Tests for the domain lifecycle controller and the local host."""

import asyncio
import threading
from unittest.mock import AsyncMock

import httpx
import pytest

from pokedrive.domain.errors import (
    AlreadyConnectedError,
    FetchFailedError,
    HostError,
    HostRejectedError,
    NotConnectedError,
    TransportError,
)
from pokedrive.domain.models import Domain
from pokedrive.domain.projector import VirtualFileSystem
from pokedrive.services.catalog_client import CatalogClient
from pokedrive.services.domain_controller import DomainController
from pokedrive.services.host import LocalDomainHost
from pokedrive.storage.json_cache_store import JsonCacheStore

DOMAIN = Domain(identifier="pokemon", display_name="Pokémon Drive")


@pytest.fixture
def host(data_dir) -> LocalDomainHost:
    return LocalDomainHost(data_dir)


@pytest.fixture
def controller(host, catalog_client, store) -> DomainController:
    return DomainController(host, catalog_client, store, DOMAIN)


class TestConnect:
    @pytest.mark.asyncio
    async def test_connect_registers_domain(self, controller, host):
        assert not controller.is_connected
        await controller.connect()
        assert controller.is_connected
        assert host.is_registered("pokemon")

    @pytest.mark.asyncio
    async def test_connect_twice_is_guarded(self, catalog_client, store):
        host = AsyncMock()
        controller = DomainController(host, catalog_client, store, DOMAIN)
        await controller.connect()

        with pytest.raises(AlreadyConnectedError):
            await controller.connect()
        assert host.add_domain.await_count == 1
        assert controller.is_connected

    @pytest.mark.asyncio
    async def test_host_rejection(self, catalog_client, store):
        host = AsyncMock()
        host.add_domain.side_effect = HostError("extension not installed")
        controller = DomainController(host, catalog_client, store, DOMAIN)

        with pytest.raises(HostRejectedError, match="extension not installed"):
            await controller.connect()
        assert not controller.is_connected


class TestDisconnect:
    @pytest.mark.asyncio
    async def test_disconnect_unregisters(self, controller, host):
        await controller.connect()
        await controller.disconnect()
        assert not controller.is_connected
        assert not host.is_registered("pokemon")

    @pytest.mark.asyncio
    async def test_disconnect_while_disconnected_skips_host(self, catalog_client, store):
        host = AsyncMock()
        controller = DomainController(host, catalog_client, store, DOMAIN)

        with pytest.raises(NotConnectedError):
            await controller.disconnect()
        host.remove_domain.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_host_rejection_keeps_connection(self, catalog_client, store):
        host = AsyncMock()
        host.remove_domain.side_effect = HostError("busy")
        controller = DomainController(host, catalog_client, store, DOMAIN)
        await controller.connect()

        with pytest.raises(HostRejectedError):
            await controller.disconnect()
        assert controller.is_connected

    @pytest.mark.asyncio
    async def test_reconnect_after_disconnect(self, controller):
        await controller.connect()
        await controller.disconnect()
        await controller.connect()
        assert controller.is_connected


class TestRefresh:
    @pytest.mark.asyncio
    async def test_refresh_requires_connection(self, controller, fake_api):
        with pytest.raises(NotConnectedError):
            await controller.refresh()
        assert fake_api.requests == []

    @pytest.mark.asyncio
    async def test_refresh_fetches_and_signals(self, controller, host, fake_api, store):
        await controller.connect()
        await controller.refresh()

        assert len(fake_api.requests) == 1
        assert store.get() is not None
        assert host.drain_signals("pokemon") == ["root", "collection"]
        assert host.drain_signals("pokemon") == []

    @pytest.mark.asyncio
    async def test_refresh_twice_stays_connected(self, controller, fake_api):
        await controller.connect()
        await controller.refresh()
        await controller.refresh()
        assert controller.is_connected
        assert len(fake_api.requests) == 2

    @pytest.mark.asyncio
    async def test_refresh_visible_to_next_lookup(self, controller, store, fake_api):
        fs = VirtualFileSystem(store, fetch_on_empty=False)
        assert await fs.list_children("collection") == []

        await controller.connect()
        await controller.refresh()
        children = await fs.list_children("collection")
        assert [c.identifier for c in children][-1] == "item_25"

    @pytest.mark.asyncio
    async def test_fetch_failure_is_wrapped(self, controller, fake_api, host):
        await controller.connect()
        fake_api.error = httpx.ConnectError("offline")

        with pytest.raises(FetchFailedError) as exc_info:
            await controller.refresh()
        assert isinstance(exc_info.value.cause, TransportError)
        assert host.drain_signals("pokemon") == []
        assert controller.is_connected

    @pytest.mark.asyncio
    async def test_redirect_loop_is_wrapped(self, host, config, store):
        def redirect_to_self(request):
            return httpx.Response(302, headers={"Location": str(request.url)})

        http_client = httpx.AsyncClient(
            transport=httpx.MockTransport(redirect_to_self), follow_redirects=True
        )
        catalog_client = CatalogClient(config, store, http_client=http_client)
        controller = DomainController(host, catalog_client, store, DOMAIN)
        await controller.connect()

        with pytest.raises(FetchFailedError) as exc_info:
            await controller.refresh()
        assert isinstance(exc_info.value.cause, TransportError)
        assert controller.is_connected

    @pytest.mark.asyncio
    async def test_signal_rejection(self, catalog_client, store):
        host = AsyncMock()
        host.signal_enumerator.side_effect = HostError("no manager for domain")
        controller = DomainController(host, catalog_client, store, DOMAIN)
        await controller.connect()

        with pytest.raises(HostRejectedError):
            await controller.refresh()


class TestStatus:
    @pytest.mark.asyncio
    async def test_status_reports_state_and_last_update(self, controller, store):
        status = controller.status()
        assert status.state == "disconnected"
        assert status.last_update is None

        await controller.connect()
        await controller.refresh()
        status = controller.status()
        assert status.state == "connected"
        assert status.last_update == store.last_updated()

    @pytest.mark.asyncio
    async def test_status_reads_injected_cache_store(self, host, catalog_client, tmp_path, snapshot):
        other_store = JsonCacheStore(tmp_path / "other", "group.other")
        other_store.put(snapshot)
        controller = DomainController(host, catalog_client, other_store, DOMAIN)

        assert catalog_client.cache_store.last_updated() is None
        assert controller.status().last_update == snapshot.fetched_at

    @pytest.mark.asyncio
    async def test_sync_with_host_adopts_registration(self, host, catalog_client, store):
        await host.add_domain(DOMAIN)
        controller = DomainController(host, catalog_client, store, DOMAIN)

        assert controller.sync_with_host()
        with pytest.raises(AlreadyConnectedError):
            await controller.connect()


class TestLocalDomainHost:
    @pytest.mark.asyncio
    async def test_registrations_shared_through_data_dir(self, data_dir, host):
        await host.add_domain(DOMAIN)
        assert LocalDomainHost(data_dir).is_registered("pokemon")

    @pytest.mark.asyncio
    async def test_duplicate_registration_rejected(self, host):
        await host.add_domain(DOMAIN)
        with pytest.raises(HostError):
            await host.add_domain(DOMAIN)

    @pytest.mark.asyncio
    async def test_remove_unknown_rejected(self, host):
        with pytest.raises(HostError):
            await host.remove_domain("pokemon")

    @pytest.mark.asyncio
    async def test_signal_unknown_domain_rejected(self, host):
        with pytest.raises(HostError):
            await host.signal_enumerator("pokemon", "root")

    @pytest.mark.asyncio
    async def test_concurrent_registrations_all_persist(self, data_dir, host):
        other = Domain(identifier="pokemon-extra", display_name="More Pokémon")
        await asyncio.gather(host.add_domain(DOMAIN), host.add_domain(other))

        reloaded = LocalDomainHost(data_dir)
        assert reloaded.is_registered("pokemon")
        assert reloaded.is_registered("pokemon-extra")

    @pytest.mark.asyncio
    async def test_registry_io_runs_off_event_loop(self, host, monkeypatch):
        threads = []
        save = host._save

        def recording_save(domains):
            threads.append(threading.get_ident())
            save(domains)

        monkeypatch.setattr(host, "_save", recording_save)
        await host.add_domain(DOMAIN)
        await host.remove_domain("pokemon")

        assert len(threads) == 2
        assert threading.get_ident() not in threads
