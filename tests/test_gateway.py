"""Tests for the Gateway composition root."""

from __future__ import annotations

import pytest

from cachegate.cache.store import DiskCacheStore, cache_key
from cachegate.gateway import Gateway
from cachegate.models import MutationKind, Request, Response, SyncTag
from cachegate.queue import DiskPendingWriteQueue
from cachegate.sync import SyncState

API_URL = "http://localhost:3000/api/content/trending"


class TestGatewayDefaults:
    async def test_opens_disk_backends_under_given_dirs(self, tmp_path, config, backend) -> None:
        async with Gateway(
            config,
            network=backend.network(),
            cache_dir=tmp_path / "cache",
            data_dir=tmp_path / "data",
        ) as gateway:
            assert isinstance(gateway.store, DiskCacheStore)
            assert isinstance(gateway.queue, DiskPendingWriteQueue)
            await gateway.enqueue(MutationKind.WATCH_HISTORY_EVENT, {"id": 1})

        assert (tmp_path / "data" / "pending" / "watch-history").is_dir()

    async def test_defaults_to_xdg_dirs(self, isolated_config, config, backend) -> None:
        backend.route("GET", API_URL, json_body={"items": []})

        async with Gateway(config, network=backend.network()) as gateway:
            await gateway.handle(Request(url=API_URL))

        assert (isolated_config / "cache" / "cachegate" / "namespaces" / "queenmovie-api-v1").is_dir()

    async def test_pending_writes_survive_restart(self, tmp_path, config, backend) -> None:
        async with Gateway(config, network=backend.network(), data_dir=tmp_path, cache_dir=tmp_path) as gateway:
            await gateway.enqueue(MutationKind.LIST_CHANGE_EVENT, {"add": 5})

        backend.route("POST", "http://localhost:3000/api/user/my-list/sync", json_body={"ok": True})
        async with Gateway(config, network=backend.network(), data_dir=tmp_path, cache_dir=tmp_path) as gateway:
            outcome = await gateway.coordinator.dispatch(SyncTag.LIST_CHANGES)

        assert outcome.state is SyncState.COMMITTED
        assert outcome.count == 1


class TestGatewayLifecycle:
    async def test_exit_waits_for_background_refresh(self, store, queue, config, backend) -> None:
        handle = await store.open("queenmovie-api-v1")
        await handle.put(cache_key("GET", API_URL), Response(body=b"old"))
        backend.route("GET", API_URL, content=b"new")

        async with Gateway(config, store=store, queue=queue, network=backend.network()) as gateway:
            response = await gateway.handle(Request(url=API_URL))
            assert response.body == b"old"

        assert (await handle.get(cache_key("GET", API_URL))).body == b"new"

    def test_accessors_require_entering(self, config) -> None:
        gateway = Gateway(config)

        with pytest.raises(AssertionError):
            gateway.engine

    async def test_config_accessor(self, store, queue, network, config) -> None:
        async with Gateway(config, store=store, queue=queue, network=network) as gateway:
            assert gateway.config is config
            assert gateway.coordinator.state(MutationKind.WATCH_HISTORY_EVENT) is SyncState.IDLE
