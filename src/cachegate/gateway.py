"""Composition root: one object owning the store, queue, network, engine and coordinator.

:class:`Gateway` is an async context manager. On entry it opens the
collaborators that were not injected (diskcache-backed store and queue
under the XDG directories, an :class:`~cachegate.network.HttpxNetwork`);
on exit it waits for background refreshes to finish and releases
everything it opened.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from cachegate.cache.store import CacheStore, DiskCacheStore
from cachegate.engine import StrategyEngine
from cachegate.models import GlobalConfig, MutationKind, PendingWriteRecord, Request, Response
from cachegate.network import HttpxNetwork, Network
from cachegate.queue import DiskPendingWriteQueue, PendingWriteQueue
from cachegate.runner import BackgroundRunner
from cachegate.sync import SyncCoordinator


class Gateway:
    """Offline-first front door for a client application.

    Args:
        config: Effective configuration (see :func:`~cachegate.config.resolve_config`).
        store: Cache store. Defaults to a :class:`DiskCacheStore` under
            ``cache_dir``.
        queue: Pending-write queue. Defaults to a
            :class:`DiskPendingWriteQueue` under ``data_dir``.
        network: Network. Defaults to an :class:`HttpxNetwork` built from
            ``config.network``.
        cache_dir: Root for the default store; defaults to
            :func:`~cachegate.config.get_cache_dir`.
        data_dir: Root for the default queue; defaults to
            :func:`~cachegate.config.get_data_dir`.

    Example::

        async with Gateway(resolve_config()) as gateway:
            response = await gateway.handle(Request(url="http://localhost:3000/"))
            await gateway.enqueue(MutationKind.WATCH_HISTORY_EVENT, {"id": 7})
            await gateway.coordinator.dispatch("sync-watch-history")
    """

    def __init__(
        self,
        config: GlobalConfig,
        store: Optional[CacheStore] = None,
        queue: Optional[PendingWriteQueue] = None,
        network: Optional[Network] = None,
        cache_dir: Optional[Path] = None,
        data_dir: Optional[Path] = None,
    ) -> None:
        self._config = config
        self._store = store
        self._queue = queue
        self._network = network
        self._cache_dir = cache_dir
        self._data_dir = data_dir
        self._owned: list[Any] = []
        self._engine: Optional[StrategyEngine] = None
        self._coordinator: Optional[SyncCoordinator] = None
        self._runner = BackgroundRunner()

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> Gateway:
        from cachegate.config import get_cache_dir, get_data_dir

        if self._store is None:
            self._store = DiskCacheStore((self._cache_dir or get_cache_dir()) / "namespaces")
            self._owned.append(self._store)
        if self._queue is None:
            self._queue = DiskPendingWriteQueue((self._data_dir or get_data_dir()) / "pending")
            self._owned.append(self._queue)
        if self._network is None:
            self._network = HttpxNetwork(self._config.network)
            self._owned.append(self._network)

        self._engine = StrategyEngine(self._store, self._network, self._config, self._runner)
        self._coordinator = SyncCoordinator(self._queue, self._network, self._config)
        return self

    async def __aexit__(self, *args: object) -> None:
        await self._runner.join()
        for resource in reversed(self._owned):
            if isinstance(resource, Network):
                await resource.aclose()
            else:
                resource.close()
        self._owned.clear()

    # ------------------------------------------------------------------ #
    # Accessors
    # ------------------------------------------------------------------ #

    @property
    def config(self) -> GlobalConfig:
        return self._config

    @property
    def engine(self) -> StrategyEngine:
        assert self._engine is not None, "Gateway not entered -- use as async context manager"
        return self._engine

    @property
    def coordinator(self) -> SyncCoordinator:
        assert self._coordinator is not None, "Gateway not entered -- use as async context manager"
        return self._coordinator

    @property
    def store(self) -> CacheStore:
        assert self._store is not None, "Gateway not entered -- use as async context manager"
        return self._store

    @property
    def queue(self) -> PendingWriteQueue:
        assert self._queue is not None, "Gateway not entered -- use as async context manager"
        return self._queue

    # ------------------------------------------------------------------ #
    # Shortcuts
    # ------------------------------------------------------------------ #

    async def handle(self, request: Request) -> Response:
        return await self.engine.handle(request)

    async def enqueue(self, kind: MutationKind, payload: Any) -> PendingWriteRecord:
        """Record a mutation made while offline."""
        return await self.queue.enqueue(kind, payload)
