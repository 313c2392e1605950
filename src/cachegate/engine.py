"""The caching strategy engine.

:class:`StrategyEngine` answers every intercepted request. It classifies the
request with :func:`~cachegate.classifier.classify` and runs the strategy
that belongs to the category:

* ``DATA_QUERY`` -- **stale-while-revalidate.** A cached response is
  returned immediately and a detached refresh overwrites it for next time.
  Without a cached response the network is awaited; when it is unreachable
  a JSON ``{"error": "Offline", ...}`` body is synthesized.
* ``MEDIA_ASSET`` -- **cache-first.** Cached images are returned without
  any freshness check; on a miss the network result is cached. When the
  network is unreachable the pre-seeded placeholder image is returned.
* ``GENERIC`` -- **cache-first with network fallback.** The lookup spans
  every namespace; successful GET responses land in the primary namespace.
  When the network is unreachable navigations get the pre-seeded offline
  page and everything else a ``503 Offline``.

Only ``GET`` requests are ever looked up in or written to a namespace, and
only 2xx responses are written. Cached entries never expire. Concurrent
writes to the same key are last-write-wins.

The engine also owns cache activation: :meth:`StrategyEngine.activate`
deletes every namespace that does not belong to the configured generation.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from cachegate.cache.store import CacheHandle, CacheStore, cache_key, request_key
from cachegate.classifier import classify
from cachegate.exceptions import NetworkError
from cachegate.models import Category, GlobalConfig, Namespace, Request, Response
from cachegate.network import Network
from cachegate.runner import BackgroundRunner

logger = logging.getLogger(__name__)

OFFLINE_API_BODY = {"error": "Offline", "message": "You are currently offline"}


def offline_api_response(url: Optional[str] = None) -> Response:
    """The JSON body returned for data queries that cannot reach the network."""
    return Response(
        status_code=200,
        headers={"content-type": "application/json"},
        body=json.dumps(OFFLINE_API_BODY).encode(),
        url=url,
    )


def offline_generic_response(url: Optional[str] = None) -> Response:
    """The ``503 Offline`` returned for generic non-navigation failures."""
    return Response(
        status_code=503,
        headers={"content-type": "text/plain; charset=utf-8"},
        body=b"Offline",
        url=url,
        reason_phrase="Service Unavailable",
    )


class StrategyEngine:
    """Serves requests from the cache, the network, or both.

    Args:
        store: Namespaced response store. The engine owns what goes into it.
        network: Used for every fetch, including background refreshes.
        config: Routing rules, namespace naming and fallback paths.
        runner: Executes background refreshes. A private runner is created
            when omitted.

    Example::

        engine = StrategyEngine(MemoryCacheStore(), HttpxNetwork(), GlobalConfig())
        response = await engine.handle(Request(url="http://localhost:3000/api/content/trending"))
    """

    def __init__(
        self,
        store: CacheStore,
        network: Network,
        config: GlobalConfig,
        runner: Optional[BackgroundRunner] = None,
    ) -> None:
        self._store = store
        self._network = network
        self._config = config
        self._runner = runner or BackgroundRunner()
        self._stats = {
            "hits": 0,
            "misses": 0,
            "revalidations": 0,
            "fallbacks": 0,
        }

    @property
    def runner(self) -> BackgroundRunner:
        return self._runner

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    async def handle(self, request: Request) -> Response:
        """Answer *request* with the strategy of its category.

        Network failures are converted into fallback responses.

        Raises:
            NetworkError: Only when the network failed and the placeholder
                image or offline page that should replace the response was
                never cached.
            StorageUnavailable: If a namespace cannot be opened or read.
        """
        category = classify(request, self._config.routing)
        logger.debug("%s %s -> %s", request.method, request.url, category.value)

        if category is Category.DATA_QUERY:
            return await self._stale_while_revalidate(request)
        if category is Category.MEDIA_ASSET:
            return await self._cache_first_media(request)
        return await self._cache_first_generic(request)

    def current_namespaces(self) -> frozenset[str]:
        """Store names of the three namespaces of the configured generation."""
        return frozenset(self._config.app.namespace_name(ns) for ns in Namespace)

    async def activate(self) -> frozenset[str]:
        """Delete every namespace of an obsolete generation.

        Returns:
            The authoritative set of current namespace names. Exactly these
            namespaces exist in the store afterwards.
        """
        current = self.current_namespaces()
        for name in await self._store.list_namespaces():
            if name not in current:
                await self._store.delete_namespace(name)
                logger.info("Deleted obsolete cache namespace '%s'", name)
        for name in sorted(current):
            await self._store.open(name)
        return current

    def stats(self) -> dict[str, Any]:
        """Return request counters and background refresh status."""
        total = self._stats["hits"] + self._stats["misses"]
        hit_rate = (self._stats["hits"] / total * 100) if total > 0 else 0
        return {
            **self._stats,
            "refresh_failures": self._runner.failures,
            "refreshing": self._runner.pending,
            "hit_rate_percent": round(hit_rate, 1),
        }

    # ------------------------------------------------------------------ #
    # Strategies
    # ------------------------------------------------------------------ #

    async def _stale_while_revalidate(self, request: Request) -> Response:
        handle = await self._open(Namespace.DATA)
        key = request_key(request)

        if request.is_cacheable:
            cached = await handle.get(key)
            if cached is not None:
                logger.debug("CACHE HIT (revalidating): %s", request.url)
                self._stats["hits"] += 1
                self._runner.submit(
                    self._revalidate(handle, key, request),
                    name=f"refresh {request.url}",
                )
                return cached

        logger.debug("CACHE MISS: %s", request.url)
        self._stats["misses"] += 1
        try:
            response = await self._network.fetch(request)
        except NetworkError as exc:
            logger.info("Offline, synthesizing API fallback for %s: %s", request.url, exc)
            self._stats["fallbacks"] += 1
            return offline_api_response(request.url)

        if response.ok and request.is_cacheable:
            await handle.put(key, response)
        return response

    async def _revalidate(self, handle: CacheHandle, key: str, request: Request) -> None:
        fresh = await self._network.fetch(request)
        if fresh.ok:
            await handle.put(key, fresh)
            self._stats["revalidations"] += 1
            logger.debug("Background refresh stored: %s", request.url)
        else:
            logger.debug("Background refresh got HTTP %d, keeping cached: %s", fresh.status_code, request.url)

    async def _cache_first_media(self, request: Request) -> Response:
        handle = await self._open(Namespace.MEDIA)
        key = request_key(request)

        if request.is_cacheable:
            cached = await handle.get(key)
            if cached is not None:
                logger.debug("CACHE HIT: %s", request.url)
                self._stats["hits"] += 1
                return cached

        logger.debug("CACHE MISS: %s", request.url)
        self._stats["misses"] += 1
        try:
            response = await self._network.fetch(request)
        except NetworkError:
            placeholder = await self._fallback(self._config.fallbacks.placeholder_path)
            if placeholder is None:
                logger.warning("Offline and no placeholder image cached for %s", request.url)
                raise
            self._stats["fallbacks"] += 1
            return placeholder

        if response.ok and request.is_cacheable:
            await handle.put(key, response)
        return response

    async def _cache_first_generic(self, request: Request) -> Response:
        key = request_key(request)

        if request.is_cacheable:
            cached = await self._store.match(key)
            if cached is not None:
                logger.debug("CACHE HIT: %s", request.url)
                self._stats["hits"] += 1
                return cached

        logger.debug("CACHE MISS: %s", request.url)
        self._stats["misses"] += 1
        try:
            response = await self._network.fetch(request)
        except NetworkError:
            if request.is_navigation:
                page = await self._fallback(self._config.fallbacks.offline_page_path)
                if page is None:
                    logger.warning("Offline and no offline page cached for %s", request.url)
                    raise
                self._stats["fallbacks"] += 1
                return page
            self._stats["fallbacks"] += 1
            return offline_generic_response(request.url)

        if response.ok and request.is_cacheable:
            handle = await self._open(Namespace.PRIMARY)
            await handle.put(key, response)
        return response

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    async def _open(self, namespace: Namespace) -> CacheHandle:
        return await self._store.open(self._config.app.namespace_name(namespace))

    async def _fallback(self, path: str) -> Optional[Response]:
        """Find a pre-seeded response for *path* in any namespace."""
        return await self._store.match(cache_key("GET", self._config.app.resolve(path)))
