"""Namespaced response storage for cachegate.

This package provides the :class:`CacheStore` interface and its
implementations. The store is owned by
:class:`~cachegate.engine.StrategyEngine`, which decides what goes into
which namespace; the store itself applies no policy (no TTL, no method or
status filtering).
"""

from cachegate.cache.store import (
    CacheHandle,
    CacheStore,
    DiskCacheStore,
    MemoryCacheStore,
    cache_key,
    request_key,
)

__all__ = [
    "CacheHandle",
    "CacheStore",
    "DiskCacheStore",
    "MemoryCacheStore",
    "cache_key",
    "request_key",
]
