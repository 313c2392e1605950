"""Namespaced response stores.

A :class:`CacheStore` holds any number of independently addressable
namespaces, each a key -> :class:`~cachegate.models.Response` map. Lookups
never cross namespaces except through :meth:`CacheStore.match`, which
searches all of them in turn.

Two implementations are provided:

* :class:`DiskCacheStore` -- one :class:`diskcache.Cache` directory per
  namespace under a root directory. Blocking diskcache calls run through
  :func:`asyncio.to_thread` so that every store operation is a suspension
  point for other flows.
* :class:`MemoryCacheStore` -- dictionaries, for tests and short-lived
  processes.

Cache keys are SHA-256 hashes of ``METHOD|URL`` (see :func:`cache_key`).
"""

from __future__ import annotations

import asyncio
import hashlib
import shutil
import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

import diskcache

from cachegate.exceptions import StorageUnavailable
from cachegate.models import Request, Response


def cache_key(method: str, url: str) -> str:
    """Generate a cache key from method and absolute URL."""
    raw = f"{method.upper()}|{url}"
    return hashlib.sha256(raw.encode()).hexdigest()


def request_key(request: Request) -> str:
    """Cache key identifying *request* (its method and URL)."""
    return cache_key(request.method, request.url)


def _validate_name(name: str) -> str:
    if not name or name in (".", "..") or "/" in name or "\\" in name:
        raise ValueError(f"Invalid namespace name: {name!r}")
    return name


class CacheHandle(ABC):
    """An opened namespace."""

    def __init__(self, name: str) -> None:
        self.name = name

    @abstractmethod
    async def get(self, key: str) -> Optional[Response]:
        """Return the response stored under *key*, or ``None`` on a miss."""

    @abstractmethod
    async def put(self, key: str, response: Response) -> None:
        """Store *response* under *key*, replacing any previous entry."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove *key*. Returns ``True`` if an entry was removed."""

    @abstractmethod
    async def entries(self) -> list[Response]:
        """Return every stored response (order unspecified)."""


class CacheStore(ABC):
    """A durable collection of namespaces, opened by name."""

    @abstractmethod
    async def open(self, name: str) -> CacheHandle:
        """Open (creating if needed) the namespace called *name*.

        Raises:
            StorageUnavailable: If the namespace cannot be opened.
        """

    @abstractmethod
    async def list_namespaces(self) -> list[str]:
        """Return the names of all existing namespaces."""

    @abstractmethod
    async def delete_namespace(self, name: str) -> bool:
        """Delete a namespace wholesale. Returns ``True`` if it existed."""

    async def match(self, key: str) -> Optional[Response]:
        """Look *key* up in every namespace and return the first hit."""
        for name in await self.list_namespaces():
            handle = await self.open(name)
            response = await handle.get(key)
            if response is not None:
                return response
        return None

    def close(self) -> None:
        """Release any resources held by the store."""


# ------------------------------------------------------------------ #
# diskcache-backed store
# ------------------------------------------------------------------ #


class DiskCacheHandle(CacheHandle):
    """A namespace backed by a single :class:`diskcache.Cache` directory."""

    def __init__(self, name: str, cache: diskcache.Cache) -> None:
        super().__init__(name)
        self._cache = cache

    async def get(self, key: str) -> Optional[Response]:
        data = await self._call(self._cache.get, key)
        if data is None:
            return None
        return _load_response(self.name, data)

    async def put(self, key: str, response: Response) -> None:
        await self._call(self._cache.set, key, response.model_dump())

    async def delete(self, key: str) -> bool:
        return bool(await self._call(self._cache.delete, key))

    async def entries(self) -> list[Response]:
        def _read_all() -> list[Any]:
            values = []
            for key in self._cache.iterkeys():
                value = self._cache.get(key)
                if value is not None:
                    values.append(value)
            return values

        return [_load_response(self.name, data) for data in await self._call(_read_all)]

    def close(self) -> None:
        self._cache.close()

    async def _call(self, fn: Any, *args: Any) -> Any:
        try:
            return await asyncio.to_thread(fn, *args)
        except (OSError, sqlite3.Error) as exc:
            raise StorageUnavailable(f"Cache namespace '{self.name}' unavailable: {exc}") from exc


class DiskCacheStore(CacheStore):
    """Namespaces persisted as diskcache directories under *root*.

    Args:
        root: Directory that holds one subdirectory per namespace.

    Example::

        store = DiskCacheStore(get_cache_dir() / "namespaces")
        handle = await store.open("queenmovie-api-v1")
        await handle.put(cache_key("GET", url), response)
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)
        self._handles: dict[str, DiskCacheHandle] = {}

    @property
    def root(self) -> Path:
        return self._root

    async def open(self, name: str) -> CacheHandle:
        _validate_name(name)
        handle = self._handles.get(name)
        if handle is not None:
            return handle
        path = self._root / name
        try:
            cache = await asyncio.to_thread(diskcache.Cache, str(path))
        except (OSError, sqlite3.Error) as exc:
            raise StorageUnavailable(f"Cannot open cache namespace '{name}' at {path}: {exc}") from exc
        handle = DiskCacheHandle(name, cache)
        self._handles[name] = handle
        return handle

    def _scan_namespaces(self) -> list[str]:
        if not self._root.is_dir():
            return []
        return sorted(p.name for p in self._root.iterdir() if p.is_dir())

    async def list_namespaces(self) -> list[str]:
        try:
            return await asyncio.to_thread(self._scan_namespaces)
        except OSError as exc:
            raise StorageUnavailable(f"Cannot list cache namespaces in {self._root}: {exc}") from exc

    async def delete_namespace(self, name: str) -> bool:
        _validate_name(name)
        handle = self._handles.pop(name, None)
        if handle is not None:
            handle.close()
        path = self._root / name
        if not path.is_dir():
            return False
        try:
            await asyncio.to_thread(shutil.rmtree, path)
        except OSError as exc:
            raise StorageUnavailable(f"Cannot delete cache namespace '{name}': {exc}") from exc
        return True

    def close(self) -> None:
        for handle in self._handles.values():
            handle.close()
        self._handles.clear()


def _load_response(namespace: str, data: Any) -> Response:
    try:
        return Response.model_validate(data)
    except ValueError as exc:
        raise StorageUnavailable(f"Corrupt entry in cache namespace '{namespace}': {exc}") from exc


# ------------------------------------------------------------------ #
# In-memory store
# ------------------------------------------------------------------ #


class MemoryCacheHandle(CacheHandle):
    def __init__(self, name: str, entries: dict[str, Response]) -> None:
        super().__init__(name)
        self._entries = entries

    async def get(self, key: str) -> Optional[Response]:
        return self._entries.get(key)

    async def put(self, key: str, response: Response) -> None:
        self._entries[key] = response

    async def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    async def entries(self) -> list[Response]:
        return list(self._entries.values())


class MemoryCacheStore(CacheStore):
    """Namespaces held in process memory, in creation order."""

    def __init__(self) -> None:
        self._namespaces: dict[str, dict[str, Response]] = {}

    async def open(self, name: str) -> CacheHandle:
        _validate_name(name)
        entries = self._namespaces.setdefault(name, {})
        return MemoryCacheHandle(name, entries)

    async def list_namespaces(self) -> list[str]:
        return list(self._namespaces)

    async def delete_namespace(self, name: str) -> bool:
        return self._namespaces.pop(name, None) is not None
