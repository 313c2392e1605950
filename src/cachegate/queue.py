"""Durable queue of pending writes, one list per mutation kind.

Application code appends a :class:`~cachegate.models.PendingWriteRecord`
whenever a mutating user action happens while offline;
:class:`~cachegate.sync.SyncCoordinator` is the only consumer.

Draining is split into two calls so that a failed commit is never
destructive:

* :meth:`PendingWriteQueue.drain` -- read every queued record of a kind,
  oldest first, without removing anything.
* :meth:`PendingWriteQueue.clear` -- remove records. When given the drained
  batch it removes exactly those records by id in one transaction, so a
  record appended between ``drain`` and ``clear`` survives to the next
  drain and is never committed twice.
"""

from __future__ import annotations

import asyncio
import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Iterable, Optional

import diskcache

from cachegate.exceptions import StorageUnavailable
from cachegate.models import MutationKind, PendingWriteRecord


class PendingWriteQueue(ABC):
    """Per-kind durable list of not-yet-synchronised mutations."""

    @abstractmethod
    async def enqueue(self, kind: MutationKind, payload: Any) -> PendingWriteRecord:
        """Append a record carrying *payload* and return it."""

    @abstractmethod
    async def drain(self, kind: MutationKind) -> list[PendingWriteRecord]:
        """Return every queued record of *kind*, oldest first. Non-destructive."""

    @abstractmethod
    async def clear(
        self,
        kind: MutationKind,
        records: Optional[Iterable[PendingWriteRecord]] = None,
    ) -> int:
        """Remove *records* (or every record of *kind* when ``None``).

        Returns:
            The number of records removed.
        """

    def close(self) -> None:
        """Release any resources held by the queue."""


class DiskPendingWriteQueue(PendingWriteQueue):
    """Queue persisted as one :class:`diskcache.Index` per mutation kind.

    ``Index`` preserves insertion order, which gives oldest-first drains.

    Args:
        root: Directory holding one subdirectory per mutation kind.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)
        self._indexes: dict[MutationKind, diskcache.Index] = {}

    async def enqueue(self, kind: MutationKind, payload: Any) -> PendingWriteRecord:
        record = PendingWriteRecord(kind=kind, payload=payload)
        index = await self._index(kind)

        def _append() -> None:
            index[record.id] = record.model_dump(mode="json")

        await self._call(kind, _append)
        return record

    async def drain(self, kind: MutationKind) -> list[PendingWriteRecord]:
        index = await self._index(kind)
        raw = await self._call(kind, lambda: list(index.values()))
        try:
            return [PendingWriteRecord.model_validate(item) for item in raw]
        except ValueError as exc:
            raise StorageUnavailable(f"Corrupt pending write in queue '{kind.value}': {exc}") from exc

    async def clear(
        self,
        kind: MutationKind,
        records: Optional[Iterable[PendingWriteRecord]] = None,
    ) -> int:
        index = await self._index(kind)
        ids = None if records is None else [record.id for record in records]

        def _remove() -> int:
            with index.transact():
                if ids is None:
                    removed = len(index)
                    index.clear()
                    return removed
                removed = 0
                for record_id in ids:
                    if index.pop(record_id, None) is not None:
                        removed += 1
                return removed

        return await self._call(kind, _remove)

    def close(self) -> None:
        for index in self._indexes.values():
            index.cache.close()
        self._indexes.clear()

    async def _index(self, kind: MutationKind) -> diskcache.Index:
        index = self._indexes.get(kind)
        if index is None:
            path = self._root / kind.value
            index = await self._call(kind, diskcache.Index, str(path))
            self._indexes[kind] = index
        return index

    async def _call(self, kind: MutationKind, fn: Any, *args: Any) -> Any:
        try:
            return await asyncio.to_thread(fn, *args)
        except (OSError, sqlite3.Error) as exc:
            raise StorageUnavailable(f"Pending-write queue '{kind.value}' unavailable: {exc}") from exc


class MemoryPendingWriteQueue(PendingWriteQueue):
    """Queue held in process memory."""

    def __init__(self) -> None:
        self._records: dict[MutationKind, dict[str, PendingWriteRecord]] = {
            kind: {} for kind in MutationKind
        }

    async def enqueue(self, kind: MutationKind, payload: Any) -> PendingWriteRecord:
        record = PendingWriteRecord(kind=kind, payload=payload)
        self._records[kind][record.id] = record
        return record

    async def drain(self, kind: MutationKind) -> list[PendingWriteRecord]:
        return list(self._records[kind].values())

    async def clear(
        self,
        kind: MutationKind,
        records: Optional[Iterable[PendingWriteRecord]] = None,
    ) -> int:
        queued = self._records[kind]
        if records is None:
            removed = len(queued)
            queued.clear()
            return removed
        removed = 0
        for record in records:
            if queued.pop(record.id, None) is not None:
                removed += 1
        return removed
