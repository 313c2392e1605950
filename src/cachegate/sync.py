"""Deferred-write synchronisation.

When connectivity returns, the host delivers a :class:`~cachegate.models.SyncTag`
to :meth:`SyncCoordinator.dispatch`. The coordinator drains the pending
writes of the matching :class:`~cachegate.models.MutationKind` and commits
them to the server as one batch.

Per kind, a trigger walks this state machine::

    IDLE -> DRAINING -> (empty queue)         -> IDLE
                     -> COMMITTED (2xx)       -> IDLE   records removed
                     -> RETAINED  (failure)   -> IDLE   records kept

Delivery is at-least-once and all-or-nothing: a record leaves the queue only
after the commit of the batch containing it succeeded. Failures are logged
and reported in the returned :class:`SyncOutcome`, never raised. There is no
retry loop; the next trigger is the retry.
"""

from __future__ import annotations

import asyncio
import enum
import json
import logging
from dataclasses import dataclass
from typing import Optional, Union

from pydantic import ValidationError

from cachegate.exceptions import CommitRejected, NetworkError, StorageUnavailable
from cachegate.models import GlobalConfig, MutationKind, PendingWriteRecord, Request, SyncTag
from cachegate.network import Network
from cachegate.queue import PendingWriteQueue

logger = logging.getLogger(__name__)


class SyncState(str, enum.Enum):
    IDLE = "idle"
    DRAINING = "draining"
    COMMITTED = "committed"
    RETAINED = "retained"


@dataclass
class SyncOutcome:
    """What a single trigger did.

    Attributes:
        tag: The trigger that was handled.
        kind: The mutation kind that was drained.
        state: ``IDLE`` when the queue was empty, ``COMMITTED`` when the
            batch was accepted, ``RETAINED`` when it was kept for later.
        count: Number of records in the batch.
        error: Failure description for ``RETAINED`` outcomes.
    """

    tag: SyncTag
    kind: MutationKind
    state: SyncState
    count: int = 0
    error: Optional[str] = None


class SyncCoordinator:
    """Commits queued mutations in batches on connectivity triggers.

    Triggers for the same kind are serialised, so a batch is never
    committed twice by overlapping triggers. Records appended while a batch
    is in flight are not part of it and wait for the next trigger.

    Args:
        queue: Source of pending writes.
        network: Used for the commit requests.
        config: Commit endpoints and the origin they are resolved against.
    """

    def __init__(self, queue: PendingWriteQueue, network: Network, config: GlobalConfig) -> None:
        self._queue = queue
        self._network = network
        self._config = config
        self._states = {kind: SyncState.IDLE for kind in MutationKind}
        self._locks = {kind: asyncio.Lock() for kind in MutationKind}

    def state(self, kind: MutationKind) -> SyncState:
        return self._states[kind]

    async def dispatch(self, tag: Union[str, SyncTag]) -> Optional[SyncOutcome]:
        """Handle one connectivity-restored trigger.

        Args:
            tag: A :class:`~cachegate.models.SyncTag` or its string value.

        Returns:
            The outcome, or ``None`` for tags this coordinator does not know.
        """
        try:
            tag = SyncTag(tag)
        except ValueError:
            logger.debug("Ignoring unknown sync tag %r", tag)
            return None

        if tag is SyncTag.WATCH_HISTORY:
            kind = MutationKind.WATCH_HISTORY_EVENT
        elif tag is SyncTag.LIST_CHANGES:
            kind = MutationKind.LIST_CHANGE_EVENT
        else:  # pragma: no cover
            raise AssertionError(f"Unhandled sync tag {tag!r}")
        return await self._sync(tag, kind)

    async def dispatch_all(self) -> list[SyncOutcome]:
        """Trigger every known tag in turn."""
        outcomes = []
        for tag in SyncTag:
            outcome = await self.dispatch(tag)
            if outcome is not None:
                outcomes.append(outcome)
        return outcomes

    async def _sync(self, tag: SyncTag, kind: MutationKind) -> SyncOutcome:
        async with self._locks[kind]:
            self._states[kind] = SyncState.DRAINING
            try:
                return await self._drain_and_commit(tag, kind)
            finally:
                self._states[kind] = SyncState.IDLE

    async def _drain_and_commit(self, tag: SyncTag, kind: MutationKind) -> SyncOutcome:
        try:
            records = await self._queue.drain(kind)
        except StorageUnavailable as exc:
            logger.error("Failed to read pending %s writes: %s", kind.value, exc)
            return SyncOutcome(tag, kind, SyncState.RETAINED, 0, str(exc))

        if not records:
            logger.debug("No pending %s writes", kind.value)
            return SyncOutcome(tag, kind, SyncState.IDLE)

        try:
            await self._commit(kind, records)
        except (NetworkError, CommitRejected, ValidationError) as exc:
            self._states[kind] = SyncState.RETAINED
            logger.warning(
                "Failed to sync %s (%d records retained): %s", kind.value, len(records), exc
            )
            return SyncOutcome(tag, kind, SyncState.RETAINED, len(records), str(exc))

        self._states[kind] = SyncState.COMMITTED
        try:
            await self._queue.clear(kind, records)
        except StorageUnavailable as exc:
            # Committed but not removed: the batch is sent again next time.
            logger.error("Synced %s but could not clear the queue: %s", kind.value, exc)
        logger.info("Synced %d pending %s writes", len(records), kind.value)
        return SyncOutcome(tag, kind, SyncState.COMMITTED, len(records))

    async def _commit(self, kind: MutationKind, records: list[PendingWriteRecord]) -> None:
        url = self._config.app.resolve(self._config.sync.endpoint_for(kind))
        request = Request(
            method="POST",
            url=url,
            headers={"content-type": "application/json"},
            body=json.dumps([record.payload for record in records]).encode(),
        )
        response = await self._network.fetch(request)
        if not response.ok:
            raise CommitRejected(
                f"POST {url} returned HTTP {response.status_code}", status_code=response.status_code
            )
