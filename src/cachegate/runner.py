"""Detached background work for fire-and-forget cache refreshes.

:class:`BackgroundRunner` schedules coroutines as :class:`asyncio.Task`
objects that the submitting flow never awaits. Each task carries its own
error handling: an exception is logged and counted, and can never fail the
response that triggered it. The runner keeps strong references to in-flight
tasks so they are not garbage-collected mid-flight, and :meth:`join` lets a
host wait for them before shutting down.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Coroutine

logger = logging.getLogger(__name__)


class BackgroundRunner:
    """Runs detached tasks on the current event loop.

    Usage::

        runner = BackgroundRunner()
        runner.submit(refresh(request), name="refresh GET /api/items")
        ...
        await runner.join()
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[None]] = set()
        self._failures = 0

    def submit(self, coro: Coroutine[Any, Any, Any], name: str = "background") -> asyncio.Task[None]:
        """Schedule *coro* without awaiting it and return the wrapping task."""
        task = asyncio.get_running_loop().create_task(self._guard(coro, name), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def join(self) -> None:
        """Wait until every submitted task, including ones submitted meanwhile, has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    @property
    def pending(self) -> int:
        """Number of tasks still in flight."""
        return len(self._tasks)

    @property
    def failures(self) -> int:
        """Number of tasks that ended with an exception."""
        return self._failures

    async def _guard(self, coro: Coroutine[Any, Any, Any], name: str) -> None:
        try:
            await coro
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._failures += 1
            logger.warning("Background task '%s' failed: %s", name, exc)
