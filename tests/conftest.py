"""Shared test fixtures for cachegate.

Provides isolated config environments, in-memory stores and queues, a
scriptable fake backend built on :class:`httpx.MockTransport`, and output
state management. These fixtures are automatically discovered by pytest
and available to all test modules without explicit imports.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Optional

import httpx
import pytest

from cachegate.cache.store import MemoryCacheStore
from cachegate.models import GlobalConfig
from cachegate.network import HttpxNetwork
from cachegate.output import OutputFormat, OutputManager, reset_output, set_output
from cachegate.queue import MemoryPendingWriteQueue


# ---------------------------------------------------------------------------
# Auto-reset global output and logging state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager and the ``cachegate`` logger after every test.

    The OutputManager and the RichHandler installed by the CLI callback
    cache references to sys.stdout/sys.stderr at creation time.  When
    Typer's CliRunner redirects those streams and the test finishes, the
    cached references become stale ("I/O operation on closed file").
    """
    yield
    reset_output()
    logger = logging.getLogger("cachegate")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME, XDG_CACHE_HOME, and XDG_DATA_HOME to
    subdirectories of tmp_path so that tests never touch real user
    config or cache. Clears all CACHEGATE_* environment variables and
    changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("cachegate.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in ["CACHEGATE_ORIGIN", "CACHEGATE_GENERATION"]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def config() -> GlobalConfig:
    """Default configuration (origin ``http://localhost:3000``, generation ``v1``)."""
    return GlobalConfig()


# ---------------------------------------------------------------------------
# In-memory collaborators
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> MemoryCacheStore:
    return MemoryCacheStore()


@pytest.fixture
def queue() -> MemoryPendingWriteQueue:
    return MemoryPendingWriteQueue()


# ---------------------------------------------------------------------------
# Fake backend
# ---------------------------------------------------------------------------


class FakeBackend:
    """Scriptable HTTP server behind :class:`httpx.MockTransport`.

    Routes are keyed by ``(METHOD, absolute URL)``; unrouted requests get a
    404. Setting :attr:`offline` makes every request raise
    :class:`httpx.ConnectError`. When :attr:`gate` is an unset
    :class:`asyncio.Event`, requests are recorded and then held until it is
    set, which lets tests observe work that is still in flight.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], httpx.Response] = {}
        self.requests: list[httpx.Request] = []
        self.offline = False
        self.gate: Optional[asyncio.Event] = None

    def route(
        self,
        method: str,
        url: str,
        status: int = 200,
        json_body: Any = None,
        content: bytes = b"",
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        if json_body is not None:
            content = json.dumps(json_body).encode()
            headers = {"content-type": "application/json", **(headers or {})}
        self.routes[(method.upper(), url)] = httpx.Response(
            status, headers=headers or {}, content=content
        )

    def calls(self, method: str, url: str) -> list[httpx.Request]:
        return [
            r for r in self.requests if r.method == method.upper() and str(r.url) == url
        ]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.gate is not None:
            await self.gate.wait()
        if self.offline:
            raise httpx.ConnectError("Connection refused", request=request)
        routed = self.routes.get((request.method, str(request.url)))
        if routed is None:
            return httpx.Response(404, content=b"Not Found")
        return httpx.Response(
            routed.status_code,
            headers=routed.headers,
            content=routed.content,
        )

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def network(self, config: Any = None) -> HttpxNetwork:
        return HttpxNetwork(config, transport=self.transport())


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
async def network(backend: FakeBackend):
    """An :class:`HttpxNetwork` talking to the fake backend."""
    net = backend.network()
    yield net
    await net.aclose()


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()


@pytest.fixture
def cli_backend(backend: FakeBackend, monkeypatch: pytest.MonkeyPatch) -> FakeBackend:
    """Make every Gateway opened by a CLI command talk to the fake backend."""
    monkeypatch.setattr("cachegate.gateway.HttpxNetwork", backend.network)
    return backend
