"""Network access for the strategy engine and the sync coordinator.

:class:`HttpxNetwork` wraps :class:`httpx.AsyncClient` and converts between
httpx objects and cachegate's frozen :class:`~cachegate.models.Request` /
:class:`~cachegate.models.Response` models. Every request-level failure
(connection refused, DNS, timeout, protocol error, redirect loop, undecodable
body) is raised as :class:`~cachegate.exceptions.NetworkError`; HTTP error
statuses are *responses*, not exceptions, and are returned as-is.

No retry is performed here. The request strategies fall back to cached or
synthesized content immediately, and the sync coordinator relies on the
next connectivity trigger instead.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

import httpx

from cachegate.exceptions import NetworkError
from cachegate.models import NetworkConfig, Request, Response

# Headers describing the transferred encoding of the original body; the
# stored body is already decoded.
_HOP_HEADERS = frozenset({"content-encoding", "content-length", "transfer-encoding"})


class Network(ABC):
    """Fetches a request from the network."""

    @abstractmethod
    async def fetch(self, request: Request) -> Response:
        """Perform *request* and return the server's response.

        Raises:
            NetworkError: If the server is unreachable or the request timed out.
        """

    async def aclose(self) -> None:
        """Release any connections held by the network."""


def to_httpx_request(request: Request) -> httpx.Request:
    return httpx.Request(
        method=request.method,
        url=request.url,
        headers=request.headers,
        content=request.body or None,
    )


def from_httpx_response(response: httpx.Response, url: Optional[str] = None) -> Response:
    """Convert a fully read :class:`httpx.Response` into a :class:`Response`."""
    headers = {
        key: value
        for key, value in response.headers.items()
        if key.lower() not in _HOP_HEADERS
    }
    return Response(
        status_code=response.status_code,
        headers=headers,
        body=response.content,
        url=url if url is not None else str(response.request.url),
        reason_phrase=response.reason_phrase,
    )


class HttpxNetwork(Network):
    """:class:`Network` implementation backed by :class:`httpx.AsyncClient`.

    Args:
        config: Timeout and TLS verification settings.
        transport: Optional httpx transport, e.g. :class:`httpx.MockTransport`
            in tests. Must not be an
            :class:`~cachegate.transport.OfflineTransport`, which would route
            fetches back into the engine.

    Example::

        network = HttpxNetwork(NetworkConfig(timeout=10))
        response = await network.fetch(Request(url="https://example.com/api/items"))
        await network.aclose()
    """

    def __init__(
        self,
        config: Optional[NetworkConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        config = config or NetworkConfig()
        self._client = httpx.AsyncClient(
            timeout=config.timeout,
            verify=config.verify_ssl,
            follow_redirects=True,
            transport=transport,
        )

    async def fetch(self, request: Request) -> Response:
        try:
            response = await self._client.send(to_httpx_request(request))
        except httpx.RequestError as exc:
            raise NetworkError(f"{request.method} {request.url} failed: {exc}") from exc
        return from_httpx_response(response, url=request.url)

    async def aclose(self) -> None:
        await self._client.aclose()
