"""httpx transport that routes a client's requests through the strategy engine.

Mount :class:`OfflineTransport` on the application's
:class:`httpx.AsyncClient` and every request it sends is answered by
:class:`~cachegate.engine.StrategyEngine`::

    async with Gateway(config) as gateway:
        async with httpx.AsyncClient(transport=OfflineTransport(gateway)) as client:
            page = await client.get(
                "http://localhost:3000/dashboard",
                headers={"Sec-Fetch-Mode": "navigate"},
            )

Navigation intent comes from the ``cachegate.mode`` request extension or,
failing that, the ``Sec-Fetch-Mode`` header. When the engine cannot produce
any response the client sees an :class:`httpx.ConnectError`, exactly as it
would without the transport.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Union

import httpx

from cachegate.exceptions import NetworkError
from cachegate.models import Request

if TYPE_CHECKING:
    from cachegate.engine import StrategyEngine
    from cachegate.gateway import Gateway

MODE_EXTENSION = "cachegate.mode"


class OfflineTransport(httpx.AsyncBaseTransport):
    """Answers httpx requests from the cache, the network, or a fallback.

    Args:
        target: A :class:`~cachegate.gateway.Gateway` (entered) or a
            :class:`~cachegate.engine.StrategyEngine`.
    """

    def __init__(self, target: Union["Gateway", "StrategyEngine"]) -> None:
        self._target = target

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        body = await request.aread()
        mode = request.extensions.get(MODE_EXTENSION) or request.headers.get(
            "sec-fetch-mode", "cors"
        )
        intercepted = Request(
            method=request.method,
            url=str(request.url),
            headers=dict(request.headers),
            body=body,
            mode=mode,
        )

        try:
            response = await self._target.handle(intercepted)
        except NetworkError as exc:
            raise httpx.ConnectError(str(exc), request=request) from exc

        extensions = {}
        if response.reason_phrase:
            extensions["reason_phrase"] = response.reason_phrase.encode("ascii", errors="replace")
        return httpx.Response(
            status_code=response.status_code,
            headers=response.headers,
            content=response.body,
            request=request,
            extensions=extensions,
        )
