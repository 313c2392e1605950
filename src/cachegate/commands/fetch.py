"""Fetch command -- run one request through the strategy engine.

Useful to inspect what the application would see for a URL right now:
whether the answer comes from a namespace, from the network, or from an
offline fallback.
"""

from __future__ import annotations

from typing import Optional

import typer

from cachegate.commands import resolve_ctx_config, run_async
from cachegate.exit_codes import EXIT_INVALID_USAGE
from cachegate.models import Request, Response
from cachegate.output import error


def _parse_headers(values: Optional[list[str]]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for raw in values or []:
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            error(f"Invalid header (expected 'Name: value'): {raw}")
            raise typer.Exit(code=EXIT_INVALID_USAGE)
        headers[name.strip()] = value.strip()
    return headers


def fetch_command(
    ctx: typer.Context,
    url: str = typer.Argument(help="Absolute URL, or a path resolved against the app origin."),
    method: str = typer.Option("GET", "-X", "--method", help="HTTP method."),
    navigate: bool = typer.Option(
        False, "--navigate", help="Mark the request as a full-page navigation."
    ),
    header: Optional[list[str]] = typer.Option(
        None, "-H", "--header", help="Request header 'Name: value' (repeatable)."
    ),
    data: Optional[str] = typer.Option(None, "-d", "--data", help="Request body."),
    include: bool = typer.Option(
        False, "-i", "--include", help="Print response headers to stderr."
    ),
) -> None:
    """Answer a request the way the intercepted application would see it.

    Background refreshes triggered by the request complete before the
    command exits.

    Example::

        cachegate fetch /api/content/trending
        cachegate fetch /dashboard --navigate
        cachegate fetch -X POST /api/user/my-list -d '{"id": 3}' -H 'Content-Type: application/json'
    """
    from cachegate.gateway import Gateway
    from cachegate.render import format_gateway_response

    config = resolve_ctx_config(ctx)
    headers = _parse_headers(header)
    if url.startswith("/"):
        url = config.app.resolve(url)

    try:
        request = Request(
            method=method,
            url=url,
            headers=headers,
            body=data.encode() if data is not None else b"",
            mode="navigate" if navigate else "cors",
        )
    except ValueError as exc:
        error(f"Invalid request: {exc}")
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None

    async def _fetch() -> Response:
        async with Gateway(config) as gateway:
            return await gateway.handle(request)

    response = run_async(_fetch())
    format_gateway_response(response, include_headers=include)
