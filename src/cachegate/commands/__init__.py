"""Built-in sub-commands of the cachegate CLI.

Every command resolves the effective configuration from the root callback's
options, opens a :class:`~cachegate.gateway.Gateway` for the duration of one
:func:`asyncio.run`, and renders results through :mod:`cachegate.output`.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Optional

import typer

from cachegate.exceptions import CachegateError
from cachegate.models import GlobalConfig
from cachegate.output import error


def ctx_option(ctx: Optional[typer.Context], name: str, default: Any = None) -> Any:
    """Read a root-callback option stored in ``ctx.obj``."""
    if ctx is None:
        return default
    root = ctx.find_root()
    if not root.obj:
        return default
    return root.obj.get(name, default)


def resolve_ctx_config(ctx: Optional[typer.Context]) -> GlobalConfig:
    """Resolve the effective config, applying ``--origin``/``--generation``."""
    from cachegate.config import resolve_config

    return resolve_config(
        cli_origin=ctx_option(ctx, "origin"),
        cli_generation=ctx_option(ctx, "generation"),
    )


def run_async(awaitable: Awaitable[Any]) -> Any:
    """Run *awaitable* to completion, mapping cachegate errors to exit codes.

    Raises:
        typer.Exit: With the error's ``exit_code`` after printing it.
    """

    async def _main() -> Any:
        return await awaitable

    try:
        return asyncio.run(_main())
    except CachegateError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
