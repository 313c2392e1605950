"""Cache commands -- inspect, seed, activate and clear namespaces.

Provides the ``cachegate cache`` sub-command group. ``seed`` stores a local
file as the cached response for an app path, which is how the placeholder
image and the offline page get into the cache outside of a full startup
population.
"""

from __future__ import annotations

import mimetypes
from pathlib import Path
from typing import Optional

import typer

from cachegate.commands import ctx_option, resolve_ctx_config, run_async
from cachegate.exit_codes import EXIT_INVALID_USAGE
from cachegate.models import Namespace, Response
from cachegate.output import error, info, print_data, print_table, success

cache_app = typer.Typer(no_args_is_help=True)


@cache_app.command("ls")
def cache_ls(ctx: typer.Context) -> None:
    """List namespaces with their entry counts.

    Namespaces that do not belong to the configured generation are marked
    obsolete; ``cachegate cache activate`` deletes them.
    """
    from cachegate.gateway import Gateway

    config = resolve_ctx_config(ctx)

    async def _ls() -> list[list[str]]:
        rows = []
        async with Gateway(config) as gateway:
            current = gateway.engine.current_namespaces()
            for name in await gateway.store.list_namespaces():
                handle = await gateway.store.open(name)
                entries = await handle.entries()
                status = "current" if name in current else "obsolete"
                rows.append([name, str(len(entries)), status])
        return rows

    rows = run_async(_ls())
    if not rows:
        info("No cache namespaces.")
        return
    print_table(["Namespace", "Entries", "Status"], rows, title="Cache namespaces")


@cache_app.command("show")
def cache_show(
    ctx: typer.Context,
    name: str = typer.Argument(help="Namespace name."),
) -> None:
    """List the responses stored in one namespace."""
    from cachegate.gateway import Gateway

    config = resolve_ctx_config(ctx)

    async def _show() -> Optional[list[Response]]:
        async with Gateway(config) as gateway:
            if name not in await gateway.store.list_namespaces():
                return None
            handle = await gateway.store.open(name)
            return await handle.entries()

    entries = run_async(_show())
    if entries is None:
        error(f"No such namespace: {name}")
        raise typer.Exit(code=EXIT_INVALID_USAGE)
    print_table(
        ["URL", "Status", "Content-Type", "Bytes"],
        [
            [r.url or "?", str(r.status_code), r.content_type, str(len(r.body))]
            for r in sorted(entries, key=lambda r: r.url or "")
        ],
        title=name,
    )


@cache_app.command("activate")
def cache_activate(ctx: typer.Context) -> None:
    """Delete obsolete generations and print the current namespace names."""
    from cachegate.gateway import Gateway

    config = resolve_ctx_config(ctx)

    async def _activate() -> frozenset[str]:
        async with Gateway(config) as gateway:
            return await gateway.engine.activate()

    current = run_async(_activate())
    for name in sorted(current):
        print_data(name)
    success(f"Activated generation '{config.app.generation}'.")


@cache_app.command("seed")
def cache_seed(
    ctx: typer.Context,
    path: str = typer.Argument(help="App path to cache the file under, e.g. /offline.html."),
    file: Path = typer.Argument(help="Local file holding the response body.", exists=True, dir_okay=False),
    content_type: Optional[str] = typer.Option(
        None, "--content-type", help="Content type (guessed from the file name by default)."
    ),
    namespace: Namespace = typer.Option(
        Namespace.PRIMARY, "--namespace", help="Namespace to store the response in."
    ),
) -> None:
    """Store a local file as the cached 200 response for an app path.

    Example::

        cachegate cache seed /offline.html ./public/offline.html
        cachegate cache seed /placeholder.jpg ./public/placeholder.jpg
    """
    from cachegate.cache.store import cache_key
    from cachegate.gateway import Gateway

    config = resolve_ctx_config(ctx)
    url = config.app.resolve(path)
    ctype = content_type or mimetypes.guess_type(file.name)[0] or "application/octet-stream"
    response = Response(
        status_code=200,
        headers={"content-type": ctype},
        body=file.read_bytes(),
        url=url,
        reason_phrase="OK",
    )

    async def _seed() -> str:
        async with Gateway(config) as gateway:
            name = config.app.namespace_name(namespace)
            handle = await gateway.store.open(name)
            await handle.put(cache_key("GET", url), response)
            return name

    name = run_async(_seed())
    success(f"Seeded {url} ({ctype}, {len(response.body)} bytes) into {name}.")


@cache_app.command("clear")
def cache_clear(
    ctx: typer.Context,
    name: Optional[str] = typer.Argument(None, help="Namespace to delete (default: all)."),
) -> None:
    """Delete one namespace, or every namespace.

    Asks for confirmation unless ``--force`` is active.
    """
    from cachegate.gateway import Gateway

    target = name or "ALL cache namespaces"
    if not ctx_option(ctx, "force", False):
        if not typer.confirm(f"Delete {target}?"):
            info("Cancelled.")
            raise typer.Exit()

    config = resolve_ctx_config(ctx)

    async def _clear() -> list[str]:
        async with Gateway(config) as gateway:
            names = [name] if name else await gateway.store.list_namespaces()
            return [n for n in names if await gateway.store.delete_namespace(n)]

    try:
        deleted = run_async(_clear())
    except ValueError as exc:
        error(str(exc))
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None
    if name and not deleted:
        error(f"No such namespace: {name}")
        raise typer.Exit(code=EXIT_INVALID_USAGE)
    success(f"Deleted {len(deleted)} namespace(s).")
