"""Sync command -- deliver a connectivity-restored trigger.

Hosts that learn about reconnects outside of cachegate (a network manager
hook, a cron job) call ``cachegate sync <tag>`` to commit the pending
writes of that kind.
"""

from __future__ import annotations

from typing import Optional

import typer

from cachegate.commands import resolve_ctx_config, run_async
from cachegate.exit_codes import EXIT_COMMIT_REJECTED, EXIT_INVALID_USAGE
from cachegate.models import SyncTag
from cachegate.output import error, print_table, success, warning
from cachegate.sync import SyncOutcome, SyncState


def sync_command(
    ctx: typer.Context,
    tag: Optional[str] = typer.Argument(
        None, help="Trigger tag: sync-watch-history or sync-my-list."
    ),
    all_tags: bool = typer.Option(False, "--all", help="Trigger every known tag."),
) -> None:
    """Commit queued writes for a trigger tag.

    Exits with code 5 when a batch was retained, so that wrappers can
    schedule another attempt.

    Example::

        cachegate sync sync-watch-history
        cachegate sync --all
    """
    from cachegate.gateway import Gateway

    known = [t.value for t in SyncTag]
    if not all_tags:
        if tag is None:
            error(f"Missing trigger tag. Expected one of: {', '.join(known)}")
            raise typer.Exit(code=EXIT_INVALID_USAGE)
        if tag not in known:
            error(f"Unknown trigger tag '{tag}'. Expected one of: {', '.join(known)}")
            raise typer.Exit(code=EXIT_INVALID_USAGE)

    config = resolve_ctx_config(ctx)

    async def _sync() -> list[SyncOutcome]:
        async with Gateway(config) as gateway:
            if all_tags:
                return await gateway.coordinator.dispatch_all()
            outcome = await gateway.coordinator.dispatch(tag)
            return [outcome] if outcome is not None else []

    outcomes = run_async(_sync())

    print_table(
        ["Tag", "Kind", "Result", "Records"],
        [[o.tag.value, o.kind.value, o.state.value, str(o.count)] for o in outcomes],
        title="Sync",
    )

    retained = [o for o in outcomes if o.state is SyncState.RETAINED]
    for outcome in retained:
        warning(f"{outcome.kind.value}: {outcome.count} records retained ({outcome.error})")
    if retained:
        raise typer.Exit(code=EXIT_COMMIT_REJECTED)
    success("Sync complete.")
