"""Queue commands -- inspect and manage pending writes.

Provides the ``cachegate queue`` sub-command group. ``add`` is mainly for
scripting and testing; applications enqueue through
:meth:`~cachegate.gateway.Gateway.enqueue`.
"""

from __future__ import annotations

import json
from typing import Any, Optional

import typer

from cachegate.commands import ctx_option, resolve_ctx_config, run_async
from cachegate.exit_codes import EXIT_INVALID_USAGE
from cachegate.models import MutationKind, PendingWriteRecord
from cachegate.output import error, info, print_table, success

queue_app = typer.Typer(no_args_is_help=True)


def _parse_kind(value: str) -> MutationKind:
    try:
        return MutationKind(value)
    except ValueError:
        known = ", ".join(k.value for k in MutationKind)
        error(f"Unknown mutation kind '{value}'. Expected one of: {known}")
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None


@queue_app.command("add")
def queue_add(
    ctx: typer.Context,
    kind: str = typer.Argument(help="Mutation kind: watch-history or list-change."),
    payload: str = typer.Argument(help="JSON payload of the mutation."),
) -> None:
    """Append a pending write.

    Example::

        cachegate queue add watch-history '{"content_id": 42, "position": 1310}'
    """
    from cachegate.gateway import Gateway

    mutation_kind = _parse_kind(kind)
    try:
        value = json.loads(payload)
    except json.JSONDecodeError as exc:
        error(f"Payload is not valid JSON: {exc}")
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None

    config = resolve_ctx_config(ctx)

    async def _add() -> PendingWriteRecord:
        async with Gateway(config) as gateway:
            return await gateway.enqueue(mutation_kind, value)

    record = run_async(_add())
    success(f"Queued {mutation_kind.value} write {record.id}")


@queue_app.command("list")
def queue_list(
    ctx: typer.Context,
    kind: Optional[str] = typer.Argument(None, help="Only list this mutation kind."),
) -> None:
    """List pending writes, oldest first."""
    from cachegate.gateway import Gateway

    kinds = [_parse_kind(kind)] if kind is not None else list(MutationKind)
    config = resolve_ctx_config(ctx)

    async def _list() -> list[PendingWriteRecord]:
        records: list[PendingWriteRecord] = []
        async with Gateway(config) as gateway:
            for k in kinds:
                records.extend(await gateway.queue.drain(k))
        return records

    records = run_async(_list())
    if not records:
        info("No pending writes.")
        return
    print_table(
        ["ID", "Kind", "Enqueued", "Payload"],
        [
            [r.id, r.kind.value, r.enqueued_at.isoformat(), _short(r.payload)]
            for r in records
        ],
        title="Pending writes",
    )


@queue_app.command("clear")
def queue_clear(
    ctx: typer.Context,
    kind: str = typer.Argument(help="Mutation kind to discard."),
) -> None:
    """Discard every pending write of a kind without syncing it.

    Asks for confirmation unless ``--force`` is active.
    """
    from cachegate.gateway import Gateway

    mutation_kind = _parse_kind(kind)
    if not ctx_option(ctx, "force", False):
        if not typer.confirm(f"Discard all pending {mutation_kind.value} writes?"):
            info("Cancelled.")
            raise typer.Exit()

    config = resolve_ctx_config(ctx)

    async def _clear() -> int:
        async with Gateway(config) as gateway:
            return await gateway.queue.clear(mutation_kind)

    removed = run_async(_clear())
    success(f"Discarded {removed} pending {mutation_kind.value} writes.")


def _short(payload: Any, limit: int = 60) -> str:
    text = json.dumps(payload, ensure_ascii=False)
    return text if len(text) <= limit else text[: limit - 1] + "…"
