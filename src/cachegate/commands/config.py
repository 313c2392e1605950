"""``cachegate config``: show, change and reset the saved settings."""

from __future__ import annotations

from typing import Any

import typer
from pydantic import ValidationError

from cachegate.commands import ctx_option, resolve_ctx_config
from cachegate.config import get_config_dir, load_global_config, save_global_config
from cachegate.exit_codes import EXIT_INVALID_USAGE
from cachegate.models import GlobalConfig
from cachegate.output import error, format_response, info, success

config_app = typer.Typer(no_args_is_help=True)

_TRUTHY = {"true", "1", "yes", "on"}


def _usage_error(message: str) -> typer.Exit:
    error(message)
    return typer.Exit(code=EXIT_INVALID_USAGE)


def _locate(data: dict[str, Any], key: str) -> tuple[dict[str, Any], str]:
    """Return the section holding the last segment of dotted *key*."""
    *sections, field = key.split(".")
    section = data
    for name in sections:
        section = section.get(name)
        if not isinstance(section, dict):
            raise _usage_error(f"Invalid config key: {key}")
    if field not in section:
        raise _usage_error(f"Unknown config key: {key}")
    return section, field


def _coerce(current: Any, raw: str) -> Any:
    """Convert *raw* to the type of the value it replaces."""
    if isinstance(current, bool):
        return raw.lower() in _TRUTHY
    if isinstance(current, list):
        return [part.strip() for part in raw.split(",") if part.strip()]
    if isinstance(current, (int, float)):
        return type(current)(raw)
    return raw


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Print the effective configuration.

    Project overrides, ``CACHEGATE_*`` variables and the root flags are
    already applied.
    """
    config = resolve_ctx_config(ctx)
    info(f"Config directory: {get_config_dir()}")
    format_response(config.model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Dotted key, e.g. 'app.generation'."),
    value: str = typer.Argument(help="New value. Lists are comma-separated."),
) -> None:
    """Change one value in the saved user config.

    Example::

        cachegate config set app.origin https://app.example.com
        cachegate config set routing.api_prefixes /api/,/graphql
    """
    data = load_global_config().model_dump(mode="json")
    section, field = _locate(data, key)

    try:
        section[field] = _coerce(section[field], value)
    except ValueError:
        raise _usage_error(f"Expected {type(section[field]).__name__} for {key}, got: {value}") from None

    try:
        updated = GlobalConfig.model_validate(data)
    except ValidationError as exc:
        raise _usage_error(f"Validation error: {exc}") from None

    save_global_config(updated)
    success(f"Set {key} = {section[field]}")


@config_app.command("reset")
def config_reset(ctx: typer.Context) -> None:
    """Restore the default settings."""
    if not ctx_option(ctx, "force", False) and not typer.confirm("Reset all config to defaults?"):
        info("Cancelled.")
        raise typer.Exit()

    save_global_config(GlobalConfig())
    success("Configuration reset to defaults.")
