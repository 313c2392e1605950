"""Where cachegate keeps its files, and how the effective config is assembled.

Three per-user directories are used:

* config -- ``config.json`` with the saved :class:`~cachegate.models.GlobalConfig`;
* cache -- one diskcache directory per response namespace;
* data -- the pending-write queues, which must survive a cache wipe.

On Linux and the BSDs they follow the XDG base directory variables; elsewhere
they live under ``~/.cachegate``.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from cachegate.exceptions import ConfigError
from cachegate.models import GlobalConfig

_APP_NAME = "cachegate"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "cachegate.json"

# kind -> (XDG variable, default under $HOME, subdirectory of ~/.cachegate)
_LAYOUT: dict[str, tuple[str, tuple[str, ...], Optional[str]]] = {
    "config": ("XDG_CONFIG_HOME", (".config",), None),
    "cache": ("XDG_CACHE_HOME", (".cache",), "cache"),
    "data": ("XDG_DATA_HOME", (".local", "share"), "data"),
}

_ENV_OVERRIDES = {
    "origin": "CACHEGATE_ORIGIN",
    "generation": "CACHEGATE_GENERATION",
}


def _is_xdg_platform() -> bool:
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _user_dir(kind: str) -> Path:
    variable, home_default, fallback_sub = _LAYOUT[kind]
    if _is_xdg_platform():
        root = os.environ.get(variable) or Path.home().joinpath(*home_default)
        path = Path(root) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
        if fallback_sub:
            path = path / fallback_sub
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """Directory holding ``config.json``."""
    return _user_dir("config")


def get_cache_dir() -> Path:
    """Directory holding the response namespaces. Safe to delete."""
    return _user_dir("cache")


def get_data_dir() -> Path:
    """Directory holding the pending-write queues and crash logs."""
    return _user_dir("data")


def _atomic_write(path: Path, data: str) -> None:
    """Replace *path* with *data* via a fsynced sibling temp file and ``os.replace``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def _read_json(path: Path, label: str) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except ValueError as exc:
        raise ConfigError(f"Invalid {label} config at {path}: {exc}") from exc


def load_global_config() -> GlobalConfig:
    """Load the saved user config, or defaults when none has been saved.

    Raises:
        ConfigError: The file is not JSON or does not validate.
    """
    path = get_config_dir() / _CONFIG_FILENAME
    if not path.is_file():
        return GlobalConfig()
    data = _read_json(path, "global")
    try:
        return GlobalConfig.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    payload = json.dumps(config.model_dump(mode="json"), indent=2) + "\n"
    _atomic_write(get_config_dir() / _CONFIG_FILENAME, payload)


def load_project_config() -> Optional[dict[str, Any]]:
    """Return the partial config in ``./cachegate.json``, or ``None`` if absent."""
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    data = _read_json(path, "project")
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project config at {path}: expected a JSON object")
    return data


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        merged[key] = _merge(current, value) if isinstance(current, dict) and isinstance(value, dict) else value
    return merged


def resolve_config(
    cli_origin: Optional[str] = None,
    cli_generation: Optional[str] = None,
) -> GlobalConfig:
    """Build the effective configuration.

    Later layers win: defaults, the saved user config, ``./cachegate.json``,
    the ``CACHEGATE_ORIGIN``/``CACHEGATE_GENERATION`` variables, and finally
    the ``--origin``/``--generation`` flags. Empty variables are ignored.

    Raises:
        ConfigError: Any layer fails to parse or validate.
    """
    config = load_global_config()

    project = load_project_config()
    if project is not None:
        try:
            config = GlobalConfig.model_validate(_merge(config.model_dump(mode="json"), project))
        except ValueError as exc:
            raise ConfigError(f"Invalid project config: {exc}") from exc

    flags = {"origin": cli_origin, "generation": cli_generation}
    for field, variable in _ENV_OVERRIDES.items():
        value = flags[field] if flags[field] is not None else os.environ.get(variable) or None
        if value is None:
            continue
        try:
            setattr(config.app, field, value)
        except ValueError as exc:
            raise ConfigError(f"Invalid {field} {value!r}: {exc}") from exc

    return config
