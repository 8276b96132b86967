"""Where the command line keeps its files and how its settings are resolved.

Directories follow the XDG base directory layout on Linux and the BSDs
and live under ``~/.respcache/`` elsewhere. Settings are one
:class:`~respcache.models.GlobalConfig`, assembled from five layers, the
later ones winning::

    defaults < <config_dir>/config.json < ./respcache.json
             < RESPCACHE_* environment < command-line flags

:func:`build_store` and :func:`cache_options` turn the result into the
arguments of :func:`~respcache.adapter.setup_cache`. Library users skip
all of this and call ``setup_cache`` directly.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Callable, Optional

from respcache.cache.disk import DiskStore
from respcache.cache.options import ExcludeOptions
from respcache.cache.store import CacheStore, MemoryStore
from respcache.exceptions import ConfigError
from respcache.models import GlobalConfig

_APP_NAME = "respcache"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "respcache.json"

# kind -> (XDG variable, default under $HOME, subdirectory of ~/.respcache)
_DIRECTORIES = {
    "config": ("XDG_CONFIG_HOME", ".config", ""),
    "cache": ("XDG_CACHE_HOME", ".cache", "cache"),
    "data": ("XDG_DATA_HOME", ".local/share", "data"),
}


def _is_xdg_platform() -> bool:
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _app_dir(kind: str) -> Path:
    env_var, home_default, fallback = _DIRECTORIES[kind]
    if _is_xdg_platform():
        root = os.environ.get(env_var) or Path.home() / home_default
        path = Path(root) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}" / fallback
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """Directory of ``config.json`` (``~/.config/respcache`` by default)."""
    return _app_dir("config")


def get_cache_dir() -> Path:
    """Parent of the default disk store (``~/.cache/respcache`` by default)."""
    return _app_dir("cache")


def get_data_dir() -> Path:
    """Directory for crash reports (``~/.local/share/respcache`` by default)."""
    return _app_dir("data")


def _atomic_write(path: Path, data: str) -> None:
    """Replace *path* with *data* so readers never see a partial file.

    The content goes to a temporary sibling that is fsynced and renamed
    over *path*; the sibling is removed if anything fails.
    """
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


def _read_json(path: Path, label: str) -> Optional[dict[str, Any]]:
    """Return the JSON object stored at *path*, or ``None`` when it is absent."""
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except ValueError as exc:
        raise ConfigError(f"Invalid {label} at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid {label} at {path}: expected a JSON object")
    return data


def _global_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Read ``config.json``; a missing file yields the defaults.

    Raises:
        ConfigError: If the file is not valid JSON or fails validation.
    """
    path = _global_config_path()
    data = _read_json(path, "global config")
    if data is None:
        return GlobalConfig()
    try:
        return GlobalConfig.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    body = json.dumps(config.model_dump(mode="json"), indent=2) + "\n"
    _atomic_write(_global_config_path(), body)


def load_project_config() -> Optional[dict[str, Any]]:
    """Read ``./respcache.json``, a partial config such as ``{"cache": {"max_age": 60}}``."""
    return _read_json(Path.cwd() / _PROJECT_CONFIG_FILENAME, "project config")


def _merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overlay.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            value = _merge(merged[key], value)
        merged[key] = value
    return merged


def _set_path(data: dict[str, Any], dotted: str, value: Any) -> None:
    section, field = dotted.split(".")
    data.setdefault(section, {})[field] = value


def _parse_max_age(raw: str) -> Optional[float]:
    if raw.lower() == "never":
        return None
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"RESPCACHE_MAX_AGE must be a number or 'never': {raw}") from exc


def _parse_flag(raw: str) -> bool:
    return raw.lower() in ("1", "true", "yes", "on")


_ENVIRONMENT: dict[str, tuple[str, Callable[[str], Any]]] = {
    "RESPCACHE_MAX_AGE": ("cache.max_age", _parse_max_age),
    "RESPCACHE_READ_ON_ERROR": ("cache.read_on_error", _parse_flag),
    "RESPCACHE_STORE_DIR": ("store.directory", str),
    "RESPCACHE_BASE_URL": ("request.base_url", str),
}


def _env_overrides() -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for name, (dotted, parse) in _ENVIRONMENT.items():
        raw = os.environ.get(name)
        if raw:
            _set_path(overrides, dotted, parse(raw))
    return overrides


def resolve_config(
    cli_max_age: Optional[float] = None,
    cli_read_on_error: Optional[bool] = None,
    cli_store_dir: Optional[str] = None,
    cli_base_url: Optional[str] = None,
    cli_format: Optional[str] = None,
) -> GlobalConfig:
    """Merge every configuration layer into the effective settings.

    ``None`` flags are not set on the command line and leave lower layers
    alone.

    Raises:
        ConfigError: If any layer is invalid.
    """
    data = load_global_config().model_dump(mode="json")
    data = _merge(data, load_project_config() or {})
    data = _merge(data, _env_overrides())

    flags: dict[str, Any] = {}
    for dotted, value in (
        ("cache.max_age", cli_max_age),
        ("cache.read_on_error", cli_read_on_error),
        ("store.directory", cli_store_dir),
        ("request.base_url", cli_base_url),
        ("output.format", cli_format),
    ):
        if value is not None:
            _set_path(flags, dotted, value)
    data = _merge(data, flags)

    try:
        return GlobalConfig.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def build_store(config: GlobalConfig) -> CacheStore:
    """Create the store selected by ``config.store``.

    Raises:
        ConfigError: For an unknown backend name.
    """
    backend = config.store.backend.lower()
    if backend == "memory":
        return MemoryStore()
    if backend == "disk":
        directory = config.store.directory or get_cache_dir()
        return DiskStore(Path(directory).expanduser())
    raise ConfigError(f"Unknown store backend: {config.store.backend}")


def cache_options(config: GlobalConfig) -> dict[str, Any]:
    """Translate ``config.cache`` into :func:`~respcache.adapter.setup_cache` keywords.

    The store is not included; combine with :func:`build_store`.
    """
    settings = config.cache
    return {
        "max_age": settings.max_age,
        "limit": settings.limit,
        "read_on_error": settings.read_on_error,
        "clear_on_stale": settings.clear_on_stale,
        "clear_on_error": settings.clear_on_error,
        "exclude": ExcludeOptions(
            paths=list(settings.exclude_paths),
            query=settings.exclude_query,
        ),
    }
