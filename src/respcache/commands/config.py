"""``respcache config``: show, set and reset the global settings file.

Keys are ``section.field`` pairs of :class:`~respcache.models.GlobalConfig`
(``cache.max_age``, ``store.backend``, ...). Values are passed to the
model as strings and converted by its validation, so ``config set``
accepts exactly what ``config.json`` accepts.
"""

from __future__ import annotations

from typing import Any

import typer

from respcache.exit_codes import EXIT_INVALID_USAGE
from respcache.output import error, info, print_body, success

config_app = typer.Typer(no_args_is_help=True)

_CLEARING_WORDS = ("null", "none", "never")


def _fail(message: str) -> typer.Exit:
    error(message)
    return typer.Exit(code=EXIT_INVALID_USAGE)


def _parse_value(current: Any, raw: str) -> Any:
    """Turn *raw* into JSON-level input for the field currently holding *current*."""
    if raw.lower() in _CLEARING_WORDS:
        return None
    if isinstance(current, list):
        return [item.strip() for item in raw.split(",") if item.strip()]
    return raw


@config_app.command("show")
def config_show() -> None:
    """Print the global settings (the directory goes to stderr)."""
    from respcache.config import get_config_dir, load_global_config

    info(f"Config directory: {get_config_dir()}")
    print_body(load_global_config().model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Setting as section.field, e.g. cache.max_age."),
    value: str = typer.Argument(help="New value; 'never' or 'null' clears optional settings."),
) -> None:
    """Change one setting and save it.

    Example::

        respcache config set cache.max_age 900
        respcache config set cache.max_age never
        respcache config set cache.exclude_paths '^/auth,^/admin'
        respcache config set store.backend memory
    """
    from pydantic import ValidationError

    from respcache.config import load_global_config, save_global_config
    from respcache.models import GlobalConfig

    section, _, field = key.partition(".")
    data = load_global_config().model_dump(mode="json")
    settings = data.get(section)
    if not isinstance(settings, dict) or not field or "." in field:
        raise _fail(f"Invalid config key: {key}")
    if field not in settings:
        raise _fail(f"Unknown config key: {key}")

    settings[field] = _parse_value(settings[field], value)
    try:
        updated = GlobalConfig.model_validate(data)
    except ValidationError as exc:
        messages = "; ".join(err["msg"] for err in exc.errors())
        raise _fail(f"Invalid value for {key}: {messages}") from None

    save_global_config(updated)
    success(f"Set {key} = {getattr(getattr(updated, section), field)}")


@config_app.command("reset")
def config_reset(ctx: typer.Context) -> None:
    """Restore every setting to its default (asks first unless ``--force``)."""
    from respcache.config import save_global_config
    from respcache.models import GlobalConfig

    force = bool(ctx.obj and ctx.obj.get("force"))
    if not force and not typer.confirm("Reset all settings to defaults?"):
        info("Cancelled.")
        raise typer.Exit()

    save_global_config(GlobalConfig())
    success("Configuration reset to defaults.")
