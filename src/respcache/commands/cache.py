"""Cache commands -- inspect and maintain the configured store.

Provides the ``respcache cache`` sub-command group: ``stats``, ``list``,
``remove`` and ``clear``. All commands operate on the store selected by
the effective configuration (the XDG cache directory by default).
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any, Optional

import httpx
import typer
from pydantic import ValidationError

from respcache.cache.disk import DiskStore
from respcache.cache.key import default_key
from respcache.cache.store import CacheStore
from respcache.commands._async import run_with_store
from respcache.models import CacheEntry, GlobalConfig
from respcache.output import info, print_body, print_table, success


cache_app = typer.Typer(no_args_is_help=True)


def _describe_expiry(entry: CacheEntry, now: float) -> tuple[str, str]:
    """Return ``(expires, state)`` display strings for an entry."""
    if entry.expires == 0:
        return "never", "fresh"
    expires = datetime.fromtimestamp(entry.expires, tz=timezone.utc).isoformat(timespec="seconds")
    return expires, "stale" if entry.is_expired(now) else "fresh"


@cache_app.command("stats")
def cache_stats() -> None:
    """Show store statistics.

    Example::

        respcache cache stats
        respcache --json cache stats
    """

    async def _stats(store: CacheStore, config: GlobalConfig) -> dict[str, Any]:
        if isinstance(store, DiskStore):
            stats = store.stats()
        else:
            stats = {"size": await store.length()}
        stats["backend"] = config.store.backend
        stats["max_age"] = config.cache.max_age
        stats["limit"] = config.cache.limit
        return stats

    print_body(run_with_store(_stats))


@cache_app.command("list")
def cache_list() -> None:
    """List stored entries with their status code, expiry and freshness."""

    async def _rows(store: CacheStore, config: GlobalConfig) -> list[list[str]]:
        now = time.time()
        rows: list[list[str]] = []
        async for key, value in store.items():
            try:
                entry = CacheEntry.model_validate(value)
            except ValidationError:
                rows.append([key, "?", "?", "unreadable"])
                continue
            expires, state = _describe_expiry(entry, now)
            rows.append([key, str(entry.data.status_code), expires, state])
        return sorted(rows)

    rows = run_with_store(_rows)
    if not rows:
        info("Cache is empty.")
        return
    print_table(["key", "status", "expires", "state"], rows, title="Cached responses")


@cache_app.command("remove")
def cache_remove(
    url: str = typer.Argument(help="URL whose entry should be removed."),
    key: Optional[str] = typer.Option(
        None, "--key", help="Remove this exact key instead of deriving it from URL."
    ),
) -> None:
    """Remove the entry stored for URL.

    The key is derived the same way the adapter derives it, so query
    parameter order does not matter.

    Example::

        respcache cache remove "https://api.example.com/users?page=2"
    """
    target = key or default_key(httpx.Request("GET", url))

    async def _remove(store: CacheStore, config: GlobalConfig) -> None:
        await store.remove_item(target)

    run_with_store(_remove)
    success(f"Removed {target}")


@cache_app.command("clear")
def cache_clear(ctx: typer.Context) -> None:
    """Remove every stored entry. Asks for confirmation unless ``--force``."""
    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force:
        confirmed = typer.confirm("Remove all cached responses?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    async def _clear(store: CacheStore, config: GlobalConfig) -> None:
        await store.clear()

    run_with_store(_clear)
    success("Cache cleared.")
