"""Bridge from synchronous Typer commands to the async cache API."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

from respcache.cache.store import CacheStore
from respcache.config import build_store, resolve_config
from respcache.models import GlobalConfig

T = TypeVar("T")


def run_with_store(
    action: Callable[[CacheStore, GlobalConfig], Awaitable[T]],
    config: GlobalConfig | None = None,
) -> T:
    """Open the configured store, run *action* on it, and close the store."""
    if config is None:
        config = resolve_config()
    store = build_store(config)

    async def _run() -> T:
        try:
            return await action(store, config)
        finally:
            await store.close()

    return asyncio.run(_run())
