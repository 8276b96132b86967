"""Disk-backed store built on :mod:`diskcache`.

Entries live in a SQLite-indexed :class:`diskcache.Cache` under
``<directory>/responses`` and survive process restarts, so several
processes pointing at the same directory share one cache. Expiry is
tracked by the adapter inside each entry (``CacheEntry.expires``), not by
diskcache's own ``expire=``, because stale entries must stay readable for
the stale-on-error rescue.

Every diskcache call is a blocking SQLite operation and runs in a worker
thread through :func:`asyncio.to_thread`, keeping the event loop free.

See Also:
    :class:`~respcache.models.StoreConfig` -- selects this backend for
    the command line.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, AsyncIterator, Optional

import diskcache

from respcache.cache.store import CacheStore
from respcache.exceptions import StoreError


class DiskStore(CacheStore):
    """Persistent :class:`CacheStore` in a directory on disk.

    Args:
        directory: Root directory for the store. A ``responses/``
            subdirectory is created inside it.

    Example::

        from respcache import setup_cache
        from respcache.cache import DiskStore

        cache = setup_cache(store=DiskStore("/tmp/api-cache"), max_age=300)
    """

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)
        self._cache: Optional[diskcache.Cache] = diskcache.Cache(
            str(self._directory / "responses")
        )

    @property
    def directory(self) -> Path:
        """Directory holding the diskcache database."""
        return self._directory / "responses"

    def _handle(self) -> diskcache.Cache:
        if self._cache is None:
            raise StoreError(f"Disk store at {self.directory} is closed")
        return self._cache

    async def get_item(self, key: str) -> Optional[dict[str, Any]]:
        return await asyncio.to_thread(self._handle().get, key)

    async def set_item(self, key: str, value: dict[str, Any]) -> None:
        if not await asyncio.to_thread(self._handle().set, key, value):
            raise StoreError(f"Could not write cache entry {key!r}")

    async def remove_item(self, key: str) -> None:
        await asyncio.to_thread(self._handle().delete, key)

    async def clear(self) -> None:
        await asyncio.to_thread(self._handle().clear)

    async def length(self) -> int:
        return await asyncio.to_thread(len, self._handle())

    async def items(self) -> AsyncIterator[tuple[str, dict[str, Any]]]:
        cache = self._handle()
        keys = await asyncio.to_thread(lambda: list(cache.iterkeys()))
        for key in keys:
            value = await asyncio.to_thread(cache.get, key)
            # Another process may have evicted the key since iterkeys().
            if value is not None:
                yield key, value

    def stats(self) -> dict[str, Any]:
        """Return store statistics.

        Returns:
            A ``dict`` with ``size`` (number of entries), ``volume``
            (bytes on disk) and ``directory`` (str path).
        """
        cache = self._handle()
        return {
            "size": len(cache),
            "volume": cache.volume(),
            "directory": str(self.directory),
        }

    async def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache`. Safe to call twice."""
        if self._cache is not None:
            self._cache.close()
            self._cache = None
