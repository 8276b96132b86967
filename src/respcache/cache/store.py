"""Abstract store interface and the in-memory default store.

The cache adapter never assumes it owns the store: several adapters (or
processes, for :class:`~respcache.cache.disk.DiskStore`) may share one and
create or evict entries at any time.

To add a backend, subclass :class:`CacheStore` and implement the six
coroutines. Values are the plain dicts produced by
:meth:`CacheEntry.model_dump() <respcache.models.CacheEntry>`.
"""

from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Optional


class CacheStore(ABC):
    """Asynchronous key-value store used by the cache adapter.

    ``get_item``, ``set_item`` and ``remove_item`` are the only calls on the
    request path. ``length`` and ``items`` are used for limit eviction, and
    ``clear`` for ``clear_on_error`` and the ``cache clear`` command.
    """

    @abstractmethod
    async def get_item(self, key: str) -> Optional[dict[str, Any]]:
        """Return the value stored under *key*, or ``None``."""

    @abstractmethod
    async def set_item(self, key: str, value: dict[str, Any]) -> None:
        """Store *value* under *key*, replacing any previous value."""

    @abstractmethod
    async def remove_item(self, key: str) -> None:
        """Remove *key*. Removing a missing key is not an error."""

    @abstractmethod
    async def clear(self) -> None:
        """Remove every entry."""

    @abstractmethod
    async def length(self) -> int:
        """Return the number of stored entries."""

    @abstractmethod
    def items(self) -> AsyncIterator[tuple[str, dict[str, Any]]]:
        """Iterate over ``(key, value)`` pairs."""

    async def close(self) -> None:
        """Release resources held by the store."""


class MemoryStore(CacheStore):
    """Process-local store backed by a dict.

    Values are deep-copied on write and on read so callers can never
    mutate a stored entry in place.

    Example::

        store = MemoryStore()
        await store.set_item("https://api.example.com/users", entry.model_dump())
    """

    def __init__(self) -> None:
        self._data: dict[str, dict[str, Any]] = {}

    async def get_item(self, key: str) -> Optional[dict[str, Any]]:
        value = self._data.get(key)
        if value is None:
            return None
        return copy.deepcopy(value)

    async def set_item(self, key: str, value: dict[str, Any]) -> None:
        self._data[key] = copy.deepcopy(value)

    async def remove_item(self, key: str) -> None:
        self._data.pop(key, None)

    async def clear(self) -> None:
        self._data.clear()

    async def length(self) -> int:
        return len(self._data)

    async def items(self) -> AsyncIterator[tuple[str, dict[str, Any]]]:
        # Snapshot so callers may remove entries while iterating.
        for key, value in list(self._data.items()):
            yield key, copy.deepcopy(value)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)
