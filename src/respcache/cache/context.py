"""Per-request resolved context.

A :class:`ResolvedContext` is built once per adapter call from the merged
options and the request. It carries the cache key, computed exactly once,
through every stage. Stages that need a variation (exclusion, forced
stale reads) derive a new context instead of mutating this one.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any

import httpx

from respcache.cache.key import resolve_key
from respcache.cache.options import CacheOptions
from respcache.cache.store import CacheStore


@dataclass(frozen=True)
class ResolvedContext:
    """Effective configuration for one request.

    Attributes:
        options: Instance options merged with the request's overrides.
        key: The cache key for this request.
        excluded: The request must neither read nor write the store.
        accept_stale: Expired entries are returned instead of rejected.
    """

    options: CacheOptions
    key: str
    excluded: bool = False
    accept_stale: bool = False

    @classmethod
    def build(cls, options: CacheOptions, request: httpx.Request) -> ResolvedContext:
        """Resolve the key for *request* and capture *options*."""
        return cls(
            options=options,
            key=resolve_key(options, request),
            accept_stale=options.accept_stale,
        )

    @property
    def store(self) -> CacheStore:
        return self.options.store

    def debug(self, *args: Any) -> None:
        self.options.debug(*args)

    def exclude_from_cache(self) -> ResolvedContext:
        return dataclasses.replace(self, excluded=True)

    def accepting_stale(self) -> ResolvedContext:
        return dataclasses.replace(self, accept_stale=True)
