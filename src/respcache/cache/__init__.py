"""Cache pipeline stages and stores.

The stages are plain coroutines/functions composed by
:class:`~respcache.adapter.CacheAdapter`:

* :func:`~respcache.cache.exclude.is_excluded` -- bypass rules (HEAD always).
* :func:`~respcache.cache.key.resolve_key` -- one key per request.
* :func:`~respcache.cache.reader.read` -- fetch and validate an entry.
* :func:`~respcache.cache.persister.persist` -- write a fresh response.
* :func:`~respcache.cache.lookup.lookup` -- the request-side decision.

Stores: :class:`MemoryStore` (default) and :class:`DiskStore`
(:mod:`diskcache`). Custom stores subclass :class:`CacheStore`.
"""

from respcache.cache.disk import DiskStore
from respcache.cache.options import (
    CacheOptions,
    Constant,
    ExcludeOptions,
    Predicate,
    Switch,
    make_options,
    merge_options,
)
from respcache.cache.store import CacheStore, MemoryStore

__all__ = [
    "CacheOptions",
    "CacheStore",
    "Constant",
    "DiskStore",
    "ExcludeOptions",
    "MemoryStore",
    "Predicate",
    "Switch",
    "make_options",
    "merge_options",
]
