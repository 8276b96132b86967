"""respcache -- a persistent response cache adapter for httpx.

The adapter sits where an :class:`httpx.AsyncClient` would call its
transport. GET responses are stored in a key-value store and served from
it while fresh; any other method invalidates the stored entry for its
URL; HEAD bypasses the cache. When the live request fails and
``read_on_error`` allows it, the stored entry is served even if it has
expired, marked with ``response.extensions["stale"]``.

Typical use::

    from respcache import setup

    async with setup(base_url="https://api.example.com", max_age=300,
                     read_on_error=True) as client:
        response = await client.get("/users")
        response.extensions["from_cache"]

Modules:
    adapter: :class:`CacheAdapter` and :func:`setup_cache`.
    transport: httpx transport plumbing.
    cache: pipeline stages, options and stores.
    client: :class:`AsyncClient` convenience wrapper and :func:`setup`.
    config: XDG-aware configuration for the command line.
    app: the ``respcache`` command line.
"""

__version__ = "0.1.0"

from respcache.adapter import CacheAdapter, CacheSetup, setup_cache  # noqa: E402
from respcache.cache import CacheOptions, DiskStore, MemoryStore  # noqa: E402
from respcache.client import AsyncClient, setup  # noqa: E402
from respcache.transport import CacheTransport, TransportInvoker  # noqa: E402

__all__ = [
    "AsyncClient",
    "CacheAdapter",
    "CacheOptions",
    "CacheSetup",
    "CacheTransport",
    "DiskStore",
    "MemoryStore",
    "TransportInvoker",
    "setup",
    "setup_cache",
]
