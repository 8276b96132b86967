"""HTTP client wrapper with the cache adapter pre-installed.

:class:`AsyncClient` wraps :class:`httpx.AsyncClient` with a
:class:`~respcache.transport.CacheTransport` and exposes the cache store;
:func:`setup` builds one from client and cache options in a single call.
:mod:`respcache.client.response` renders responses for the command line.

Example::

    from respcache.client import setup

    async with setup(base_url="https://api.example.com", max_age=60) as client:
        resp = await client.get("/users")
"""

from respcache.client.async_client import AsyncClient, setup

__all__ = ["AsyncClient", "setup"]
