"""The cache adapter: full request lifecycle with stale-on-error rescue.

:class:`CacheAdapter` is a coroutine function from :class:`httpx.Request`
to :class:`httpx.Response` with the same contract as the transport it
wraps. For every call it:

1. merges ``request.extensions["cache"]`` over the instance options and
   resolves the cache key once;
2. asks :func:`~respcache.cache.lookup.lookup` whether the request is
   excluded, invalidating, or answered from cache;
3. on a miss, calls the transport and persists a successful response;
4. on a transport failure, consults ``read_on_error`` and re-reads the
   store with stale entries accepted. A rescued response carries
   ``extensions["stale"] = True``; with nothing to rescue with, the
   original error is re-raised as the same object.

There is no request coalescing: concurrent misses for one key each reach
the transport and each write the store (last write wins).

:func:`setup_cache` wires an adapter, its transport and its store
together.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import httpx

from respcache.cache.context import ResolvedContext
from respcache.cache.lookup import lookup
from respcache.cache.options import CacheOptions, make_options, merge_options
from respcache.cache.reader import read
from respcache.cache.store import CacheStore
from respcache.exceptions import CacheLookupError, ConfigError
from respcache.transport import CacheTransport, StatusCheck, TransportInvoker


class CacheAdapter:
    """Cache-aware replacement for a transport function.

    Args:
        options: Instance options. ``options.transport`` must be set.

    Raises:
        ConfigError: If no transport function is configured.
    """

    def __init__(self, options: CacheOptions) -> None:
        if options.transport is None:
            raise ConfigError("CacheAdapter requires a transport function")
        self._options = options

    @property
    def options(self) -> CacheOptions:
        return self._options

    @property
    def store(self) -> CacheStore:
        return self._options.store

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        options = merge_options(self._options, request.extensions.get("cache"))
        context = ResolvedContext.build(options, request)

        outcome = await lookup(context, request)
        if outcome.resolved:
            assert outcome.response is not None
            return outcome.response

        assert options.transport is not None
        try:
            fetched = await options.transport(request)
        except Exception as exc:
            if outcome.context.excluded:
                raise
            if not options.read_on_error.evaluate(exc, request):
                raise
            return await self._rescue(outcome.context, request, exc)

        return await outcome.complete(fetched)

    async def _rescue(
        self,
        context: ResolvedContext,
        request: httpx.Request,
        error: Exception,
    ) -> httpx.Response:
        """Serve the stored entry, expired or not, in place of *error*."""
        context.debug("transport failed, reading stale cache", request.url, error)
        cached: Optional[httpx.Response] = None
        try:
            cached = await read(context.accepting_stale(), request)
        except CacheLookupError:
            context.debug("no stale entry to serve", request.url)
        except Exception as store_exc:
            context.debug("stale read failed", request.url, store_exc)

        if cached is None:
            raise error

        cached.extensions["stale"] = True
        return cached


@dataclass(frozen=True)
class CacheSetup:
    """An adapter together with the transport and store it uses.

    Attributes:
        adapter: The :class:`CacheAdapter` (raises on transport failure).
        transport: Drop-in :class:`httpx.AsyncBaseTransport` for clients.
        options: The instance options.
    """

    adapter: CacheAdapter
    transport: CacheTransport
    options: CacheOptions

    @property
    def store(self) -> CacheStore:
        return self.options.store


def setup_cache(
    *,
    base_transport: Optional[httpx.AsyncBaseTransport] = None,
    validate_status: Optional[StatusCheck] = None,
    **options: Any,
) -> CacheSetup:
    """Configure a cache adapter.

    Args:
        base_transport: httpx transport doing the real network I/O. Ignored
            when a ``transport`` function is passed in *options*.
        validate_status: Status check for the default transport invoker.
        **options: :class:`~respcache.cache.options.CacheOptions` fields.

    Returns:
        A :class:`CacheSetup` with ``adapter``, ``transport`` and ``store``.

    Raises:
        ConfigError: If an option is unknown or invalid.

    Example::

        cache = setup_cache(max_age=15 * 60, read_on_error=True)
        async with httpx.AsyncClient(transport=cache.transport) as client:
            await client.get("https://api.example.com/users")
    """
    invoker: Optional[TransportInvoker] = None
    if options.get("transport") is None:
        invoker = TransportInvoker(base_transport, validate_status)
        options["transport"] = invoker

    instance_options = make_options(**options)
    adapter = CacheAdapter(instance_options)
    return CacheSetup(
        adapter=adapter,
        transport=CacheTransport(adapter, invoker),
        options=instance_options,
    )
