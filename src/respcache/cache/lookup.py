"""Request-side cache decision.

:func:`lookup` turns a resolved context into an :class:`Outcome`: either
the answer is already known (a cache hit), or the request has to go to the
transport and :meth:`Outcome.complete` will persist what comes back.
Exclusion and invalidation are decided here, before any network I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import httpx

from respcache.cache.context import ResolvedContext
from respcache.cache.exclude import is_excluded
from respcache.cache.persister import persist
from respcache.cache.reader import read
from respcache.exceptions import CacheLookupError, CacheStaleError


@dataclass(frozen=True)
class Outcome:
    """Result of the request-side decision.

    Attributes:
        context: Context to use for the rest of the request (possibly
            marked excluded).
        request: The request being served.
        response: The cached response on a hit, ``None`` otherwise.
    """

    context: ResolvedContext
    request: httpx.Request
    response: Optional[httpx.Response] = None

    @property
    def resolved(self) -> bool:
        return self.response is not None

    async def complete(self, fetched: httpx.Response) -> httpx.Response:
        """Persist a transport response and return the caller's copy."""
        return await persist(self.context, self.request, fetched)


async def lookup(context: ResolvedContext, request: httpx.Request) -> Outcome:
    """Decide how *request* interacts with the cache.

    * Excluded (including every HEAD) -- no store access at all.
    * Any method other than GET -- the entry under the key is removed,
      then the request continues as excluded.
    * GET -- the entry is read; a miss or stale entry sends the request
      to the transport, removing the stale entry first when
      ``clear_on_stale`` is set.
    """
    context.debug("key", context.key)

    if is_excluded(context.options, request):
        context.debug("excluded", request.method, request.url)
        return Outcome(context.exclude_from_cache(), request)

    if request.method.lower() != "get":
        await remove_quietly(context, "invalidate")
        return Outcome(context.exclude_from_cache(), request)

    try:
        cached = await read(context, request)
    except CacheLookupError as exc:
        if isinstance(exc, CacheStaleError) and context.options.clear_on_stale:
            await remove_quietly(context, "clear-on-stale")
        return Outcome(context, request)

    return Outcome(context, request, cached)


async def remove_quietly(context: ResolvedContext, reason: str) -> None:
    """Remove the context's entry; a store failure is logged, never raised."""
    context.debug(reason, context.key)
    try:
        await context.store.remove_item(context.key)
    except Exception as exc:
        context.debug(f"{reason} failed", context.key, exc)
