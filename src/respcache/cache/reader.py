"""Cache reader: fetch and validate a stored entry.

:func:`read` is the single place that decides whether an entry is usable.
The stale rescue re-runs it with ``accept_stale`` forced on rather than
using a separate code path, so expiry bookkeeping stays here.
"""

from __future__ import annotations

import httpx
from pydantic import ValidationError

from respcache.cache.context import ResolvedContext
from respcache.exceptions import CacheMissError, CacheStaleError
from respcache.models import CacheEntry


async def read(context: ResolvedContext, request: httpx.Request) -> httpx.Response:
    """Return the cached response for *context.key*.

    Args:
        context: Resolved context carrying the key and staleness policy.
        request: The request the cached response is bound to.

    Returns:
        A response with ``extensions["from_cache"] = True``. Its
        ``extensions["expired"]`` is ``True`` when the entry was past its
        expiry and returned only because stale data was accepted.

    Raises:
        CacheMissError: Nothing usable is stored, or ``ignore_cache`` is
            set and stale data is not accepted (the rescue still reads).
        CacheStaleError: The entry has expired and stale data is not
            accepted.
    """
    raw = await context.store.get_item(context.key)

    ignored = context.options.ignore_cache and not context.accept_stale
    if ignored or raw is None:
        context.debug("cache-miss", request.url)
        raise CacheMissError(context.key)

    try:
        entry = CacheEntry.model_validate(raw)
    except ValidationError:
        context.debug("cache-miss (unreadable entry)", request.url)
        raise CacheMissError(context.key) from None

    expired = entry.is_expired()
    if expired and not context.accept_stale:
        context.debug("cache-stale", request.url)
        raise CacheStaleError(context.key)

    context.debug("cache-hit-stale" if context.accept_stale else "cache-hit", request.url)
    return entry.data.to_response(
        request,
        from_cache=True,
        stale=False,
        expired=expired,
        cache_key=context.key,
    )
