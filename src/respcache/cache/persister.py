"""Response persister: store successful transport responses.

This is the only writer of entries on the request path. It buffers the
body, snapshots the response into a :class:`~respcache.models.CacheEntry`
and writes it under the context's key. Stored responses come back rebuilt
from the snapshot, so a hit and a miss look the same to the caller.
Excluded requests skip all of this and keep the transport's response.
"""

from __future__ import annotations

import time
from typing import Optional

import httpx

from respcache.cache.context import ResolvedContext
from respcache.models import CachedResponse, CacheEntry


def compute_expires(max_age: Optional[float], now: Optional[float] = None) -> float:
    """Return the expiry timestamp for an entry written at *now*.

    ``None`` means the entry never expires and maps to ``0``.
    """
    if max_age is None:
        return 0
    if now is None:
        now = time.time()
    return now + max_age


async def persist(
    context: ResolvedContext,
    request: httpx.Request,
    response: httpx.Response,
) -> httpx.Response:
    """Store *response* (unless excluded) and return the caller's copy.

    An excluded request gets the transport's own response back, buffered
    and annotated with provenance but otherwise untouched.

    Args:
        context: Resolved context with key, options and exclusion flag.
        request: The request that produced *response*.
        response: A successful response from the transport.

    Returns:
        A response with ``extensions["from_cache"] = False``.

    Raises:
        Exception: Whatever the store raised when the write failed.
    """
    await response.aread()
    if context.excluded:
        response.request = request
        _annotate(response, context)
        return response

    data = CachedResponse.from_response(response)
    entry = CacheEntry(expires=compute_expires(context.options.max_age), data=data)
    if context.options.limit:
        await enforce_limit(context)
    await write(context, entry)

    extensions = dict(response.extensions)
    extensions.pop("network_stream", None)
    result = data.to_response(request, **extensions)
    _annotate(result, context)
    return result


def _annotate(response: httpx.Response, context: ResolvedContext) -> None:
    response.extensions.update(
        from_cache=False,
        stale=False,
        expired=False,
        cache_key=context.key,
    )


async def write(context: ResolvedContext, entry: CacheEntry) -> None:
    """Write *entry* under the context key.

    On failure the whole store is cleared when ``clear_on_error`` is set,
    so a half-written store never serves inconsistent data; the write
    error is then re-raised.
    """
    try:
        await context.store.set_item(context.key, entry.model_dump())
    except Exception as exc:
        context.debug("could not store response", context.key, exc)
        if context.options.clear_on_error:
            try:
                await context.store.clear()
            except Exception as clear_exc:
                context.debug("could not clear store", clear_exc)
        raise


async def enforce_limit(context: ResolvedContext) -> None:
    """Evict the earliest-expiring entry when the store has reached ``limit``.

    Entries that never expire are evicted last.
    """
    limit = context.options.limit
    assert limit is not None
    store = context.store

    size = await store.length()
    if size < limit:
        return
    context.debug("store size", size, "reached limit", limit)

    victim: Optional[str] = None
    earliest = float("inf")
    async for key, value in store.items():
        expires = value.get("expires", 0) if isinstance(value, dict) else 0
        rank = expires if expires else float("inf")
        if victim is None or rank < earliest:
            victim, earliest = key, rank

    if victim is not None:
        context.debug("evicting", victim)
        await store.remove_item(victim)
