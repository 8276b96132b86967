"""Cache key derivation.

A key addresses one stored entry. The method is deliberately not part of
the default key: a ``POST``/``PUT``/``DELETE`` to a URL must resolve to the
same key as the ``GET`` it invalidates.
"""

from __future__ import annotations

import httpx

from respcache.cache.options import CacheOptions


def default_key(request: httpx.Request) -> str:
    """Derive a key from the request URL with query parameters sorted.

    Parameter order does not matter, repeated parameters keep their
    relative order::

        >>> default_key(httpx.Request("GET", "https://api.example.com/u?b=2&a=1"))
        'https://api.example.com/u?a=1&b=2'
    """
    url = request.url
    if not url.query:
        return str(url)
    params = httpx.QueryParams(sorted(url.params.multi_items(), key=lambda item: item[0]))
    return str(url.copy_with(query=str(params).encode("ascii")))


def resolve_key(options: CacheOptions, request: httpx.Request) -> str:
    """Return the cache key for *request* under *options*.

    An explicit string ``key`` is reused verbatim; a callable ``key`` is
    invoked with the request; otherwise :func:`default_key` applies.
    """
    if isinstance(options.key, str):
        return options.key
    if options.key is not None:
        return options.key(request)
    return default_key(request)
