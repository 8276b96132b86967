"""Exclusion policy: which requests bypass the cache entirely."""

from __future__ import annotations

import re

import httpx

from respcache.cache.options import CacheOptions


def is_excluded(options: CacheOptions, request: httpx.Request) -> bool:
    """Return ``True`` when *request* must not read or write the cache.

    HEAD is never cacheable. Beyond that a request is excluded when the
    custom ``filter`` returns a truthy value, its path matches one of the
    ``paths`` patterns, ``query`` is set and the URL has query parameters,
    or its method is listed in ``methods``.
    """
    method = request.method.lower()
    if method == "head":
        return True

    rules = options.exclude
    if rules.filter is not None and rules.filter(request):
        return True

    path = request.url.path
    if any(re.search(pattern, path) for pattern in rules.paths):
        return True

    if rules.query and request.url.query:
        return True

    return method in {m.lower() for m in rules.methods}
