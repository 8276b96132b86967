"""Asynchronous HTTP client with response caching.

:class:`AsyncClient` wraps :class:`httpx.AsyncClient` and installs a
:class:`~respcache.transport.CacheTransport` built by
:func:`~respcache.adapter.setup_cache`. Responses come back as plain
:class:`httpx.Response` objects with cache provenance in
``response.extensions`` (``from_cache``, ``stale``, ``expired``,
``cache_key``).

Closing the client closes its network transport but not the store, which
may be shared with other clients.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

import httpx

from respcache.adapter import CacheSetup, setup_cache
from respcache.cache.store import CacheStore
from respcache.transport import StatusCheck


class AsyncClient:
    """Cached HTTP client for API calls. Must be used as an async context manager.

    Args:
        base_url: Prefix for relative request paths.
        timeout: Request timeout in seconds.
        verify: Verify SSL certificates (default transport only).
        headers: Headers sent with every request.
        base_transport: httpx transport doing the real I/O. Defaults to
            :class:`httpx.AsyncHTTPTransport`.
        validate_status: Status check deciding which responses count as
            transport failures.
        **cache_options: :class:`~respcache.cache.options.CacheOptions`
            fields (``max_age``, ``store``, ``read_on_error``, ...).

    Example::

        async with AsyncClient("https://api.example.com", max_age=300) as client:
            response = await client.get("/users", params={"page": 2})
    """

    def __init__(
        self,
        base_url: str = "",
        timeout: float = 30,
        verify: bool = True,
        headers: Optional[Mapping[str, str]] = None,
        base_transport: Optional[httpx.AsyncBaseTransport] = None,
        validate_status: Optional[StatusCheck] = None,
        **cache_options: Any,
    ) -> None:
        self._base_url = base_url
        self._timeout = timeout
        self._headers = dict(headers or {})
        if base_transport is None and cache_options.get("transport") is None:
            base_transport = httpx.AsyncHTTPTransport(verify=verify)
        self._cache = setup_cache(
            base_transport=base_transport,
            validate_status=validate_status,
            **cache_options,
        )
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def cache(self) -> CacheSetup:
        return self._cache

    @property
    def store(self) -> CacheStore:
        return self._cache.store

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> AsyncClient:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            headers=self._headers,
            transport=self._cache.transport,
            follow_redirects=True,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------ #
    # Public request methods
    # ------------------------------------------------------------------ #

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        json_body: Optional[Any] = None,
        body: Optional[str] = None,
        data: Optional[dict[str, Any]] = None,
        cache: Optional[Mapping[str, Any]] = None,
    ) -> httpx.Response:
        """Send a request through the cache.

        Args:
            method: HTTP method. GET reads the cache, HEAD bypasses it,
                anything else invalidates the entry for *path*.
            path: URL path appended to ``base_url`` (or an absolute URL).
            params: Query parameters.
            headers: Extra request headers.
            json_body: JSON-serialisable body.
            body: Raw string body.
            data: Form-encoded body.
            cache: Per-request cache option overrides, e.g.
                ``{"max_age": 0}`` or ``{"read_on_error": False}``.

        Returns:
            The :class:`httpx.Response`. Status errors are returned, not
            raised; call ``raise_for_status()`` if needed.

        Raises:
            httpx.TransportError: On network failures with nothing to
                rescue from the cache.
        """
        assert self._client is not None, "Client not initialised -- use as async context manager"

        kwargs: dict[str, Any] = {
            "method": method,
            "url": path,
            "headers": headers,
            "params": params,
        }
        if data is not None:
            kwargs["data"] = data
        elif json_body is not None:
            kwargs["json"] = json_body
        elif body is not None:
            kwargs["content"] = body
        if cache:
            kwargs["extensions"] = {"cache": dict(cache)}

        return await self._client.request(**kwargs)

    async def get(self, path: str, **kwargs: Any) -> httpx.Response:
        """Send a GET request (served from cache when fresh)."""
        return await self.request("GET", path, **kwargs)

    async def head(self, path: str, **kwargs: Any) -> httpx.Response:
        """Send a HEAD request (never cached)."""
        return await self.request("HEAD", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> httpx.Response:
        """Send a POST request (invalidates the cached entry for *path*)."""
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> httpx.Response:
        """Send a PUT request (invalidates the cached entry for *path*)."""
        return await self.request("PUT", path, **kwargs)

    async def patch(self, path: str, **kwargs: Any) -> httpx.Response:
        """Send a PATCH request (invalidates the cached entry for *path*)."""
        return await self.request("PATCH", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> httpx.Response:
        """Send a DELETE request (invalidates the cached entry for *path*)."""
        return await self.request("DELETE", path, **kwargs)


def setup(
    base_url: str = "",
    *,
    timeout: float = 30,
    verify: bool = True,
    headers: Optional[Mapping[str, str]] = None,
    cache: Optional[Mapping[str, Any]] = None,
    **cache_options: Any,
) -> AsyncClient:
    """Build an :class:`AsyncClient` with the cache adapter pre-configured.

    Cache options may be passed either as keyword arguments or grouped in
    *cache*; keyword arguments win.
    """
    options = dict(cache or {})
    options.update(cache_options)
    return AsyncClient(
        base_url,
        timeout=timeout,
        verify=verify,
        headers=headers,
        **options,
    )
