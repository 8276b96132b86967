"""httpx transport plumbing around the cache adapter.

Two pieces connect :class:`~respcache.adapter.CacheAdapter` to httpx:

* :class:`TransportInvoker` -- the *transport collaborator*: wraps an
  :class:`httpx.AsyncBaseTransport` and turns responses with a rejected
  status into :class:`~respcache.exceptions.TransportStatusError`, so the
  adapter sees every failure as an exception.
* :class:`CacheTransport` -- the drop-in :class:`httpx.AsyncBaseTransport`
  installed on an :class:`httpx.AsyncClient`. It keeps the httpx contract
  (transports return error responses, they do not raise for them) by
  handing the response of an escaped ``TransportStatusError`` back.

The default status check accepts 2xx only. A plain :class:`httpx.AsyncClient`
does not follow redirects, so a 3xx can reach this layer as a final answer;
it is treated as a failure and never stored.
"""

from __future__ import annotations

from typing import Awaitable, Callable, Optional

import httpx

from respcache.exceptions import TransportStatusError

StatusCheck = Callable[[int], bool]


def accept_status(status_code: int) -> bool:
    """Default status check: 2xx only."""
    return 200 <= status_code < 300


class TransportInvoker:
    """Call an httpx transport and raise for rejected status codes.

    Args:
        transport: The transport performing network I/O. Defaults to a
            new :class:`httpx.AsyncHTTPTransport`.
        validate_status: Predicate over the status code; ``False`` raises
            :class:`~respcache.exceptions.TransportStatusError`.

    Example::

        invoker = TransportInvoker(httpx.MockTransport(handler))
        response = await invoker(httpx.Request("GET", "https://api.example.com/"))
    """

    def __init__(
        self,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        validate_status: Optional[StatusCheck] = None,
    ) -> None:
        self._transport = transport if transport is not None else httpx.AsyncHTTPTransport()
        self._validate_status = validate_status or accept_status

    @property
    def transport(self) -> httpx.AsyncBaseTransport:
        return self._transport

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        response = await self._transport.handle_async_request(request)
        if not self._validate_status(response.status_code):
            await response.aread()
            response.request = request
            raise TransportStatusError(response)
        return response

    async def aclose(self) -> None:
        await self._transport.aclose()


class CacheTransport(httpx.AsyncBaseTransport):
    """:class:`httpx.AsyncBaseTransport` that routes requests through a cache adapter.

    Args:
        adapter: Coroutine function from request to response, normally a
            :class:`~respcache.adapter.CacheAdapter`.
        invoker: The invoker whose transport is closed with this one.

    Example::

        cache = setup_cache(max_age=300)
        async with httpx.AsyncClient(transport=cache.transport) as client:
            response = await client.get("https://api.example.com/users")
            response.extensions["from_cache"]
    """

    def __init__(
        self,
        adapter: Callable[[httpx.Request], Awaitable[httpx.Response]],
        invoker: Optional[TransportInvoker] = None,
    ) -> None:
        self._adapter = adapter
        self._invoker = invoker

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        try:
            return await self._adapter(request)
        except TransportStatusError as exc:
            return exc.response

    async def aclose(self) -> None:
        if self._invoker is not None:
            await self._invoker.aclose()
