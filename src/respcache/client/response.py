"""Response formatting bridge -- maps :class:`httpx.Response` to the output system.

After ``respcache get`` completes, :func:`format_api_response` writes the
status line and cache provenance to stderr and routes the body through
:meth:`~respcache.output.OutputManager.print_body`.
"""

from __future__ import annotations

from typing import Any

import httpx

from respcache.output import get_output


def cache_status(response: httpx.Response) -> str:
    """Describe where a response came from.

    Returns one of ``"stale"`` (served from cache after the live request
    failed), ``"cached"``, ``"cached, expired"`` or ``"network"``.
    """
    extensions = response.extensions
    if extensions.get("stale"):
        return "stale"
    if extensions.get("from_cache"):
        return "cached, expired" if extensions.get("expired") else "cached"
    return "network"


def format_api_response(response: httpx.Response, show_headers: bool = False) -> None:
    """Print a response using the global output system.

    The status line (e.g. ``HTTP 200 OK (cached)``) and, when requested,
    the headers go to stderr; the body goes to stdout. A stale response
    also triggers a warning so degraded service is visible.

    Args:
        response: The :class:`httpx.Response` to display.
        show_headers: Also print response headers to stderr.
    """
    output = get_output()
    output.provenance(response.status_code, response.reason_phrase, cache_status(response))

    if show_headers:
        for name, value in response.headers.multi_items():
            output.info(f"{name}: {value}")

    data = extract_response_data(response)
    if data is not None:
        output.print_body(data)


def extract_response_data(response: httpx.Response) -> Any:
    """Extract the body from an HTTP response.

    Attempts JSON first and falls back to text. Returns ``None`` for an
    empty body.
    """
    if not response.content:
        return None

    try:
        return response.json()
    except ValueError:
        return response.text
