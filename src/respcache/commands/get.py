"""The ``respcache get`` command -- fetch a URL through the cache.

Resolves the effective configuration, opens the configured store, sends
the request through :class:`~respcache.client.AsyncClient`, and prints
the response with its cache provenance (``network``, ``cached`` or
``stale``).
"""

from __future__ import annotations

from typing import Optional

import httpx
import typer

from respcache.cache.store import CacheStore
from respcache.commands._async import run_with_store
from respcache.exit_codes import EXIT_CONNECTION_ERROR, EXIT_HTTP_ERROR, EXIT_INVALID_USAGE
from respcache.models import GlobalConfig
from respcache.output import error


def _parse_params(values: list[str]) -> list[tuple[str, str]]:
    """Parse ``key=value`` strings into query parameter pairs."""
    params: list[tuple[str, str]] = []
    for item in values:
        name, sep, value = item.partition("=")
        if not sep or not name:
            error(f"Invalid parameter (expected key=value): {item}")
            raise typer.Exit(code=EXIT_INVALID_USAGE)
        params.append((name, value))
    return params


async def _send(
    store: CacheStore,
    config: GlobalConfig,
    method: str,
    url: str,
    params: list[tuple[str, str]],
    body: Optional[str],
) -> httpx.Response:
    from respcache.client import AsyncClient
    from respcache.config import cache_options

    async with AsyncClient(
        base_url=config.request.base_url or "",
        timeout=config.request.timeout,
        verify=config.request.verify_ssl,
        store=store,
        **cache_options(config),
    ) as client:
        return await client.request(method, url, params=params or None, body=body)


def get_command(
    url: str = typer.Argument(help="Absolute URL, or a path relative to request.base_url."),
    param: list[str] = typer.Option(
        [], "--param", "-P", help="Query parameter as key=value (repeatable)."
    ),
    method: str = typer.Option(
        "GET", "--method", "-X", help="HTTP method. Non-GET methods invalidate the cached entry."
    ),
    data: Optional[str] = typer.Option(None, "--data", "-d", help="Raw request body."),
    max_age: Optional[float] = typer.Option(
        None, "--max-age", help="Seconds a stored response stays fresh."
    ),
    read_on_error: Optional[bool] = typer.Option(
        None,
        "--read-on-error/--no-read-on-error",
        help="Serve stale cached data when the request fails.",
    ),
    store_dir: Optional[str] = typer.Option(
        None, "--store-dir", help="Directory of the disk store."
    ),
    show_headers: bool = typer.Option(
        False, "--headers", "-i", help="Print response headers to stderr."
    ),
) -> None:
    """Fetch URL through the response cache.

    Example::

        respcache get https://api.example.com/users -P page=2
        respcache get /users --max-age 600 --read-on-error
        respcache get /users/1 -X DELETE
    """
    from respcache.client.response import format_api_response
    from respcache.config import resolve_config

    params = _parse_params(param)
    config = resolve_config(
        cli_max_age=max_age,
        cli_read_on_error=read_on_error,
        cli_store_dir=store_dir,
    )

    try:
        response = run_with_store(
            lambda store, cfg: _send(store, cfg, method.upper(), url, params, data),
            config,
        )
    except httpx.TransportError as exc:
        error(f"Request failed: {exc}")
        raise typer.Exit(code=EXIT_CONNECTION_ERROR) from None

    format_api_response(response, show_headers=show_headers)
    if response.is_error:
        raise typer.Exit(code=EXIT_HTTP_ERROR)
