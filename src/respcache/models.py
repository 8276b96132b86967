"""Pydantic models for persisted data.

Two groups of models live here:

**Store records** -- what the cache adapter writes to a
:class:`~respcache.cache.store.CacheStore`:
    :class:`CachedResponse` and :class:`CacheEntry`. Entries are stored as
    plain dicts (``model_dump()``) so any store that can hold a dict can
    back the cache, and validated again on read.

**Configuration models** -- serialised as JSON in the user's config
directory and consumed by the command line:
    :class:`CacheSettings`, :class:`StoreConfig`, :class:`RequestConfig`,
    :class:`OutputConfig`, and :class:`GlobalConfig`.

The in-process adapter options (callables, store handles) are not
persisted and live in :mod:`respcache.cache.options`.
"""

from __future__ import annotations

import time
from typing import Any, Optional

import httpx
from pydantic import BaseModel, Field

# The body is stored decoded, so transfer framing headers no longer apply.
_UNSTORED_HEADERS = frozenset({"content-encoding", "content-length", "transfer-encoding"})


# --- Store records ---


class CachedResponse(BaseModel):
    """Serialised form of an :class:`httpx.Response`.

    Only what is needed to rebuild an equivalent response is kept: status,
    reason phrase, HTTP version, headers (in order, duplicates preserved),
    and the decoded body.
    """

    status_code: int
    reason_phrase: str = ""
    http_version: str = "HTTP/1.1"
    headers: list[tuple[str, str]] = Field(default_factory=list)
    content: bytes = b""

    @classmethod
    def from_response(cls, response: httpx.Response) -> CachedResponse:
        """Capture a response whose body has already been read.

        Args:
            response: A response on which ``read()``/``aread()`` has been
                called.

        Returns:
            The serialisable snapshot.
        """
        headers = [
            (name, value)
            for name, value in response.headers.multi_items()
            if name.lower() not in _UNSTORED_HEADERS
        ]
        return cls(
            status_code=response.status_code,
            reason_phrase=response.reason_phrase,
            http_version=response.http_version,
            headers=headers,
            content=response.content,
        )

    def to_response(self, request: httpx.Request, **annotations: Any) -> httpx.Response:
        """Rebuild an :class:`httpx.Response` bound to *request*.

        Keyword arguments are added to ``response.extensions`` so callers
        can read cache provenance (``from_cache``, ``stale``, ...).
        """
        extensions: dict[str, Any] = {
            "reason_phrase": self.reason_phrase.encode("ascii", "replace"),
            "http_version": self.http_version.encode("ascii", "replace"),
        }
        extensions.update(annotations)
        return httpx.Response(
            status_code=self.status_code,
            headers=self.headers,
            content=self.content,
            request=request,
            extensions=extensions,
        )


class CacheEntry(BaseModel):
    """A stored response plus the timestamp after which it is stale.

    ``expires`` is a Unix timestamp in seconds. ``0`` means the entry
    never goes stale.
    """

    expires: float = 0
    data: CachedResponse

    def is_expired(self, now: Optional[float] = None) -> bool:
        """Return ``True`` once the validity window has elapsed."""
        if self.expires == 0:
            return False
        if now is None:
            now = time.time()
        return self.expires <= now


# --- Configuration models ---


class CacheSettings(BaseModel):
    """Cache adapter defaults stored in :class:`GlobalConfig`."""

    max_age: Optional[float] = Field(
        default=300, ge=0, description="Seconds before an entry is stale (null = never)"
    )
    limit: Optional[int] = Field(
        default=None, ge=1, description="Maximum number of stored entries"
    )
    read_on_error: bool = Field(
        default=True, description="Serve stale entries when the live request fails"
    )
    clear_on_stale: bool = Field(
        default=False,
        description="Remove expired entries when they are found (disables stale rescue)",
    )
    clear_on_error: bool = Field(
        default=True, description="Clear the store when a write fails"
    )
    exclude_paths: list[str] = Field(
        default_factory=list, description="Regular expressions of URL paths never cached"
    )
    exclude_query: bool = Field(
        default=False, description="Never cache requests that carry query parameters"
    )


class StoreConfig(BaseModel):
    """Which store backs the command-line cache."""

    backend: str = Field(default="disk", description="Store backend: disk, memory")
    directory: Optional[str] = Field(
        default=None, description="Directory for the disk store (default: XDG cache dir)"
    )


class RequestConfig(BaseModel):
    """Default HTTP request settings for the command line."""

    base_url: Optional[str] = Field(default=None, description="Prefix for relative URLs")
    timeout: float = Field(default=30, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")


class OutputConfig(BaseModel):
    """Default output format preferences."""

    format: str = Field(default="auto", description="Output format: auto, json, plain, rich")


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/respcache/config.json``.

    Loaded and saved by :func:`~respcache.config.load_global_config` and
    :func:`~respcache.config.save_global_config`. See
    :func:`~respcache.config.resolve_config` for the precedence chain.
    """

    cache: CacheSettings = Field(default_factory=CacheSettings)
    store: StoreConfig = Field(default_factory=StoreConfig)
    request: RequestConfig = Field(default_factory=RequestConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
