"""Exception hierarchy for respcache.

All exceptions inherit from :class:`RespcacheError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`respcache.exit_codes`.
The command-line entry point in :func:`respcache.app.main` catches
``RespcacheError`` and exits with the matching code.

Subclass hierarchy::

    RespcacheError (exit 1)
    +-- InvalidUsageError      (exit 2)
    +-- CacheLookupError       (exit 3)
    |   +-- CacheMissError     reason "cache-miss"
    |   +-- CacheStaleError    reason "cache-stale"
    +-- StoreError             (exit 4)
    +-- TransportStatusError   (exit 5)
    +-- ConfigError            (exit 1)

:class:`CacheLookupError` subclasses only steer the adapter's state
machine; they never escape a cache lookup.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from respcache.exit_codes import (
    EXIT_CACHE_MISS,
    EXIT_GENERIC_FAILURE,
    EXIT_HTTP_ERROR,
    EXIT_INVALID_USAGE,
    EXIT_STORE_ERROR,
)

if TYPE_CHECKING:
    import httpx


class RespcacheError(Exception):
    """Base exception for all respcache errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(RespcacheError):
    """Raised for invalid CLI arguments or malformed option values."""

    exit_code = EXIT_INVALID_USAGE


class CacheLookupError(RespcacheError):
    """A cache read produced no usable entry.

    The ``reason`` attribute distinguishes "nothing there" from "there,
    but expired" so the adapter can clear stale entries.

    Args:
        key: The cache key that was looked up.
        message: Optional message override.
    """

    exit_code = EXIT_CACHE_MISS
    reason: str = ""

    def __init__(self, key: str, message: str | None = None):
        super().__init__(message or f"{self.reason}: {key}")
        self.key = key


class CacheMissError(CacheLookupError):
    """No entry is stored under the key."""

    reason = "cache-miss"


class CacheStaleError(CacheLookupError):
    """An entry exists but has expired and stale data was not accepted."""

    reason = "cache-stale"


class StoreError(RespcacheError):
    """Raised by store backends when the underlying storage fails."""

    exit_code = EXIT_STORE_ERROR


class TransportStatusError(RespcacheError):
    """The transport answered with a status code that failed validation.

    The full (already buffered) response is kept on :attr:`response` so
    that callers, and :class:`~respcache.transport.CacheTransport`,
    can hand it back unchanged.

    Args:
        response: The rejected response.
    """

    exit_code = EXIT_HTTP_ERROR

    def __init__(self, response: httpx.Response):
        phrase = response.reason_phrase
        message = f"HTTP {response.status_code}"
        if phrase:
            message = f"{message} {phrase}"
        super().__init__(message)
        self.response = response

    @property
    def status_code(self) -> int:
        return self.response.status_code

    @property
    def request(self) -> httpx.Request:
        return self.response.request


class ConfigError(RespcacheError):
    """Raised for configuration problems (invalid JSON, bad option values)."""

    exit_code = EXIT_GENERIC_FAILURE
