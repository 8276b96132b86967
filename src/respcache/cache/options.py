"""Adapter options and their per-request layering.

:class:`CacheOptions` is the full configuration surface of the cache
adapter. It is built once per adapter (model defaults overlaid with the
keyword arguments given to :func:`~respcache.adapter.setup_cache`) and
then, for every request, overlaid again with the request's own
``extensions["cache"]`` dict by :func:`merge_options`. Each layer yields a
new validated object; no options object is ever mutated.

Options that may be a constant or a predicate (``read_on_error``) are
normalised into a :class:`Switch` so call sites evaluate them uniformly.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from respcache.cache.store import CacheStore, MemoryStore
from respcache.exceptions import ConfigError
from respcache.output import get_output

KeyFunction = Callable[[httpx.Request], str]
TransportFunction = Callable[[httpx.Request], Awaitable[httpx.Response]]
DebugHook = Callable[..., None]


# --- Constant-or-predicate flags ---


class Switch(ABC):
    """A boolean option that is either fixed or computed per call."""

    @abstractmethod
    def evaluate(self, *args: Any) -> bool:
        """Return the flag's value for the given call arguments."""

    @staticmethod
    def of(value: Any) -> Switch:
        """Wrap a bool or a callable; existing switches pass through.

        Raises:
            ValueError: If *value* is neither.
        """
        if isinstance(value, Switch):
            return value
        if isinstance(value, bool):
            return Constant(value)
        if callable(value):
            return Predicate(value)
        raise ValueError(f"expected a bool or a callable, got {type(value).__name__}")


@dataclass(frozen=True)
class Constant(Switch):
    value: bool

    def evaluate(self, *args: Any) -> bool:
        return self.value


@dataclass(frozen=True)
class Predicate(Switch):
    fn: Callable[..., Any]

    def evaluate(self, *args: Any) -> bool:
        return bool(self.fn(*args))


# --- Debug hook ---


def trace(event: str, *details: Any) -> None:
    """Default hook: cache events are shown with ``--verbose`` only."""
    get_output().cache_event(event, *details)


def announce(event: str, *details: Any) -> None:
    """Hook used for ``debug=True``: cache events are always shown."""
    get_output().cache_event(event, *details, always=True)


# --- Options ---


class ExcludeOptions(BaseModel):
    """Rules that mark a request as never cacheable.

    HEAD requests are always excluded regardless of these rules.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="forbid")

    paths: list[str] = Field(
        default_factory=list, description="Regular expressions searched in the URL path"
    )
    query: bool = Field(
        default=False, description="Exclude requests that carry query parameters"
    )
    filter: Optional[Callable[[httpx.Request], Any]] = Field(
        default=None, description="Custom predicate; a truthy result excludes"
    )
    methods: list[str] = Field(
        default_factory=list, description="Methods to exclude (case-insensitive)"
    )


class CacheOptions(BaseModel):
    """Configuration of one cache adapter.

    Every field can be overridden for a single request through
    ``request.extensions["cache"]``::

        await client.get("/users", extensions={"cache": {"max_age": 60}})

    Attributes:
        key: Explicit cache key, or a function deriving it from the
            request. ``None`` uses :func:`~respcache.cache.key.default_key`.
        max_age: Seconds an entry stays fresh. ``0`` writes entries that
            are stale immediately (useful only for ``read_on_error``);
            ``None`` writes entries that never go stale.
        limit: Maximum number of entries; the earliest-expiring entry is
            evicted before a write when the store is full.
        store: Where entries are kept.
        exclude: Exclusion rules, or a predicate used as ``exclude.filter``.
        read_on_error: Serve a stale entry when the transport fails. A
            callable receives ``(error, request)``.
        accept_stale: Return expired entries as hits. Set internally by
            the stale rescue; callers normally leave it unset.
        clear_on_stale: Remove an expired entry when a lookup finds it.
        clear_on_error: Clear the whole store when a write fails.
        ignore_cache: Treat every lookup as a miss (responses are still
            written).
        debug: ``True`` prints cache decisions to stderr, ``False`` routes
            them to verbose-only debug output, a callable receives them.
        transport: Coroutine function performing the real request; it
            must raise on failure. Filled in by
            :func:`~respcache.adapter.setup_cache` when omitted.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="forbid")

    key: Optional[Union[str, KeyFunction]] = None
    max_age: Optional[float] = Field(default=0, ge=0)
    limit: Optional[int] = Field(default=None, ge=1)
    store: CacheStore = Field(default_factory=MemoryStore)
    exclude: ExcludeOptions = Field(default_factory=ExcludeOptions)
    read_on_error: Switch = Field(default_factory=lambda: Constant(False))
    accept_stale: bool = False
    clear_on_stale: bool = True
    clear_on_error: bool = True
    ignore_cache: bool = False
    debug: DebugHook = trace
    transport: Optional[TransportFunction] = None

    @field_validator("exclude", mode="before")
    @classmethod
    def _exclude_predicate(cls, value: Any) -> Any:
        if callable(value) and not isinstance(value, (ExcludeOptions, type)):
            return ExcludeOptions(filter=value)
        return value

    @field_validator("read_on_error", mode="before")
    @classmethod
    def _read_on_error_switch(cls, value: Any) -> Switch:
        return Switch.of(value)

    @field_validator("debug", mode="before")
    @classmethod
    def _debug_hook(cls, value: Any) -> DebugHook:
        if value is True:
            return announce
        if value is False or value is None:
            return trace
        if callable(value):
            return value
        raise ValueError(f"debug must be a bool or a callable, got {type(value).__name__}")


def make_options(**overrides: Any) -> CacheOptions:
    """Build instance options from keyword overrides on top of the defaults.

    Raises:
        ConfigError: If an option is unknown or has an invalid value.
    """
    try:
        return CacheOptions(**overrides)
    except ValidationError as exc:
        raise ConfigError(f"Invalid cache options: {exc}") from exc


def merge_options(
    options: CacheOptions, overrides: Optional[Mapping[str, Any]]
) -> CacheOptions:
    """Shallow-merge per-request *overrides* onto *options*.

    The store, transport and other handles are carried over by identity.
    *options* itself is left untouched.

    Raises:
        ConfigError: If an override is unknown or has an invalid value.
    """
    if not overrides:
        return options
    values = {name: getattr(options, name) for name in CacheOptions.model_fields}
    values.update(overrides)
    try:
        return CacheOptions.model_validate(values)
    except ValidationError as exc:
        raise ConfigError(f"Invalid per-request cache options: {exc}") from exc
