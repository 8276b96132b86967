"""Shared test fixtures for respcache.

Provides a scriptable fake upstream (:class:`FakeBackend`), isolated
config environments, output state management, and a CLI runner. These
fixtures are automatically discovered by pytest and available to all
test modules without explicit imports.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import httpx
import pytest

from respcache.cache.store import MemoryStore
from respcache.output import OutputFormat, OutputManager, reset_output, set_output


API = "https://api.example.com"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale
    ("I/O operation on closed file"). Resetting forces a fresh manager
    to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Fake upstream
# ---------------------------------------------------------------------------


class FakeBackend:
    """Scriptable upstream server behind an :class:`httpx.MockTransport`.

    Every request is recorded in :attr:`requests`. By default it answers
    ``200`` with a JSON body echoing a per-call counter, so tests can tell
    a fresh network response from a cached one. Setting :attr:`fail` makes
    the next calls raise that exception object instead; setting
    :attr:`status` changes the status code.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.fail: Optional[Exception] = None
        self.status = 200
        self.transport = httpx.MockTransport(self._handle)

    @property
    def calls(self) -> int:
        return len(self.requests)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail is not None:
            raise self.fail
        return httpx.Response(
            self.status,
            json={"call": self.calls, "path": request.url.path},
            headers={"x-upstream": "yes"},
        )

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        """Transport function form: raise on status >= 400 like the invoker."""
        from respcache.transport import TransportInvoker

        return await TransportInvoker(self.transport)(request)


@pytest.fixture
def backend() -> FakeBackend:
    """A fresh :class:`FakeBackend`."""
    return FakeBackend()


@pytest.fixture
def store() -> MemoryStore:
    """An empty in-memory store."""
    return MemoryStore()


@pytest.fixture
def debug_log() -> list[tuple[Any, ...]]:
    """A list collecting the arguments of every debug hook call."""
    return []


@pytest.fixture
def debug_hook(debug_log: list[tuple[Any, ...]]):
    """Debug hook appending its arguments to :func:`debug_log`."""

    def _hook(*args: Any) -> None:
        debug_log.append(args)

    return _hook


def get_request(path: str = "/users", **kwargs: Any) -> httpx.Request:
    """Build a GET request against the fake API."""
    return httpx.Request("GET", f"{API}{path}", **kwargs)


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME, XDG_CACHE_HOME, and XDG_DATA_HOME to
    subdirectories of tmp_path so that tests never touch real user
    config. Clears all RESPCACHE_* environment variables and changes
    the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("respcache.config._is_xdg_platform", lambda: True)

    for var in [
        "RESPCACHE_MAX_AGE",
        "RESPCACHE_READ_ON_ERROR",
        "RESPCACHE_STORE_DIR",
        "RESPCACHE_BASE_URL",
        "NO_COLOR",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


def write_project_config(root: Path, data: dict[str, Any]) -> Path:
    """Write ``respcache.json`` into *root*."""
    path = root / "respcache.json"
    path.write_text(json.dumps(data))
    return path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def json_output() -> OutputManager:
    """Install a JSON-format OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.JSON)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner with stderr captured separately."""
    from typer.testing import CliRunner

    from respcache.app import register_commands

    register_commands()
    try:
        return CliRunner(mix_stderr=False)
    except TypeError:
        # Click 8.2 removed mix_stderr; stderr is always separate there.
        return CliRunner()
