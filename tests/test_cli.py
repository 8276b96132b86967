"""End-to-end tests for the respcache command line.

Commands run through the real Typer app against the isolated XDG disk
store. The network is replaced by the :class:`FakeBackend` mock transport.
"""

from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest
from conftest import API, FakeBackend

from respcache.app import app
from respcache.config import load_global_config
from respcache.exit_codes import EXIT_CONNECTION_ERROR, EXIT_HTTP_ERROR, EXIT_INVALID_USAGE


@pytest.fixture
def network(monkeypatch: pytest.MonkeyPatch, backend: FakeBackend) -> FakeBackend:
    """Route every default transport the CLI creates to the fake backend."""
    monkeypatch.setattr(httpx, "AsyncHTTPTransport", lambda **kwargs: backend.transport)
    return backend


def _run(cli_runner, *args: str):
    return cli_runner.invoke(app, ["--no-color", *args])


class TestVersion:
    def test_version(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert result.stdout.startswith("respcache ")


class TestGet:
    def test_network_then_cached(self, cli_runner, isolated_config: Path, network) -> None:
        first = _run(cli_runner, "--json", "get", f"{API}/users")
        second = _run(cli_runner, "--json", "get", f"{API}/users")

        assert first.exit_code == 0, first.stderr
        assert "HTTP 200 OK (network)" in first.stderr
        assert json.loads(first.stdout) == {"call": 1, "path": "/users"}
        assert second.exit_code == 0
        assert "HTTP 200 OK (cached)" in second.stderr
        assert json.loads(second.stdout) == {"call": 1, "path": "/users"}
        assert network.calls == 1

    def test_params_share_entry_regardless_of_order(
        self, cli_runner, isolated_config: Path, network
    ) -> None:
        _run(cli_runner, "get", f"{API}/users", "-P", "b=2", "-P", "a=1")
        result = _run(cli_runner, "get", f"{API}/users", "-P", "a=1", "-P", "b=2")
        assert "(cached)" in result.stderr
        assert network.calls == 1

    def test_non_get_invalidates(self, cli_runner, isolated_config: Path, network) -> None:
        _run(cli_runner, "get", f"{API}/users")
        _run(cli_runner, "get", f"{API}/users", "-X", "DELETE")
        result = _run(cli_runner, "get", f"{API}/users")
        assert "(network)" in result.stderr
        assert network.calls == 3

    def test_stale_rescue_with_default_config(
        self, cli_runner, isolated_config: Path, network
    ) -> None:
        _run(cli_runner, "get", f"{API}/users", "--max-age", "0")
        network.fail = httpx.ConnectError("refused")
        result = _run(cli_runner, "get", f"{API}/users")

        assert result.exit_code == 0
        assert "(stale)" in result.stderr
        assert "stale cached data" in result.stderr

    def test_clear_on_stale_leaves_nothing_to_rescue(
        self, cli_runner, isolated_config: Path, network
    ) -> None:
        (isolated_config / "respcache.json").write_text(
            json.dumps({"cache": {"clear_on_stale": True}})
        )
        _run(cli_runner, "get", f"{API}/users", "--max-age", "0")
        network.fail = httpx.ConnectError("refused")
        result = _run(cli_runner, "get", f"{API}/users")

        assert result.exit_code == EXIT_CONNECTION_ERROR

    def test_connection_error_without_cache(self, cli_runner, isolated_config: Path, network) -> None:
        network.fail = httpx.ConnectError("refused")
        result = _run(cli_runner, "get", f"{API}/users", "--no-read-on-error")
        assert result.exit_code == EXIT_CONNECTION_ERROR
        assert "Request failed" in result.stderr

    def test_http_error_exit_code(self, cli_runner, isolated_config: Path, network) -> None:
        network.status = 500
        result = _run(cli_runner, "get", f"{API}/boom")
        assert result.exit_code == EXIT_HTTP_ERROR
        assert "HTTP 500" in result.stderr

    def test_verbose_traces_cache_events(self, cli_runner, isolated_config: Path, network) -> None:
        _run(cli_runner, "get", f"{API}/users")
        result = _run(cli_runner, "-v", "get", f"{API}/users")
        assert f"[cache] cache-hit {API}/users" in result.stderr

    def test_json_and_plain_conflict(self, cli_runner, isolated_config: Path) -> None:
        result = _run(cli_runner, "--json", "--plain", "get", f"{API}/users")
        assert result.exit_code == EXIT_INVALID_USAGE

    def test_invalid_param(self, cli_runner, isolated_config: Path, network) -> None:
        result = _run(cli_runner, "get", f"{API}/users", "-P", "novalue")
        assert result.exit_code == EXIT_INVALID_USAGE
        assert network.calls == 0

    def test_relative_url_uses_base_url(
        self, cli_runner, isolated_config: Path, network, monkeypatch
    ) -> None:
        monkeypatch.setenv("RESPCACHE_BASE_URL", API)
        result = _run(cli_runner, "get", "/users")
        assert result.exit_code == 0
        assert str(network.requests[0].url) == f"{API}/users"


class TestCacheCommands:
    def _warm(self, cli_runner) -> None:
        _run(cli_runner, "get", f"{API}/users")
        _run(cli_runner, "get", f"{API}/posts")

    def test_list(self, cli_runner, isolated_config: Path, network) -> None:
        self._warm(cli_runner)
        result = _run(cli_runner, "--json", "cache", "list")
        assert result.exit_code == 0
        rows = json.loads(result.stdout)
        assert [row["key"] for row in rows] == [f"{API}/posts", f"{API}/users"]
        assert all(row["status"] == "200" and row["state"] == "fresh" for row in rows)

    def test_list_empty(self, cli_runner, isolated_config: Path) -> None:
        result = _run(cli_runner, "cache", "list")
        assert result.exit_code == 0
        assert "Cache is empty." in result.stderr

    def test_stats(self, cli_runner, isolated_config: Path, network) -> None:
        self._warm(cli_runner)
        result = _run(cli_runner, "--json", "cache", "stats")
        stats = json.loads(result.stdout)
        assert stats["size"] == 2
        assert stats["backend"] == "disk"
        assert stats["max_age"] == 300

    def test_remove(self, cli_runner, isolated_config: Path, network) -> None:
        self._warm(cli_runner)
        result = _run(cli_runner, "cache", "remove", f"{API}/users")
        assert result.exit_code == 0
        listing = json.loads(_run(cli_runner, "--json", "cache", "list").stdout)
        assert [row["key"] for row in listing] == [f"{API}/posts"]

    def test_clear_requires_confirmation(self, cli_runner, isolated_config: Path, network) -> None:
        self._warm(cli_runner)
        result = cli_runner.invoke(app, ["--no-color", "cache", "clear"], input="n\n")
        assert "Cancelled." in result.stderr
        assert len(json.loads(_run(cli_runner, "--json", "cache", "list").stdout)) == 2

    def test_clear_with_force(self, cli_runner, isolated_config: Path, network) -> None:
        self._warm(cli_runner)
        result = _run(cli_runner, "--force", "cache", "clear")
        assert result.exit_code == 0
        assert "Cache is empty." in _run(cli_runner, "cache", "list").stderr


class TestConfigCommands:
    def test_show(self, cli_runner, isolated_config: Path) -> None:
        result = _run(cli_runner, "--json", "config", "show")
        assert result.exit_code == 0
        assert json.loads(result.stdout)["cache"]["max_age"] == 300

    @pytest.mark.parametrize(
        "key, value, expected",
        [
            ("cache.max_age", "900", 900),
            ("cache.max_age", "never", None),
            ("cache.read_on_error", "false", False),
            ("cache.exclude_paths", "^/auth,^/admin", ["^/auth", "^/admin"]),
            ("store.backend", "memory", "memory"),
            ("cache.limit", "50", 50),
        ],
    )
    def test_set(self, cli_runner, isolated_config: Path, key: str, value: str, expected) -> None:
        result = _run(cli_runner, "config", "set", key, value)
        assert result.exit_code == 0, result.stderr
        section, field = key.split(".")
        assert getattr(getattr(load_global_config(), section), field) == expected

    @pytest.mark.parametrize(
        "key, value",
        [
            ("cache.nope", "1"),
            ("nope.max_age", "1"),
            ("cache", "1"),
            ("cache.max_age", "soon"),
            ("cache.max_age", "-5"),
        ],
    )
    def test_set_rejects(self, cli_runner, isolated_config: Path, key: str, value: str) -> None:
        result = _run(cli_runner, "config", "set", key, value)
        assert result.exit_code == EXIT_INVALID_USAGE

    def test_reset(self, cli_runner, isolated_config: Path) -> None:
        _run(cli_runner, "config", "set", "cache.max_age", "5")
        result = _run(cli_runner, "--force", "config", "reset")
        assert result.exit_code == 0
        assert load_global_config().cache.max_age == 300


class TestMain:
    @pytest.fixture
    def failing_app(self, monkeypatch: pytest.MonkeyPatch):
        """Replace the Typer app with one raising the given exception."""
        import respcache.app as app_module

        def _install(exc: BaseException) -> None:
            def _raise() -> None:
                raise exc

            monkeypatch.setattr(app_module, "register_commands", lambda: None)
            monkeypatch.setattr(app_module, "app", _raise)

        return _install

    def test_respcache_error_uses_its_exit_code(self, isolated_config: Path, failing_app, capsys) -> None:
        from respcache.app import main
        from respcache.exceptions import StoreError

        failing_app(StoreError("store is closed"))
        with pytest.raises(SystemExit) as info:
            main()
        assert info.value.code == StoreError.exit_code
        assert "store is closed" in capsys.readouterr().err

    def test_unexpected_error_writes_crash_report(self, isolated_config: Path, failing_app) -> None:
        from respcache.app import main
        from respcache.config import get_data_dir

        failing_app(RuntimeError("boom"))
        with pytest.raises(SystemExit) as info:
            main()

        assert info.value.code == 1
        reports = list((get_data_dir() / "logs").glob("crash-*.log"))
        assert len(reports) == 1
        text = reports[0].read_text()
        assert text.startswith("respcache ")
        assert "RuntimeError: boom" in text

    def test_interrupt_exits_130(self, isolated_config: Path, failing_app) -> None:
        from respcache.app import main

        failing_app(KeyboardInterrupt())
        with pytest.raises(SystemExit) as info:
            main()
        assert info.value.code == 130
