"""Tests for configuration loading, precedence and adapter wiring."""

from __future__ import annotations

import json
import time
from pathlib import Path

import httpx
import pytest
from conftest import write_project_config

from respcache.cache.disk import DiskStore
from respcache.cache.store import MemoryStore
from respcache.config import (
    _atomic_write,
    build_store,
    cache_options,
    get_cache_dir,
    get_config_dir,
    get_data_dir,
    load_global_config,
    resolve_config,
    save_global_config,
)
from respcache.exceptions import ConfigError
from respcache.models import GlobalConfig


# ------------------------------------------------------------------ #
# Directories
# ------------------------------------------------------------------ #


class TestDirectories:
    def test_xdg_directories(self, isolated_config: Path) -> None:
        assert get_config_dir() == isolated_config / "config" / "respcache"
        assert get_cache_dir() == isolated_config / "cache" / "respcache"
        assert get_data_dir() == isolated_config / "data" / "respcache"
        assert get_config_dir().is_dir()

    def test_fallback_directories(self, isolated_config: Path, monkeypatch) -> None:
        monkeypatch.setattr("respcache.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", lambda: isolated_config / "home")
        assert get_config_dir() == isolated_config / "home" / ".respcache"
        assert get_cache_dir() == isolated_config / "home" / ".respcache" / "cache"


# ------------------------------------------------------------------ #
# Atomic writes and global config
# ------------------------------------------------------------------ #


class TestAtomicWrite:
    def test_writes_content(self, tmp_path: Path) -> None:
        target = tmp_path / "nested" / "file.json"
        _atomic_write(target, "{}\n")
        assert target.read_text() == "{}\n"

    def test_no_temp_files_left(self, tmp_path: Path) -> None:
        target = tmp_path / "file.json"
        _atomic_write(target, "a")
        _atomic_write(target, "b")
        assert [p.name for p in tmp_path.iterdir()] == ["file.json"]
        assert target.read_text() == "b"


class TestGlobalConfig:
    def test_defaults_when_missing(self, isolated_config: Path) -> None:
        config = load_global_config()
        assert config == GlobalConfig()
        assert config.cache.max_age == 300
        assert config.cache.read_on_error is True
        assert config.store.backend == "disk"

    def test_save_and_load(self, isolated_config: Path) -> None:
        config = GlobalConfig()
        config.cache.max_age = 42
        config.cache.exclude_paths = ["^/auth"]
        save_global_config(config)

        loaded = load_global_config()
        assert loaded.cache.max_age == 42
        assert loaded.cache.exclude_paths == ["^/auth"]

    def test_invalid_json_raises(self, isolated_config: Path) -> None:
        (get_config_dir() / "config.json").write_text("{not json")
        with pytest.raises(ConfigError):
            load_global_config()

    def test_invalid_values_raise(self, isolated_config: Path) -> None:
        (get_config_dir() / "config.json").write_text(json.dumps({"cache": {"max_age": -1}}))
        with pytest.raises(ConfigError):
            load_global_config()


# ------------------------------------------------------------------ #
# Precedence
# ------------------------------------------------------------------ #


class TestResolveConfig:
    def test_defaults(self, isolated_config: Path) -> None:
        assert resolve_config() == GlobalConfig()

    def test_project_overrides_global(self, isolated_config: Path) -> None:
        config = GlobalConfig()
        config.cache.max_age = 10
        config.cache.limit = 7
        save_global_config(config)
        write_project_config(isolated_config, {"cache": {"max_age": 20}})

        resolved = resolve_config()
        assert resolved.cache.max_age == 20
        assert resolved.cache.limit == 7

    def test_env_overrides_project(self, isolated_config: Path, monkeypatch) -> None:
        write_project_config(isolated_config, {"cache": {"max_age": 20}})
        monkeypatch.setenv("RESPCACHE_MAX_AGE", "30")
        monkeypatch.setenv("RESPCACHE_READ_ON_ERROR", "no")
        monkeypatch.setenv("RESPCACHE_STORE_DIR", "/tmp/store")
        monkeypatch.setenv("RESPCACHE_BASE_URL", "https://env.example.com")

        resolved = resolve_config()
        assert resolved.cache.max_age == 30
        assert resolved.cache.read_on_error is False
        assert resolved.store.directory == "/tmp/store"
        assert resolved.request.base_url == "https://env.example.com"

    def test_env_never_means_no_expiry(self, isolated_config: Path, monkeypatch) -> None:
        monkeypatch.setenv("RESPCACHE_MAX_AGE", "never")
        assert resolve_config().cache.max_age is None

    def test_env_invalid_number(self, isolated_config: Path, monkeypatch) -> None:
        monkeypatch.setenv("RESPCACHE_MAX_AGE", "soon")
        with pytest.raises(ConfigError):
            resolve_config()

    def test_cli_overrides_env(self, isolated_config: Path, monkeypatch) -> None:
        monkeypatch.setenv("RESPCACHE_MAX_AGE", "30")
        resolved = resolve_config(cli_max_age=5, cli_read_on_error=False, cli_format="json")
        assert resolved.cache.max_age == 5
        assert resolved.cache.read_on_error is False
        assert resolved.output.format == "json"

    def test_project_file_must_be_object(self, isolated_config: Path) -> None:
        (isolated_config / "respcache.json").write_text("[1, 2]")
        with pytest.raises(ConfigError):
            resolve_config()


# ------------------------------------------------------------------ #
# Adapter wiring
# ------------------------------------------------------------------ #


class TestAdapterWiring:
    @pytest.mark.asyncio
    async def test_disk_store_in_cache_dir(self, isolated_config: Path) -> None:
        store = build_store(GlobalConfig())
        try:
            assert isinstance(store, DiskStore)
            assert store.directory == get_cache_dir() / "responses"
        finally:
            await store.close()

    @pytest.mark.asyncio
    async def test_disk_store_in_configured_dir(self, isolated_config: Path) -> None:
        config = resolve_config(cli_store_dir=str(isolated_config / "elsewhere"))
        store = build_store(config)
        try:
            assert store.directory == isolated_config / "elsewhere" / "responses"
        finally:
            await store.close()

    def test_memory_store(self) -> None:
        config = GlobalConfig.model_validate({"store": {"backend": "memory"}})
        assert isinstance(build_store(config), MemoryStore)

    def test_unknown_backend(self) -> None:
        config = GlobalConfig.model_validate({"store": {"backend": "redis"}})
        with pytest.raises(ConfigError):
            build_store(config)

    def test_cache_options(self) -> None:
        config = GlobalConfig.model_validate(
            {"cache": {"max_age": 60, "exclude_paths": ["^/auth"], "exclude_query": True}}
        )
        options = cache_options(config)
        assert options["max_age"] == 60
        assert options["read_on_error"] is True
        assert options["exclude"].paths == ["^/auth"]
        assert options["exclude"].query is True

    def test_cache_options_build_valid_adapter(self) -> None:
        from respcache.adapter import setup_cache

        cache = setup_cache(store=MemoryStore(), **cache_options(GlobalConfig()))
        assert cache.options.max_age == 300
        assert cache.options.read_on_error.evaluate() is True

    @pytest.mark.asyncio
    async def test_default_settings_rescue_expired_entry(self, backend) -> None:
        from respcache.adapter import setup_cache

        store = MemoryStore()
        cache = setup_cache(
            store=store, base_transport=backend.transport, **cache_options(GlobalConfig())
        )
        request = httpx.Request("GET", "https://api.example.com/users")
        await cache.adapter(request)
        entry = await store.get_item(str(request.url))
        entry["expires"] = time.time() - 1
        await store.set_item(str(request.url), entry)

        backend.fail = httpx.ConnectError("refused")
        response = await cache.adapter(httpx.Request("GET", "https://api.example.com/users"))

        assert response.extensions["stale"] is True
        assert response.json()["call"] == 1
