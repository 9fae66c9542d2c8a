"""Tests for the ``paymo cache`` command group."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from paymo.app import app
from paymo.cache import CacheStore
from paymo.config import get_cache_path


@pytest.fixture()
def warm_cache(isolated_config: Path) -> Path:
    """A cache file holding one project list, one project and the current user."""
    path = get_cache_path()
    with CacheStore.open(path) as store:
        store.set("projects", "all", [{"id": 1, "name": "Website"}])
        store.set("project", "1", {"id": 1, "name": "Website"})
        store.set("me", "me", {"id": 7, "name": "Ada"})
    return path


class TestCacheClear:
    def test_nothing_to_clear(self, isolated_config, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--no-color", "cache", "clear"])
        assert result.exit_code == 0
        assert "No cache to clear." in result.output

    def test_clear(self, warm_cache: Path, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--no-color", "cache", "clear"])
        assert result.exit_code == 0
        assert "Cache cleared." in result.output
        assert json.loads(warm_cache.read_text()) == {"entries": {}}


class TestCacheStatus:
    def test_missing_cache_json(self, isolated_config, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--json", "cache", "status"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data == {
            "enabled": True,
            "entries": 0,
            "size_kb": 0,
            "path": str(get_cache_path()),
        }

    def test_missing_cache_text(self, isolated_config, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--no-color", "cache", "status"])
        assert result.exit_code == 0
        assert "Cache is empty" in result.output

    def test_counts_json(self, warm_cache: Path, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--json", "cache", "status"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["entries"] == 3
        assert data["by_type"] == {"projects": 1, "project": 1, "me": 1}
        assert data["path"] == str(warm_cache)
        assert data["size_kb"] == warm_cache.stat().st_size // 1024

    def test_counts_plain(self, warm_cache: Path, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--plain", "cache", "status"])
        assert result.exit_code == 0
        assert "Entries: 3" in result.stdout
        assert "projects\t1" in result.stdout

    def test_reports_disabled_cache(self, warm_cache: Path, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--json", "--no-cache", "cache", "status"])
        assert json.loads(result.stdout)["enabled"] is False


class TestCachePrune:
    def test_prunes_expired(self, isolated_config, cli_runner) -> None:
        with CacheStore.open(get_cache_path(), clock=lambda: 0) as store:
            store.set("entries", "all", [])
        with CacheStore.open(get_cache_path()) as store:
            store.set("me", "me", {"id": 1})

        result = cli_runner.invoke(app, ["--json", "cache", "prune"])
        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"pruned": 1}
        with CacheStore.open(get_cache_path()) as store:
            assert store.stats() == {"me": 1}

    def test_nothing_to_prune(self, isolated_config, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--no-color", "cache", "prune"])
        assert result.exit_code == 0
        assert "No cache to prune." in result.output


class TestCorruptCacheFile:
    @pytest.mark.parametrize("command", ["clear", "status", "prune"])
    def test_warns_before_reset(self, isolated_config, cli_runner, command: str) -> None:
        get_cache_path().write_text("{not json")
        result = cli_runner.invoke(app, ["--no-color", "cache", command])
        assert result.exit_code == 0
        assert "was corrupt and has been reset" in result.output

    def test_status_still_reports(self, isolated_config, cli_runner) -> None:
        get_cache_path().write_text("{not json")
        result = cli_runner.invoke(app, ["--no-color", "cache", "status"])
        assert "Entries: 0" in result.output
        assert json.loads(get_cache_path().read_text()) == {"entries": {}}
