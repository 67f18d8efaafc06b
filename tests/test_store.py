"""Tests for ssmshell.store (offline cache file)."""

from __future__ import annotations

import json
import stat

from ssmshell.cache import ParameterCache
from ssmshell.config import ShellConfig
from ssmshell.store import FORMAT_VERSION, CacheStore


def _filled_cache(param_factory) -> ParameterCache:
    cache = ParameterCache(base_path="/app")
    cache.put_batch(
        [
            param_factory("/app/db", "x"),
            param_factory("/app/secret", "s3cr3t", "SecureString"),
            param_factory("/app/flags", "a,b", "StringList"),
        ],
        prefix="/app",
    )
    return cache


class TestSave:
    def test_writes_json(self, tmp_path, param_factory):
        path = tmp_path / "parameters.json"
        CacheStore(path).save(_filled_cache(param_factory))

        data = json.loads(path.read_text())
        assert data["format"] == FORMAT_VERSION
        assert data["base_path"] == "/app"
        assert [r["path"] for r in data["parameters"]] == ["/app/db", "/app/flags", "/app/secret"]

    def test_secure_values_never_written(self, tmp_path, param_factory):
        path = tmp_path / "parameters.json"
        CacheStore(path).save(_filled_cache(param_factory))
        assert "s3cr3t" not in path.read_text()

    def test_file_is_private(self, tmp_path, param_factory):
        path = tmp_path / "parameters.json"
        CacheStore(path).save(_filled_cache(param_factory))
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_creates_parent_directory(self, tmp_path, param_factory):
        path = tmp_path / "nested" / "dir" / "parameters.json"
        CacheStore(path).save(_filled_cache(param_factory))
        assert path.is_file()
        assert not path.with_suffix(".json.tmp").exists()


class TestLoad:
    def test_missing_file(self, tmp_path):
        cache = ParameterCache()
        assert CacheStore(tmp_path / "nope.json").load(cache) is False
        assert len(cache) == 0

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        cache = ParameterCache()
        assert CacheStore(path).load(cache) is False
        assert len(cache) == 0

    def test_missing_parameters_key(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"format": 1}))
        assert CacheStore(path).load(ParameterCache()) is False

    def test_restores_entries_and_loaded_prefix(self, tmp_path, param_factory):
        path = tmp_path / "parameters.json"
        CacheStore(path).save(_filled_cache(param_factory))

        cache = ParameterCache(base_path="/app")
        assert CacheStore(path).load(cache) is True
        assert cache.get("/app/db").value == "x"
        assert cache.get("/app/flags").type == "StringList"
        assert cache.is_prefix_loaded("/app")
        assert cache.completions("/app/").paths == ["/app/db", "/app/flags", "/app/secret"]

    def test_secure_entry_comes_back_unfetched(self, tmp_path, param_factory):
        path = tmp_path / "parameters.json"
        CacheStore(path).save(_filled_cache(param_factory))

        cache = ParameterCache(base_path="/app")
        CacheStore(path).load(cache)
        secret = cache.get("/app/secret")
        assert secret.value == ""
        assert secret.is_fetched is False
        assert secret.type == "SecureString"

    def test_dirty_entry_stays_dirty(self, tmp_path, param_factory):
        cache = _filled_cache(param_factory)
        cache.put(param_factory("/app/db", "pending"), confirmed=False)
        path = tmp_path / "parameters.json"
        CacheStore(path).save(cache)

        restored = ParameterCache(base_path="/app")
        CacheStore(path).load(restored)
        entry = restored.get("/app/db")
        assert entry.value == "pending"
        assert entry.dirty is True
        assert restored.get("/app/flags").dirty is False

    def test_timestamps_restored(self, tmp_path, param_factory):
        path = tmp_path / "parameters.json"
        original = _filled_cache(param_factory)
        CacheStore(path).save(original)

        cache = ParameterCache(base_path="/app")
        CacheStore(path).load(cache)
        assert cache.get("/app/db").last_modified == original.get("/app/db").last_modified
        assert cache.get("/app/db").fetched_at == original.get("/app/db").fetched_at

    def test_other_base_path_is_a_miss(self, tmp_path, param_factory):
        path = tmp_path / "parameters.json"
        CacheStore(path).save(_filled_cache(param_factory))

        cache = ParameterCache(base_path="/app/db")
        assert CacheStore(path).load(cache) is False
        assert len(cache) == 0
        assert not cache.is_prefix_loaded("/app/db")

    def test_colliding_slugs_use_separate_files(self, tmp_path, param_factory):
        nested = ShellConfig(base_path="/app/x", store_dir=tmp_path)
        flat = ShellConfig(base_path="/app_x", store_dir=tmp_path)
        cache = ParameterCache(base_path="/app/x")
        cache.put_batch([param_factory("/app/x/key", "nested")], prefix="/app/x")
        CacheStore(nested.cache_file).save(cache)

        other = ParameterCache(base_path="/app_x")
        assert CacheStore(flat.cache_file).load(other) is False
        assert len(other) == 0
