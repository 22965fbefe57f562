"""
Unit Tests - Metrics Cache
"""
import json

import pytest

from src.errors import CacheMissError, CacheReadError, PersistenceError
from src.serving.cache import MetricsFileCache


class TestMetricsFileCache:
    """Tests for the JSON file cache"""

    def test_load_missing_file(self, tmp_path):
        cache = MetricsFileCache(tmp_path / "swapt_data.json")

        assert not cache.exists()
        with pytest.raises(CacheMissError):
            cache.load()

    def test_load_corrupt_file(self, tmp_path):
        path = tmp_path / "swapt_data.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(CacheReadError):
            MetricsFileCache(path).load()

    def test_save_creates_directory_and_overwrites(self, tmp_path):
        cache = MetricsFileCache(tmp_path / "public" / "exports" / "swapt_data.json")

        cache.save({"metrics": {"totalSwaptSubmits": 1}})
        cache.save({"metrics": {"totalSwaptSubmits": 2}})

        assert cache.load() == {"metrics": {"totalSwaptSubmits": 2}}
        text = cache.path.read_text(encoding="utf-8")
        assert text.startswith("{\n  ")
        assert not any(p.name.endswith(".tmp") for p in cache.path.parent.iterdir())

    def test_save_failure_raises_persistence_error(self, tmp_path):
        target = tmp_path / "swapt_data.json"
        target.mkdir()

        with pytest.raises(PersistenceError):
            MetricsFileCache(target).save({"metrics": {}})

    def test_save_unserializable_payload(self, tmp_path):
        cache = MetricsFileCache(tmp_path / "swapt_data.json")

        with pytest.raises(PersistenceError):
            cache.save({"metrics": object()})
        assert not cache.exists()

    def test_from_settings(self, test_settings):
        cache = MetricsFileCache.from_settings(test_settings.storage)

        assert cache.path.name == "swapt_data.json"
        assert cache.path.parent == test_settings.storage.stats_path.parent

    def test_written_file_is_plain_json(self, tmp_path):
        cache = MetricsFileCache(tmp_path / "swapt_data.json")
        cache.save({"detailedData": []})

        assert json.loads(cache.path.read_text(encoding="utf-8")) == {"detailedData": []}
