# tests/unit/core/test_reading_cache.py
"""Tests for core/cache.py: ReadingCache JSON store."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from conftest import T0
from core.cache import CacheError, ReadingCache
from metrics.base import Reading


@pytest.fixture
def cache(tmp_path: Path) -> ReadingCache:
    return ReadingCache(tmp_path / "data" / "reading.json")


class TestReadingCache:

    def test_missing_file_is_empty(self, cache):
        assert cache.get() is None
        assert cache.is_available() is False
        assert cache.last_write_time() is None

    def test_put_then_get(self, cache):
        reading = Reading(count=945, captured_at=T0)
        cache.put(reading)
        assert cache.get() == reading
        assert cache.is_available() is True

    def test_overwrite_keeps_captured_at(self, cache):
        cache.put(Reading(count=1, captured_at=T0))
        first_write = cache.last_write_time()
        cache.put(Reading(count=2, captured_at=T0))

        stored = cache.get()
        assert stored.count == 2
        assert stored.captured_at == T0
        assert cache.last_write_time() >= first_write

    def test_payload_layout(self, cache):
        cache.put(Reading(count=7, captured_at=T0))
        raw = json.loads(cache.path.read_text())
        assert raw["count"] == 7
        assert raw["captured_at"] == T0.isoformat()
        assert "written_at" in raw
        assert not cache.path.with_name(cache.path.name + ".tmp").exists()

    def test_corrupt_json_raises_cache_error(self, cache):
        cache.path.parent.mkdir(parents=True)
        cache.path.write_text("{not json")
        with pytest.raises(CacheError):
            cache.get()
        assert cache.last_write_time() is None

    def test_wrong_shape_raises_cache_error(self, cache):
        cache.path.parent.mkdir(parents=True)
        cache.path.write_text(json.dumps({"count": -3, "captured_at": T0.isoformat()}))
        with pytest.raises(CacheError):
            cache.get()

    def test_clear(self, cache):
        cache.put(Reading(count=1, captured_at=T0))
        cache.clear()
        cache.clear()
        assert cache.get() is None

    def test_unwritable_location_raises_cache_error(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        cache = ReadingCache(blocker / "reading.json")
        with pytest.raises(CacheError):
            cache.put(Reading(count=1, captured_at=T0))

    def test_clear_failure_raises_cache_error(self, cache):
        cache.path.mkdir(parents=True)
        with pytest.raises(CacheError):
            cache.clear()
