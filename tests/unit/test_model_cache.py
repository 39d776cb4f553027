"""
Tests for the checksum-verified whole-blob model cache.
"""

import hashlib
import logging
import os
from datetime import timedelta

import pytest

from weightvault.cache.entry_format import decode_entry, encode_entry
from weightvault.cache.model_cache import ModelCache
from weightvault.core import Config
from weightvault.core.errors import WriteFailed
from weightvault.storage.kv_store import MemoryStore

DAY = 24 * 60 * 60


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class RejectingStore(MemoryStore):
    def put(self, table, key, value):
        raise WriteFailed(table, key, "quota exceeded")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def cache(store, clock):
    return ModelCache(store, Config(), clock=clock)


def test_cache_model_and_get(cache):
    data = os.urandom(1000)
    assert cache.cache_model("m1", "Model One", data, "wasm") is True

    entry = cache.get_cached_model("m1")
    assert entry.data == data
    assert entry.name == "Model One"
    assert entry.version == "1.0.0"
    assert entry.provider == "wasm"
    assert entry.size == 1000
    assert entry.timestamp == 1_700_000_000_000


def test_checksum_matches_sha256_of_data(cache):
    data = b"model weights"
    cache.cache_model("m1", "Model One", data, "wasm")
    assert cache.get_cached_model("m1").checksum == hashlib.sha256(data).hexdigest()


def test_get_absent_model(cache):
    assert cache.get_cached_model("nope") is None
    assert cache.is_model_cached("nope") is False


def test_corrupted_entry_is_evicted(cache, store, caplog):
    cache.cache_model("m1", "Model One", b"original bytes", "wasm")

    # Flip the stored data out-of-band, keeping the recorded checksum.
    key = "llm_model_cache_m1"
    entry = decode_entry(store.get("local", key))
    entry.data = b"tampered bytes"
    store.put("local", key, encode_entry(entry))

    with caplog.at_level(logging.WARNING, logger="weightvault.cache.model_cache"):
        assert cache.get_cached_model("m1") is None

    assert store.get("local", key) is None
    assert "m1" not in cache.list_metadata()
    assert "corrupted" in caplog.text


def test_undecodable_entry_is_evicted(cache, store):
    cache.cache_model("m1", "Model One", b"data", "wasm")
    store.put("local", "llm_model_cache_m1", b"garbage")

    assert cache.get_cached_model("m1") is None
    assert store.get("local", "llm_model_cache_m1") is None


def test_metadata_index_tracks_entries(cache):
    cache.cache_model("m1", "Model One", b"a" * 10, "wasm", version="2.0.0")
    cache.cache_model("m2", "Model Two", b"b" * 20, "webgpu")

    metadata = cache.list_metadata()
    assert set(metadata) == {"m1", "m2"}
    assert metadata["m1"].version == "2.0.0"
    assert metadata["m2"].size == 20

    cache.remove_cached_model("m1")
    assert set(cache.list_metadata()) == {"m2"}


def test_remove_cached_model(cache, store):
    cache.cache_model("m1", "Model One", b"data", "wasm")
    assert cache.remove_cached_model("m1") is True
    assert cache.get_cached_model("m1") is None


def test_clear_all_cached_models(cache, store):
    store.put("local", "unrelated_setting", b"keep me")
    cache.cache_model("m1", "Model One", b"a", "wasm")
    cache.cache_model("m2", "Model Two", b"b", "wasm")

    assert cache.clear_all_cached_models() is True
    assert cache.get_cache_stats().model_count == 0
    assert store.get("local", "llm_model_metadata") is None
    assert store.get("local", "unrelated_setting") == b"keep me"


def test_cache_stats_for_two_mib_model(cache):
    data = os.urandom(2 * 1024 * 1024)
    cache.cache_model("m1", "Model One", data, "wasm")

    stats = cache.get_cache_stats()
    assert stats.model_count == 1
    assert stats.total_size == 2_097_152
    assert stats.available_space == 5 * 1024 * 1024 - 2_097_152
    assert cache.get_cache_usage_percentage() == pytest.approx(40.0)


def test_available_space_never_negative(store, clock):
    cache = ModelCache(store, Config(cache_quota=100), clock=clock)
    cache.cache_model("m1", "Model One", b"x" * 150, "wasm")

    stats = cache.get_cache_stats()
    assert stats.available_space == 0
    assert cache.get_cache_usage_percentage() == pytest.approx(150.0)
    assert cache.has_enough_space(1) is False


def test_has_enough_space(cache):
    assert cache.has_enough_space(5 * 1024 * 1024) is True
    assert cache.has_enough_space(5 * 1024 * 1024 + 1) is False


def test_cleanup_old_models(cache, clock):
    clock.now -= 40 * DAY
    cache.cache_model("old", "Old", b"old", "wasm")
    clock.now += 35 * DAY
    cache.cache_model("recent", "Recent", b"recent", "wasm")
    clock.now += 5 * DAY

    assert cache.cleanup_old_models(timedelta(days=30)) == 1
    assert cache.get_cached_model("old") is None
    assert cache.get_cached_model("recent") is not None


def test_cleanup_uses_configured_default_age(cache, clock):
    cache.cache_model("m1", "Model One", b"x", "wasm")
    clock.now += 31 * DAY
    assert cache.cleanup_old_models() == 1


def test_get_cached_models_newest_first(cache, clock):
    cache.cache_model("first", "First", b"1", "wasm")
    clock.now += 10
    cache.cache_model("second", "Second", b"2", "wasm")

    assert [e.id for e in cache.get_cached_models()] == ["second", "first"]


def test_cache_model_reports_store_rejection(clock, caplog):
    cache = ModelCache(RejectingStore(), Config(), clock=clock)
    with caplog.at_level(logging.ERROR, logger="weightvault.cache.model_cache"):
        assert cache.cache_model("m1", "Model One", b"data", "wasm") is False
    assert "quota exceeded" in caplog.text


def test_asset_cache_interface(cache):
    assert cache.store("m1", b"blob", name="Model One", provider="wasm") is True
    assert cache.contains("m1")
    assert cache.fetch("m1") == b"blob"
    assert cache.stats().model_count == 1
    assert cache.delete("m1") is True
    assert cache.delete("m1") is False
    assert cache.fetch("m1") is None


def test_corrupted_entry_with_unreadable_index_is_evicted(cache, store, caplog):
    cache.cache_model("m1", "Model One", b"original bytes", "wasm")
    key = "llm_model_cache_m1"
    entry = decode_entry(store.get("local", key))
    entry.data = b"tampered bytes"
    store.put("local", key, encode_entry(entry))
    store.put("local", "llm_model_metadata", b"{not json")

    with caplog.at_level(logging.WARNING, logger="weightvault.cache.model_cache"):
        assert cache.get_cached_model("m1") is None

    assert store.get("local", key) is None
    assert "metadata index unreadable" in caplog.text


def test_unreadable_index_is_rebuilt_on_write(cache, store):
    store.put("local", "llm_model_metadata", b"\xff\xfe")
    assert cache.cache_model("m1", "Model One", b"data", "wasm") is True
    assert set(cache.list_metadata()) == {"m1"}
    assert cache.remove_cached_model("m1") is True


def test_quota_must_be_positive(store):
    with pytest.raises(ValueError):
        ModelCache(store, Config(cache_quota=0))
