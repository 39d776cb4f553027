"""
Tests for the key-value store adapters.
"""

import pytest

from weightvault.core.errors import StoreUnavailable
from weightvault.storage.kv_store import MemoryStore, SqliteStore


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        kv = MemoryStore()
    else:
        kv = SqliteStore(tmp_path / "store.db")
    yield kv
    kv.close()


def test_get_absent_key(store):
    assert store.get("chunks", "missing") is None


def test_put_get_delete(store):
    store.put("chunks", "a", b"\x00\x01\x02")
    assert store.get("chunks", "a") == b"\x00\x01\x02"

    store.delete("chunks", "a")
    assert store.get("chunks", "a") is None


def test_put_replaces_value(store):
    store.put("models", "m", b"one")
    store.put("models", "m", b"two")
    assert store.get("models", "m") == b"two"


def test_delete_absent_key_is_not_an_error(store):
    store.delete("chunks", "never-written")
    store.delete("unknown_table", "never-written")


def test_tables_are_independent(store):
    store.put("chunks", "k", b"chunk")
    store.put("models", "k", b"meta")
    assert store.get("chunks", "k") == b"chunk"
    assert store.get("models", "k") == b"meta"


def test_list_keys_sorted(store):
    for key in ["b", "a", "c"]:
        store.put("chunks", key, b"x")
    assert store.list_keys("chunks") == ["a", "b", "c"]
    assert store.list_keys("empty_table") == []


def test_invalid_table_name_rejected(store):
    with pytest.raises(ValueError):
        store.put("chunks; DROP TABLE models", "k", b"x")


def test_sqlite_store_persists_across_connections(tmp_path):
    path = tmp_path / "store.db"
    with SqliteStore(path) as first:
        first.put("chunks", "k", b"payload")

    with SqliteStore(path) as second:
        assert second.get("chunks", "k") == b"payload"


def test_sqlite_store_unavailable(tmp_path):
    """Opening a store under a regular file fails with StoreUnavailable."""
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("file")
    with pytest.raises(StoreUnavailable):
        SqliteStore(blocker / "store.db")
