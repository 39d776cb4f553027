"""
Common interface of the two asset caching schemes.

ChunkedAssetStore (table store, large assets split into chunks) and
ModelCache (flat quota-limited store, one checksummed blob per entry) both
implement AssetCache, so callers pick a backend by deployment context and
use the same five operations.
"""

from typing import Any, Optional

from weightvault.core.contracts import CacheStats, Config
from weightvault.storage.kv_store import KeyValueStore, SqliteStore


class AssetCache:
    """Abstract content cache keyed by asset id."""

    def contains(self, asset_id: str) -> bool:
        raise NotImplementedError

    def store(self, asset_id: str, data: bytes, **info: Any) -> bool:
        """Persist data under asset_id. Returns False if nothing was written."""
        raise NotImplementedError

    def fetch(self, asset_id: str) -> Optional[bytes]:
        raise NotImplementedError

    def delete(self, asset_id: str) -> bool:
        raise NotImplementedError

    def stats(self) -> CacheStats:
        raise NotImplementedError


def open_cache(kind: str, config: Config, store: Optional[KeyValueStore] = None) -> AssetCache:
    """
    Construct an asset cache.

    Args:
        kind: "chunked" for large assets, "blob" for the quota-limited cache
        config: Configuration (db_path is used when store is omitted)
        store: Existing store to share; a SqliteStore is opened otherwise

    Returns:
        AssetCache implementation
    """
    if store is None:
        store = SqliteStore(config.db_path)

    if kind == "chunked":
        from weightvault.fetch.pipeline import ChunkedAssetStore

        return ChunkedAssetStore(store, config)
    if kind == "blob":
        from weightvault.cache.model_cache import ModelCache

        return ModelCache(store, config)
    raise ValueError(f"Unknown cache kind: {kind!r} (expected 'chunked' or 'blob')")
