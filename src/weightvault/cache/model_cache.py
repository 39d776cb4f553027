"""
Checksum-verified whole-blob model cache for small, quota-limited stores.

Every entry is one record holding the model bytes and a SHA-256 checksum.
The checksum is recomputed on every read; a mismatch evicts the entry and
the read reports a miss.
"""

import json
import logging
import time
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional

from weightvault.cache.base import AssetCache
from weightvault.cache.entry_format import (
    compute_checksum,
    decode_entry,
    decode_entry_header,
    encode_entry,
)
from weightvault.core.contracts import CacheEntry, CacheEntryInfo, CacheStats, Config
from weightvault.core.errors import ChecksumMismatch, StoreError
from weightvault.core.ids import cache_entry_key
from weightvault.storage.kv_store import KeyValueStore

logger = logging.getLogger(__name__)


def format_bytes(num_bytes: int) -> str:
    """Format a byte count as a human readable string (e.g. "1.5 MB")."""
    if num_bytes <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB", "TB"]
    value = float(num_bytes)
    i = 0
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    return f"{round(value, 2):g} {units[i]}"


class ModelCache(AssetCache):
    """
    Whole-blob cache in one table of a KeyValueStore.

    Keys in the table:
    - "{cache_prefix}{model_id}": binary entry record (see entry_format)
    - cache_metadata_key: JSON index {model_id: {name, version, size, provider, timestamp}}
    """

    def __init__(
        self,
        store: KeyValueStore,
        config: Optional[Config] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the cache.

        Args:
            store: Quota-limited store
            config: Configuration (cache_table, cache_prefix, cache_metadata_key, cache_quota)
            clock: Returns seconds since epoch; injectable for tests
        """
        self.kv_store = store
        self.config = config or Config()
        self.table = self.config.cache_table
        self.prefix = self.config.cache_prefix
        self.metadata_key = self.config.cache_metadata_key
        self.quota = self.config.cache_quota
        if self.quota < 1:
            raise ValueError(f"cache_quota must be >= 1, got {self.quota}")
        self.clock = clock

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    def _entry_key(self, model_id: str) -> str:
        return cache_entry_key(self.prefix, model_id)

    def _entry_keys(self) -> List[str]:
        return [key for key in self.kv_store.list_keys(self.table) if key.startswith(self.prefix)]

    # Entries

    def cache_model(
        self,
        model_id: str,
        name: str,
        data: bytes,
        provider: str,
        version: str = "1.0.0",
    ) -> bool:
        """
        Cache a model blob.

        Returns:
            True if the entry was written, False if the store rejected it
        """
        entry = CacheEntry(
            id=model_id,
            name=name,
            version=version,
            data=bytes(data),
            size=len(data),
            provider=provider,
            timestamp=self._now_ms(),
            checksum=compute_checksum(data),
        )
        try:
            self.kv_store.put(self.table, self._entry_key(model_id), encode_entry(entry))
            self._update_metadata(model_id, entry.info())
        except StoreError as e:
            logger.error("Failed to cache model %s: %s", model_id, e)
            return False

        logger.info("Model %s cached successfully (%s)", model_id, format_bytes(entry.size))
        return True

    def get_cached_model(self, model_id: str) -> Optional[CacheEntry]:
        """
        Read and verify a cached model.

        A corrupted entry (undecodable, or checksum mismatch) is removed and
        reported as absent.
        """
        raw = self.kv_store.get(self.table, self._entry_key(model_id))
        if raw is None:
            return None

        try:
            entry = decode_entry(raw)
            actual = compute_checksum(entry.data)
            if actual != entry.checksum:
                raise ChecksumMismatch(self._entry_key(model_id), entry.checksum, actual)
        except (ValueError, KeyError, ChecksumMismatch) as e:
            logger.warning("Model %s cache entry corrupted, removing: %s", model_id, e)
            self.remove_cached_model(model_id)
            return None

        logger.debug("Retrieved cached model %s (%s)", model_id, format_bytes(entry.size))
        return entry

    def is_model_cached(self, model_id: str) -> bool:
        return self.get_cached_model(model_id) is not None

    def remove_cached_model(self, model_id: str) -> bool:
        """Delete an entry and its metadata index row."""
        try:
            self.kv_store.delete(self.table, self._entry_key(model_id))
            self._remove_from_metadata(model_id)
        except StoreError as e:
            logger.error("Failed to remove cached model %s: %s", model_id, e)
            return False

        logger.info("Removed cached model %s", model_id)
        return True

    def clear_all_cached_models(self) -> bool:
        """Delete every entry in the cache namespace plus the metadata index."""
        keys = self._entry_keys()
        try:
            for key in keys:
                self.kv_store.delete(self.table, key)
            self.kv_store.delete(self.table, self.metadata_key)
        except StoreError as e:
            logger.error("Failed to clear cached models: %s", e)
            return False

        logger.info("Cleared %d cached models", len(keys))
        return True

    def _read_headers(self) -> List[Dict[str, Any]]:
        headers = []
        for key in self._entry_keys():
            raw = self.kv_store.get(self.table, key)
            if raw is None:
                continue
            try:
                headers.append(decode_entry_header(raw))
            except (ValueError, KeyError) as e:
                logger.warning("Skipping unreadable cache entry %s: %s", key, e)
        return headers

    def get_cached_models(self) -> List[CacheEntry]:
        """All decodable entries, newest first. Checksums are not verified here."""
        entries = []
        for key in self._entry_keys():
            raw = self.kv_store.get(self.table, key)
            if raw is None:
                continue
            try:
                entries.append(decode_entry(raw))
            except (ValueError, KeyError) as e:
                logger.warning("Skipping unreadable cache entry %s: %s", key, e)
        return sorted(entries, key=lambda entry: entry.timestamp, reverse=True)

    # Statistics and eviction

    def get_cache_stats(self) -> CacheStats:
        headers = self._read_headers()
        total_size = sum(header.get("size", 0) for header in headers)
        return CacheStats(
            total_size=total_size,
            model_count=len(headers),
            available_space=max(0, self.quota - total_size),
        )

    def has_enough_space(self, size: int) -> bool:
        return self.get_cache_stats().available_space >= size

    def get_cache_usage_percentage(self) -> float:
        return self.get_cache_stats().total_size / self.quota * 100

    def cleanup_old_models(self, max_age: Optional[timedelta] = None) -> int:
        """
        Remove entries older than max_age (default: config.cache_max_age_days).

        Returns:
            Number of entries removed
        """
        if max_age is None:
            max_age = timedelta(days=self.config.cache_max_age_days)
        max_age_ms = max_age.total_seconds() * 1000
        now = self._now_ms()

        removed_count = 0
        for header in self._read_headers():
            if now - header["timestamp"] > max_age_ms:
                if self.remove_cached_model(header["id"]):
                    removed_count += 1

        logger.info("Cleaned up %d old cached models", removed_count)
        return removed_count

    # Metadata index

    def list_metadata(self) -> Dict[str, CacheEntryInfo]:
        return {
            model_id: CacheEntryInfo(**row) for model_id, row in self._load_metadata().items()
        }

    def _load_metadata(self) -> Dict[str, Dict[str, Any]]:
        raw = self.kv_store.get(self.table, self.metadata_key)
        if raw is None:
            return {}
        try:
            return json.loads(raw.decode("utf-8"))
        except ValueError as e:
            logger.warning("Cache metadata index unreadable, rebuilding: %s", e)
            return {}

    def _save_metadata(self, metadata: Dict[str, Dict[str, Any]]) -> None:
        self.kv_store.put(self.table, self.metadata_key, json.dumps(metadata).encode("utf-8"))

    def _update_metadata(self, model_id: str, info: CacheEntryInfo) -> None:
        metadata = self._load_metadata()
        metadata[model_id] = {
            "name": info.name,
            "version": info.version,
            "size": info.size,
            "provider": info.provider,
            "timestamp": info.timestamp,
        }
        self._save_metadata(metadata)

    def _remove_from_metadata(self, model_id: str) -> None:
        metadata = self._load_metadata()
        if metadata.pop(model_id, None) is not None:
            self._save_metadata(metadata)

    # AssetCache interface

    def contains(self, asset_id: str) -> bool:
        return self.is_model_cached(asset_id)

    def store(self, asset_id: str, data: bytes, **info: Any) -> bool:
        return self.cache_model(
            asset_id,
            info.get("name", asset_id),
            data,
            info.get("provider", "unknown"),
            info.get("version", "1.0.0"),
        )

    def fetch(self, asset_id: str) -> Optional[bytes]:
        entry = self.get_cached_model(asset_id)
        return entry.data if entry is not None else None

    def delete(self, asset_id: str) -> bool:
        if self.kv_store.get(self.table, self._entry_key(asset_id)) is None:
            return False
        return self.remove_cached_model(asset_id)

    def stats(self) -> CacheStats:
        return self.get_cache_stats()

    def close(self) -> None:
        self.kv_store.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
