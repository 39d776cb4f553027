"""
Core contracts, key derivation and errors for weightvault.
"""

from weightvault.core.contracts import (
    AssetMetadata,
    CacheEntry,
    CacheEntryInfo,
    CacheStats,
    ChunkStored,
    Complete,
    Config,
    DownloadProgress,
    ErrorEvent,
    InfoEvent,
    ProgressEvent,
)
from weightvault.core.errors import (
    ChecksumMismatch,
    CorruptAsset,
    FetchFailed,
    StoreError,
    StoreUnavailable,
    WeightVaultError,
    WriteFailed,
)
from weightvault.core.ids import chunk_key, parse_chunk_key

__all__ = [
    "Config",
    "AssetMetadata",
    "CacheEntry",
    "CacheEntryInfo",
    "CacheStats",
    "ProgressEvent",
    "DownloadProgress",
    "ChunkStored",
    "Complete",
    "ErrorEvent",
    "InfoEvent",
    "WeightVaultError",
    "FetchFailed",
    "StoreError",
    "StoreUnavailable",
    "WriteFailed",
    "ChecksumMismatch",
    "CorruptAsset",
    "chunk_key",
    "parse_chunk_key",
]
