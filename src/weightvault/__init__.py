"""
weightvault - Chunked fetch-and-store engine for large model weight files.
"""

from weightvault.cache import AssetCache, ModelCache, open_cache
from weightvault.core import Config
from weightvault.fetch import ChunkedAssetStore
from weightvault.storage import MemoryStore, SqliteStore

__version__ = "0.1.0"

__all__ = [
    "ChunkedAssetStore",
    "ModelCache",
    "AssetCache",
    "open_cache",
    "MemoryStore",
    "SqliteStore",
    "Config",
]
