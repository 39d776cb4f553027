"""
Storage layer: key-value store adapters, chunking, and asset metadata.
"""

from weightvault.storage.chunking import assemble_chunks, chunk_sizes, split_buffer
from weightvault.storage.kv_store import KeyValueStore, MemoryStore, SqliteStore
from weightvault.storage.metadata import AssetMetadataManager

__all__ = [
    "KeyValueStore",
    "MemoryStore",
    "SqliteStore",
    "split_buffer",
    "assemble_chunks",
    "chunk_sizes",
    "AssetMetadataManager",
]
