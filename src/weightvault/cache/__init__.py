"""
Asset caches: the shared interface and the checksum-verified whole-blob cache.
"""

from weightvault.cache.base import AssetCache, open_cache
from weightvault.cache.model_cache import ModelCache, format_bytes

__all__ = [
    "AssetCache",
    "open_cache",
    "ModelCache",
    "format_bytes",
]
