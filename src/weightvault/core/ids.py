"""
Deterministic key derivation for weightvault.

Key Policy:
- chunk key: "{asset_id}::chunk::{index}" - derived from (asset_id, ordinal)
- metadata key: the asset_id itself
- cache entry key: "{cache_prefix}{model_id}" - flat namespace shared with
  the cache metadata index
"""

from typing import Optional, Tuple

CHUNK_KEY_SEPARATOR = "::chunk::"


def chunk_key(asset_id: str, index: int) -> str:
    """
    Generate the storage key of a chunk.

    Args:
        asset_id: Caller-supplied asset identifier
        index: Ordinal position of the chunk (0-based)

    Returns:
        Deterministic chunk key
    """
    if index < 0:
        raise ValueError(f"chunk index must be non-negative, got {index}")
    return f"{asset_id}{CHUNK_KEY_SEPARATOR}{index}"


def parse_chunk_key(key: str) -> Optional[Tuple[str, int]]:
    """
    Split a chunk key back into (asset_id, index).

    The separator is searched from the right, so asset ids that themselves
    contain "::chunk::" still round-trip.

    Returns:
        (asset_id, index) or None if key is not a chunk key
    """
    asset_id, sep, index = key.rpartition(CHUNK_KEY_SEPARATOR)
    if not sep or not index.isdigit():
        return None
    return asset_id, int(index)


def cache_entry_key(prefix: str, model_id: str) -> str:
    """Generate the namespaced key of a whole-blob cache entry."""
    return f"{prefix}{model_id}"


def external_data_id(model_id: str) -> str:
    """Asset id used for a model's external-data file."""
    return f"{model_id}_external"


def config_data_key(model_id: str) -> str:
    """Data key used for a model's parsed config.json."""
    return f"{model_id}_config"
