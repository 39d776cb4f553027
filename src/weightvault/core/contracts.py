"""
Core data structures (dataclasses) for weightvault.

All records, events and configuration are defined as explicit dataclasses.
"""

import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

MiB = 1024 * 1024

DEFAULT_CHUNK_SIZE = 50 * MiB
DEFAULT_CACHE_QUOTA = 5 * MiB


def _default_db_path() -> str:
    return str(Path.home() / ".weightvault" / "store.db")


@dataclass
class Config:
    """Configuration for the chunked asset store and the whole-blob cache."""

    # Chunked store
    chunk_size: int = DEFAULT_CHUNK_SIZE  # bytes per stored chunk (last may be shorter)
    read_size: int = 1 * MiB  # network batch size passed to iter_content
    verify_chunks: bool = True  # check per-chunk xxhash on read-back
    db_path: str = field(default_factory=_default_db_path)

    # Whole-blob cache
    cache_table: str = "local"
    cache_prefix: str = "llm_model_cache_"
    cache_metadata_key: str = "llm_model_metadata"
    cache_quota: int = DEFAULT_CACHE_QUOTA
    cache_max_age_days: int = 30

    # HTTP
    request_timeout: float = 60.0
    user_agent: str = "weightvault/0.1.0"

    @classmethod
    def from_env(cls, **overrides: Any) -> "Config":
        """
        Build a Config from WEIGHTVAULT_* environment variables.

        Explicit keyword overrides win over the environment.
        """
        env: Dict[str, Any] = {}
        if "WEIGHTVAULT_DB_PATH" in os.environ:
            env["db_path"] = os.environ["WEIGHTVAULT_DB_PATH"]
        if "WEIGHTVAULT_CHUNK_SIZE" in os.environ:
            env["chunk_size"] = int(os.environ["WEIGHTVAULT_CHUNK_SIZE"])
        if "WEIGHTVAULT_CACHE_QUOTA" in os.environ:
            env["cache_quota"] = int(os.environ["WEIGHTVAULT_CACHE_QUOTA"])
        if "WEIGHTVAULT_REQUEST_TIMEOUT" in os.environ:
            env["request_timeout"] = float(os.environ["WEIGHTVAULT_REQUEST_TIMEOUT"])
        env.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**env)


@dataclass
class AssetMetadata:
    """
    Durable pointer to an asset's ordered chunk keys.

    The existence of this record is what makes an asset present. Chunks
    without a metadata record are orphans and are never reassembled.
    """

    asset_id: str
    chunk_keys: List[str]
    total_size: int = 0  # sum of chunk lengths at commit time
    chunk_checksums: List[int] = field(default_factory=list)  # xxh64 per chunk, same order


@dataclass
class CacheEntryInfo:
    """Metadata index row for one whole-blob cache entry."""

    name: str
    version: str
    size: int
    provider: str
    timestamp: int  # milliseconds since epoch


@dataclass
class CacheEntry:
    """A whole-blob cache entry with its SHA-256 checksum."""

    id: str
    name: str
    version: str
    data: bytes
    size: int
    provider: str
    timestamp: int  # milliseconds since epoch
    checksum: str  # sha256 hex digest of data at storage time

    def info(self) -> CacheEntryInfo:
        return CacheEntryInfo(
            name=self.name,
            version=self.version,
            size=self.size,
            provider=self.provider,
            timestamp=self.timestamp,
        )


@dataclass
class CacheStats:
    """Usage statistics for an asset cache."""

    total_size: int
    model_count: int
    available_space: Optional[int]  # None when the backend has no quota


# Progress events. Each variant carries a literal ``type`` tag so sinks can
# dispatch on it the same way whether they receive the dataclass or to_dict().


@dataclass
class ProgressEvent:
    """Base class for progress events."""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class DownloadProgress(ProgressEvent):
    url: str
    loaded: int
    total: Optional[int] = None
    type: Literal["download"] = "download"


@dataclass
class ChunkStored(ProgressEvent):
    asset_id: str
    chunk_index: int
    bytes_stored: int
    type: Literal["chunkStored"] = "chunkStored"


@dataclass
class Complete(ProgressEvent):
    asset_id: str
    total_bytes: int
    type: Literal["complete"] = "complete"


@dataclass
class ErrorEvent(ProgressEvent):
    asset_id: str
    error: str
    type: Literal["error"] = "error"


@dataclass
class InfoEvent(ProgressEvent):
    asset_id: str
    msg: str
    part: Optional[str] = None
    type: Literal["info"] = "info"
