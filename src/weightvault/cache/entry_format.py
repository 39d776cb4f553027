"""
Binary record format for whole-blob cache entries.

Layout (little-endian, no padding):
- header struct: magic (4s), format version (B), header length (I), data length (Q)
- JSON header: id, name, version, size, provider, timestamp, checksum
- raw data bytes
"""

import hashlib
import json
import struct
from typing import Tuple

from weightvault.core.contracts import CacheEntry

ENTRY_MAGIC = b"WVCE"
ENTRY_FORMAT_VERSION = 1
ENTRY_HEADER_FORMAT = "<4sBIQ"
ENTRY_HEADER_SIZE = struct.calcsize(ENTRY_HEADER_FORMAT)


def compute_checksum(data: bytes) -> str:
    """SHA-256 hex digest of data."""
    return hashlib.sha256(data).hexdigest()


def encode_entry(entry: CacheEntry) -> bytes:
    """Serialize a cache entry to its binary record."""
    header = json.dumps(
        {
            "id": entry.id,
            "name": entry.name,
            "version": entry.version,
            "size": entry.size,
            "provider": entry.provider,
            "timestamp": entry.timestamp,
            "checksum": entry.checksum,
        }
    ).encode("utf-8")
    prefix = struct.pack(
        ENTRY_HEADER_FORMAT, ENTRY_MAGIC, ENTRY_FORMAT_VERSION, len(header), len(entry.data)
    )
    return prefix + header + bytes(entry.data)


def _split_record(raw: bytes) -> Tuple[dict, int, int]:
    if len(raw) < ENTRY_HEADER_SIZE:
        raise ValueError("Cache entry record is truncated")

    magic, version, header_len, data_len = struct.unpack(
        ENTRY_HEADER_FORMAT, raw[:ENTRY_HEADER_SIZE]
    )
    if magic != ENTRY_MAGIC:
        raise ValueError(f"Bad cache entry magic {magic!r}")
    if version != ENTRY_FORMAT_VERSION:
        raise ValueError(f"Unsupported cache entry format version {version}")

    data_start = ENTRY_HEADER_SIZE + header_len
    if data_start + data_len != len(raw):
        raise ValueError(
            f"Cache entry length mismatch: expected {data_start + data_len} bytes, got {len(raw)}"
        )

    header = json.loads(raw[ENTRY_HEADER_SIZE:data_start].decode("utf-8"))
    return header, data_start, data_len


def decode_entry(raw: bytes) -> CacheEntry:
    """
    Deserialize a binary record into a CacheEntry.

    Does not verify the checksum; callers compare entry.checksum against
    compute_checksum(entry.data).

    Raises:
        ValueError: If the record is malformed
    """
    header, data_start, _ = _split_record(raw)
    return CacheEntry(
        id=header["id"],
        name=header["name"],
        version=header["version"],
        data=raw[data_start:],
        size=header["size"],
        provider=header["provider"],
        timestamp=header["timestamp"],
        checksum=header["checksum"],
    )


def decode_entry_header(raw: bytes) -> dict:
    """Decode only the JSON header of a record (data is not copied)."""
    header, _, _ = _split_record(raw)
    return header
