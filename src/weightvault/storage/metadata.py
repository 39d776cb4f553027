"""
Asset metadata management: encoding and per-chunk integrity checks.
"""

import json
from typing import Dict, List, Optional

import xxhash

from weightvault.core.contracts import AssetMetadata


class AssetMetadataManager:
    """Encodes AssetMetadata records and verifies chunks against them."""

    @staticmethod
    def compute_chunk_checksum(data: bytes) -> int:
        """
        Compute the xxh64 checksum of a chunk.

        Args:
            data: Chunk bytes

        Returns:
            Unsigned 64-bit checksum
        """
        return xxhash.xxh64(data).intdigest()

    @staticmethod
    def create_metadata(
        asset_id: str, chunk_keys: List[str], chunk_lengths: List[int], chunk_checksums: List[int]
    ) -> AssetMetadata:
        """
        Build the metadata record committed after the last chunk write.

        Args:
            asset_id: Asset identifier
            chunk_keys: Ordered chunk keys
            chunk_lengths: Length of each stored chunk, same order
            chunk_checksums: xxh64 of each stored chunk, same order

        Returns:
            AssetMetadata object
        """
        return AssetMetadata(
            asset_id=asset_id,
            chunk_keys=list(chunk_keys),
            total_size=sum(chunk_lengths),
            chunk_checksums=list(chunk_checksums),
        )

    @staticmethod
    def encode(metadata: AssetMetadata) -> bytes:
        """Serialize metadata to JSON bytes."""
        metadata_dict = {
            "asset_id": metadata.asset_id,
            "chunk_keys": metadata.chunk_keys,
            "total_size": metadata.total_size,
            "chunk_checksums": metadata.chunk_checksums,
        }
        return json.dumps(metadata_dict).encode("utf-8")

    @staticmethod
    def decode(raw: bytes) -> AssetMetadata:
        """
        Deserialize metadata from JSON bytes.

        Records written without size or checksums (older layouts) load with
        total_size 0 and an empty checksum list.
        """
        metadata_dict: Dict = json.loads(raw.decode("utf-8"))
        return AssetMetadata(
            asset_id=metadata_dict["asset_id"],
            chunk_keys=list(metadata_dict["chunk_keys"]),
            total_size=metadata_dict.get("total_size", 0),
            chunk_checksums=list(metadata_dict.get("chunk_checksums", [])),
        )

    @staticmethod
    def verify_chunk(metadata: AssetMetadata, index: int, data: bytes) -> Optional[str]:
        """
        Check a chunk read back from the store.

        Returns:
            Error message, or None if the chunk matches (or no checksum is recorded)
        """
        if index >= len(metadata.chunk_checksums):
            return None
        expected = metadata.chunk_checksums[index]
        actual = AssetMetadataManager.compute_chunk_checksum(data)
        if actual != expected:
            return f"xxh64 {actual:016x} != recorded {expected:016x}"
        return None
