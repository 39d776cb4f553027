"""
Exception hierarchy for weightvault.
"""

from typing import Optional


class WeightVaultError(Exception):
    """Base class for all weightvault errors."""


class FetchFailed(WeightVaultError):
    """Remote fetch returned a non-success status or the transport failed."""

    def __init__(self, url: str, status: Optional[int] = None, reason: str = ""):
        self.url = url
        self.status = status
        if status is not None:
            message = f"Fetch failed: {status} for {url}"
        else:
            message = f"Fetch failed for {url}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class StoreError(WeightVaultError):
    """Base class for persistent store failures."""


class StoreUnavailable(StoreError):
    """The underlying store cannot be opened."""


class WriteFailed(StoreError):
    """A put or delete was rejected by the store."""

    def __init__(self, table: str, key: str, reason: str = ""):
        self.table = table
        self.key = key
        message = f"Write to {table}/{key} failed"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ChecksumMismatch(WeightVaultError):
    """Stored bytes no longer match their recorded digest."""

    def __init__(self, key: str, expected: str, actual: str):
        self.key = key
        self.expected = expected
        self.actual = actual
        super().__init__(f"Checksum mismatch for {key}: expected {expected}, got {actual}")


class CorruptAsset(WeightVaultError):
    """A chunked asset cannot be reassembled (missing or damaged chunk)."""

    def __init__(self, asset_id: str, key: str, reason: str):
        self.asset_id = asset_id
        self.key = key
        super().__init__(f"Asset {asset_id} is corrupt at {key}: {reason}")
