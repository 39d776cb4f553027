"""
Chunked fetch-and-store engine.

Assets are downloaded over HTTP and persisted as fixed-size chunk records
plus one metadata record listing the chunk keys in order.

Write ordering:
- chunks are written first, one record per chunk, never mutated
- the metadata record is written last and is the commit point; an asset
  is present iff its metadata exists
- a failure before the metadata write leaves orphan chunks that are never
  reassembled (purge_orphan_chunks reclaims them)
"""

import json
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

import requests

from weightvault.cache.base import AssetCache
from weightvault.core.contracts import AssetMetadata, CacheStats, Config
from weightvault.core.errors import CorruptAsset, FetchFailed
from weightvault.core.ids import chunk_key, parse_chunk_key
from weightvault.fetch.progress import ProgressReporter, ProgressSink
from weightvault.fetch.transport import HttpTransport, content_length
from weightvault.storage.chunking import assemble_chunks, split_buffer
from weightvault.storage.kv_store import KeyValueStore
from weightvault.storage.metadata import AssetMetadataManager

logger = logging.getLogger(__name__)


class _ChunkWriter:
    """Bookkeeping for the chunks of one asset while it is being stored."""

    def __init__(self, owner: "ChunkedAssetStore", asset_id: str, reporter: ProgressReporter):
        self.owner = owner
        self.asset_id = asset_id
        self.reporter = reporter
        self.chunk_keys: List[str] = []
        self.chunk_lengths: List[int] = []
        self.chunk_checksums: List[int] = []

    @property
    def chunk_counter(self) -> int:
        return len(self.chunk_keys)

    def write(self, data: bytes) -> None:
        """Persist one chunk under the next ordinal key."""
        index = self.chunk_counter
        key = chunk_key(self.asset_id, index)
        self.owner.kv_store.put(self.owner.CHUNKS_TABLE, key, data)
        self.chunk_keys.append(key)
        self.chunk_lengths.append(len(data))
        self.chunk_checksums.append(AssetMetadataManager.compute_chunk_checksum(data))
        logger.debug("Stored chunk %s (%d bytes)", key, len(data))
        self.reporter.chunk_stored(self.asset_id, index, len(data))

    def commit(self) -> AssetMetadata:
        """Write the metadata record. Must be the last write of the asset."""
        metadata = AssetMetadataManager.create_metadata(
            self.asset_id, self.chunk_keys, self.chunk_lengths, self.chunk_checksums
        )
        self.owner.kv_store.put(
            self.owner.MODELS_TABLE, self.asset_id, AssetMetadataManager.encode(metadata)
        )
        return metadata


class ChunkedAssetStore(AssetCache):
    """
    Stores large binary assets as chunk records in a KeyValueStore.

    Tables:
    - chunks: "{asset_id}::chunk::{index}" -> chunk bytes
    - models: asset_id -> JSON AssetMetadata
    - data: key -> JSON document (model configs and similar small data)

    Concurrent calls for the same asset_id are serialized in-process: the
    second caller waits for the first, then finds the metadata and does not
    download again.
    """

    CHUNKS_TABLE = "chunks"
    MODELS_TABLE = "models"
    DATA_TABLE = "data"

    def __init__(
        self,
        store: KeyValueStore,
        config: Optional[Config] = None,
        transport: Optional[HttpTransport] = None,
    ):
        """
        Initialize the asset store.

        Args:
            store: Persistent store (shared ownership stays with the caller)
            config: Configuration (chunk_size, read_size, verify_chunks, HTTP settings)
            transport: HTTP transport; built from config if omitted
        """
        self.kv_store = store
        self.config = config or Config()
        self.chunk_size = self.config.chunk_size
        if self.chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {self.chunk_size}")
        self.transport = transport or HttpTransport(self.config)

        self._registry_lock = threading.Lock()
        self._inflight: Dict[str, list] = {}  # asset_id -> [lock, waiter count]

    @contextmanager
    def _single_flight(self, asset_id: str):
        with self._registry_lock:
            entry = self._inflight.get(asset_id)
            if entry is None:
                entry = self._inflight[asset_id] = [threading.Lock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._registry_lock:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._inflight[asset_id]

    # Metadata

    def get_metadata(self, asset_id: str) -> Optional[AssetMetadata]:
        raw = self.kv_store.get(self.MODELS_TABLE, asset_id)
        if raw is None:
            return None
        return AssetMetadataManager.decode(raw)

    def has_data(self, asset_id: str) -> bool:
        """True iff the asset's metadata record exists."""
        return self.kv_store.get(self.MODELS_TABLE, asset_id) is not None

    def list_assets(self) -> List[AssetMetadata]:
        assets = []
        for asset_id in self.kv_store.list_keys(self.MODELS_TABLE):
            metadata = self.get_metadata(asset_id)
            if metadata is not None:
                assets.append(metadata)
        return assets

    # Fetch and store

    def stream_and_store(
        self, url: str, asset_id: str, on_progress: Optional[ProgressSink] = None
    ) -> None:
        """
        Stream an asset from url into the store without buffering it whole.

        Does nothing (beyond an info event) if the asset is already present.

        Args:
            url: Asset URL
            asset_id: Identifier to store the asset under
            on_progress: Optional sink for progress events

        Raises:
            FetchFailed: Non-2xx status or transport error (nothing written)
            WriteFailed: A chunk or metadata write was rejected (flushed
                chunks are left in place)
        """
        reporter = ProgressReporter(on_progress)
        with self._single_flight(asset_id):
            if self.has_data(asset_id):
                reporter.info(asset_id, "Already cached")
                return

            try:
                response = self.transport.open(url)
                try:
                    reader = self.transport.stream_reader(response)
                    if reader is None:
                        self._fetch_buffered(url, asset_id, response, reporter)
                        return
                    total_bytes = self._stream_chunks(url, asset_id, response, reader, reporter)
                finally:
                    response.close()
            except Exception as e:
                reporter.error(asset_id, str(e))
                raise

        logger.info("Stored %s from %s (%d bytes)", asset_id, url, total_bytes)
        reporter.complete(asset_id, total_bytes)

    def _stream_chunks(
        self,
        url: str,
        asset_id: str,
        response: requests.Response,
        reader: Iterator[bytes],
        reporter: ProgressReporter,
    ) -> int:
        chunk_size = self.chunk_size
        total = content_length(response)
        writer = _ChunkWriter(self, asset_id, reporter)

        buffer = bytearray(chunk_size)
        offset = 0
        received = 0

        try:
            for batch in reader:
                if not batch:
                    continue
                view = memoryview(batch)
                while len(view):
                    to_copy = min(chunk_size - offset, len(view))
                    buffer[offset : offset + to_copy] = view[:to_copy]
                    offset += to_copy
                    received += to_copy
                    view = view[to_copy:]
                    reporter.download(url, received, total)
                    if offset == chunk_size:
                        writer.write(bytes(buffer))
                        offset = 0
        except requests.RequestException as e:
            raise FetchFailed(url, reason=str(e)) from e

        if offset > 0:
            writer.write(bytes(buffer[:offset]))

        writer.commit()
        return received

    def _fetch_buffered(
        self, url: str, asset_id: str, response: requests.Response, reporter: ProgressReporter
    ) -> bytes:
        data = self.transport.read_all(
            url, response, lambda loaded, total: reporter.download(url, loaded, total)
        )
        self._write_chunks(asset_id, data, reporter)
        logger.info("Stored %s from %s (%d bytes, buffered)", asset_id, url, len(data))
        reporter.complete(asset_id, len(data))
        return data

    def _write_chunks(self, asset_id: str, data: bytes, reporter: ProgressReporter) -> AssetMetadata:
        writer = _ChunkWriter(self, asset_id, reporter)
        for piece in split_buffer(data, self.chunk_size):
            writer.write(piece)
        return writer.commit()

    def load_or_fetch_model(
        self, url: str, asset_id: str, on_progress: Optional[ProgressSink] = None
    ) -> bytes:
        """
        Return the asset's bytes, fetching and storing it first if absent.

        Args:
            url: Asset URL (only used if the asset is not stored yet)
            asset_id: Asset identifier
            on_progress: Optional sink for progress events

        Returns:
            Full asset bytes
        """
        reporter = ProgressReporter(on_progress)
        with self._single_flight(asset_id):
            metadata = self.get_metadata(asset_id)
            if metadata is not None:
                try:
                    data = self._reassemble(metadata)
                except CorruptAsset as e:
                    reporter.error(asset_id, str(e))
                    raise
                reporter.complete(asset_id, len(data))
                return data

            try:
                response = self.transport.open(url)
                try:
                    return self._fetch_buffered(url, asset_id, response, reporter)
                finally:
                    response.close()
            except Exception as e:
                reporter.error(asset_id, str(e))
                raise

    # Read-back

    def iter_chunks(self, metadata: AssetMetadata) -> Iterator[bytes]:
        """
        Yield an asset's chunks in order, verifying each one.

        Raises:
            CorruptAsset: A chunk is missing or fails its checksum
        """
        for index, key in enumerate(metadata.chunk_keys):
            data = self.kv_store.get(self.CHUNKS_TABLE, key)
            if data is None:
                raise CorruptAsset(metadata.asset_id, key, "chunk missing")
            if self.config.verify_chunks:
                problem = AssetMetadataManager.verify_chunk(metadata, index, data)
                if problem:
                    raise CorruptAsset(metadata.asset_id, key, problem)
            yield data

    def _reassemble(self, metadata: AssetMetadata) -> bytes:
        return assemble_chunks(self.iter_chunks(metadata))

    def read_asset(self, asset_id: str) -> Optional[bytes]:
        """Reassemble a stored asset, or None if it is not present."""
        metadata = self.get_metadata(asset_id)
        if metadata is None:
            return None
        return self._reassemble(metadata)

    def export_asset(self, asset_id: str, path) -> int:
        """
        Write a stored asset to a file one chunk at a time.

        Returns:
            Number of bytes written

        Raises:
            KeyError: If the asset is not present
        """
        metadata = self.get_metadata(asset_id)
        if metadata is None:
            raise KeyError(asset_id)

        output = Path(path)
        written = 0
        try:
            with open(output, "wb") as f:
                for data in self.iter_chunks(metadata):
                    f.write(data)
                    written += len(data)
        except CorruptAsset:
            output.unlink(missing_ok=True)
            raise
        return written

    # Deletion

    def delete_asset(self, asset_id: str) -> bool:
        """
        Delete an asset's chunks, then its metadata.

        Individual chunk-delete failures are logged and skipped so one bad
        chunk never blocks cleanup.

        Returns:
            False if the asset was not present, True otherwise
        """
        metadata = self.get_metadata(asset_id)
        if metadata is None:
            return False

        for key in metadata.chunk_keys:
            try:
                self.kv_store.delete(self.CHUNKS_TABLE, key)
            except Exception as e:
                logger.warning("Failed to delete chunk %s of %s: %s", key, asset_id, e)

        try:
            self.kv_store.delete(self.MODELS_TABLE, asset_id)
        except Exception as e:
            logger.warning("Failed to delete metadata of %s: %s", asset_id, e)

        logger.info("Deleted %s (%d chunks)", asset_id, len(metadata.chunk_keys))
        return True

    def find_orphan_chunks(self) -> List[str]:
        """Chunk keys not referenced by any metadata record."""
        referenced = set()
        for metadata in self.list_assets():
            referenced.update(metadata.chunk_keys)
        return [
            key
            for key in self.kv_store.list_keys(self.CHUNKS_TABLE)
            if key not in referenced and parse_chunk_key(key) is not None
        ]

    def purge_orphan_chunks(self) -> int:
        """
        Delete chunks left behind by aborted fetches.

        Must not run while a fetch is in flight: that fetch's chunks are
        orphans until its metadata is committed.
        """
        orphans = self.find_orphan_chunks()
        for key in orphans:
            self.kv_store.delete(self.CHUNKS_TABLE, key)
        if orphans:
            logger.info("Purged %d orphan chunks", len(orphans))
        return len(orphans)

    # Generic JSON data

    def store_data(self, key: str, value: Any) -> None:
        self.kv_store.put(self.DATA_TABLE, key, json.dumps(value).encode("utf-8"))

    def load_data(self, key: str) -> Any:
        raw = self.kv_store.get(self.DATA_TABLE, key)
        if raw is None:
            return None
        return json.loads(raw.decode("utf-8"))

    # AssetCache interface

    def contains(self, asset_id: str) -> bool:
        return self.has_data(asset_id)

    def store(self, asset_id: str, data: bytes, **info: Any) -> bool:
        """Store bytes directly. Assets are write-once: returns False if present."""
        with self._single_flight(asset_id):
            if self.has_data(asset_id):
                return False
            self._write_chunks(asset_id, data, ProgressReporter(info.get("on_progress")))
        return True

    def fetch(self, asset_id: str) -> Optional[bytes]:
        return self.read_asset(asset_id)

    def delete(self, asset_id: str) -> bool:
        return self.delete_asset(asset_id)

    def stats(self) -> CacheStats:
        assets = self.list_assets()
        return CacheStats(
            total_size=sum(metadata.total_size for metadata in assets),
            model_count=len(assets),
            available_space=None,
        )

    def close(self) -> None:
        self.kv_store.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
