"""
Tests for progress events and the reporter.
"""

import logging

from weightvault.core.contracts import ChunkStored, Complete, DownloadProgress, ErrorEvent, InfoEvent
from weightvault.fetch.progress import ProgressReporter, logging_sink


def test_reporter_builds_tagged_events(events):
    reporter = ProgressReporter(events.append)
    reporter.download("http://x/model.onnx", 5, 20)
    reporter.chunk_stored("m", 0, 10)
    reporter.complete("m", 20)
    reporter.error("m", "boom")
    reporter.info("m", "Already cached")

    assert events == [
        DownloadProgress(url="http://x/model.onnx", loaded=5, total=20),
        ChunkStored(asset_id="m", chunk_index=0, bytes_stored=10),
        Complete(asset_id="m", total_bytes=20),
        ErrorEvent(asset_id="m", error="boom"),
        InfoEvent(asset_id="m", msg="Already cached"),
    ]
    assert [e.type for e in events] == ["download", "chunkStored", "complete", "error", "info"]


def test_reporter_without_sink_is_silent():
    ProgressReporter().complete("m", 1)


def test_event_to_dict():
    assert ChunkStored(asset_id="m", chunk_index=2, bytes_stored=7).to_dict() == {
        "asset_id": "m",
        "chunk_index": 2,
        "bytes_stored": 7,
        "type": "chunkStored",
    }


def test_logging_sink(caplog):
    sink = logging_sink(logging.getLogger("progress-test"))
    with caplog.at_level(logging.INFO, logger="progress-test"):
        sink(Complete(asset_id="m", total_bytes=3))
    assert "'type': 'complete'" in caplog.text
