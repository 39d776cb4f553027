"""
Progress reporting for fetch-and-store operations.

Events are delivered synchronously to an optional sink. There is no
buffering or backpressure: the sink runs inline with the pipeline.
"""

import logging
from typing import Callable, Optional

from weightvault.core.contracts import (
    ChunkStored,
    Complete,
    DownloadProgress,
    ErrorEvent,
    InfoEvent,
    ProgressEvent,
)

ProgressSink = Callable[[ProgressEvent], None]


class ProgressReporter:
    """Builds progress events and forwards them to a sink."""

    def __init__(self, sink: Optional[ProgressSink] = None):
        self.sink = sink

    def emit(self, event: ProgressEvent) -> None:
        if self.sink is not None:
            self.sink(event)

    def download(self, url: str, loaded: int, total: Optional[int] = None) -> None:
        self.emit(DownloadProgress(url=url, loaded=loaded, total=total))

    def chunk_stored(self, asset_id: str, chunk_index: int, bytes_stored: int) -> None:
        self.emit(ChunkStored(asset_id=asset_id, chunk_index=chunk_index, bytes_stored=bytes_stored))

    def complete(self, asset_id: str, total_bytes: int) -> None:
        self.emit(Complete(asset_id=asset_id, total_bytes=total_bytes))

    def error(self, asset_id: str, error: str) -> None:
        self.emit(ErrorEvent(asset_id=asset_id, error=error))

    def info(self, asset_id: str, msg: str, part: Optional[str] = None) -> None:
        self.emit(InfoEvent(asset_id=asset_id, msg=msg, part=part))


def logging_sink(logger: logging.Logger, level: int = logging.INFO) -> ProgressSink:
    """Sink that writes every event to a logger."""

    def sink(event: ProgressEvent) -> None:
        logger.log(level, "%s", event.to_dict())

    return sink
