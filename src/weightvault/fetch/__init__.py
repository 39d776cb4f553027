"""
Fetch layer: HTTP transport, progress reporting, and the chunked fetch-and-store engine.
"""

from weightvault.fetch.pipeline import ChunkedAssetStore
from weightvault.fetch.progress import ProgressReporter, logging_sink
from weightvault.fetch.transport import HttpTransport, content_length

__all__ = [
    "ChunkedAssetStore",
    "ProgressReporter",
    "logging_sink",
    "HttpTransport",
    "content_length",
]
