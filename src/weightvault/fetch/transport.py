"""
HTTP transport for weightvault, built on a requests session.
"""

import logging
from typing import Callable, Iterator, Optional

import requests

from weightvault.core.contracts import Config
from weightvault.core.errors import FetchFailed

logger = logging.getLogger(__name__)


def content_length(response: requests.Response) -> Optional[int]:
    """Declared Content-Length of a response, or None if absent or malformed."""
    value = response.headers.get("Content-Length")
    if value is None:
        return None
    try:
        length = int(value)
    except ValueError:
        return None
    return length if length >= 0 else None


class HttpTransport:
    """Opens GET requests and exposes their bodies as byte batches."""

    def __init__(self, config: Config, session: Optional[requests.Session] = None):
        """
        Initialize the transport.

        Args:
            config: Configuration (read_size, request_timeout, user_agent)
            session: Session to reuse; a new one is created if omitted
        """
        self.config = config
        if session is None:
            session = requests.Session()
            session.headers.update({"User-Agent": config.user_agent})
        self.session = session

    def open(self, url: str) -> requests.Response:
        """
        Start a streaming GET.

        Raises:
            FetchFailed: On transport errors or a non-2xx status. The response
                is closed before raising.
        """
        try:
            response = self.session.get(url, stream=True, timeout=self.config.request_timeout)
        except requests.RequestException as e:
            raise FetchFailed(url, reason=str(e)) from e

        if not 200 <= response.status_code < 300:
            response.close()
            raise FetchFailed(url, status=response.status_code)

        logger.debug("GET %s -> %s (length=%s)", url, response.status_code, content_length(response))
        return response

    def stream_reader(self, response: requests.Response) -> Optional[Iterator[bytes]]:
        """
        Byte-batch iterator over the body, or None if the response has no
        underlying stream to read incrementally.
        """
        if response.raw is None:
            return None
        return response.iter_content(chunk_size=self.config.read_size)

    def read_all(
        self,
        url: str,
        response: requests.Response,
        on_bytes: Optional[Callable[[int, Optional[int]], None]] = None,
    ) -> bytes:
        """
        Read the entire body into memory.

        Args:
            url: Request URL (for error messages)
            response: Open response
            on_bytes: Called with (received, total) after every batch

        Returns:
            Full body
        """
        total = content_length(response)
        reader = self.stream_reader(response)
        try:
            if reader is None:
                body = response.content or b""
                if on_bytes is not None:
                    on_bytes(len(body), total)
                return body

            parts = bytearray()
            for batch in reader:
                if not batch:
                    continue
                parts += batch
                if on_bytes is not None:
                    on_bytes(len(parts), total)
            return bytes(parts)
        except requests.RequestException as e:
            raise FetchFailed(url, reason=str(e)) from e
