"""Shared fixtures: an in-process HTTP session stub and small-chunk stores."""

import io
import threading
from typing import Dict, List, Tuple, Union

import pytest
import requests

from weightvault.core import Config
from weightvault.fetch.pipeline import ChunkedAssetStore
from weightvault.fetch.transport import HttpTransport
from weightvault.storage.kv_store import MemoryStore

Route = Union[bytes, Tuple[int, bytes]]


def make_response(body: bytes, status: int = 200, with_length: bool = True, streaming: bool = True):
    """Build a real requests.Response over an in-memory body."""
    response = requests.Response()
    response.status_code = status
    if with_length:
        response.headers["Content-Length"] = str(len(body))
    if streaming:
        response.raw = io.BytesIO(body)
    else:
        # No underlying stream: body is only available as a whole.
        response.raw = None
        response._content = body
        response._content_consumed = True
    return response


class FakeSession:
    """Stands in for requests.Session; serves bodies from a route table."""

    def __init__(self, routes: Dict[str, Route] = None, streaming: bool = True, with_length: bool = True):
        self.routes = dict(routes or {})
        self.streaming = streaming
        self.with_length = with_length
        self.calls: List[str] = []
        self._lock = threading.Lock()

    def get(self, url, stream=False, timeout=None):
        with self._lock:
            self.calls.append(url)
        if url not in self.routes:
            return make_response(b"not found", status=404)
        route = self.routes[url]
        status, body = route if isinstance(route, tuple) else (200, route)
        return make_response(body, status=status, with_length=self.with_length, streaming=self.streaming)


class RaisingSession(FakeSession):
    """Session whose requests fail at the transport level."""

    def get(self, url, stream=False, timeout=None):
        self.calls.append(url)
        raise requests.ConnectionError(f"cannot reach {url}")


@pytest.fixture
def config():
    return Config(chunk_size=10, read_size=4, db_path=":memory:")


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def assets(memory_store, config, session):
    return ChunkedAssetStore(memory_store, config, HttpTransport(config, session))


@pytest.fixture
def events():
    return []


@pytest.fixture
def raising_session():
    return RaisingSession()


@pytest.fixture
def make_assets(config):
    """Factory for stores with a custom session, backend or config."""

    def factory(session=None, store=None, cfg=None):
        cfg = cfg or config
        return ChunkedAssetStore(
            store if store is not None else MemoryStore(),
            cfg,
            HttpTransport(cfg, session if session is not None else FakeSession()),
        )

    return factory
