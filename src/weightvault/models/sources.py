"""
Model source descriptions and bundle fetching.

A model bundle is the main weights file, an optional external-data file,
and the model's config.json. Weights go through the chunked store; the
config is kept as a JSON document in the store's data table.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

from weightvault.core.ids import config_data_key, external_data_id
from weightvault.fetch.pipeline import ChunkedAssetStore
from weightvault.fetch.progress import ProgressSink

logger = logging.getLogger(__name__)


@dataclass
class ModelSource:
    """Where a model's files live. model_id is in "<user>/<repo>" form."""

    model_id: str
    url_base: str = "https://huggingface.co"
    onnx_dir: str = "onnx"
    config_file_name: str = "config.json"
    repo_base: str = "resolve/main"
    model_file_name: str = "model.onnx"
    external_data_file_name: Optional[str] = None

    @property
    def repo_url(self) -> str:
        return f"{self.url_base.rstrip('/')}/{self.model_id}/{self.repo_base}"

    @property
    def config_url(self) -> str:
        return f"{self.repo_url}/{self.config_file_name}"

    @property
    def model_url(self) -> str:
        return f"{self.repo_url}/{self.onnx_dir}/{self.model_file_name}"

    @property
    def external_data_url(self) -> Optional[str]:
        if not self.external_data_file_name:
            return None
        return f"{self.repo_url}/{self.onnx_dir}/{self.external_data_file_name}"


def fetch_model_config(store: ChunkedAssetStore, source: ModelSource) -> Any:
    """Download and parse a model's config.json."""
    url = source.config_url
    response = store.transport.open(url)
    try:
        body = store.transport.read_all(url, response)
    finally:
        response.close()
    return json.loads(body.decode("utf-8"))


def fetch_model_bundle(
    store: ChunkedAssetStore, source: ModelSource, on_progress: Optional[ProgressSink] = None
) -> None:
    """
    Fetch and store every file of a model.

    Stored under:
    - model_id: main weights (streamed)
    - "{model_id}_external": external data, if the source has one
    - "{model_id}_config": parsed config.json (data table)
    """
    store.stream_and_store(source.model_url, source.model_id, on_progress)

    if source.external_data_url:
        store.stream_and_store(
            source.external_data_url, external_data_id(source.model_id), on_progress
        )

    store.store_data(config_data_key(source.model_id), fetch_model_config(store, source))
    logger.info("Fetched model bundle %s", source.model_id)


def load_model_config(store: ChunkedAssetStore, model_id: str) -> Any:
    """Stored config.json of a model, or None."""
    return store.load_data(config_data_key(model_id))


def ensure_model(
    store: ChunkedAssetStore, source: ModelSource, on_progress: Optional[ProgressSink] = None
) -> bool:
    """
    Make sure a model bundle is stored.

    Returns:
        True if a fetch was performed, False if the weights were already present
    """
    if store.has_data(source.model_id):
        return False
    fetch_model_bundle(store, source, on_progress)
    return True
