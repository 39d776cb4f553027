"""
Basic usage example for weightvault.
"""

import logging

from weightvault import ChunkedAssetStore, Config, ModelCache, SqliteStore
from weightvault.fetch.progress import logging_sink
from weightvault.models import ModelSource, ensure_model, load_model_config

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("basic_usage")

config = Config(db_path="weightvault.db")

# Stream a model bundle into the chunked store
print("Fetching model...")
source = ModelSource(model_id="onnx-community/gpt2", model_file_name="model_quantized.onnx")
with ChunkedAssetStore(SqliteStore(config.db_path), config) as assets:
    ensure_model(assets, source, logging_sink(logger))
    print(f"Config: {load_model_config(assets, source.model_id)}")

    # Read the weights back
    weights = assets.load_or_fetch_model(source.model_url, source.model_id)
    print(f"Loaded {len(weights)} bytes")

    for metadata in assets.list_assets():
        print(f"{metadata.asset_id}: {len(metadata.chunk_keys)} chunks, {metadata.total_size} bytes")

# Small models fit the whole-blob cache
print("\nCaching a small model...")
with ModelCache(SqliteStore(config.db_path), config) as cache:
    cache.cache_model("tiny", "Tiny Model", b"\x00" * 1024, provider="wasm")
    stats = cache.get_cache_stats()
    print(f"{stats.model_count} cached, {stats.total_size} bytes used, {stats.available_space} free")
