"""
Model sources: URL layout of model repositories and bundle fetching.
"""

from weightvault.models.sources import (
    ModelSource,
    ensure_model,
    fetch_model_bundle,
    fetch_model_config,
    load_model_config,
)

__all__ = [
    "ModelSource",
    "ensure_model",
    "fetch_model_bundle",
    "fetch_model_config",
    "load_model_config",
]
