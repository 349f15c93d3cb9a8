"""Stable public API exports.

Attributes resolve lazily so importing ``folio.api.exceptions`` does not pull
torch or scikit-learn into memory.
"""

from __future__ import annotations

from importlib import import_module
from typing import Any

from folio.api.exceptions import (
    FolioAPIError,
    FolioArtifactError,
    FolioError,
    FolioNotImplementedError,
    FolioValidationError,
)

__all__ = [
    "Artifact",
    "ClusterResult",
    "EnrichResult",
    "FolioAPIError",
    "FolioArtifactError",
    "FolioError",
    "FolioNotImplementedError",
    "FolioValidationError",
    "Prediction",
    "SiteBuildResult",
    "TrainResult",
    "build_site",
    "cluster",
    "enrich",
    "predict",
    "train_classifier",
]


def __getattr__(name: str) -> Any:
    if name == "Artifact":
        return getattr(import_module("folio.api.artifact"), name)
    if name in {"build_site", "cluster", "enrich", "predict", "train_classifier"}:
        return getattr(import_module("folio.api.runner"), name)
    if name in {"ClusterResult", "EnrichResult", "Prediction", "SiteBuildResult", "TrainResult"}:
        return getattr(import_module("folio.api.types"), name)
    raise AttributeError(f"module 'folio.api' has no attribute '{name}'")
