"""Stable Artifact API."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from folio import __version__
from folio.api.exceptions import FolioValidationError
from folio.artifact.manifest import Manifest, build_manifest
from folio.artifact.store import load_artifact, save_artifact
from folio.config.models import ProjectConfig
from folio.vision.checkpoint import model_from_payload, predict_proba
from folio.vision.dataset import images_to_tensor
from folio.vision.network import GenderCNN


class Artifact:
    """Serializable run result passed across API/CLI/site boundaries."""

    def __init__(
        self,
        project_config: ProjectConfig,
        manifest: Manifest,
        feature_schema: dict[str, Any] | None = None,
        metrics: dict[str, Any] | None = None,
        search_results: pd.DataFrame | None = None,
        assignments: pd.DataFrame | None = None,
        cluster_profile: pd.DataFrame | None = None,
        centroids: pd.DataFrame | None = None,
        elbow: pd.DataFrame | None = None,
        timeline: pd.DataFrame | None = None,
        history: list[dict[str, Any]] | None = None,
        confusion: dict[str, Any] | None = None,
        checkpoint: dict[str, Any] | None = None,
    ) -> None:
        self.project_config = project_config
        self.manifest = manifest
        self.feature_schema = feature_schema or {}
        self.metrics = metrics or {}
        self.search_results = search_results
        self.assignments = assignments
        self.cluster_profile = cluster_profile
        self.centroids = centroids
        self.elbow = elbow
        self.timeline = timeline
        self.history = history
        self.confusion = confusion
        self.checkpoint = checkpoint
        self._model: GenderCNN | None = None

    @property
    def run_id(self) -> str:
        return self.manifest.run_id

    @property
    def task_type(self) -> str:
        return self.manifest.task_type

    @classmethod
    def from_config(
        cls,
        project_config: ProjectConfig,
        run_id: str,
        **payloads: Any,
    ) -> "Artifact":
        manifest = build_manifest(
            config=project_config,
            run_id=run_id,
            project_version=__version__,
        )
        return cls(project_config=project_config, manifest=manifest, **payloads)

    @classmethod
    def load(cls, path: str | Path) -> "Artifact":
        project_config, manifest, feature_schema, extras = load_artifact(path)
        return cls(
            project_config=project_config,
            manifest=manifest,
            feature_schema=feature_schema,
            **extras,
        )

    def save(self, path: str | Path) -> None:
        save_artifact(
            path=path,
            project_config=self.project_config,
            manifest=self.manifest,
            feature_schema=self.feature_schema,
            metrics=self.metrics,
            search_results=self.search_results,
            assignments=self.assignments,
            cluster_profile=self.cluster_profile,
            centroids=self.centroids,
            elbow=self.elbow,
            timeline=self.timeline,
            history=self.history,
            confusion=self.confusion,
            checkpoint=self.checkpoint,
        )

    def table(self, name: str) -> pd.DataFrame | None:
        """Look up a tabular payload by name (used by site table blocks)."""
        tables = {
            "search_results": self.search_results,
            "assignments": self.assignments,
            "cluster_profile": self.cluster_profile,
            "centroids": self.centroids,
            "elbow": self.elbow,
            "timeline": self.timeline,
        }
        if name == "metrics":
            flat = {k: v for k, v in self.metrics.items() if isinstance(v, (int, float))}
            return pd.DataFrame({"metric": list(flat), "value": list(flat.values())})
        if name == "history":
            return pd.DataFrame(self.history) if self.history else None
        if name not in tables:
            raise FolioValidationError(
                f"Unknown artifact table '{name}'. Available: "
                f"{sorted([*tables, 'history', 'metrics'])}"
            )
        return tables[name]

    def _get_model(self) -> GenderCNN:
        if self.checkpoint is None:
            raise FolioValidationError(
                "Artifact has no model checkpoint. Run train_classifier before predict."
            )
        if self._model is None:
            self._model = model_from_payload(self.checkpoint)
        return self._model

    def predict(self, images: np.ndarray) -> pd.DataFrame:
        """Class probabilities and predicted label for each image."""
        if self.task_type != "classification":
            raise FolioValidationError("predict is only available for classification artifacts.")
        model = self._get_model()
        image_size = int(self.checkpoint.get("image_size", 0)) or None
        tensor = images_to_tensor(images, image_size=image_size)
        proba = predict_proba(model, tensor)
        class_names = list(self.checkpoint.get("class_names") or [])
        columns = [f"p_{name}" for name in class_names]
        frame = pd.DataFrame(proba, columns=columns)
        frame["label_pred"] = [class_names[idx] for idx in np.argmax(proba, axis=1)]
        return frame
