"""Stable runner API entrypoints."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any
from uuid import uuid4

import numpy as np
import pandas as pd
from pydantic import ValidationError

from folio.api.artifact import Artifact
from folio.api.exceptions import FolioValidationError
from folio.api.logging import log_event
from folio.api.types import ClusterResult, EnrichResult, Prediction, SiteBuildResult, TrainResult
from folio.clustering import train_clusters
from folio.config.models import ProjectConfig, SiteConfig
from folio.data import (
    filter_skips,
    load_streaming_history,
    load_track_features,
    save_tabular_data,
    summarize_tracks,
)
from folio.diagnostics.plots import plot_image_samples
from folio.enrich import TrackMetadataClient, enrich_tracks
from folio.site.builder import build_site as _build_site
from folio.vision import load_image_dataset, train_classifier_model

LOGGER = logging.getLogger("folio")

_SAMPLE_GRID_FILE = "samples.png"


def _ensure_config(config: ProjectConfig | dict[str, Any]) -> ProjectConfig:
    if isinstance(config, ProjectConfig):
        return config
    try:
        return ProjectConfig.model_validate(config)
    except ValidationError as exc:
        raise FolioValidationError(f"Invalid ProjectConfig: {exc}") from exc


def _ensure_site_config(config: SiteConfig | dict[str, Any]) -> SiteConfig:
    if isinstance(config, SiteConfig):
        return config
    try:
        return SiteConfig.model_validate(config)
    except ValidationError as exc:
        raise FolioValidationError(f"Invalid SiteConfig: {exc}") from exc


def _enrichment_output_path(config: ProjectConfig) -> Path:
    target = config.enrichment.output_path or config.data.features_path
    if not target:
        raise FolioValidationError(
            "enrichment.output_path or data.features_path is required for enrich."
        )
    return Path(target)


def _run_enrichment(config: ProjectConfig, history: pd.DataFrame, run_id: str) -> EnrichResult:
    output_path = _enrichment_output_path(config)
    existing = load_track_features(output_path) if output_path.exists() else None
    tracks = summarize_tracks(filter_skips(history, config.data.min_ms_played))

    def _batch_progress(payload: dict[str, Any]) -> None:
        log_event(
            LOGGER,
            logging.DEBUG,
            "enrich batch completed",
            run_id=run_id,
            artifact_path=str(output_path),
            task_type="enrich",
            **payload,
        )

    def _checkpoint(features: pd.DataFrame) -> None:
        save_tabular_data(features, output_path)

    client = TrackMetadataClient(config.enrichment)
    try:
        output = enrich_tracks(
            tracks,
            client,
            existing=existing,
            on_batch=_batch_progress,
            keys=config.data.join_keys,
            on_checkpoint=_checkpoint,
        )
    finally:
        client.close()
    save_tabular_data(output.features, output_path)
    log_event(
        LOGGER,
        logging.INFO,
        "enrich completed",
        run_id=run_id,
        artifact_path=str(output_path),
        task_type="enrich",
        n_tracks=len(tracks),
        n_fetched=output.n_fetched,
        n_skipped=output.n_skipped,
        n_unresolved=output.n_unresolved,
    )
    return EnrichResult(
        output_path=str(output_path),
        n_tracks=int(len(tracks)),
        n_fetched=output.n_fetched,
        n_skipped=output.n_skipped,
        n_unresolved=output.n_unresolved,
        metadata={"run_id": run_id, "n_rows": int(len(output.features))},
    )


def enrich(config: ProjectConfig | dict[str, Any]) -> EnrichResult:
    """Fetch audio features for listened tracks and write the feature table.

    Rows already present in the output table are kept and not fetched again.
    """
    parsed = _ensure_config(config)
    if parsed.task.type != "clustering":
        raise FolioValidationError("enrich requires task.type='clustering'.")
    if not parsed.data.path:
        raise FolioValidationError("data.path is required for enrich.")
    history = load_streaming_history(parsed.data.path)
    return _run_enrichment(parsed, history, uuid4().hex)


def cluster(config: ProjectConfig | dict[str, Any]) -> ClusterResult:
    """Search feature subsets, fit the best k-means model and persist the artifact."""
    parsed = _ensure_config(config)
    if parsed.task.type != "clustering":
        raise FolioValidationError("cluster requires task.type='clustering'.")
    if not parsed.data.path:
        raise FolioValidationError("data.path is required for cluster.")

    run_id = uuid4().hex
    artifact_path = Path(parsed.export.artifact_dir) / run_id
    history = load_streaming_history(parsed.data.path)
    if parsed.enrichment.enabled:
        enriched = _run_enrichment(parsed, history, run_id)
        features = load_track_features(enriched.output_path)
    else:
        features = load_track_features(parsed.data.features_path)

    def _batch_progress(payload: dict[str, Any]) -> None:
        log_event(
            LOGGER,
            logging.DEBUG,
            "cluster search batch completed",
            run_id=run_id,
            artifact_path=str(artifact_path),
            task_type=parsed.task.type,
            **payload,
        )

    output = train_clusters(parsed, history, features, on_batch=_batch_progress)
    artifact = Artifact.from_config(
        project_config=parsed,
        run_id=run_id,
        feature_schema=output.feature_schema,
        metrics=output.metrics,
        search_results=output.search.results,
        assignments=output.assignments,
        cluster_profile=output.profile,
        centroids=output.centroids,
        elbow=output.elbow,
        timeline=output.timeline,
    )
    artifact.save(artifact_path)
    log_event(
        LOGGER,
        logging.INFO,
        "cluster completed",
        run_id=run_id,
        artifact_path=str(artifact_path),
        task_type=parsed.task.type,
        best_features=output.feature_schema["best_features"],
        best_k=output.feature_schema["k"],
        n_fits=output.search.n_fits,
    )
    return ClusterResult(
        run_id=run_id,
        artifact_path=str(artifact_path),
        best_features=list(output.feature_schema["best_features"]),
        best_k=int(output.feature_schema["k"]),
        metrics={
            key: float(output.metrics[key])
            for key in ("silhouette", "calinski_harabasz", "davies_bouldin", "inertia")
            if key in output.metrics
        },
        metadata={
            "score": parsed.clustering.score,
            "match_rate": float(output.metrics["match_rate"]),
            "n_tracks": int(len(output.assignments)),
            "n_subsets": output.search.n_subsets,
            "n_fits": output.search.n_fits,
        },
    )


def train_classifier(config: ProjectConfig | dict[str, Any]) -> TrainResult:
    """Train the residual CNN and persist its checkpoint with the run artifact."""
    parsed = _ensure_config(config)
    if parsed.task.type != "classification":
        raise FolioValidationError("train_classifier requires task.type='classification'.")
    if not parsed.data.path:
        raise FolioValidationError("data.path is required for train_classifier.")

    dataset = load_image_dataset(
        parsed.data.path,
        class_names=list(parsed.classifier.class_names),
        image_size=parsed.classifier.image_size,
    )
    run_id = uuid4().hex
    artifact_path = Path(parsed.export.artifact_dir) / run_id

    def _epoch_progress(record: dict[str, float]) -> None:
        log_event(
            LOGGER,
            logging.INFO,
            "train epoch completed",
            run_id=run_id,
            artifact_path=str(artifact_path),
            task_type=parsed.task.type,
            **record,
        )

    output = train_classifier_model(parsed, dataset, on_epoch=_epoch_progress)
    artifact = Artifact.from_config(
        project_config=parsed,
        run_id=run_id,
        feature_schema={
            "class_names": output.class_names,
            "image_size": dataset.image_size,
            "in_channels": dataset.in_channels,
        },
        metrics=output.metrics,
        history=output.history,
        confusion={"class_names": output.class_names, "matrix": output.confusion},
        checkpoint=output.checkpoint,
    )
    artifact.save(artifact_path)

    valid_images = dataset.images[output.valid_indices].numpy()
    valid_labels = dataset.labels[output.valid_indices].numpy()
    sample_proba = artifact.predict(valid_images).loc[
        :, [f"p_{name}" for name in output.class_names]
    ]
    plot_image_samples(
        valid_images,
        valid_labels,
        sample_proba.to_numpy(),
        output.class_names,
        artifact_path / _SAMPLE_GRID_FILE,
    )
    log_event(
        LOGGER,
        logging.INFO,
        "train completed",
        run_id=run_id,
        artifact_path=str(artifact_path),
        task_type=parsed.task.type,
        best_epoch=output.best_epoch,
        epochs_run=output.epochs_run,
        accuracy=output.metrics["accuracy"],
    )
    return TrainResult(
        run_id=run_id,
        artifact_path=str(artifact_path),
        metrics={key: float(value) for key, value in output.metrics.items()},
        metadata={
            "class_names": output.class_names,
            "best_epoch": output.best_epoch,
            "epochs_run": output.epochs_run,
            "n_images": len(dataset),
            "n_valid": int(len(output.valid_indices)),
            "samples_path": str(artifact_path / _SAMPLE_GRID_FILE),
        },
    )


def predict(artifact: Artifact | str | Path, images: np.ndarray | str | Path) -> Prediction:
    """Predict class probabilities with a saved classifier.

    ``images`` is an array or the path of an ``.npz`` archive with an
    ``images`` array.
    """
    loaded = artifact if isinstance(artifact, Artifact) else Artifact.load(artifact)
    if isinstance(images, (str, Path)):
        source = Path(images)
        if not source.exists():
            raise FolioValidationError(f"Image archive does not exist: {source}")
        with np.load(source, allow_pickle=False) as archive:
            if "images" not in archive.files:
                raise FolioValidationError(f"Image archive {source} has no 'images' array.")
            images = archive["images"]
    frame = loaded.predict(np.asarray(images))
    log_event(
        LOGGER,
        logging.INFO,
        "predict completed",
        run_id=loaded.run_id,
        artifact_path=None,
        task_type=loaded.task_type,
        n_rows=len(frame),
    )
    return Prediction(
        data=frame,
        metadata={"n_rows": int(len(frame)), "run_id": loaded.run_id},
    )


def build_site(config: SiteConfig | dict[str, Any]) -> SiteBuildResult:
    """Render the static site described by ``config``."""
    parsed = _ensure_site_config(config)
    return _build_site(parsed)
