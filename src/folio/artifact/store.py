"""Artifact persistence functions."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pandas as pd

from folio.api.exceptions import FolioArtifactError
from folio.artifact.manifest import Manifest
from folio.config.io import load_project_config, save_project_config
from folio.config.models import ProjectConfig
from folio.vision.checkpoint import read_checkpoint_payload, write_checkpoint_payload

_PARQUET_TABLES = {
    "search_results": "search_results.parquet",
    "assignments": "assignments.parquet",
}
_CSV_TABLES = {
    "cluster_profile": "cluster_profile.csv",
    "centroids": "centroids.csv",
    "elbow": "elbow.csv",
    "timeline": "timeline.csv",
}
_JSON_PAYLOADS = {
    "metrics": "metrics.json",
    "history": "history.json",
    "confusion": "confusion.json",
}
CHECKPOINT_FILE = "model.pt"
_REQUIRED_FILES = ("manifest.json", "project_config.yaml", "feature_schema.json", "metrics.json")
EXTRA_KEYS = [*_JSON_PAYLOADS, *_PARQUET_TABLES, *_CSV_TABLES, "checkpoint"]


def _write_json(path: Path, payload: Any) -> None:
    path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")


def save_artifact(
    path: str | Path,
    project_config: ProjectConfig,
    manifest: Manifest,
    feature_schema: dict[str, Any],
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
    artifact_dir = Path(path)
    artifact_dir.mkdir(parents=True, exist_ok=True)
    (artifact_dir / "manifest.json").write_text(
        manifest.model_dump_json(indent=2),
        encoding="utf-8",
    )
    save_project_config(project_config, artifact_dir / "project_config.yaml")
    _write_json(artifact_dir / "feature_schema.json", feature_schema)

    payloads = {"metrics": metrics or {}, "history": history, "confusion": confusion}
    for key, value in payloads.items():
        if value is not None:
            _write_json(artifact_dir / _JSON_PAYLOADS[key], value)

    parquet_tables = {"search_results": search_results, "assignments": assignments}
    for key, frame in parquet_tables.items():
        if frame is not None:
            frame.to_parquet(artifact_dir / _PARQUET_TABLES[key], index=False)

    csv_tables = {
        "cluster_profile": cluster_profile,
        "centroids": centroids,
        "elbow": elbow,
        "timeline": timeline,
    }
    for key, frame in csv_tables.items():
        if frame is not None:
            frame.to_csv(artifact_dir / _CSV_TABLES[key], index=False)

    if checkpoint is not None:
        write_checkpoint_payload(checkpoint, artifact_dir / CHECKPOINT_FILE)


def _read_optional(file_path: Path, key: str) -> Any:
    try:
        if key in _JSON_PAYLOADS:
            return json.loads(file_path.read_text(encoding="utf-8"))
        if key in _PARQUET_TABLES:
            return pd.read_parquet(file_path)
        parse_dates = ["period_start"] if key == "timeline" else None
        return pd.read_csv(file_path, parse_dates=parse_dates)
    except (OSError, ValueError) as exc:
        raise FolioArtifactError(f"Artifact file {file_path.name} is unreadable: {exc}") from exc


def load_artifact(
    path: str | Path,
) -> tuple[ProjectConfig, Manifest, dict[str, Any], dict[str, Any]]:
    artifact_dir = Path(path)
    required = [artifact_dir / name for name in _REQUIRED_FILES]
    missing = [p.name for p in required if not p.exists()]
    if missing:
        raise FolioArtifactError(f"Artifact is missing required file(s): {', '.join(missing)}")
    manifest_path, config_path, schema_path, metrics_path = required

    try:
        manifest = Manifest.model_validate_json(manifest_path.read_text(encoding="utf-8"))
        project_config = load_project_config(config_path)
        feature_schema = json.loads(schema_path.read_text(encoding="utf-8"))
        metrics = json.loads(metrics_path.read_text(encoding="utf-8"))
    except Exception as exc:
        raise FolioArtifactError(f"Failed to load artifact from {artifact_dir}") from exc

    if not isinstance(feature_schema, dict):
        raise FolioArtifactError("feature_schema.json must deserialize to an object.")
    if not isinstance(metrics, dict):
        raise FolioArtifactError("metrics.json must deserialize to an object.")

    extras: dict[str, Any] = {key: None for key in EXTRA_KEYS}
    extras["metrics"] = metrics
    optional = {**_JSON_PAYLOADS, **_PARQUET_TABLES, **_CSV_TABLES}
    for key, filename in optional.items():
        file_path = artifact_dir / filename
        if key != "metrics" and file_path.exists():
            extras[key] = _read_optional(file_path, key)
    checkpoint_path = artifact_dir / CHECKPOINT_FILE
    if checkpoint_path.exists():
        extras["checkpoint"] = read_checkpoint_payload(checkpoint_path)

    return project_config, manifest, feature_schema, extras
