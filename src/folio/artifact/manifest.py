"""Run manifest: library versions plus a fingerprint of the input files."""

from __future__ import annotations

import hashlib
import json
import platform
from datetime import datetime, timezone
from importlib import metadata
from pathlib import Path
from typing import Any, Literal

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from folio.config.models import ProjectConfig
from folio.data.history import history_files

# Distributions whose versions change clustering or training results.
TRACKED_DEPENDENCIES = [
    "joblib",
    "numpy",
    "pandas",
    "pyarrow",
    "pydantic",
    "pyyaml",
    "scikit-learn",
    "torch",
]

InputRole = Literal["history", "features", "images"]


class InputFingerprint(BaseModel):
    model_config = ConfigDict(extra="forbid")
    role: InputRole
    name: str
    size_bytes: int
    sha256: str
    shape: list[int] | None = None


class Manifest(BaseModel):
    """What a run was computed from, so two artifacts can be compared."""

    model_config = ConfigDict(extra="forbid")
    manifest_version: int = 1
    project_version: str
    run_id: str
    task_type: str
    config_version: int
    config_hash: str
    inputs: list[InputFingerprint] = Field(default_factory=list)
    dataset_hash: str | None = None
    python_version: str
    dependencies: dict[str, str] = Field(default_factory=dict)
    created_at_utc: str


def _config_hash(config: ProjectConfig) -> str:
    payload: dict[str, Any] = config.model_dump(mode="json", exclude_none=True)
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def _file_sha256(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(1 << 20), b""):
            digest.update(chunk)
    return digest.hexdigest()


def _fingerprint(role: InputRole, path: Path) -> InputFingerprint:
    return InputFingerprint(
        role=role,
        name=path.name,
        size_bytes=path.stat().st_size,
        sha256=_file_sha256(path),
    )


def _features_source(config: ProjectConfig) -> str | None:
    if config.enrichment.enabled and config.enrichment.output_path:
        return config.enrichment.output_path
    return config.data.features_path


def fingerprint_inputs(config: ProjectConfig) -> list[InputFingerprint]:
    """Hash the files a run reads. Paths that do not exist are left out."""
    inputs: list[InputFingerprint] = []
    source = Path(config.data.path) if config.data.path else None
    if config.task.type == "clustering":
        if source is not None and source.is_dir():
            inputs.extend(_fingerprint("history", path) for path in history_files(source))
        elif source is not None and source.is_file():
            inputs.append(_fingerprint("history", source))
        features = _features_source(config)
        if features and Path(features).is_file():
            inputs.append(_fingerprint("features", Path(features)))
    elif source is not None and source.is_file():
        entry = _fingerprint("images", source)
        with np.load(source, allow_pickle=False) as archive:
            if "images" in archive.files:
                entry.shape = [int(n) for n in archive["images"].shape]
        inputs.append(entry)
    return inputs


def _dataset_hash(inputs: list[InputFingerprint]) -> str | None:
    if not inputs:
        return None
    digest = hashlib.sha256()
    for item in inputs:
        digest.update(f"{item.role}:{item.sha256}\n".encode("utf-8"))
    return digest.hexdigest()


def _dependency_versions() -> dict[str, str]:
    versions: dict[str, str] = {}
    for package in TRACKED_DEPENDENCIES:
        try:
            versions[package] = metadata.version(package)
        except metadata.PackageNotFoundError:
            versions[package] = "not-installed"
    return versions


def build_manifest(config: ProjectConfig, run_id: str, project_version: str) -> Manifest:
    inputs = fingerprint_inputs(config)
    return Manifest(
        project_version=project_version,
        run_id=run_id,
        task_type=config.task.type,
        config_version=config.config_version,
        config_hash=_config_hash(config),
        inputs=inputs,
        dataset_hash=_dataset_hash(inputs),
        python_version=platform.python_version(),
        dependencies=_dependency_versions(),
        created_at_utc=datetime.now(timezone.utc).isoformat(),
    )
