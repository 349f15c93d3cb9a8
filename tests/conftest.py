"""Pytest shared setup."""

from __future__ import annotations

import json
import shutil
import sys
from copy import deepcopy
from pathlib import Path
from uuid import uuid4

import numpy as np
import pandas as pd
import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
for _path in (REPO_ROOT / "src", REPO_ROOT):
    if str(_path) not in sys.path:
        sys.path.insert(0, str(_path))

FEATURE_NAMES = ["danceability", "energy", "valence", "tempo"]
# Three well separated listening moods.
_MOOD_CENTERS = [
    (0.20, 0.25, 0.20, 85.0),
    (0.55, 0.85, 0.50, 125.0),
    (0.90, 0.50, 0.90, 165.0),
]


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "torch: tests that train or run the CNN.")


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    _ = config
    for item in items:
        path = Path(str(item.fspath)).name
        if path.startswith("test_vision_"):
            item.add_marker(pytest.mark.torch)


@pytest.fixture
def tmp_path() -> Path:
    """Workspace-local tmp_path to avoid permission issues in this environment."""
    temp_root = REPO_ROOT / ".pytest_tmp" / "cases"
    temp_root.mkdir(parents=True, exist_ok=True)
    created = temp_root / f"case_{uuid4().hex}"
    created.mkdir(parents=True, exist_ok=False)
    try:
        yield created
    finally:
        shutil.rmtree(created, ignore_errors=True)


def _deep_merge(base: dict, overrides: dict) -> dict:
    merged = deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


@pytest.fixture
def history_events():
    """Legacy-dialect listening events; every third play of a track is a skip."""

    def _build(n_tracks: int = 18, seed: int = 5) -> list[dict]:
        rng = np.random.default_rng(seed)
        events: list[dict] = []
        for idx in range(n_tracks):
            plays = int(rng.integers(2, 6))
            for play in range(plays):
                day = 1 + (idx + play * 3) % 27
                hour = int(rng.integers(0, 24))
                ms = 5_000 if play % 3 == 2 else int(rng.integers(60_000, 240_000))
                events.append(
                    {
                        "endTime": f"2024-02-{day:02d} {hour:02d}:15",
                        "artistName": f"Artist {idx % 4}",
                        "trackName": f"Song {idx}",
                        "msPlayed": ms,
                    }
                )
        return events

    return _build


@pytest.fixture
def history_file(history_events, tmp_path):
    def _build(n_tracks: int = 18, name: str = "StreamingHistory0.json") -> Path:
        path = tmp_path / "history" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(history_events(n_tracks=n_tracks)), encoding="utf-8")
        return path

    return _build


@pytest.fixture
def track_features():
    def _build(n_tracks: int = 18, seed: int = 3, noise: float = 0.02) -> pd.DataFrame:
        rng = np.random.default_rng(seed)
        rows = []
        for idx in range(n_tracks):
            center = _MOOD_CENTERS[idx % len(_MOOD_CENTERS)]
            values = [
                c + rng.normal(scale=noise * (100.0 if name == "tempo" else 1.0))
                for c, name in zip(center, FEATURE_NAMES)
            ]
            rows.append(
                {
                    "artist": f"Artist {idx % 4}",
                    "track": f"Song {idx}",
                    **dict(zip(FEATURE_NAMES, values)),
                }
            )
        return pd.DataFrame(rows)

    return _build


@pytest.fixture
def clustering_payload():
    def _build(tmp_path: Path, **overrides: object) -> dict:
        base: dict = {
            "config_version": 1,
            "task": {"type": "clustering"},
            "data": {
                "path": str(tmp_path / "history"),
                "features_path": str(tmp_path / "features.csv"),
            },
            "clustering": {
                "candidate_features": list(FEATURE_NAMES),
                "min_subset_size": 2,
                "max_subset_size": 3,
                "k_values": [2, 3, 4],
                "n_init": 3,
                "n_jobs": 1,
            },
            "export": {"artifact_dir": str(tmp_path / "artifacts")},
        }
        return _deep_merge(base, overrides)

    return _build


@pytest.fixture
def image_arrays():
    """Two classes of 16x16 RGB images: dark noise vs bright noise with a dark left edge."""

    def _build(
        per_class: int = 12, size: int = 16, seed: int = 9
    ) -> tuple[np.ndarray, np.ndarray]:
        rng = np.random.default_rng(seed)
        images = rng.integers(0, 40, size=(2 * per_class, size, size, 3), dtype=np.uint8)
        labels = np.repeat(np.array([0, 1], dtype=np.int64), per_class)
        images[per_class:, :, size // 4 :, :] += 200
        return images, labels

    return _build


@pytest.fixture
def image_archive(image_arrays, tmp_path):
    def _build(name: str = "faces.npz", with_class_names: bool = True, **kwargs) -> Path:
        images, labels = image_arrays(**kwargs)
        path = tmp_path / name
        payload = {"images": images, "labels": labels}
        if with_class_names:
            payload["class_names"] = np.array(["male", "female"])
        np.savez(path, **payload)
        return path

    return _build


@pytest.fixture
def classification_payload():
    def _build(tmp_path: Path, **overrides: object) -> dict:
        base: dict = {
            "config_version": 1,
            "task": {"type": "classification"},
            "data": {"path": str(tmp_path / "faces.npz")},
            "classifier": {
                "image_size": 16,
                "channels": [4, 8],
                "epochs": 3,
                "batch_size": 8,
                "learning_rate": 0.01,
                "validation_fraction": 0.25,
                "early_stopping_patience": None,
                "seed": 3,
            },
            "export": {"artifact_dir": str(tmp_path / "artifacts")},
        }
        return _deep_merge(base, overrides)

    return _build


@pytest.fixture
def cluster_artifact(clustering_payload, track_features, tmp_path):
    """Saved clustering artifact with every chart and table payload filled."""

    def _build(name: str = "run") -> Path:
        from folio.api.artifact import Artifact
        from folio.config.models import ProjectConfig

        config = ProjectConfig.model_validate(clustering_payload(tmp_path))
        assignments = track_features(n_tracks=9)
        assignments["cluster"] = assignments.index % 3
        profile = (
            assignments.groupby("cluster")[["energy", "valence"]].mean().reset_index()
        )
        profile.insert(1, "size", 3)
        artifact = Artifact.from_config(
            config,
            run_id=f"rid_{name}",
            feature_schema={"best_features": ["energy", "valence"], "k": 3, "score": "silhouette"},
            metrics={"silhouette": 0.71, "inertia": 1.25},
            search_results=pd.DataFrame(
                {
                    "rank": [1, 2, 3],
                    "features": ["energy,valence", "energy,valence", "energy,tempo"],
                    "n_features": [2, 2, 2],
                    "k": [3, 2, 3],
                    "silhouette": [0.71, 0.52, 0.40],
                    "inertia": [1.25, 3.5, 2.0],
                }
            ),
            assignments=assignments,
            cluster_profile=profile,
            elbow=pd.DataFrame({"k": [2, 3], "inertia": [3.5, 1.25], "silhouette": [0.52, 0.71]}),
            timeline=pd.DataFrame(
                {
                    "period_start": pd.date_range("2024-02-04", periods=3, freq="W", tz="UTC"),
                    "minutes_played": [30.0, 12.5, 41.0],
                    "play_count": [9, 4, 12],
                }
            ),
        )
        path = tmp_path / "artifacts" / name
        artifact.save(path)
        return path

    return _build
