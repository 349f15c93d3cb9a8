"""Final k-means fit and the end-to-end listening-clusters pipeline."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd
from sklearn.cluster import KMeans

from folio.api.exceptions import FolioValidationError
from folio.clustering.search import (
    FeatureSearchOutput,
    cluster_scores,
    scale_features,
    search_feature_subsets,
)
from folio.clustering.subsets import parse_subset_key, subset_key
from folio.config.models import ProjectConfig
from folio.data.features import join_track_features, numeric_feature_matrix
from folio.data.history import filter_skips, listening_timeline, summarize_tracks

_EXAMPLE_TRACKS_PER_CLUSTER = 3


@dataclass(slots=True)
class ClusterFit:
    assignments: pd.DataFrame
    centroids: pd.DataFrame
    profile: pd.DataFrame
    metrics: dict[str, float]


@dataclass(slots=True)
class ClusteringTrainingOutput:
    search: FeatureSearchOutput
    assignments: pd.DataFrame
    centroids: pd.DataFrame
    profile: pd.DataFrame
    elbow: pd.DataFrame
    timeline: pd.DataFrame
    metrics: dict[str, Any]
    feature_schema: dict[str, Any]


def _example_tracks(group: pd.DataFrame) -> str:
    if not {"artist", "track"} <= set(group.columns):
        return ""
    ordered = group
    if "minutes_played" in group.columns:
        ordered = group.sort_values("minutes_played", ascending=False, kind="stable")
    head = ordered.head(_EXAMPLE_TRACKS_PER_CLUSTER)
    return "; ".join(f"{a} - {t}" for a, t in zip(head["artist"], head["track"]))


def build_cluster_profile(assignments: pd.DataFrame, features: list[str]) -> pd.DataFrame:
    """Per-cluster size, share, feature means and listening totals."""
    records: list[dict[str, Any]] = []
    total = len(assignments)
    for cluster_id, group in assignments.groupby("cluster", sort=True):
        record: dict[str, Any] = {
            "cluster": int(cluster_id),
            "size": int(len(group)),
            "share": float(len(group)) / float(total) if total else 0.0,
        }
        for feature in features:
            record[feature] = float(group[feature].mean())
        if "minutes_played" in group.columns:
            record["minutes_played"] = float(group["minutes_played"].sum())
        if "play_count" in group.columns:
            record["play_count"] = int(group["play_count"].sum())
        record["example_tracks"] = _example_tracks(group)
        records.append(record)
    return pd.DataFrame.from_records(records)


def fit_clusters(
    frame: pd.DataFrame,
    features: list[str],
    k: int,
    config: ProjectConfig,
    sample_weight: np.ndarray | None = None,
) -> ClusterFit:
    """Fit the final KMeans model on ``features`` and describe the clusters."""
    if k < 2:
        raise FolioValidationError("k must be >= 2")
    cleaned = numeric_feature_matrix(frame, features)
    if len(cleaned) < k:
        raise FolioValidationError(f"Cannot form {k} clusters from {len(cleaned)} rows.")
    cfg = config.clustering
    scaled, scaler = scale_features(cleaned.loc[:, features], cfg.scaler)
    x = scaled.to_numpy(dtype=float)
    model = KMeans(n_clusters=k, n_init=cfg.n_init, random_state=cfg.seed)
    labels = model.fit_predict(x, sample_weight=sample_weight)

    assignments = cleaned.copy()
    assignments["cluster"] = labels.astype(int)
    centers = model.cluster_centers_
    if scaler is not None:
        centers = scaler.inverse_transform(centers)
    centroids = pd.DataFrame(centers, columns=features)
    centroids.insert(0, "cluster", np.arange(k))

    scores = cluster_scores(
        x,
        labels,
        float(model.inertia_),
        sample_size=cfg.silhouette_sample_size,
        seed=cfg.seed,
    )
    metrics = {**scores, "k": float(k), "n_tracks": float(len(assignments))}
    return ClusterFit(
        assignments=assignments,
        centroids=centroids,
        profile=build_cluster_profile(assignments, features),
        metrics=metrics,
    )


def elbow_curve(results: pd.DataFrame, features: list[str], score: str) -> pd.DataFrame:
    key = subset_key(features)
    rows = results.loc[results["features"] == key, ["k", "inertia", score]]
    return rows.sort_values("k").reset_index(drop=True)


def train_clusters(
    config: ProjectConfig,
    history: pd.DataFrame,
    features: pd.DataFrame,
    on_batch: Callable[[dict[str, Any]], None] | None = None,
) -> ClusteringTrainingOutput:
    """Run the listening-clusters pipeline.

    Notes
    -----
    - Skipped plays (shorter than ``data.min_ms_played``) are removed before
      tracks are aggregated.
    - Only tracks found in the feature table take part in the search; the
      join match rate is reported in the metrics.
    - The best (subset, k) pair from the search is refitted to produce the
      assignments, centroids and cluster profile.
    """
    if config.task.type != "clustering":
        raise FolioValidationError("train_clusters only supports task.type='clustering'.")
    cfg = config.clustering

    plays = filter_skips(history, config.data.min_ms_played)
    if plays.empty:
        raise FolioValidationError(
            f"No plays remain after dropping skips shorter than {config.data.min_ms_played} ms."
        )
    tracks = summarize_tracks(plays)
    joined, match_rate = join_track_features(tracks, features, config.data.join_keys)
    cleaned = numeric_feature_matrix(joined, list(cfg.candidate_features))
    weights = (
        cleaned["play_count"].to_numpy(dtype=float)
        if cfg.weight_by_plays and "play_count" in cleaned.columns
        else None
    )

    search = search_feature_subsets(cleaned, config, sample_weight=weights, on_batch=on_batch)
    best_features = parse_subset_key(search.best["features"])
    best_k = int(search.best["k"])
    fitted = fit_clusters(cleaned, best_features, best_k, config, sample_weight=weights)

    metrics: dict[str, Any] = {
        **fitted.metrics,
        "match_rate": match_rate,
        "n_plays": float(len(plays)),
        "n_plays_raw": float(len(history)),
        "n_subsets": float(search.n_subsets),
        "n_fits": float(search.n_fits),
    }
    feature_schema = {
        "candidate_features": list(cfg.candidate_features),
        "best_features": best_features,
        "k": best_k,
        "scaler": cfg.scaler,
        "score": cfg.score,
        "join_keys": list(config.data.join_keys),
    }
    return ClusteringTrainingOutput(
        search=search,
        assignments=fitted.assignments,
        centroids=fitted.centroids,
        profile=fitted.profile,
        elbow=elbow_curve(search.results, best_features, cfg.score),
        timeline=listening_timeline(plays, "W"),
        metrics=metrics,
        feature_schema=feature_schema,
    )
