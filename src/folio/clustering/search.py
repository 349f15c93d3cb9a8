"""Exhaustive k-means search over feature subsets."""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from sklearn.cluster import KMeans
from sklearn.metrics import calinski_harabasz_score, davies_bouldin_score, silhouette_score
from sklearn.preprocessing import MinMaxScaler, StandardScaler

from folio.api.exceptions import FolioValidationError
from folio.clustering.subsets import count_feature_subsets, iter_feature_subsets, subset_key
from folio.config.models import LOWER_IS_BETTER, ProjectConfig
from folio.data.features import numeric_feature_matrix

SCORE_COLUMNS = ["silhouette", "calinski_harabasz", "davies_bouldin", "inertia"]
RESULT_COLUMNS = ["rank", "subset_id", "features", "n_features", "k", *SCORE_COLUMNS]
# Subsets per dispatch round; progress is reported once per round.
SEARCH_BATCH_SIZE = 64


@dataclass(slots=True)
class FeatureSearchOutput:
    results: pd.DataFrame
    best: dict[str, Any]
    score: str
    n_subsets: int
    n_fits: int


def scale_features(frame: pd.DataFrame, scaler: str) -> tuple[pd.DataFrame, Any | None]:
    """Scale every column independently. Returns the scaled frame and fitted scaler."""
    if scaler == "none":
        return frame.astype(float).copy(), None
    if scaler == "standard":
        fitted: Any = StandardScaler()
    elif scaler == "minmax":
        fitted = MinMaxScaler()
    else:
        raise FolioValidationError(f"Unsupported scaler '{scaler}'.")
    values = fitted.fit_transform(frame.to_numpy(dtype=float))
    return pd.DataFrame(values, columns=frame.columns, index=frame.index), fitted


def _nan_scores(inertia: float = math.nan) -> dict[str, float]:
    return {
        "silhouette": math.nan,
        "calinski_harabasz": math.nan,
        "davies_bouldin": math.nan,
        "inertia": inertia,
    }


def cluster_scores(
    x: np.ndarray,
    labels: np.ndarray,
    inertia: float,
    *,
    sample_size: int | None = None,
    seed: int = 42,
) -> dict[str, float]:
    """Internal validity scores, NaN when the labelling is degenerate."""
    n_labels = len(np.unique(labels))
    if n_labels < 2 or n_labels >= len(x):
        return _nan_scores(inertia)
    sample = sample_size if sample_size is not None and sample_size < len(x) else None
    try:
        silhouette = float(silhouette_score(x, labels, sample_size=sample, random_state=seed))
    except ValueError:
        # A small sample can miss all but one cluster.
        silhouette = math.nan
    return {
        "silhouette": silhouette,
        "calinski_harabasz": float(calinski_harabasz_score(x, labels)),
        "davies_bouldin": float(davies_bouldin_score(x, labels)),
        "inertia": float(inertia),
    }


def score_feature_subset(
    x: np.ndarray,
    columns: Sequence[int],
    k_values: Sequence[int],
    *,
    n_init: int = 10,
    seed: int = 42,
    sample_size: int | None = None,
    sample_weight: np.ndarray | None = None,
) -> list[dict[str, float]]:
    """Fit KMeans for every k on the selected columns of ``x``."""
    sub = x[:, list(columns)]
    n_distinct = len(np.unique(sub, axis=0))
    records: list[dict[str, float]] = []
    for k in k_values:
        if n_distinct < k:
            records.append({"k": int(k), **_nan_scores()})
            continue
        model = KMeans(n_clusters=int(k), n_init=n_init, random_state=seed)
        labels = model.fit_predict(sub, sample_weight=sample_weight)
        scores = cluster_scores(
            sub, labels, float(model.inertia_), sample_size=sample_size, seed=seed
        )
        records.append({"k": int(k), **scores})
    return records


def rank_results(results: pd.DataFrame, score: str) -> pd.DataFrame:
    """Order rows best-first for ``score``; NaN last, ties keep enumeration order."""
    ascending = score in LOWER_IS_BETTER
    ranked = results.sort_values(
        score, ascending=ascending, na_position="last", kind="stable"
    ).reset_index(drop=True)
    ranked["rank"] = np.arange(1, len(ranked) + 1)
    return ranked.loc[:, RESULT_COLUMNS]


def search_feature_subsets(
    frame: pd.DataFrame,
    config: ProjectConfig,
    sample_weight: np.ndarray | None = None,
    on_batch: Callable[[dict[str, Any]], None] | None = None,
) -> FeatureSearchOutput:
    """Score every candidate feature subset for every k in parallel.

    Notes
    -----
    - Scaling is fitted once over all candidate columns; per-column scalers
      make this identical to scaling each subset separately.
    - Work is dispatched with ``joblib.Parallel`` in rounds of
      :data:`SEARCH_BATCH_SIZE` subsets so progress can be reported.
    """
    cfg = config.clustering
    candidates = list(cfg.candidate_features)
    cleaned = numeric_feature_matrix(frame, candidates)
    if len(cleaned) < 3:
        raise FolioValidationError("Feature subset search requires at least 3 rows.")
    if sample_weight is not None and len(sample_weight) != len(cleaned):
        raise FolioValidationError("sample_weight length must match the feature rows.")
    scaled, _ = scale_features(cleaned.loc[:, candidates], cfg.scaler)
    x = scaled.to_numpy(dtype=float)

    max_size = cfg.resolved_max_subset_size
    n_subsets = count_feature_subsets(len(candidates), cfg.min_subset_size, max_size)
    subsets = list(iter_feature_subsets(candidates, cfg.min_subset_size, max_size))
    index_of = {name: idx for idx, name in enumerate(candidates)}

    rows: list[dict[str, Any]] = []
    with Parallel(n_jobs=cfg.n_jobs) as parallel:
        for start in range(0, len(subsets), SEARCH_BATCH_SIZE):
            batch = subsets[start : start + SEARCH_BATCH_SIZE]
            scored = parallel(
                delayed(score_feature_subset)(
                    x,
                    [index_of[name] for name in subset],
                    cfg.k_values,
                    n_init=cfg.n_init,
                    seed=cfg.seed,
                    sample_size=cfg.silhouette_sample_size,
                    sample_weight=sample_weight,
                )
                for subset in batch
            )
            for offset, (subset, records) in enumerate(zip(batch, scored)):
                for record in records:
                    rows.append(
                        {
                            "subset_id": start + offset,
                            "features": subset_key(subset),
                            "n_features": len(subset),
                            **record,
                        }
                    )
            if on_batch is not None:
                on_batch(
                    {
                        "subsets_done": min(start + len(batch), n_subsets),
                        "n_subsets": n_subsets,
                    }
                )

    results = rank_results(pd.DataFrame(rows), cfg.score)
    best_row = results.iloc[0]
    if pd.isna(best_row[cfg.score]):
        raise FolioValidationError(
            "No feature subset produced a valid clustering. "
            "Check that the data has enough distinct tracks for the requested k_values."
        )
    best = {
        "features": str(best_row["features"]),
        "n_features": int(best_row["n_features"]),
        "k": int(best_row["k"]),
        **{col: float(best_row[col]) for col in SCORE_COLUMNS},
    }
    return FeatureSearchOutput(
        results=results,
        best=best,
        score=cfg.score,
        n_subsets=n_subsets,
        n_fits=len(rows),
    )
