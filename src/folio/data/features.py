"""Track-feature tables and their join with listening summaries."""

from __future__ import annotations

from pathlib import Path

import pandas as pd

from folio.api.exceptions import FolioValidationError
from folio.data.loader import load_tabular_data


def load_track_features(path: str | Path) -> pd.DataFrame:
    frame = load_tabular_data(path)
    if frame.empty:
        raise FolioValidationError(f"Track feature table is empty: {path}")
    return frame


def _normalized_keys(frame: pd.DataFrame, keys: list[str], label: str) -> pd.DataFrame:
    missing = [key for key in keys if key not in frame.columns]
    if missing:
        raise FolioValidationError(f"{label} is missing join key column(s): {missing}")
    return pd.DataFrame(
        {f"_key_{key}": frame[key].astype(str).str.strip().str.casefold() for key in keys},
        index=frame.index,
    )


def join_track_features(
    tracks: pd.DataFrame,
    features: pd.DataFrame,
    keys: list[str],
) -> tuple[pd.DataFrame, float]:
    """Inner-join track summaries with feature vectors.

    Keys are compared case-insensitively after trimming whitespace. When the
    feature table has duplicate keys the first row wins, and columns present on
    both sides keep the ``tracks`` value.

    Returns
    -------
    tuple[pd.DataFrame, float]
        Joined frame and the share of ``tracks`` rows that found features.
    """
    if tracks.empty:
        raise FolioValidationError("No tracks to join with features.")
    left_keys = _normalized_keys(tracks, keys, "Track summary")
    right_keys = _normalized_keys(features, keys, "Track feature table")
    key_cols = list(left_keys.columns)

    left = pd.concat([tracks, left_keys], axis=1)
    right = pd.concat([features.drop(columns=keys), right_keys], axis=1)
    right = right.drop_duplicates(subset=key_cols, keep="first")
    overlap = [col for col in right.columns if col in left.columns and col not in key_cols]
    right = right.drop(columns=overlap)

    joined = left.merge(right, on=key_cols, how="inner").drop(columns=key_cols)
    if joined.empty:
        raise FolioValidationError(
            f"No tracks matched the feature table on keys {keys}. "
            "Check artist/track spelling or run enrichment first."
        )
    match_rate = float(len(joined)) / float(len(tracks))
    return joined.reset_index(drop=True), match_rate


def numeric_feature_matrix(frame: pd.DataFrame, columns: list[str]) -> pd.DataFrame:
    """Validate feature columns and drop rows with missing values in them."""
    missing = [col for col in columns if col not in frame.columns]
    if missing:
        raise FolioValidationError(f"Feature column(s) not found: {missing}")
    non_numeric = [col for col in columns if not pd.api.types.is_numeric_dtype(frame[col])]
    if non_numeric:
        raise FolioValidationError(f"Feature column(s) must be numeric: {non_numeric}")
    cleaned = frame.dropna(subset=columns).reset_index(drop=True)
    if cleaned.empty:
        raise FolioValidationError("No rows remain after dropping missing feature values.")
    return cleaned
