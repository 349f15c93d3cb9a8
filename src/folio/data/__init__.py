"""Data loading and preparation."""

from folio.data.features import join_track_features, load_track_features, numeric_feature_matrix
from folio.data.history import (
    filter_skips,
    listening_timeline,
    load_streaming_history,
    summarize_tracks,
    top_artists,
)
from folio.data.loader import load_tabular_data, save_tabular_data

__all__ = [
    "filter_skips",
    "join_track_features",
    "listening_timeline",
    "load_streaming_history",
    "load_tabular_data",
    "load_track_features",
    "numeric_feature_matrix",
    "save_tabular_data",
    "summarize_tracks",
    "top_artists",
]
