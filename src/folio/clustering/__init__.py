"""Listening-history clustering."""

from folio.clustering.kmeans import (
    ClusterFit,
    ClusteringTrainingOutput,
    build_cluster_profile,
    elbow_curve,
    fit_clusters,
    train_clusters,
)
from folio.clustering.search import (
    FeatureSearchOutput,
    rank_results,
    scale_features,
    score_feature_subset,
    search_feature_subsets,
)
from folio.clustering.subsets import count_feature_subsets, iter_feature_subsets

__all__ = [
    "ClusterFit",
    "ClusteringTrainingOutput",
    "FeatureSearchOutput",
    "build_cluster_profile",
    "count_feature_subsets",
    "elbow_curve",
    "fit_clusters",
    "iter_feature_subsets",
    "rank_results",
    "scale_features",
    "score_feature_subset",
    "search_feature_subsets",
    "train_clusters",
]
