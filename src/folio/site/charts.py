"""Chart registry for figure blocks."""

from __future__ import annotations

from collections.abc import Callable

import plotly.graph_objects as go

from folio.api.artifact import Artifact
from folio.api.exceptions import FolioArtifactError, FolioValidationError
from folio.diagnostics.plots import (
    plot_cluster_profile,
    plot_cluster_scatter,
    plot_confusion_matrix,
    plot_elbow,
    plot_listening_timeline,
    plot_subset_scores,
    plot_training_history,
)

ChartBuilder = Callable[[Artifact], go.Figure]


def _require(artifact: Artifact, name: str):
    value = getattr(artifact, name)
    if value is None:
        raise FolioArtifactError(f"Artifact {artifact.run_id} has no '{name}' payload.")
    return value


def _best_features(artifact: Artifact) -> list[str]:
    features = artifact.feature_schema.get("best_features")
    if not features:
        raise FolioArtifactError(f"Artifact {artifact.run_id} has no best_features.")
    return list(features)


def _score(artifact: Artifact) -> str:
    return str(artifact.feature_schema.get("score", artifact.project_config.clustering.score))


def _subset_scores(artifact: Artifact) -> go.Figure:
    return plot_subset_scores(_require(artifact, "search_results"), _score(artifact))


def _cluster_scatter(artifact: Artifact) -> go.Figure:
    return plot_cluster_scatter(_require(artifact, "assignments"), _best_features(artifact))


def _cluster_profile(artifact: Artifact) -> go.Figure:
    return plot_cluster_profile(_require(artifact, "cluster_profile"), _best_features(artifact))


def _elbow(artifact: Artifact) -> go.Figure:
    return plot_elbow(_require(artifact, "elbow"), _score(artifact))


def _listening_timeline(artifact: Artifact) -> go.Figure:
    return plot_listening_timeline(_require(artifact, "timeline"))


def _training_history(artifact: Artifact) -> go.Figure:
    return plot_training_history(_require(artifact, "history"))


def _confusion_matrix(artifact: Artifact) -> go.Figure:
    confusion = _require(artifact, "confusion")
    return plot_confusion_matrix(confusion["matrix"], list(confusion["class_names"]))


CHART_BUILDERS: dict[str, ChartBuilder] = {
    "subset_scores": _subset_scores,
    "cluster_scatter": _cluster_scatter,
    "cluster_profile": _cluster_profile,
    "elbow": _elbow,
    "listening_timeline": _listening_timeline,
    "training_history": _training_history,
    "confusion_matrix": _confusion_matrix,
}


def get_chart_builder(name: str) -> ChartBuilder:
    try:
        return CHART_BUILDERS[name]
    except KeyError as exc:
        raise FolioValidationError(
            f"Unknown chart '{name}'. Available: {sorted(CHART_BUILDERS)}"
        ) from exc
