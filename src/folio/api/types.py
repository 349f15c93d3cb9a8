"""Public result types used by stable API functions."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class ClusterResult:
    """Result payload returned by :func:`folio.api.cluster`.

    Attributes
    ----------
    run_id
        Unique identifier for the run.
    artifact_path
        Saved artifact directory path.
    best_features
        Feature subset selected by the search.
    best_k
        Number of clusters of the final fit.
    metrics
        Scores of the final fit.
    metadata
        Search size, match rate and other contextual fields.
    """

    run_id: str
    artifact_path: str | None = None
    best_features: list[str] = field(default_factory=list)
    best_k: int | None = None
    metrics: dict[str, float] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class TrainResult:
    """Result payload returned by :func:`folio.api.train_classifier`.

    Attributes
    ----------
    run_id
        Unique identifier for the run.
    artifact_path
        Saved artifact directory path (contains ``model.pt``).
    metrics
        Validation metrics of the best checkpoint.
    metadata
        Epoch counts and other contextual fields.
    """

    run_id: str
    artifact_path: str | None = None
    metrics: dict[str, float] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class EnrichResult:
    """Result payload returned by :func:`folio.api.enrich`.

    Attributes
    ----------
    output_path
        Track-feature table written by the run.
    n_tracks
        Distinct tracks considered.
    n_fetched
        Tracks whose features were fetched in this run.
    n_skipped
        Tracks already present in the existing table.
    n_unresolved
        Tracks the API search could not match.
    """

    output_path: str
    n_tracks: int
    n_fetched: int
    n_skipped: int
    n_unresolved: int
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class Prediction:
    """Result payload returned by :func:`folio.api.predict`.

    Attributes
    ----------
    data
        Frame with one probability column per class and ``label_pred``.
    metadata
        Additional contextual values such as row counts.
    """

    data: Any
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class SiteBuildResult:
    """Result payload returned by :func:`folio.api.build_site`.

    Attributes
    ----------
    output_dir
        Directory holding the generated site.
    pages
        Slugs of the project pages written, in index order.
    files
        Every file written, relative to ``output_dir``.
    warnings
        Non-fatal problems such as figures whose artifact is missing.
    """

    output_dir: str
    pages: list[str] = field(default_factory=list)
    files: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
