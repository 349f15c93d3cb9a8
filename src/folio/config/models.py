"""ProjectConfig / SiteConfig models and validation."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

TaskType = Literal["clustering", "classification"]
ScalerType = Literal["standard", "minmax", "none"]
ClusterScore = Literal["silhouette", "calinski_harabasz", "davies_bouldin"]
PlotlyJsMode = Literal["cdn", "inline"]

# Scores where a smaller value means tighter, better separated clusters.
LOWER_IS_BETTER: frozenset[str] = frozenset({"davies_bouldin"})

DEFAULT_CANDIDATE_FEATURES: list[str] = [
    "danceability",
    "energy",
    "valence",
    "acousticness",
    "instrumentalness",
    "speechiness",
    "liveness",
    "tempo",
]


class TaskConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    type: TaskType


class DataConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    path: str | None = None
    features_path: str | None = None
    min_ms_played: int = 30_000
    join_keys: list[str] = Field(default_factory=lambda: ["artist", "track"])

    @model_validator(mode="after")
    def _validate_data_fields(self) -> "DataConfig":
        if self.min_ms_played < 0:
            raise ValueError("data.min_ms_played must be >= 0")
        if not self.join_keys:
            raise ValueError("data.join_keys must not be empty")
        return self


class ClusteringConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    candidate_features: list[str] = Field(
        default_factory=lambda: list(DEFAULT_CANDIDATE_FEATURES)
    )
    min_subset_size: int = 2
    max_subset_size: int | None = None
    k_values: list[int] = Field(default_factory=lambda: [2, 3, 4, 5, 6, 7, 8])
    scaler: ScalerType = "standard"
    score: ClusterScore = "silhouette"
    n_init: int = 10
    seed: int = 42
    n_jobs: int = -1
    silhouette_sample_size: int | None = None
    weight_by_plays: bool = False

    @model_validator(mode="after")
    def _validate_clustering_fields(self) -> "ClusteringConfig":
        if not self.candidate_features:
            raise ValueError("clustering.candidate_features must not be empty")
        if len(set(self.candidate_features)) != len(self.candidate_features):
            raise ValueError("clustering.candidate_features must not contain duplicates")
        if any("," in name for name in self.candidate_features):
            raise ValueError(
                "clustering.candidate_features names must not contain ',' "
                "(feature subsets are stored as comma-joined keys)"
            )
        if self.min_subset_size < 1:
            raise ValueError("clustering.min_subset_size must be >= 1")
        max_size = self.resolved_max_subset_size
        if max_size < self.min_subset_size:
            raise ValueError(
                "clustering.max_subset_size must be >= clustering.min_subset_size"
            )
        if max_size > len(self.candidate_features):
            raise ValueError(
                "clustering.max_subset_size must not exceed the number of candidate features "
                f"({len(self.candidate_features)})"
            )
        if not self.k_values:
            raise ValueError("clustering.k_values must not be empty")
        if any(k < 2 for k in self.k_values):
            raise ValueError("clustering.k_values entries must be >= 2")
        if len(set(self.k_values)) != len(self.k_values):
            raise ValueError("clustering.k_values must not contain duplicates")
        if self.n_init < 1:
            raise ValueError("clustering.n_init must be >= 1")
        if self.n_jobs == 0:
            raise ValueError("clustering.n_jobs must be non-zero (use -1 for all cores)")
        if self.silhouette_sample_size is not None and self.silhouette_sample_size < 2:
            raise ValueError("clustering.silhouette_sample_size must be >= 2 when set")
        return self

    @property
    def resolved_max_subset_size(self) -> int:
        if self.max_subset_size is None:
            return len(self.candidate_features)
        return self.max_subset_size


class ClassifierConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    image_size: int = 64
    channels: list[int] = Field(default_factory=lambda: [32, 64, 128])
    blocks_per_stage: int = 1
    dropout: float = 0.3
    epochs: int = 10
    batch_size: int = 64
    learning_rate: float = 1e-3
    weight_decay: float = 1e-4
    validation_fraction: float = 0.2
    early_stopping_patience: int | None = 3
    class_names: list[str] = Field(default_factory=lambda: ["male", "female"])
    seed: int = 42
    device: str = "cpu"

    @model_validator(mode="after")
    def _validate_classifier_fields(self) -> "ClassifierConfig":
        if self.image_size < 8:
            raise ValueError("classifier.image_size must be >= 8")
        if not self.channels:
            raise ValueError("classifier.channels must not be empty")
        if any(c < 1 for c in self.channels):
            raise ValueError("classifier.channels entries must be >= 1")
        if self.blocks_per_stage < 1:
            raise ValueError("classifier.blocks_per_stage must be >= 1")
        if not (0.0 <= self.dropout < 1.0):
            raise ValueError("classifier.dropout must satisfy 0 <= value < 1")
        if self.epochs < 1:
            raise ValueError("classifier.epochs must be >= 1")
        if self.batch_size < 1:
            raise ValueError("classifier.batch_size must be >= 1")
        if self.learning_rate <= 0:
            raise ValueError("classifier.learning_rate must be > 0")
        if self.weight_decay < 0:
            raise ValueError("classifier.weight_decay must be >= 0")
        if not (0.0 < self.validation_fraction < 1.0):
            raise ValueError("classifier.validation_fraction must satisfy 0 < value < 1")
        if self.early_stopping_patience is not None and self.early_stopping_patience < 1:
            raise ValueError("classifier.early_stopping_patience must be >= 1 or None")
        if len(self.class_names) < 2:
            raise ValueError("classifier.class_names must list at least two classes")
        return self


class EnrichmentConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    enabled: bool = False
    api_base_url: str = "https://api.spotify.com/v1"
    token_url: str = "https://accounts.spotify.com/api/token"
    client_id_env: str = "SPOTIFY_CLIENT_ID"
    client_secret_env: str = "SPOTIFY_CLIENT_SECRET"
    rps: float = 2.0
    max_retries: int = 3
    timeout: int = 15
    batch_size: int = 100
    market: str | None = None
    output_path: str | None = None

    @model_validator(mode="after")
    def _validate_enrichment_fields(self) -> "EnrichmentConfig":
        if self.rps <= 0:
            raise ValueError("enrichment.rps must be > 0")
        if self.max_retries < 1:
            raise ValueError("enrichment.max_retries must be >= 1")
        if self.timeout < 1:
            raise ValueError("enrichment.timeout must be >= 1")
        if not (1 <= self.batch_size <= 100):
            raise ValueError("enrichment.batch_size must satisfy 1 <= value <= 100")
        return self


class ExportConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    artifact_dir: str = "artifacts"


class ProjectConfig(BaseModel):
    """Single shared entrypoint configuration for every analysis run."""

    model_config = ConfigDict(extra="forbid")
    config_version: int
    task: TaskConfig
    data: DataConfig = Field(default_factory=DataConfig)
    clustering: ClusteringConfig = Field(default_factory=ClusteringConfig)
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    enrichment: EnrichmentConfig = Field(default_factory=EnrichmentConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)

    @model_validator(mode="after")
    def _validate_cross_fields(self) -> "ProjectConfig":
        if self.config_version < 1:
            raise ValueError("config_version must be >= 1")

        if self.task.type == "clustering":
            if self.classifier != ClassifierConfig():
                raise ValueError(
                    "classifier settings can only be customized when task.type='classification'"
                )
            if not self.data.features_path:
                raise ValueError("data.features_path is required when task.type='clustering'")
        else:
            if self.clustering != ClusteringConfig():
                raise ValueError(
                    "clustering settings can only be customized when task.type='clustering'"
                )
            if self.enrichment.enabled:
                raise ValueError("enrichment can only be enabled when task.type='clustering'")
        return self


class NavLink(BaseModel):
    model_config = ConfigDict(extra="forbid")
    label: str
    href: str


class SiteConfig(BaseModel):
    """Static site build configuration."""

    model_config = ConfigDict(extra="forbid")
    config_version: int = 1
    title: str
    author: str | None = None
    tagline: str | None = None
    base_url: str | None = None
    content_dir: str = "content"
    output_dir: str = "public"
    static_dir: str | None = None
    template_dir: str | None = None
    include_drafts: bool = False
    plotly_js: PlotlyJsMode = "cdn"
    nav: list[NavLink] = Field(default_factory=list)

    @model_validator(mode="after")
    def _validate_site_fields(self) -> "SiteConfig":
        if self.config_version < 1:
            raise ValueError("config_version must be >= 1")
        if not self.title.strip():
            raise ValueError("title must not be blank")
        if self.content_dir == self.output_dir:
            raise ValueError("content_dir and output_dir must differ")
        if self.base_url is not None and not self.base_url.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")
        return self
