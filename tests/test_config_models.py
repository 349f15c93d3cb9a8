from __future__ import annotations

import pytest
from pydantic import ValidationError

from folio.config.models import (
    ClassifierConfig,
    ClusteringConfig,
    EnrichmentConfig,
    ProjectConfig,
    SiteConfig,
)


def _clustering(**overrides: object) -> dict:
    payload: dict = {
        "config_version": 1,
        "task": {"type": "clustering"},
        "data": {"path": "history", "features_path": "features.csv"},
    }
    payload.update(overrides)
    return payload


def test_clustering_config_defaults() -> None:
    config = ProjectConfig.model_validate(_clustering())
    assert config.clustering.score == "silhouette"
    assert config.clustering.resolved_max_subset_size == len(config.clustering.candidate_features)
    assert config.data.min_ms_played == 30_000
    assert config.data.join_keys == ["artist", "track"]
    assert config.enrichment.enabled is False


def test_clustering_requires_features_path() -> None:
    with pytest.raises(ValidationError, match="features_path"):
        ProjectConfig.model_validate(_clustering(data={"path": "history"}))


def test_clustering_rejects_custom_classifier() -> None:
    with pytest.raises(ValidationError, match="classifier settings"):
        ProjectConfig.model_validate(_clustering(classifier={"epochs": 3}))


def test_classification_rejects_custom_clustering_and_enrichment() -> None:
    base = {"config_version": 1, "task": {"type": "classification"}, "data": {"path": "x.npz"}}
    ProjectConfig.model_validate(base)
    with pytest.raises(ValidationError, match="clustering settings"):
        ProjectConfig.model_validate({**base, "clustering": {"k_values": [2]}})
    with pytest.raises(ValidationError, match="enrichment"):
        ProjectConfig.model_validate({**base, "enrichment": {"enabled": True}})


def test_unknown_keys_are_rejected() -> None:
    with pytest.raises(ValidationError):
        ProjectConfig.model_validate(_clustering(surprise=True))


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"candidate_features": []}, "must not be empty"),
        ({"candidate_features": ["a", "a"]}, "duplicates"),
        ({"candidate_features": ["energy", "mood,score"]}, "must not contain ','"),
        ({"min_subset_size": 3, "max_subset_size": 2}, "max_subset_size"),
        ({"candidate_features": ["a", "b"], "max_subset_size": 3}, "must not exceed"),
        ({"k_values": [1, 2]}, ">= 2"),
        ({"k_values": [2, 2]}, "duplicates"),
        ({"n_jobs": 0}, "non-zero"),
        ({"silhouette_sample_size": 1}, "silhouette_sample_size"),
    ],
)
def test_clustering_config_validation(overrides: dict, message: str) -> None:
    with pytest.raises(ValidationError, match=message):
        ClusteringConfig.model_validate(overrides)


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"image_size": 4}, "image_size"),
        ({"channels": []}, "channels"),
        ({"dropout": 1.0}, "dropout"),
        ({"validation_fraction": 0.0}, "validation_fraction"),
        ({"class_names": ["only"]}, "at least two"),
        ({"early_stopping_patience": 0}, "early_stopping_patience"),
    ],
)
def test_classifier_config_validation(overrides: dict, message: str) -> None:
    with pytest.raises(ValidationError, match=message):
        ClassifierConfig.model_validate(overrides)


def test_enrichment_batch_size_bounds() -> None:
    assert EnrichmentConfig(batch_size=100).batch_size == 100
    with pytest.raises(ValidationError, match="batch_size"):
        EnrichmentConfig(batch_size=101)
    with pytest.raises(ValidationError, match="rps"):
        EnrichmentConfig(rps=0)


def test_site_config_validation() -> None:
    site = SiteConfig(title="Portfolio", base_url="https://example.org")
    assert site.plotly_js == "cdn"
    with pytest.raises(ValidationError, match="blank"):
        SiteConfig(title="  ")
    with pytest.raises(ValidationError, match="must differ"):
        SiteConfig(title="x", content_dir="same", output_dir="same")
    with pytest.raises(ValidationError, match="base_url"):
        SiteConfig(title="x", base_url="example.org")
