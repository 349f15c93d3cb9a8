from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from folio.config.io import (
    load_project_config,
    load_site_config,
    save_project_config,
    save_site_config,
)
from folio.config.models import ProjectConfig, SiteConfig


def _project_config(tmp_path: Path) -> ProjectConfig:
    return ProjectConfig.model_validate(
        {
            "config_version": 1,
            "task": {"type": "clustering"},
            "data": {
                "path": str(tmp_path / "history"),
                "features_path": str(tmp_path / "features.csv"),
            },
            "clustering": {"candidate_features": ["energy", "valence"], "k_values": [2, 3]},
            "export": {"artifact_dir": str(tmp_path / "artifacts")},
        }
    )


def test_save_then_load_project_config_roundtrip(tmp_path: Path) -> None:
    config = _project_config(tmp_path)
    path = tmp_path / "configs" / "project.yaml"
    save_project_config(config, path)
    loaded = load_project_config(path)
    assert loaded.model_dump(mode="json") == config.model_dump(mode="json")


def test_load_project_config_rejects_non_mapping_yaml(tmp_path: Path) -> None:
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError, match="mapping object"):
        load_project_config(path)


def test_load_project_config_raises_for_malformed_yaml(tmp_path: Path) -> None:
    path = tmp_path / "malformed.yaml"
    path.write_text("config_version: [1\n", encoding="utf-8")
    with pytest.raises(yaml.YAMLError):
        load_project_config(path)


def test_load_project_config_raises_for_missing_path(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_project_config(tmp_path / "missing.yaml")


def test_load_site_config_resolves_relative_dirs(tmp_path: Path) -> None:
    path = tmp_path / "site" / "site.yaml"
    path.parent.mkdir(parents=True)
    path.write_text("title: My Work\nstatic_dir: assets\n", encoding="utf-8")
    site = load_site_config(path)
    base = path.resolve().parent
    assert Path(site.content_dir) == base / "content"
    assert Path(site.output_dir) == base / "public"
    assert Path(site.static_dir) == base / "assets"
    assert site.template_dir is None


def test_save_site_config_roundtrip(tmp_path: Path) -> None:
    site = SiteConfig(
        title="Folio",
        content_dir=str(tmp_path / "content"),
        output_dir=str(tmp_path / "public"),
        nav=[{"label": "GitHub", "href": "https://github.com"}],
    )
    path = tmp_path / "site.yaml"
    save_site_config(site, path)
    assert load_site_config(path) == site
