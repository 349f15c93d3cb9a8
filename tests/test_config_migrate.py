from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from folio.api.exceptions import FolioNotImplementedError, FolioValidationError
from folio.config.migrate import (
    detect_config_kind,
    migrate_config_file,
    migrate_project_config_file,
    migrate_project_config_payload,
    migrate_site_config_file,
    migrate_site_config_payload,
)


def _payload() -> dict:
    return {
        "config_version": 1,
        "task": {"type": "classification"},
        "data": {"path": "faces.npz"},
    }


def test_migrate_payload_fills_defaults() -> None:
    normalized, result = migrate_project_config_payload(_payload())
    assert result.changed is True
    assert result.source_version == 1
    assert normalized["classifier"]["class_names"] == ["male", "female"]
    assert normalized["export"] == {"artifact_dir": "artifacts"}


def test_migrate_payload_is_idempotent() -> None:
    normalized, _ = migrate_project_config_payload(_payload())
    again, result = migrate_project_config_payload(normalized)
    assert again == normalized
    assert result.changed is False


def test_migrate_payload_rejects_unsupported_versions() -> None:
    with pytest.raises(FolioNotImplementedError):
        migrate_project_config_payload(_payload(), target_version=2)
    with pytest.raises(FolioNotImplementedError):
        migrate_project_config_payload({**_payload(), "config_version": 2})
    with pytest.raises(FolioValidationError, match="integer"):
        migrate_project_config_payload({**_payload(), "config_version": "1"})


def test_migrate_file_writes_default_output(tmp_path: Path) -> None:
    source = tmp_path / "project.yaml"
    source.write_text(yaml.safe_dump(_payload()), encoding="utf-8")
    result = migrate_project_config_file(source)
    output = Path(result.output_path)
    assert output.name == "project.migrated.yaml"
    assert yaml.safe_load(output.read_text(encoding="utf-8"))["task"] == {
        "type": "classification"
    }


def test_migrate_file_refuses_to_overwrite(tmp_path: Path) -> None:
    source = tmp_path / "project.yaml"
    source.write_text(yaml.safe_dump(_payload()), encoding="utf-8")
    target = tmp_path / "out.yaml"
    target.write_text("keep", encoding="utf-8")
    with pytest.raises(FolioValidationError, match="overwrite"):
        migrate_project_config_file(source, output_path=target)
    assert target.read_text(encoding="utf-8") == "keep"


def test_migrate_file_reports_invalid_config(tmp_path: Path) -> None:
    source = tmp_path / "bad.yaml"
    source.write_text(yaml.safe_dump({**_payload(), "unknown": 1}), encoding="utf-8")
    with pytest.raises(FolioValidationError, match="Invalid ProjectConfig"):
        migrate_project_config_file(source)


def test_migrate_payload_drops_sections_the_task_never_reads() -> None:
    payload = {**_payload(), "clustering": {}, "enrichment": {"rps": 2.0}}
    normalized, result = migrate_project_config_payload(payload)
    assert "clustering" not in normalized
    assert "enrichment" not in normalized
    assert "classifier" in normalized
    assert len(result.warnings) == 2
    assert all("classification" in warning for warning in result.warnings)

    clustering = {
        "config_version": 1,
        "task": {"type": "clustering"},
        "data": {"path": "history", "features_path": "features.csv"},
    }
    normalized, result = migrate_project_config_payload(clustering)
    assert "classifier" not in normalized
    assert normalized["enrichment"]["enabled"] is False
    assert result.warnings == []


def test_migrate_site_payload_rebases_directories(tmp_path: Path) -> None:
    payload = {"title": "Folio", "content_dir": "pages", "static_dir": "assets"}
    normalized, result = migrate_site_config_payload(
        payload, source_dir=tmp_path / "site", destination_dir=tmp_path / "configs"
    )
    assert result.config_kind == "site"
    assert normalized["content_dir"] == "../site/pages"
    assert normalized["output_dir"] == "../site/public"
    assert normalized["static_dir"] == "../site/assets"
    assert "template_dir" not in normalized
    assert any("sitemap" in warning for warning in result.warnings)

    unchanged, _ = migrate_site_config_payload(payload)
    assert unchanged["content_dir"] == "pages"


def test_migrate_site_file_keeps_directories_pointing_at_the_same_place(tmp_path: Path) -> None:
    source = tmp_path / "site" / "site.yaml"
    source.parent.mkdir()
    source.write_text(
        yaml.safe_dump({"title": "Folio", "base_url": "https://example.org"}), encoding="utf-8"
    )
    result = migrate_site_config_file(source, output_path=tmp_path / "out" / "site.yaml")
    migrated = yaml.safe_load(Path(result.output_path).read_text(encoding="utf-8"))
    assert migrated["content_dir"] == "../site/content"
    assert migrated["config_version"] == 1
    assert result.warnings == []


def test_migrate_config_file_detects_kind(tmp_path: Path) -> None:
    project = tmp_path / "project.yaml"
    project.write_text(yaml.safe_dump(_payload()), encoding="utf-8")
    site = tmp_path / "site.yaml"
    site.write_text(yaml.safe_dump({"title": "Folio"}), encoding="utf-8")

    assert migrate_config_file(project).config_kind == "project"
    assert migrate_config_file(site).config_kind == "site"
    with pytest.raises(FolioValidationError, match="config kind"):
        detect_config_kind({"nav": []})
