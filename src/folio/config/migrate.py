"""Config normalization for project and site YAML files.

A migrated project config keeps only the sections its task reads: clustering
runs drop ``classifier``, classification runs drop ``clustering`` and
``enrichment``. A migrated site config has its directories rewritten relative
to the migrated file, so ``--output`` may point anywhere.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import ValidationError

from folio.api.exceptions import FolioNotImplementedError, FolioValidationError
from folio.config.models import ProjectConfig, SiteConfig

ConfigKind = Literal["project", "site"]

_UNUSED_SECTIONS: dict[str, tuple[str, ...]] = {
    "clustering": ("classifier",),
    "classification": ("clustering", "enrichment"),
}
_SITE_DIR_KEYS = ("content_dir", "output_dir", "static_dir", "template_dir")


@dataclass(slots=True)
class MigrationResult:
    input_path: str | None
    output_path: str | None
    source_version: int
    target_version: int
    changed: bool
    config_kind: ConfigKind = "project"
    warnings: list[str] = field(default_factory=list)


def _check_versions(payload: dict[str, Any], target_version: int, default: int | None) -> int:
    if target_version != 1:
        raise FolioNotImplementedError(
            f"Cannot migrate to config_version={target_version}; folio only writes version 1."
        )
    version = payload.get("config_version", default)
    if not isinstance(version, int):
        raise FolioValidationError("config_version must be an integer.")
    if version != 1:
        raise FolioNotImplementedError(f"No migration path from config_version={version}.")
    return version


def _normalize_project(payload: dict[str, Any]) -> tuple[dict[str, Any], list[str]]:
    try:
        config = ProjectConfig.model_validate(payload)
    except ValidationError as exc:
        raise FolioValidationError(f"Invalid ProjectConfig: {exc}") from exc

    normalized = config.model_dump(mode="json", exclude_none=True)
    warnings: list[str] = []
    for section in _UNUSED_SECTIONS[config.task.type]:
        normalized.pop(section, None)
        if section in payload:
            warnings.append(f"Dropped '{section}': task.type={config.task.type!r} never reads it.")
    return normalized, warnings


def _rebase_dir(value: str, source_dir: Path, destination_dir: Path) -> str:
    path = Path(value)
    if not path.is_absolute():
        path = source_dir / path
    return Path(os.path.relpath(path.resolve(), destination_dir.resolve())).as_posix()


def _normalize_site(
    payload: dict[str, Any], source_dir: Path | None, destination_dir: Path | None
) -> tuple[dict[str, Any], list[str]]:
    try:
        config = SiteConfig.model_validate(payload)
    except ValidationError as exc:
        raise FolioValidationError(f"Invalid SiteConfig: {exc}") from exc

    normalized = config.model_dump(mode="json", exclude_none=True)
    warnings: list[str] = []
    if source_dir is not None and destination_dir is not None:
        for key in _SITE_DIR_KEYS:
            if key in normalized:
                normalized[key] = _rebase_dir(normalized[key], source_dir, destination_dir)
    if config.base_url is None:
        warnings.append("No base_url: the build will not write sitemap.xml.")
    return normalized, warnings


def migrate_project_config_payload(
    payload: dict[str, Any],
    *,
    target_version: int = 1,
) -> tuple[dict[str, Any], MigrationResult]:
    """Validate a ProjectConfig payload and drop sections its task never reads."""
    if not isinstance(payload, dict):
        raise FolioValidationError("ProjectConfig payload must be a mapping object.")
    source_version = _check_versions(payload, target_version, default=None)
    normalized, warnings = _normalize_project(payload)
    return normalized, MigrationResult(
        input_path=None,
        output_path=None,
        source_version=source_version,
        target_version=target_version,
        changed=normalized != payload,
        config_kind="project",
        warnings=warnings,
    )


def migrate_site_config_payload(
    payload: dict[str, Any],
    *,
    target_version: int = 1,
    source_dir: str | Path | None = None,
    destination_dir: str | Path | None = None,
) -> tuple[dict[str, Any], MigrationResult]:
    """Validate a SiteConfig payload.

    When both ``source_dir`` and ``destination_dir`` are given, relative
    directories are read against ``source_dir`` and rewritten relative to
    ``destination_dir``.
    """
    if not isinstance(payload, dict):
        raise FolioValidationError("SiteConfig payload must be a mapping object.")
    source_version = _check_versions(payload, target_version, default=1)
    normalized, warnings = _normalize_site(
        payload,
        Path(source_dir) if source_dir is not None else None,
        Path(destination_dir) if destination_dir is not None else None,
    )
    return normalized, MigrationResult(
        input_path=None,
        output_path=None,
        source_version=source_version,
        target_version=target_version,
        changed=normalized != payload,
        config_kind="site",
        warnings=warnings,
    )


def detect_config_kind(payload: dict[str, Any]) -> ConfigKind:
    if "task" in payload:
        return "project"
    if "title" in payload:
        return "site"
    raise FolioValidationError(
        "Cannot tell the config kind: expected 'task' (ProjectConfig) or 'title' (SiteConfig)."
    )


def _read_yaml_mapping(source_path: Path) -> dict[str, Any]:
    if not source_path.exists():
        raise FolioValidationError(f"Config file does not exist: {source_path}")
    try:
        raw = yaml.safe_load(source_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise FolioValidationError(f"Config YAML parse error in {source_path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise FolioValidationError(f"{source_path} must deserialize to a mapping object.")
    return raw


def _destination(source_path: Path, output_path: str | Path | None) -> Path:
    destination = (
        Path(output_path)
        if output_path is not None
        else source_path.with_name(f"{source_path.stem}.migrated.yaml")
    )
    if destination.exists():
        raise FolioValidationError(
            f"Will not overwrite {destination}; pass a different --output path."
        )
    return destination


def _write(
    normalized: dict[str, Any],
    result: MigrationResult,
    source_path: Path,
    destination: Path,
) -> MigrationResult:
    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_text(
        yaml.safe_dump(normalized, sort_keys=False, allow_unicode=True),
        encoding="utf-8",
    )
    result.input_path = str(source_path)
    result.output_path = str(destination)
    return result


def migrate_project_config_file(
    input_path: str | Path,
    *,
    output_path: str | Path | None = None,
    target_version: int = 1,
) -> MigrationResult:
    """Write the normalized ProjectConfig next to the input as ``<stem>.migrated.yaml``."""
    source_path = Path(input_path)
    raw = _read_yaml_mapping(source_path)
    normalized, result = migrate_project_config_payload(raw, target_version=target_version)
    return _write(normalized, result, source_path, _destination(source_path, output_path))


def migrate_site_config_file(
    input_path: str | Path,
    *,
    output_path: str | Path | None = None,
    target_version: int = 1,
) -> MigrationResult:
    """Write the normalized SiteConfig; directories keep pointing at the same places."""
    source_path = Path(input_path)
    raw = _read_yaml_mapping(source_path)
    destination = _destination(source_path, output_path)
    normalized, result = migrate_site_config_payload(
        raw,
        target_version=target_version,
        source_dir=source_path.resolve().parent,
        destination_dir=destination.resolve().parent,
    )
    return _write(normalized, result, source_path, destination)


def migrate_config_file(
    input_path: str | Path,
    *,
    output_path: str | Path | None = None,
    target_version: int = 1,
) -> MigrationResult:
    """Migrate a ProjectConfig or SiteConfig file, telling them apart by their keys."""
    kind = detect_config_kind(_read_yaml_mapping(Path(input_path)))
    migrate = migrate_project_config_file if kind == "project" else migrate_site_config_file
    return migrate(input_path, output_path=output_path, target_version=target_version)
