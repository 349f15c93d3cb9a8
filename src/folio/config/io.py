"""ProjectConfig / SiteConfig serialization helpers."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel

from folio.config.models import ProjectConfig, SiteConfig


def _load_mapping(path: str | Path, kind: str) -> dict[str, Any]:
    config_path = Path(path)
    raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError(f"{kind} YAML must deserialize to a mapping object.")
    return raw


def _save_model(config: BaseModel, path: str | Path) -> None:
    config_path = Path(path)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    payload: dict[str, Any] = config.model_dump(mode="json", exclude_none=True)
    config_path.write_text(
        yaml.safe_dump(payload, sort_keys=False, allow_unicode=True),
        encoding="utf-8",
    )


def load_project_config(path: str | Path) -> ProjectConfig:
    return ProjectConfig.model_validate(_load_mapping(path, "ProjectConfig"))


def save_project_config(config: ProjectConfig, path: str | Path) -> None:
    _save_model(config, path)


def load_site_config(path: str | Path) -> SiteConfig:
    """Load a SiteConfig, resolving relative directories against the file location."""
    config_path = Path(path)
    raw = _load_mapping(config_path, "SiteConfig")
    base = config_path.resolve().parent
    for key in ("content_dir", "output_dir", "static_dir", "template_dir"):
        value = raw.get(key)
        if isinstance(value, str) and not Path(value).is_absolute():
            raw[key] = str(base / value)
    if "content_dir" not in raw:
        raw["content_dir"] = str(base / "content")
    if "output_dir" not in raw:
        raw["output_dir"] = str(base / "public")
    return SiteConfig.model_validate(raw)


def save_site_config(config: SiteConfig, path: str | Path) -> None:
    _save_model(config, path)
