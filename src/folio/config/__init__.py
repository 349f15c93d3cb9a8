"""Config package exports."""

from __future__ import annotations

from importlib import import_module
from typing import Any

__all__ = [
    "ClassifierConfig",
    "ClusteringConfig",
    "DataConfig",
    "EnrichmentConfig",
    "ExportConfig",
    "MigrationResult",
    "NavLink",
    "ProjectConfig",
    "SiteConfig",
    "TaskConfig",
    "load_project_config",
    "load_site_config",
    "migrate_config_file",
    "migrate_project_config_file",
    "migrate_project_config_payload",
    "migrate_site_config_file",
    "migrate_site_config_payload",
    "save_project_config",
    "save_site_config",
]


def __getattr__(name: str) -> Any:
    if name in {
        "load_project_config",
        "load_site_config",
        "save_project_config",
        "save_site_config",
    }:
        return getattr(import_module("folio.config.io"), name)
    if name in {
        "MigrationResult",
        "migrate_config_file",
        "migrate_project_config_file",
        "migrate_project_config_payload",
        "migrate_site_config_file",
        "migrate_site_config_payload",
    }:
        return getattr(import_module("folio.config.migrate"), name)
    if name in {
        "ClassifierConfig",
        "ClusteringConfig",
        "DataConfig",
        "EnrichmentConfig",
        "ExportConfig",
        "NavLink",
        "ProjectConfig",
        "SiteConfig",
        "TaskConfig",
    }:
        return getattr(import_module("folio.config.models"), name)
    raise AttributeError(f"module 'folio.config' has no attribute '{name}'")
