"""Shared inputs and output writers for the folio demo scripts.

The demos chain together: ``prepare_demo_data.py`` writes ``examples/data``,
the clustering and classifier demos read it and write one run directory each,
and ``run_demo_site.py`` turns their artifacts into pages.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import yaml

from folio.config.io import save_project_config, save_site_config
from folio.config.models import ProjectConfig, SiteConfig
from folio.site.content import PageDocument

EXAMPLES_DIR = Path(__file__).resolve().parent
DEFAULT_DATA_DIR = EXAMPLES_DIR / "data"
DEFAULT_HISTORY_DIR = DEFAULT_DATA_DIR / "history"
DEFAULT_FEATURES_PATH = DEFAULT_DATA_DIR / "track_features.csv"
DEFAULT_IMAGES_PATH = DEFAULT_DATA_DIR / "faces.npz"
DEFAULT_OUT_DIR = EXAMPLES_DIR / "out"
DEMO_FEATURES = ["danceability", "energy", "valence", "acousticness", "tempo"]
DEMO_CLASS_NAMES = ["male", "female"]


def make_run_dir(root: str | Path, kind: str) -> Path:
    """Create ``<root>/<kind>_<UTC timestamp>`` and return it."""
    base = Path(root)
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    candidate = base / f"{kind}_{stamp}"
    suffix = 1
    while candidate.exists():
        candidate = base / f"{kind}_{stamp}_{suffix:02d}"
        suffix += 1
    candidate.mkdir(parents=True, exist_ok=False)
    return candidate


def require_inputs(paths: Iterable[Path], producer: str) -> None:
    """Exit with a hint naming the demo script that writes the missing inputs."""
    missing = [str(path) for path in paths if not path.exists()]
    if missing:
        raise SystemExit(
            f"Input data was not found: {', '.join(missing)}\n"
            f"Hint: run `python examples/{producer}` first."
        )


def demo_failure(error: Exception, hint: str) -> SystemExit:
    return SystemExit(f"{error}\nHint: {hint}")


def write_run_result(run_dir: Path, result: Any, name: str = "run_result.json") -> Path:
    """Dump a folio result dataclass (ClusterResult, TrainResult, ...)."""
    path = run_dir / name
    path.write_text(
        json.dumps(asdict(result), indent=2, sort_keys=True, default=str),
        encoding="utf-8",
    )
    return path


def write_used_config(
    run_dir: Path, config: dict[str, Any], name: str = "used_config.yaml"
) -> Path:
    """Save the config as folio validated it, defaults included."""
    path = run_dir / name
    if "task" in config:
        save_project_config(ProjectConfig.model_validate(config), path)
    else:
        save_site_config(SiteConfig.model_validate(config), path)
    return path


def write_page(content_dir: Path, page: dict[str, Any]) -> Path:
    """Validate a page document and write it as ``<slug>.yaml``."""
    document = PageDocument.model_validate(page)
    path = content_dir / f"{document.slug}.yaml"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(page, sort_keys=False, allow_unicode=True), encoding="utf-8")
    return path
