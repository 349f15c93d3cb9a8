"""Write demo page documents for saved artifacts and build the static site."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any

try:  # pragma: no cover - import path depends on how the script is launched
    from examples.common import (
        DEFAULT_OUT_DIR,
        demo_failure,
        make_run_dir,
        require_inputs,
        write_page,
        write_run_result,
        write_used_config,
    )
except ModuleNotFoundError:  # pragma: no cover
    from common import (
        DEFAULT_OUT_DIR,
        demo_failure,
        make_run_dir,
        require_inputs,
        write_page,
        write_run_result,
        write_used_config,
    )
from folio.api import build_site
from folio.api.exceptions import FolioError


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--cluster-artifact",
        required=True,
        help="Artifact directory written by run_demo_clustering.py.",
    )
    parser.add_argument(
        "--classifier-artifact",
        default=None,
        help="Artifact directory written by run_demo_classifier.py (optional).",
    )
    parser.add_argument(
        "--out-dir",
        default=str(DEFAULT_OUT_DIR),
        help="Output root directory (default: examples/out).",
    )
    parser.add_argument("--title", default="Folio Demo", help="Site title.")
    return parser.parse_args(argv)


def clustering_page(artifact: Path) -> dict[str, Any]:
    return {
        "slug": "listening-moods",
        "title": "Listening Moods",
        "summary": "K-means over audio features of the tracks I actually play.",
        "tags": ["clustering", "music"],
        "artifact": str(artifact),
        "order": 1,
        "blocks": [
            {
                "type": "text",
                "body": (
                    "Every feature subset and cluster count was scored, and the best "
                    "combination was refit on all listened tracks."
                ),
            },
            {"type": "figure", "chart": "subset_scores"},
            {"type": "figure", "chart": "cluster_scatter", "caption": "Tracks by cluster."},
            {"type": "figure", "chart": "cluster_profile"},
            {"type": "table", "source": "cluster_profile", "max_rows": 10},
            {"type": "figure", "chart": "elbow"},
            {"type": "figure", "chart": "listening_timeline"},
        ],
    }


def classifier_page(artifact: Path) -> dict[str, Any]:
    return {
        "slug": "face-classifier",
        "title": "Face Classifier",
        "summary": "A small residual CNN trained from scratch.",
        "tags": ["deep-learning", "vision"],
        "artifact": str(artifact),
        "order": 2,
        "blocks": [
            {"type": "figure", "chart": "training_history"},
            {"type": "figure", "chart": "confusion_matrix"},
            {"type": "table", "source": "metrics"},
            {
                "type": "image",
                "src": str(artifact / "samples.png"),
                "alt": "Validation samples",
                "caption": "Validation images with predicted class.",
            },
        ],
    }


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    cluster_artifact = Path(args.cluster_artifact).resolve()
    classifier_artifact = (
        Path(args.classifier_artifact).resolve() if args.classifier_artifact else None
    )

    require_inputs([cluster_artifact / "manifest.json"], producer="run_demo_clustering.py")
    if classifier_artifact is not None:
        require_inputs(
            [classifier_artifact / "manifest.json"], producer="run_demo_classifier.py"
        )

    try:
        run_dir = make_run_dir(args.out_dir, "site")
        content_dir = run_dir / "content"
        write_page(content_dir, clustering_page(cluster_artifact))
        if classifier_artifact is not None:
            write_page(content_dir, classifier_page(classifier_artifact))
        config = {
            "title": args.title,
            "tagline": "Data projects, rebuilt from their saved artifacts.",
            "content_dir": str(content_dir),
            "output_dir": str(run_dir / "public"),
        }
        result = build_site(config)
        write_run_result(run_dir, result, name="build_result.json")
        write_used_config(run_dir, config, name="used_site_config.yaml")
    except (FolioError, ValueError, OSError) as exc:
        raise demo_failure(exc, "Check the artifact directories before re-running.") from exc

    print(f"pages: {', '.join(result.pages)}")
    print(f"files: {len(result.files)}")
    print(f"warnings: {len(result.warnings)}")
    print(f"output_dir: {result.output_dir}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
