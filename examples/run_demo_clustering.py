"""Run the listening-history clustering demo end to end."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any

try:  # pragma: no cover - import path depends on how the script is launched
    from examples.common import (
        DEFAULT_FEATURES_PATH,
        DEFAULT_HISTORY_DIR,
        DEFAULT_OUT_DIR,
        DEMO_FEATURES,
        demo_failure,
        make_run_dir,
        require_inputs,
        write_run_result,
        write_used_config,
    )
except ModuleNotFoundError:  # pragma: no cover
    from common import (
        DEFAULT_FEATURES_PATH,
        DEFAULT_HISTORY_DIR,
        DEFAULT_OUT_DIR,
        DEMO_FEATURES,
        demo_failure,
        make_run_dir,
        require_inputs,
        write_run_result,
        write_used_config,
    )
from folio.api import Artifact, cluster
from folio.api.exceptions import FolioError


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--history-dir",
        default=str(DEFAULT_HISTORY_DIR),
        help="Streaming history directory prepared by prepare_demo_data.py.",
    )
    parser.add_argument(
        "--features-path",
        default=str(DEFAULT_FEATURES_PATH),
        help="Track feature CSV prepared by prepare_demo_data.py.",
    )
    parser.add_argument(
        "--out-dir",
        default=str(DEFAULT_OUT_DIR),
        help="Output root directory (default: examples/out).",
    )
    parser.add_argument("--seed", type=int, default=42, help="Random seed.")
    parser.add_argument(
        "--k-values",
        default="2,3,4,5,6",
        help="Comma-separated cluster counts to search.",
    )
    return parser.parse_args(argv)


def build_run_config(
    history_dir: Path,
    features_path: Path,
    artifact_dir: Path,
    seed: int,
    k_values: list[int],
) -> dict[str, Any]:
    return {
        "config_version": 1,
        "task": {"type": "clustering"},
        "data": {"path": str(history_dir), "features_path": str(features_path)},
        "clustering": {
            "candidate_features": list(DEMO_FEATURES),
            "min_subset_size": 2,
            "k_values": k_values,
            "seed": seed,
            "n_init": 5,
        },
        "export": {"artifact_dir": str(artifact_dir)},
    }


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    history_dir = Path(args.history_dir)
    features_path = Path(args.features_path)

    require_inputs([history_dir, features_path], producer="prepare_demo_data.py")

    try:
        k_values = [int(item) for item in args.k_values.split(",") if item.strip()]
        run_dir = make_run_dir(args.out_dir, "cluster")
        config = build_run_config(
            history_dir=history_dir,
            features_path=features_path,
            artifact_dir=run_dir / "artifacts",
            seed=args.seed,
            k_values=k_values,
        )
        run_result = cluster(config)
        artifact = Artifact.load(run_result.artifact_path)

        write_run_result(run_dir, run_result)
        artifact.cluster_profile.to_csv(run_dir / "cluster_profile.csv", index=False)
        artifact.search_results.head(20).to_csv(run_dir / "top_subsets.csv", index=False)
        write_used_config(run_dir, config)
    except (FolioError, ValueError, OSError) as exc:
        raise demo_failure(
            exc, "Check the history export, feature table and --k-values before re-running."
        ) from exc

    print(f"run_id: {run_result.run_id}")
    print(f"artifact_path: {run_result.artifact_path}")
    print(f"best_features: {', '.join(run_result.best_features)}")
    print(f"best_k: {run_result.best_k}")
    print(f"silhouette: {run_result.metrics.get('silhouette', float('nan')):.4f}")
    print(f"output_dir: {run_dir}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
