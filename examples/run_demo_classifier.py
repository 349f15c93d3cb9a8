"""Train the image classifier demo and score the training archive."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

try:  # pragma: no cover - import path depends on how the script is launched
    from examples.common import (
        DEFAULT_IMAGES_PATH,
        DEFAULT_OUT_DIR,
        DEMO_CLASS_NAMES,
        demo_failure,
        make_run_dir,
        require_inputs,
        write_run_result,
        write_used_config,
    )
except ModuleNotFoundError:  # pragma: no cover
    from common import (
        DEFAULT_IMAGES_PATH,
        DEFAULT_OUT_DIR,
        DEMO_CLASS_NAMES,
        demo_failure,
        make_run_dir,
        require_inputs,
        write_run_result,
        write_used_config,
    )
from folio.api import predict, train_classifier
from folio.api.exceptions import FolioError


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--images-path",
        default=str(DEFAULT_IMAGES_PATH),
        help="Image archive (.npz) prepared by prepare_demo_data.py.",
    )
    parser.add_argument(
        "--out-dir",
        default=str(DEFAULT_OUT_DIR),
        help="Output root directory (default: examples/out).",
    )
    parser.add_argument("--seed", type=int, default=42, help="Random seed.")
    parser.add_argument("--epochs", type=int, default=8, help="Maximum training epochs.")
    parser.add_argument("--image-size", type=int, default=32, help="Model input size.")
    return parser.parse_args(argv)


def build_run_config(
    images_path: Path,
    artifact_dir: Path,
    seed: int,
    epochs: int,
    image_size: int,
) -> dict[str, Any]:
    return {
        "config_version": 1,
        "task": {"type": "classification"},
        "data": {"path": str(images_path)},
        "classifier": {
            "image_size": image_size,
            "channels": [16, 32],
            "epochs": epochs,
            "batch_size": 32,
            "early_stopping_patience": 3,
            "class_names": list(DEMO_CLASS_NAMES),
            "seed": seed,
        },
        "export": {"artifact_dir": str(artifact_dir)},
    }


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    images_path = Path(args.images_path)

    require_inputs([images_path], producer="prepare_demo_data.py")

    try:
        run_dir = make_run_dir(args.out_dir, "classifier")
        config = build_run_config(
            images_path=images_path,
            artifact_dir=run_dir / "artifacts",
            seed=args.seed,
            epochs=args.epochs,
            image_size=args.image_size,
        )
        run_result = train_classifier(config)
        pred = predict(run_result.artifact_path, images_path)

        with np.load(images_path, allow_pickle=False) as archive:
            labels = archive["labels"]
        class_names = run_result.metadata["class_names"]
        pred_sample = pd.concat(
            [
                pd.DataFrame({"label": [class_names[int(i)] for i in labels]}),
                pred.data,
            ],
            axis=1,
        ).head(20)

        write_run_result(run_dir, run_result)
        pred_sample.to_csv(run_dir / "predictions_sample.csv", index=False)
        write_used_config(run_dir, config)
    except (FolioError, ValueError, OSError) as exc:
        raise demo_failure(
            exc, "Check the image archive and classifier settings before re-running."
        ) from exc

    print(f"run_id: {run_result.run_id}")
    print(f"artifact_path: {run_result.artifact_path}")
    print(f"accuracy: {run_result.metrics['accuracy']:.4f}")
    print(f"best_epoch: {run_result.metadata['best_epoch']}")
    print(f"output_dir: {run_dir}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
