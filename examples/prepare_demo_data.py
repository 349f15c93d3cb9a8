"""Generate a synthetic listening history, track-feature table and image archive."""

from __future__ import annotations

import argparse
import json
from pathlib import Path

import numpy as np
import pandas as pd
from sklearn.datasets import make_blobs

try:  # pragma: no cover - import path depends on how the script is launched
    from examples.common import DEFAULT_DATA_DIR, DEMO_CLASS_NAMES, DEMO_FEATURES, demo_failure
except ModuleNotFoundError:  # pragma: no cover
    from common import DEFAULT_DATA_DIR, DEMO_CLASS_NAMES, DEMO_FEATURES, demo_failure


def build_track_features(n_tracks: int, n_moods: int, seed: int) -> pd.DataFrame:
    """Audio features drawn from ``n_moods`` blobs and rescaled to realistic ranges."""
    values, _ = make_blobs(
        n_samples=n_tracks,
        centers=n_moods,
        n_features=len(DEMO_FEATURES),
        cluster_std=0.6,
        random_state=seed,
    )
    lo = values.min(axis=0)
    span = np.where(values.max(axis=0) > lo, values.max(axis=0) - lo, 1.0)
    unit = (values - lo) / span
    frame = pd.DataFrame(unit, columns=DEMO_FEATURES)
    frame["tempo"] = 70.0 + 110.0 * frame["tempo"]
    frame.insert(0, "track", [f"Track {idx:03d}" for idx in range(n_tracks)])
    frame.insert(0, "artist", [f"Artist {idx % 12:02d}" for idx in range(n_tracks)])
    return frame


def build_history_events(tracks: pd.DataFrame, seed: int) -> list[dict]:
    """Extended-dialect events; roughly one play in five is a skip."""
    rng = np.random.default_rng(seed)
    start = pd.Timestamp("2024-01-01T00:00:00Z")
    events: list[dict] = []
    for idx, row in enumerate(tracks.itertuples(index=False)):
        for _ in range(int(rng.integers(1, 9))):
            played_at = start + pd.Timedelta(minutes=int(rng.integers(0, 365 * 24 * 60)))
            skipped = rng.random() < 0.2
            events.append(
                {
                    "ts": played_at.strftime("%Y-%m-%dT%H:%M:%SZ"),
                    "master_metadata_album_artist_name": row.artist,
                    "master_metadata_track_name": row.track,
                    "ms_played": int(rng.integers(1_000, 15_000))
                    if skipped
                    else int(rng.integers(90_000, 260_000)),
                    "spotify_track_uri": f"spotify:track:demo{idx:05d}",
                }
            )
    events.sort(key=lambda item: item["ts"])
    return events


def build_image_arrays(per_class: int, size: int, seed: int) -> tuple[np.ndarray, np.ndarray]:
    """Two classes of RGB images that differ in where a bright ellipse sits."""
    rng = np.random.default_rng(seed)
    yy, xx = np.mgrid[0:size, 0:size] / float(size)
    images = np.empty((2 * per_class, size, size, 3), dtype=np.uint8)
    labels = np.repeat(np.arange(2, dtype=np.int64), per_class)
    for idx, label in enumerate(labels):
        cy = (0.35 if label == 0 else 0.65) + rng.normal(scale=0.05)
        cx = 0.5 + rng.normal(scale=0.05)
        mask = ((yy - cy) / 0.22) ** 2 + ((xx - cx) / 0.3) ** 2 <= 1.0
        base = rng.integers(0, 60, size=(size, size, 3))
        base[mask] += int(rng.integers(120, 190))
        images[idx] = np.clip(base, 0, 255).astype(np.uint8)
    return images, labels


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--out-dir",
        default=str(DEFAULT_DATA_DIR),
        help="Output directory (default: examples/data).",
    )
    parser.add_argument("--seed", type=int, default=42, help="Random seed.")
    parser.add_argument("--n-tracks", type=int, default=240, help="Distinct tracks.")
    parser.add_argument("--n-moods", type=int, default=4, help="Blobs in feature space.")
    parser.add_argument("--images-per-class", type=int, default=80, help="Images per class.")
    parser.add_argument("--image-size", type=int, default=32, help="Image side in pixels.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    out_dir = Path(args.out_dir)

    try:
        tracks = build_track_features(args.n_tracks, args.n_moods, args.seed)
        events = build_history_events(tracks, args.seed)
        images, labels = build_image_arrays(args.images_per_class, args.image_size, args.seed)

        history_dir = out_dir / "history"
        history_dir.mkdir(parents=True, exist_ok=True)
        (history_dir / "Streaming_History_Audio_2024.json").write_text(
            json.dumps(events, indent=1), encoding="utf-8"
        )
        tracks.to_csv(out_dir / "track_features.csv", index=False)
        np.savez_compressed(
            out_dir / "faces.npz",
            images=images,
            labels=labels,
            class_names=np.array(DEMO_CLASS_NAMES),
        )
    except (OSError, ValueError) as exc:  # pragma: no cover - exercised via CLI failure only
        raise demo_failure(
            exc, "Check that --out-dir is writable and the sizes are positive."
        ) from exc

    print(f"Saved demo data to: {out_dir}")
    print(f"Tracks: {len(tracks)}  Plays: {len(events)}")
    print(f"Images: {len(images)} ({args.image_size}x{args.image_size})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
