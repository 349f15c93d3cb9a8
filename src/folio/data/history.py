"""Streaming-history loading and aggregation.

Two export dialects are understood. The *legacy* account-data export writes
``StreamingHistory*.json`` files with ``endTime``/``artistName``/``trackName``/
``msPlayed`` keys. The *extended* export writes ``endsong_*.json`` or
``Streaming_History_Audio_*.json`` files keyed by ``ts``/``ms_played`` and the
``master_metadata_*`` fields. Both are normalized to :data:`HISTORY_COLUMNS`.
"""

from __future__ import annotations

import json
from pathlib import Path

import pandas as pd

from folio.api.exceptions import FolioValidationError

HISTORY_COLUMNS = ["played_at", "artist", "track", "ms_played", "track_uri"]
HISTORY_FILE_PATTERNS = ("StreamingHistory*.json", "Streaming_History*.json", "endsong*.json")

_LEGACY_COLUMNS = {
    "endTime": "played_at",
    "artistName": "artist",
    "trackName": "track",
    "msPlayed": "ms_played",
}
_EXTENDED_COLUMNS = {
    "ts": "played_at",
    "master_metadata_album_artist_name": "artist",
    "master_metadata_track_name": "track",
    "ms_played": "ms_played",
    "spotify_track_uri": "track_uri",
}
_NORMALIZED_REQUIRED = {"played_at", "artist", "track", "ms_played"}


def _read_events(source: Path) -> pd.DataFrame:
    suffix = source.suffix.lower()
    if suffix == ".json":
        try:
            raw = json.loads(source.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise FolioValidationError(f"Malformed streaming history JSON: {source}") from exc
        if not isinstance(raw, list):
            raise FolioValidationError(
                f"Streaming history JSON must contain a list of events: {source}"
            )
        return pd.DataFrame.from_records(raw)
    if suffix == ".csv":
        return pd.read_csv(source)
    raise FolioValidationError(
        f"Unsupported streaming history format: '{suffix}'. Supported formats are .json and .csv."
    )


def _normalize_events(frame: pd.DataFrame, source: Path) -> pd.DataFrame:
    if frame.empty:
        return pd.DataFrame(columns=HISTORY_COLUMNS)

    columns = set(frame.columns)
    if set(_LEGACY_COLUMNS) <= columns:
        renamed = frame.rename(columns=_LEGACY_COLUMNS)
    elif set(_EXTENDED_COLUMNS) - {"spotify_track_uri"} <= columns:
        renamed = frame.rename(columns=_EXTENDED_COLUMNS)
    elif _NORMALIZED_REQUIRED <= columns:
        renamed = frame
    else:
        raise FolioValidationError(
            f"Unrecognized streaming history columns in {source}: {sorted(columns)}"
        )

    if "track_uri" not in renamed.columns:
        renamed = renamed.assign(track_uri=None)
    out = renamed.loc[:, HISTORY_COLUMNS].copy()
    out["played_at"] = pd.to_datetime(out["played_at"], utc=True, errors="coerce")
    out["ms_played"] = pd.to_numeric(out["ms_played"], errors="coerce").fillna(0).astype("int64")
    # Podcast episodes and local files carry no artist/track metadata.
    out = out.dropna(subset=["played_at", "artist", "track"])
    out["artist"] = out["artist"].astype(str)
    out["track"] = out["track"].astype(str)
    return out


def history_files(directory: Path) -> list[Path]:
    found: set[Path] = set()
    for pattern in HISTORY_FILE_PATTERNS:
        found.update(directory.glob(pattern))
    return sorted(found)


def load_streaming_history(path: str | Path) -> pd.DataFrame:
    """Load one export file, or every history file in an export directory.

    Returns a frame with :data:`HISTORY_COLUMNS` sorted by ``played_at``.
    """
    source = Path(path)
    if not source.exists():
        raise FolioValidationError(f"Streaming history path does not exist: {source}")

    if source.is_dir():
        files = history_files(source)
        if not files:
            raise FolioValidationError(
                f"No streaming history files matching {list(HISTORY_FILE_PATTERNS)} in {source}"
            )
    else:
        files = [source]

    frames = [_normalize_events(_read_events(item), item) for item in files]
    frames = [frame for frame in frames if not frame.empty]
    if not frames:
        raise FolioValidationError(f"No listening events found in {source}")
    history = pd.concat(frames, ignore_index=True)
    return history.sort_values("played_at", kind="stable").reset_index(drop=True)


def filter_skips(frame: pd.DataFrame, min_ms_played: int) -> pd.DataFrame:
    """Drop plays shorter than ``min_ms_played`` milliseconds."""
    if min_ms_played < 0:
        raise FolioValidationError("min_ms_played must be >= 0")
    return frame.loc[frame["ms_played"] >= min_ms_played].reset_index(drop=True)


def summarize_tracks(frame: pd.DataFrame) -> pd.DataFrame:
    """Aggregate plays into one row per ``(artist, track)``."""
    if frame.empty:
        return pd.DataFrame(
            columns=[
                "artist",
                "track",
                "track_uri",
                "play_count",
                "minutes_played",
                "first_played",
                "last_played",
            ]
        )
    grouped = frame.groupby(["artist", "track"], sort=False).agg(
        track_uri=("track_uri", "first"),
        play_count=("ms_played", "size"),
        ms_played=("ms_played", "sum"),
        first_played=("played_at", "min"),
        last_played=("played_at", "max"),
    )
    grouped["minutes_played"] = grouped.pop("ms_played") / 60_000.0
    summary = grouped.reset_index()
    summary = summary.sort_values(
        ["minutes_played", "play_count"], ascending=False, kind="stable"
    ).reset_index(drop=True)
    return summary.loc[
        :,
        [
            "artist",
            "track",
            "track_uri",
            "play_count",
            "minutes_played",
            "first_played",
            "last_played",
        ],
    ]


def listening_timeline(frame: pd.DataFrame, freq: str = "W") -> pd.DataFrame:
    """Minutes listened per calendar period."""
    if frame.empty:
        return pd.DataFrame(columns=["period_start", "minutes_played", "play_count"])
    indexed = frame.set_index("played_at")["ms_played"]
    resampled = indexed.resample(freq)
    timeline = pd.DataFrame(
        {
            "minutes_played": resampled.sum() / 60_000.0,
            "play_count": resampled.size(),
        }
    )
    timeline.index.name = "period_start"
    return timeline.reset_index()


def top_artists(frame: pd.DataFrame, n: int = 10) -> pd.DataFrame:
    if n < 1:
        raise FolioValidationError("n must be >= 1")
    if frame.empty:
        return pd.DataFrame(columns=["artist", "minutes_played", "play_count"])
    grouped = frame.groupby("artist").agg(
        ms_played=("ms_played", "sum"),
        play_count=("ms_played", "size"),
    )
    grouped["minutes_played"] = grouped.pop("ms_played") / 60_000.0
    ranked = grouped.sort_values("minutes_played", ascending=False, kind="stable").head(n)
    return ranked.reset_index().loc[:, ["artist", "minutes_played", "play_count"]]
