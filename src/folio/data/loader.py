"""Tabular data loading helpers."""

from __future__ import annotations

from pathlib import Path

import pandas as pd

from folio.api.exceptions import FolioValidationError


def load_tabular_data(path: str | Path) -> pd.DataFrame:
    """Load CSV/Parquet/JSON records into a DataFrame based on file extension."""
    source = Path(path)
    if not source.exists():
        raise FolioValidationError(f"Data file does not exist: {source}")
    suffix = source.suffix.lower()

    if suffix == ".csv":
        return pd.read_csv(source)
    if suffix == ".parquet":
        return pd.read_parquet(source)
    if suffix == ".json":
        return pd.read_json(source, orient="records")

    raise FolioValidationError(
        f"Unsupported data format: '{suffix}'. Supported formats are .csv, .parquet and .json."
    )


def save_tabular_data(frame: pd.DataFrame, path: str | Path) -> Path:
    """Write a DataFrame in the format implied by the file extension."""
    target = Path(path)
    suffix = target.suffix.lower()
    if suffix not in {".csv", ".parquet", ".json"}:
        raise FolioValidationError(
            f"Unsupported data format: '{suffix}'. Supported formats are .csv, .parquet and .json."
        )
    target.parent.mkdir(parents=True, exist_ok=True)
    if suffix == ".csv":
        frame.to_csv(target, index=False)
    elif suffix == ".parquet":
        frame.to_parquet(target, index=False)
    else:
        frame.to_json(target, orient="records", indent=2)
    return target
