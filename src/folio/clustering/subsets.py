"""Feature-subset enumeration."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from itertools import combinations
from math import comb

from folio.api.exceptions import FolioValidationError


def _check_bounds(n_candidates: int, min_size: int, max_size: int) -> None:
    if n_candidates == 0:
        raise FolioValidationError("At least one candidate feature is required.")
    if min_size < 1:
        raise FolioValidationError("min_size must be >= 1")
    if max_size < min_size:
        raise FolioValidationError("max_size must be >= min_size")
    if max_size > n_candidates:
        raise FolioValidationError(
            f"max_size={max_size} exceeds the number of candidate features ({n_candidates})"
        )


def iter_feature_subsets(
    candidates: Sequence[str],
    min_size: int,
    max_size: int,
) -> Iterator[tuple[str, ...]]:
    """Yield every subset, smallest first, in candidate order within a size."""
    _check_bounds(len(candidates), min_size, max_size)
    for size in range(min_size, max_size + 1):
        yield from combinations(candidates, size)


def count_feature_subsets(n_candidates: int, min_size: int, max_size: int) -> int:
    _check_bounds(n_candidates, min_size, max_size)
    return sum(comb(n_candidates, size) for size in range(min_size, max_size + 1))


def subset_key(features: Sequence[str]) -> str:
    """Stable string form of a subset, used as a table column value."""
    return ",".join(features)


def parse_subset_key(key: str) -> list[str]:
    return [part for part in key.split(",") if part]
