from __future__ import annotations

import pytest

from folio.api.exceptions import FolioValidationError
from folio.clustering.subsets import (
    count_feature_subsets,
    iter_feature_subsets,
    parse_subset_key,
    subset_key,
)


def test_iter_feature_subsets_order() -> None:
    subsets = list(iter_feature_subsets(["a", "b", "c"], 1, 2))
    assert subsets == [("a",), ("b",), ("c",), ("a", "b"), ("a", "c"), ("b", "c")]


def test_count_matches_enumeration() -> None:
    candidates = [f"f{i}" for i in range(8)]
    assert count_feature_subsets(8, 2, 8) == len(list(iter_feature_subsets(candidates, 2, 8)))
    assert count_feature_subsets(8, 2, 8) == 2**8 - 1 - 8


@pytest.mark.parametrize(
    "n_candidates, min_size, max_size",
    [(0, 1, 1), (3, 0, 2), (3, 2, 1), (3, 1, 4)],
)
def test_bounds_are_validated(n_candidates: int, min_size: int, max_size: int) -> None:
    with pytest.raises(FolioValidationError):
        count_feature_subsets(n_candidates, min_size, max_size)


def test_subset_key_roundtrip() -> None:
    assert subset_key(("energy", "valence")) == "energy,valence"
    assert parse_subset_key("energy,valence") == ["energy", "valence"]
    assert parse_subset_key("") == []
