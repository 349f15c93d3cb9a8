import json

import pandas as pd
import pytest

from folio.api.exceptions import FolioValidationError
from folio.data.loader import load_tabular_data, save_tabular_data


@pytest.mark.parametrize("suffix", [".csv", ".parquet", ".json"])
def test_save_and_load_tabular_data(tmp_path, suffix) -> None:
    frame = pd.DataFrame({"artist": ["A", "B"], "energy": [0.25, 0.75], "plays": [3, 4]})
    path = save_tabular_data(frame, tmp_path / "nested" / f"features{suffix}")

    assert path.exists()
    loaded = load_tabular_data(path)
    assert loaded.equals(frame)


def test_json_output_is_record_oriented(tmp_path) -> None:
    frame = pd.DataFrame({"artist": ["A"], "energy": [0.5]})
    path = save_tabular_data(frame, tmp_path / "features.json")
    assert json.loads(path.read_text(encoding="utf-8")) == [{"artist": "A", "energy": 0.5}]


def test_tabular_data_rejects_unsupported_extension(tmp_path) -> None:
    txt_path = tmp_path / "data.txt"
    txt_path.write_text("x,y\n1,2\n", encoding="utf-8")

    with pytest.raises(FolioValidationError, match="Unsupported data format"):
        load_tabular_data(txt_path)
    with pytest.raises(FolioValidationError, match="Unsupported data format"):
        save_tabular_data(pd.DataFrame({"x": [1]}), tmp_path / "out.xlsx")
    with pytest.raises(FolioValidationError, match="does not exist"):
        load_tabular_data(tmp_path / "missing.csv")
