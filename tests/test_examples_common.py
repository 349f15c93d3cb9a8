from __future__ import annotations

import json

import pytest
import yaml

from examples import common
from folio.api.types import SiteBuildResult


def test_make_run_dir_prefixes_kind_and_avoids_collisions(tmp_path, monkeypatch) -> None:
    class _Now:
        @staticmethod
        def strftime(_: str) -> str:
            return "20260210_010203"

    class _DatetimeMock:
        @staticmethod
        def now(_: object) -> _Now:
            return _Now()

    monkeypatch.setattr(common, "datetime", _DatetimeMock)
    (tmp_path / "cluster_20260210_010203").mkdir()

    created = common.make_run_dir(tmp_path, "cluster")
    other_kind = common.make_run_dir(tmp_path, "site")

    assert created.name == "cluster_20260210_010203_01"
    assert other_kind.name == "site_20260210_010203"
    assert created.is_dir()


def test_require_inputs_names_the_producing_script(tmp_path) -> None:
    present = tmp_path / "history"
    present.mkdir()
    common.require_inputs([present], producer="prepare_demo_data.py")

    with pytest.raises(SystemExit) as exc_info:
        common.require_inputs([present, tmp_path / "faces.npz"], producer="prepare_demo_data.py")
    message = str(exc_info.value)
    assert "faces.npz" in message
    assert str(present) not in message
    assert "python examples/prepare_demo_data.py" in message


def test_demo_failure_includes_hint() -> None:
    failure = common.demo_failure(ValueError("boom"), "retry")
    assert isinstance(failure, SystemExit)
    assert str(failure) == "boom\nHint: retry"


def test_write_run_result_dumps_result_dataclass(tmp_path) -> None:
    result = SiteBuildResult(output_dir=str(tmp_path), pages=["about"], files=["index.html"])
    path = common.write_run_result(tmp_path, result, name="build_result.json")
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["pages"] == ["about"]
    assert payload["warnings"] == []


def test_write_used_config_saves_validated_defaults(tmp_path) -> None:
    project = {
        "config_version": 1,
        "task": {"type": "classification"},
        "data": {"path": "faces.npz"},
    }
    saved = yaml.safe_load(common.write_used_config(tmp_path, project).read_text(encoding="utf-8"))
    assert saved["classifier"]["class_names"] == common.DEMO_CLASS_NAMES

    site_path = common.write_used_config(tmp_path, {"title": "Demo"}, name="site.yaml")
    assert yaml.safe_load(site_path.read_text(encoding="utf-8"))["plotly_js"] == "cdn"

    with pytest.raises(ValueError):
        common.write_used_config(tmp_path, {"title": "Demo", "unknown": 1}, name="bad.yaml")


def test_write_page_validates_and_names_by_slug(tmp_path) -> None:
    page = {"slug": "listening-moods", "title": "Moods", "blocks": [{"type": "text", "body": "x"}]}
    path = common.write_page(tmp_path / "content", page)
    assert path.name == "listening-moods.yaml"
    assert yaml.safe_load(path.read_text(encoding="utf-8")) == page

    with pytest.raises(ValueError):
        common.write_page(tmp_path / "content", {"slug": "bad", "title": "x", "blocks": [{}]})


def test_default_paths_live_under_examples_data() -> None:
    assert common.DEFAULT_HISTORY_DIR.parent == common.DEFAULT_DATA_DIR
    assert common.DEFAULT_FEATURES_PATH.suffix == ".csv"
    assert common.DEFAULT_IMAGES_PATH.suffix == ".npz"
    assert common.DEFAULT_DATA_DIR.parent == common.EXAMPLES_DIR
