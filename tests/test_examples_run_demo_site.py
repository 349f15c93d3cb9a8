import json
from pathlib import Path

import pytest

pytest.importorskip("plotly")

from examples import run_demo_site  # noqa: E402


def test_run_demo_site_builds_pages(tmp_path, cluster_artifact) -> None:
    out_dir = tmp_path / "out"
    exit_code = run_demo_site.main(
        ["--cluster-artifact", str(cluster_artifact()), "--out-dir", str(out_dir)]
    )

    assert exit_code == 0
    run_dir = next(path for path in out_dir.iterdir() if path.is_dir())
    result = json.loads((run_dir / "build_result.json").read_text(encoding="utf-8"))
    assert result["pages"] == ["listening-moods"]
    assert result["warnings"] == []
    page = Path(result["output_dir"]) / "listening-moods" / "index.html"
    assert page.read_text(encoding="utf-8").count('class="plotly-graph-div"') == 5


def test_run_demo_site_requires_artifacts(tmp_path) -> None:
    with pytest.raises(SystemExit) as exc_info:
        run_demo_site.main(["--cluster-artifact", str(tmp_path / "missing")])

    assert "run_demo_clustering.py" in str(exc_info.value)
