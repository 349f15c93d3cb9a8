import json

import pandas as pd
import pytest

from examples import prepare_demo_data, run_demo_clustering


def test_run_demo_clustering_writes_expected_outputs(tmp_path) -> None:
    data_dir = tmp_path / "data"
    out_dir = tmp_path / "out"
    prepare_demo_data.main(
        ["--out-dir", str(data_dir), "--n-tracks", "60", "--images-per-class", "2"]
    )

    exit_code = run_demo_clustering.main(
        [
            "--history-dir",
            str(data_dir / "history"),
            "--features-path",
            str(data_dir / "track_features.csv"),
            "--out-dir",
            str(out_dir),
            "--seed",
            "11",
            "--k-values",
            "2,3,4",
        ]
    )

    assert exit_code == 0
    run_dirs = [path for path in out_dir.iterdir() if path.is_dir()]
    assert len(run_dirs) == 1
    run_dir = run_dirs[0]

    for name in ["run_result.json", "cluster_profile.csv", "top_subsets.csv", "used_config.yaml"]:
        assert (run_dir / name).exists()

    run_result = json.loads((run_dir / "run_result.json").read_text(encoding="utf-8"))
    assert run_result["best_k"] in {2, 3, 4}
    assert (run_dir / "artifacts").exists()

    profile = pd.read_csv(run_dir / "cluster_profile.csv")
    assert len(profile) == run_result["best_k"]


def test_run_demo_clustering_requires_prepared_data(tmp_path) -> None:
    with pytest.raises(SystemExit) as exc_info:
        run_demo_clustering.main(["--history-dir", str(tmp_path / "missing")])

    assert "prepare_demo_data.py" in str(exc_info.value)
