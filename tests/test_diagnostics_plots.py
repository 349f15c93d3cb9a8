from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd
import pytest

pytest.importorskip("matplotlib")
pytest.importorskip("plotly")

from folio.api.exceptions import FolioValidationError  # noqa: E402
from folio.diagnostics.plots import (  # noqa: E402
    figure_to_html,
    plot_cluster_profile,
    plot_cluster_scatter,
    plot_confusion_matrix,
    plot_elbow,
    plot_image_samples,
    plot_listening_timeline,
    plot_subset_scores,
    plot_training_history,
)


def _assert_file(path: Path) -> None:
    assert path.exists()
    assert path.stat().st_size > 0


def _assignments(n_features: int) -> pd.DataFrame:
    rng = np.random.default_rng(0)
    columns = [f"f{i}" for i in range(n_features)]
    frame = pd.DataFrame(rng.normal(size=(12, n_features)), columns=columns)
    frame["cluster"] = np.arange(12) % 3
    frame["artist"] = "A"
    frame["track"] = [f"t{i}" for i in range(12)]
    return frame


def test_plot_functions_create_png_files(tmp_path) -> None:
    results = pd.DataFrame(
        {
            "n_features": [2, 2, 3, 3],
            "k": [2, 3, 2, 3],
            "silhouette": [0.4, 0.6, 0.5, np.nan],
            "inertia": [4.0, 2.0, 5.0, 3.0],
        }
    )
    plot_subset_scores(results, "silhouette", tmp_path / "scores.png")
    plot_elbow(results.iloc[:2], "silhouette", tmp_path / "elbow.png")
    plot_cluster_scatter(_assignments(4), ["f0", "f1", "f2", "f3"], tmp_path / "scatter.png")
    profile = pd.DataFrame({"cluster": [0, 1], "size": [5, 7], "f0": [0.1, 0.9], "f1": [3, 3]})
    plot_cluster_profile(profile, ["f0", "f1"], tmp_path / "profile.png")
    timeline = pd.DataFrame(
        {
            "period_start": pd.date_range("2024-01-07", periods=3, freq="W"),
            "minutes_played": [10.0, 20.0, 5.0],
        }
    )
    plot_listening_timeline(timeline, tmp_path / "timeline.png")
    history = [
        {"epoch": 1, "train_loss": 1.0, "train_accuracy": 0.5, "val_loss": 1.1},
        {"epoch": 2, "train_loss": 0.5, "train_accuracy": 0.8, "val_loss": 0.7},
    ]
    for row, val_accuracy in zip(history, [0.4, 0.7]):
        row["val_accuracy"] = val_accuracy
    plot_training_history(history, tmp_path / "history.png")
    plot_confusion_matrix([[3, 1], [0, 4]], ["male", "female"], tmp_path / "cm.png")
    for name in [
        "scores.png",
        "elbow.png",
        "scatter.png",
        "profile.png",
        "timeline.png",
        "history.png",
        "cm.png",
    ]:
        _assert_file(tmp_path / name)


def test_subset_scores_picks_best_per_cell() -> None:
    results = pd.DataFrame(
        {"n_features": [2, 2], "k": [2, 2], "davies_bouldin": [0.9, 0.3], "silhouette": [0.1, 0.2]}
    )
    fig = plot_subset_scores(results, "davies_bouldin")
    assert np.asarray(fig.data[0].z).tolist() == [[0.3]]
    with pytest.raises(FolioValidationError):
        plot_subset_scores(results, "calinski_harabasz")


def test_cluster_scatter_handles_low_dimensions() -> None:
    one = plot_cluster_scatter(_assignments(1), ["f0"])
    assert one.layout.yaxis.title.text == "jitter"
    two = plot_cluster_scatter(_assignments(2), ["f0", "f1"])
    assert two.layout.xaxis.title.text == "f0"
    assert len(two.data) == 3
    with pytest.raises(FolioValidationError):
        plot_cluster_scatter(_assignments(2).drop(columns="cluster"), ["f0", "f1"])


def test_empty_inputs_produce_titled_figures() -> None:
    assert "empty" in plot_training_history(None).layout.title.text
    results = pd.DataFrame({"n_features": [2], "k": [2], "silhouette": [np.nan]})
    assert "no valid fits" in plot_subset_scores(results, "silhouette").layout.title.text


def test_confusion_matrix_shape_is_checked() -> None:
    with pytest.raises(FolioValidationError, match="does not match"):
        plot_confusion_matrix([[1, 2, 3]], ["a", "b"])


def test_figure_to_html_fragment() -> None:
    fig = plot_confusion_matrix([[1, 0], [0, 1]], ["a", "b"])
    html = figure_to_html(fig, include_plotlyjs=False)
    assert html.startswith("<div")
    assert "<html" not in html
    assert "cdn.plot.ly" in figure_to_html(fig, include_plotlyjs="cdn")


def test_plot_image_samples_writes_png(tmp_path, image_arrays) -> None:
    images, labels = image_arrays(per_class=3)
    probs = np.tile([[0.7, 0.3]], (len(images), 1))
    path = plot_image_samples(
        images / 255.0, labels, probs, ["male", "female"], tmp_path / "grid" / "samples.png"
    )
    _assert_file(path)
    assert path.read_bytes().startswith(b"\x89PNG")
