"""Chart builders for analysis pages."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402
import pandas as pd  # noqa: E402
import plotly.graph_objects as go  # noqa: E402
from plotly.subplots import make_subplots  # noqa: E402
from sklearn.decomposition import PCA  # noqa: E402

from folio.api.exceptions import FolioValidationError  # noqa: E402
from folio.config.models import LOWER_IS_BETTER  # noqa: E402

_EMPTY_PNG_1X1 = (
    b"\x89PNG\r\n\x1a\n"
    b"\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00\x1f\x15\xc4\x89"
    b"\x00\x00\x00\x0cIDATx\x9cc```\x00\x00\x00\x04\x00\x01\xf5\x17\xd4\x8f"
    b"\x00\x00\x00\x00IEND\xaeB`\x82"
)
_TEMPLATE = "plotly_white"


def _ensure_parent(save_path: str | Path) -> Path:
    path = Path(save_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def _save_plotly_or_empty(fig: go.Figure, save_path: str | Path | None) -> None:
    if save_path is None:
        return
    path = _ensure_parent(save_path)
    try:
        fig.write_image(path)
    except Exception:
        # Static export needs kaleido; keep a placeholder so callers can rely on the file.
        path.write_bytes(_EMPTY_PNG_1X1)


def figure_to_html(fig: go.Figure, include_plotlyjs: bool | str = False) -> str:
    """Embeddable ``<div>`` fragment for a figure."""
    return fig.to_html(
        full_html=False,
        include_plotlyjs=include_plotlyjs,
        config={"displaylogo": False, "responsive": True},
    )


def plot_subset_scores(
    results: pd.DataFrame, score: str, save_path: str | Path | None = None
) -> go.Figure:
    """Heatmap of the best score per (subset size, k)."""
    if score not in results.columns:
        raise FolioValidationError(f"Score column '{score}' not found in search results.")
    valid = results.dropna(subset=[score])
    if valid.empty:
        fig = go.Figure()
        fig.update_layout(title="Feature Subset Scores (no valid fits)", template=_TEMPLATE)
        _save_plotly_or_empty(fig, save_path)
        return fig
    agg = "min" if score in LOWER_IS_BETTER else "max"
    pivot = valid.pivot_table(index="n_features", columns="k", values=score, aggfunc=agg)
    fig = go.Figure(
        data=go.Heatmap(
            z=pivot.to_numpy(),
            x=[str(c) for c in pivot.columns],
            y=[str(i) for i in pivot.index],
            colorscale="Viridis",
            reversescale=score in LOWER_IS_BETTER,
            texttemplate="%{z:.3f}",
            hovertemplate="k=%{x}<br>features=%{y}<br>" + score + "=%{z:.4f}<extra></extra>",
        )
    )
    fig.update_layout(
        title=f"Best {score} per subset size and k",
        xaxis_title="k (clusters)",
        yaxis_title="features in subset",
        template=_TEMPLATE,
    )
    _save_plotly_or_empty(fig, save_path)
    return fig


def _projection(frame: pd.DataFrame, features: list[str]) -> tuple[np.ndarray, str, str]:
    values = frame.loc[:, features].to_numpy(dtype=float)
    if len(features) == 1:
        rng = np.random.default_rng(0)
        jitter = rng.uniform(-0.3, 0.3, size=len(values))
        return np.column_stack([values[:, 0], jitter]), features[0], "jitter"
    if len(features) == 2:
        return values, features[0], features[1]
    std = values.std(axis=0)
    std[std == 0] = 1.0
    standardized = (values - values.mean(axis=0)) / std
    n_components = min(2, len(values))
    coords = PCA(n_components=n_components, random_state=0).fit_transform(standardized)
    if coords.shape[1] == 1:
        coords = np.column_stack([coords[:, 0], np.zeros(len(coords))])
    return coords, "PC1", "PC2"


def plot_cluster_scatter(
    assignments: pd.DataFrame,
    features: list[str],
    save_path: str | Path | None = None,
) -> go.Figure:
    """Tracks in a 2-D view of the clustered features, coloured by cluster."""
    if "cluster" not in assignments.columns:
        raise FolioValidationError("assignments must contain a 'cluster' column.")
    coords, x_title, y_title = _projection(assignments, features)
    has_names = {"artist", "track"} <= set(assignments.columns)
    fig = go.Figure()
    for cluster_id in sorted(assignments["cluster"].unique()):
        mask = (assignments["cluster"] == cluster_id).to_numpy()
        hover = (
            (assignments.loc[mask, "artist"] + " - " + assignments.loc[mask, "track"]).tolist()
            if has_names
            else None
        )
        fig.add_trace(
            go.Scatter(
                x=coords[mask, 0],
                y=coords[mask, 1],
                mode="markers",
                name=f"cluster {int(cluster_id)}",
                text=hover,
                hovertemplate="%{text}<extra></extra>" if hover else None,
                marker={"size": 7, "opacity": 0.75},
            )
        )
    fig.update_layout(
        title="Track Clusters",
        xaxis_title=x_title,
        yaxis_title=y_title,
        template=_TEMPLATE,
    )
    _save_plotly_or_empty(fig, save_path)
    return fig


def plot_cluster_profile(
    profile: pd.DataFrame,
    features: list[str],
    save_path: str | Path | None = None,
) -> go.Figure:
    """Feature means per cluster; colour is the z-score across clusters."""
    missing = [f for f in features if f not in profile.columns]
    if missing:
        raise FolioValidationError(f"Cluster profile lacks feature column(s): {missing}")
    means = profile.loc[:, features].to_numpy(dtype=float)
    spread = means.std(axis=0)
    spread[spread == 0] = 1.0
    z = (means - means.mean(axis=0)) / spread
    labels = [f"cluster {int(c)} (n={int(n)})" for c, n in zip(profile["cluster"], profile["size"])]
    fig = go.Figure(
        data=go.Heatmap(
            z=z,
            x=features,
            y=labels,
            text=np.round(means, 3),
            texttemplate="%{text}",
            colorscale="RdBu",
            reversescale=True,
            zmid=0.0,
            hovertemplate="%{y}<br>%{x}=%{text}<extra></extra>",
        )
    )
    fig.update_layout(title="Cluster Profiles", template=_TEMPLATE)
    _save_plotly_or_empty(fig, save_path)
    return fig


def plot_elbow(
    elbow: pd.DataFrame, score: str, save_path: str | Path | None = None
) -> go.Figure:
    fig = make_subplots(specs=[[{"secondary_y": True}]])
    fig.add_trace(
        go.Scatter(x=elbow["k"], y=elbow["inertia"], mode="lines+markers", name="inertia"),
        secondary_y=False,
    )
    if score in elbow.columns:
        fig.add_trace(
            go.Scatter(
                x=elbow["k"],
                y=elbow[score],
                mode="lines+markers",
                name=score,
                line={"dash": "dash"},
            ),
            secondary_y=True,
        )
    fig.update_layout(title="Elbow Curve", xaxis_title="k (clusters)", template=_TEMPLATE)
    fig.update_yaxes(title_text="inertia", secondary_y=False)
    fig.update_yaxes(title_text=score, secondary_y=True)
    _save_plotly_or_empty(fig, save_path)
    return fig


def plot_listening_timeline(
    timeline: pd.DataFrame, save_path: str | Path | None = None
) -> go.Figure:
    fig = go.Figure(
        go.Bar(
            x=timeline["period_start"],
            y=timeline["minutes_played"],
            marker={"color": "#1db954"},
            hovertemplate="%{x|%Y-%m-%d}<br>%{y:.0f} min<extra></extra>",
        )
    )
    fig.update_layout(
        title="Minutes Listened per Week",
        xaxis_title="week",
        yaxis_title="minutes",
        template=_TEMPLATE,
    )
    _save_plotly_or_empty(fig, save_path)
    return fig


def plot_training_history(
    history: list[dict[str, Any]] | None, save_path: str | Path | None = None
) -> go.Figure:
    """Loss and accuracy per epoch for train and validation splits."""
    if not history:
        fig = go.Figure()
        fig.update_layout(title="Training History (empty)", template=_TEMPLATE)
        _save_plotly_or_empty(fig, save_path)
        return fig
    frame = pd.DataFrame(history)
    fig = make_subplots(rows=1, cols=2, subplot_titles=("loss", "accuracy"))
    for split in ("train", "val"):
        dash = None if split == "train" else "dash"
        fig.add_trace(
            go.Scatter(
                x=frame["epoch"],
                y=frame[f"{split}_loss"],
                mode="lines+markers",
                name=f"{split} loss",
                line={"dash": dash},
            ),
            row=1,
            col=1,
        )
        fig.add_trace(
            go.Scatter(
                x=frame["epoch"],
                y=frame[f"{split}_accuracy"],
                mode="lines+markers",
                name=f"{split} accuracy",
                line={"dash": dash},
            ),
            row=1,
            col=2,
        )
    fig.update_layout(title="Training History", template=_TEMPLATE)
    fig.update_xaxes(title_text="epoch")
    _save_plotly_or_empty(fig, save_path)
    return fig


def plot_confusion_matrix(
    matrix: list[list[int]] | np.ndarray,
    class_names: list[str],
    save_path: str | Path | None = None,
) -> go.Figure:
    cm = np.asarray(matrix, dtype=int)
    if cm.shape != (len(class_names), len(class_names)):
        raise FolioValidationError(
            f"Confusion matrix shape {cm.shape} does not match {len(class_names)} classes."
        )
    fig = go.Figure(
        data=go.Heatmap(
            z=cm,
            x=class_names,
            y=class_names,
            colorscale="Blues",
            showscale=True,
            text=cm,
            texttemplate="%{text}",
            hovertemplate="pred=%{x}<br>true=%{y}<br>count=%{z}<extra></extra>",
        )
    )
    fig.update_layout(
        title="Confusion Matrix",
        xaxis_title="Predicted",
        yaxis_title="True",
        template=_TEMPLATE,
    )
    fig.update_yaxes(autorange="reversed")
    _save_plotly_or_empty(fig, save_path)
    return fig


def plot_image_samples(
    images: np.ndarray,
    labels: np.ndarray,
    probs: np.ndarray,
    class_names: list[str],
    save_path: str | Path,
    max_images: int = 16,
) -> Path:
    """PNG grid of images titled with true and predicted class."""
    path = _ensure_parent(save_path)
    array = np.asarray(images, dtype=float)
    count = min(len(array), max_images)
    if count == 0:
        path.write_bytes(_EMPTY_PNG_1X1)
        return path
    cols = min(4, count)
    rows = int(np.ceil(count / cols))
    fig, axes = plt.subplots(rows, cols, figsize=(2.2 * cols, 2.4 * rows), squeeze=False)
    for idx, ax in enumerate(axes.flat):
        ax.axis("off")
        if idx >= count:
            continue
        image = array[idx]
        if image.ndim == 3 and image.shape[0] in (1, 3):
            image = np.transpose(image, (1, 2, 0))
        if image.ndim == 3 and image.shape[-1] == 1:
            image = image[..., 0]
        ax.imshow(np.clip(image, 0.0, 1.0), cmap="gray" if image.ndim == 2 else None)
        pred = int(np.argmax(probs[idx]))
        true = int(labels[idx])
        colour = "#2ca02c" if pred == true else "#d62728"
        ax.set_title(
            f"{class_names[pred]} {probs[idx][pred]:.2f}\n(true: {class_names[true]})",
            fontsize=8,
            color=colour,
        )
    fig.tight_layout()
    fig.savefig(path)
    plt.close(fig)
    return path
