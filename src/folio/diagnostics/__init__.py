"""Charts for analysis pages."""

from folio.diagnostics.plots import (
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

__all__ = [
    "figure_to_html",
    "plot_cluster_profile",
    "plot_cluster_scatter",
    "plot_confusion_matrix",
    "plot_elbow",
    "plot_image_samples",
    "plot_listening_timeline",
    "plot_subset_scores",
    "plot_training_history",
]
