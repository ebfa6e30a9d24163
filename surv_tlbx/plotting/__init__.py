"""Plotting utilities for data visualization."""

from .correlation_plots import plot_correlation_heatmap, plot_matrix_heatmap, plot_target_correlations
from .dataset_plots import plot_histograms, plot_qq_grid
from .influence_plots import plot_dfbetas, plot_influence_index
from .regression_plots import (
    plot_influence,
    plot_qq,
    plot_residuals_vs_fitted,
    plot_residuals_vs_predictors,
    plot_scale_location,
    pred_plot,
)
from .selection_plots import plot_best_subsets, plot_selection_path
from .transformation_plots import plot_boxcox_profile, plot_candidate_pvalues


__all__ = [
    "plot_best_subsets",
    "plot_boxcox_profile",
    "plot_candidate_pvalues",
    "plot_correlation_heatmap",
    "plot_dfbetas",
    "plot_histograms",
    "plot_influence",
    "plot_influence_index",
    "plot_matrix_heatmap",
    "plot_qq",
    "plot_qq_grid",
    "plot_residuals_vs_fitted",
    "plot_residuals_vs_predictors",
    "plot_scale_location",
    "plot_selection_path",
    "plot_target_correlations",
    "pred_plot",
]
