"""Plotting helpers for regression diagnostics."""

from __future__ import annotations

from typing import TYPE_CHECKING

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from statsmodels.graphics.gofplots import qqplot
from statsmodels.graphics.regressionplots import influence_plot


if TYPE_CHECKING:
    from matplotlib.figure import Figure

    from surv_tlbx.analysis.ols_helper import RegressionResult


def plot_residuals_vs_fitted(
    result: RegressionResult,
    *,
    ax: plt.Axes | None = None,
) -> plt.Axes:
    """Residuals vs fitted values with LOESS smooth.

    Wraps [:func:`seaborn.residplot`](https://seaborn.pydata.org/generated/seaborn.residplot.html)
    on the statsmodels OLS residuals contained in ``RegressionResult``.
    """
    ax = ax or plt.gca()
    sns.residplot(x=result.fitted, y=result.residuals, lowess=True, ax=ax, scatter_kws={"alpha": 0.45})
    ax.set_xlabel("Fitted values")
    ax.set_ylabel("Residuals")
    ax.set_title(f"Residuals vs Fitted ({result.target_col})")
    return ax


def plot_scale_location(
    result: RegressionResult,
    *,
    ax: plt.Axes | None = None,
) -> plt.Axes:
    """Scale-location scatter plot to display sqrt(|studentized residuals|) against fitted values."""
    ax = ax or plt.gca()
    stud_resid = result.model.get_influence().resid_studentized_internal
    sns.scatterplot(x=result.fitted, y=(abs(stud_resid) ** 0.5), ax=ax, alpha=0.45, color="tab:orange")
    ax.set_xlabel("Fitted values")
    ax.set_ylabel("sqrt(|studentized residuals|)")
    ax.set_title("Scale-Location")
    return ax


def plot_qq(
    result: RegressionResult,
    *,
    ax: plt.Axes | None = None,
) -> plt.Axes:
    """QQ plot of studentized residuals with the Shapiro-Wilk p-value in the title."""
    ax = ax or plt.gca()
    stud_resid = result.model.get_influence().resid_studentized_internal
    qqplot(stud_resid, line="45", fit=True, ax=ax)
    ax.set_title(f"QQ plot (studentized residuals), Shapiro p={result.assumptions.shapiro_pvalue:.3f}")
    return ax


def plot_influence(
    result: RegressionResult,
    *,
    ax: plt.Axes | None = None,
) -> Figure:
    """Cook's distance / leverage influence plot."""
    fig = influence_plot(result.model, criterion="cooks", ax=ax)
    fig.set_figwidth(8)
    fig.set_figheight(6)
    return fig


def plot_residuals_vs_predictors(
    result: RegressionResult,
    data: pd.DataFrame,
    predictors: list[str] | None = None,
    *,
    max_cols: int = 4,
    pretty_by_col: dict[str, str] | None = None,
) -> Figure:
    """Residuals against each raw predictor (reveals curvature a transform might fix)."""
    pretty_by_col = pretty_by_col or {}
    predictors = predictors or [col for col in data.columns if col != result.target_col]
    frame = data.loc[result.residuals.index, predictors]

    n_cols = max(1, min(max_cols, len(predictors)))
    n_rows = int(np.ceil(len(predictors) / n_cols))
    fig, axes = plt.subplots(n_rows, n_cols, figsize=(3.5 * n_cols, 3.0 * n_rows), squeeze=False)
    axes_list = axes.ravel()
    for ax, pred in zip(axes_list, predictors, strict=False):
        sns.regplot(
            x=frame[pred],
            y=result.residuals,
            lowess=True,
            ax=ax,
            scatter_kws={"alpha": 0.45},
            line_kws={"color": "tab:red"},
        )
        ax.axhline(0, color="black", linewidth=1, linestyle="--")
        ax.set_xlabel(pretty_by_col.get(pred, pred))
        ax.set_ylabel("Residuals")
    for ax in axes_list[len(predictors) :]:
        ax.set_visible(False)
    fig.tight_layout()
    return fig


def pred_plot(
    result: RegressionResult,
    feat: str,
    df: pd.DataFrame,
    *,
    n_points: int = 300,
    ax: plt.Axes | None = None,
) -> plt.Axes:
    """Plot fitted curve with 95% CI for a single predictor.

    The plot holds other predictors at their sample means, so the curve reflects
    the partial relationship between ``feat`` and the response under the fitted
    model (polynomial terms are re-expanded by the model formula). The band
    is a 95% confidence interval for the mean response, not a prediction
    interval for new observations.
    """
    if feat not in df.columns:
        raise KeyError(f"Feature '{feat}' not in provided DataFrame")

    ax = ax or plt.gca()
    grid = np.linspace(df[feat].min(), df[feat].max(), n_points)
    base = {
        col: (grid if col == feat else np.repeat(float(df[col].mean()), n_points))
        for col in df.columns
        if col != result.target_col
    }
    pred_summary = result.model.get_prediction(pd.DataFrame(base)).summary_frame()

    if result.target_col in df.columns:
        sns.scatterplot(data=df, x=feat, y=result.target_col, alpha=0.45, ax=ax)
    ax.plot(grid, pred_summary["mean"], color="tab:red", linewidth=2.5)
    ax.fill_between(grid, pred_summary["mean_ci_lower"], pred_summary["mean_ci_upper"], color="tab:red", alpha=0.2)
    ax.set_xlabel(feat)
    ax.set_ylabel(result.target_col)
    ax.set_title("OLS prediction ±95% CI")
    return ax
