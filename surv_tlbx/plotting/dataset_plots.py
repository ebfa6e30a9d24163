"""Dataset visualization functions."""

import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns
from matplotlib.figure import Figure

from surv_tlbx.analysis.normality import NormalityResult
from surv_tlbx.data.base_dataset import BaseDataset


def _grid(n_panels: int, max_cols: int, panel_size: tuple[float, float]) -> tuple[Figure, np.ndarray]:
    n_cols = max(1, min(max_cols, n_panels))
    n_rows = int(np.ceil(n_panels / n_cols))
    fig, axes = plt.subplots(
        n_rows,
        n_cols,
        figsize=(panel_size[0] * n_cols, panel_size[1] * n_rows),
        squeeze=False,
    )
    axes_list = axes.ravel()
    for ax in axes_list[n_panels:]:
        ax.set_visible(False)
    return fig, axes_list


def plot_histograms(
    dataset: BaseDataset,
    columns: list[str] | None = None,
    *,
    max_cols: int = 3,
) -> Figure:
    """Histogram with KDE for each numeric column.

    Args:
        dataset: Dataset instance with data to visualize
        columns: Columns to plot (defaults to all numeric columns)
        max_cols: Maximum panels per row

    Returns:
        matplotlib Figure object
    """
    columns = columns or list(dataset.numeric_cols)
    fig, axes = _grid(len(columns), max_cols, (4.0, 3.0))
    for ax, col in zip(axes, columns, strict=False):
        sns.histplot(dataset.df[col].dropna(), kde=True, ax=ax)
        ax.set_title(dataset.get_pretty_name(col))
        ax.set_xlabel("")
    fig.tight_layout()
    return fig


def plot_qq_grid(
    result: NormalityResult,
    *,
    max_cols: int = 3,
) -> Figure:
    """Normal QQ panel per column, annotated with the normality-test decision."""
    columns = list(result.qq)
    fig, axes = _grid(len(columns), max_cols, (4.0, 3.5))
    for ax, col in zip(axes, columns, strict=False):
        qq = result.qq[col]
        test = result.tests[col]
        ax.scatter(qq.theoretical, qq.ordered, s=14, alpha=0.7)
        line_x = np.array([qq.theoretical.min(), qq.theoretical.max()])
        ax.plot(line_x, qq.intercept + qq.slope * line_x, color="tab:red", linewidth=1.5)
        ax.set_title(
            f"{result.pretty_by_col.get(col, col)}\np={test.p_value:.3f} ({test.decision})",
            fontsize=10,
        )
        ax.set_xlabel("Theoretical quantiles")
        ax.set_ylabel("Ordered values")
    fig.tight_layout()
    return fig
