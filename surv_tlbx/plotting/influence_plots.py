"""Index plots of outlier and influence measures with rule-of-thumb cut-offs."""

from __future__ import annotations

from typing import TYPE_CHECKING

import matplotlib.pyplot as plt
import numpy as np

from surv_tlbx.utils.plotting_config import DEFAULT_PLOT_CFG


if TYPE_CHECKING:
    from matplotlib.figure import Figure

    from surv_tlbx.analysis.influence import InfluenceResult


_PANELS = (
    ("leverage", "Leverage h_ii", False),
    ("studentized", "Studentized residual (ext.)", True),
    ("dffits", "DFFITS", True),
    ("cooks_distance", "Cook's distance", False),
)


def plot_influence_index(
    result: InfluenceResult,
    *,
    annotate: bool = True,
    figsize: tuple[int, int] = (12, 8),
) -> Figure:
    """2x2 index plots; points beyond the cut-off are labelled with their ID."""
    fig, axes = plt.subplots(2, 2, figsize=figsize, sharex=True)
    ids = result.table.index.to_numpy()
    positions = np.arange(len(ids))

    for ax, (measure, label, symmetric) in zip(axes.ravel(), _PANELS, strict=True):
        values = result.table[measure].to_numpy()
        cut = result.thresholds[measure]
        flags = result.table[f"flag_{measure}"].to_numpy()

        ax.vlines(positions, 0, values, color="tab:blue", linewidth=1)
        ax.scatter(positions[flags], values[flags], color=DEFAULT_PLOT_CFG.threshold_color, zorder=3, s=18)
        ax.axhline(cut, color=DEFAULT_PLOT_CFG.threshold_color, linestyle="--", linewidth=1)
        if symmetric:
            ax.axhline(-cut, color=DEFAULT_PLOT_CFG.threshold_color, linestyle="--", linewidth=1)
        ax.axhline(0, color="black", linewidth=0.6)
        if annotate:
            for pos in positions[flags]:
                ax.annotate(str(ids[pos]), (pos, values[pos]), xytext=(2, 2), textcoords="offset points", fontsize=7)
        ax.set_title(f"{label} (cut-off {cut:.3g})")
        ax.set_ylabel(label)

    for ax in axes[-1]:
        ax.set_xlabel("Observation (row order)")
    fig.tight_layout()
    return fig


def plot_dfbetas(
    result: InfluenceResult,
    *,
    annotate: bool = True,
    max_cols: int = 3,
) -> Figure:
    """DFBETAS index plot per coefficient with the :math:`2/\\sqrt{n}` band."""
    dfbetas = result.dfbetas()
    cut = result.thresholds["dfbetas"]
    n_cols = max(1, min(max_cols, len(result.terms)))
    n_rows = int(np.ceil(len(result.terms) / n_cols))
    fig, axes = plt.subplots(n_rows, n_cols, figsize=(4 * n_cols, 3 * n_rows), squeeze=False, sharex=True)
    axes_list = axes.ravel()
    positions = np.arange(len(dfbetas))
    for ax, term in zip(axes_list, result.terms, strict=False):
        values = dfbetas[term].to_numpy()
        ax.vlines(positions, 0, values, color="tab:blue", linewidth=1)
        for sign in (1, -1):
            ax.axhline(sign * cut, color=DEFAULT_PLOT_CFG.threshold_color, linestyle="--", linewidth=1)
        if annotate:
            for pos in np.flatnonzero(np.abs(values) > cut):
                ax.annotate(str(dfbetas.index[pos]), (pos, values[pos]), fontsize=7)
        ax.set_title(f"DFBETAS {term}")
    for ax in axes_list[len(result.terms) :]:
        ax.set_visible(False)
    fig.tight_layout()
    return fig
