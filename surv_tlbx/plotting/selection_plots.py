"""Model selection visualization functions."""

from __future__ import annotations

from typing import TYPE_CHECKING

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns


if TYPE_CHECKING:
    from matplotlib.figure import Figure

    from surv_tlbx.analysis.model_selection import SelectionPathResult


def plot_selection_path(
    result: SelectionPathResult,
    *,
    ax: plt.Axes | None = None,
) -> plt.Axes:
    """Criterion value per step, best step highlighted."""
    ax = ax or plt.gca()
    table = result.summary_table().reset_index()
    ax.plot(table["step"], table[result.criterion], marker="o")
    best = table.loc[table["step"] == result.best_index]
    ax.scatter(best["step"], best[result.criterion], color="tab:red", s=80, zorder=3)
    ax.set_xticks(table["step"], labels=table["rhs"], rotation=30, ha="right")
    ax.set_ylabel(result.criterion)
    ax.set_title(f"{result.direction.title()} selection by {result.criterion}")
    return ax


def plot_best_subsets(
    table: pd.DataFrame,
    figsize: tuple[int, int] = (11, 4),
) -> Figure:
    """Adjusted R² and Mallows' Cp (with the Cp = p line) for every subset."""
    fig, (ax_r2, ax_cp) = plt.subplots(1, 2, figsize=figsize)
    sns.stripplot(data=table, x="p", y="adj_r2", ax=ax_r2, jitter=0.1)
    ax_r2.set_title("Adjusted R² by model size")
    ax_r2.set_xlabel("p (coefficients incl. intercept)")

    sns.scatterplot(data=table, x="p", y="cp", ax=ax_cp)
    p_range = [table["p"].min(), table["p"].max()]
    ax_cp.plot(p_range, p_range, color="tab:red", linestyle="--", label="Cp = p")
    ax_cp.set_title("Mallows' Cp by model size")
    ax_cp.set_xlabel("p (coefficients incl. intercept)")
    ax_cp.legend()
    fig.tight_layout()
    return fig
