"""Correlation analysis visualization functions."""

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns
from matplotlib.figure import Figure

from surv_tlbx.analysis.correlation_analyzer import CorrelationResult


def plot_matrix_heatmap(
    matrix: pd.DataFrame,
    *,
    pretty_by_col: dict[str, str] | None = None,
    title: str = "Correlation Heatmap",
    figsize: tuple[int, int] = (8, 7),
    **kwargs: object,
) -> Figure:
    """Annotated heatmap of any square correlation matrix."""
    pretty_by_col = pretty_by_col or {}
    fig, ax = plt.subplots(figsize=figsize)

    label_map = {col: pretty_by_col.get(col, col) for col in matrix.columns}

    sns.heatmap(
        matrix.rename(index=label_map, columns=label_map),
        annot=True,
        fmt=".2f",
        cmap="coolwarm",
        vmin=-1,
        vmax=1,
        ax=ax,
        square=True,
        cbar_kws={"shrink": 0.8},
        **kwargs,  # type: ignore[arg-type]
    )

    ax.set_xticklabels(
        ax.get_xticklabels(),
        rotation=45,
        ha="right",
        rotation_mode="anchor",
    )
    ax.tick_params(axis="y", rotation=0)
    ax.set_title(title)
    fig.tight_layout()

    return fig


def plot_correlation_heatmap(
    result: CorrelationResult,
    method: str = "spearman",
    figsize: tuple[int, int] = (8, 7),
    **kwargs: object,
) -> Figure:
    """Plot the Spearman (default) or Pearson correlation heatmap."""
    if method not in {"spearman", "pearson"}:
        raise ValueError(f"Unsupported correlation method '{method}'.")
    matrix = result.spearman if method == "spearman" else result.pearson
    return plot_matrix_heatmap(
        matrix,
        pretty_by_col=result.pretty_by_col,
        title=f"{method.title()} Correlation Heatmap",
        figsize=figsize,
        **kwargs,
    )


def plot_target_correlations(
    result: CorrelationResult,
    figsize: tuple[int, int] = (8, 4),
) -> Figure:
    """Bar chart of Spearman's rho with the target, significant bars highlighted."""
    if result.target_correlations is None:
        msg = "CorrelationResult does not include target correlations."
        raise ValueError(msg)

    target_corr = result.target_correlations.assign(
        pretty_feature=lambda d: d["feature"].map(lambda c: result.pretty_by_col.get(c, c)),
        label=lambda d: d["significant"].map({True: f"p < {result.alpha}", False: f"p ≥ {result.alpha}"}),
    )

    fig, ax = plt.subplots(figsize=figsize)
    sns.barplot(
        data=target_corr,
        x="rho",
        y="pretty_feature",
        hue="label",
        palette={f"p < {result.alpha}": "#d62728", f"p ≥ {result.alpha}": "#7f7f7f"},
        dodge=False,
        ax=ax,
    )
    # categorical y positions follow row order
    for pos, row in enumerate(target_corr.itertuples()):
        ax.annotate(
            f"p={row.p_value:.3f}",
            (row.rho, pos),
            xytext=(4 if row.rho >= 0 else -4, 0),
            textcoords="offset points",
            ha="left" if row.rho >= 0 else "right",
            va="center",
            fontsize=8,
        )
    ax.set_title("Spearman Correlation with Target")
    ax.set_xlabel("Spearman rho")
    ax.set_ylabel("")
    ax.set_xlim(-1, 1)
    ax.axvline(0, color="black", linewidth=1, linestyle="--")
    fig.tight_layout()

    return fig
