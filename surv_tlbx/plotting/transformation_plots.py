"""Box-Cox profile and transformation-candidate plots."""

from __future__ import annotations

from typing import TYPE_CHECKING

import matplotlib.pyplot as plt
import seaborn as sns

from surv_tlbx.utils.plotting_config import DEFAULT_PLOT_CFG


if TYPE_CHECKING:
    from matplotlib.figure import Figure

    from surv_tlbx.analysis.transformations import BoxCoxProfile, TransformationResult


def plot_boxcox_profile(
    profile: BoxCoxProfile,
    *,
    ax: plt.Axes | None = None,
) -> plt.Axes:
    """Profile log-likelihood of lambda with optimum, interval and named powers."""
    ax = ax or plt.gca()
    ax.plot(profile.lambdas, profile.loglik, color="tab:blue", linewidth=2)
    ax.axhline(profile.cutoff, color=DEFAULT_PLOT_CFG.threshold_color, linestyle="--", linewidth=1)
    ax.axvspan(*profile.ci, color="tab:blue", alpha=0.12, label=f"{profile.confidence:.0%} interval")
    ax.axvline(profile.lambda_opt, color="tab:red", linewidth=1.5, label=f"lambda={profile.lambda_opt:.1f}")
    for lam in (-1.0, 0.0, 0.5, 1.0):
        ax.axvline(lam, color="grey", linewidth=0.6, linestyle=":")
    ax.set_xlabel("lambda")
    ax.set_ylabel("Profile log-likelihood")
    ax.set_title(f"Box-Cox profile (suggests: {profile.recommended})")
    ax.legend(loc="lower center")
    return ax


def plot_candidate_pvalues(
    result: TransformationResult,
    figsize: tuple[int, int] = (8, 4),
) -> Figure:
    """Shapiro-Wilk and Breusch-Pagan p-values per candidate against alpha."""
    table = (
        result.table()
        .reset_index()
        .melt(
            id_vars="candidate",
            value_vars=["shapiro_p", "breusch_pagan_p"],
            var_name="test",
            value_name="p_value",
        )
    )
    fig, ax = plt.subplots(figsize=figsize)
    sns.barplot(data=table, x="candidate", y="p_value", hue="test", ax=ax)
    ax.axhline(result.alpha, color=DEFAULT_PLOT_CFG.threshold_color, linestyle="--", linewidth=1.5)
    ax.set_yscale("log")
    ax.set_ylabel("p-value (log scale)")
    ax.set_title(f"Residual checks per candidate (selected: {result.selected})")
    fig.tight_layout()
    return fig
