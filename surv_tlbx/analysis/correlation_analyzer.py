"""Rank correlation between the response and each predictor."""

from dataclasses import dataclass
from typing import Self

import numpy as np
import pandas as pd
from scipy import stats

from surv_tlbx.config import DEFAULT_THRESHOLDS
from surv_tlbx.data.views import DatasetView

from .base_analyser import BaseAnalyser


_MIN_PAIRS = 3


@dataclass(frozen=True)
class CorrelationResult:
    """Correlation analysis outputs grouped for plotting and reporting.

    Attributes:
        spearman: Spearman rank correlation matrix (pairwise-complete observations).
        pearson: Pearson correlation matrix, for comparison with the rank-based one.
        pretty_by_col: Mapping from raw feature names to presentation labels.
        feature_pairs: DataFrame with columns ``feature_a``, ``feature_b``, ``rho``,
            ``abs_rho``, ``pair``; sorted by strongest absolute rank correlation.
        target_correlations: DataFrame with columns ``feature``, ``rho``, ``p_value``,
            ``n``, ``significant`` (target vs each predictor), or ``None`` when the
            view has no target.
        alpha: Significance level used for ``significant``.
    """

    spearman: pd.DataFrame
    pearson: pd.DataFrame
    pretty_by_col: dict[str, str]
    feature_pairs: pd.DataFrame
    target_correlations: pd.DataFrame | None = None
    alpha: float = DEFAULT_THRESHOLDS.alpha

    # ------------------------------------------------------------------ plotting shortcuts
    def plot_heatmap(self, **kwargs: object):
        """Plot rank-correlation heatmap using the plotting helper."""
        from surv_tlbx.plotting.correlation_plots import plot_correlation_heatmap  # noqa: PLC0415

        return plot_correlation_heatmap(self, **kwargs)

    def plot_target_correlations(self, **kwargs: object):
        """Plot correlations with the target variable."""
        from surv_tlbx.plotting.correlation_plots import plot_target_correlations  # noqa: PLC0415

        return plot_target_correlations(self, **kwargs)


def spearman_test(x: pd.Series, y: pd.Series) -> tuple[float, float, int]:
    """Spearman's rho and two-sided p-value on pairwise-complete observations.

    Returns:
        ``(rho, p_value, n)``; ``rho`` and ``p_value`` are ``NaN`` with fewer than
        three complete pairs.
    """
    pair = pd.concat([x, y], axis=1).dropna()
    n = int(pair.shape[0])
    if n < _MIN_PAIRS:
        return np.nan, np.nan, n
    rho, p_value = stats.spearmanr(pair.iloc[:, 0], pair.iloc[:, 1])
    return float(rho), float(p_value), n


class CorrelationAnalyzer(BaseAnalyser):
    """Analyzer for monotonic association between the response and its predictors.

    Spearman's :math:`\\rho` is the Pearson correlation of the ranks; it captures
    monotonic (not only linear) association and does not assume normality. Each
    response-predictor pair is tested independently against :math:`H_0: \\rho = 0`
    with no multiplicity correction.

    Example:
        >>> from surv_tlbx.data import SurgicalUnitDataset
        >>> ds = SurgicalUnitDataset.from_csv()
        >>> corr = ds.make_correlation_analyzer().fit().result()
        >>> corr.target_correlations[["feature", "rho", "p_value"]]
    """

    def __init__(self, view: DatasetView, alpha: float | None = None):
        self._view = view
        self.alpha = DEFAULT_THRESHOLDS.alpha if alpha is None else alpha
        self._spearman: pd.DataFrame | None = None
        self._pearson: pd.DataFrame | None = None

    def get_correlation_matrix(self, method: str = "spearman") -> pd.DataFrame:
        """Pairwise-complete correlation matrix via :meth:`pandas.DataFrame.corr`."""
        if method == "spearman":
            if self._spearman is None:
                self._spearman = self._view.features.corr(method="spearman")
            return self._spearman
        if method == "pearson":
            if self._pearson is None:
                self._pearson = self._view.features.corr(method="pearson")
            return self._pearson
        raise ValueError(f"Unsupported correlation method '{method}'.")

    def get_top_correlated_pairs(self, n: int = 20) -> pd.DataFrame:
        """Return the strongest absolute rank correlations between column pairs."""
        corr_matrix = self.get_correlation_matrix()
        mask = np.triu(np.ones(corr_matrix.shape, dtype=bool), k=1)

        return (
            corr_matrix.where(mask)
            .melt(ignore_index=False, var_name="feature_b", value_name="rho")
            .dropna()
            .reset_index()
            .rename(columns={"index": "feature_a"})
            .assign(
                abs_rho=lambda d: d.rho.abs(),
                pair=lambda d: d.feature_a + " vs " + d.feature_b,
            )
            .sort_values("abs_rho", ascending=False)
            .head(n)
            .reset_index(drop=True)
        )

    def get_target_correlations(self) -> pd.DataFrame:
        """Spearman correlation and p-value between the target and each predictor."""
        target_col = self._view.target_col
        if not target_col:
            raise ValueError("Dataset view has no target column configured.")
        if target_col not in self._view.df.columns:
            raise ValueError(f"Target column '{target_col}' not found in data")

        rows = []
        for feature in self._view.predictor_cols:
            rho, p_value, n = spearman_test(self._view.df[feature], self._view.df[target_col])
            rows.append({"feature": feature, "rho": rho, "p_value": p_value, "n": n})

        return (
            pd.DataFrame(rows, columns=["feature", "rho", "p_value", "n"])
            .assign(significant=lambda d: d.p_value < self.alpha)
            .sort_values("rho", ascending=False, key=np.abs)
            .reset_index(drop=True)
        )

    def fit(self) -> Self:
        self.get_correlation_matrix("spearman")
        self.get_correlation_matrix("pearson")
        return self

    def result(self, *, top_n_pairs: int = 20) -> CorrelationResult:
        if self._spearman is None or self._pearson is None:
            raise ValueError("Must call fit() before result()")

        target_corr = (
            self.get_target_correlations()
            if self._view.target_col and self._view.target_col in self._spearman.index
            else None
        )
        return CorrelationResult(
            spearman=self._spearman,
            pearson=self._pearson,
            pretty_by_col=dict(self._view.pretty_by_col),
            feature_pairs=self.get_top_correlated_pairs(n=top_n_pairs),
            target_correlations=target_corr,
            alpha=self.alpha,
        )
