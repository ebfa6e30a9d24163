r"""Multicollinearity among predictors.

For predictor :math:`j`, :math:`R_j^2` is the coefficient of determination of
regressing :math:`x_j` on all other predictors with an intercept, and

.. math:: VIF_j = \frac{1}{1 - R_j^2}

is the factor by which the variance of :math:`\hat\beta_j` is inflated relative
to uncorrelated predictors. :math:`VIF_j = 1` means no linear dependence;
values above the configured threshold (10 by default, 5 for a stricter
reading) flag problematic collinearity.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Self

import pandas as pd

from surv_tlbx.config import DEFAULT_THRESHOLDS, DiagnosticThresholds
from surv_tlbx.data.views import DatasetView

from .base_analyser import BaseAnalyser
from .ols_helper import compute_vif


if TYPE_CHECKING:
    from .ols_helper import RegressionResult


@dataclass(frozen=True)
class CollinearityResult:
    """Predictor correlation matrix and variance inflation factors.

    Attributes:
        correlation: Pearson correlation matrix of the predictors.
        table: DataFrame indexed by predictor with ``vif``, ``r2`` (the
            auxiliary :math:`R_j^2`) and ``flagged``.
        threshold: VIF threshold used for ``flagged``.
        pretty_by_col: Mapping from column names to display labels.
    """

    correlation: pd.DataFrame
    table: pd.DataFrame
    threshold: float
    pretty_by_col: dict[str, str]

    @property
    def vif(self) -> pd.Series:
        return self.table["vif"]

    @property
    def max_vif(self) -> float:
        return float(self.table["vif"].max())

    @property
    def has_collinearity(self) -> bool:
        return bool(self.table["flagged"].any())

    def flagged(self) -> list[str]:
        """Predictors whose VIF exceeds the threshold."""
        return self.table.index[self.table["flagged"]].tolist()

    def plot_heatmap(self, **kwargs: object):
        """Plot the predictor correlation matrix."""
        from surv_tlbx.plotting.correlation_plots import plot_matrix_heatmap  # noqa: PLC0415

        return plot_matrix_heatmap(
            self.correlation,
            pretty_by_col=self.pretty_by_col,
            title="Predictor correlation (Pearson)",
            **kwargs,
        )


class CollinearityChecker(BaseAnalyser):
    """Compute VIF and pairwise correlations for a set of predictors.

    Rows with a missing predictor are dropped (listwise) before the auxiliary
    regressions.
    """

    def __init__(self, view: DatasetView, thresholds: DiagnosticThresholds | None = None) -> None:
        self._view = view
        self.thresholds = thresholds or DEFAULT_THRESHOLDS
        self._table: pd.DataFrame | None = None
        self._corr: pd.DataFrame | None = None

    @classmethod
    def from_model(cls, result: "RegressionResult", thresholds: DiagnosticThresholds | None = None) -> "CollinearityChecker":
        """Check the regressors of a fitted model (e.g. including polynomial terms)."""
        design = result.design_matrix.loc[:, result.terms]
        view = DatasetView(
            df=design,
            pretty_by_col={col: col for col in design.columns},
            numeric_cols=list(design.columns),
        )
        return cls(view, thresholds=thresholds)

    def fit(self) -> Self:
        predictors = self._view.predictor_cols
        if len(predictors) < 1:
            raise ValueError("Collinearity check needs at least one predictor.")
        frame = self._view.df.loc[:, predictors].dropna(axis=0, how="any").astype(float)

        vif = compute_vif(frame)
        self._corr = frame.corr(method="pearson")
        self._table = pd.DataFrame(
            {
                "vif": vif,
                "r2": 1.0 - 1.0 / vif,
                "flagged": vif > self.thresholds.vif,
            },
        ).loc[predictors]
        return self

    def result(self) -> CollinearityResult:
        if self._table is None or self._corr is None:
            raise ValueError("Must call fit() before result()")
        return CollinearityResult(
            correlation=self._corr,
            table=self._table,
            threshold=self.thresholds.vif,
            pretty_by_col=dict(self._view.pretty_by_col),
        )
