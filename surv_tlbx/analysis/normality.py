"""Normality assessment for raw variables and model residuals.

Two complementary views are produced for every vector:

- QQ points: ordered sample values against theoretical standard-normal
  quantiles (``scipy.stats.probplot``), plus the least-squares reference line.
  Points close to the line suggest approximate normality.
- A formal goodness-of-fit test. Shapiro-Wilk is used up to 5000 values; above
  that Anderson-Darling (``statsmodels``) takes over, as Shapiro-Wilk p-values
  are unreliable for very large samples.

Decision rule: ``p < alpha`` => reject normality ("not normal").
"""

from dataclasses import dataclass
from typing import Self

import numpy as np
import pandas as pd
from scipy import stats
from statsmodels.stats import diagnostic as sm_diagnostic

from surv_tlbx.config import DEFAULT_THRESHOLDS
from surv_tlbx.data.views import DatasetView

from .base_analyser import BaseAnalyser


_SHAPIRO_MAX_N = 5000
_SHAPIRO_MIN_N = 3


@dataclass(frozen=True)
class QQPoints:
    """Ordered sample values versus theoretical normal quantiles."""

    theoretical: np.ndarray
    ordered: np.ndarray
    slope: float
    intercept: float
    r: float
    """Correlation of the probability plot (1.0 for a perfect straight line)."""


@dataclass(frozen=True)
class NormalityTestResult:
    """Outcome of a normality test on a single vector."""

    statistic: float
    p_value: float
    alpha: float
    n_obs: int
    test: str = "shapiro"

    @property
    def is_normal(self) -> bool:
        """``True`` unless the test rejects normality at ``alpha``."""
        return not self.p_value < self.alpha

    @property
    def decision(self) -> str:
        return "normal" if self.is_normal else "not normal"

    def __repr__(self) -> str:
        return (
            f"NormalityTestResult({self.test}: stat={self.statistic:.3f}, "
            f"p={self.p_value:.4f}, alpha={self.alpha}, {self.decision})"
        )


def qq_points(values: pd.Series | np.ndarray) -> QQPoints:
    """Compute normal QQ coordinates for the non-missing values."""
    clean = pd.Series(values).dropna().to_numpy(dtype=float)
    (theoretical, ordered), (slope, intercept, r) = stats.probplot(clean, dist="norm")
    return QQPoints(
        theoretical=np.asarray(theoretical),
        ordered=np.asarray(ordered),
        slope=float(slope),
        intercept=float(intercept),
        r=float(r),
    )


def normality_test(values: pd.Series | np.ndarray, alpha: float | None = None) -> NormalityTestResult:
    """Test the non-missing values for normality.

    Raises:
        ValueError: With fewer than three observations.
    """
    alpha = DEFAULT_THRESHOLDS.alpha if alpha is None else alpha
    clean = pd.Series(values).dropna().to_numpy(dtype=float)
    n = clean.shape[0]
    if n < _SHAPIRO_MIN_N:
        raise ValueError(f"Normality test needs at least {_SHAPIRO_MIN_N} observations, got {n}")

    if n > _SHAPIRO_MAX_N:
        # Shapiro-Wilk warns above 5k; fall back to Anderson-Darling.
        statistic, p_value = sm_diagnostic.normal_ad(clean)
        test = "anderson_darling"
    else:
        statistic, p_value = stats.shapiro(clean)
        test = "shapiro"
    return NormalityTestResult(
        statistic=float(statistic),
        p_value=float(p_value),
        alpha=alpha,
        n_obs=int(n),
        test=test,
    )


@dataclass(frozen=True)
class NormalityResult:
    """Per-variable normality tests and QQ coordinates.

    Attributes:
        table: DataFrame indexed by column with ``n``, ``statistic``,
            ``p_value``, ``is_normal``, ``decision``, ``qq_r``.
        tests: Full test result per column.
        qq: QQ points per column (for plotting).
        pretty_by_col: Mapping from column names to display labels.
    """

    table: pd.DataFrame
    tests: dict[str, NormalityTestResult]
    qq: dict[str, QQPoints]
    pretty_by_col: dict[str, str]

    def non_normal(self) -> list[str]:
        """Columns whose normality test rejects at ``alpha``."""
        return self.table.index[~self.table["is_normal"]].tolist()

    def plot_qq(self, **kwargs: object):
        """Plot QQ panels for every assessed column."""
        from surv_tlbx.plotting.dataset_plots import plot_qq_grid  # noqa: PLC0415

        return plot_qq_grid(self, **kwargs)


class NormalityAssessor(BaseAnalyser):
    """Apply the QQ comparison and normality test to each column of a view."""

    def __init__(self, view: DatasetView, alpha: float | None = None) -> None:
        self._view = view
        self.alpha = DEFAULT_THRESHOLDS.alpha if alpha is None else alpha
        self._tests: dict[str, NormalityTestResult] | None = None
        self._qq: dict[str, QQPoints] | None = None

    def fit(self) -> Self:
        cols = self._view.numeric_cols
        self._tests = {col: normality_test(self._view.df[col], alpha=self.alpha) for col in cols}
        self._qq = {col: qq_points(self._view.df[col]) for col in cols}
        return self

    def result(self) -> NormalityResult:
        if self._tests is None or self._qq is None:
            raise ValueError("Must call fit() before result()")

        table = pd.DataFrame(
            {
                col: {
                    "n": res.n_obs,
                    "statistic": res.statistic,
                    "p_value": res.p_value,
                    "is_normal": res.is_normal,
                    "decision": res.decision,
                    "qq_r": self._qq[col].r,
                }
                for col, res in self._tests.items()
            },
        ).T.astype({"n": int, "statistic": float, "p_value": float, "is_normal": bool, "qq_r": float})
        return NormalityResult(
            table=table,
            tests=dict(self._tests),
            qq=dict(self._qq),
            pretty_by_col=dict(self._view.pretty_by_col),
        )
