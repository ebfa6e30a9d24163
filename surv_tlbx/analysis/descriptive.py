r"""Per-column descriptive statistics with t-based confidence intervals.

For a column with :math:`n` non-missing values:

- :math:`\bar{x}`, sample standard deviation :math:`s` (``ddof=1``)
- standard error :math:`s/\sqrt{n}`
- two-sided interval :math:`\bar{x} \pm t_{1-\alpha/2,\,n-1}\, s/\sqrt{n}`

With fewer than two values the spread and interval are indeterminate and
reported as ``NaN``.
"""

from dataclasses import dataclass
from typing import Self

import numpy as np
import pandas as pd
from scipy import stats

from surv_tlbx.data.views import DatasetView

from .base_analyser import BaseAnalyser


_MIN_N_FOR_SPREAD = 2


@dataclass(frozen=True)
class DescriptiveResult:
    """Descriptive statistics per column.

    Attributes:
        table: DataFrame indexed by column with ``count``, ``mean``, ``std``,
            ``sem``, ``ci_lower``, ``ci_upper``, ``min``, ``median``, ``max``.
        confidence: Confidence level of the interval.
        pretty_by_col: Mapping from column names to display labels.
    """

    table: pd.DataFrame
    confidence: float
    pretty_by_col: dict[str, str]

    def pretty_table(self, decimals: int = 3) -> pd.DataFrame:
        """Rounded table with display labels, for reporting."""
        return self.table.rename(index=self.pretty_by_col).round(decimals)


def describe_column(values: pd.Series, confidence: float = 0.95) -> dict[str, float]:
    """Descriptive statistics for one column, ignoring missing values."""
    clean = values.dropna().astype(float)
    n = int(clean.shape[0])
    row: dict[str, float] = {
        "count": n,
        "mean": float(clean.mean()) if n else np.nan,
        "std": np.nan,
        "sem": np.nan,
        "ci_lower": np.nan,
        "ci_upper": np.nan,
        "min": float(clean.min()) if n else np.nan,
        "median": float(clean.median()) if n else np.nan,
        "max": float(clean.max()) if n else np.nan,
    }
    if n < _MIN_N_FOR_SPREAD:
        return row

    std = float(clean.std(ddof=1))
    sem = std / np.sqrt(n)
    t_crit = float(stats.t.ppf(0.5 + confidence / 2, df=n - 1))
    row.update(
        std=std,
        sem=sem,
        ci_lower=row["mean"] - t_crit * sem,
        ci_upper=row["mean"] + t_crit * sem,
    )
    return row


class DescriptiveAnalyzer(BaseAnalyser):
    """Count, mean, SD, SE and confidence interval for every numeric column."""

    def __init__(self, view: DatasetView, confidence: float = 0.95) -> None:
        if not 0 < confidence < 1:
            raise ValueError(f"confidence must lie in (0, 1), got {confidence}")
        self._view = view
        self.confidence = confidence
        self._table: pd.DataFrame | None = None

    def fit(self) -> Self:
        rows = {col: describe_column(self._view.df[col], self.confidence) for col in self._view.numeric_cols}
        self._table = pd.DataFrame.from_dict(rows, orient="index")
        self._table["count"] = self._table["count"].astype(int)
        return self

    def result(self) -> DescriptiveResult:
        if self._table is None:
            raise ValueError("Must call fit() before result()")
        return DescriptiveResult(
            table=self._table,
            confidence=self.confidence,
            pretty_by_col=dict(self._view.pretty_by_col),
        )
