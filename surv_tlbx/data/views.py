"""Task-specific views over dataset content."""

from collections.abc import Mapping
from dataclasses import dataclass

import pandas as pd


@dataclass(frozen=True)
class DatasetView:
    """Immutable snapshot of dataset data and related metadata.

    Attributes:
        df: Dataframe slice containing the relevant columns, indexed by observation ID.
        pretty_by_col: Mapping from normalized column names to display-friendly labels.
        numeric_cols: Ordered list of numeric column names present in ``df``.
        target_col: Optional name of the response used for analysis.
        missing_strategy: How missing values were handled when the view was built
            (``"listwise"`` drops incomplete rows, ``"keep"`` leaves them for
            per-column or pairwise handling downstream).
    """

    df: pd.DataFrame
    pretty_by_col: Mapping[str, str]
    numeric_cols: list[str]
    target_col: str | None = None
    missing_strategy: str = "listwise"

    @property
    def features(self) -> pd.DataFrame:
        """Return view over numeric columns."""
        cols = self.numeric_cols or self.df.columns.tolist()
        return self.df.loc[:, cols]

    @property
    def predictor_cols(self) -> list[str]:
        """Numeric columns other than the target."""
        return [col for col in self.numeric_cols if col != self.target_col]

    @property
    def target(self) -> pd.Series:
        if self.target_col is None:
            raise ValueError("Dataset view has no target column configured.")
        return self.df[self.target_col]

    def pretty(self, col: str) -> str:
        return self.pretty_by_col.get(col, col)
