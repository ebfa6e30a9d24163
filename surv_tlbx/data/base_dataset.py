"""Base dataset class for all dataset implementations."""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Literal

import pandas as pd


if TYPE_CHECKING:
    from surv_tlbx.analysis.collinearity import CollinearityChecker
    from surv_tlbx.analysis.correlation_analyzer import CorrelationAnalyzer
    from surv_tlbx.analysis.descriptive import DescriptiveAnalyzer
    from surv_tlbx.analysis.normality import NormalityAssessor
    from surv_tlbx.config import DiagnosticThresholds

from .base_columns import BaseColumn
from .views import DatasetView


class BaseDataset(ABC):
    """Abstract base class for dataset handlers used throughout the toolbox.

    The wrapped DataFrame is treated as immutable: derived columns are only
    ever added to a copy returned as a new dataset instance.
    """

    identifier_columns: Sequence[str] = ()
    Col: type[BaseColumn]

    def __init__(self, df: pd.DataFrame | None = None) -> None:
        self._df: pd.DataFrame | None = df

    @classmethod
    @abstractmethod
    def from_csv(cls, csv_path: str | Path | None = None, **kwargs: object) -> "BaseDataset":
        """Load dataset from CSV file."""
        ...

    @property
    def df(self) -> pd.DataFrame:
        """Get the cleaned DataFrame.

        Raises:
            ValueError: If dataset not loaded
        """
        if self._df is None:
            raise ValueError("Dataset not loaded. Use from_csv() to load data.")
        return self._df

    @property
    def df_pretty(self) -> pd.DataFrame:
        """Get the DataFrame with pretty column names."""
        return self.df.rename(columns={col: self.get_pretty_name(col) for col in self.df.columns})

    @property
    def numeric_cols(self) -> pd.Index:
        return self.df.select_dtypes(include=["number"]).columns

    @property
    def n_obs(self) -> int:
        return len(self.df)

    def get_pretty_names(self, column_names: list[str] | None = None) -> list[str]:
        return [self.get_pretty_name(name) for name in column_names or self.df.columns.to_list()]

    def get_pretty_name(self, column_name: str) -> str:
        """Convert column name to pretty name for tables and plot labels."""
        try:
            col_enum = self.Col(column_name)
        except ValueError:
            # Fallback: capitalize and replace underscores if not in enum
            return column_name.replace("_", " ").title()
        else:
            return str(col_enum.pretty_name)

    def view(
        self,
        columns: Iterable[str] | None = None,
        target_col: str | None = None,
        missing_strategy: Literal["listwise", "keep"] = "listwise",
    ) -> DatasetView:
        """Build an immutable dataset view for analyzers and plotting layers.

        Args:
            columns: Columns to include in the view (defaults to all)
            target_col: Optional response column reference
            missing_strategy: ``"listwise"`` drops rows with any missing value in
                the selected columns; ``"keep"`` leaves them in place so each
                computation can exclude them per column or pairwise. Values are
                never imputed.

        Returns:
            DatasetView containing selected data and metadata
        """
        if missing_strategy not in {"listwise", "keep"}:
            raise ValueError(
                f"Invalid missing_strategy='{missing_strategy}'. Use 'listwise' or 'keep'.",
            )

        selected_cols = list(columns or self.df.columns.to_list())
        missing = [col for col in selected_cols if col not in self.df.columns]
        if missing:
            raise KeyError(f"Columns not in dataset: {missing}")

        frame = self.df.loc[:, selected_cols]
        if missing_strategy == "listwise":
            frame = frame.dropna(axis=0, how="any")

        return DatasetView(
            df=frame,
            pretty_by_col={col: self.get_pretty_name(col) for col in selected_cols},
            numeric_cols=[col for col in selected_cols if col in self.numeric_cols],
            target_col=target_col,
            missing_strategy=missing_strategy,
        )

    def feature_columns(
        self,
        include_target: bool = False,
        extra_exclude: Iterable[str] | None = None,
    ) -> list[str]:
        """Return numeric predictor columns, optionally including the response."""
        exclude = set(self.Col.identifier_columns())
        if extra_exclude:
            exclude.update(extra_exclude)
        if not include_target:
            exclude.add(self.Col.TARGET)
        return [col for col in self.Col.numeric_columns() if col in self.df.columns and col not in exclude]

    def analyzer_view(
        self,
        columns: Iterable[str] | None = None,
        include_target: bool = True,
        missing_strategy: Literal["listwise", "keep"] = "listwise",
    ) -> DatasetView:
        """Build a dataset view tailored for downstream analyzers."""
        return self.view(
            columns=columns if columns is not None else self.feature_columns(include_target=include_target),
            target_col=self.Col.TARGET if include_target else None,
            missing_strategy=missing_strategy,
        )

    def make_descriptive_analyzer(
        self,
        columns: Iterable[str] | None = None,
        confidence: float = 0.95,
    ) -> "DescriptiveAnalyzer":
        """Instantiate a descriptive-statistics analyzer (missing values ignored per column)."""
        from surv_tlbx.analysis.descriptive import DescriptiveAnalyzer

        return DescriptiveAnalyzer(
            self.analyzer_view(columns=columns, include_target=True, missing_strategy="keep"),
            confidence=confidence,
        )

    def make_normality_assessor(
        self,
        columns: Iterable[str] | None = None,
        alpha: float | None = None,
    ) -> "NormalityAssessor":
        """Instantiate a per-variable normality assessor."""
        from surv_tlbx.analysis.normality import NormalityAssessor

        return NormalityAssessor(
            self.analyzer_view(columns=columns, include_target=True, missing_strategy="keep"),
            alpha=alpha,
        )

    def make_correlation_analyzer(
        self,
        columns: Iterable[str] | None = None,
        include_target: bool = True,
        alpha: float | None = None,
    ) -> "CorrelationAnalyzer":
        """Instantiate a rank-correlation analyzer (pairwise-complete observations)."""
        from surv_tlbx.analysis.correlation_analyzer import CorrelationAnalyzer

        return CorrelationAnalyzer(
            self.analyzer_view(columns=columns, include_target=include_target, missing_strategy="keep"),
            alpha=alpha,
        )

    def make_collinearity_checker(
        self,
        columns: Iterable[str] | None = None,
        thresholds: "DiagnosticThresholds | None" = None,
    ) -> "CollinearityChecker":
        """Instantiate a VIF / correlation-matrix collinearity checker on the predictors."""
        from surv_tlbx.analysis.collinearity import CollinearityChecker

        columns = list(columns or self.feature_columns(include_target=False))
        return CollinearityChecker(
            self.view(columns=columns, missing_strategy="listwise"),
            thresholds=thresholds,
        )
