"""Base column definitions and metadata structures."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


@dataclass(frozen=True)
class ColumnMetadata:
    """Metadata for a dataset column.

    Attributes:
        cleaned_name: Standardized column name used in DataFrames.
        dtype: Expected pandas data type as a string.
        pretty_name: Human-readable name for use in plots and tables.
        strictly_positive: Whether every non-missing value must be > 0.
    """

    original_name: str
    """Column name as it appears in the raw CSV header."""
    cleaned_name: str
    dtype: str
    pretty_name: str
    strictly_positive: bool = False


class BaseColumn(StrEnum):
    """Base class for dataset column enums.

    Derived enums define a ``TARGET`` member (the response) and implement
    :meth:`metadata`, :meth:`identifier_columns` and :meth:`numeric_columns`.
    """

    TARGET: str

    def metadata(self) -> ColumnMetadata:
        raise NotImplementedError(f"{self.__class__.__name__} must implement metadata() method")

    @classmethod
    def numeric_columns(cls) -> list[str]:
        """Get all numeric column names (predictors and response)."""
        raise NotImplementedError(f"{cls.__name__} must implement numeric_columns() method")

    @classmethod
    def identifier_columns(cls) -> list[str]:
        """Get identifier column names."""
        raise NotImplementedError(f"{cls.__name__} must implement identifier_columns() method")

    @classmethod
    def predictor_columns(cls) -> list[str]:
        """Numeric columns other than the response."""
        return [col for col in cls.numeric_columns() if col != cls.TARGET]

    @classmethod
    def original_to_cleaned(cls) -> dict[str, str]:
        """Map raw CSV headers to cleaned column names."""
        return {col.original_name: col.value for col in cls}

    @property
    def pretty_name(self) -> str:
        return self.metadata().pretty_name

    @property
    def original_name(self) -> str:
        return self.metadata().original_name

    @property
    def dtype_name(self) -> str:
        return self.metadata().dtype

    @property
    def strictly_positive(self) -> bool:
        return self.metadata().strictly_positive
