"""Loading and validation for the surgical unit survival-time dataset."""

import logging
import re
from pathlib import Path

import pandas as pd

from surv_tlbx.exceptions import DataValidationError
from surv_tlbx.utils.paths import get_dataset_path

from .base_dataset import BaseDataset
from .response_transforms import apply_response_transform
from .surgical_unit_columns import SurgicalUnitColumn as Col


logger = logging.getLogger(__name__)


class SurgicalUnitDataset(BaseDataset):
    """Loading and validation for the surgical unit dataset.

    Observations are indexed by patient ``id``. The frame is never mutated in
    place; :meth:`with_response_transform` returns a new dataset carrying an
    extra derived response column.

    **Example workflow**:
    >>> from surv_tlbx.data import SurgicalUnitDataset, SUCol
    >>> ds = SurgicalUnitDataset.from_csv()
    >>> desc = ds.make_descriptive_analyzer().fit().result()
    >>> corr = ds.make_correlation_analyzer().fit().result()
    >>> log_ds = ds.with_response_transform("log")
    >>> log_ds.response_col
    'surv_time_log'
    """

    Col = Col

    def __init__(self, df: pd.DataFrame | None = None, *, response_col: str | None = None) -> None:
        super().__init__(df)
        self._response_col = response_col or Col.TARGET

    @classmethod
    def from_csv(
        cls,
        csv_path: str | Path | None = None,
        *,
        sep: str = ",",
    ) -> "SurgicalUnitDataset":
        """Load and validate the surgical unit dataset from a delimited text file.

        - Normalize column names (``SurvTime`` -> ``surv_time``)
        - Treat empty fields as missing and coerce numeric columns
        - Index observations by their unique ``id``

        Args:
            csv_path: Path to the CSV file (defaults to ``_data/surgical_unit.csv``).
            sep: Field delimiter.

        Raises:
            DataValidationError: On missing columns, missing or duplicate IDs, or
                non-positive survival times.
        """
        csv_path = get_dataset_path("surgical_unit") if csv_path is None else Path(csv_path)
        logger.info("Loading surgical unit data from %s", csv_path)

        raw = pd.read_csv(csv_path, sep=sep, skipinitialspace=True)
        return cls.from_frame(raw)

    @classmethod
    def from_frame(cls, raw: pd.DataFrame) -> "SurgicalUnitDataset":
        """Clean and validate an already-parsed frame with the raw CSV headers."""
        su_df = raw.pipe(cls._normalize_col_names).pipe(cls._validate_columns).pipe(cls._convert_data_types)
        su_df = cls._validate_records(su_df)
        logger.debug("Loaded %d observations with columns %s", len(su_df), list(su_df.columns))
        return cls(df=su_df)

    @staticmethod
    def _normalize_col_names(df: pd.DataFrame) -> pd.DataFrame:
        """Standardize column names to match :class:`SurgicalUnitColumn`.

        Known raw headers map directly; anything else is converted from
        CamelCase / spaced text to snake_case.
        """
        known = {key.lower(): value for key, value in Col.original_to_cleaned().items()}

        def clean(name: str) -> str:
            stripped = str(name).strip()
            if stripped.lower() in known:
                return known[stripped.lower()]
            snake = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "_", stripped)
            return re.sub(r"[\s/\-_]+", "_", snake).lower()

        return df.set_axis([clean(col) for col in df.columns], axis=1)

    @staticmethod
    def _validate_columns(df: pd.DataFrame) -> pd.DataFrame:
        required = [Col.ID, *Col.numeric_columns()]
        missing = [col for col in required if col not in df.columns]
        if missing:
            raise DataValidationError(f"Missing required columns: {missing}")
        return df

    @staticmethod
    def _convert_data_types(df: pd.DataFrame) -> pd.DataFrame:
        """Coerce numeric columns; empty fields and unparsable entries become NaN."""
        return df.assign(
            **{col: pd.to_numeric(df[col], errors="coerce").astype(float) for col in Col.numeric_columns()},
        )

    @staticmethod
    def _validate_records(df: pd.DataFrame) -> pd.DataFrame:
        ids = pd.to_numeric(df[Col.ID], errors="coerce")
        if ids.isna().any():
            rows = (ids.index[ids.isna()] + 1).tolist()
            raise DataValidationError("Missing or non-numeric patient identifiers at data rows", record_ids=rows)
        if (ids != ids.round()).any():
            raise DataValidationError("Patient identifiers must be integers", record_ids=ids[ids != ids.round()])

        ids = ids.astype("int64")
        duplicated = ids[ids.duplicated(keep=False)]
        if not duplicated.empty:
            raise DataValidationError("Duplicate patient identifiers", record_ids=sorted(set(duplicated)))

        su_df = df.assign(**{Col.ID: ids}).set_index(Col.ID)

        for col in Col:
            if col.strictly_positive and col in su_df.columns:
                values = su_df[col]
                bad = values.notna() & (values <= 0)
                if bad.any():
                    raise DataValidationError(
                        f"'{col}' must be strictly positive",
                        column=col,
                        record_ids=values.index[bad].tolist(),
                    )

        n_missing = int(su_df[Col.numeric_columns()].isna().sum().sum())
        if n_missing:
            logger.warning("Dataset contains %d missing numeric values; they are excluded per computation", n_missing)
        return su_df

    @property
    def response_col(self) -> str:
        """Name of the active response column (raw or derived)."""
        return self._response_col

    def with_response_transform(self, name: str, *, lam: float | None = None) -> "SurgicalUnitDataset":
        """Return a new dataset with a transformed response column appended.

        Args:
            name: ``identity``, ``log``, ``sqrt``, ``inverse`` or ``boxcox``.
            lam: Box-Cox exponent (required for ``boxcox``).

        Returns:
            New :class:`SurgicalUnitDataset` whose ``response_col`` points to the
            derived column (``surv_time_<name>``); the raw response is unchanged.
        """
        if name == "identity":
            return SurgicalUnitDataset(df=self.df, response_col=Col.TARGET)

        derived_col = f"{Col.TARGET}_{name}"
        transformed = apply_response_transform(self.df[Col.TARGET], name, lam=lam).rename(derived_col)
        return SurgicalUnitDataset(df=self.df.assign(**{derived_col: transformed}), response_col=derived_col)

    def model_frame(self, predictors: list[str] | None = None) -> pd.DataFrame:
        """Predictors plus the active response, ready for formula-based fitting."""
        predictors = predictors or self.feature_columns(include_target=False)
        return self.df.loc[:, [*predictors, self.response_col]]
