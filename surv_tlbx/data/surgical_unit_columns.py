"""Column definitions for the surgical unit dataset."""

from .base_columns import BaseColumn, ColumnMetadata


class SurgicalUnitColumn(BaseColumn):
    """Column names for the surgical unit survival-time dataset.

    54 patients undergoing a particular liver operation; the preoperative
    scores are used to predict post-operative survival time.

    Columns:
    - ``id``: int - Patient identifier (unique)
    - ``bcs``: float - Blood clotting score
    - ``pi``: float - Prognostic index
    - ``ef``: float - Enzyme function test score
    - ``lf``: float - Liver function test score
    - ``surv_time``: float - Survival time (target variable, strictly positive)
    """

    TARGET = "surv_time"
    """Survival time after the operation (target variable)."""
    SURV_TIME = TARGET

    ID = "id"
    """Patient identifier."""

    BCS = "bcs"
    """Blood clotting score."""
    PI = "pi"
    """Prognostic index (includes patient age)."""
    EF = "ef"
    """Enzyme function test score."""
    LF = "lf"
    """Liver function test score."""

    def metadata(self) -> ColumnMetadata:
        return _COLUMN_METADATA_SURGICAL_UNIT[self]

    @classmethod
    def numeric_columns(cls) -> list[str]:
        return [col.value for col in cls if col is not cls.ID]

    @classmethod
    def identifier_columns(cls) -> list[str]:
        return [cls.ID]


_COLUMN_METADATA_SURGICAL_UNIT: dict[SurgicalUnitColumn, ColumnMetadata] = {
    SurgicalUnitColumn.ID: ColumnMetadata(
        original_name="ID",
        cleaned_name="id",
        dtype="int64",
        pretty_name="Patient ID",
    ),
    SurgicalUnitColumn.BCS: ColumnMetadata(
        original_name="BCS",
        cleaned_name="bcs",
        dtype="float64",
        pretty_name="Blood Clotting Score",
    ),
    SurgicalUnitColumn.PI: ColumnMetadata(
        original_name="PI",
        cleaned_name="pi",
        dtype="float64",
        pretty_name="Prognostic Index",
    ),
    SurgicalUnitColumn.EF: ColumnMetadata(
        original_name="EF",
        cleaned_name="ef",
        dtype="float64",
        pretty_name="Enzyme Function Score",
    ),
    SurgicalUnitColumn.LF: ColumnMetadata(
        original_name="LF",
        cleaned_name="lf",
        dtype="float64",
        pretty_name="Liver Function Score",
    ),
    SurgicalUnitColumn.SURV_TIME: ColumnMetadata(
        original_name="SurvTime",
        cleaned_name="surv_time",
        dtype="float64",
        pretty_name="Survival Time",
        strictly_positive=True,
    ),
}
