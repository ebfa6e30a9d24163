"""Exception hierarchy for the survival-time regression toolbox.

All library errors inherit from :class:`SurvTlbxError`. The concrete errors
also subclass :class:`ValueError` so callers that only guard against bad input
keep working.
"""

from __future__ import annotations

from collections.abc import Iterable


class SurvTlbxError(Exception):
    """Base exception for all toolbox errors."""


class DataValidationError(SurvTlbxError, ValueError):
    """Input data failed a validation rule.

    Attributes:
        column: Column the rule was checked against (if any).
        record_ids: Identifiers of the offending observations.
    """

    def __init__(
        self,
        message: str,
        *,
        column: str | None = None,
        record_ids: Iterable[object] | None = None,
    ) -> None:
        self.column = column
        self.record_ids = list(record_ids) if record_ids is not None else []
        if self.record_ids:
            message = f"{message} (records: {', '.join(map(str, self.record_ids))})"
        super().__init__(message)


class ModelNotIdentifiableError(SurvTlbxError, ValueError):
    """Design matrix is rank deficient, so coefficients are not unique.

    Attributes:
        rank: Numerical rank of the design matrix.
        expected_rank: Number of columns (estimated coefficients).
        n_obs: Number of rows used in the fit.
    """

    def __init__(
        self,
        message: str,
        *,
        rank: int | None = None,
        expected_rank: int | None = None,
        n_obs: int | None = None,
    ) -> None:
        super().__init__(message)
        self.rank = rank
        self.expected_rank = expected_rank
        self.n_obs = n_obs


__all__ = ["DataValidationError", "ModelNotIdentifiableError", "SurvTlbxError"]
