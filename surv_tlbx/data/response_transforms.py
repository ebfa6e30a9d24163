r"""Response transformations used by the transformation search.

Each transform is a pure function of the response column. Transforms that are
undefined for some values (log and Box-Cox for :math:`y \le 0`, the
reciprocal for :math:`y \le 0`, the square root for :math:`y < 0`) fail fast
with a :class:`~surv_tlbx.exceptions.DataValidationError` naming the offending
observations instead of silently producing ``NaN``.
"""

from __future__ import annotations

from collections.abc import Callable

import numpy as np
import pandas as pd
from scipy import special

from surv_tlbx.exceptions import DataValidationError


def _require(series: pd.Series, valid: pd.Series, rule: str, transform: str) -> None:
    # missing values stay missing; only observed values are validated
    bad = series.notna() & ~valid
    if bad.any():
        raise DataValidationError(
            f"{transform} transform requires {rule} values in '{series.name}'",
            column=str(series.name),
            record_ids=series.index[bad].tolist(),
        )


def identity(y: pd.Series) -> pd.Series:
    return y.astype(float)


def log(y: pd.Series) -> pd.Series:
    _require(y, y > 0, "strictly positive", "log")
    return np.log(y.astype(float))


def sqrt(y: pd.Series) -> pd.Series:
    _require(y, y >= 0, "non-negative", "sqrt")
    return np.sqrt(y.astype(float))


def inverse(y: pd.Series) -> pd.Series:
    _require(y, y > 0, "strictly positive", "inverse")
    return 1.0 / y.astype(float)


def boxcox(y: pd.Series, lam: float) -> pd.Series:
    r"""Box-Cox power transform :math:`(y^\lambda - 1)/\lambda` (:math:`\log y` at 0)."""
    _require(y, y > 0, "strictly positive", "Box-Cox")
    return pd.Series(special.boxcox(y.astype(float).to_numpy(), lam), index=y.index, name=y.name)


RESPONSE_TRANSFORMS: dict[str, Callable[[pd.Series], pd.Series]] = {
    "identity": identity,
    "log": log,
    "sqrt": sqrt,
    "inverse": inverse,
}


def apply_response_transform(y: pd.Series, name: str, *, lam: float | None = None) -> pd.Series:
    """Apply a named transform (``identity``, ``log``, ``sqrt``, ``inverse``, ``boxcox``)."""
    if name == "boxcox":
        if lam is None:
            raise ValueError("Box-Cox transform requires an exponent 'lam'.")
        return boxcox(y, lam)
    try:
        fn = RESPONSE_TRANSFORMS[name]
    except KeyError:
        raise KeyError(f"Unknown response transform '{name}'.") from None
    return fn(y)


__all__ = ["RESPONSE_TRANSFORMS", "apply_response_transform", "boxcox", "identity", "inverse", "log", "sqrt"]
