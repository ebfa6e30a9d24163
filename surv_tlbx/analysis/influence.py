r"""Per-observation outlier and influence measures for a fitted OLS model.

With :math:`H = X(X^\top X)^{-1}X^\top`, residuals :math:`e_i` and
:math:`p` coefficients:

- leverage :math:`h_{ii}` (outlying in predictor space), :math:`\sum_i h_{ii} = p`
- externally studentized residual :math:`t_i = e_i / (s_{(i)}\sqrt{1 - h_{ii}})`
- :math:`DFFITS_i = t_i \sqrt{h_{ii}/(1 - h_{ii})}` (change of the own fitted value)
- Cook's distance :math:`D_i = \frac{e_i^2}{p\,MSE}\frac{h_{ii}}{(1 - h_{ii})^2}`
- :math:`DFBETA_{ij} = \hat\beta_j - \hat\beta_{j(i)}` and its scaled version
  :math:`DFBETAS_{ij}`

All measures come from a single fit (``statsmodels`` ``OLSInfluence``); the
raw DFBETA uses the closed form :math:`(X^\top X)^{-1}x_i\,e_i/(1 - h_{ii})`.
:func:`holdout_check` refits without one observation to confirm the deletion
identities for a chosen case.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Self

import numpy as np
import pandas as pd
import statsmodels.formula.api as smf

from surv_tlbx.config import DEFAULT_THRESHOLDS, DiagnosticThresholds
from surv_tlbx.data import SUCol

from .base_analyser import BaseAnalyser
from .ols_helper import check_identifiable


if TYPE_CHECKING:
    from matplotlib.figure import Figure

    from .ols_helper import RegressionResult


logger = logging.getLogger(__name__)

MEASURES = ("leverage", "studentized", "dffits", "cooks_distance", "dfbetas")


@dataclass(frozen=True)
class InfluenceResult:
    """Influence table with rule-of-thumb flags.

    Attributes:
        table: DataFrame indexed by observation ID with ``fitted``,
            ``residual``, ``studentized``, ``leverage``, ``dffits``,
            ``cooks_distance``, ``dfbeta_<term>``, ``dfbetas_<term>``,
            one boolean ``flag_<measure>`` per measure and ``n_flags``.
        thresholds: Cut-off per measure (absolute values are compared for
            ``studentized``, ``dffits`` and ``dfbetas``).
        terms: Coefficient names, intercept included.
        n_obs: Observations in the fit.
        n_params: Coefficients in the fit.
    """

    table: pd.DataFrame
    thresholds: dict[str, float]
    terms: list[str]
    n_obs: int
    n_params: int

    def flagged_ids(self, measure: str | None = None) -> list:
        """IDs flagged by ``measure``, or by any measure when ``None``."""
        if measure is None:
            mask = self.table["n_flags"] > 0
        else:
            if measure not in MEASURES:
                raise KeyError(f"Unknown influence measure '{measure}'. Use one of {MEASURES}.")
            mask = self.table[f"flag_{measure}"]
        return self.table.index[mask].tolist()

    def flagged(self) -> pd.DataFrame:
        """Rows with at least one flag, most flags first."""
        cols = ["studentized", "leverage", "dffits", "cooks_distance", *[f"flag_{m}" for m in MEASURES], "n_flags"]
        return (
            self.table.loc[self.table["n_flags"] > 0, cols]
            .sort_values(["n_flags", "cooks_distance"], ascending=False)
        )

    def most_influential(self) -> object:
        """ID with the largest Cook's distance."""
        return self.table["cooks_distance"].idxmax()

    def dfbeta(self) -> pd.DataFrame:
        """Raw coefficient changes, one column per term."""
        return self.table[[f"dfbeta_{term}" for term in self.terms]].set_axis(self.terms, axis=1)

    def dfbetas(self) -> pd.DataFrame:
        """Scaled coefficient changes, one column per term."""
        return self.table[[f"dfbetas_{term}" for term in self.terms]].set_axis(self.terms, axis=1)

    def plot_index(self, **kwargs: object) -> Figure:
        """Index plots of each measure with its threshold."""
        from surv_tlbx.plotting.influence_plots import plot_influence_index  # noqa: PLC0415

        return plot_influence_index(self, **kwargs)


class InfluenceAnalyzer(BaseAnalyser):
    """Compute leverage, studentized residuals, DFFITS, Cook's distance and DFBETA(S)."""

    def __init__(self, result: RegressionResult, thresholds: DiagnosticThresholds | None = None) -> None:
        self._result = result
        self.thresholds = thresholds or DEFAULT_THRESHOLDS
        self._table: pd.DataFrame | None = None

    def cutoffs(self) -> dict[str, float]:
        n, p = self._result.n_obs, self._result.n_params
        return {
            "leverage": self.thresholds.leverage(n, p),
            "studentized": self.thresholds.studentized,
            "dffits": self.thresholds.dffits(n, p),
            "cooks_distance": self.thresholds.cooks(n),
            "dfbetas": self.thresholds.dfbetas(n),
        }

    def fit(self) -> Self:
        model = self._result.model
        infl = model.get_influence()
        index = self._result.design_matrix.index
        terms = list(self._result.design_matrix.columns)

        exog = np.asarray(model.model.exog, dtype=float)
        resid = np.asarray(model.resid, dtype=float)
        leverage = np.asarray(infl.hat_matrix_diag)
        dfbeta = (exog @ np.asarray(model.normalized_cov_params)) * (resid / (1.0 - leverage))[:, None]
        dfbetas = np.asarray(infl.dfbetas)

        table = pd.DataFrame(
            {
                "fitted": np.asarray(model.fittedvalues),
                "residual": resid,
                "studentized": np.asarray(infl.resid_studentized_external),
                "leverage": leverage,
                "dffits": np.asarray(infl.dffits[0]),
                "cooks_distance": np.asarray(infl.cooks_distance[0]),
            },
            index=index,
        )
        table = pd.concat(
            [
                table,
                pd.DataFrame(dfbeta, index=index, columns=[f"dfbeta_{t}" for t in terms]),
                pd.DataFrame(dfbetas, index=index, columns=[f"dfbetas_{t}" for t in terms]),
            ],
            axis=1,
        )

        cut = self.cutoffs()
        table["flag_leverage"] = table["leverage"] > cut["leverage"]
        table["flag_studentized"] = table["studentized"].abs() > cut["studentized"]
        table["flag_dffits"] = table["dffits"].abs() > cut["dffits"]
        table["flag_cooks_distance"] = table["cooks_distance"] > cut["cooks_distance"]
        table["flag_dfbetas"] = (np.abs(dfbetas) > cut["dfbetas"]).any(axis=1)
        table["n_flags"] = table[[f"flag_{m}" for m in MEASURES]].sum(axis=1).astype(int)

        self._table = table
        logger.debug(
            "Influence: %d of %d observations flagged by at least one measure",
            int((table["n_flags"] > 0).sum()),
            len(table),
        )
        return self

    def result(self) -> InfluenceResult:
        if self._table is None:
            raise ValueError("Must call fit() before result()")
        return InfluenceResult(
            table=self._table,
            thresholds=self.cutoffs(),
            terms=list(self._result.design_matrix.columns),
            n_obs=self._result.n_obs,
            n_params=self._result.n_params,
        )


@dataclass(frozen=True)
class HoldoutResult:
    """In-sample versus held-out prediction for one observation.

    Attributes:
        observation_id: ID of the held-out observation.
        observed: Its response value.
        fitted: In-sample fitted value.
        residual: In-sample residual :math:`e_i`.
        predicted: Prediction from the model refit without the observation.
        holdout_residual: :math:`y_i - \\hat y_{i(i)}`.
        leverage: :math:`h_{ii}` in the full fit.
        coefficient_change: :math:`\\hat\\beta - \\hat\\beta_{(i)}` per term.
    """

    observation_id: object
    observed: float
    fitted: float
    residual: float
    predicted: float
    holdout_residual: float
    leverage: float
    coefficient_change: pd.Series

    @property
    def deleted_residual(self) -> float:
        r"""Closed-form leave-one-out residual :math:`e_i/(1 - h_{ii})`."""
        return self.residual / (1.0 - self.leverage)

    @property
    def inflation(self) -> float:
        """Ratio of held-out to in-sample residual magnitude (``1/(1 - h)``)."""
        return abs(self.holdout_residual) / abs(self.residual) if self.residual else float("inf")

    def __repr__(self) -> str:
        return (
            f"HoldoutResult(id={self.observation_id}, observed={self.observed:.4f}, "
            f"in-sample residual={self.residual:.4f}, held-out residual={self.holdout_residual:.4f}, "
            f"leverage={self.leverage:.3f})"
        )


def holdout_check(
    df: pd.DataFrame,
    *,
    rhs: str,
    observation_id: object,
    target_col: str = SUCol.TARGET,
) -> HoldoutResult:
    """Refit with one observation's response removed and predict it back.

    The observation's response is set to missing so the refit drops it, then
    the refit predicts it back from its predictors (the formula terms are
    re-applied by statsmodels).

    Raises:
        KeyError: If ``observation_id`` is not among the rows used in the fit.
    """
    full = smf.ols(f"{target_col} ~ {rhs}", data=df).fit()
    used = pd.Index(full.model.data.row_labels)
    if observation_id not in used:
        raise KeyError(f"Observation {observation_id!r} is not part of the fitted data.")
    pos = used.get_loc(observation_id)

    held_out = df.copy()
    held_out.loc[observation_id, target_col] = np.nan
    ols = smf.ols(f"{target_col} ~ {rhs}", data=held_out)
    check_identifiable(ols.exog, ols.exog_names)
    reduced = ols.fit()

    predicted = float(reduced.predict(df.loc[[observation_id]]).iloc[0])
    observed = float(df.loc[observation_id, target_col])
    leverage = float(full.get_influence().hat_matrix_diag[pos])

    result = HoldoutResult(
        observation_id=observation_id,
        observed=observed,
        fitted=float(full.fittedvalues.iloc[pos]),
        residual=float(full.resid.iloc[pos]),
        predicted=predicted,
        holdout_residual=observed - predicted,
        leverage=leverage,
        coefficient_change=(full.params - reduced.params).rename("change"),
    )
    logger.info("Hold-out check: %r", result)
    return result


__all__ = ["MEASURES", "HoldoutResult", "InfluenceAnalyzer", "InfluenceResult", "holdout_check"]
