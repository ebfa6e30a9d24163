r"""Response transformations and the search for a model whose residuals behave.

Box-Cox profile likelihood
--------------------------
For a strictly positive response the Box-Cox family
:math:`y^{(\lambda)} = (y^\lambda - 1)/\lambda` (:math:`\log y` at :math:`\lambda = 0`)
is fitted by OLS on the same predictors for every :math:`\lambda` on a grid. The
profile log-likelihood, including the Jacobian of the transformation, is

.. math::

    \ell(\lambda) = -\frac{n}{2}\left(\log 2\pi + 1 + \log\frac{SSE_\lambda}{n}\right)
                    + (\lambda - 1)\sum_i \log y_i

and the approximate 95% interval collects every :math:`\lambda` with
:math:`\ell(\lambda) \ge \ell(\hat\lambda) - \tfrac12\chi^2_{1,0.95}`.

Candidate search
----------------
The untransformed model, the log/sqrt/inverse responses, quadratic predictor
terms and (if no named power fits the interval) the Box-Cox power itself are
fitted and checked for residual normality and constant variance. The simplest
passing candidate wins; candidates of equal complexity are ranked by the
smaller of their two residual p-values.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Self

import numpy as np
import pandas as pd
import statsmodels.api as sm
import statsmodels.formula.api as smf
from scipy import special, stats

from surv_tlbx.config import DEFAULT_THRESHOLDS
from surv_tlbx.data import SUCol
from surv_tlbx.exceptions import DataValidationError

from .base_analyser import BaseAnalyser
from .ols_helper import RegressionResult, ResidualDiagnostics, fit_ols_formula, polynomial_terms, rhs_for


if TYPE_CHECKING:
    from matplotlib.axes import Axes

    from surv_tlbx.data import SurgicalUnitDataset


logger = logging.getLogger(__name__)

DEFAULT_LAMBDAS = np.round(np.arange(-2.0, 2.0 + 1e-9, 0.1), 10)

NAMED_POWERS: dict[float, str] = {1.0: "identity", 0.5: "sqrt", 0.0: "log", -1.0: "inverse"}
"""Box-Cox exponents that correspond to a named response transform."""

_LADDER_HALF_GAP = 0.25

SIMPLE, COMPLEX = "simple", "complex"


@dataclass(frozen=True)
class BoxCoxProfile:
    """Profile log-likelihood of the Box-Cox exponent.

    Attributes:
        lambdas: Grid of exponents.
        loglik: Profile log-likelihood per exponent (Jacobian included).
        sse: Residual sum of squares of the transformed fit per exponent.
        lambda_opt: Grid exponent maximising the profile likelihood.
        ci: Profile-likelihood interval ``(lower, upper)`` on the grid.
        confidence: Confidence level of ``ci``.
        recommended: Named transform (or ``"boxcox"``) suggested by the optimum.
        n_obs: Observations used.
        sum_log_y: :math:`\\sum_i \\log y_i` of the response.
    """

    lambdas: np.ndarray
    loglik: np.ndarray
    sse: np.ndarray
    lambda_opt: float
    ci: tuple[float, float]
    confidence: float
    recommended: str
    n_obs: int
    sum_log_y: float

    @property
    def max_loglik(self) -> float:
        return float(np.max(self.loglik))

    @property
    def cutoff(self) -> float:
        """Log-likelihood level that bounds the interval."""
        return self.max_loglik - float(stats.chi2.ppf(self.confidence, df=1)) / 2.0

    def loglik_at(self, lam: float) -> float:
        """Profile log-likelihood at a grid exponent."""
        idx = np.flatnonzero(np.isclose(self.lambdas, lam))
        if idx.size == 0:
            raise KeyError(f"lambda={lam} is not on the profile grid")
        return float(self.loglik[idx[0]])

    def table(self) -> pd.DataFrame:
        return pd.DataFrame({"lambda": self.lambdas, "loglik": self.loglik, "sse": self.sse})

    def plot(self, **kwargs: object) -> Axes:
        """Plot the profile with the optimum and interval marked."""
        from surv_tlbx.plotting.transformation_plots import plot_boxcox_profile  # noqa: PLC0415

        return plot_boxcox_profile(self, **kwargs)


def interpret_boxcox_lambda(lam: float, ci: tuple[float, float] | None = None) -> str:
    """Map a Box-Cox exponent to the closest named response transform.

    With an interval, the named exponent nearest to ``lam`` that lies inside
    ``ci`` is chosen; without one, the nearest named exponent within 0.25.
    ``"boxcox"`` means no named transform is supported and the power itself
    should be used.
    """
    by_distance = sorted(NAMED_POWERS, key=lambda power: abs(power - lam))
    for power in by_distance:
        if ci is None:
            if abs(power - lam) <= _LADDER_HALF_GAP:
                return NAMED_POWERS[power]
        elif ci[0] - 1e-9 <= power <= ci[1] + 1e-9:
            return NAMED_POWERS[power]
    return "boxcox"


def boxcox_profile(
    data: pd.DataFrame,
    *,
    target_col: str = SUCol.TARGET,
    predictors: Sequence[str] | None = None,
    rhs: str | None = None,
    lambdas: Sequence[float] | np.ndarray | None = None,
    confidence: float = 0.95,
) -> BoxCoxProfile:
    """Compute the Box-Cox profile log-likelihood for a linear model.

    Args:
        data: Frame with the response and predictors.
        target_col: Strictly positive response column.
        predictors: Linear predictor columns (ignored when ``rhs`` is given).
        rhs: Explicit Patsy right-hand side.
        lambdas: Exponent grid (defaults to -2..2 in steps of 0.1).
        confidence: Level of the profile-likelihood interval.

    Raises:
        DataValidationError: If any used response value is not strictly positive.
    """
    if rhs is None:
        if predictors is None:
            predictors = SUCol.predictor_columns()
        rhs = rhs_for(list(predictors))
    grid = DEFAULT_LAMBDAS if lambdas is None else np.asarray(lambdas, dtype=float)

    ols = smf.ols(f"{target_col} ~ {rhs}", data=data)
    y = pd.Series(ols.endog, index=ols.data.row_labels, name=target_col)
    bad = y <= 0
    if bad.any():
        raise DataValidationError(
            f"Box-Cox requires strictly positive values in '{target_col}'",
            column=target_col,
            record_ids=y.index[bad].tolist(),
        )

    exog = ols.exog
    n = y.shape[0]
    log_y = np.log(y.to_numpy())
    sum_log_y = float(log_y.sum())

    sse = np.array([sm.OLS(special.boxcox(y.to_numpy(), lam), exog).fit().ssr for lam in grid])
    loglik = -0.5 * n * (np.log(2 * np.pi) + 1.0 + np.log(sse / n)) + (grid - 1.0) * sum_log_y

    best = int(np.argmax(loglik))
    cutoff = loglik[best] - float(stats.chi2.ppf(confidence, df=1)) / 2.0
    inside = grid[loglik >= cutoff]
    ci = (float(inside.min()), float(inside.max()))
    if np.isclose(ci[0], grid.min()) or np.isclose(ci[1], grid.max()):
        logger.info("Box-Cox interval %s reaches the edge of the lambda grid", ci)

    lambda_opt = float(grid[best])
    return BoxCoxProfile(
        lambdas=grid,
        loglik=loglik,
        sse=sse,
        lambda_opt=lambda_opt,
        ci=ci,
        confidence=confidence,
        recommended=interpret_boxcox_lambda(lambda_opt, ci),
        n_obs=int(n),
        sum_log_y=sum_log_y,
    )


@dataclass(frozen=True)
class TransformationCandidate:
    """One fitted candidate model of the transformation search."""

    name: str
    response: str
    """Response transform (``identity``, ``log``, ``sqrt``, ``inverse``, ``boxcox``)."""
    rhs: str
    tier: str
    """``"simple"`` (response transform only) or ``"complex"`` (extra terms or a free power)."""
    result: RegressionResult
    lam: float | None = None

    @property
    def diagnostics(self) -> ResidualDiagnostics:
        return self.result.assumptions.residual

    @property
    def passes(self) -> bool:
        return self.diagnostics.passes


@dataclass(frozen=True)
class TransformationResult:
    """Outcome of the transformation search.

    Attributes:
        candidates: Fitted candidates keyed by name, in evaluation order.
        profile: Box-Cox profile of the untransformed linear model.
        selected: Name of the chosen candidate.
        passes: Whether the chosen candidate satisfies both residual checks.
        alpha: Significance level of the residual checks.
    """

    candidates: dict[str, TransformationCandidate]
    profile: BoxCoxProfile
    selected: str
    passes: bool
    alpha: float
    notes: list[str] = field(default_factory=list)

    @property
    def selected_candidate(self) -> TransformationCandidate:
        return self.candidates[self.selected]

    @property
    def model(self) -> RegressionResult:
        """Fitted model of the chosen candidate."""
        return self.selected_candidate.result

    def table(self) -> pd.DataFrame:
        """One row per candidate with both residual p-values and the verdict.

        ``adj_r2`` refers to each candidate's own response scale, so it is not
        comparable across responses.
        """
        rows = []
        for name, cand in self.candidates.items():
            diag = cand.diagnostics
            rows.append(
                {
                    "candidate": name,
                    "response": cand.response,
                    "lambda": cand.lam,
                    "rhs": cand.rhs,
                    "tier": cand.tier,
                    "shapiro_p": diag.normality_pvalue,
                    "breusch_pagan_p": diag.breusch_pagan_pvalue,
                    "min_p": diag.min_pvalue,
                    "normal": diag.residuals_normal,
                    "homoscedastic": diag.homoscedastic,
                    "passes": diag.passes,
                    "adj_r2": cand.result.adj_r2,
                    "selected": name == self.selected,
                },
            )
        return pd.DataFrame(rows).set_index("candidate")

    def plot_profile(self, **kwargs: object) -> Axes:
        return self.profile.plot(**kwargs)


def select_candidate(candidates: Sequence[TransformationCandidate]) -> tuple[TransformationCandidate, bool]:
    """Choose the simplest passing candidate, else the one closest to passing.

    Returns:
        ``(candidate, passes)``.
    """
    if not candidates:
        raise ValueError("No transformation candidates to choose from")
    tier_rank = {SIMPLE: 0, COMPLEX: 1}
    passing = [cand for cand in candidates if cand.passes]
    if passing:
        best = min(passing, key=lambda cand: (tier_rank[cand.tier], -cand.diagnostics.min_pvalue))
        return best, True
    return max(candidates, key=lambda cand: cand.diagnostics.min_pvalue), False


class TransformationSearch(BaseAnalyser):
    """Refit the model under candidate transformations and keep the simplest adequate one.

    Example:
        >>> ds = SurgicalUnitDataset.from_csv()
        >>> search = TransformationSearch(ds, predictors=["bcs", "pi", "ef"]).fit().result()
        >>> search.selected, search.passes
        ('log', True)
        >>> search.table()[["shapiro_p", "breusch_pagan_p", "passes"]]
    """

    def __init__(
        self,
        dataset: SurgicalUnitDataset,
        predictors: Sequence[str] | None = None,
        *,
        alpha: float | None = None,
        include_polynomial: bool = True,
        polynomial_degree: int = 2,
        lambdas: Sequence[float] | np.ndarray | None = None,
    ) -> None:
        self._dataset = dataset
        self.predictors = list(predictors) if predictors is not None else dataset.feature_columns()
        self.alpha = DEFAULT_THRESHOLDS.alpha if alpha is None else alpha
        self.include_polynomial = include_polynomial
        self.polynomial_degree = polynomial_degree
        self.lambdas = lambdas
        self._profile: BoxCoxProfile | None = None
        self._candidates: list[TransformationCandidate] | None = None

    def _fit_candidate(
        self,
        name: str,
        *,
        response: str,
        terms: list[str],
        tier: str,
        lam: float | None = None,
    ) -> TransformationCandidate:
        ds = self._dataset.with_response_transform(response, lam=lam)
        rhs = rhs_for(terms)
        result = fit_ols_formula(ds.model_frame(self.predictors), rhs=rhs, target_col=ds.response_col, alpha=self.alpha)
        cand = TransformationCandidate(name=name, response=response, rhs=rhs, tier=tier, result=result, lam=lam)
        logger.debug("Transformation candidate %s: %r", name, cand.diagnostics)
        return cand

    def fit(self) -> Self:
        raw = self._dataset.with_response_transform("identity")
        self._profile = boxcox_profile(
            raw.model_frame(self.predictors),
            target_col=raw.response_col,
            predictors=self.predictors,
            lambdas=self.lambdas,
        )
        logger.info(
            "Box-Cox optimum lambda=%.2f, %.0f%% interval [%.2f, %.2f] -> %s",
            self._profile.lambda_opt,
            100 * self._profile.confidence,
            *self._profile.ci,
            self._profile.recommended,
        )

        candidates = [
            self._fit_candidate(name, response=name, terms=self.predictors, tier=SIMPLE)
            for name in ("identity", "log", "sqrt", "inverse")
        ]
        if self.include_polynomial:
            candidates.append(
                self._fit_candidate(
                    f"poly{self.polynomial_degree}",
                    response="identity",
                    terms=polynomial_terms(self.predictors, self.polynomial_degree),
                    tier=COMPLEX,
                ),
            )
        if self._profile.recommended == "boxcox":
            candidates.append(
                self._fit_candidate(
                    "boxcox",
                    response="boxcox",
                    terms=self.predictors,
                    tier=COMPLEX,
                    lam=self._profile.lambda_opt,
                ),
            )
        self._candidates = candidates
        return self

    def result(self) -> TransformationResult:
        if self._profile is None or self._candidates is None:
            raise ValueError("Must call fit() before result()")

        chosen, passes = select_candidate(self._candidates)
        notes: list[str] = []
        if passes:
            logger.info("Selected transformation '%s' (%s)", chosen.name, chosen.rhs)
        else:
            msg = (
                f"No candidate passes both residual checks at alpha={self.alpha}; "
                f"returning '{chosen.name}' with the highest minimum p-value "
                f"({chosen.diagnostics.min_pvalue:.4f})."
            )
            logger.warning(msg)
            notes.append(msg)
        if self._profile.recommended not in {"boxcox", chosen.response}:
            notes.append(
                f"Box-Cox profile suggests '{self._profile.recommended}' but '{chosen.name}' was selected.",
            )

        return TransformationResult(
            candidates={cand.name: cand for cand in self._candidates},
            profile=self._profile,
            selected=chosen.name,
            passes=passes,
            alpha=self.alpha,
            notes=notes,
        )


__all__ = [
    "DEFAULT_LAMBDAS",
    "NAMED_POWERS",
    "BoxCoxProfile",
    "TransformationCandidate",
    "TransformationResult",
    "TransformationSearch",
    "boxcox_profile",
    "interpret_boxcox_lambda",
    "select_candidate",
]
