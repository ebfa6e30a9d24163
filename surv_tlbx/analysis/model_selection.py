"""Model selection helpers for OLS regression workflows.

Two complementary searches over the predictor set:

- :func:`selection_path`: greedy forward/backward/stepwise paths scored by an
  information criterion, Mallows' :math:`C_p`, adjusted :math:`R^2` or CV RMSE.
- :func:`best_subsets`: exhaustive enumeration of every non-empty predictor
  subset (feasible for the handful of predictors considered here), with
  :func:`best_per_size` and :func:`recommend_subset` to summarise it.

All candidate models are fit on the same rows (complete cases over the target
and every candidate term) so that their criteria are comparable.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from itertools import combinations
from typing import Literal

import numpy as np
import pandas as pd
import statsmodels.formula.api as smf

from .ols_helper import MetricsResult, OLSResults, compute_metrics, design_matrix_from_model, rhs_for


logger = logging.getLogger(__name__)

_HIGHER_IS_BETTER = {"adj_r2", "r2"}


@dataclass(frozen=True)
class SelectionStep:
    """Single step in a model selection path.

    Stores the fitted model and metrics for a particular term set. This keeps
    the selection logic independent from plotting/reporting and enables later
    inspection of how the criterion evolves across steps.
    """

    step: int
    terms: list[str]
    rhs: str
    model: OLSResults
    metrics: MetricsResult
    cp: float | None = None


@dataclass(frozen=True)
class SelectionPathResult:
    """Results from a greedy model-selection path.

    The path is a sequence of models produced by forward, backward, or stepwise
    selection using a chosen criterion (AIC by default). Each step trades off
    goodness of fit against model complexity. Because selection is data-adaptive,
    results should be interpreted with caution: in-sample fit metrics tend to be
    optimistic and do not account for selection uncertainty.
    """

    steps: list[SelectionStep]
    criterion: str
    direction: str
    best_index: int

    def best_step(self) -> SelectionStep:
        """Return the best step according to the selection criterion."""
        return self.steps[self.best_index]

    def summary_table(self) -> pd.DataFrame:
        """Return a tidy summary table for plotting and reporting."""
        rows: list[dict[str, float | int | str | None]] = []
        for step in self.steps:
            rows.append(
                {
                    "step": step.step,
                    "n_terms": len(step.terms),
                    "rhs": step.rhs,
                    "aic": step.metrics.aic,
                    "bic": step.metrics.bic,
                    "adj_r2": step.metrics.adj_r2,
                    "rmse": step.metrics.rmse,
                    "cv_rmse": step.metrics.cv_rmse,
                    "cp": step.cp,
                },
            )
        return pd.DataFrame(rows).set_index("step")

    def plot(self, **kwargs: object):
        """Plot the criterion along the path."""
        from surv_tlbx.plotting.selection_plots import plot_selection_path  # noqa: PLC0415

        return plot_selection_path(self, **kwargs)


def compute_mallows_cp(full_model: OLSResults, model: OLSResults) -> float:
    r"""Compute Mallows' :math:`C_p` for a candidate model.

    Uses the variance estimate from the full model to penalize model size:

    :math:`C_p = \frac{SSE_p}{MSE_{full}} - (n - 2p)`

    where :math:`p` is the number of parameters including the intercept. A
    model without substantial bias yields :math:`C_p \approx p`; the full model
    has :math:`C_p = p` exactly.
    """
    n = float(model.nobs)
    p = float(model.df_model) + 1.0
    rss = float(np.sum(model.resid**2))
    sigma2 = float(full_model.mse_resid)
    return rss / sigma2 + 2.0 * p - n


def compute_press(model: OLSResults) -> float:
    r"""Prediction sum of squares :math:`\sum_i (e_i / (1 - h_{ii}))^2`.

    Each term is the squared leave-one-out prediction error, obtained from a
    single fit through the leverages.
    """
    leverage = np.asarray(model.get_influence().hat_matrix_diag)
    resid = np.asarray(model.resid)
    return float(np.sum((resid / (1.0 - leverage)) ** 2))


def _complete_cases(data: pd.DataFrame, target_col: str, terms: list[str]) -> pd.DataFrame:
    # Patsy drops incomplete rows for the widest formula; reuse exactly those rows.
    widest = smf.ols(f"{target_col} ~ {rhs_for(terms)}", data=data)
    frame = data.loc[widest.data.row_labels]
    dropped = len(data) - len(frame)
    if dropped:
        logger.info("Model selection uses %d complete observations (%d dropped).", len(frame), dropped)
    return frame


def selection_path(  # noqa: C901, PLR0912, PLR0913, PLR0915
    data: pd.DataFrame,
    *,
    target_col: str,
    base_terms: list[str] | None,
    candidates: list[str],
    direction: Literal["forward", "backward", "stepwise"] = "forward",
    criterion: Literal["aic", "bic", "cp", "adj_r2", "cv_rmse"] = "aic",
    threshold: float = 1.0,
    exhaustive: bool = False,
    cv_folds: int | None = None,
    shuffle_cv: bool = False,
    random_state: int | None = None,
) -> SelectionPathResult:
    """Run a greedy selection procedure and return the full path.

    Args:
        data: DataFrame containing target and candidate predictors.
        target_col: Name of the response variable.
        base_terms: Terms that are always included (e.g., confounders).
        candidates: Candidate terms to add/remove during selection.
        direction: "forward", "backward", or "stepwise" (both directions).
        criterion: Selection criterion. Lower is better except for adj_r2.
        threshold: Minimum improvement required to accept a step.
        exhaustive: Keep adding (forward) or removing (backward) the best term
            even without improvement, so the path visits every model size.
            The best step is still chosen by the criterion.
        cv_folds: Optional K-folds for computing CV RMSE at each step.
        shuffle_cv: Whether to shuffle during CV.
        random_state: Random seed used when shuffling CV splits.

    Returns:
        SelectionPathResult containing all visited steps.

    Notes:
        Selection is a greedy heuristic and does not guarantee a global optimum;
        :func:`best_subsets` enumerates every subset instead.
    """
    direction = direction.lower()
    criterion = criterion.lower()
    if direction not in {"forward", "backward", "stepwise"}:
        raise ValueError("direction must be one of: forward, backward, stepwise")
    if criterion not in {"aic", "bic", "cp", "adj_r2", "cv_rmse"}:
        raise ValueError("criterion must be one of: aic, bic, cp, adj_r2, cv_rmse")
    if criterion == "cv_rmse" and (cv_folds is None or cv_folds <= 1):
        raise ValueError("cv_folds must be > 1 when using criterion='cv_rmse'")
    if exhaustive and direction == "stepwise":
        raise ValueError("exhaustive paths are only defined for forward or backward selection")

    base_terms = list(base_terms or [])
    candidates = [term for term in candidates if term not in base_terms]
    data = _complete_cases(data, target_col, [*base_terms, *candidates])

    full_model = None
    if criterion == "cp":
        full_rhs = rhs_for([*base_terms, *candidates])
        full_model = smf.ols(f"{target_col} ~ {full_rhs}", data=data).fit()

    def build_step(terms: list[str], step_index: int) -> SelectionStep:
        rhs = rhs_for(terms)
        model = smf.ols(f"{target_col} ~ {rhs}", data=data).fit()
        design_matrix = design_matrix_from_model(model)
        y = pd.Series(model.model.endog, index=design_matrix.index, name=getattr(model.model, "endog_names", None))
        y_pred = pd.Series(model.fittedvalues, index=design_matrix.index)
        metrics = compute_metrics(
            model=model,
            y_true=y,
            y_pred=y_pred,
            design_matrix=design_matrix,
            cv_folds=cv_folds,
            shuffle_cv=shuffle_cv,
            random_state=random_state,
        )
        cp = compute_mallows_cp(full_model, model) if full_model is not None else None
        return SelectionStep(step=step_index, terms=list(terms), rhs=rhs, model=model, metrics=metrics, cp=cp)

    def score(step: SelectionStep) -> float:  # noqa: C901
        if criterion == "aic":
            if step.metrics.aic is None:
                raise ValueError("AIC not available for this model.")
            return float(step.metrics.aic)
        if criterion == "bic":
            if step.metrics.bic is None:
                raise ValueError("BIC not available for this model.")
            return float(step.metrics.bic)
        if criterion == "cp":
            if step.cp is None:
                raise ValueError("Cp not computed for this model.")
            return float(step.cp)
        if criterion == "adj_r2":
            if step.metrics.adj_r2 is None:
                raise ValueError("Adjusted R^2 not available for this model.")
            return float(step.metrics.adj_r2)
        if criterion == "cv_rmse":
            if step.metrics.cv_rmse is None:
                raise ValueError("CV RMSE not computed for this model.")
            return float(step.metrics.cv_rmse)
        raise ValueError(f"Unsupported criterion '{criterion}'.")

    def better(candidate: float, current: float) -> bool:
        if criterion == "adj_r2":
            return candidate > current + threshold
        return candidate < current - threshold

    steps: list[SelectionStep] = []
    current_terms = [*base_terms, *candidates] if direction == "backward" else base_terms.copy()

    steps.append(build_step(current_terms, step_index=0))

    while True:
        candidate_steps: list[SelectionStep] = []
        if direction in {"forward", "stepwise"}:
            for term in candidates:
                if term in current_terms:
                    continue
                candidate_steps.append(build_step([*current_terms, term], step_index=-1))
        if direction in {"backward", "stepwise"} and len(current_terms) > len(base_terms):
            for term in list(current_terms):
                if term in base_terms:
                    continue
                reduced_terms = [t for t in current_terms if t != term]
                candidate_steps.append(build_step(reduced_terms, step_index=-1))

        if not candidate_steps:
            break

        best_candidate = max(candidate_steps, key=score) if criterion == "adj_r2" else min(candidate_steps, key=score)

        if exhaustive or better(score(best_candidate), score(steps[-1])):
            current_terms = best_candidate.terms
            steps.append(replace(best_candidate, step=len(steps)))
        else:
            break

    scores = [score(step) for step in steps]
    best_index = int(np.argmax(scores)) if criterion == "adj_r2" else int(np.argmin(scores))
    logger.debug(
        "%s selection by %s visited %d steps; best: %s",
        direction,
        criterion,
        len(steps),
        steps[best_index].rhs,
    )

    return SelectionPathResult(
        steps=steps,
        criterion=criterion,
        direction=direction,
        best_index=best_index,
    )


def forward_selection(  # noqa: PLR0913
    data: pd.DataFrame,
    *,
    target_col: str,
    base_terms: list[str] | None,
    candidates: list[str],
    criterion: Literal["aic", "bic", "cp", "adj_r2", "cv_rmse"] = "aic",
    threshold: float = 1.0,
    exhaustive: bool = False,
    cv_folds: int | None = None,
    shuffle_cv: bool = False,
    random_state: int | None = None,
) -> SelectionPathResult:
    """Convenience wrapper for forward selection."""
    return selection_path(
        data,
        target_col=target_col,
        base_terms=base_terms,
        candidates=candidates,
        direction="forward",
        criterion=criterion,
        threshold=threshold,
        exhaustive=exhaustive,
        cv_folds=cv_folds,
        shuffle_cv=shuffle_cv,
        random_state=random_state,
    )


def backward_selection(  # noqa: PLR0913
    data: pd.DataFrame,
    *,
    target_col: str,
    base_terms: list[str] | None,
    candidates: list[str],
    criterion: Literal["aic", "bic", "cp", "adj_r2", "cv_rmse"] = "aic",
    threshold: float = 1.0,
    exhaustive: bool = False,
    cv_folds: int | None = None,
    shuffle_cv: bool = False,
    random_state: int | None = None,
) -> SelectionPathResult:
    """Convenience wrapper for backward elimination."""
    return selection_path(
        data,
        target_col=target_col,
        base_terms=base_terms,
        candidates=candidates,
        direction="backward",
        criterion=criterion,
        threshold=threshold,
        exhaustive=exhaustive,
        cv_folds=cv_folds,
        shuffle_cv=shuffle_cv,
        random_state=random_state,
    )


def best_subsets(
    data: pd.DataFrame,
    *,
    target_col: str,
    candidates: list[str],
    max_size: int | None = None,
) -> pd.DataFrame:
    r"""Fit every non-empty subset of ``candidates`` and tabulate the criteria.

    Mallows' :math:`C_p` uses :math:`MSE` of the model with all candidates.

    Returns:
        DataFrame sorted by ``n_terms`` then ``cp`` with columns ``n_terms``,
        ``p`` (coefficients incl. intercept), ``terms`` (tuple), ``rhs``,
        ``sse``, ``r2``, ``adj_r2``, ``cp``, ``aic``, ``bic``, ``press``.
    """
    if not candidates:
        raise ValueError("best_subsets needs at least one candidate term")
    max_size = len(candidates) if max_size is None else min(max_size, len(candidates))
    data = _complete_cases(data, target_col, candidates)
    full_model = smf.ols(f"{target_col} ~ {rhs_for(candidates)}", data=data).fit()

    rows = []
    for size in range(1, max_size + 1):
        for subset in combinations(candidates, size):
            rhs = rhs_for(list(subset))
            model = smf.ols(f"{target_col} ~ {rhs}", data=data).fit()
            rows.append(
                {
                    "n_terms": size,
                    "p": size + 1,
                    "terms": tuple(subset),
                    "rhs": rhs,
                    "sse": float(model.ssr),
                    "r2": float(model.rsquared),
                    "adj_r2": float(model.rsquared_adj),
                    "cp": compute_mallows_cp(full_model, model),
                    "aic": float(model.aic),
                    "bic": float(model.bic),
                    "press": compute_press(model),
                },
            )
    logger.debug("Enumerated %d subsets of %s", len(rows), candidates)
    return pd.DataFrame(rows).sort_values(["n_terms", "cp"]).reset_index(drop=True)


def best_per_size(
    table: pd.DataFrame,
    criterion: Literal["cp", "adj_r2", "r2", "aic", "bic", "press", "sse"] = "adj_r2",
) -> pd.DataFrame:
    """Keep the best subset of each size from a :func:`best_subsets` table."""
    if criterion not in table.columns:
        raise KeyError(f"Unknown criterion '{criterion}'")
    ascending = criterion not in _HIGHER_IS_BETTER
    return (
        table.sort_values(criterion, ascending=ascending)
        .groupby("n_terms", sort=True)
        .head(1)
        .sort_values("n_terms")
        .reset_index(drop=True)
    )


def recommend_subset(
    table: pd.DataFrame,
    *,
    cp_tolerance: float = 1.0,
    adj_r2_tolerance: float = 0.01,
) -> pd.Series:
    r"""Pick the smallest subset that is unbiased by :math:`C_p` and near-best by adjusted :math:`R^2`.

    A row qualifies when :math:`C_p \le p + \text{cp\_tolerance}` and its
    adjusted :math:`R^2` lies within ``adj_r2_tolerance`` of the table maximum.
    Among qualifying rows the fewest terms win, then the highest adjusted
    :math:`R^2`. With no qualifying row the highest adjusted :math:`R^2` is
    returned and a warning is logged.
    """
    max_adj = float(table["adj_r2"].max())
    ok = table.loc[(table["cp"] <= table["p"] + cp_tolerance) & (table["adj_r2"] >= max_adj - adj_r2_tolerance)]
    if ok.empty:
        logger.warning(
            "No subset satisfies Cp <= p + %.2f and adj R^2 within %.3f of %.3f; using the best adj R^2.",
            cp_tolerance,
            adj_r2_tolerance,
            max_adj,
        )
        return table.loc[table["adj_r2"].idxmax()]
    return ok.sort_values(["n_terms", "adj_r2"], ascending=[True, False]).iloc[0]


__all__ = [
    "SelectionPathResult",
    "SelectionStep",
    "backward_selection",
    "best_per_size",
    "best_subsets",
    "compute_mallows_cp",
    "compute_press",
    "forward_selection",
    "recommend_subset",
    "selection_path",
]
