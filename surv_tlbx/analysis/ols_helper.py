"""OLS fitting, nested-model comparison, and residual diagnostics.

The helpers in this module focus on classical linear regression with ordinary
least squares (OLS) and an intercept. They compute standard fit metrics
(:math:`R^2`, adjusted :math:`R^2`, RMSE, AIC/BIC), run the usual assumption
checks (residual normality, constant variance, independence, collinearity) and
compare nested models with the partial F-test. Tests are *diagnostic* rather
than definitive: small p-values indicate evidence against the null (e.g.,
heteroscedasticity or non-normal residuals), but results are sensitive to
sample size and should be read alongside residual plots.

Designs whose columns are linearly dependent are rejected with
:class:`~surv_tlbx.exceptions.ModelNotIdentifiableError` instead of returning
the minimum-norm (pseudo-inverse) solution statsmodels would otherwise give.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
import statsmodels.api as sm
import statsmodels.formula.api as smf
from patsy import build_design_matrices
from sklearn.linear_model import LinearRegression
from sklearn.metrics import (
    mean_absolute_error,
    mean_absolute_percentage_error,
    mean_squared_error,
    r2_score,
)
from sklearn.model_selection import KFold, cross_val_score
from statsmodels.graphics.regressionplots import influence_plot
from statsmodels.stats import diagnostic as sm_diagnostic
from statsmodels.stats.outliers_influence import variance_inflation_factor
from statsmodels.stats.stattools import durbin_watson, jarque_bera

from surv_tlbx.config import DEFAULT_THRESHOLDS
from surv_tlbx.data import SUCol
from surv_tlbx.exceptions import ModelNotIdentifiableError

from .normality import NormalityTestResult, normality_test


if TYPE_CHECKING:
    from matplotlib.axes import Axes
    from matplotlib.figure import Figure

    from .influence import InfluenceResult


logger = logging.getLogger(__name__)

OLSResults = sm.regression.linear_model.RegressionResultsWrapper

_INTERCEPT_COLS = ("Intercept", "const")


def rhs_for(terms: Sequence[str]) -> str:
    """Join terms into a Patsy right-hand side (``"1"`` for the intercept-only model)."""
    return " + ".join(terms) if terms else "1"


def polynomial_terms(predictors: Iterable[str], degree: int = 2) -> list[str]:
    """Expand each predictor into its powers up to ``degree`` (no interactions)."""
    if degree < 1:
        raise ValueError(f"degree must be >= 1, got {degree}")
    terms: list[str] = []
    for pred in predictors:
        terms.append(pred)
        terms.extend(f"I({pred} ** {power})" for power in range(2, degree + 1))
    return terms


@dataclass(frozen=True)
class MetricsResult:
    r"""Fit and generalization metrics for OLS models.

    Key equations (with :math:`n` observations and :math:`k` predictors):

    - :math:`R^2 = 1 - \frac{SS_{res}}{SS_{tot}}`
    - :math:`\bar{R}^2 = 1 - (1 - R^2)\frac{n-1}{n-k-1}`
    - :math:`\text{RMSE} = \sqrt{\frac{1}{n}\sum_i (y_i - \hat{y}_i)^2}`
    - :math:`\text{AIC} = 2k - 2\log L`, :math:`\text{BIC} = k\log n - 2\log L`

    Information criteria are only comparable across models fit on the same
    response scale and rows (lower is better).
    """

    r2: float
    adj_r2: float | None
    rmse: float
    mae: float
    mape: float | None
    """Mean absolute percentage error (fraction); ``None`` when any :math:`y_i = 0`."""
    aic: float | None
    bic: float | None
    loglik: float | None
    n_obs: float | None
    cv_scores: list[float] | None
    """Raw cross-validation RMSE scores (if enabled)."""
    cv_rmse: float | None

    def __repr__(self) -> str:
        def fmt(value: float | None, decimals: int = 3) -> str:
            if value is None:
                return "nan"
            return f"{value:.{decimals}f}"

        fit_block = (
            "Fit["
            f"r2={fmt(self.r2)}, "
            f"adj_r2={fmt(self.adj_r2)}, "
            f"rmse={fmt(self.rmse)}, "
            f"mae={fmt(self.mae)}, "
            f"aic={fmt(self.aic)}, "
            f"bic={fmt(self.bic)}"
            "]"
        )
        cv_block = ""
        if self.cv_rmse is not None or self.cv_scores is not None:
            folds = len(self.cv_scores) if self.cv_scores is not None else 0
            cv_block = f" CV[rmse={fmt(self.cv_rmse)}, folds={folds}]"
        n_obs = f" n={int(self.n_obs)}" if self.n_obs is not None else ""
        return f"MetricsResult({fit_block}{cv_block}{n_obs})"


@dataclass(frozen=True)
class ResidualDiagnostics:
    """Residual normality and constant-variance checks for one fitted model.

    - Normality: Shapiro-Wilk on the raw residuals.
    - Constant variance: Breusch-Pagan, i.e. an auxiliary regression of the
      squared residuals on the regressors (or on the fitted values). Its LM
      statistic is asymptotically :math:`\\chi^2`; the F form tests whether the
      auxiliary regression explains any variance at all.

    Both tests use ``alpha``; ``p < alpha`` rejects the assumption.
    """

    normality: NormalityTestResult
    breusch_pagan_statistic: float
    breusch_pagan_pvalue: float
    breusch_pagan_fvalue: float
    breusch_pagan_f_pvalue: float
    alpha: float
    het_regressors: str = "predictors"

    @property
    def normality_pvalue(self) -> float:
        return self.normality.p_value

    @property
    def residuals_normal(self) -> bool:
        return self.normality.is_normal

    @property
    def homoscedastic(self) -> bool:
        return not self.breusch_pagan_pvalue < self.alpha

    @property
    def passes(self) -> bool:
        """Both residual normality and constant variance are retained."""
        return self.residuals_normal and self.homoscedastic

    @property
    def min_pvalue(self) -> float:
        """Smaller of the two p-values (the binding assumption)."""
        return min(self.normality_pvalue, self.breusch_pagan_pvalue)

    def __repr__(self) -> str:
        def decision(ok: bool) -> str:
            return "OK" if ok else "FAIL"

        return (
            "ResidualDiagnostics("
            f"Shapiro(stat={self.normality.statistic:.3f}, p={self.normality_pvalue:.4f}, "
            f"{decision(self.residuals_normal)}); "
            f"BP(stat={self.breusch_pagan_statistic:.2f}, p={self.breusch_pagan_pvalue:.4f}, "
            f"{decision(self.homoscedastic)}); alpha={self.alpha})"
        )


@dataclass(frozen=True)
class AssumptionCheckResult:
    """Regression assumption diagnostics with canonical test references.

    - Normality of residuals: Shapiro-Wilk and Jarque-Bera.
    - Homoscedasticity: Breusch-Pagan and White tests.
    - Independence (autocorrelation in observation order): Durbin-Watson.
    - Collinearity: condition number and variance inflation factors (VIF).
    - Influence: leverage and Cook's distance.
    """

    residual: ResidualDiagnostics
    jarque_bera_statistic: float
    jarque_bera_pvalue: float
    white_statistic: float
    """White LM statistic; ``NaN`` when the auxiliary design is too wide for the sample."""
    white_pvalue: float
    durbin_watson: float
    r"""Durbin-Watson statistic in :math:`[0, 4]`; values near 2 indicate no autocorrelation."""
    condition_number: float
    vif: pd.Series
    r"""Variance Inflation Factor per predictor: :math:`VIF_j = 1/(1 - R_j^2)`."""
    leverage: np.ndarray
    cooks_distance: np.ndarray

    @property
    def shapiro_pvalue(self) -> float:
        return self.residual.normality_pvalue

    @property
    def breusch_pagan_pvalue(self) -> float:
        return self.residual.breusch_pagan_pvalue

    def __repr__(self) -> str:
        alpha = self.residual.alpha

        def fmt(value: float, decimals: int = 3) -> str:
            return f"{value:.{decimals}f}"

        def decision(p_value: float) -> str:
            if np.isnan(p_value):
                return "n/a"
            return "FAIL" if p_value < alpha else "OK"

        normality = (
            "Normality: "
            f"Shapiro(p={fmt(self.shapiro_pvalue)}, {decision(self.shapiro_pvalue)}); "
            f"JB(stat={fmt(self.jarque_bera_statistic, 2)}, p={fmt(self.jarque_bera_pvalue)}, "
            f"{decision(self.jarque_bera_pvalue)})"
        )
        homoscedasticity = (
            "Homoscedasticity: "
            f"BP(p={fmt(self.breusch_pagan_pvalue)}, {decision(self.breusch_pagan_pvalue)}); "
            f"White(p={fmt(self.white_pvalue)}, {decision(self.white_pvalue)})"
        )
        dw_status = "OK" if 1.5 <= self.durbin_watson <= 2.5 else "WARN"
        autocorr = f"Autocorrelation: Durbin-Watson={fmt(self.durbin_watson, 2)} ({dw_status})"
        max_vif = float(self.vif.max()) if not self.vif.empty else float("nan")
        collinearity = f"Collinearity: cond#={fmt(self.condition_number, 2)}, max_vif={fmt(max_vif, 2)}"

        n_obs = len(self.cooks_distance)
        cooks_exceed = int(np.sum(self.cooks_distance > 4 / n_obs)) if n_obs else 0
        influence = (
            "Influence: "
            f"max_leverage={fmt(float(np.max(self.leverage)))}, "
            f"max_cook={fmt(float(np.max(self.cooks_distance)))}, "
            f"cooks>4/n={cooks_exceed}"
        )
        return (
            "AssumptionCheckResult(\n"
            f"  {normality}\n"
            f"  {homoscedasticity}\n"
            f"  {autocorr}\n"
            f"  {collinearity}\n"
            f"  {influence}\n"
            ")"
        )


@dataclass(frozen=True)
class RegressionResult:
    """Packaged OLS fit, metrics, and diagnostics for reporting.

    Encapsulates the fitted statsmodels result, the design matrix used for the
    fit (rows indexed by observation ID), residual diagnostics, and
    convenience plotting helpers.
    """

    model: OLSResults
    design_matrix: pd.DataFrame
    y: pd.Series
    metrics: MetricsResult
    assumptions: AssumptionCheckResult
    residuals: pd.Series
    predictions: pd.Series

    def summary(self):
        """Return the statsmodels summary object."""
        return self.model.summary()

    def print_summary(self) -> None:
        """Print the statsmodels summary to stdout."""
        print(self.model.summary())  # noqa: T201

    @property
    def fitted(self) -> pd.Series:
        """Alias for fitted values aligned with ``residuals``."""
        return self.predictions

    @property
    def target_col(self) -> str:
        return str(self.model.model.endog_names)

    @property
    def terms(self) -> list[str]:
        """Regressor names without the intercept."""
        return [col for col in self.design_matrix.columns if col not in _INTERCEPT_COLS]

    @property
    def coefficients(self) -> pd.DataFrame:
        """Estimates with standard errors, t statistics, p-values and 95% CIs."""
        ci = self.model.conf_int()
        return pd.DataFrame(
            {
                "estimate": self.model.params,
                "std_error": self.model.bse,
                "t_value": self.model.tvalues,
                "p_value": self.model.pvalues,
                "ci_lower": ci.iloc[:, 0],
                "ci_upper": ci.iloc[:, 1],
            },
        )

    @property
    def n_obs(self) -> int:
        return int(self.model.nobs)

    @property
    def n_params(self) -> int:
        """Estimated coefficients including the intercept (``p``)."""
        return int(self.design_matrix.shape[1])

    @property
    def df_resid(self) -> int:
        """Residual degrees of freedom ``n - p``."""
        return int(self.model.df_resid)

    @property
    def sse(self) -> float:
        """Residual (error) sum of squares."""
        return float(self.model.ssr)

    @property
    def ssr(self) -> float:
        """Regression (explained) sum of squares."""
        return float(self.model.ess)

    @property
    def sst(self) -> float:
        """Total sum of squares around the mean."""
        return float(self.model.centered_tss)

    @property
    def r2(self) -> float:
        return self.metrics.r2

    @property
    def aic(self) -> float:
        return float("nan") if self.metrics.aic is None else self.metrics.aic

    @property
    def adj_r2(self) -> float:
        return float("nan") if self.metrics.adj_r2 is None else self.metrics.adj_r2

    @property
    def rmse(self) -> float:
        return self.metrics.rmse

    @property
    def vif(self) -> pd.DataFrame:
        """Variance-inflation factors as a tidy DataFrame."""
        return self.assumptions.vif.rename_axis("feature").reset_index(name="vif")

    @property
    def max_leverage(self) -> float:
        return float(np.max(self.assumptions.leverage))

    @property
    def max_cooks(self) -> float:
        return float(np.max(self.assumptions.cooks_distance))

    def influence(self, **kwargs: object) -> InfluenceResult:
        """Per-observation influence measures (see :class:`~surv_tlbx.analysis.influence.InfluenceAnalyzer`)."""
        from surv_tlbx.analysis.influence import InfluenceAnalyzer  # noqa: PLC0415

        return InfluenceAnalyzer(self, **kwargs).fit().result()

    # ------------------------------------------------------------------ plotting shortcuts
    def plot_residuals_vs_fitted(self, **kwargs: object) -> Axes:
        r"""Plot residuals against fitted values.

        How to interpret:
            - Desired: a random cloud centered around 0 with roughly constant
              vertical spread.
            - Curvature in the smooth: nonlinearity or a wrong response scale.
            - Funnel/megaphone spread: heteroscedasticity.
        """
        from surv_tlbx.plotting.regression_plots import plot_residuals_vs_fitted  # noqa: PLC0415

        return plot_residuals_vs_fitted(self, **kwargs)

    def plot_scale_location(self, **kwargs: object) -> Axes:
        """Plot :math:`\\sqrt{|r_i|}` against fitted values to assess homoscedasticity."""
        from surv_tlbx.plotting.regression_plots import plot_scale_location  # noqa: PLC0415

        return plot_scale_location(self, **kwargs)

    def plot_qq(self, **kwargs: object) -> Axes:
        """Plot a normal Q-Q plot of studentized residuals.

        Points close to the 45-degree line suggest normal residuals; S-shapes
        indicate skewness, deviations at the ends heavy or light tails.
        """
        from surv_tlbx.plotting.regression_plots import plot_qq  # noqa: PLC0415

        return plot_qq(self, **kwargs)

    def plot_influence(self, **kwargs: object) -> Figure:
        """Plot leverage vs studentized residuals, marker size by Cook's distance."""
        from surv_tlbx.plotting.regression_plots import plot_influence  # noqa: PLC0415

        return plot_influence(self, **kwargs)

    def plot_residual_diags(
        self,
        predictors: list[str] | None = None,
        *,
        max_cols: int = 4,
        figsize: tuple[int, int] = (12, 10),
        pred_figsize: tuple[int, int] | None = None,
        show: bool = True,
    ) -> tuple[Figure, Figure | None, Figure]:
        """Plot a standard suite of residual diagnostics.

        The main 2x2 grid includes residuals vs fitted, scale-location, a
        normal Q-Q plot of studentized residuals and the residual histogram. A
        second figure shows residuals vs each predictor, and a third is the
        statsmodels influence plot.
        """
        resid = self.residuals
        fitted = self.fitted
        student_resid = self.model.get_influence().resid_studentized_internal

        fig_main, axes = plt.subplots(2, 2, figsize=figsize)
        sns.residplot(x=fitted, y=resid, lowess=True, ax=axes[0, 0], color="tab:blue")
        axes[0, 0].set_title("Residuals vs Fitted")
        axes[0, 0].set_xlabel("Fitted values")
        axes[0, 0].set_ylabel("Residuals")

        sns.scatterplot(x=fitted, y=np.sqrt(np.abs(student_resid)), ax=axes[0, 1], color="tab:orange")
        axes[0, 1].set_title("Scale-Location (sqrt|studentized residuals|)")
        axes[0, 1].set_ylabel("sqrt(|studentized resid|)")

        sm.qqplot(student_resid, line="45", fit=True, ax=axes[1, 0])
        axes[1, 0].set_title("QQ plot (studentized residuals)")

        sns.histplot(resid, kde=True, ax=axes[1, 1], color="tab:green")
        axes[1, 1].set_title("Residual distribution")
        axes[1, 1].set_xlabel("Residuals")
        fig_main.tight_layout()

        all_preds = self.terms
        if predictors is None:
            preds_to_plot = all_preds
        else:
            preds_to_plot = [p for p in predictors if p in all_preds]
        fig_pred: Figure | None = None
        if preds_to_plot:
            n_cols = max(1, min(max_cols, len(preds_to_plot)))
            n_rows = int(np.ceil(len(preds_to_plot) / n_cols))
            if pred_figsize is None:
                pred_figsize = (max(8, int(3.5 * n_cols)), max(3, int(3.0 * n_rows)))
            fig_pred, pred_axes = plt.subplots(n_rows, n_cols, figsize=pred_figsize)
            axes_list = np.atleast_1d(pred_axes).ravel()
            for ax, pred in zip(axes_list, preds_to_plot, strict=False):
                sns.scatterplot(x=self.design_matrix[pred], y=resid, ax=ax)
                ax.axhline(0, color="black", linewidth=1, linestyle="--")
                ax.set_title(f"Residuals vs {pred}")
            for ax in axes_list[len(preds_to_plot) :]:
                ax.set_visible(False)
            fig_pred.tight_layout()

        fig_influence = influence_plot(self.model, criterion="cooks")
        fig_influence.tight_layout()
        if show:
            plt.show()
        return fig_main, fig_pred, fig_influence


def check_identifiable(exog: np.ndarray, exog_names: Sequence[str] | None = None) -> None:
    """Fail fast when the design matrix does not have full column rank.

    Raises:
        ModelNotIdentifiableError: If ``rank(X) < p`` or ``n <= p``.
    """
    exog = np.asarray(exog, dtype=float)
    n_obs, n_params = exog.shape
    if n_obs <= n_params:
        raise ModelNotIdentifiableError(
            f"Model not identifiable: {n_obs} observations for {n_params} coefficients "
            "(need more observations than coefficients).",
            rank=None,
            expected_rank=n_params,
            n_obs=n_obs,
        )
    rank = int(np.linalg.matrix_rank(exog))
    if rank < n_params:
        names = f" {list(exog_names)}" if exog_names is not None else ""
        raise ModelNotIdentifiableError(
            f"Model not identifiable: design matrix{names} has rank {rank} < {n_params} columns "
            "(linearly dependent regressors).",
            rank=rank,
            expected_rank=n_params,
            n_obs=n_obs,
        )


def fit_ols_formula(
    df: pd.DataFrame,
    *,
    rhs: str,
    target_col: str = SUCol.TARGET,
    cv_folds: int | None = None,
    shuffle_cv: bool = False,
    random_state: int | None = None,
    alpha: float | None = None,
) -> RegressionResult:
    """Fit OLS using a Patsy formula and return a full diagnostics bundle.

    Uses ``statsmodels.formula.api.ols`` with ``"{target} ~ {rhs}"``; rows with
    a missing value in any referenced column are dropped listwise.

    Raises:
        ModelNotIdentifiableError: If the design is rank deficient.
    """
    ols = smf.ols(f"{target_col} ~ {rhs}", data=df)
    check_identifiable(ols.exog, ols.exog_names)
    model = ols.fit()
    logger.debug("Fitted %s ~ %s on %d observations", target_col, rhs, int(model.nobs))
    return diagnose_ols(
        model,
        cv_folds=cv_folds,
        shuffle_cv=shuffle_cv,
        random_state=random_state,
        alpha=alpha,
    )


def fit_ols_design(
    design_matrix_Xy: pd.DataFrame,
    *,
    target_col: str = SUCol.TARGET,
    add_intercept: bool | None = None,
    cv_folds: int | None = None,
    shuffle_cv: bool = False,
    random_state: int | None = None,
    alpha: float | None = None,
) -> RegressionResult:
    """Fit OLS on a design matrix (including target) and return diagnostics.

    Args:
        design_matrix_Xy: DataFrame containing predictors and the target column.
        target_col: Name of the target column contained in ``design_matrix_Xy``.
        add_intercept: Whether to add an intercept column. If ``None``, the
            function adds one only when no intercept column is present.
    """
    frame = design_matrix_Xy.dropna(axis=0, how="any")
    x_matrix = frame.drop(columns=[target_col]).copy()
    y = frame[target_col].copy()
    if add_intercept is None:
        add_intercept = not any(col in x_matrix.columns for col in _INTERCEPT_COLS)
    if add_intercept:
        x_matrix = sm.add_constant(x_matrix, has_constant="add")

    check_identifiable(x_matrix.to_numpy(dtype=float), list(x_matrix.columns))
    model = sm.OLS(y.astype(float), x_matrix.astype(float)).fit()
    return diagnose_ols(
        model,
        cv_folds=cv_folds,
        shuffle_cv=shuffle_cv,
        random_state=random_state,
        alpha=alpha,
    )


def diagnose_ols(
    model: OLSResults,
    *,
    cv_folds: int | None = None,
    shuffle_cv: bool = False,
    random_state: int | None = None,
    alpha: float | None = None,
) -> RegressionResult:
    """Compute full diagnostics for an already-fitted OLS model."""
    design_matrix = design_matrix_from_model(model)
    predictions = pd.Series(np.asarray(model.fittedvalues), index=design_matrix.index, name="fitted")
    residuals = pd.Series(np.asarray(model.resid), index=design_matrix.index, name="residual")
    y = pd.Series(model.model.endog, index=design_matrix.index, name=getattr(model.model, "endog_names", None))

    metrics = compute_metrics(
        model=model,
        y_true=y,
        y_pred=predictions,
        design_matrix=design_matrix,
        cv_folds=cv_folds,
        shuffle_cv=shuffle_cv,
        random_state=random_state,
    )
    assumptions = compute_assumptions(model=model, design_matrix=design_matrix, alpha=alpha)

    return RegressionResult(
        model=model,
        design_matrix=design_matrix,
        y=y,
        metrics=metrics,
        assumptions=assumptions,
        residuals=residuals,
        predictions=predictions,
    )


def design_matrix_from_model(model: OLSResults) -> pd.DataFrame:
    """Return the fitted design matrix, indexed by the rows used in the fit."""
    row_labels = getattr(getattr(model.model, "data", None), "row_labels", None)
    return pd.DataFrame(model.model.exog, columns=model.model.exog_names, index=row_labels)


def design_matrix_for_data(model: OLSResults, df: pd.DataFrame) -> pd.DataFrame:
    """Build a Patsy design matrix for new data from a formula-fitted model.

    Transformations such as ``I(bcs ** 2)`` are re-applied through the stored
    ``design_info``.

    Raises:
        ValueError: If the model was not fit from a formula.
    """
    design_info = getattr(getattr(model.model, "data", None), "design_info", None)
    if design_info is None:
        raise ValueError("Model has no formula design; cannot build a design matrix for new data.")
    matrices = build_design_matrices([design_info], df, return_type="dataframe")
    return matrices[0]


def _drop_intercept_cols(design_matrix: pd.DataFrame) -> pd.DataFrame:
    cols_to_drop = [col for col in _INTERCEPT_COLS if col in design_matrix.columns]
    return design_matrix.drop(columns=cols_to_drop) if cols_to_drop else design_matrix


def _linear_regression_for_design(design_matrix: pd.DataFrame) -> LinearRegression:
    has_intercept = any(col in design_matrix.columns for col in _INTERCEPT_COLS)
    return LinearRegression(fit_intercept=not has_intercept)


def compute_vif(design_matrix: pd.DataFrame) -> pd.Series:
    r"""Compute VIF per regressor (intercept excluded).

    :math:`VIF_j = \frac{1}{1 - R_j^2}`, where :math:`R_j^2` comes from regressing
    predictor :math:`j` on all other predictors *and an intercept*. The
    intercept is added when missing so that the auxiliary :math:`R^2` is the
    usual centred one. A single regressor has VIF 1.0.
    """
    x = _drop_intercept_cols(design_matrix)
    if x.shape[1] == 0:
        return pd.Series(dtype=float)
    if x.shape[1] == 1:
        return pd.Series({x.columns[0]: 1.0})
    exog = sm.add_constant(x.astype(float), has_constant="add")
    return pd.Series(
        {col: float(variance_inflation_factor(exog.values, idx)) for idx, col in enumerate(exog.columns) if idx > 0},
    )


def compute_cv_scores(
    design_matrix: pd.DataFrame,
    y: pd.Series,
    *,
    cv_folds: int,
    shuffle: bool = False,
    random_state: int | None = None,
) -> list[float]:
    """Compute cross-validation RMSE scores for a linear regression baseline."""
    lr = _linear_regression_for_design(design_matrix)
    splitter = KFold(
        n_splits=cv_folds,
        shuffle=shuffle,
        random_state=(random_state if shuffle else None),
    )
    scores = cross_val_score(
        lr,
        design_matrix,
        y,
        cv=splitter,
        scoring="neg_root_mean_squared_error",
        error_score="raise",
    )
    return list(-np.asarray(scores))


def compute_metrics(
    model: OLSResults,
    y_true: pd.Series,
    y_pred: pd.Series,
    design_matrix: pd.DataFrame,
    *,
    cv_folds: int | None = None,
    shuffle_cv: bool = False,
    random_state: int | None = None,
) -> MetricsResult:
    """Compute fit, information criteria, and optional CV scores."""
    rmse = float(np.sqrt(mean_squared_error(y_true, y_pred)))
    mae = float(mean_absolute_error(y_true, y_pred))
    mape = None if (y_true == 0).any() else float(mean_absolute_percentage_error(y_true, y_pred))

    cv_scores: list[float] | None = None
    cv_rmse: float | None = None
    if cv_folds and cv_folds > 1:
        cv_scores = compute_cv_scores(
            design_matrix,
            y_true,
            cv_folds=cv_folds,
            shuffle=shuffle_cv,
            random_state=random_state,
        )
        cv_rmse = float(np.asarray(cv_scores).mean())

    return MetricsResult(
        r2=float(r2_score(y_true, y_pred)),
        adj_r2=float(model.rsquared_adj),
        rmse=rmse,
        mae=mae,
        mape=mape,
        aic=float(model.aic),
        bic=float(model.bic),
        loglik=float(model.llf),
        n_obs=float(model.nobs),
        cv_scores=cv_scores,
        cv_rmse=cv_rmse,
    )


def residual_diagnostics(
    model: OLSResults,
    *,
    alpha: float | None = None,
    het_regressors: Literal["predictors", "fitted"] = "predictors",
) -> ResidualDiagnostics:
    """Residual normality (Shapiro-Wilk) and Breusch-Pagan constant-variance test.

    Args:
        model: Fitted statsmodels OLS results.
        alpha: Significance level (defaults to ``DEFAULT_THRESHOLDS.alpha``).
        het_regressors: Regress squared residuals on the model's regressors
            (``"predictors"``) or on the fitted values (``"fitted"``).
    """
    alpha = DEFAULT_THRESHOLDS.alpha if alpha is None else alpha
    resid = np.asarray(model.resid, dtype=float)

    if het_regressors == "fitted":
        exog_het = sm.add_constant(np.asarray(model.fittedvalues, dtype=float), has_constant="add")
    elif het_regressors == "predictors":
        exog_het = np.asarray(model.model.exog, dtype=float)
    else:
        raise ValueError("het_regressors must be one of: predictors, fitted")

    bp_stat, bp_pvalue, bp_fvalue, bp_f_pvalue = sm_diagnostic.het_breuschpagan(resid, exog_het)
    return ResidualDiagnostics(
        normality=normality_test(resid, alpha=alpha),
        breusch_pagan_statistic=float(bp_stat),
        breusch_pagan_pvalue=float(bp_pvalue),
        breusch_pagan_fvalue=float(bp_fvalue),
        breusch_pagan_f_pvalue=float(bp_f_pvalue),
        alpha=alpha,
        het_regressors=het_regressors,
    )


def _white_test(resid: np.ndarray, exog: np.ndarray) -> tuple[float, float]:
    n_obs, n_cols = exog.shape
    n_aux = n_cols * (n_cols + 1) // 2
    if n_aux >= n_obs // 2:
        logger.debug("Skipping White test: %d auxiliary regressors for %d observations", n_aux, n_obs)
        return float("nan"), float("nan")
    white_stat, white_pvalue, _, _ = sm_diagnostic.het_white(resid, exog)
    return float(white_stat), float(white_pvalue)


def compute_assumptions(
    model: OLSResults,
    design_matrix: pd.DataFrame,
    *,
    alpha: float | None = None,
) -> AssumptionCheckResult:
    """Run key regression assumption checks and return structured results."""
    resid = np.asarray(model.resid, dtype=float)
    jb_stat, jb_pvalue, _, _ = jarque_bera(resid)
    white_stat, white_pvalue = _white_test(resid, design_matrix.to_numpy(dtype=float))

    influence = model.get_influence()
    return AssumptionCheckResult(
        residual=residual_diagnostics(model, alpha=alpha),
        jarque_bera_statistic=float(jb_stat),
        jarque_bera_pvalue=float(jb_pvalue),
        white_statistic=white_stat,
        white_pvalue=white_pvalue,
        durbin_watson=float(durbin_watson(resid)),
        condition_number=float(np.linalg.cond(design_matrix.to_numpy(dtype=float))),
        vif=compute_vif(design_matrix),
        leverage=np.asarray(influence.hat_matrix_diag),
        cooks_distance=np.asarray(influence.cooks_distance[0]),
    )


@dataclass(frozen=True)
class NestedComparisonResult:
    r"""Partial F-test of a reduced model nested in a fuller one.

    :math:`F = \frac{(SSE_R - SSE_F)/(df_R - df_F)}{SSE_F/df_F}` with
    :math:`(df_R - df_F,\ df_F)` degrees of freedom. ``p >= alpha`` means the
    dropped terms can be removed without a significant loss of fit.
    """

    f_statistic: float
    p_value: float
    df_num: int
    df_denom: int
    sse_reduced: float
    sse_full: float
    dropped_terms: list[str]
    alpha: float

    @property
    def can_drop(self) -> bool:
        return not self.p_value < self.alpha

    def __repr__(self) -> str:
        verdict = "may be dropped" if self.can_drop else "should be kept"
        return (
            f"NestedComparisonResult(drop {self.dropped_terms}: F({self.df_num}, {self.df_denom})="
            f"{self.f_statistic:.4f}, p={self.p_value:.4f}, alpha={self.alpha} => {verdict})"
        )


def compare_nested(
    reduced: RegressionResult,
    full: RegressionResult,
    *,
    alpha: float | None = None,
) -> NestedComparisonResult:
    """Compare a reduced model against the fuller model it is nested in.

    Raises:
        ValueError: If the models use different responses or rows, or the
            reduced terms are not a strict subset of the full terms.
    """
    alpha = DEFAULT_THRESHOLDS.alpha if alpha is None else alpha
    if reduced.target_col != full.target_col:
        raise ValueError(f"Models use different responses: '{reduced.target_col}' vs '{full.target_col}'")
    if not reduced.design_matrix.index.equals(full.design_matrix.index):
        raise ValueError("Nested comparison requires both models to be fit on the same observations.")

    reduced_terms = set(reduced.design_matrix.columns)
    full_terms = set(full.design_matrix.columns)
    if not reduced_terms < full_terms:
        raise ValueError(
            f"Reduced model terms {sorted(reduced_terms)} are not a strict subset of {sorted(full_terms)}",
        )

    f_statistic, p_value, df_diff = full.model.compare_f_test(reduced.model)
    return NestedComparisonResult(
        f_statistic=float(f_statistic),
        p_value=float(p_value),
        df_num=int(round(df_diff)),
        df_denom=full.df_resid,
        sse_reduced=reduced.sse,
        sse_full=full.sse,
        dropped_terms=[col for col in full.design_matrix.columns if col not in reduced_terms],
        alpha=alpha,
    )


def compare_models(models: dict[str, OLSResults | RegressionResult]) -> pd.DataFrame:
    """Tabulate AIC/BIC, adj R², and RMSE for multiple fitted OLS models.

    Information criteria are only comparable for models fit to the same
    response scale on the same data.
    """
    rows = []
    for name, res in models.items():
        fit = res.model if isinstance(res, RegressionResult) else res
        rows.append(
            {
                "model": name,
                "n_params": int(fit.df_model) + 1,
                "aic": float(fit.aic),
                "bic": float(fit.bic),
                "r2": float(fit.rsquared),
                "adj_r2": float(fit.rsquared_adj),
                "rmse": float(np.sqrt(fit.mse_resid)),
            },
        )
    return pd.DataFrame(rows).sort_values("aic").reset_index(drop=True)


__all__ = [
    "AssumptionCheckResult",
    "MetricsResult",
    "NestedComparisonResult",
    "OLSResults",
    "RegressionResult",
    "ResidualDiagnostics",
    "check_identifiable",
    "compare_models",
    "compare_nested",
    "compute_assumptions",
    "compute_metrics",
    "compute_vif",
    "design_matrix_for_data",
    "design_matrix_from_model",
    "diagnose_ols",
    "fit_ols_design",
    "fit_ols_formula",
    "polynomial_terms",
    "residual_diagnostics",
    "rhs_for",
]
