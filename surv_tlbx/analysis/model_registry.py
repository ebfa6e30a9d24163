"""Named collection of fitted OLS models for side-by-side reporting."""

import logging
from dataclasses import asdict, dataclass, field

import pandas as pd

from ..data import SUCol
from .ols_helper import (
    MetricsResult,
    NestedComparisonResult,
    RegressionResult,
    compare_nested,
    fit_ols_design,
    fit_ols_formula,
)


logger = logging.getLogger(__name__)


@dataclass
class ModelEntry:
    """A fitted model together with the formula and response it was fit on."""

    name: str
    rhs: str | None
    target_col: str
    diag: RegressionResult
    metrics: MetricsResult


@dataclass
class ModelRegistry:
    """Fitted models keyed by name, with nested tests and a comparison table.

    AIC/BIC depend on the response scale, so :meth:`compare` reports
    ``delta_aic`` relative to the best model *of the same response* only.
    """

    alpha: float | None = None
    models: dict[str, ModelEntry] = field(default_factory=dict)

    def add(self, entry: ModelEntry, *, overwrite: bool = False) -> None:
        if entry.name in self.models and not overwrite:
            raise KeyError(f"Model '{entry.name}' already exists in registry.")
        self.models[entry.name] = entry

    def get(self, name: str) -> ModelEntry:
        if name not in self.models:
            raise KeyError(f"Unknown model '{name}'.")
        return self.models[name]

    def for_target(self, target_col: str) -> list[ModelEntry]:
        """Entries fit on ``target_col``, in insertion order."""
        return [entry for entry in self.models.values() if entry.target_col == target_col]

    def fit(
        self,
        df: pd.DataFrame,
        *,
        rhs: str | None = None,
        name: str | None = None,
        target_col: str = SUCol.TARGET,
        cv_folds: int | None = None,
        shuffle_cv: bool = False,
        random_state: int | None = None,
        refit: bool = False,
    ) -> RegressionResult:
        """Fit and register a model; an existing name is returned unchanged unless ``refit``.

        Args:
            df: Frame with the response and every referenced predictor.
            rhs: Patsy right-hand side. ``None`` regresses ``target_col`` on
                every other column of ``df``.
            name: Registry key (defaults to ``model_<n>``).
            target_col: Response column.
            cv_folds: K-fold cross-validation folds for the metrics (off if ``None``).
            shuffle_cv: Shuffle before splitting folds.
            random_state: Seed used when shuffling.
            refit: Replace an existing entry of the same name.

        Raises:
            ModelNotIdentifiableError: If the design is rank deficient.
        """
        name = name or f"model_{len(self.models) + 1}"
        if name in self.models and not refit:
            logger.debug("Model '%s' already registered; reusing the cached fit", name)
            return self.models[name].diag

        cv = {"cv_folds": cv_folds, "shuffle_cv": shuffle_cv, "random_state": random_state, "alpha": self.alpha}
        if rhs is None:
            diag = fit_ols_design(df, target_col=target_col, **cv)
        else:
            diag = fit_ols_formula(df, rhs=rhs, target_col=target_col, **cv)

        self.add(
            ModelEntry(name=name, rhs=rhs, target_col=target_col, diag=diag, metrics=diag.metrics),
            overwrite=True,
        )
        return diag

    def compare_nested(self, reduced: str, full: str) -> NestedComparisonResult:
        """Partial F-test of registered model ``reduced`` against ``full``."""
        return compare_nested(self.get(reduced).diag, self.get(full).diag, alpha=self.alpha)

    def compare(self, *, target: str | None = None, sort_by: str = "aic") -> pd.DataFrame:
        """One row per model: fit metrics, size and both residual-check p-values.

        Args:
            target: Only include models of this response.
            sort_by: Column to sort by within each response.
        """
        entries = self.for_target(target) if target is not None else list(self.models.values())
        rows = []
        for entry in entries:
            residual = entry.diag.assumptions.residual
            row = {"model": entry.name, "target": entry.target_col, "rhs": entry.rhs}
            row.update(asdict(entry.metrics))
            row["n_params"] = entry.diag.n_params
            row["shapiro_p"] = residual.normality_pvalue
            row["breusch_pagan_p"] = residual.breusch_pagan_pvalue
            row["residuals_ok"] = residual.passes
            rows.append(row)
        if not rows:
            return pd.DataFrame()

        df = pd.DataFrame(rows).set_index("model").drop(columns=["cv_scores"])
        df["delta_aic"] = df["aic"] - df.groupby("target")["aic"].transform("min")
        if sort_by in df.columns:
            return df.sort_values(["target", sort_by])
        return df

    def __iter__(self):
        return iter(self.models.values())

    def __len__(self) -> int:
        return len(self.models)
