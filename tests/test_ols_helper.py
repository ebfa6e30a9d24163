"""Tests for OLS fitting, nested comparison and residual diagnostics."""

from dataclasses import replace

import numpy as np
import pandas as pd
import pytest
import statsmodels.api as sm
from scipy import stats

from surv_tlbx.analysis.model_registry import ModelEntry, ModelRegistry
from surv_tlbx.analysis.ols_helper import (
    check_identifiable,
    compare_models,
    compare_nested,
    compute_vif,
    design_matrix_for_data,
    fit_ols_design,
    fit_ols_formula,
    polynomial_terms,
    residual_diagnostics,
    rhs_for,
)
from surv_tlbx.data import SUCol
from surv_tlbx.exceptions import ModelNotIdentifiableError


FULL_RHS = "bcs + pi + ef + lf"
REDUCED_RHS = "bcs + pi + ef"


@pytest.fixture(scope="module")
def full_fit(surgical_df):
    return fit_ols_formula(surgical_df, rhs=FULL_RHS)


@pytest.fixture(scope="module")
def reduced_fit(surgical_df):
    return fit_ols_formula(surgical_df, rhs=REDUCED_RHS)


class TestFit:
    def test_sum_of_squares_decomposition(self, full_fit, reduced_fit) -> None:
        for fit in (full_fit, reduced_fit):
            assert np.isclose(fit.sst, fit.ssr + fit.sse)
            assert np.isclose(fit.r2, 1 - fit.sse / fit.sst)

    def test_residual_degrees_of_freedom(self, full_fit) -> None:
        assert full_fit.n_params == 5
        assert full_fit.df_resid == 54 - 5

    def test_coefficients_table(self, full_fit) -> None:
        coefs = full_fit.coefficients

        assert list(coefs.index) == ["Intercept", "bcs", "pi", "ef", "lf"]
        assert {"estimate", "std_error", "t_value", "p_value"} <= set(coefs.columns)
        np.testing.assert_allclose(coefs["t_value"], coefs["estimate"] / coefs["std_error"])
        assert full_fit.terms == ["bcs", "pi", "ef", "lf"]

    def test_vectors_indexed_by_id(self, full_fit, surgical_df) -> None:
        assert full_fit.residuals.index.equals(surgical_df.index)
        np.testing.assert_allclose(full_fit.fitted + full_fit.residuals, surgical_df[SUCol.TARGET])

    def test_formula_vs_design_agree(self, surgical_df) -> None:
        df = surgical_df[[SUCol.TARGET, SUCol.BCS, SUCol.PI]]

        via_design = fit_ols_design(df, target_col=SUCol.TARGET)
        via_formula = fit_ols_formula(df, rhs="bcs + pi")

        assert np.isclose(via_design.r2, via_formula.r2)
        assert via_design.model.params.index[0] in {"const", "Intercept"}

    def test_missing_rows_dropped_listwise(self, surgical_df) -> None:
        df = surgical_df.copy()
        df.loc[df.index[:3], SUCol.LF] = np.nan

        fit = fit_ols_formula(df, rhs=FULL_RHS)

        assert fit.n_obs == 51
        assert not set(df.index[:3]) & set(fit.residuals.index)

    def test_cross_validation_metrics(self, surgical_df) -> None:
        fit = fit_ols_formula(surgical_df, rhs=REDUCED_RHS, cv_folds=5, shuffle_cv=True, random_state=0)

        assert fit.metrics.cv_scores is not None
        assert len(fit.metrics.cv_scores) == 5
        assert fit.metrics.cv_rmse > 0

    def test_design_matrix_for_new_data_reapplies_terms(self, surgical_df) -> None:
        fit = fit_ols_formula(surgical_df, rhs=rhs_for(polynomial_terms(["bcs"])))
        new = pd.DataFrame({"bcs": [2.0, 3.0]})

        design = design_matrix_for_data(fit.model, new)

        np.testing.assert_allclose(design["I(bcs ** 2)"], [4.0, 9.0])

    def test_design_matrix_for_data_requires_formula_model(self, surgical_df) -> None:
        x = sm.add_constant(surgical_df[[SUCol.BCS, SUCol.PI]])
        model = sm.OLS(surgical_df[SUCol.TARGET], x).fit()

        with pytest.raises(ValueError, match="formula"):
            design_matrix_for_data(model, surgical_df.head(2))

    def test_zero_valued_metrics_are_kept(self, reduced_fit) -> None:
        zeroed = replace(reduced_fit, metrics=replace(reduced_fit.metrics, adj_r2=0.0, aic=0.0))

        assert zeroed.adj_r2 == 0.0
        assert zeroed.aic == 0.0
        assert np.isnan(replace(reduced_fit, metrics=replace(reduced_fit.metrics, aic=None)).aic)


class TestIdentifiability:
    def test_duplicate_predictor_raises(self, surgical_df) -> None:
        df = surgical_df.assign(bcs_copy=lambda d: 2 * d[SUCol.BCS])

        with pytest.raises(ModelNotIdentifiableError, match="rank") as excinfo:
            fit_ols_formula(df, rhs="bcs + bcs_copy")
        assert excinfo.value.rank == 2
        assert excinfo.value.expected_rank == 3

    def test_polynomial_on_two_distinct_values_raises(self) -> None:
        df = pd.DataFrame({"x": [1.0, 2.0] * 5, "y": np.arange(10.0)})
        with pytest.raises(ModelNotIdentifiableError):
            fit_ols_formula(df, rhs=rhs_for(polynomial_terms(["x"])), target_col="y")

    def test_too_few_observations(self) -> None:
        with pytest.raises(ModelNotIdentifiableError, match="observations"):
            check_identifiable(np.ones((2, 3)))

    def test_design_fit_checks_rank(self, surgical_df) -> None:
        df = surgical_df[[SUCol.TARGET, SUCol.BCS]].assign(other=lambda d: d[SUCol.BCS] + 1.0)
        with pytest.raises(ModelNotIdentifiableError):
            fit_ols_design(df, target_col=SUCol.TARGET)


class TestNestedComparison:
    def test_partial_f_matches_sse(self, full_fit, reduced_fit) -> None:
        nested = compare_nested(reduced_fit, full_fit)

        df_num = reduced_fit.df_resid - full_fit.df_resid
        f_manual = ((reduced_fit.sse - full_fit.sse) / df_num) / (full_fit.sse / full_fit.df_resid)
        p_manual = stats.f.sf(f_manual, df_num, full_fit.df_resid)

        assert nested.df_num == 1
        assert nested.df_denom == 49
        assert np.isclose(nested.f_statistic, f_manual)
        assert np.isclose(nested.p_value, p_manual)
        assert nested.dropped_terms == ["lf"]
        assert nested.can_drop == (p_manual >= 0.05)

    def test_rejects_non_nested(self, surgical_df, reduced_fit) -> None:
        other = fit_ols_formula(surgical_df, rhs="bcs + lf")
        with pytest.raises(ValueError, match="subset"):
            compare_nested(other, reduced_fit)

    def test_rejects_different_rows(self, surgical_df, full_fit) -> None:
        smaller = fit_ols_formula(surgical_df.iloc[:-1], rhs=REDUCED_RHS)
        with pytest.raises(ValueError, match="same observations"):
            compare_nested(smaller, full_fit)

    def test_rejects_different_responses(self, surgical_df, full_fit) -> None:
        logged = surgical_df.assign(log_surv=np.log(surgical_df[SUCol.TARGET]))
        other = fit_ols_formula(logged, rhs=REDUCED_RHS, target_col="log_surv")
        with pytest.raises(ValueError, match="different responses"):
            compare_nested(other, full_fit)

    def test_compare_models_table(self, full_fit, reduced_fit) -> None:
        table = compare_models({"full": full_fit, "reduced": reduced_fit.model})

        assert set(table["model"]) == {"full", "reduced"}
        assert table["aic"].is_monotonic_increasing
        assert dict(zip(table["model"], table["n_params"], strict=True)) == {"full": 5, "reduced": 4}


class TestResidualDiagnostics:
    def test_breusch_pagan_matches_statsmodels(self, full_fit) -> None:
        diag = residual_diagnostics(full_fit.model, alpha=0.05)

        lm, lm_p, fval, f_p = sm.stats.diagnostic.het_breuschpagan(full_fit.model.resid, full_fit.model.model.exog)
        assert np.isclose(diag.breusch_pagan_statistic, lm)
        assert np.isclose(diag.breusch_pagan_pvalue, lm_p)
        assert np.isclose(diag.breusch_pagan_fvalue, fval)
        assert np.isclose(diag.breusch_pagan_f_pvalue, f_p)
        assert diag.homoscedastic == (lm_p >= 0.05)

    def test_normality_uses_shapiro_on_residuals(self, full_fit) -> None:
        diag = residual_diagnostics(full_fit.model)
        _, p = stats.shapiro(full_fit.model.resid)

        assert np.isclose(diag.normality_pvalue, p)
        assert diag.passes == (diag.residuals_normal and diag.homoscedastic)
        assert diag.min_pvalue == min(diag.normality_pvalue, diag.breusch_pagan_pvalue)

    def test_fitted_value_variant(self, full_fit) -> None:
        diag = residual_diagnostics(full_fit.model, het_regressors="fitted")
        assert diag.het_regressors == "fitted"
        assert 0 <= diag.breusch_pagan_pvalue <= 1

    def test_assumptions_bundle(self, full_fit) -> None:
        checks = full_fit.assumptions

        assert 0 <= checks.durbin_watson <= 4
        assert checks.condition_number > 1
        assert np.isclose(checks.leverage.sum(), full_fit.n_params)
        assert "Normality" in repr(checks)


class TestVIF:
    def test_vif_equals_inverse_one_minus_r2(self, surgical_df) -> None:
        predictors = [SUCol.BCS, SUCol.PI, SUCol.EF, SUCol.LF]
        vif = compute_vif(surgical_df[predictors])

        for col in predictors:
            others = [p for p in predictors if p != col]
            r2 = sm.OLS(surgical_df[col], sm.add_constant(surgical_df[others])).fit().rsquared
            assert np.isclose(vif[col], 1.0 / (1.0 - r2))

    def test_vif_ignores_intercept_column(self, full_fit) -> None:
        vif = compute_vif(full_fit.design_matrix)
        assert list(vif.index) == ["bcs", "pi", "ef", "lf"]
        assert (vif >= 1.0).all()

    def test_single_predictor_vif_is_one(self, surgical_df) -> None:
        assert compute_vif(surgical_df[[SUCol.BCS]]).iloc[0] == 1.0


class TestModelRegistry:
    def test_fit_caches_and_compares(self, surgical_df) -> None:
        registry = ModelRegistry()
        first = registry.fit(surgical_df, rhs=FULL_RHS, name="full")
        again = registry.fit(surgical_df, rhs="bcs", name="full")
        registry.fit(surgical_df, rhs=REDUCED_RHS, name="reduced")

        assert again is first
        assert len(registry) == 2
        table = registry.compare()
        assert set(table.index) == {"full", "reduced"}
        assert {"aic", "adj_r2", "shapiro_p", "breusch_pagan_p"} <= set(table.columns)

    def test_registry_nested_comparison(self, surgical_df) -> None:
        registry = ModelRegistry(alpha=0.1)
        registry.fit(surgical_df, rhs=FULL_RHS, name="full")
        registry.fit(surgical_df, rhs=REDUCED_RHS, name="reduced")

        nested = registry.compare_nested("reduced", "full")

        assert nested.alpha == 0.1
        assert nested.dropped_terms == ["lf"]

    def test_delta_aic_is_per_response(self, surgical_df) -> None:
        logged = surgical_df.assign(surv_time_log=np.log(surgical_df[SUCol.TARGET]))
        registry = ModelRegistry()
        registry.fit(logged, rhs=FULL_RHS, name="raw_full")
        registry.fit(logged, rhs=REDUCED_RHS, name="raw_reduced")
        registry.fit(logged, rhs=REDUCED_RHS, name="log_reduced", target_col="surv_time_log")

        table = registry.compare()

        assert table.loc["log_reduced", "delta_aic"] == 0.0
        assert table.loc[["raw_full", "raw_reduced"], "delta_aic"].min() == 0.0
        assert list(registry.compare(target="surv_time_log").index) == ["log_reduced"]
        assert [entry.name for entry in registry.for_target(SUCol.TARGET)] == ["raw_full", "raw_reduced"]

    def test_fit_without_formula_uses_all_columns(self, surgical_df) -> None:
        registry = ModelRegistry()
        fit = registry.fit(surgical_df[[SUCol.BCS, SUCol.PI, SUCol.TARGET]], name="design")

        assert fit.terms == ["bcs", "pi"]
        assert registry.get("design").rhs is None

    def test_duplicate_add_raises(self, full_fit) -> None:
        registry = ModelRegistry()
        entry = ModelEntry(name="m", rhs=FULL_RHS, target_col=SUCol.TARGET, diag=full_fit, metrics=full_fit.metrics)
        registry.add(entry)
        with pytest.raises(KeyError, match="already exists"):
            registry.add(entry)

    def test_unknown_model_raises(self) -> None:
        with pytest.raises(KeyError, match="nope"):
            ModelRegistry().get("nope")
