"""Tests for per-observation influence measures and the hold-out refit."""

import numpy as np
import pytest
import statsmodels.formula.api as smf

from surv_tlbx.analysis.influence import MEASURES, InfluenceAnalyzer, holdout_check
from surv_tlbx.analysis.ols_helper import fit_ols_formula
from surv_tlbx.config import DiagnosticThresholds
from surv_tlbx.data import SUCol


RHS = "bcs + pi + ef"


@pytest.fixture(scope="module")
def log_df(surgical_dataset):
    return surgical_dataset.with_response_transform("log").model_frame([SUCol.BCS, SUCol.PI, SUCol.EF])


@pytest.fixture(scope="module")
def fit(log_df):
    return fit_ols_formula(log_df, rhs=RHS, target_col="surv_time_log")


@pytest.fixture(scope="module")
def influence(fit):
    return fit.influence()


class TestInfluenceMeasures:
    def test_leverage_bounds(self, influence, fit) -> None:
        leverage = influence.table["leverage"]

        assert np.isclose(leverage.sum(), fit.n_params)
        assert (leverage >= 1.0 / fit.n_obs - 1e-12).all()
        assert (leverage <= 1.0).all()

    def test_measures_match_statsmodels(self, influence, fit) -> None:
        infl = fit.model.get_influence()

        np.testing.assert_allclose(influence.table["studentized"], infl.resid_studentized_external)
        np.testing.assert_allclose(influence.table["dffits"], infl.dffits[0])
        np.testing.assert_allclose(influence.table["cooks_distance"], infl.cooks_distance[0])
        np.testing.assert_allclose(influence.dfbetas().to_numpy(), infl.dfbetas)

    def test_table_indexed_by_id(self, influence, log_df) -> None:
        assert influence.table.index.equals(log_df.index)
        assert influence.terms == ["Intercept", "bcs", "pi", "ef"]
        assert list(influence.dfbeta().columns) == influence.terms

    def test_default_thresholds(self, influence) -> None:
        n, p = 54, 4
        assert np.isclose(influence.thresholds["leverage"], 2 * p / n)
        assert np.isclose(influence.thresholds["dffits"], 2 * np.sqrt(p / n))
        assert np.isclose(influence.thresholds["cooks_distance"], 4 / n)
        assert np.isclose(influence.thresholds["dfbetas"], 2 / np.sqrt(n))
        assert influence.thresholds["studentized"] == 2.0

    def test_flags_follow_thresholds(self, influence) -> None:
        table = influence.table
        cut = influence.thresholds

        assert influence.flagged_ids("leverage") == table.index[table["leverage"] > cut["leverage"]].tolist()
        assert influence.flagged_ids("dffits") == table.index[table["dffits"].abs() > cut["dffits"]].tolist()
        dfbetas_any = (influence.dfbetas().abs() > cut["dfbetas"]).any(axis=1)
        assert influence.flagged_ids("dfbetas") == table.index[dfbetas_any].tolist()
        assert (table["n_flags"] == table[[f"flag_{m}" for m in MEASURES]].sum(axis=1)).all()
        assert set(influence.flagged_ids()) == set(influence.flagged().index)

    def test_flagged_sorted_by_flag_count(self, influence) -> None:
        flagged = influence.flagged()
        assert flagged["n_flags"].is_monotonic_decreasing

    def test_custom_thresholds(self, fit) -> None:
        loose = fit.influence(thresholds=DiagnosticThresholds(studentized=100.0, cooks_numerator=100.0))
        assert loose.flagged_ids("studentized") == []
        assert loose.flagged_ids("cooks_distance") == []

    def test_unknown_measure_raises(self, influence) -> None:
        with pytest.raises(KeyError, match="hat"):
            influence.flagged_ids("hat")

    def test_most_influential_has_largest_cooks(self, influence) -> None:
        worst = influence.most_influential()
        assert influence.table.loc[worst, "cooks_distance"] == influence.table["cooks_distance"].max()

    def test_result_before_fit_raises(self, fit) -> None:
        with pytest.raises(ValueError, match="fit"):
            InfluenceAnalyzer(fit).result()


class TestHoldout:
    def test_deleted_residual_identity(self, log_df, influence) -> None:
        worst = influence.most_influential()
        check = holdout_check(log_df, rhs=RHS, observation_id=worst, target_col="surv_time_log")

        assert check.observation_id == worst
        assert np.isclose(check.holdout_residual, check.deleted_residual)
        assert abs(check.holdout_residual) >= abs(check.residual)
        assert np.isclose(check.inflation, 1.0 / (1.0 - check.leverage))
        assert np.isclose(check.leverage, influence.table.loc[worst, "leverage"])

    def test_prediction_matches_refit_without_observation(self, log_df, influence) -> None:
        obs_id = influence.most_influential()
        check = holdout_check(log_df, rhs=RHS, observation_id=obs_id, target_col="surv_time_log")

        refit = smf.ols(f"surv_time_log ~ {RHS}", data=log_df.drop(index=obs_id)).fit()
        expected = float(refit.predict(log_df.loc[[obs_id]]).iloc[0])
        assert np.isclose(check.predicted, expected)
        assert np.isclose(check.holdout_residual, log_df.loc[obs_id, "surv_time_log"] - expected)

    def test_prediction_with_polynomial_terms(self, log_df) -> None:
        rhs = "bcs + I(bcs ** 2) + pi + ef"
        obs_id = log_df.index[-1]
        check = holdout_check(log_df, rhs=rhs, observation_id=obs_id, target_col="surv_time_log")

        refit = smf.ols(f"surv_time_log ~ {rhs}", data=log_df.drop(index=obs_id)).fit()
        assert np.isclose(check.predicted, float(refit.predict(log_df.loc[[obs_id]]).iloc[0]))
        assert np.isclose(check.holdout_residual, check.deleted_residual)

    def test_coefficient_change_equals_dfbeta(self, log_df, influence) -> None:
        obs_id = influence.table.index[10]
        check = holdout_check(log_df, rhs=RHS, observation_id=obs_id, target_col="surv_time_log")

        np.testing.assert_allclose(
            check.coefficient_change.loc[influence.terms].to_numpy(),
            influence.dfbeta().loc[obs_id].to_numpy(),
        )

    def test_refit_does_not_modify_input(self, log_df) -> None:
        before = log_df.copy()
        holdout_check(log_df, rhs=RHS, observation_id=log_df.index[0], target_col="surv_time_log")
        assert log_df.equals(before)

    def test_unknown_observation_raises(self, log_df) -> None:
        with pytest.raises(KeyError, match="9999"):
            holdout_check(log_df, rhs=RHS, observation_id=9999, target_col="surv_time_log")
