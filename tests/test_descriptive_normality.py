"""Tests for descriptive statistics and normality assessment."""

import numpy as np
import pandas as pd
import pytest
from scipy import stats

from surv_tlbx.analysis.descriptive import DescriptiveAnalyzer, describe_column
from surv_tlbx.analysis.normality import NormalityAssessor, normality_test, qq_points
from surv_tlbx.data import SUCol
from surv_tlbx.data.views import DatasetView


class TestDescriptive:
    def test_describe_column_matches_t_interval(self) -> None:
        values = pd.Series([2.0, 4.0, 4.0, 5.0, 7.0, np.nan])
        row = describe_column(values)

        clean = values.dropna()
        low, high = stats.t.interval(0.95, df=4, loc=clean.mean(), scale=stats.sem(clean))
        assert row["count"] == 5
        assert np.isclose(row["std"], clean.std(ddof=1))
        assert np.isclose(row["sem"], clean.std(ddof=1) / np.sqrt(5))
        assert np.isclose(row["ci_lower"], low)
        assert np.isclose(row["ci_upper"], high)

    @pytest.mark.parametrize("values", [[np.nan, 3.0], [np.nan, np.nan]])
    def test_fewer_than_two_values_is_indeterminate(self, values) -> None:
        row = describe_column(pd.Series(values))

        assert np.isnan(row["std"])
        assert np.isnan(row["ci_lower"])
        assert np.isnan(row["ci_upper"])

    def test_analyzer_table_per_column(self, surgical_dataset) -> None:
        result = surgical_dataset.make_descriptive_analyzer().fit().result()

        assert set(result.table.index) == set(SUCol.numeric_columns())
        assert (result.table["count"] == 54).all()
        assert (result.table["ci_lower"] < result.table["mean"]).all()
        assert "Survival Time" in result.pretty_table().index

    def test_invalid_confidence(self) -> None:
        view = DatasetView(df=pd.DataFrame({"x": [1.0, 2.0]}), pretty_by_col={}, numeric_cols=["x"])
        with pytest.raises(ValueError, match="confidence"):
            DescriptiveAnalyzer(view, confidence=1.5)

    def test_result_before_fit_raises(self) -> None:
        view = DatasetView(df=pd.DataFrame({"x": [1.0, 2.0]}), pretty_by_col={}, numeric_cols=["x"])
        with pytest.raises(ValueError, match="fit"):
            DescriptiveAnalyzer(view).result()


class TestNormality:
    def test_normality_test_matches_shapiro(self) -> None:
        values = np.random.default_rng(1).normal(size=40)
        res = normality_test(values, alpha=0.05)

        w, p = stats.shapiro(values)
        assert res.test == "shapiro"
        assert np.isclose(res.statistic, w)
        assert np.isclose(res.p_value, p)
        assert res.is_normal == (p >= 0.05)

    def test_skewed_data_is_not_normal(self) -> None:
        values = np.random.default_rng(2).exponential(size=200) ** 2
        res = normality_test(values)

        assert not res.is_normal
        assert res.decision == "not normal"

    def test_large_samples_use_anderson_darling(self) -> None:
        res = normality_test(np.random.default_rng(3).normal(size=6000))
        assert res.test == "anderson_darling"

    def test_too_few_values_raise(self) -> None:
        with pytest.raises(ValueError, match="at least 3"):
            normality_test([1.0, np.nan, 2.0])

    def test_qq_points_are_sorted(self) -> None:
        qq = qq_points(pd.Series([3.0, 1.0, np.nan, 2.0, 5.0]))

        assert len(qq.ordered) == 4
        assert np.all(np.diff(qq.ordered) >= 0)
        assert np.all(np.diff(qq.theoretical) > 0)

    def test_assessor_on_dataset(self, surgical_dataset) -> None:
        result = surgical_dataset.make_normality_assessor().fit().result()

        assert set(result.table.index) == set(SUCol.numeric_columns())
        assert result.table["p_value"].between(0, 1).all()
        assert set(result.non_normal()) <= set(SUCol.numeric_columns())
        assert set(result.qq) == set(result.tests)

    def test_assessor_result_before_fit_raises(self, surgical_dataset) -> None:
        with pytest.raises(ValueError, match="fit"):
            NormalityAssessor(surgical_dataset.analyzer_view()).result()
