"""Tests for CorrelationAnalyzer."""

import numpy as np
import pandas as pd
import pytest
from scipy import stats

from surv_tlbx.analysis.correlation_analyzer import CorrelationAnalyzer, CorrelationResult, spearman_test
from surv_tlbx.data import SUCol
from surv_tlbx.data.views import DatasetView


class TestCorrelationAnalyzer:
    """Test CorrelationAnalyzer functionality."""

    @pytest.fixture
    def sample_view(self) -> DatasetView:
        """Create a sample DatasetView for testing."""
        data = pd.DataFrame(
            {
                "feature1": [1.0, 2.0, 3.0, 4.0, 5.0, 6.0],
                "feature2": [1.0, 8.0, 27.0, 64.0, 125.0, 216.0],  # monotone in feature1
                "feature3": [6.0, 5.0, 4.0, 3.0, 2.0, 1.0],  # reversed ranks
                "target": [10.0, 15.0, 20.0, 25.0, 30.0, 35.0],
            },
        )
        return DatasetView(
            df=data,
            pretty_by_col={
                "feature1": "Feature 1",
                "feature2": "Feature 2",
                "feature3": "Feature 3",
                "target": "Target",
            },
            numeric_cols=["feature1", "feature2", "feature3", "target"],
            target_col="target",
        )

    @pytest.fixture
    def view_without_target(self) -> DatasetView:
        """Create a DatasetView without a target column."""
        data = pd.DataFrame(
            {
                "feature1": [1.0, 2.0, 3.0, 4.0],
                "feature2": [2.0, 4.0, 6.0, 8.0],
            },
        )
        return DatasetView(
            df=data,
            pretty_by_col={"feature1": "Feature 1", "feature2": "Feature 2"},
            numeric_cols=["feature1", "feature2"],
            target_col=None,
        )

    def test_get_correlation_matrix(self, sample_view: DatasetView) -> None:
        """Spearman matrix is symmetric with unit diagonal and rank-based."""
        analyzer = CorrelationAnalyzer(sample_view)
        corr_matrix = analyzer.get_correlation_matrix()

        assert corr_matrix.shape == (4, 4)
        assert np.allclose(np.diag(corr_matrix), 1.0)
        assert np.allclose(corr_matrix, corr_matrix.T)

        # a monotone non-linear relation has perfect rank correlation
        assert np.isclose(corr_matrix.loc["feature1", "feature2"], 1.0)
        assert np.isclose(corr_matrix.loc["feature1", "feature3"], -1.0)
        pearson = analyzer.get_correlation_matrix("pearson")
        assert pearson.loc["feature1", "feature2"] < 1.0

    def test_unknown_method_raises(self, sample_view: DatasetView) -> None:
        with pytest.raises(ValueError, match="Unsupported"):
            CorrelationAnalyzer(sample_view).get_correlation_matrix("kendall")

    def test_get_top_correlated_pairs(self, sample_view: DatasetView) -> None:
        """Test getting top correlated pairs."""
        top_pairs = CorrelationAnalyzer(sample_view).get_top_correlated_pairs(n=3)

        assert len(top_pairs) == 3
        assert {"feature_a", "feature_b", "rho", "abs_rho", "pair"} <= set(top_pairs.columns)
        assert np.isclose(top_pairs.iloc[0]["abs_rho"], 1.0)

    def test_get_target_correlations(self, sample_view: DatasetView) -> None:
        """Each predictor is tested against the target."""
        target_corrs = CorrelationAnalyzer(sample_view).get_target_correlations()

        assert len(target_corrs) == 3
        assert list(target_corrs.columns) == ["feature", "rho", "p_value", "n", "significant"]
        assert (target_corrs["n"] == 6).all()
        assert target_corrs["significant"].all()

    def test_target_correlations_match_scipy(self, surgical_dataset) -> None:
        result = surgical_dataset.make_correlation_analyzer().fit().result()
        row = result.target_correlations.set_index("feature").loc[SUCol.EF]

        rho, p_value = stats.spearmanr(surgical_dataset.df[SUCol.EF], surgical_dataset.df[SUCol.TARGET])

        assert np.isclose(row["rho"], rho)
        assert np.isclose(row["p_value"], p_value)
        assert row["significant"] == (p_value < 0.05)

    def test_target_correlations_sorted_by_strength(self, surgical_dataset) -> None:
        table = surgical_dataset.make_correlation_analyzer().fit().result().target_correlations
        assert table["rho"].abs().is_monotonic_decreasing
        assert set(table["feature"]) == {SUCol.BCS, SUCol.PI, SUCol.EF, SUCol.LF}

    def test_get_target_correlations_no_target(self, view_without_target: DatasetView) -> None:
        """Test get_target_correlations raises error without target."""
        analyzer = CorrelationAnalyzer(view_without_target)

        with pytest.raises(ValueError, match=r"Dataset view has no target column"):
            analyzer.get_target_correlations()

    def test_fit_returns_result(self, sample_view: DatasetView) -> None:
        analyzer = CorrelationAnalyzer(sample_view)
        fitted = analyzer.fit()
        result = analyzer.result()

        assert fitted is analyzer
        assert isinstance(result, CorrelationResult)
        assert result.target_correlations is not None

    def test_result_before_fit_raises(self, sample_view: DatasetView) -> None:
        with pytest.raises(ValueError, match="fit"):
            CorrelationAnalyzer(sample_view).result()

    def test_fit_without_target(self, view_without_target: DatasetView) -> None:
        result = CorrelationAnalyzer(view_without_target).fit().result()

        assert result.feature_pairs is not None
        assert result.target_correlations is None

    def test_correlation_with_missing_values(self) -> None:
        """Missing values are excluded pairwise, not imputed."""
        data = pd.DataFrame(
            {
                "feature1": [1.0, 2.0, np.nan, 4.0, 5.0],
                "feature2": [2.0, 4.0, 6.0, 8.0, 10.0],
                "target": [10.0, 15.0, 20.0, 25.0, 30.0],
            },
        )
        view = DatasetView(
            df=data,
            pretty_by_col={},
            numeric_cols=["feature1", "feature2", "target"],
            target_col="target",
            missing_strategy="keep",
        )

        table = CorrelationAnalyzer(view).fit().result().target_correlations.set_index("feature")

        assert table.loc["feature1", "n"] == 4
        assert table.loc["feature2", "n"] == 5


def test_spearman_test_needs_three_pairs() -> None:
    rho, p_value, n = spearman_test(pd.Series([1.0, 2.0, np.nan]), pd.Series([3.0, 1.0, 2.0]))

    assert n == 2
    assert np.isnan(rho)
    assert np.isnan(p_value)
