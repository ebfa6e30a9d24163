"""Smoke tests for plotting helpers (Agg backend, figures closed after each test)."""

import matplotlib.pyplot as plt
import pytest
from matplotlib.axes import Axes
from matplotlib.figure import Figure

from surv_tlbx.analysis.model_selection import best_subsets, forward_selection
from surv_tlbx.analysis.ols_helper import fit_ols_formula, polynomial_terms, rhs_for
from surv_tlbx.analysis.transformations import TransformationSearch
from surv_tlbx.data import SUCol
from surv_tlbx.plotting import (
    plot_best_subsets,
    plot_candidate_pvalues,
    plot_dfbetas,
    plot_histograms,
    plot_residuals_vs_predictors,
    pred_plot,
)
from surv_tlbx.utils.plotting_config import DEFAULT_PLOT_CFG


PREDICTORS = [SUCol.BCS, SUCol.PI, SUCol.EF, SUCol.LF]


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close("all")


@pytest.fixture(scope="module")
def fit(surgical_df):
    return fit_ols_formula(surgical_df, rhs=rhs_for(PREDICTORS))


def test_dataset_plots(surgical_dataset) -> None:
    assert isinstance(plot_histograms(surgical_dataset), Figure)
    normality = surgical_dataset.make_normality_assessor().fit().result()
    assert isinstance(normality.plot_qq(), Figure)


def test_correlation_plots(surgical_dataset) -> None:
    result = surgical_dataset.make_correlation_analyzer().fit().result()

    assert isinstance(result.plot_heatmap(), Figure)
    assert isinstance(result.plot_heatmap(method="pearson"), Figure)
    fig = result.plot_target_correlations()
    assert len(fig.axes[0].texts) == len(PREDICTORS)
    with pytest.raises(ValueError, match="Unsupported"):
        result.plot_heatmap(method="kendall")


def test_regression_plots(fit, surgical_df) -> None:
    _, axes = plt.subplots(1, 3)
    assert isinstance(fit.plot_residuals_vs_fitted(ax=axes[0]), Axes)
    assert isinstance(fit.plot_scale_location(ax=axes[1]), Axes)
    assert isinstance(fit.plot_qq(ax=axes[2]), Axes)
    assert isinstance(fit.plot_influence(), Figure)
    assert isinstance(plot_residuals_vs_predictors(fit, surgical_df, PREDICTORS), Figure)

    fig_main, fig_pred, fig_infl = fit.plot_residual_diags(show=False)
    assert fig_pred is not None
    assert len(fig_main.axes) == 4


def test_pred_plot_with_polynomial_terms(surgical_df) -> None:
    fit = fit_ols_formula(surgical_df, rhs=rhs_for(polynomial_terms([SUCol.BCS, SUCol.EF])))
    frame = surgical_df[[SUCol.BCS, SUCol.EF, SUCol.TARGET]]

    ax = pred_plot(fit, SUCol.BCS, frame, n_points=50)

    assert len(ax.lines[0].get_xdata()) == 50
    with pytest.raises(KeyError, match="lf"):
        pred_plot(fit, SUCol.LF, frame)


def test_influence_plots(fit) -> None:
    influence = fit.influence()

    fig = influence.plot_index()
    assert len(fig.axes) == 4
    assert isinstance(plot_dfbetas(influence), Figure)


def test_collinearity_heatmap(surgical_dataset) -> None:
    result = surgical_dataset.make_collinearity_checker().fit().result()
    assert isinstance(result.plot_heatmap(), Figure)


def test_selection_plots(surgical_df) -> None:
    path = forward_selection(
        surgical_df,
        target_col=SUCol.TARGET,
        base_terms=[],
        candidates=PREDICTORS,
        criterion="cp",
        exhaustive=True,
    )
    assert isinstance(path.plot(), Axes)
    table = best_subsets(surgical_df, target_col=SUCol.TARGET, candidates=PREDICTORS)
    assert isinstance(plot_best_subsets(table), Figure)


def test_transformation_plots(surgical_dataset) -> None:
    result = TransformationSearch(surgical_dataset, include_polynomial=False).fit().result()

    with DEFAULT_PLOT_CFG.apply():
        ax = result.plot_profile()
    assert isinstance(ax, Axes)
    assert isinstance(plot_candidate_pvalues(result), Figure)
