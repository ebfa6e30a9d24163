"""End-to-end regression report for the surgical unit survival-time data.

Runs the whole analysis once, in order:

1. descriptive statistics and per-variable normality
2. Spearman correlation of survival time with each predictor
3. full and reduced OLS fits and the nested F-test
4. best-subset enumeration and greedy selection paths
5. residual diagnostics and the transformation search
6. collinearity of the chosen model
7. influence measures and a hold-out refit of the most influential patient

Usage::

    python -m surv_tlbx --csv _data/surgical_unit.csv --output-dir out/
"""

from __future__ import annotations

import argparse
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

import matplotlib.pyplot as plt
import pandas as pd

from surv_tlbx.analysis.collinearity import CollinearityChecker, CollinearityResult
from surv_tlbx.analysis.correlation_analyzer import CorrelationResult
from surv_tlbx.analysis.descriptive import DescriptiveResult
from surv_tlbx.analysis.influence import HoldoutResult, InfluenceResult, holdout_check
from surv_tlbx.analysis.model_registry import ModelEntry, ModelRegistry
from surv_tlbx.analysis.model_selection import (
    SelectionPathResult,
    best_per_size,
    best_subsets,
    recommend_subset,
    selection_path,
)
from surv_tlbx.analysis.normality import NormalityResult
from surv_tlbx.analysis.ols_helper import NestedComparisonResult, RegressionResult, rhs_for
from surv_tlbx.analysis.transformations import TransformationResult, TransformationSearch
from surv_tlbx.config import DEFAULT_THRESHOLDS, DiagnosticThresholds
from surv_tlbx.data import SUCol, SurgicalUnitDataset
from surv_tlbx.exceptions import SurvTlbxError
from surv_tlbx.utils.plotting_config import DEFAULT_PLOT_CFG


logger = logging.getLogger(__name__)

FULL_PREDICTORS = [SUCol.BCS, SUCol.PI, SUCol.EF, SUCol.LF]
REDUCED_PREDICTORS = [SUCol.BCS, SUCol.PI, SUCol.EF]


@dataclass(frozen=True)
class ReportResult:
    """Every intermediate result of :func:`run_report`."""

    descriptives: DescriptiveResult
    normality: NormalityResult
    correlations: CorrelationResult
    registry: ModelRegistry
    nested: NestedComparisonResult
    subsets: pd.DataFrame
    recommended_subset: pd.Series
    paths: dict[str, SelectionPathResult]
    transformation: TransformationResult
    collinearity: CollinearityResult
    influence: InfluenceResult
    holdout: HoldoutResult
    chosen_predictors: list[str]

    @property
    def full(self) -> RegressionResult:
        return self.registry.get("full").diag

    @property
    def reduced(self) -> RegressionResult:
        return self.registry.get("reduced").diag

    @property
    def chosen(self) -> RegressionResult:
        """Model of the selected transformation candidate."""
        return self.transformation.model


def _log_section(title: str) -> None:
    logger.info("")
    logger.info("== %s ==", title)


def run_report(  # noqa: PLR0915
    dataset: SurgicalUnitDataset,
    *,
    thresholds: DiagnosticThresholds | None = None,
    full_predictors: Sequence[str] | None = None,
    reduced_predictors: Sequence[str] | None = None,
    output_dir: str | Path | None = None,
) -> ReportResult:
    """Execute the analysis pipeline and log a readable interpretation of each step.

    Args:
        dataset: Loaded surgical unit dataset.
        thresholds: Significance level and influence/VIF cut-offs.
        full_predictors: Predictors of the full model (default: all four scores).
        reduced_predictors: Predictors of the nested reduced model (default: without LF).
        output_dir: If given, tables are written as CSV and figures as PNG.
    """
    thresholds = thresholds or DEFAULT_THRESHOLDS
    alpha = thresholds.alpha
    full_predictors = [str(p) for p in (full_predictors or FULL_PREDICTORS)]
    reduced_predictors = [str(p) for p in (reduced_predictors or REDUCED_PREDICTORS)]
    target = SUCol.TARGET

    _log_section("Descriptive statistics")
    descriptives = dataset.make_descriptive_analyzer().fit().result()
    logger.info("\n%s", descriptives.pretty_table().to_string())

    _log_section("Normality of each variable")
    normality = dataset.make_normality_assessor(alpha=alpha).fit().result()
    for col, test in normality.tests.items():
        logger.info(
            "%-22s W=%.3f p=%.4f -> %s",
            dataset.get_pretty_name(col),
            test.statistic,
            test.p_value,
            test.decision,
        )

    _log_section("Spearman correlation with survival time")
    correlations = dataset.make_correlation_analyzer(alpha=alpha).fit().result()
    for row in correlations.target_correlations.itertuples():
        verdict = "significant" if row.significant else "not significant"
        logger.info(
            "%-22s rho=%+.3f p=%.4f (%s at %.2f)",
            dataset.get_pretty_name(row.feature),
            row.rho,
            row.p_value,
            verdict,
            alpha,
        )

    _log_section("Full vs reduced model")
    # nested comparisons need identical rows for every model
    frame = dataset.model_frame(full_predictors).dropna()
    if len(frame) < dataset.n_obs:
        logger.info("Models use %d complete observations of %d", len(frame), dataset.n_obs)
    registry = ModelRegistry(alpha=alpha)
    full = registry.fit(frame, rhs=rhs_for(full_predictors), name="full", target_col=target)
    reduced = registry.fit(frame, rhs=rhs_for(reduced_predictors), name="reduced", target_col=target)
    nested = registry.compare_nested("reduced", "full")
    logger.info("Full model: adj R^2=%.4f, reduced model: adj R^2=%.4f", full.adj_r2, reduced.adj_r2)
    logger.info("%r", nested)
    base_predictors = reduced_predictors if nested.can_drop else full_predictors

    _log_section("Subset selection")
    subsets = best_subsets(frame, target_col=target, candidates=full_predictors)
    recommended = recommend_subset(subsets)
    logger.info("\n%s", best_per_size(subsets)[["n_terms", "terms", "adj_r2", "cp", "p"]].to_string(index=False))
    logger.info(
        "Smallest subset with Cp near p and near-maximal adj R^2: %s (Cp=%.2f, p=%d, adj R^2=%.4f)",
        list(recommended["terms"]),
        recommended["cp"],
        recommended["p"],
        recommended["adj_r2"],
    )
    paths = {
        direction: selection_path(
            frame,
            target_col=target,
            base_terms=[],
            candidates=full_predictors,
            direction=direction,
            criterion="cp",
            threshold=0.0,
            exhaustive=direction != "stepwise",
        )
        for direction in ("forward", "backward", "stepwise")
    }
    for direction, path in paths.items():
        logger.info("%s path best: %s", direction, path.best_step().rhs)

    _log_section("Residual diagnostics of the base model")
    base = reduced if base_predictors == reduced_predictors else full
    logger.info("%r", base.assumptions.residual)

    _log_section("Transformation search")
    transformation = TransformationSearch(dataset, predictors=base_predictors, alpha=alpha).fit().result()
    logger.info("\n%s", transformation.table()[["tier", "shapiro_p", "breusch_pagan_p", "passes"]].to_string())
    for note in transformation.notes:
        logger.info(note)
    chosen = transformation.model
    chosen_rhs = transformation.selected_candidate.rhs
    registry.add(
        ModelEntry(
            name=f"chosen_{transformation.selected}",
            rhs=chosen_rhs,
            target_col=chosen.target_col,
            diag=chosen,
            metrics=chosen.metrics,
        ),
        overwrite=True,
    )
    logger.info("Chosen model: %s ~ %s", chosen.target_col, chosen_rhs)

    _log_section("Collinearity of the chosen model")
    collinearity = CollinearityChecker.from_model(chosen, thresholds=thresholds).fit().result()
    logger.info("\n%s", collinearity.table.to_string())
    if collinearity.has_collinearity:
        logger.warning("VIF above %.1f for %s", collinearity.threshold, collinearity.flagged())

    _log_section("Influence")
    influence = chosen.influence(thresholds=thresholds)
    logger.info("Thresholds: %s", {k: round(v, 4) for k, v in influence.thresholds.items()})
    flagged = influence.flagged()
    logger.info("%d observations flagged:\n%s", len(flagged), flagged.to_string())
    worst = influence.most_influential()
    model_frame = dataset.with_response_transform(
        transformation.selected_candidate.response,
        lam=transformation.selected_candidate.lam,
    ).model_frame(base_predictors)
    holdout = holdout_check(model_frame, rhs=chosen_rhs, observation_id=worst, target_col=chosen.target_col)

    result = ReportResult(
        descriptives=descriptives,
        normality=normality,
        correlations=correlations,
        registry=registry,
        nested=nested,
        subsets=subsets,
        recommended_subset=recommended,
        paths=paths,
        transformation=transformation,
        collinearity=collinearity,
        influence=influence,
        holdout=holdout,
        chosen_predictors=list(base_predictors),
    )
    if output_dir is not None:
        write_report(result, output_dir)
    return result


def write_report(result: ReportResult, output_dir: str | Path) -> Path:
    """Write tables (CSV) and figures (PNG) of a finished report."""
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    tables = {
        "descriptives": result.descriptives.table,
        "normality": result.normality.table,
        "target_correlations": result.correlations.target_correlations,
        "models": result.registry.compare(),
        "coefficients_full": result.full.coefficients,
        "coefficients_reduced": result.reduced.coefficients,
        "best_subsets": result.subsets.assign(terms=result.subsets["terms"].map(" + ".join)),
        "transformations": result.transformation.table(),
        "boxcox_profile": result.transformation.profile.table(),
        "vif": result.collinearity.table,
        "influence": result.influence.table,
    }
    for name, table in tables.items():
        table.to_csv(out / f"{name}.csv")

    with DEFAULT_PLOT_CFG.apply():
        figures = {
            "qq_variables": result.normality.plot_qq(),
            "target_correlations": result.correlations.plot_target_correlations(),
            "predictor_correlations": result.collinearity.plot_heatmap(),
            "influence_index": result.influence.plot_index(),
        }
        fig, ax = plt.subplots(figsize=(7, 4))
        result.transformation.plot_profile(ax=ax)
        figures["boxcox_profile"] = fig

        fig, axes = plt.subplots(1, 3, figsize=(15, 4))
        result.chosen.plot_residuals_vs_fitted(ax=axes[0])
        result.chosen.plot_scale_location(ax=axes[1])
        result.chosen.plot_qq(ax=axes[2])
        fig.tight_layout()
        figures["residuals_chosen"] = fig

        for name, figure in figures.items():
            figure.savefig(out / f"{name}.png", bbox_inches="tight")
            plt.close(figure)

    logger.info("Wrote %d tables and %d figures to %s", len(tables), len(figures), out)
    return out


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="surv_tlbx",
        description="Regression diagnostics report for the surgical unit survival-time data.",
    )
    parser.add_argument("--csv", type=Path, default=None, help="Input CSV (default: _data/surgical_unit.csv).")
    parser.add_argument("--output-dir", type=Path, default=None, help="Directory for CSV tables and PNG figures.")
    parser.add_argument("--alpha", type=float, default=DEFAULT_THRESHOLDS.alpha, help="Significance level.")
    parser.add_argument(
        "--vif-threshold",
        type=float,
        default=DEFAULT_THRESHOLDS.vif,
        help="Flag predictors whose VIF exceeds this value (10 or the stricter 5).",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Log debug messages.")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors.")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    level = logging.DEBUG if args.verbose else logging.WARNING if args.quiet else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")

    try:
        thresholds = DiagnosticThresholds(alpha=args.alpha, vif=args.vif_threshold)
        dataset = SurgicalUnitDataset.from_csv(args.csv)
        run_report(dataset, thresholds=thresholds, output_dir=args.output_dir)
    except (SurvTlbxError, FileNotFoundError, ValueError) as exc:
        logger.error("%s", exc)  # noqa: TRY400
        return 1
    return 0


__all__ = ["ReportResult", "build_parser", "main", "run_report", "write_report"]
