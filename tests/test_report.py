"""Tests for the end-to-end report and its command-line entry point."""

import logging

import pytest

from surv_tlbx.report import build_parser, main, run_report


@pytest.fixture(scope="module")
def report(surgical_dataset, tmp_path_factory):
    out = tmp_path_factory.mktemp("report")
    return run_report(surgical_dataset, output_dir=out), out


def test_report_covers_every_step(report) -> None:
    result, _ = report

    assert result.nested.dropped_terms == ["lf"]
    assert result.nested.df_num == 1
    assert len(result.subsets) == 15
    assert set(result.paths) == {"forward", "backward", "stepwise"}
    assert result.transformation.selected in result.transformation.candidates
    assert result.holdout.observation_id == result.influence.most_influential()
    assert {"full", "reduced", f"chosen_{result.transformation.selected}"} <= set(result.registry.models)


def test_chosen_predictors_follow_nested_test(report) -> None:
    result, _ = report
    expected = ["bcs", "pi", "ef"] if result.nested.can_drop else ["bcs", "pi", "ef", "lf"]
    assert result.chosen_predictors == expected


def test_full_and_reduced_share_rows(report) -> None:
    result, _ = report
    assert result.full.residuals.index.equals(result.reduced.residuals.index)


def test_report_writes_tables_and_figures(report) -> None:
    _, out = report

    for name in ("descriptives", "normality", "models", "best_subsets", "transformations", "influence", "vif"):
        assert (out / f"{name}.csv").is_file()
    for name in ("qq_variables", "boxcox_profile", "influence_index", "residuals_chosen"):
        assert (out / f"{name}.png").is_file()


def test_report_logs_interpretation(surgical_dataset, caplog) -> None:
    with caplog.at_level(logging.INFO, logger="surv_tlbx"):
        run_report(surgical_dataset)

    assert "Full vs reduced model" in caplog.text
    assert "Transformation search" in caplog.text


def test_parser_defaults() -> None:
    args = build_parser().parse_args([])
    assert args.alpha == 0.05
    assert args.vif_threshold == 10.0
    assert args.csv is None


def test_main_runs_on_csv(surgical_csv, tmp_path) -> None:
    code = main(["--csv", str(surgical_csv), "--output-dir", str(tmp_path), "-q"])

    assert code == 0
    assert (tmp_path / "models.csv").is_file()


def test_main_reports_missing_file(tmp_path) -> None:
    assert main(["--csv", str(tmp_path / "missing.csv"), "-q"]) == 1


def test_main_rejects_invalid_alpha(surgical_csv) -> None:
    assert main(["--csv", str(surgical_csv), "--alpha", "1.5", "-q"]) == 1


def test_verbosity_flags_are_exclusive() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args(["-v", "-q"])
