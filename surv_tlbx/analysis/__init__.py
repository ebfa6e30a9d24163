"""Analysis modules for dataset processing and statistical methods."""

from .collinearity import CollinearityChecker, CollinearityResult
from .correlation_analyzer import CorrelationAnalyzer, CorrelationResult
from .descriptive import DescriptiveAnalyzer, DescriptiveResult
from .influence import HoldoutResult, InfluenceAnalyzer, InfluenceResult, holdout_check
from .model_registry import ModelEntry, ModelRegistry
from .model_selection import (
    SelectionPathResult,
    best_per_size,
    best_subsets,
    compute_mallows_cp,
    recommend_subset,
    selection_path,
)
from .normality import NormalityAssessor, NormalityResult, NormalityTestResult, normality_test, qq_points
from .ols_helper import (
    NestedComparisonResult,
    RegressionResult,
    ResidualDiagnostics,
    compare_models,
    compare_nested,
    fit_ols_design,
    fit_ols_formula,
    residual_diagnostics,
)
from .transformations import (
    BoxCoxProfile,
    TransformationResult,
    TransformationSearch,
    boxcox_profile,
    interpret_boxcox_lambda,
)


__all__ = [
    "BoxCoxProfile",
    "CollinearityChecker",
    "CollinearityResult",
    "CorrelationAnalyzer",
    "CorrelationResult",
    "DescriptiveAnalyzer",
    "DescriptiveResult",
    "HoldoutResult",
    "InfluenceAnalyzer",
    "InfluenceResult",
    "ModelEntry",
    "ModelRegistry",
    "NestedComparisonResult",
    "NormalityAssessor",
    "NormalityResult",
    "NormalityTestResult",
    "RegressionResult",
    "ResidualDiagnostics",
    "SelectionPathResult",
    "TransformationResult",
    "TransformationSearch",
    "best_per_size",
    "best_subsets",
    "boxcox_profile",
    "compare_models",
    "compare_nested",
    "compute_mallows_cp",
    "fit_ols_design",
    "fit_ols_formula",
    "holdout_check",
    "interpret_boxcox_lambda",
    "normality_test",
    "qq_points",
    "recommend_subset",
    "residual_diagnostics",
    "selection_path",
]
