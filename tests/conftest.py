"""Test configuration for the surgical unit toolbox."""

from pathlib import Path
import sys

import matplotlib
import numpy as np
import pandas as pd
import pytest


matplotlib.use("Agg")

# Ensure the local package is importable when the repo isn't installed.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


def make_surgical_frame(n: int = 54, seed: int = 20240517) -> pd.DataFrame:
    """Synthetic records with the raw CSV headers and a log-linear survival time.

    ``log(SurvTime)`` is linear in BCS, PI and EF with normal noise; LF is a
    noisy combination of the other scores and has no effect of its own.
    """
    rng = np.random.default_rng(seed)
    bcs = np.round(rng.normal(5.8, 1.6, n).clip(2.5, 11.0), 1)
    pi = rng.integers(8, 97, n).astype(float)
    ef = rng.integers(23, 120, n).astype(float)
    lf = np.round((0.25 * bcs + 0.012 * pi + 0.015 * ef + rng.normal(0, 0.45, n)).clip(0.7, 6.0), 2)
    log_surv = 3.85 + 0.073 * bcs + 0.0142 * pi + 0.0155 * ef + rng.normal(0, 0.2, n)
    return pd.DataFrame(
        {
            "ID": np.arange(1, n + 1),
            "BCS": bcs,
            "PI": pi,
            "EF": ef,
            "LF": lf,
            "SurvTime": np.round(np.exp(log_surv)),
        },
    )


@pytest.fixture(scope="session")
def raw_frame() -> pd.DataFrame:
    """Raw synthetic frame as it would come out of the CSV reader."""
    return make_surgical_frame()


@pytest.fixture(scope="session")
def surgical_dataset(raw_frame):
    """Validated synthetic dataset (54 patients, indexed by ID)."""
    from surv_tlbx.data import SurgicalUnitDataset

    return SurgicalUnitDataset.from_frame(raw_frame)


@pytest.fixture(scope="session")
def surgical_df(surgical_dataset) -> pd.DataFrame:
    """Predictors plus raw survival time."""
    return surgical_dataset.model_frame()


@pytest.fixture(scope="session")
def surgical_csv(tmp_path_factory, raw_frame) -> Path:
    """Synthetic data written as a CSV file with the raw headers."""
    path = tmp_path_factory.mktemp("data") / "surgical_unit.csv"
    raw_frame.to_csv(path, index=False)
    return path


@pytest.fixture(scope="session")
def real_dataset():
    """Load the real surgical unit dataset, skipping when it is not shipped."""
    from surv_tlbx.data import SurgicalUnitDataset
    from surv_tlbx.utils.paths import get_data_dir

    if not (get_data_dir() / "surgical_unit.csv").exists():
        pytest.skip("real surgical unit data (_data/surgical_unit.csv) not available")
    return SurgicalUnitDataset.from_csv()
