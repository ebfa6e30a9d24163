from pathlib import Path
from typing import Literal


__all__ = ["get_data_dir", "get_dataset_path"]


_DATASET_MAP: dict[str, str] = {
    "surgical_unit": "surgical_unit.csv",
}


def get_data_dir() -> Path:
    """Get the path to the ``_data`` directory at the repository root."""
    return (Path(__file__).parents[2] / "_data").resolve()


def get_dataset_path(filename: Literal["surgical_unit"] | str) -> Path:  # noqa: PYI051
    """Get the full path to a dataset file in the data directory.

    Args:
        filename: Key to a known dataset or a custom filename

    Raises:
        FileNotFoundError: If the file is not present in the data directory.
    """
    ds_path = get_data_dir() / _DATASET_MAP.get(filename, filename)
    if not ds_path.exists():
        raise FileNotFoundError(f"Dataset file '{filename}' not found at {ds_path}")
    return ds_path
