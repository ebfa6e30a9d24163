"""Data module for dataset classes."""

from .surgical_unit_columns import SurgicalUnitColumn as SUCol
from .surgical_unit_dataset import SurgicalUnitDataset


__all__ = ["SUCol", "SurgicalUnitDataset"]
