"""
Pure domain layer.

Immutable value objects with NO dependencies on persistence, clocks or
I/O: BOQ item snapshots, category selections, the category hierarchy and
validation DTOs.
"""

from tender_kernel.domain.amounts import ZERO, sum_decimals, to_decimal
from tender_kernel.domain.boq import BoqItem, BoqItemType
from tender_kernel.domain.dtos import ValidationError, ValidationResult
from tender_kernel.domain.hierarchy import (
    CategoryHierarchy,
    DetailCategoryHierarchy,
    DetailCostCategory,
    as_hierarchy,
    build_category_hierarchy,
)
from tender_kernel.domain.selection import (
    CategoryChoice,
    CategorySelection,
    DetailSelection,
    Selection,
    SelectionLevel,
    SourceRule,
    TargetCost,
)

__all__ = [
    "ZERO",
    "BoqItem",
    "BoqItemType",
    "CategoryChoice",
    "CategoryHierarchy",
    "CategorySelection",
    "DetailCategoryHierarchy",
    "DetailCostCategory",
    "DetailSelection",
    "Selection",
    "SelectionLevel",
    "SourceRule",
    "TargetCost",
    "ValidationError",
    "ValidationResult",
    "as_hierarchy",
    "build_category_hierarchy",
    "sum_decimals",
    "to_decimal",
]
