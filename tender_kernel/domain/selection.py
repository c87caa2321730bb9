"""
Category selections for cost redistribution.

A source rule or target cost points at BOQ items through one of two
granularities: a whole parent cost category, or a single detail cost
category.  The wire shape (``level`` + two optional ids) is what the UI and
the saved payloads carry; ``selector`` turns it into a tagged union so the
engines never have to re-check which id is meaningful.

Rules are constructible in invalid states (missing ids,
out-of-range percentages): reporting those is the rule validator's job.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from tender_kernel.domain.amounts import to_decimal


class SelectionLevel(str, Enum):
    """Granularity of a category selection."""

    CATEGORY = "category"  # Whole parent cost category
    DETAIL = "detail"  # One detail cost category


@dataclass(frozen=True)
class CategorySelection:
    """Selects every item whose detail category rolls up to ``category_id``."""

    category_id: str

    @property
    def key(self) -> str:
        return f"cat_{self.category_id}"


@dataclass(frozen=True)
class DetailSelection:
    """Selects items tagged with exactly ``detail_cost_category_id``."""

    detail_cost_category_id: str

    @property
    def key(self) -> str:
        return f"det_{self.detail_cost_category_id}"


Selection = CategorySelection | DetailSelection


@dataclass(frozen=True)
class CategoryChoice:
    """
    Common shape of source rules and target costs.

    Contract:
        ``level`` decides which id is meaningful; the other one is ignored.
    Guarantees:
        - ``level`` is a ``SelectionLevel`` after construction.
        - ``selector`` is ``None`` when the id required by ``level`` is unset.
    """

    level: SelectionLevel = SelectionLevel.DETAIL
    category_id: str | None = None
    detail_cost_category_id: str | None = None
    category_name: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.level, SelectionLevel):
            object.__setattr__(self, "level", SelectionLevel(self.level))

    @property
    def selector(self) -> Selection | None:
        """Tagged-union view of the selection, or ``None`` if incomplete."""
        if self.level == SelectionLevel.DETAIL and self.detail_cost_category_id:
            return DetailSelection(self.detail_cost_category_id)
        if self.level == SelectionLevel.CATEGORY and self.category_id:
            return CategorySelection(self.category_id)
        return None

    @property
    def selection_key(self) -> str | None:
        """Resolved key used for duplicate and conflict detection."""
        selector = self.selector
        return selector.key if selector is not None else None

    def _base_dict(self) -> dict[str, Any]:
        return {
            "level": self.level.value,
            "category_id": self.category_id,
            "detail_cost_category_id": self.detail_cost_category_id,
            "category_name": self.category_name,
        }

    @staticmethod
    def _base_kwargs(data: Mapping[str, Any]) -> dict[str, Any]:
        return {
            "level": data.get("level") or SelectionLevel.DETAIL,
            "category_id": data.get("category_id"),
            "detail_cost_category_id": data.get("detail_cost_category_id"),
            "category_name": data.get("category_name") or "",
        }


@dataclass(frozen=True)
class SourceRule(CategoryChoice):
    """Deduct ``percentage`` percent of the work cost of the selected items."""

    percentage: Decimal | None = None

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.percentage is not None:
            object.__setattr__(
                self, "percentage", to_decimal(self.percentage, "percentage")
            )

    @classmethod
    def detail(
        cls, detail_cost_category_id: str, percentage: Any, category_name: str = ""
    ) -> SourceRule:
        return cls(
            level=SelectionLevel.DETAIL,
            detail_cost_category_id=detail_cost_category_id,
            category_name=category_name,
            percentage=percentage,
        )

    @classmethod
    def category(
        cls, category_id: str, percentage: Any, category_name: str = ""
    ) -> SourceRule:
        return cls(
            level=SelectionLevel.CATEGORY,
            category_id=category_id,
            category_name=category_name,
            percentage=percentage,
        )

    def to_dict(self) -> dict[str, Any]:
        data = self._base_dict()
        data["percentage"] = None if self.percentage is None else str(self.percentage)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SourceRule:
        return cls(**cls._base_kwargs(data), percentage=data.get("percentage"))


@dataclass(frozen=True)
class TargetCost(CategoryChoice):
    """Receive a share of whatever the source rules deducted."""

    @classmethod
    def detail(cls, detail_cost_category_id: str, category_name: str = "") -> TargetCost:
        return cls(
            level=SelectionLevel.DETAIL,
            detail_cost_category_id=detail_cost_category_id,
            category_name=category_name,
        )

    @classmethod
    def category(cls, category_id: str, category_name: str = "") -> TargetCost:
        return cls(
            level=SelectionLevel.CATEGORY,
            category_id=category_id,
            category_name=category_name,
        )

    def to_dict(self) -> dict[str, Any]:
        return self._base_dict()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TargetCost:
        return cls(**cls._base_kwargs(data))
