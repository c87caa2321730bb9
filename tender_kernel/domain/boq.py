"""
BOQ (bill of quantities) line item snapshot.

The persistence layer owns BOQ items; the engines only read a snapshot of
the columns that matter for cost redistribution.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from tender_kernel.domain.amounts import to_decimal


class BoqItemType(str, Enum):
    """Tag distinguishing work / material / sub-contract / compensation lines."""

    MATERIAL = "мат"
    SUB_MATERIAL = "суб-мат"
    MATERIAL_COMPENSATION = "мат-комп."
    WORK = "раб"
    SUB_WORK = "суб-раб"
    WORK_COMPENSATION = "раб-комп."

    @property
    def is_work(self) -> bool:
        return self in (
            BoqItemType.WORK,
            BoqItemType.SUB_WORK,
            BoqItemType.WORK_COMPENSATION,
        )

    @property
    def is_material(self) -> bool:
        return not self.is_work


_KNOWN_TYPES = frozenset(t.value for t in BoqItemType)


@dataclass(frozen=True)
class BoqItem:
    """
    One priced line inside a tender position.

    Contract:
        Read-only snapshot. Cost columns are coerced to ``Decimal`` on
        construction; ``None`` becomes zero.
    Guarantees:
        - ``total_commercial_work_cost`` and ``total_commercial_material_cost``
          are ``Decimal``.
        - ``boq_item_type`` is a ``BoqItemType`` when the tag is known,
          otherwise the raw string is kept.
    Non-goals:
        - Does not reject negative costs; the engines assume non-negative
          inputs and do not police them.
    """

    id: str
    client_position_id: str | None = None
    detail_cost_category_id: str | None = None
    boq_item_type: BoqItemType | str = BoqItemType.WORK
    total_commercial_work_cost: Decimal = Decimal("0")
    total_commercial_material_cost: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "total_commercial_work_cost",
            to_decimal(self.total_commercial_work_cost, "total_commercial_work_cost"),
        )
        object.__setattr__(
            self,
            "total_commercial_material_cost",
            to_decimal(
                self.total_commercial_material_cost, "total_commercial_material_cost"
            ),
        )
        if (
            not isinstance(self.boq_item_type, BoqItemType)
            and self.boq_item_type in _KNOWN_TYPES
        ):
            object.__setattr__(self, "boq_item_type", BoqItemType(self.boq_item_type))

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> BoqItem:
        """Build from a ``boq_items`` row as returned by the data layer."""
        return cls(
            id=str(row["id"]),
            client_position_id=row.get("client_position_id"),
            detail_cost_category_id=row.get("detail_cost_category_id"),
            boq_item_type=row.get("boq_item_type") or BoqItemType.WORK,
            total_commercial_work_cost=row.get("total_commercial_work_cost"),
            total_commercial_material_cost=row.get("total_commercial_material_cost"),
        )
