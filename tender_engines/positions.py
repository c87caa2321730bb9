"""
Module: tender_engines.positions
Responsibility:
    Rounded unit prices for commercial positions (the commerce overview of
    a tender), using the same compensated rounding as redistribution rows.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any

from tender_engines.rounding import DEFAULT_ERROR_THRESHOLD, DEFAULT_STEP, smart_round
from tender_kernel.domain.amounts import ZERO, to_decimal


@dataclass(frozen=True)
class CommercialPosition:
    """A position with its commercial material and work totals."""

    id: str
    position_number: int = 0
    position_name: str = ""
    manual_volume: Decimal | None = None
    material_cost_total: Decimal = ZERO
    work_cost_total: Decimal = ZERO

    rounded_material_unit_price: Decimal | None = None
    rounded_work_unit_price: Decimal | None = None
    rounded_material_cost_total: Decimal | None = None
    rounded_work_cost_total: Decimal | None = None

    def __post_init__(self) -> None:
        if self.manual_volume is not None:
            object.__setattr__(self, "manual_volume", to_decimal(self.manual_volume))
        object.__setattr__(self, "material_cost_total", to_decimal(self.material_cost_total))
        object.__setattr__(self, "work_cost_total", to_decimal(self.work_cost_total))

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> CommercialPosition:
        return cls(
            id=str(row["id"]),
            position_number=row.get("position_number") or 0,
            position_name=row.get("position_name") or "",
            manual_volume=row.get("manual_volume"),
            material_cost_total=row.get("material_cost_total"),
            work_cost_total=row.get("work_cost_total"),
        )


def smart_round_positions(
    positions: Sequence[CommercialPosition],
    step: Any = DEFAULT_STEP,
    minimum_value: Any = None,
    error_threshold: Any = DEFAULT_ERROR_THRESHOLD,
) -> list[CommercialPosition]:
    """Round material and work unit prices; positions without a manual volume stay unrounded."""
    prices = smart_round(
        positions,
        get_quantity=lambda p: p.manual_volume or ZERO,
        get_material_total=lambda p: p.material_cost_total,
        get_work_total=lambda p: p.work_cost_total,
        step=step,
        minimum_value=minimum_value,
        error_threshold=error_threshold,
    )
    return [
        replace(
            position,
            rounded_material_unit_price=p.material_unit_price,
            rounded_work_unit_price=p.work_unit_price,
            rounded_material_cost_total=p.material_total,
            rounded_work_cost_total=p.work_total,
        )
        for position, p in zip(positions, prices)
    ]
