"""
Module: tender_engines.result_rows
Responsibility:
    Roll per-item redistribution results up to client positions (the rows
    shown in the "before / after" table and exported), and round the row
    prices with error compensation.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Uses tender_engines.rounding; consumes RedistributionResult values.

Invariants enforced:
    - Regular positions keep input order; each additional position follows
      its parent row directly.  Additional positions with no regular parent
      are not shown.
    - Items without a result keep their work cost on both sides of the
      table.
    - Only positive material / work costs are summed.
    - Rounding never mutates the input rows; a new row is returned.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any

from tender_engines.redistribution import RedistributionResult
from tender_engines.rounding import DEFAULT_ERROR_THRESHOLD, DEFAULT_STEP, smart_round
from tender_engines.tracer import traced_engine
from tender_kernel.domain.amounts import ZERO, sum_decimals, to_decimal
from tender_kernel.domain.boq import BoqItem
from tender_kernel.logging_config import get_logger

logger = get_logger("engines.result_rows")


@dataclass(frozen=True)
class ClientPosition:
    """A client position (row of the tender's bill of quantities)."""

    id: str
    position_number: int = 0
    position_name: str = ""
    work_name: str = ""
    unit_code: str = ""
    section_number: str | None = None
    item_no: str | None = None
    volume: Decimal | None = None
    manual_volume: Decimal | None = None
    manual_note: str | None = None
    is_additional: bool = False
    parent_position_id: str | None = None
    hierarchy_level: int = 0

    def __post_init__(self) -> None:
        for name in ("volume", "manual_volume"):
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, to_decimal(value, name))

    @property
    def quantity(self) -> Decimal:
        """Manual volume, else client volume, else 1."""
        return self.manual_volume or self.volume or Decimal("1")

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> ClientPosition:
        return cls(
            id=str(row["id"]),
            position_number=row.get("position_number") or 0,
            position_name=row.get("position_name") or "",
            work_name=row.get("work_name") or "",
            unit_code=row.get("unit_code") or "",
            section_number=row.get("section_number"),
            item_no=row.get("item_no"),
            volume=row.get("volume"),
            manual_volume=row.get("manual_volume"),
            manual_note=row.get("manual_note"),
            is_additional=bool(row.get("is_additional")),
            parent_position_id=row.get("parent_position_id"),
            hierarchy_level=row.get("hierarchy_level") or 0,
        )


@dataclass(frozen=True)
class ResultRow:
    """Per-position totals before and after redistribution."""

    position_id: str
    position_number: int
    position_name: str
    work_name: str
    unit_code: str
    section_number: str | None
    item_no: str | None
    client_volume: Decimal | None
    manual_volume: Decimal | None
    manual_note: str | None
    quantity: Decimal
    material_unit_price: Decimal
    work_unit_price_before: Decimal
    work_unit_price_after: Decimal
    total_materials: Decimal
    total_works_before: Decimal
    total_works_after: Decimal
    redistribution_amount: Decimal
    is_leaf: bool
    is_additional: bool

    rounded_material_unit_price: Decimal | None = None
    rounded_work_unit_price_after: Decimal | None = None
    rounded_total_materials: Decimal | None = None
    rounded_total_works: Decimal | None = None


@dataclass(frozen=True)
class RoundedTotals:
    total_materials: Decimal
    total_works: Decimal

    @property
    def total(self) -> Decimal:
        return self.total_materials + self.total_works


def _is_leaf(index: int, positions: Sequence[ClientPosition]) -> bool:
    if index == len(positions) - 1:
        return True
    return positions[index].hierarchy_level >= positions[index + 1].hierarchy_level


def _build_row(
    position: ClientPosition,
    is_leaf: bool,
    position_items: Sequence[BoqItem],
    results: Mapping[str, RedistributionResult],
) -> ResultRow:
    total_materials = ZERO
    works_before = ZERO
    works_after = ZERO
    redistribution = ZERO

    for item in position_items:
        if item.total_commercial_material_cost > ZERO:
            total_materials += item.total_commercial_material_cost

        work_cost = item.total_commercial_work_cost
        if work_cost > ZERO:
            result = results.get(item.id)
            if result is not None:
                works_before += result.original_work_cost
                works_after += result.final_work_cost
                redistribution += result.added_amount - result.deducted_amount
            else:
                works_before += work_cost
                works_after += work_cost

    quantity = position.quantity
    return ResultRow(
        position_id=position.id,
        position_number=position.position_number,
        position_name=position.position_name,
        work_name=position.work_name,
        unit_code=position.unit_code,
        section_number=position.section_number,
        item_no=position.item_no,
        client_volume=position.volume,
        manual_volume=position.manual_volume,
        manual_note=position.manual_note,
        quantity=quantity,
        material_unit_price=total_materials / quantity,
        work_unit_price_before=works_before / quantity,
        work_unit_price_after=works_after / quantity,
        total_materials=total_materials,
        total_works_before=works_before,
        total_works_after=works_after,
        redistribution_amount=redistribution,
        is_leaf=is_leaf,
        is_additional=position.is_additional,
    )


@traced_engine("result_rows", "1.0")
def build_result_rows(
    positions: Sequence[ClientPosition],
    items: Iterable[BoqItem],
    results: Iterable[RedistributionResult],
) -> list[ResultRow]:
    """
    Aggregate item results into one row per client position.

    Args:
        positions: Client positions in display order.
        items: BOQ items of the tender (linked by ``client_position_id``).
        results: Redistribution results (linked by ``boq_item_id``).

    Returns:
        Regular position rows in input order, each followed by the rows of
        its additional positions.
    """
    results_by_item = {r.boq_item_id: r for r in results}
    items_by_position: dict[str, list[BoqItem]] = {}
    for item in items:
        items_by_position.setdefault(item.client_position_id, []).append(item)

    regular = [p for p in positions if not p.is_additional]
    additional_by_parent: dict[str, list[ClientPosition]] = {}
    for p in positions:
        if p.is_additional and p.parent_position_id:
            additional_by_parent.setdefault(p.parent_position_id, []).append(p)

    rows: list[ResultRow] = []
    additional_count = 0
    for i, p in enumerate(regular):
        rows.append(
            _build_row(p, _is_leaf(i, regular), items_by_position.get(p.id, []), results_by_item)
        )
        for extra in additional_by_parent.get(p.id, []):
            # additional rows are always leaves
            rows.append(
                _build_row(extra, True, items_by_position.get(extra.id, []), results_by_item)
            )
            additional_count += 1

    logger.info("result_rows_built", extra={
        "regular_count": len(regular),
        "additional_count": additional_count,
        "result_count": len(results_by_item),
    })
    return rows


def smart_round_results(
    rows: Sequence[ResultRow],
    step: Any = DEFAULT_STEP,
    minimum_value: Any = None,
    error_threshold: Any = DEFAULT_ERROR_THRESHOLD,
) -> list[ResultRow]:
    """Round material and post-redistribution work prices of result rows."""
    prices = smart_round(
        rows,
        get_quantity=lambda r: r.quantity,
        get_material_total=lambda r: r.total_materials,
        get_work_total=lambda r: r.total_works_after,
        step=step,
        minimum_value=minimum_value,
        error_threshold=error_threshold,
    )
    return [
        replace(
            row,
            rounded_material_unit_price=p.material_unit_price,
            rounded_work_unit_price_after=p.work_unit_price,
            rounded_total_materials=p.material_total,
            rounded_total_works=p.work_total,
        )
        for row, p in zip(rows, prices)
    ]


def rounded_grand_totals(rows: Iterable[ResultRow]) -> RoundedTotals:
    """Sum rounded totals, falling back to unrounded values where missing."""
    rows = list(rows)
    return RoundedTotals(
        total_materials=sum_decimals(
            r.total_materials if r.rounded_total_materials is None else r.rounded_total_materials
            for r in rows
        ),
        total_works=sum_decimals(
            r.total_works_after if r.rounded_total_works is None else r.rounded_total_works
            for r in rows
        ),
    )
