"""
Module: tender_engines.addition
Responsibility:
    Distribute the total deducted amount over the BOQ items selected by the
    target costs.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Depends on tender_engines.category_resolver.

Invariants enforced:
    - The target set is the union of items matched by any target; an item
      matched by several targets is counted once.
    - Items outside the target set always receive zero.
    - A zero total deduction or an empty target list short-circuits to
      all-zero additions.
    - Proportional split by work cost; a zero-cost target set falls back
      to an equal split.

Failure modes:
    - None.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from tender_engines.category_resolver import HierarchyLike, matches_rule
from tender_engines.tracer import traced_engine
from tender_kernel.domain.amounts import ZERO, sum_decimals, to_decimal
from tender_kernel.domain.boq import BoqItem
from tender_kernel.domain.selection import TargetCost
from tender_kernel.logging_config import get_logger

logger = get_logger("engines.addition")


def target_items(
    items: Sequence[BoqItem],
    targets: Sequence[TargetCost],
    hierarchy: HierarchyLike = None,
) -> list[BoqItem]:
    """Items matched by at least one target, in input order."""
    return [
        item
        for item in items
        if any(matches_rule(item, target, hierarchy) for target in targets)
    ]


@traced_engine("addition", "1.0", fingerprint_fields=("targets", "total_deduction"))
def calculate_additions(
    items: Sequence[BoqItem],
    targets: Sequence[TargetCost],
    total_deduction: Decimal,
    hierarchy: HierarchyLike = None,
) -> dict[str, Decimal]:
    """
    Compute the amount each item receives from the redistribution pool.

    Args:
        items: BOQ item snapshot.
        targets: Target costs.
        total_deduction: Amount to distribute.
        hierarchy: Detail -> parent category lookup.

    Returns:
        Mapping of item id to added amount (every item present).
    """
    total_deduction = to_decimal(total_deduction, "total_deduction")
    additions: dict[str, Decimal] = {item.id: ZERO for item in items}

    if total_deduction == ZERO or not targets:
        return additions

    selected = target_items(items, targets, hierarchy)
    if not selected:
        logger.warning("addition_no_target_items", extra={
            "target_count": len(targets),
            "total_deduction": str(total_deduction),
        })
        return additions

    total_target_cost = sum_decimals(i.total_commercial_work_cost for i in selected)

    if total_target_cost == ZERO:
        share = total_deduction / Decimal(len(selected))
        for item in selected:
            additions[item.id] = share
        return additions

    for item in selected:
        proportion = item.total_commercial_work_cost / total_target_cost
        additions[item.id] = total_deduction * proportion

    logger.info("additions_calculated", extra={
        "target_count": len(targets),
        "target_item_count": len(selected),
        "total_target_cost": str(total_target_cost),
        "total_deduction": str(total_deduction),
    })
    return additions
