"""
Module: tender_engines.redistribution
Responsibility:
    Run a complete cost redistribution: deduct from source categories,
    add the deducted total to target categories, and report per-item
    before/after work costs together with the balance check.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Composes tender_engines.deduction and tender_engines.addition.

Invariants enforced:
    - final_work_cost == original_work_cost - deducted_amount + added_amount
      for every item.
    - is_balanced == |total_deducted - total_added| < balance_tolerance
      (0.01 by default).  An empty target set leaves the whole deduction
      unabsorbed; that is reported through is_balanced, never raised.
    - Determinism: identical inputs produce identical outputs; nothing is
      cached between calls and inputs are never mutated.

Failure modes:
    - None.  Empty inputs degrade to all-zero results.

Usage:
    from tender_engines.redistribution import calculate_redistribution
    from tender_kernel.domain import BoqItem, SourceRule, TargetCost

    calc = calculate_redistribution(
        items=[BoqItem(id="a", detail_cost_category_id="D1",
                       total_commercial_work_cost="100")],
        rules=[SourceRule.detail("D1", percentage=10)],
        targets=[TargetCost.detail("D2")],
    )
    calc.is_balanced  # False: nothing in D2 can absorb the deduction
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from tender_engines.addition import calculate_additions
from tender_engines.category_resolver import HierarchyLike
from tender_engines.deduction import apply_deductions, calculate_deductions
from tender_engines.tracer import traced_engine
from tender_kernel.domain.amounts import ZERO, sum_decimals, to_decimal
from tender_kernel.domain.boq import BoqItem
from tender_kernel.domain.selection import SourceRule, TargetCost
from tender_kernel.logging_config import get_logger

logger = get_logger("engines.redistribution")

DEFAULT_BALANCE_TOLERANCE = Decimal("0.01")


@dataclass(frozen=True)
class RedistributionResult:
    """
    Redistribution outcome for one BOQ item.

    Guarantees:
        - ``final_work_cost == original_work_cost - deducted_amount + added_amount``.
    """

    boq_item_id: str
    original_work_cost: Decimal
    deducted_amount: Decimal
    added_amount: Decimal
    final_work_cost: Decimal

    @property
    def net_change(self) -> Decimal:
        return self.added_amount - self.deducted_amount

    def to_dict(self) -> dict[str, Any]:
        return {
            "boq_item_id": self.boq_item_id,
            "original_work_cost": str(self.original_work_cost),
            "deducted_amount": str(self.deducted_amount),
            "added_amount": str(self.added_amount),
            "final_work_cost": str(self.final_work_cost),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RedistributionResult:
        original = to_decimal(data.get("original_work_cost"), "original_work_cost")
        deducted = to_decimal(data.get("deducted_amount"), "deducted_amount")
        added = to_decimal(data.get("added_amount"), "added_amount")
        final = data.get("final_work_cost")
        return cls(
            boq_item_id=str(data["boq_item_id"]),
            original_work_cost=original,
            deducted_amount=deducted,
            added_amount=added,
            final_work_cost=(
                original - deducted + added
                if final is None
                else to_decimal(final, "final_work_cost")
            ),
        )


@dataclass(frozen=True)
class RedistributionCalculation:
    """
    Complete redistribution run.

    Guarantees:
        - ``results`` holds one entry per input item, in input order.
        - ``total_deducted`` / ``total_added`` are the sums over ``results``.
    Non-goals:
        - Does not persist anything; callers own storage.
    """

    results: tuple[RedistributionResult, ...]
    total_deducted: Decimal
    total_added: Decimal
    is_balanced: bool

    @property
    def imbalance(self) -> Decimal:
        """Deducted amount that no target absorbed (negative if over-added)."""
        return self.total_deducted - self.total_added

    def result_for(self, boq_item_id: str) -> RedistributionResult | None:
        for result in self.results:
            if result.boq_item_id == boq_item_id:
                return result
        return None


def is_balanced(
    total_deducted: Decimal,
    total_added: Decimal,
    balance_tolerance: Decimal = DEFAULT_BALANCE_TOLERANCE,
) -> bool:
    return abs(total_deducted - total_added) < balance_tolerance


@traced_engine(
    "redistribution", "1.0", fingerprint_fields=("rules", "targets", "balance_tolerance")
)
def calculate_redistribution(
    items: Sequence[BoqItem],
    rules: Sequence[SourceRule],
    targets: Sequence[TargetCost],
    hierarchy: HierarchyLike = None,
    balance_tolerance: Decimal = DEFAULT_BALANCE_TOLERANCE,
) -> RedistributionCalculation:
    """
    Deduct, add and assemble per-item results.

    Args:
        items: BOQ item snapshot for one tender.
        rules: Source rules (what to deduct, and how much).
        targets: Target costs (where the deducted amount goes).
        hierarchy: Detail -> parent category lookup.
        balance_tolerance: Largest accepted |deducted - added| gap (exclusive).

    Returns:
        RedistributionCalculation with one result per item.
    """
    logger.info("redistribution_started", extra={
        "item_count": len(items),
        "rule_count": len(rules),
        "target_count": len(targets),
    })

    deductions = calculate_deductions(items, rules, hierarchy)
    item_deductions = apply_deductions(items, deductions)
    total_deducted = sum_decimals(d.deducted for d in item_deductions.values())

    additions = calculate_additions(items, targets, total_deducted, hierarchy)
    total_added = sum_decimals(additions.values())

    results = tuple(
        RedistributionResult(
            boq_item_id=item.id,
            original_work_cost=item_deductions[item.id].original,
            deducted_amount=item_deductions[item.id].deducted,
            added_amount=additions.get(item.id, ZERO),
            final_work_cost=(
                item_deductions[item.id].original
                - item_deductions[item.id].deducted
                + additions.get(item.id, ZERO)
            ),
        )
        for item in items
    )

    balanced = is_balanced(total_deducted, total_added, to_decimal(balance_tolerance))

    if balanced:
        logger.info("redistribution_completed", extra={
            "total_deducted": str(total_deducted),
            "total_added": str(total_added),
            "is_balanced": True,
        })
    else:
        logger.warning("redistribution_unbalanced", extra={
            "total_deducted": str(total_deducted),
            "total_added": str(total_added),
            "imbalance": str(total_deducted - total_added),
        })

    return RedistributionCalculation(
        results=results,
        total_deducted=total_deducted,
        total_added=total_added,
        is_balanced=balanced,
    )


def summarize_results(
    results: Iterable[RedistributionResult],
    balance_tolerance: Decimal = DEFAULT_BALANCE_TOLERANCE,
) -> RedistributionCalculation:
    """Rebuild totals and the balance flag from previously saved results."""
    results = tuple(results)
    total_deducted = sum_decimals(r.deducted_amount for r in results)
    total_added = sum_decimals(r.added_amount for r in results)
    return RedistributionCalculation(
        results=results,
        total_deducted=total_deducted,
        total_added=total_added,
        is_balanced=is_balanced(total_deducted, total_added, to_decimal(balance_tolerance)),
    )
