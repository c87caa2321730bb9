"""
Module: tender_engines.deduction
Responsibility:
    Compute how much work cost each source rule removes, and spread each
    rule's deduction over the BOQ items it selected.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Depends on tender_engines.category_resolver.

Invariants enforced:
    - A rule that selects no items is skipped: it contributes nothing and
      is not an error.
    - Within one rule, items share the deduction in proportion to their
      own work cost; a zero-cost bucket falls back to an equal split.
    - Deductions from several rules accumulate additively per item.
    - Purity: no clock access, no I/O.

Failure modes:
    - None.  Degenerate inputs (no items, zero costs, unknown item ids)
      degrade to zero contributions.

Usage:
    from tender_engines.deduction import calculate_deductions, apply_deductions

    deductions = calculate_deductions(items, rules, hierarchy)
    per_item = apply_deductions(items, deductions)
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal

from tender_engines.category_resolver import (
    HierarchyLike,
    matching_items,
    selection_key,
)
from tender_engines.tracer import traced_engine
from tender_kernel.domain.amounts import ZERO, sum_decimals
from tender_kernel.domain.boq import BoqItem
from tender_kernel.domain.selection import SourceRule
from tender_kernel.logging_config import get_logger

logger = get_logger("engines.deduction")

_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class RuleDeduction:
    """
    Amount one source rule removes from its category.

    Guarantees:
        - ``deducted_amount == base_cost * percentage / 100``.
        - ``affected_item_ids`` is non-empty and in input order.
    """

    key: str
    deducted_amount: Decimal
    affected_item_ids: tuple[str, ...]
    base_cost: Decimal
    percentage: Decimal


@dataclass(frozen=True)
class ItemDeduction:
    """Work cost of one item before redistribution and what was taken from it."""

    original: Decimal
    deducted: Decimal = ZERO


@traced_engine("deduction", "1.0", fingerprint_fields=("rules",))
def calculate_deductions(
    items: Sequence[BoqItem],
    rules: Sequence[SourceRule],
    hierarchy: HierarchyLike = None,
) -> dict[str, RuleDeduction]:
    """
    Compute the deduction of every source rule that selects at least one item.

    Keys are detail ids for detail rules and ``"cat_" + category_id`` for
    category rules.  When two rules resolve to the same key the later one
    wins; the rule validator rejects such rule sets beforehand.

    Args:
        items: BOQ item snapshot.
        rules: Source rules.
        hierarchy: Detail -> parent category lookup (needed for
            category-level rules only).

    Returns:
        Mapping of rule key to ``RuleDeduction``.
    """
    deductions: dict[str, RuleDeduction] = {}

    for rule in rules:
        key = selection_key(rule)
        selected = matching_items(items, rule, hierarchy) if key else []
        if not selected:
            logger.debug("deduction_rule_skipped", extra={
                "rule_key": key,
                "level": rule.level.value,
                "reason": "no_matching_items" if key else "incomplete_selection",
            })
            continue

        percentage = rule.percentage if rule.percentage is not None else ZERO
        base_cost = sum_decimals(i.total_commercial_work_cost for i in selected)
        deducted = base_cost * percentage / _HUNDRED

        deductions[key] = RuleDeduction(
            key=key,
            deducted_amount=deducted,
            affected_item_ids=tuple(i.id for i in selected),
            base_cost=base_cost,
            percentage=percentage,
        )

    logger.info("deductions_calculated", extra={
        "rule_count": len(rules),
        "applied_rule_count": len(deductions),
        "total_deducted": str(sum_decimals(d.deducted_amount for d in deductions.values())),
    })
    return deductions


@traced_engine("deduction", "1.0")
def apply_deductions(
    items: Sequence[BoqItem],
    deductions: Mapping[str, RuleDeduction],
) -> dict[str, ItemDeduction]:
    """
    Spread every rule's deduction over its affected items.

    Every item gets an entry, starting at zero.  Each rule's amount is split
    by the item's share of the rule's total work cost; if that total is zero
    the amount is split equally.  Ids not present in *items* are ignored.

    Returns:
        Mapping of item id to ``ItemDeduction``.
    """
    by_id = {item.id: item for item in items}
    deducted: dict[str, Decimal] = {item.id: ZERO for item in items}

    for bucket in deductions.values():
        affected = [by_id[item_id] for item_id in bucket.affected_item_ids if item_id in by_id]
        if not affected:
            continue

        total_cost = sum_decimals(i.total_commercial_work_cost for i in affected)

        if total_cost == ZERO:
            share = bucket.deducted_amount / Decimal(len(affected))
            for item in affected:
                deducted[item.id] += share
            continue

        for item in affected:
            proportion = item.total_commercial_work_cost / total_cost
            deducted[item.id] += bucket.deducted_amount * proportion

    return {
        item.id: ItemDeduction(
            original=item.total_commercial_work_cost,
            deducted=deducted[item.id],
        )
        for item in items
    }
