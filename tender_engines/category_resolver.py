"""
tender_engines.category_resolver -- Match BOQ items against category selections.

Responsibility:
    Decide whether a BOQ item belongs to the category selected by a source
    rule or target cost, and derive the key under which a rule's deduction
    is recorded.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Used by the deduction and addition calculators.

Invariants enforced:
    - Detail selections match on equality of ``detail_cost_category_id``.
    - Category selections match when the item's detail category rolls up
      to the selected parent category through the injected hierarchy.
    - Items without a detail category never match a category selection.

Failure modes:
    - None.  A missing hierarchy, a missing hierarchy entry or an
      incomplete selection all mean "no match".
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from tender_kernel.domain.boq import BoqItem
from tender_kernel.domain.hierarchy import CategoryHierarchy
from tender_kernel.domain.selection import (
    CategoryChoice,
    CategorySelection,
    DetailSelection,
)

HierarchyLike = CategoryHierarchy | Mapping[str, str] | None


def _parent_of(hierarchy: HierarchyLike, detail_id: str) -> str | None:
    if hierarchy is None:
        return None
    if isinstance(hierarchy, Mapping):
        return hierarchy.get(detail_id)
    return hierarchy.parent_of(detail_id)


def matches_rule(
    item: BoqItem,
    choice: CategoryChoice,
    hierarchy: HierarchyLike = None,
) -> bool:
    """True if *item* falls inside the category selected by *choice*."""
    match choice.selector:
        case DetailSelection(detail_cost_category_id=detail_id):
            return item.detail_cost_category_id == detail_id
        case CategorySelection(category_id=category_id):
            if not item.detail_cost_category_id:
                return False
            return _parent_of(hierarchy, item.detail_cost_category_id) == category_id
        case _:
            return False


def matching_items(
    items: Iterable[BoqItem],
    choice: CategoryChoice,
    hierarchy: HierarchyLike = None,
) -> list[BoqItem]:
    """Items selected by *choice*, in input order."""
    return [item for item in items if matches_rule(item, choice, hierarchy)]


def selection_key(choice: CategoryChoice) -> str | None:
    """Deduction bucket key: the detail id, or ``"cat_" + category_id``.

    The prefix keeps a category id from colliding with a detail id that
    happens to share its value.
    """
    match choice.selector:
        case DetailSelection(detail_cost_category_id=detail_id):
            return detail_id
        case CategorySelection(category_id=category_id):
            return f"cat_{category_id}"
        case _:
            return None
