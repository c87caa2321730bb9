#!/usr/bin/env python3
"""
Cost redistribution walkthrough on a small tender.

Builds a category hierarchy, a handful of BOQ items and client positions,
then runs the full service pipeline: rule validation, redistribution,
result rows with compensated rounding, and a snapshot round trip.

Usage:
    python3 scripts/demo_redistribution.py
    python3 scripts/demo_redistribution.py --percentage 12.5
    python3 scripts/demo_redistribution.py --config path/to/settings.yaml --json
"""

import argparse
import logging
import sys
from decimal import Decimal
from pathlib import Path

# ---------------------------------------------------------------------------
# Project root on sys.path
# ---------------------------------------------------------------------------
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from tender_config import get_active_settings  # noqa: E402
from tender_engines.result_rows import ClientPosition, rounded_grand_totals  # noqa: E402
from tender_engines.rule_validation import get_error_messages  # noqa: E402
from tender_kernel.domain import (  # noqa: E402
    BoqItem,
    SourceRule,
    TargetCost,
    build_category_hierarchy,
)
from tender_kernel.logging_config import configure_logging  # noqa: E402
from tender_services import RedistributionService  # noqa: E402

# ---------------------------------------------------------------------------
# Sample tender
# ---------------------------------------------------------------------------

CATEGORIES = [
    {"id": "concrete", "name": "Concrete works"},
    {"id": "finishing", "name": "Finishing"},
]

DETAIL_CATEGORIES = [
    {"id": "formwork", "cost_category_id": "concrete", "name": "Formwork"},
    {"id": "rebar", "cost_category_id": "concrete", "name": "Rebar"},
    {"id": "plaster", "cost_category_id": "finishing", "name": "Plaster", "location": "Floor 2"},
    {"id": "paint", "cost_category_id": "finishing", "name": "Paint"},
]

POSITIONS = [
    ClientPosition(id="p1", position_number=1, work_name="Foundation slab", volume=Decimal("12")),
    ClientPosition(id="p2", position_number=2, work_name="Columns", volume=Decimal("7")),
    ClientPosition(id="p3", position_number=3, work_name="Wall finishing", volume=Decimal("240")),
    ClientPosition(
        id="p4", position_number=4, work_name="Extra painting", volume=Decimal("35"),
        is_additional=True, parent_position_id="p3",
    ),
]

ITEMS = [
    BoqItem(id="b1", client_position_id="p1", detail_cost_category_id="formwork",
            boq_item_type="раб", total_commercial_work_cost="18450.40"),
    BoqItem(id="b2", client_position_id="p1", detail_cost_category_id="rebar",
            boq_item_type="мат", total_commercial_material_cost="52310.00"),
    BoqItem(id="b3", client_position_id="p2", detail_cost_category_id="rebar",
            boq_item_type="раб", total_commercial_work_cost="9312.75"),
    BoqItem(id="b4", client_position_id="p3", detail_cost_category_id="plaster",
            boq_item_type="суб-раб", total_commercial_work_cost="26880.00",
            total_commercial_material_cost="7310.20"),
    BoqItem(id="b5", client_position_id="p4", detail_cost_category_id="paint",
            boq_item_type="раб", total_commercial_work_cost="4115.55"),
]


def _fmt(value: Decimal | None) -> str:
    return "-" if value is None else f"{value:,.2f}"


def main() -> int:
    parser = argparse.ArgumentParser(description="Cost redistribution walkthrough")
    parser.add_argument("--percentage", type=Decimal, default=Decimal("10"),
                        help="Percentage deducted from concrete works (default 10)")
    parser.add_argument("--config", type=Path, default=None,
                        help="Engine settings YAML (default: packaged settings)")
    parser.add_argument("--json", action="store_true",
                        help="Print the saved snapshot as JSON")
    parser.add_argument("--verbose", action="store_true",
                        help="Emit structured engine logs to stderr")
    args = parser.parse_args()

    if args.verbose:
        configure_logging(level=logging.INFO)

    service = RedistributionService(get_active_settings(args.config))
    hierarchy = build_category_hierarchy(CATEGORIES, DETAIL_CATEGORIES)

    rules = [SourceRule.category("concrete", args.percentage, category_name="Concrete works")]
    targets = [TargetCost.category("finishing", category_name="Finishing")]

    outcome = service.run(ITEMS, rules, targets, hierarchy,
                          tender_id="demo-tender", markup_tactic_id="demo-tactic")
    if not outcome.success:
        for message in get_error_messages(outcome.errors):
            print(f"  error: {message}")
        return 1

    calc = outcome.calculation
    print(f"Deducted {_fmt(calc.total_deducted)}, added {_fmt(calc.total_added)}, "
          f"balanced: {calc.is_balanced}")
    print()
    print(f"{'item':<6}{'category':<36}{'before':>14}{'after':>14}")
    for result in calc.results:
        item = next(i for i in ITEMS if i.id == result.boq_item_id)
        name = hierarchy.full_name(item.detail_cost_category_id) or ""
        print(f"{item.id:<6}{name:<36}{_fmt(result.original_work_cost):>14}"
              f"{_fmt(result.final_work_cost):>14}")

    rows = service.build_result_rows(POSITIONS, ITEMS, calc.results)
    print()
    print(f"{'#':<4}{'position':<20}{'qty':>8}{'work price':>14}{'rounded':>12}")
    for row in rows:
        print(f"{row.position_number:<4}{row.work_name:<20}{_fmt(row.quantity):>8}"
              f"{_fmt(row.work_unit_price_after):>14}{_fmt(row.rounded_work_unit_price_after):>12}")

    totals = rounded_grand_totals(rows)
    print()
    print(f"Rounded totals: materials {_fmt(totals.total_materials)}, "
          f"works {_fmt(totals.total_works)}, grand {_fmt(totals.total)}")

    snapshot = service.build_snapshot("demo-tender", "demo-tactic", rules, targets, calc.results)
    restored = service.restore_snapshot(snapshot)
    assert restored.calculation == calc

    if args.json:
        print(service.dumps_snapshot(snapshot))
    return 0


if __name__ == "__main__":
    sys.exit(main())
