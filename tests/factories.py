"""Builders and fixed ids for test data."""

from decimal import Decimal

from tender_kernel.domain import BoqItem, BoqItemType

# Cost categories (parent) and detail cost categories used across tests.
CAT_CONCRETE = "cat-concrete"
CAT_FINISHING = "cat-finishing"

DET_FORMWORK = "det-formwork"
DET_REBAR = "det-rebar"
DET_PLASTER = "det-plaster"
DET_PAINT = "det-paint"


def make_item(
    item_id: str,
    detail_id: str | None,
    work: str | int | Decimal = "0",
    material: str | int | Decimal = "0",
    position_id: str = "pos-1",
    item_type: BoqItemType | str = BoqItemType.WORK,
) -> BoqItem:
    return BoqItem(
        id=item_id,
        client_position_id=position_id,
        detail_cost_category_id=detail_id,
        boq_item_type=item_type,
        total_commercial_work_cost=work,
        total_commercial_material_cost=material,
    )
