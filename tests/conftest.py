"""
Shared fixtures for the tender estimating test suite.

Everything here is pure data: BOQ item snapshots, the category hierarchy
and engine settings.  No database and no settings files.
"""

from decimal import Decimal

import pytest

from tender_config.schema import EngineSettings, RoundingSettings
from tender_kernel.domain import BoqItem, DetailCategoryHierarchy, build_category_hierarchy
from tender_kernel.logging_config import LogContext, reset_logging
from tests.factories import (
    CAT_CONCRETE,
    CAT_FINISHING,
    DET_FORMWORK,
    DET_PAINT,
    DET_PLASTER,
    DET_REBAR,
    make_item,
)


@pytest.fixture(autouse=True)
def _clean_log_context():
    """Keep LogContext and logger config from leaking between tests."""
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


@pytest.fixture
def hierarchy() -> DetailCategoryHierarchy:
    return build_category_hierarchy(
        categories=[
            {"id": CAT_CONCRETE, "name": "Concrete works"},
            {"id": CAT_FINISHING, "name": "Finishing"},
        ],
        detail_categories=[
            {"id": DET_FORMWORK, "cost_category_id": CAT_CONCRETE, "name": "Formwork"},
            {"id": DET_REBAR, "cost_category_id": CAT_CONCRETE, "name": "Rebar"},
            {
                "id": DET_PLASTER,
                "cost_category_id": CAT_FINISHING,
                "name": "Plaster",
                "location": "Floor 2",
            },
            {"id": DET_PAINT, "cost_category_id": CAT_FINISHING, "name": "Paint"},
        ],
    )


@pytest.fixture
def items() -> list[BoqItem]:
    """Two concrete items and two finishing items (work total 1200)."""
    return [
        make_item("i-form", DET_FORMWORK, work="100", material="40"),
        make_item("i-rebar", DET_REBAR, work="300", material="60", position_id="pos-2"),
        make_item("i-plaster", DET_PLASTER, work="200", position_id="pos-3"),
        make_item("i-paint", DET_PAINT, work="600", material="10", position_id="pos-3"),
    ]


@pytest.fixture
def settings() -> EngineSettings:
    return EngineSettings(
        balance_tolerance=Decimal("0.01"),
        rounding=RoundingSettings(step=Decimal("5"), error_threshold=Decimal("1")),
    )
