"""
Service layer: stateful orchestration around the pure engines.

Services read settings through ``tender_config`` and pass plain values to
``tender_engines``.  They never load or persist data themselves.
"""

from tender_services.redistribution_service import (
    NO_ITEMS_ERROR,
    RedistributionOutcome,
    RedistributionService,
)
from tender_services.snapshots import (
    RestoredRedistribution,
    build_snapshot,
    dumps_snapshot,
    loads_snapshot,
    restore_from_records,
    restore_snapshot,
    snapshot_records,
)

__all__ = [
    "NO_ITEMS_ERROR",
    "RedistributionOutcome",
    "RedistributionService",
    "RestoredRedistribution",
    "build_snapshot",
    "dumps_snapshot",
    "loads_snapshot",
    "restore_from_records",
    "restore_snapshot",
    "snapshot_records",
]
