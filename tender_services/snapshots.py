"""
tender_services.snapshots -- Save / restore payloads for redistribution runs.

Responsibility:
    Turn a redistribution run (rules, targets, per-item results) into a
    JSON-shaped payload keyed by tender and markup tactic, and back.  The
    persistence collaborator stores the payload opaquely; restoring it must
    reproduce the exact rule and target configuration.

Architecture: tender_services -- imperative shell.
    No storage access here: callers persist the dicts / records produced.

Invariants enforced:
    - Amounts are serialised as decimal strings, so a save / restore round
      trip is exact.
    - Restored totals and the balance flag are recomputed from the results,
      never trusted from the payload.

Failure modes:
    - MissingSnapshotKeyError when tender or tactic id is empty.
    - EmptySnapshotError when there are no results to save.
    - SnapshotError when a payload to restore is malformed.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from tender_engines.redistribution import (
    DEFAULT_BALANCE_TOLERANCE,
    RedistributionCalculation,
    RedistributionResult,
    summarize_results,
)
from tender_kernel.domain.selection import SourceRule, TargetCost
from tender_kernel.exceptions import (
    EmptySnapshotError,
    MissingSnapshotKeyError,
    SnapshotError,
)
from tender_kernel.logging_config import get_logger

logger = get_logger("services.snapshots")


@dataclass(frozen=True)
class RestoredRedistribution:
    """A redistribution run rebuilt from a saved payload."""

    tender_id: str
    markup_tactic_id: str
    rules: tuple[SourceRule, ...]
    targets: tuple[TargetCost, ...]
    calculation: RedistributionCalculation

    @property
    def results(self) -> tuple[RedistributionResult, ...]:
        return self.calculation.results


def rules_payload(
    rules: Iterable[SourceRule],
    targets: Iterable[TargetCost],
) -> dict[str, list[dict[str, Any]]]:
    """The ``redistribution_rules`` part of a snapshot."""
    return {
        "deductions": [rule.to_dict() for rule in rules],
        "targets": [target.to_dict() for target in targets],
    }


def build_snapshot(
    tender_id: str,
    markup_tactic_id: str,
    rules: Sequence[SourceRule],
    targets: Sequence[TargetCost],
    results: Sequence[RedistributionResult],
) -> dict[str, Any]:
    """
    Build the payload saved for one tender / markup tactic pair.

    Raises:
        MissingSnapshotKeyError: tender_id or markup_tactic_id is empty.
        EmptySnapshotError: results is empty.
    """
    if not tender_id:
        raise MissingSnapshotKeyError("tender_id")
    if not markup_tactic_id:
        raise MissingSnapshotKeyError("markup_tactic_id")
    if not results:
        raise EmptySnapshotError()

    logger.info("snapshot_built", extra={
        "tender_id": tender_id,
        "markup_tactic_id": markup_tactic_id,
        "result_count": len(results),
        "rule_count": len(rules),
        "target_count": len(targets),
    })
    return {
        "tender_id": tender_id,
        "markup_tactic_id": markup_tactic_id,
        "redistribution_rules": rules_payload(rules, targets),
        "results": [result.to_dict() for result in results],
    }


def snapshot_records(
    snapshot: Mapping[str, Any],
    created_by: str | None = None,
) -> list[dict[str, Any]]:
    """Flatten a snapshot into one storage record per BOQ item.

    Every record carries the full ``redistribution_rules`` payload so any
    single row is enough to restore the configuration.
    """
    return [
        {
            "tender_id": snapshot["tender_id"],
            "markup_tactic_id": snapshot["markup_tactic_id"],
            **result,
            "redistribution_rules": snapshot["redistribution_rules"],
            "created_by": created_by,
        }
        for result in snapshot["results"]
    ]


def _require(data: Mapping[str, Any], key: str) -> Any:
    if key not in data or data[key] is None:
        raise SnapshotError(f"missing '{key}'")
    return data[key]


def _entries(value: Any, key: str) -> list[Mapping[str, Any]]:
    entries = list(value or [])
    for entry in entries:
        if not isinstance(entry, Mapping):
            raise SnapshotError(f"'{key}' entries must be mappings")
    return entries


def restore_snapshot(
    payload: Mapping[str, Any],
    balance_tolerance: Decimal = DEFAULT_BALANCE_TOLERANCE,
) -> RestoredRedistribution:
    """
    Rebuild rules, targets and results from a saved payload.

    Raises:
        SnapshotError: if required keys are missing or values are invalid.
    """
    if not isinstance(payload, Mapping):
        raise SnapshotError("payload must be a mapping")

    rules_data = _require(payload, "redistribution_rules")
    if not isinstance(rules_data, Mapping):
        raise SnapshotError("'redistribution_rules' must be a mapping")

    try:
        rules = tuple(
            SourceRule.from_dict(d)
            for d in _entries(rules_data.get("deductions"), "deductions")
        )
        targets = tuple(
            TargetCost.from_dict(d)
            for d in _entries(rules_data.get("targets"), "targets")
        )
        results = tuple(
            RedistributionResult.from_dict(d)
            for d in _entries(_require(payload, "results"), "results")
        )
    except (KeyError, TypeError, ValueError) as e:
        raise SnapshotError(str(e)) from e

    restored = RestoredRedistribution(
        tender_id=str(_require(payload, "tender_id")),
        markup_tactic_id=str(_require(payload, "markup_tactic_id")),
        rules=rules,
        targets=targets,
        calculation=summarize_results(results, balance_tolerance),
    )
    logger.info("snapshot_restored", extra={
        "tender_id": restored.tender_id,
        "markup_tactic_id": restored.markup_tactic_id,
        "result_count": len(results),
        "is_balanced": restored.calculation.is_balanced,
    })
    return restored


def restore_from_records(
    records: Sequence[Mapping[str, Any]],
    balance_tolerance: Decimal = DEFAULT_BALANCE_TOLERANCE,
) -> RestoredRedistribution | None:
    """Restore from per-item storage records; ``None`` when nothing was saved."""
    if not records:
        return None
    first = records[0]
    payload = {
        "tender_id": first.get("tender_id"),
        "markup_tactic_id": first.get("markup_tactic_id"),
        "redistribution_rules": first.get("redistribution_rules"),
        "results": list(records),
    }
    return restore_snapshot(payload, balance_tolerance)


def dumps_snapshot(snapshot: Mapping[str, Any]) -> str:
    """JSON text for a snapshot (stable key order)."""
    return json.dumps(snapshot, sort_keys=True, ensure_ascii=False, default=str)


def loads_snapshot(
    text: str,
    balance_tolerance: Decimal = DEFAULT_BALANCE_TOLERANCE,
) -> RestoredRedistribution:
    """Parse JSON text produced by ``dumps_snapshot`` and restore it."""
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise SnapshotError(f"not valid JSON: {e.msg}") from e
    return restore_snapshot(payload, balance_tolerance)
