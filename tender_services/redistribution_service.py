"""
RedistributionService -- validate, calculate, round and snapshot a run.

Composes the pure engines (rule validation, redistribution, result rows,
compensated rounding) with the active engine settings.

Architecture: tender_services -- imperative shell.
    The service receives data snapshots (BOQ items, positions, hierarchy)
    from the caller and returns values.  Loading and saving rows is the
    caller's responsibility.

Invariants enforced:
    - Rules are validated before anything is calculated; an invalid rule
      set yields errors and no calculation, never an exception.
    - Engine parameters come from ``EngineSettings`` only.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from tender_config import get_active_settings
from tender_config.schema import EngineSettings
from tender_engines.category_resolver import HierarchyLike
from tender_engines.positions import CommercialPosition, smart_round_positions
from tender_engines.redistribution import (
    RedistributionCalculation,
    RedistributionResult,
    calculate_redistribution,
)
from tender_engines.result_rows import (
    ClientPosition,
    ResultRow,
    build_result_rows,
    smart_round_results,
)
from tender_engines.rule_validation import validate_redistribution_rules
from tender_kernel.domain.boq import BoqItem
from tender_kernel.domain.dtos import ValidationError, ValidationResult
from tender_kernel.domain.selection import SourceRule, TargetCost
from tender_kernel.logging_config import LogContext, get_logger
from tender_services import snapshots
from tender_services.snapshots import RestoredRedistribution

logger = get_logger("services.redistribution")

NO_ITEMS_ERROR = ValidationError(
    code="NO_ITEMS",
    message="No data to calculate",
    field="items",
)


@dataclass(frozen=True)
class RedistributionOutcome:
    """Validation result plus the calculation when the rules were valid."""

    validation: ValidationResult
    calculation: RedistributionCalculation | None = None

    @property
    def success(self) -> bool:
        return self.validation.is_valid and self.calculation is not None

    @property
    def errors(self) -> tuple[ValidationError, ...]:
        return self.validation.errors


class RedistributionService:
    """Runs cost redistributions for a tender.

    Contract:
        - ``run()`` validates and calculates; it does not raise for bad rules.
        - ``build_snapshot()`` / ``restore_snapshot()`` produce and read the
          payload saved per tender and markup tactic.
        - ``round_result_rows()`` / ``round_positions()`` apply the configured
          rounding step.

    Non-goals:
        - Does NOT load BOQ items or categories (caller provides snapshots).
        - Does NOT persist anything (caller stores the snapshot).
    """

    def __init__(self, settings: EngineSettings | None = None) -> None:
        self._settings = settings or get_active_settings()

    @property
    def settings(self) -> EngineSettings:
        return self._settings

    def validate(
        self,
        rules: Sequence[SourceRule],
        targets: Sequence[TargetCost],
    ) -> ValidationResult:
        return validate_redistribution_rules(rules, targets)

    def run(
        self,
        items: Sequence[BoqItem],
        rules: Sequence[SourceRule],
        targets: Sequence[TargetCost],
        hierarchy: HierarchyLike = None,
        *,
        tender_id: str | None = None,
        markup_tactic_id: str | None = None,
    ) -> RedistributionOutcome:
        """Validate the rules, then calculate the redistribution.

        Args:
            items: BOQ item snapshot of the tender.
            rules: Source rules.
            targets: Target costs.
            hierarchy: Detail -> parent category lookup.
            tender_id: Only used for log context.
            markup_tactic_id: Only used for log context.

        Returns:
            RedistributionOutcome; ``calculation`` is None when validation fails.
        """
        with LogContext.bind(tender_id=tender_id, markup_tactic_id=markup_tactic_id):
            validation = self.validate(rules, targets)
            if not validation:
                logger.info("redistribution_rejected", extra={
                    "error_codes": [e.code for e in validation.errors],
                })
                return RedistributionOutcome(validation=validation)

            if not items:
                logger.info("redistribution_rejected", extra={
                    "error_codes": [NO_ITEMS_ERROR.code],
                })
                return RedistributionOutcome(
                    validation=ValidationResult.failure(NO_ITEMS_ERROR)
                )

            calculation = calculate_redistribution(
                items,
                rules,
                targets,
                hierarchy,
                balance_tolerance=self._settings.balance_tolerance,
            )
            return RedistributionOutcome(validation=validation, calculation=calculation)

    def build_result_rows(
        self,
        positions: Sequence[ClientPosition],
        items: Iterable[BoqItem],
        results: Iterable[RedistributionResult],
        *,
        rounded: bool = True,
    ) -> list[ResultRow]:
        """Result rows for display / export, rounded unless ``rounded=False``."""
        rows = build_result_rows(positions, items, results)
        return self.round_result_rows(rows) if rounded else rows

    def round_result_rows(self, rows: Sequence[ResultRow]) -> list[ResultRow]:
        rounding = self._settings.rounding
        return smart_round_results(
            rows,
            step=rounding.step,
            minimum_value=rounding.minimum_value,
            error_threshold=rounding.error_threshold,
        )

    def round_positions(
        self, positions: Sequence[CommercialPosition]
    ) -> list[CommercialPosition]:
        rounding = self._settings.rounding
        return smart_round_positions(
            positions,
            step=rounding.step,
            minimum_value=rounding.minimum_value,
            error_threshold=rounding.error_threshold,
        )

    def build_snapshot(
        self,
        tender_id: str,
        markup_tactic_id: str,
        rules: Sequence[SourceRule],
        targets: Sequence[TargetCost],
        results: Sequence[RedistributionResult],
    ) -> dict[str, Any]:
        with LogContext.bind(tender_id=tender_id, markup_tactic_id=markup_tactic_id):
            return snapshots.build_snapshot(
                tender_id, markup_tactic_id, rules, targets, results
            )

    def restore_snapshot(self, payload: Mapping[str, Any]) -> RestoredRedistribution:
        return snapshots.restore_snapshot(payload, self._settings.balance_tolerance)

    def dumps_snapshot(self, snapshot: Mapping[str, Any]) -> str:
        return snapshots.dumps_snapshot(snapshot)

    def loads_snapshot(self, text: str) -> RestoredRedistribution:
        return snapshots.loads_snapshot(text, self._settings.balance_tolerance)
