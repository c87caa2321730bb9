"""
Module: tender_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the canonical import surface for the
    service layer.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import tender_kernel (domain values and logging) and sibling
    engine modules.  MUST NOT import tender_services or tender_config.

Invariants enforced:
    - Purity: engines never read clocks, environment or files; settings
      are passed in as parameters by the caller.
    - Decimal-only arithmetic for amounts, prices and quantities.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Public engine entrypoints are traced via ``@traced_engine``
    (see ``tender_engines.tracer``), emitting TENDER_ENGINE_TRACE records.

Usage:
    from tender_engines import calculate_redistribution, validate_redistribution_rules
    from tender_engines import smart_round_results, build_result_rows
"""

from tender_engines.addition import calculate_additions, target_items
from tender_engines.category_resolver import matches_rule, matching_items, selection_key
from tender_engines.contracts import ENGINE_CONTRACTS, EngineContract
from tender_engines.deduction import (
    ItemDeduction,
    RuleDeduction,
    apply_deductions,
    calculate_deductions,
)
from tender_engines.positions import CommercialPosition, smart_round_positions
from tender_engines.redistribution import (
    DEFAULT_BALANCE_TOLERANCE,
    RedistributionCalculation,
    RedistributionResult,
    calculate_redistribution,
    summarize_results,
)
from tender_engines.result_rows import (
    ClientPosition,
    ResultRow,
    RoundedTotals,
    build_result_rows,
    rounded_grand_totals,
    smart_round_results,
)
from tender_engines.rounding import (
    CompensationResult,
    RoundedPrices,
    RoundingItem,
    compensate,
    compensate_error,
    round_to_step,
    smart_round,
)
from tender_engines.rule_validation import (
    RuleErrorCode,
    get_error_messages,
    validate_no_conflicts,
    validate_redistribution_rules,
    validate_source_rules,
    validate_target_costs,
)

__all__ = [
    # Category resolution
    "matches_rule",
    "matching_items",
    "selection_key",
    # Deduction / addition
    "ItemDeduction",
    "RuleDeduction",
    "apply_deductions",
    "calculate_deductions",
    "calculate_additions",
    "target_items",
    # Orchestration
    "DEFAULT_BALANCE_TOLERANCE",
    "RedistributionCalculation",
    "RedistributionResult",
    "calculate_redistribution",
    "summarize_results",
    # Rounding
    "CompensationResult",
    "RoundedPrices",
    "RoundingItem",
    "compensate",
    "compensate_error",
    "round_to_step",
    "smart_round",
    # Rows
    "ClientPosition",
    "CommercialPosition",
    "ResultRow",
    "RoundedTotals",
    "build_result_rows",
    "rounded_grand_totals",
    "smart_round_positions",
    "smart_round_results",
    # Validation
    "RuleErrorCode",
    "get_error_messages",
    "validate_no_conflicts",
    "validate_redistribution_rules",
    "validate_source_rules",
    "validate_target_costs",
    # Contracts
    "ENGINE_CONTRACTS",
    "EngineContract",
]
