"""
Module: tender_engines.rule_validation
Responsibility:
    Validate source rules and target costs before a redistribution run.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Independent of the calculators; callers run it first.

Invariants enforced:
    - Every problem is reported; validation never stops at the first error
      within a stage.
    - 0 < percentage <= 100 for every source rule.
    - A resolved category key appears at most once per list.
    - No key appears in both the source and the target list (checked only
      when both lists are otherwise clean).

Failure modes:
    - None.  Problems are returned as ValidationError values.

Usage:
    from tender_engines.rule_validation import validate_redistribution_rules

    result = validate_redistribution_rules(rules, targets)
    if not result:
        show(get_error_messages(result.errors))
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from decimal import Decimal

from tender_kernel.domain.dtos import ValidationError, ValidationResult
from tender_kernel.domain.selection import CategoryChoice, SourceRule, TargetCost
from tender_kernel.logging_config import get_logger

logger = get_logger("engines.rule_validation")

_HUNDRED = Decimal("100")


class RuleErrorCode:
    """Machine-readable validation error codes."""

    RULES_REQUIRED = "RULES_REQUIRED"
    TARGETS_REQUIRED = "TARGETS_REQUIRED"
    PERCENTAGE_NOT_POSITIVE = "PERCENTAGE_NOT_POSITIVE"
    PERCENTAGE_TOO_LARGE = "PERCENTAGE_TOO_LARGE"
    CATEGORY_REQUIRED = "CATEGORY_REQUIRED"
    DUPLICATE_CATEGORY = "DUPLICATE_CATEGORY"
    SOURCE_TARGET_CONFLICT = "SOURCE_TARGET_CONFLICT"


def _has_duplicates(choices: Iterable[CategoryChoice]) -> bool:
    seen: set[str] = set()
    for choice in choices:
        key = choice.selection_key
        if key is None:
            continue
        if key in seen:
            return True
        seen.add(key)
    return False


def _category_error(list_name: str, index: int) -> ValidationError:
    return ValidationError(
        code=RuleErrorCode.CATEGORY_REQUIRED,
        message="A construction cost category must be selected",
        field=f"{list_name}[{index}].category",
    )


def _duplicate_error(list_name: str) -> ValidationError:
    return ValidationError(
        code=RuleErrorCode.DUPLICATE_CATEGORY,
        message="Duplicate cost categories found. Each cost category may be used only once.",
        field=list_name,
    )


def validate_source_rules(rules: Sequence[SourceRule]) -> list[ValidationError]:
    """Check the source rule list; an empty list yields a single error."""
    if not rules:
        return [
            ValidationError(
                code=RuleErrorCode.RULES_REQUIRED,
                message="At least one deduction rule is required",
                field="sourceRules",
            )
        ]

    errors: list[ValidationError] = []
    for i, rule in enumerate(rules):
        if rule.percentage is None or rule.percentage <= 0:
            errors.append(ValidationError(
                code=RuleErrorCode.PERCENTAGE_NOT_POSITIVE,
                message="Deduction percentage must be greater than 0",
                field=f"sourceRules[{i}].percentage",
            ))
        elif rule.percentage > _HUNDRED:
            errors.append(ValidationError(
                code=RuleErrorCode.PERCENTAGE_TOO_LARGE,
                message="Deduction percentage cannot exceed 100",
                field=f"sourceRules[{i}].percentage",
            ))

        if rule.selector is None:
            errors.append(_category_error("sourceRules", i))

    if _has_duplicates(rules):
        errors.append(_duplicate_error("sourceRules"))

    return errors


def validate_target_costs(targets: Sequence[TargetCost]) -> list[ValidationError]:
    """Check the target list; same shape as source rules, no percentage."""
    if not targets:
        return [
            ValidationError(
                code=RuleErrorCode.TARGETS_REQUIRED,
                message="At least one target cost is required",
                field="targetCosts",
            )
        ]

    errors = [
        _category_error("targetCosts", i)
        for i, target in enumerate(targets)
        if target.selector is None
    ]
    if _has_duplicates(targets):
        errors.append(_duplicate_error("targetCosts"))
    return errors


def validate_no_conflicts(
    rules: Sequence[SourceRule],
    targets: Sequence[TargetCost],
) -> list[ValidationError]:
    """A category cannot be both a source and a target of redistribution."""
    source_keys = {r.selection_key for r in rules} - {None}
    target_keys = {t.selection_key for t in targets} - {None}

    if source_keys & target_keys:
        return [
            ValidationError(
                code=RuleErrorCode.SOURCE_TARGET_CONFLICT,
                message=(
                    "Conflicts found: the same cost categories cannot be both "
                    "a source and a target of redistribution"
                ),
                field="rules",
            )
        ]
    return []


def validate_redistribution_rules(
    rules: Sequence[SourceRule],
    targets: Sequence[TargetCost],
) -> ValidationResult:
    """Run source, target and (when both are clean) conflict validation."""
    source_errors = validate_source_rules(rules)
    target_errors = validate_target_costs(targets)
    errors = source_errors + target_errors

    if not source_errors and not target_errors:
        errors += validate_no_conflicts(rules, targets)

    if errors:
        logger.info("redistribution_rules_invalid", extra={
            "error_count": len(errors),
            "error_codes": sorted({e.code for e in errors}),
        })

    return ValidationResult.from_errors(errors)


def get_error_messages(errors: Iterable[ValidationError]) -> list[str]:
    """Display strings for a list of validation errors."""
    return [error.message for error in errors]
