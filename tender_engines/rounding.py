"""
Module: tender_engines.rounding
Responsibility:
    Round displayed unit prices to a fixed currency step (5 by default) and
    compensate the aggregate rounding error with a largest-remainder pass,
    so the rounded grand total stays close to the computed one.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumed by tender_engines.result_rows and tender_engines.positions,
    the two row collections that are shown and exported with rounded prices.

Invariants enforced:
    - round_to_step returns 0 or a multiple of ``step``; values below
      ``minimum_value`` (``step / 2`` by default) round to 0.
    - Compensation is skipped when |total_error| < error_threshold (1).
    - Compensation walks items by descending fractional part and applies
      whole multiples of ``step`` only; it stops once the remaining error is
      below one step.  The walk is greedy: its order decides which items
      move.
    - Material and work prices are separate pools; one never compensates
      the other.
    - A compensated price never drops below zero.
    - Input rows are never mutated.

Failure modes:
    - None.  Rows with non-positive quantity are left unrounded; rows with a
      non-positive total round to 0 and stay out of the error pool.

Usage:
    from tender_engines.rounding import round_to_step, smart_round

    round_to_step(7.6)  # Decimal("10")
    prices = smart_round(
        rows,
        get_quantity=lambda r: r["quantity"],
        get_work_total=lambda r: r["work_total"],
    )
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal
from typing import Any, TypeVar

from tender_engines.tracer import traced_engine
from tender_kernel.domain.amounts import ZERO, sum_decimals, to_decimal
from tender_kernel.logging_config import get_logger

logger = get_logger("engines.rounding")

T = TypeVar("T")

DEFAULT_STEP = Decimal("5")
DEFAULT_ERROR_THRESHOLD = Decimal("1")

_ONE = Decimal("1")


def round_to_step(
    value: Any,
    step: Any = DEFAULT_STEP,
    minimum_value: Any = None,
) -> Decimal:
    """
    Round *value* to the nearest multiple of *step*.

    Values below *minimum_value* (default ``step / 2``) become 0; halves
    round up (``7.5 -> 10``).
    """
    value = to_decimal(value, "value")
    step = to_decimal(step, "step")
    minimum = step / 2 if minimum_value is None else to_decimal(minimum_value, "minimum_value")

    if value < minimum:
        return ZERO
    return (value / step).quantize(_ONE, rounding=ROUND_HALF_UP) * step


@dataclass(frozen=True)
class RoundingItem:
    """
    Tracking record for one price inside a rounding pass.

    Guarantees:
        - ``error == (rounded_price - original_price) * quantity``.
        - ``fractional_part`` is ``original_price`` minus its floor.
    """

    index: int
    original_price: Decimal
    rounded_price: Decimal
    error: Decimal
    fractional_part: Decimal
    quantity: Decimal

    @classmethod
    def track(
        cls,
        index: int,
        total: Decimal,
        quantity: Decimal,
        step: Decimal = DEFAULT_STEP,
        minimum_value: Decimal | None = None,
    ) -> RoundingItem:
        original = total / quantity
        rounded = round_to_step(original, step, minimum_value)
        return cls(
            index=index,
            original_price=original,
            rounded_price=rounded,
            error=(rounded - original) * quantity,
            fractional_part=original - original.to_integral_value(rounding=ROUND_FLOOR),
            quantity=quantity,
        )


@dataclass(frozen=True)
class CompensationResult:
    """Adjusted prices (sparse, by item index) and the error left uncorrected."""

    adjustments: dict[int, Decimal] = field(default_factory=dict)
    remaining_error: Decimal = ZERO

    @property
    def touched_count(self) -> int:
        return len(self.adjustments)


def compensate(
    items: Sequence[RoundingItem],
    total_error: Any,
    step: Any = DEFAULT_STEP,
    error_threshold: Any = DEFAULT_ERROR_THRESHOLD,
) -> CompensationResult:
    """
    Largest-remainder compensation of a rounding error.

    *total_error* is the correction to apply: a positive value raises
    prices, a negative one lowers them.  Items are visited by descending
    ``fractional_part`` (stable for ties).  Each item absorbs the largest
    multiple of *step* whose quantity-weighted size fits the remaining
    error; the walk stops once less than one step is left.
    """
    total_error = to_decimal(total_error, "total_error")
    step = to_decimal(step, "step")
    error_threshold = to_decimal(error_threshold, "error_threshold")

    if abs(total_error) < error_threshold:
        return CompensationResult(remaining_error=total_error)

    sign = 1 if total_error > ZERO else -1
    remaining = total_error
    adjustments: dict[int, Decimal] = {}

    for item in sorted(items, key=lambda i: i.fractional_part, reverse=True):
        if abs(remaining) < step:
            break
        if item.quantity <= ZERO:
            continue

        max_adjustment = (
            (abs(remaining) / (item.quantity * step)).to_integral_value(rounding=ROUND_FLOOR)
            * step
        )
        if sign < 0:
            # Never push a price below zero.
            max_adjustment = min(max_adjustment, item.rounded_price)

        if max_adjustment >= step:
            adjustment = max_adjustment * sign
            adjustments[item.index] = item.rounded_price + adjustment
            remaining -= adjustment * item.quantity

    return CompensationResult(adjustments=adjustments, remaining_error=remaining)


def compensate_error(
    items: Sequence[RoundingItem],
    total_error: Any,
    step: Any = DEFAULT_STEP,
    error_threshold: Any = DEFAULT_ERROR_THRESHOLD,
) -> dict[int, Decimal]:
    """Sparse map of item index -> compensated rounded price.

    Items missing from the map keep their plain ``round_to_step`` price.
    """
    return compensate(items, total_error, step, error_threshold).adjustments


@dataclass(frozen=True)
class RoundedPrices:
    """
    Rounded unit prices and totals for one row.

    ``None`` means the series was not requested or the row has no positive
    quantity; ``0`` means the row's total for that series is not positive.
    """

    material_unit_price: Decimal | None = None
    material_total: Decimal | None = None
    work_unit_price: Decimal | None = None
    work_total: Decimal | None = None


def _track_series(
    rows: Sequence[T],
    quantities: Sequence[Decimal],
    get_total: Callable[[T], Any],
    step: Decimal,
    minimum_value: Decimal | None,
) -> list[RoundingItem]:
    tracked: list[RoundingItem] = []
    for index, row in enumerate(rows):
        quantity = quantities[index]
        if quantity <= ZERO:
            continue
        total = to_decimal(get_total(row))
        if total > ZERO:
            tracked.append(RoundingItem.track(index, total, quantity, step, minimum_value))
    return tracked


def _round_series(
    series: str,
    rows: Sequence[T],
    quantities: Sequence[Decimal],
    get_total: Callable[[T], Any],
    step: Decimal,
    minimum_value: Decimal | None,
    error_threshold: Decimal,
) -> list[tuple[Decimal, Decimal] | None]:
    tracked = _track_series(rows, quantities, get_total, step, minimum_value)
    total_error = sum_decimals(item.error for item in tracked)
    # error is rounded - original, so the correction runs the other way
    compensation = compensate(tracked, -total_error, step, error_threshold)
    by_index = {item.index: item for item in tracked}

    prices: list[tuple[Decimal, Decimal] | None] = []
    for index in range(len(rows)):
        quantity = quantities[index]
        if quantity <= ZERO:
            prices.append(None)
            continue
        item = by_index.get(index)
        if item is None:
            prices.append((ZERO, ZERO))
            continue
        unit_price = compensation.adjustments.get(index, item.rounded_price)
        prices.append((unit_price, unit_price * quantity))

    logger.debug("rounding_series_compensated", extra={
        "series": series,
        "tracked_count": len(tracked),
        "total_error": str(total_error),
        "adjusted_count": compensation.touched_count,
        "remaining_error": str(compensation.remaining_error),
    })
    return prices


@traced_engine("rounding", "1.0", fingerprint_fields=("step", "minimum_value"))
def smart_round(
    rows: Sequence[T],
    get_quantity: Callable[[T], Any],
    get_material_total: Callable[[T], Any] | None = None,
    get_work_total: Callable[[T], Any] | None = None,
    step: Any = DEFAULT_STEP,
    minimum_value: Any = None,
    error_threshold: Any = DEFAULT_ERROR_THRESHOLD,
) -> list[RoundedPrices]:
    """
    Round the material and work unit prices of *rows* with compensation.

    Args:
        rows: Any row objects; they are only read through the getters.
        get_quantity: Row quantity (unit prices are total / quantity).
        get_material_total: Material total of a row, or None to skip the series.
        get_work_total: Work total of a row, or None to skip the series.
        step: Rounding step.
        minimum_value: Prices below this round to 0 (default ``step / 2``).
        error_threshold: Pool errors smaller than this are not compensated.

    Returns:
        One ``RoundedPrices`` per row, in row order.
    """
    step = to_decimal(step, "step")
    minimum = None if minimum_value is None else to_decimal(minimum_value, "minimum_value")
    threshold = to_decimal(error_threshold, "error_threshold")
    quantities = [to_decimal(get_quantity(row), "quantity") for row in rows]

    empty: list[tuple[Decimal, Decimal] | None] = [None] * len(rows)
    material = (
        _round_series("material", rows, quantities, get_material_total, step, minimum, threshold)
        if get_material_total is not None
        else empty
    )
    work = (
        _round_series("work", rows, quantities, get_work_total, step, minimum, threshold)
        if get_work_total is not None
        else empty
    )

    return [
        RoundedPrices(
            material_unit_price=m[0] if m else None,
            material_total=m[1] if m else None,
            work_unit_price=w[0] if w else None,
            work_total=w[1] if w else None,
        )
        for m, w in zip(material, work)
    ]
