"""
Decimal coercion for monetary amounts and quantities.

Collaborators hand over snapshots whose numeric columns may arrive as
``int``, ``float``, ``str`` or ``Decimal`` (or ``None`` for unset cost
columns).  Everything inside the engines is ``Decimal``; this module is
the single place where that conversion happens.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0")

Number = Decimal | int | float | str


def to_decimal(value: Any, name: str = "amount") -> Decimal:
    """Coerce *value* to ``Decimal``.

    ``None`` maps to zero (unset cost columns contribute nothing).  Floats go
    through ``str()`` so ``0.1`` becomes ``Decimal("0.1")`` rather than its
    binary expansion.

    Raises:
        ValueError: if *value* is not numeric.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"{name} must be numeric, got bool")
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Invalid {name}: {value!r}") from e


def sum_decimals(values) -> Decimal:
    """Sum an iterable of Decimals starting from ``Decimal("0")``."""
    return sum(values, ZERO)
