"""
Engine settings schema.

Typed, frozen view of the YAML settings file.  The loader parses YAML into
these types; the service layer hands the values to the engines as plain
parameters (engines never import configuration).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class RoundingSettings:
    """Unit price rounding for display and export."""

    step: Decimal = Decimal("5")
    minimum_value: Decimal | None = None  # None: step / 2
    error_threshold: Decimal = Decimal("1")

    @property
    def effective_minimum_value(self) -> Decimal:
        return self.step / 2 if self.minimum_value is None else self.minimum_value


@dataclass(frozen=True)
class EngineSettings:
    """All engine settings of one configuration file."""

    version: int = 1
    balance_tolerance: Decimal = Decimal("0.01")
    rounding: RoundingSettings = field(default_factory=RoundingSettings)
    checksum: str = ""
