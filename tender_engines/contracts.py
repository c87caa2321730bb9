"""
Module: tender_engines.contracts
Responsibility:
    Typed declarations (EngineContract) for each pure engine: name,
    version, JSON Schema for configurable parameters, and the inputs that
    make up its trace fingerprint.  The settings validator checks YAML
    engine parameters against ``parameter_schema``.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Metadata only.

Failure modes:
    - KeyError when looking up an unregistered engine name in
      ``ENGINE_CONTRACTS``.

Usage:
    from tender_engines.contracts import ENGINE_CONTRACTS

    contract = ENGINE_CONTRACTS["rounding"]
    assert contract.engine_version == "1.0"
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class EngineContract:
    """Declares the contract for a pure calculation engine.

    Attributes:
        engine_name: Unique engine identifier (matches config references).
        engine_version: Version of the engine implementation.
        parameter_schema: JSON Schema for the engine's configurable parameters.
        input_fingerprint_rules: Inputs hashed into the trace fingerprint.
        description: Human-readable purpose of this engine.
    """

    engine_name: str
    engine_version: str
    parameter_schema: dict[str, Any]
    input_fingerprint_rules: tuple[str, ...] = ()
    description: str = ""


_NO_PARAMETERS: dict[str, Any] = {
    "type": "object",
    "properties": {},
    "additionalProperties": False,
}


# ---------------------------------------------------------------------------
# Redistribution
# ---------------------------------------------------------------------------

REDISTRIBUTION_CONTRACT = EngineContract(
    engine_name="redistribution",
    engine_version="1.0",
    parameter_schema={
        "type": "object",
        "properties": {
            "balance_tolerance": {
                "type": "number",
                "exclusiveMinimum": 0,
                "description": "Largest accepted gap between deducted and added totals",
            },
        },
        "additionalProperties": False,
    },
    input_fingerprint_rules=("rules", "targets", "balance_tolerance"),
    description="Deducts from source categories and redistributes into target categories.",
)

DEDUCTION_CONTRACT = EngineContract(
    engine_name="deduction",
    engine_version="1.0",
    parameter_schema=_NO_PARAMETERS,
    input_fingerprint_rules=("rules",),
    description="Computes per-rule deductions and spreads them over matching items.",
)

ADDITION_CONTRACT = EngineContract(
    engine_name="addition",
    engine_version="1.0",
    parameter_schema=_NO_PARAMETERS,
    input_fingerprint_rules=("targets", "total_deduction"),
    description="Distributes the deducted total over target items by work cost.",
)


# ---------------------------------------------------------------------------
# Rounding
# ---------------------------------------------------------------------------

ROUNDING_CONTRACT = EngineContract(
    engine_name="rounding",
    engine_version="1.0",
    parameter_schema={
        "type": "object",
        "properties": {
            "step": {
                "type": "number",
                "exclusiveMinimum": 0,
                "description": "Unit prices are rounded to multiples of this step",
            },
            "minimum_value": {
                "type": "number",
                "minimum": 0,
                "description": "Prices below this value round to zero (default step / 2)",
            },
            "error_threshold": {
                "type": "number",
                "minimum": 0,
                "description": "Pool errors below this are left uncompensated",
            },
        },
        "additionalProperties": False,
    },
    input_fingerprint_rules=("step", "minimum_value"),
    description="Rounds unit prices to a currency step with largest-remainder compensation.",
)

RESULT_ROWS_CONTRACT = EngineContract(
    engine_name="result_rows",
    engine_version="1.0",
    parameter_schema=_NO_PARAMETERS,
    description="Rolls item redistribution results up to client positions.",
)


# ---------------------------------------------------------------------------
# Registry of all engine contracts
# ---------------------------------------------------------------------------

ENGINE_CONTRACTS: dict[str, EngineContract] = {
    contract.engine_name: contract
    for contract in (
        REDISTRIBUTION_CONTRACT,
        DEDUCTION_CONTRACT,
        ADDITION_CONTRACT,
        ROUNDING_CONTRACT,
        RESULT_ROWS_CONTRACT,
    )
}
