"""
Settings validator.

Checks the ``engines`` section of a settings document against the
parameter schemas declared in ``tender_engines.contracts``.  Uses basic
type and range checking from the JSON Schema properties; does not require
the jsonschema package.
"""

from __future__ import annotations

from typing import Any

from tender_engines.contracts import ENGINE_CONTRACTS
from tender_kernel.exceptions import ConfigurationError, InvalidSettingError


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_engine_parameters(
    engines: dict[str, dict[str, Any]],
    source: str = "<memory>",
) -> None:
    """
    Raise on the first engine parameter that violates its contract.

    Raises:
        ConfigurationError: unknown engine or unknown parameter.
        InvalidSettingError: wrong type or out-of-range value.
    """
    for engine_name, params in engines.items():
        contract = ENGINE_CONTRACTS.get(engine_name)
        if contract is None:
            raise ConfigurationError(source, f"unknown engine '{engine_name}'")

        properties = contract.parameter_schema.get("properties", {})
        for name, value in params.items():
            setting = f"{engine_name}.{name}"
            schema = properties.get(name)
            if schema is None:
                if contract.parameter_schema.get("additionalProperties") is False:
                    raise ConfigurationError(source, f"unknown parameter '{setting}'")
                continue

            if schema.get("type") == "number":
                if not _is_number(value):
                    raise InvalidSettingError(source, setting, value, "expected a number")
                if "exclusiveMinimum" in schema and value <= schema["exclusiveMinimum"]:
                    raise InvalidSettingError(
                        source, setting, value,
                        f"must be greater than {schema['exclusiveMinimum']}",
                    )
                if "minimum" in schema and value < schema["minimum"]:
                    raise InvalidSettingError(
                        source, setting, value,
                        f"must be at least {schema['minimum']}",
                    )
