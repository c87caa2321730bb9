"""
Settings loader (``tender_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into ``tender_config.schema``
dataclasses.  Only ``tender_config.get_active_settings()`` calls this;
no service or engine reads settings files directly.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Non-mapping document or non-numeric values -> ``ConfigurationError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from tender_config.schema import EngineSettings, RoundingSettings
from tender_kernel.exceptions import ConfigurationError


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ConfigurationError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(str(path), "top-level document must be a mapping")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 of the parsed document (sorted keys)."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _decimal(source: str, name: str, value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ConfigurationError(source, f"{name} must be a number")
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ConfigurationError(source, f"{name} must be a number") from e


def engine_parameters(
    data: dict[str, Any], source: str = "<memory>"
) -> dict[str, dict[str, Any]]:
    """The ``engines`` section: engine name -> parameter mapping."""
    engines = data.get("engines") or {}
    if not isinstance(engines, dict):
        raise ConfigurationError(source, "engines must map engine names to parameters")
    return {name: dict(params or {}) for name, params in engines.items()}


def parse_settings(data: dict[str, Any], source: str = "<memory>") -> EngineSettings:
    """
    Parse ``EngineSettings`` from a loaded document.

    Missing sections or keys keep their schema defaults.
    """
    engines = engine_parameters(data, source)
    redistribution = engines.get("redistribution", {})
    rounding = engines.get("rounding", {})
    defaults = RoundingSettings()

    rounding_settings = RoundingSettings(
        step=_decimal(source, "rounding.step", rounding.get("step", defaults.step)),
        minimum_value=(
            _decimal(source, "rounding.minimum_value", rounding["minimum_value"])
            if rounding.get("minimum_value") is not None
            else None
        ),
        error_threshold=_decimal(
            source,
            "rounding.error_threshold",
            rounding.get("error_threshold", defaults.error_threshold),
        ),
    )

    return EngineSettings(
        version=int(data.get("version", 1)),
        balance_tolerance=_decimal(
            source,
            "redistribution.balance_tolerance",
            redistribution.get("balance_tolerance", EngineSettings.balance_tolerance),
        ),
        rounding=rounding_settings,
        checksum=compute_checksum(data),
    )
