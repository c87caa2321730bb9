"""
tender_config -- single public entrypoint for engine settings.

Responsibility:
    Provides the ONLY way to obtain engine settings at runtime through
    ``get_active_settings()``.  No other component reads settings files;
    engines receive the values as parameters from the service layer.

Invariants enforced:
    - Every parameter is checked against the engine contracts before a
      settings object is produced.
    - Same YAML always produces the same ``EngineSettings.checksum``.

Failure modes:
    - ``FileNotFoundError`` -- the settings file does not exist.
    - ``ConfigurationError`` / ``InvalidSettingError`` -- the file is
      structurally wrong or a value is out of range.

Audit relevance:
    Every successful call emits a ``TENDER_CONFIG_TRACE`` log record with
    the source path, version and checksum.
"""

from __future__ import annotations

import logging
from pathlib import Path

from tender_config.loader import engine_parameters, load_yaml_file, parse_settings
from tender_config.schema import EngineSettings, RoundingSettings
from tender_config.validator import validate_engine_parameters

_logger = logging.getLogger("tender_kernel.config")

DEFAULT_SETTINGS_PATH = Path(__file__).parent / "sets" / "default.yaml"

__all__ = [
    "DEFAULT_SETTINGS_PATH",
    "EngineSettings",
    "RoundingSettings",
    "get_active_settings",
]


def get_active_settings(config_path: Path | str | None = None) -> EngineSettings:
    """Load, validate and return engine settings.

    Args:
        config_path: YAML settings file; defaults to ``sets/default.yaml``.

    Returns:
        Frozen ``EngineSettings``.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_SETTINGS_PATH
    data = load_yaml_file(path)
    validate_engine_parameters(engine_parameters(data, str(path)), source=str(path))
    settings = parse_settings(data, source=str(path))

    _logger.info(
        "TENDER_CONFIG_TRACE",
        extra={
            "trace_type": "TENDER_CONFIG_TRACE",
            "source": str(path),
            "version": settings.version,
            "checksum": settings.checksum,
            "balance_tolerance": str(settings.balance_tolerance),
            "rounding_step": str(settings.rounding.step),
        },
    )
    return settings
