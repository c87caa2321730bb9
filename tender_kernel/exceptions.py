"""
Typed exception hierarchy for the tender kernel.

Every exception carries a machine-readable ``code`` class attribute and
structured data attributes, so callers catch by type and report by code
instead of parsing messages.

    TenderKernelError (base)
    |
    +-- ConfigurationError
    |   +-- InvalidSettingError
    |
    +-- SnapshotError
        +-- MissingSnapshotKeyError
        +-- EmptySnapshotError

Code reference:

    Category        | Code                    | When Raised
    ----------------|-------------------------|------------------------------------
    Configuration   | INVALID_CONFIGURATION   | Settings file cannot be used
                    | INVALID_SETTING         | A setting value is out of range
    ----------------|-------------------------|------------------------------------
    Snapshot        | INVALID_SNAPSHOT        | Saved payload is malformed
                    | MISSING_SNAPSHOT_KEY    | Tender / tactic id not provided
                    | EMPTY_SNAPSHOT          | Nothing to save

The redistribution engines themselves never raise: rule problems are
reported as ``ValidationError`` values and degenerate inputs fall back to
documented defaults. These exceptions belong to the layers around them.
"""


class TenderKernelError(Exception):
    """
    Base exception for all tender kernel errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "TENDER_KERNEL_ERROR"


# Configuration exceptions


class ConfigurationError(TenderKernelError):
    """Engine settings could not be loaded."""

    code: str = "INVALID_CONFIGURATION"

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Invalid configuration in {source}: {reason}")


class InvalidSettingError(ConfigurationError):
    """A single setting is outside its allowed range."""

    code: str = "INVALID_SETTING"

    def __init__(self, source: str, setting: str, value: object, reason: str):
        self.setting = setting
        self.value = value
        super().__init__(source, f"{setting}={value!r}: {reason}")


# Snapshot exceptions


class SnapshotError(TenderKernelError):
    """A saved redistribution payload is malformed."""

    code: str = "INVALID_SNAPSHOT"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid redistribution snapshot: {reason}")


class MissingSnapshotKeyError(SnapshotError):
    """Tender or markup tactic id missing when building a snapshot."""

    code: str = "MISSING_SNAPSHOT_KEY"

    def __init__(self, key_name: str):
        self.key_name = key_name
        super().__init__(f"{key_name} is required")


class EmptySnapshotError(SnapshotError):
    """No redistribution results to save."""

    code: str = "EMPTY_SNAPSHOT"

    def __init__(self) -> None:
        super().__init__("no redistribution results to save")
