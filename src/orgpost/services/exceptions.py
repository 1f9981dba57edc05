"""Custom exceptions for orgpost.

Fatal errors (``MalformedOutline``, ``ExportTargetError``) stop a run before
anything is written. ``RecordError`` subclasses belong to a single exported
heading; they are collected and reported once the run finishes.
"""

from typing import Optional

from org_outline.parser import MalformedOutline


class OrgpostError(Exception):
    """Base class for orgpost errors."""


class ConfigError(OrgpostError):
    """Raised when the configuration file is unreadable or invalid."""


class ExportTargetError(OrgpostError):
    """Raised when output paths cannot be resolved unambiguously."""


class DuplicateExportTarget(ExportTargetError):
    """Raised when two exportable headings resolve to the same output path.

    Attributes:
        path: Colliding output path (relative to the content directory)
        headings: Outline paths of every heading that resolves to it
    """

    def __init__(self, path: str, headings: list[str]):
        self.path = path
        self.headings = headings
        listed = "\n".join(f"  - {heading}" for heading in headings)
        super().__init__(f"Duplicate export target {path}:\n{listed}")


class InvalidExportTarget(ExportTargetError):
    """Raised when a heading resolves to an empty or escaping output path.

    Attributes:
        heading: Outline path of the heading
        reason: What is wrong with the path
    """

    def __init__(self, heading: str, reason: str):
        self.heading = heading
        self.reason = reason
        super().__init__(f"Invalid export target for '{heading}': {reason}")


class RecordError(OrgpostError):
    """Error confined to a single exported heading.

    Attributes:
        heading: Outline path of the heading being exported
        message: Human-readable error message
    """

    def __init__(self, heading: str, message: str):
        self.heading = heading
        self.message = message
        super().__init__(f"{heading}: {message}")


class InvalidDateFormat(RecordError):
    """Raised when a date property does not parse as a timestamp.

    Attributes:
        key: Property (or planning keyword) holding the date
        value: Raw value that failed to parse
    """

    def __init__(self, heading: str, key: str, value: str):
        self.key = key
        self.value = value
        super().__init__(heading, f"invalid date in {key}: {value!r}")


class InvalidPropertyValue(RecordError):
    """Raised when a typed property (e.g. a boolean) has an unusable value."""

    def __init__(self, heading: str, key: str, value: str, expected: str):
        self.key = key
        self.value = value
        super().__init__(heading, f"invalid value for {key}: {value!r} (expected {expected})")


class WriteFailure(RecordError):
    """Raised when an output file cannot be written.

    The underlying OSError is chained as ``__cause__``.

    Attributes:
        path: Target file path
        error: Underlying I/O error
    """

    def __init__(self, heading: str, path: str, error: Optional[BaseException] = None):
        self.path = path
        self.error = error
        detail = f": {error}" if error is not None else ""
        super().__init__(heading, f"failed to write {path}{detail}")


class SiteGeneratorError(OrgpostError):
    """Raised when the static-site generator cannot be run or fails.

    Attributes:
        command: Command line that was run
        returncode: Exit status (None if the command could not be started)
    """

    def __init__(self, command: list[str], message: str, returncode: Optional[int] = None):
        self.command = command
        self.returncode = returncode
        super().__init__(f"{' '.join(command)}: {message}")


__all__ = [
    "ConfigError",
    "DuplicateExportTarget",
    "ExportTargetError",
    "InvalidDateFormat",
    "InvalidExportTarget",
    "InvalidPropertyValue",
    "MalformedOutline",
    "OrgpostError",
    "RecordError",
    "SiteGeneratorError",
    "WriteFailure",
]
