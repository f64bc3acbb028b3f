"""
Exception hierarchy for superarchive.

Every failure the run can report is a SuperArchiveError; the CLI maps them
onto exit statuses.
"""

from typing import Optional


class SuperArchiveError(Exception):
    """Base class for all errors raised by superarchive."""


class DiscoveryError(SuperArchiveError):
    """The working tree could not be scanned for nested repositories."""


class ArchiveProductionError(SuperArchiveError):
    """The archive-producer failed for a single unit."""

    def __init__(self, unit_path: str, message: str):
        self.unit_path = unit_path
        label = unit_path or "."
        super().__init__(f"Failed to archive '{label}': {message}")


class UnsupportedFormatError(SuperArchiveError):
    """Combined mode was requested for a format without a splice rule."""

    def __init__(self, archive_format: str):
        self.format = archive_format
        super().__init__(f"Format '{archive_format}' cannot be combined; use --separate")


class MergeError(SuperArchiveError):
    """Splicing a member archive into the accumulator failed."""

    def __init__(self, member_path: str, message: Optional[str] = None):
        self.member_path = member_path
        detail = f": {message}" if message else ""
        super().__init__(f"Failed to merge '{member_path}'{detail}")


class ValidationError(SuperArchiveError):
    """Destination and mode do not fit together; raised before any work starts."""


class BadOptionError(SuperArchiveError):
    """An unrecognized command-line flag was given."""
