"""Exception types shared across the import, extraction and summary layers."""

from typing import Optional


class TaxSyncError(Exception):
    """Base class for all errors raised by taxsync."""


class ParseError(TaxSyncError):
    """A line or field could not be read. The offending row is skipped."""

    def __init__(self, message: str, field: Optional[str] = None, value: Optional[str] = None):
        super().__init__(message)
        self.field = field
        self.value = value


class ValidationError(TaxSyncError):
    """A field was read but breaks a domain rule (e.g. a negative amount)."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class ImportDataError(TaxSyncError):
    """The whole input is empty or unreadable.

    The importer turns this into an explicit empty result instead of
    letting it escape to the caller.
    """


class ConfigurationError(TaxSyncError):
    """Configuration files are missing or malformed."""
