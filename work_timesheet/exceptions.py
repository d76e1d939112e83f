"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class TimesheetError(Exception):
    """Base exception for all application-specific errors."""


class ConfigurationError(TimesheetError):
    """Raised for issues related to configuration loading or validation."""


class StorageWriteError(TimesheetError):
    """Raised when a value cannot be written to the durable key/value store."""


class StorageQuotaExceededError(StorageWriteError):
    """Raised when a write would push the store past its configured quota."""


class StorageUnavailableError(StorageWriteError):
    """Raised when the storage directory cannot be read or written at all."""


class SnapshotCorruptError(TimesheetError):
    """
    Raised when a stored snapshot is not valid JSON or does not match the
    expected structure.
    """


class UnknownProjectError(TimesheetError):
    """Raised when a command refers to a project name or id that does not exist."""


class NetworkError(TimesheetError):
    """Raised when the upstream origin cannot be reached by the cache gateway."""


class GatewayInstallError(TimesheetError):
    """Raised when the precache manifest could not be fetched during install."""
