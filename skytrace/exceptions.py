"""
Exception taxonomy for skytrace.

Every failure surfaced to callers derives from SkytraceError, so an
application can catch the whole family in one place or pick out the
kind it cares about (bad credentials vs. engine-side query errors).
"""

from typing import Dict, Optional


class SkytraceError(Exception):
    """Base exception for all skytrace errors."""

    def __init__(self, message: str, details: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ', '.join(f'{k}={v}' for k, v in self.details.items())
            return f'{self.message} ({details_str})'
        return self.message


class ConfigurationError(SkytraceError):
    """Missing or unreadable credentials, settings file or cache directory."""


class AuthenticationError(SkytraceError):
    """Token exchange rejected the credentials (HTTP 400/401)."""


class TransportError(SkytraceError):
    """Connection-level failure or unexpected HTTP status."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, str]] = None,
    ):
        details = dict(details or {})
        if status_code is not None:
            details.setdefault('status', str(status_code))
        super().__init__(message, details)
        self.status_code = status_code


class QueryError(SkytraceError):
    """The engine reported an error object for the statement."""

    def __init__(self, message: str, error_name: Optional[str] = None):
        details = {'error_name': error_name} if error_name else None
        super().__init__(message, details)
        self.error_name = error_name


class QueryCancelledError(SkytraceError):
    """Raised only for explicit, user-initiated cancellation."""

    def __init__(self, message: str = 'Query was cancelled'):
        super().__init__(message)


class InvalidParameterError(SkytraceError):
    """A query parameter could not be interpreted."""


class DataConversionError(SkytraceError):
    """Schema or type mismatch while assembling or (de)serializing results."""


class StorageError(SkytraceError):
    """Filesystem failure while reading or writing cached/exported artifacts."""


class ResponseParseError(SkytraceError):
    """The engine or identity endpoint returned malformed JSON."""
