"""
Exception classes for the domain list synchronization engine.

All exceptions inherit from DomainListSyncError and carry a machine-readable
code, a human-readable message and optional structured details.
"""

from typing import Optional


class DomainListSyncError(Exception):
    """Base exception for all synchronization engine errors."""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> dict:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class NetworkError(DomainListSyncError):
    """Raised when a request fails below the HTTP layer (DNS, connect, timeout)."""

    pass


class ProtocolError(DomainListSyncError):
    """Raised when the remote source answers with a malformed body."""

    pass


class RetryExhaustedError(DomainListSyncError):
    """Raised when a fetch still fails after the last backoff attempt."""

    pass


class ExtractionError(DomainListSyncError):
    """Raised when domains cannot be extracted from a single remote record."""

    pass


class PersistenceError(DomainListSyncError):
    """Raised when the key-value store cannot be read or written."""

    pass


class TamperingError(PersistenceError):
    """Raised when HMAC validation of the state file fails."""

    pass


class ConfigurationError(DomainListSyncError):
    """Raised when configuration values are missing or invalid."""

    pass
