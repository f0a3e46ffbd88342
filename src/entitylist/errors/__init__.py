"""Custom exception hierarchy for entitylist."""

from __future__ import annotations


class EntityListError(Exception):
    """Base class for all custom errors raised by entitylist."""


# --- 3-layer hierarchy ---

class DomainError(EntityListError):
    """Base class for domain-level errors."""


class InfrastructureError(EntityListError):
    """Base class for infrastructure-level errors."""


class ApplicationError(EntityListError):
    """Base class for application-level errors."""


# --- Domain errors ---

class RecordNotFoundError(DomainError):
    """Raised when the requested record is not part of the snapshot."""


# --- Infrastructure errors ---

class StorageError(InfrastructureError):
    """Raised when the key/value storage cannot be read or written."""


class CacheCorruptedError(StorageError):
    """Raised when a cached snapshot fails its checksum."""


class FetchError(InfrastructureError):
    """Raised by a record source when a listing call fails.

    ``code`` is an opaque error code handed through unchanged to the
    presentation layer, which owns its translation.
    """

    def __init__(self, code: str = "UNKNOWN_ERROR", message: str | None = None) -> None:
        super().__init__(message or code)
        self.code = code or "UNKNOWN_ERROR"


class RequestTimeoutError(FetchError):
    """Raised when a listing call does not answer within the fetch timeout."""

    def __init__(self, timeout: float) -> None:
        super().__init__("TIMEOUT", f"listing call timed out after {timeout:g}s")
        self.timeout = timeout


# --- Application errors ---

class PreferencesValidationError(ApplicationError):
    """Raised when a preference bundle cannot be serialised for storage."""
