"""Custom exception hierarchy for loadcheck."""

from __future__ import annotations


class LoadCheckError(Exception):
    """Base exception for all loadcheck errors.

    All custom exceptions in loadcheck inherit from this class, making it
    easy to catch any loadcheck-specific error with a single except clause.
    """


class ConfigError(LoadCheckError):
    """Raised when run configuration is invalid or missing.

    Examples:
        - Concurrency is zero or negative.
        - The list of path suffixes is empty.
        - The duration literal cannot be parsed or is not positive.
    """


class TransportError(LoadCheckError):
    """Raised when a request fails below the HTTP layer.

    Connection refused, DNS failures and timeouts all surface as this
    error. The driver records it as a failed iteration and keeps going.

    Attributes:
        url: The URL that was being requested.
    """

    def __init__(self, message: str, url: str = "") -> None:
        super().__init__(message)
        self.url = url


class EngineError(LoadCheckError):
    """Raised when the run driver fails unexpectedly during a run."""
