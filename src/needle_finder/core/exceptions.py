"""Exception types raised by the detection pipeline."""

from __future__ import annotations


class NeedleFinderError(Exception):
    """
    Base exception for pipeline errors.

    Attributes:
        error: Machine-readable error code
        message: Human-readable description
        details: Additional context
    """

    def __init__(
        self,
        error: str,
        message: str,
        details: dict[str, object] | None = None,
    ) -> None:
        self.error = error
        self.message = message
        if details is None:
            self.details: dict[str, object] = {}
        else:
            self.details = details
        super().__init__(message)


class InvalidInputError(NeedleFinderError):
    """Raised before any pipeline stage runs when the caller's input is unusable."""


class ExtractionError(NeedleFinderError):
    """Raised when the feature detector could not run at all."""
