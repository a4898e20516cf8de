"""
Domain errors raised by the practice engine and its stores.

Only the serving boundaries (FastAPI handlers, Typer commands) translate these
into transport-specific responses.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base class for practice engine failures."""


class NotFoundError(EngineError):
    """Raised when a topic has no questions or an id does not resolve."""


class InvalidInputError(EngineError):
    """Raised for malformed ids, history lists or question data."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class UnauthenticatedError(EngineError):
    """Raised when no user can be resolved for a request."""


class MasteryConflictError(EngineError):
    """Raised when a mastery update keeps losing its compare-and-swap."""
