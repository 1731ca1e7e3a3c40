"""Errors raised by the route editing engine."""

from __future__ import annotations


class RouteEngineError(Exception):
    """Base class for route editing errors."""


class ValidationError(RouteEngineError, ValueError):
    """Rejected user input; the working set or draft is left unchanged."""

    def __init__(self, kind: str, message: str | None = None) -> None:
        self.kind = kind
        super().__init__(message or kind)


class SessionStateError(RouteEngineError):
    """Operation not allowed in the current session state."""


class NotFoundError(SessionStateError, LookupError):
    """Referenced route or delivery point does not exist in the working set."""


class CommitInProgressError(SessionStateError):
    """A commit is already running."""


class PersistenceError(RouteEngineError):
    """Saving the route collection failed."""


class ChangelogWriteError(RouteEngineError):
    """A changelog entry could not be recorded."""
