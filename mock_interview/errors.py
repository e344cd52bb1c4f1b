"""Error taxonomy for the mock-interview core."""
from __future__ import annotations


class MockInterviewError(RuntimeError):
    """Base class for every error surfaced by the session orchestrator."""

    status_code = 500


class InvalidInputError(MockInterviewError):
    status_code = 400


class UnauthorizedError(MockInterviewError):
    status_code = 401


class NotFoundError(MockInterviewError):
    status_code = 404


class SessionClosedError(MockInterviewError):
    """Raised when an answer arrives for a session that is already completed."""

    status_code = 409


class EmptySessionError(MockInterviewError):
    status_code = 400


class GenerationError(MockInterviewError):
    """The question generator produced nothing usable."""


class PersistenceError(MockInterviewError):
    """The session store failed and no recovery path was left."""


__all__ = [
    "EmptySessionError",
    "GenerationError",
    "InvalidInputError",
    "MockInterviewError",
    "NotFoundError",
    "PersistenceError",
    "SessionClosedError",
    "UnauthorizedError",
]
