from __future__ import annotations  # Re-export mock-interview data, cache and store API

from .cache import InMemorySessionCache, SessionCache
from .errors import (
    EmptySessionError,
    GenerationError,
    InvalidInputError,
    MockInterviewError,
    NotFoundError,
    PersistenceError,
    SessionClosedError,
    UnauthorizedError,
)
from .models import AnswerRecord, CompletionSummary, MockSession, QuestionView, SessionStats
from .store import DuplicateTokenError, SessionStore, StoreError

__all__ = [
    "AnswerRecord",
    "CompletionSummary",
    "DuplicateTokenError",
    "EmptySessionError",
    "GenerationError",
    "InMemorySessionCache",
    "InvalidInputError",
    "MockInterviewError",
    "MockSession",
    "NotFoundError",
    "PersistenceError",
    "QuestionView",
    "SessionCache",
    "SessionClosedError",
    "SessionStats",
    "SessionStore",
    "StoreError",
    "UnauthorizedError",
]
