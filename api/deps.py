"""Request dependencies: identity resolution and the shared orchestrator."""
from __future__ import annotations

import threading
from pathlib import Path
from typing import Optional

from fastapi import Header, HTTPException

from config.settings import settings
from mock_interview.cache import InMemorySessionCache
from mock_interview.errors import MockInterviewError, NotFoundError, UnauthorizedError
from mock_interview.orchestrator import SessionOrchestrator
from mock_interview.store import SessionStore
from storage.users import UserRecord, get_user_by_external_id

_ORCHESTRATOR: Optional[SessionOrchestrator] = None
_ORCHESTRATOR_GUARD = threading.Lock()


def build_orchestrator(db_path: Optional[str] = None) -> SessionOrchestrator:
    """Construct the orchestrator with a fresh process-local cache."""

    store = SessionStore(Path(db_path or settings.DB_PATH))
    return SessionOrchestrator(store, InMemorySessionCache())


def get_orchestrator() -> SessionOrchestrator:
    global _ORCHESTRATOR
    with _ORCHESTRATOR_GUARD:
        if _ORCHESTRATOR is None:
            _ORCHESTRATOR = build_orchestrator()
        return _ORCHESTRATOR


def set_orchestrator(orchestrator: Optional[SessionOrchestrator]) -> None:
    global _ORCHESTRATOR
    with _ORCHESTRATOR_GUARD:
        _ORCHESTRATOR = orchestrator


def to_http(exc: MockInterviewError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=str(exc) or exc.__class__.__name__)


def get_current_user(authorization: Optional[str] = Header(None)) -> UserRecord:
    """Map ``Authorization: Bearer <external id>`` to the stored user record."""

    if not authorization:
        raise to_http(UnauthorizedError("Unauthorized"))
    scheme, _, credential = authorization.partition(" ")
    external_id = credential.strip() if scheme.lower() == "bearer" else ""
    if not external_id:
        raise to_http(UnauthorizedError("Unauthorized"))
    user = get_user_by_external_id(external_id)
    if user is None:
        raise to_http(NotFoundError("User not found"))
    return user
