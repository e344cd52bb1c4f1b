"""Process-local cache of in-flight mock-interview sessions.

The cache is advisory: the session store stays authoritative, and the only
point where the two copies are brought back in line is completion, which
evicts the cached entry. Entries are lost on process restart. Deployments
with more than one worker should supply a networked implementation of
``SessionCache`` instead.
"""
from __future__ import annotations

import threading
from typing import Dict, Optional, Protocol

from .models import AnswerRecord, MockSession


class SessionCache(Protocol):
    def set(self, token: str, session: MockSession) -> None: ...

    def get(self, token: str) -> Optional[MockSession]: ...

    def delete(self, token: str) -> bool: ...

    def has(self, token: str) -> bool: ...

    def append_answer(self, token: str, answer: AnswerRecord, *, seed: Optional[MockSession] = None) -> bool: ...


class InMemorySessionCache:
    """Dictionary-backed ``SessionCache`` guarded by a lock."""

    def __init__(self) -> None:
        self._sessions: Dict[str, MockSession] = {}
        self._lock = threading.Lock()

    def set(self, token: str, session: MockSession) -> None:
        snapshot = session.model_copy(deep=True)
        with self._lock:
            self._sessions[token] = snapshot

    def get(self, token: str) -> Optional[MockSession]:
        with self._lock:
            session = self._sessions.get(token)
        return session.model_copy(deep=True) if session is not None else None

    def delete(self, token: str) -> bool:
        with self._lock:
            return self._sessions.pop(token, None) is not None

    def has(self, token: str) -> bool:
        with self._lock:
            return token in self._sessions

    def append_answer(self, token: str, answer: AnswerRecord, *, seed: Optional[MockSession] = None) -> bool:
        """Append to the cached copy; returns ``False`` when nothing was cached.

        When the token is absent and ``seed`` is given, ``seed`` is cached
        instead. It is expected to already contain ``answer``.
        """

        seeded = seed.model_copy(deep=True) if seed is not None else None
        with self._lock:
            current = self._sessions.get(token)
            if current is not None:
                current.answers.append(answer.model_copy())
                return True
            if seeded is None:
                return False
            self._sessions[token] = seeded
            return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


__all__ = ["InMemorySessionCache", "SessionCache"]
