"""Persistence helpers for user records and their point counters."""
from __future__ import annotations

import datetime as dt
from typing import Literal, Optional
from uuid import uuid4

from pydantic import BaseModel

from .sqlite import get_conn

Role = Literal["admin", "user"]
Status = Literal["active", "suspended", "inactive"]

COUNTER_COLUMNS = {
    "mock_interview": "mock_interviews_completed",
    "practice_session": "practice_sessions_completed",
}


class UserPayload(BaseModel):
    external_id: str
    email: str
    user_name: str
    first_name: str = ""
    last_name: str = ""
    role: Role = "user"
    status: Status = "active"


class UserRecord(UserPayload):
    id: str
    total_points: int = 0
    mock_interviews_completed: int = 0
    practice_sessions_completed: int = 0
    created_at: str


def insert_user(**data) -> UserRecord:
    """Insert a user row and return the stored record."""

    payload = UserPayload(**data)
    record = UserRecord(
        id=uuid4().hex,
        created_at=dt.datetime.now(dt.timezone.utc).isoformat(),
        **payload.model_dump(),
    )
    with get_conn() as conn:
        conn.execute(
            """INSERT INTO users
               (id, external_id, email, user_name, first_name, last_name, role, status, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                record.id,
                record.external_id,
                record.email,
                record.user_name,
                record.first_name,
                record.last_name,
                record.role,
                record.status,
                record.created_at,
            ),
        )
    return record


def _fetch(column: str, value: str) -> Optional[UserRecord]:
    with get_conn() as conn:
        row = conn.execute(f"SELECT * FROM users WHERE {column} = ?", (value,)).fetchone()
    return UserRecord(**dict(row)) if row is not None else None


def get_user(user_id: str) -> Optional[UserRecord]:
    return _fetch("id", user_id)


def get_user_by_external_id(external_id: str) -> Optional[UserRecord]:
    """Look up the user issued ``external_id`` by the identity provider."""
    return _fetch("external_id", external_id)


def increment_counters(user_id: str, *, points: int, kind: str) -> bool:
    """Atomically add ``points`` and bump the completed counter for ``kind``.

    Returns ``False`` when no user row matched.
    """

    column = COUNTER_COLUMNS.get(kind)
    if column is None:
        raise ValueError(f"Unknown completion kind '{kind}'")
    with get_conn() as conn:
        cur = conn.execute(
            f"UPDATE users SET total_points = total_points + ?, {column} = {column} + 1 WHERE id = ?",
            (int(points), user_id),
        )
        return cur.rowcount > 0


__all__ = ["COUNTER_COLUMNS", "UserPayload", "UserRecord", "get_user", "get_user_by_external_id", "increment_counters", "insert_user"]
