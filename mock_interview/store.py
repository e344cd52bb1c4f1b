from __future__ import annotations  # Durable mock-interview session storage

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional

from .models import AnswerRecord, MockSession, QuestionView


class StoreError(RuntimeError):  # Base persistence error
    pass


class DuplicateTokenError(StoreError):  # Session token already taken
    pass


# Completion fields that may be written through update_by_token
_UPDATABLE: Dict[str, str] = {
    "overallRating": "overall_rating",
    "totalTimeSpent": "total_time_spent",
    "overallFeedback": "overall_feedback",
    "strengths": "strengths_json",
    "improvements": "improvements_json",
    "recommendations": "recommendations_json",
    "pointsEarned": "points_earned",
    "completedAt": "completed_at",
}
_JSON_COLUMNS = {"strengths_json", "improvements_json", "recommendations_json"}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


class SessionStore:  # SQLite-backed persistence for mock-interview sessions
    def __init__(self, path: Path, *, timeout: float = 10.0) -> None:  # Initialize store with database path
        self._path = Path(path)
        self._timeout = timeout
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:  # Open SQLite connection with schema settings
        self._path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self._path, timeout=self._timeout)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def _session(self) -> Iterator[sqlite3.Connection]:  # Connection scope translating sqlite failures
        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            raise StoreError(f"cannot open session store: {exc}") from exc
        try:
            yield conn
            conn.commit()
        except sqlite3.IntegrityError as exc:
            conn.rollback()
            if "mock_sessions.token" in str(exc):
                raise DuplicateTokenError(str(exc)) from exc
            raise StoreError(str(exc)) from exc
        except sqlite3.Error as exc:
            conn.rollback()
            raise StoreError(str(exc)) from exc
        finally:
            conn.close()

    def _ensure_schema(self) -> None:  # Create persistence tables if missing
        with self._session() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS mock_sessions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    token TEXT NOT NULL UNIQUE,
                    owner_id TEXT NOT NULL,
                    domain TEXT NOT NULL,
                    difficulty TEXT NOT NULL,
                    questions_json TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    overall_rating REAL,
                    total_time_spent REAL,
                    overall_feedback TEXT,
                    strengths_json TEXT NOT NULL DEFAULT '[]',
                    improvements_json TEXT NOT NULL DEFAULT '[]',
                    recommendations_json TEXT NOT NULL DEFAULT '[]',
                    points_earned INTEGER,
                    completed_at TEXT
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_mock_sessions_owner ON mock_sessions(owner_id)")
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS mock_session_answers (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    session_token TEXT NOT NULL,
                    sequence INTEGER NOT NULL,
                    question_id TEXT NOT NULL,
                    answer TEXT NOT NULL,
                    rating INTEGER NOT NULL,
                    feedback TEXT NOT NULL,
                    time_spent REAL NOT NULL,
                    submitted_at TEXT NOT NULL,
                    FOREIGN KEY(session_token) REFERENCES mock_sessions(token) ON DELETE CASCADE
                )
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_mock_session_answers_token ON mock_session_answers(session_token, sequence)"
            )

    def insert(self, session: MockSession) -> None:  # Insert session header and any answers in one transaction
        questions = json.dumps([question.model_dump() for question in session.questions])
        with self._session() as conn:
            conn.execute(
                """
                INSERT INTO mock_sessions (
                    token,
                    owner_id,
                    domain,
                    difficulty,
                    questions_json,
                    created_at,
                    overall_rating,
                    total_time_spent,
                    overall_feedback,
                    strengths_json,
                    improvements_json,
                    recommendations_json,
                    points_earned,
                    completed_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    session.sessionId,
                    session.userId,
                    session.domain,
                    session.difficulty,
                    questions,
                    session.createdAt,
                    session.overallRating,
                    session.totalTimeSpent,
                    session.overallFeedback,
                    json.dumps(session.strengths),
                    json.dumps(session.improvements),
                    json.dumps(session.recommendations),
                    session.pointsEarned,
                    session.completedAt,
                ),
            )
            for sequence, answer in enumerate(session.answers, start=1):
                conn.execute(
                    """
                    INSERT INTO mock_session_answers (
                        session_token, sequence, question_id, answer, rating, feedback, time_spent, submitted_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        session.sessionId,
                        sequence,
                        answer.questionId,
                        answer.answer,
                        answer.rating,
                        answer.feedback,
                        answer.timeSpent,
                        answer.submittedAt or _now(),
                    ),
                )

    def find_by_token(self, token: str) -> Optional[MockSession]:  # Load one session with its answers
        with self._session() as conn:
            row = conn.execute("SELECT * FROM mock_sessions WHERE token = ?", (token,)).fetchone()
            if row is None:
                return None
            return self._hydrate(conn, row)

    def find_by_owner(self, owner_id: str, *, limit: Optional[int] = None) -> List[MockSession]:  # Newest first
        query = "SELECT * FROM mock_sessions WHERE owner_id = ? ORDER BY created_at DESC, id DESC"
        params: tuple[Any, ...] = (owner_id,)
        if limit is not None:
            query += " LIMIT ?"
            params = (owner_id, int(limit))
        with self._session() as conn:
            rows = conn.execute(query, params).fetchall()
            return [self._hydrate(conn, row) for row in rows]

    def update_by_token(self, token: str, fields: Mapping[str, Any], *, only_active: bool = False) -> bool:
        """Write a partial set of completion fields; ``False`` when no row matched.

        With ``only_active`` the update only applies while ``completed_at`` is unset,
        which lets concurrent completions detect that another one already won.
        """

        if not fields:
            raise ValueError("update_by_token requires at least one field")
        assignments: List[str] = []
        values: List[Any] = []
        for key, value in fields.items():
            column = _UPDATABLE.get(key)
            if column is None:
                raise ValueError(f"Field '{key}' cannot be updated")
            assignments.append(f"{column} = ?")
            values.append(json.dumps(list(value)) if column in _JSON_COLUMNS else value)
        query = f"UPDATE mock_sessions SET {', '.join(assignments)} WHERE token = ?"
        values.append(token)
        if only_active:
            query += " AND completed_at IS NULL"
        with self._session() as conn:
            cursor = conn.execute(query, values)
            return cursor.rowcount > 0

    def append_answer(self, token: str, answer: AnswerRecord) -> bool:  # Atomic push onto an active session's answer list
        with self._session() as conn:
            cursor = conn.execute(
                """
                INSERT INTO mock_session_answers (
                    session_token, sequence, question_id, answer, rating, feedback, time_spent, submitted_at
                )
                SELECT
                    token,
                    (SELECT COALESCE(MAX(sequence), 0) + 1 FROM mock_session_answers WHERE session_token = ?),
                    ?, ?, ?, ?, ?, ?
                FROM mock_sessions
                WHERE token = ? AND completed_at IS NULL
                """,
                (
                    token,
                    answer.questionId,
                    answer.answer,
                    answer.rating,
                    answer.feedback,
                    answer.timeSpent,
                    answer.submittedAt or _now(),
                    token,
                ),
            )
            return cursor.rowcount > 0

    def _hydrate(self, conn: sqlite3.Connection, row: sqlite3.Row) -> MockSession:  # Row plus answers to model
        answer_rows = conn.execute(
            """
            SELECT question_id, answer, rating, feedback, time_spent, submitted_at
            FROM mock_session_answers
            WHERE session_token = ?
            ORDER BY sequence ASC
            """,
            (row["token"],),
        ).fetchall()
        return MockSession(
            sessionId=row["token"],
            userId=row["owner_id"],
            domain=row["domain"],
            difficulty=row["difficulty"],
            questions=[QuestionView.model_validate(item) for item in json.loads(row["questions_json"])],
            answers=[
                AnswerRecord(
                    questionId=item["question_id"],
                    answer=item["answer"],
                    rating=item["rating"],
                    feedback=item["feedback"],
                    timeSpent=item["time_spent"],
                    submittedAt=item["submitted_at"],
                )
                for item in answer_rows
            ],
            createdAt=row["created_at"],
            overallRating=row["overall_rating"],
            totalTimeSpent=row["total_time_spent"],
            overallFeedback=row["overall_feedback"],
            strengths=json.loads(row["strengths_json"] or "[]"),
            improvements=json.loads(row["improvements_json"] or "[]"),
            recommendations=json.loads(row["recommendations_json"] or "[]"),
            pointsEarned=row["points_earned"],
            completedAt=row["completed_at"],
        )


__all__ = ["DuplicateTokenError", "SessionStore", "StoreError"]
