"""Mock-interview session lifecycle: create, answer, complete.

Sessions live in two places while they are active. The store is
authoritative and is always read first; the cache mirrors active sessions
so answer submission keeps working while the store is unavailable. The two
copies are never reconciled automatically. Completion evicts the cached
entry, and completed sessions are never mirrored back.
"""
from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from agents.answer_judge import Judge, select_judge
from agents.question_generator import generate_questions
from agents.session_feedback import summarize_session
from agents.types import DIFFICULTIES, SessionFeedback, Verdict
from config.settings import settings
from observability import log_event, span
from services.points import PointsLedger, mock_interview_points
from services.scoring import aggregate, effective_answers
from services.sessions import completed_variant, new_token

from .cache import SessionCache
from .errors import (
    EmptySessionError,
    InvalidInputError,
    NotFoundError,
    PersistenceError,
    SessionClosedError,
)
from .models import AnswerRecord, CompletionSummary, MockSession
from .store import DuplicateTokenError, SessionStore, StoreError

logger = logging.getLogger(__name__)

_LOCK_STRIPES = 64


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


class SessionOrchestrator:
    """State machine for one process's mock-interview sessions."""

    def __init__(
        self,
        store: SessionStore,
        cache: SessionCache,
        ledger: Optional[PointsLedger] = None,
        *,
        judge: Optional[Judge] = None,
        token_factory: Callable[[], str] = new_token,
        sleep: Callable[[float], None] = time.sleep,
        question_source: Callable[..., List[Any]] = generate_questions,
        feedback_source: Callable[..., SessionFeedback] = summarize_session,
    ) -> None:
        self.store = store
        self.cache = cache
        self.ledger = ledger or PointsLedger()
        self._judge = judge
        self._token_factory = token_factory
        self._sleep = sleep
        self._question_source = question_source
        self._feedback_source = feedback_source
        self._locks = [threading.Lock() for _ in range(_LOCK_STRIPES)]

    def _lock_for(self, token: str) -> threading.Lock:
        """Per-token lock serializing answer appends against completion in this process."""
        return self._locks[hash(token) % _LOCK_STRIPES]

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------
    def create(self, user_id: str, domain: str, difficulty: str) -> MockSession:
        """Generate questions, persist a new session and mirror it to the cache.

        Raises:
            InvalidInputError: empty domain or unknown difficulty tier.
            GenerationError: the question generator produced nothing usable.
            PersistenceError: the store kept failing for every attempt.
        """

        domain = (domain or "").strip()
        if not domain:
            raise InvalidInputError("domain is required")
        if difficulty not in DIFFICULTIES:
            raise InvalidInputError(f"difficulty must be one of {', '.join(DIFFICULTIES)}")

        with span("pending", "question_generation"):
            questions = self._question_source(domain, difficulty, count=settings.QUESTIONS_PER_SESSION)
        created_at = _now()

        attempts = settings.CREATE_MAX_ATTEMPTS
        token = self._token_factory()
        last_error: Optional[StoreError] = None
        for attempt in range(1, attempts + 1):
            session = MockSession(
                sessionId=token,
                userId=user_id,
                domain=domain,
                difficulty=difficulty,
                questions=questions,
                createdAt=created_at,
            )
            try:
                self.store.insert(session)
            except DuplicateTokenError as exc:
                last_error = exc
                log_event("session_create_collision", token, level=logging.WARNING, attempt=attempt)
                token = self._token_factory()
            except StoreError as exc:
                last_error = exc
                log_event("session_create_failed", token, level=logging.WARNING, attempt=attempt, error=str(exc))
            else:
                self.cache.set(token, session)
                log_event("session_created", token, user_id=user_id, attempt=attempt)
                return session
            if attempt < attempts:
                self._sleep(settings.CREATE_RETRY_BACKOFF_S * attempt)
        raise PersistenceError(f"could not persist session after {attempts} attempts") from last_error

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------
    def _resolve(self, token: str) -> Optional[MockSession]:
        try:
            stored = self.store.find_by_token(token)
        except StoreError as exc:
            logger.warning("Session store lookup failed for %s, using cache: %s", token, exc)
            stored = None
        if stored is not None:
            if not stored.is_completed and not self.cache.has(token):
                self.cache.set(token, stored)
            return stored
        return self.cache.get(token)

    def get_session(self, token: str, user_id: Optional[str] = None) -> MockSession:
        """Resolve a session, store first and cache second.

        Raises:
            NotFoundError: absent from both, or owned by another user.
        """

        session = self._resolve(token)
        if session is None or (user_id is not None and session.userId != user_id):
            raise NotFoundError(f"Session '{token}' not found")
        return session

    def check_session(self, token: str) -> Optional[MockSession]:
        """Durable existence check; looks at the store only."""

        try:
            return self.store.find_by_token(token)
        except StoreError as exc:
            raise PersistenceError("session store unavailable") from exc

    def list_sessions(self, user_id: str, *, limit: Optional[int] = None) -> List[MockSession]:
        try:
            return self.store.find_by_owner(user_id, limit=limit)
        except StoreError as exc:
            raise PersistenceError("session store unavailable") from exc

    # ------------------------------------------------------------------
    # Answers
    # ------------------------------------------------------------------
    def submit_answer(
        self,
        token: str,
        user_id: str,
        question_id: str,
        answer_text: str,
        time_spent: float,
    ) -> Verdict:
        """Score one answer and record it.

        Every submission is appended, resubmissions included. The cache write
        always happens; a failed store append is logged and tolerated.
        """

        if not question_id:
            raise InvalidInputError("questionId is required")
        text = (answer_text or "").strip()
        if not text:
            raise InvalidInputError("answer must not be empty")
        if isinstance(time_spent, bool) or not isinstance(time_spent, (int, float)) or time_spent < 0:
            raise InvalidInputError("timeSpent must be a non-negative number")

        session = self.get_session(token, user_id)
        if session.is_completed:
            raise SessionClosedError(f"Session '{token}' is already completed")
        question = session.find_question(question_id)
        if question is None:
            raise NotFoundError(f"Question '{question_id}' not found")

        judge = self._judge or select_judge()
        with span(token, "answer_judge"):
            verdict = judge.score(
                f"{question.title} - {question.description}",
                question.referenceAnswer,
                text,
            )
        if verdict.fallback:
            log_event("judge_fallback", token, level=logging.WARNING, question_id=question_id)

        record = AnswerRecord(
            questionId=question_id,
            answer=text,
            rating=verdict.rating,
            feedback=verdict.feedback,
            timeSpent=float(time_spent),
            submittedAt=_now(),
        )
        session.answers.append(record)

        with self._lock_for(token):
            persisted, reason = self._append_to_store(token, record)
            if persisted:
                # Only extend a cached copy; the store already holds the answer
                self.cache.append_answer(token, record)
            else:
                log_event(
                    "answer_store_append_failed",
                    token,
                    level=logging.ERROR,
                    question_id=question_id,
                    reason=reason,
                )
                self.cache.append_answer(token, record, seed=session)

        log_event("answer_scored", token, question_id=question_id, rating=record.rating)
        return Verdict(rating=record.rating, feedback=record.feedback, fallback=verdict.fallback)

    def _append_to_store(self, token: str, record: AnswerRecord) -> Tuple[bool, str]:
        """Append to the store; raises ``SessionClosedError`` if the session completed meanwhile."""

        try:
            if self.store.append_answer(token, record):
                return True, ""
            stored = self.store.find_by_token(token)
        except StoreError as exc:
            return False, str(exc)
        if stored is not None and stored.is_completed:
            self.cache.delete(token)
            raise SessionClosedError(f"Session '{token}' is already completed")
        return False, "session missing from store"

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------
    def complete(self, token: str, user_id: str) -> CompletionSummary:
        """Aggregate, persist completion fields, award points and evict the cache.

        Completing an already-completed session returns its stored summary
        and awards nothing.

        Raises:
            NotFoundError: session absent from store and cache.
            EmptySessionError: nothing was answered.
            PersistenceError: both the update and the fallback insert failed.
        """

        with self._lock_for(token):
            return self._complete(token, user_id)

    def _complete(self, token: str, user_id: str) -> CompletionSummary:
        session = self.get_session(token, user_id)
        if session.is_completed:
            return self._summary(session)
        if not session.answers:
            raise EmptySessionError("No answers found for this session")

        stats = aggregate(session.questions, session.answers)
        effective = effective_answers(session.answers)
        with span(token, "session_feedback"):
            feedback = self._feedback_source(
                domain=session.domain,
                difficulty=session.difficulty,
                stats={
                    "totalQuestions": stats.totalQuestions,
                    "answeredQuestions": stats.answeredQuestions,
                    "averageRating": stats.averageRating,
                    "totalTime": stats.totalTimeSpent,
                },
                answers=[
                    {"rating": answer.rating, "timeSpent": answer.timeSpent, "feedback": answer.feedback}
                    for answer in effective
                ],
            )

        base, bonus = mock_interview_points(session.difficulty, stats.averageRating)
        fields: Dict[str, Any] = {
            "overallRating": stats.overallRating,
            "totalTimeSpent": stats.totalTimeSpent,
            "overallFeedback": feedback.overallFeedback,
            "strengths": feedback.strengths,
            "improvements": feedback.improvements,
            "recommendations": feedback.recommendations,
            "pointsEarned": base + bonus,
            "completedAt": _now(),
        }

        winner = self._persist_completion(session, fields)
        if winner is not None:
            # A concurrent completion already finalized and awarded this session
            self.cache.delete(token)
            return self._summary(winner)

        self._award(token, session.userId, base, bonus)
        self.cache.delete(token)
        log_event("session_completed", token, user_id=session.userId, rating=stats.overallRating, points=base + bonus)

        completed = session.model_copy(update=fields)
        return self._summary(completed)

    def _persist_completion(self, session: MockSession, fields: Dict[str, Any]) -> Optional[MockSession]:
        """Write completion fields; returns the already-completed record if another call won."""

        token = session.sessionId
        try:
            if self.store.update_by_token(token, fields, only_active=True):
                return None
            existing = self.store.find_by_token(token)
            if existing is not None and existing.is_completed:
                return existing
        except StoreError as exc:
            logger.warning("Completion update failed for %s: %s", token, exc)

        variant = completed_variant(token)
        record = session.model_copy(update={**fields, "sessionId": variant})
        try:
            self.store.insert(record)
        except StoreError as exc:
            raise PersistenceError(f"could not persist completed session '{token}'") from exc
        log_event("session_completion_fallback_insert", token, level=logging.WARNING, reason=variant)
        try:
            # Best-effort close of the original row
            self.store.update_by_token(token, fields, only_active=True)
        except StoreError as exc:
            logger.warning("Original session %s left active after fallback insert: %s", token, exc)
        return None

    def _award(self, token: str, user_id: str, base: int, bonus: int) -> None:
        try:
            awarded = self.ledger.award(user_id, base, bonus, kind="mock_interview")
        except Exception as exc:  # noqa: BLE001
            log_event("points_award_failed", token, level=logging.ERROR, user_id=user_id, error=str(exc))
            return
        if awarded:
            log_event("points_awarded", token, user_id=user_id, points=base + bonus)
        else:
            log_event("points_award_failed", token, level=logging.ERROR, user_id=user_id, reason="user missing")

    def _summary(self, session: MockSession) -> CompletionSummary:
        stats = aggregate(session.questions, session.answers)
        return CompletionSummary(
            sessionId=session.sessionId,
            overallRating=session.overallRating if session.overallRating is not None else stats.overallRating,
            totalQuestions=stats.totalQuestions,
            answeredQuestions=stats.answeredQuestions,
            totalTimeSpent=session.totalTimeSpent if session.totalTimeSpent is not None else stats.totalTimeSpent,
            overallFeedback=session.overallFeedback or "",
            strengths=session.strengths,
            improvements=session.improvements,
            recommendations=session.recommendations,
            individualAnswers=effective_answers(session.answers),
            pointsEarned=session.pointsEarned or 0,
            completedAt=session.completedAt or _now(),
        )


__all__ = ["SessionOrchestrator"]
