from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from agents.answer_judge import FALLBACK_FEEDBACK
from agents.session_feedback import DEFAULT_FEEDBACK
from agents.types import Verdict
from config.registry import FEEDBACK_KEY, JUDGE_KEY, bind_model, unbind_model
from mock_interview.cache import InMemorySessionCache
from mock_interview.errors import (
    EmptySessionError,
    GenerationError,
    InvalidInputError,
    NotFoundError,
    PersistenceError,
    SessionClosedError,
)
from mock_interview.orchestrator import SessionOrchestrator
from mock_interview.store import DuplicateTokenError, SessionStore, StoreError
from storage.users import get_user


class _FlakyStore(SessionStore):
    """Store whose selected operations raise ``StoreError``."""

    def __init__(self, path: Path, *, fail=(), insert_errors=()) -> None:
        super().__init__(path)
        self.fail = set(fail)
        self.insert_errors = list(insert_errors)
        self.update_errors = 0

    def insert(self, session):
        if self.insert_errors:
            raise self.insert_errors.pop(0)
        return super().insert(session)

    def find_by_token(self, token):
        if "find" in self.fail:
            raise StoreError("store offline")
        return super().find_by_token(token)

    def append_answer(self, token, answer):
        if "append" in self.fail:
            raise StoreError("store offline")
        return super().append_answer(token, answer)

    def update_by_token(self, token, fields, *, only_active=False):
        if "update" in self.fail:
            raise StoreError("store offline")
        if self.update_errors:
            self.update_errors -= 1
            raise StoreError("database is locked")
        return super().update_by_token(token, fields, only_active=only_active)


class _FixedJudge:
    def __init__(self, rating: int = 7) -> None:
        self.rating = rating

    def score(self, question, reference_answer, submitted_answer):
        return Verdict(rating=self.rating, feedback="Solid answer with minor gaps.")


def _orchestrator(tmp_db, store=None, **kwargs):
    store = store or SessionStore(Path(tmp_db))
    return SessionOrchestrator(store, InMemorySessionCache(), sleep=lambda _: None, **kwargs)


def test_create_persists_and_caches(tmp_db, fake_models, user):
    orch = _orchestrator(tmp_db)
    session = orch.create(user.id, "Backend Development", "Intermediate")
    assert len(session.questions) == 5
    assert session.answers == []
    assert orch.store.find_by_token(session.sessionId) is not None
    assert orch.cache.has(session.sessionId)
    fetched = orch.get_session(session.sessionId, user.id)
    assert [q.id for q in fetched.questions] == [q.id for q in session.questions]


@pytest.mark.parametrize("domain, difficulty", [("", "Beginner"), ("   ", "Beginner"), ("Python", "Expert")])
def test_create_rejects_bad_input(tmp_db, fake_models, user, domain, difficulty):
    with pytest.raises(InvalidInputError):
        _orchestrator(tmp_db).create(user.id, domain, difficulty)


def test_create_without_generator_fails(tmp_db, user):
    orch = _orchestrator(tmp_db)
    with pytest.raises(GenerationError):
        orch.create(user.id, "Python", "Beginner")
    assert orch.store.find_by_owner(user.id) == []


def test_token_collision_regenerates(tmp_db, fake_models, user):
    tokens = iter(["session_taken", "session_fresh"])
    store = _FlakyStore(Path(tmp_db), insert_errors=[DuplicateTokenError("taken")])
    orch = _orchestrator(tmp_db, store, token_factory=lambda: next(tokens))
    session = orch.create(user.id, "Python", "Beginner")
    assert session.sessionId == "session_fresh"


def test_transient_failure_retries_same_token(tmp_db, fake_models, user):
    sleeps = []
    store = _FlakyStore(Path(tmp_db), insert_errors=[StoreError("locked")])
    orch = SessionOrchestrator(
        store,
        InMemorySessionCache(),
        token_factory=lambda: "session_same",
        sleep=sleeps.append,
    )
    session = orch.create(user.id, "Python", "Beginner")
    assert session.sessionId == "session_same"
    assert len(sleeps) == 1


def test_create_gives_up_after_three_attempts(tmp_db, fake_models, user):
    store = _FlakyStore(Path(tmp_db), insert_errors=[StoreError("down")] * 3)
    orch = _orchestrator(tmp_db, store)
    with pytest.raises(PersistenceError):
        orch.create(user.id, "Python", "Beginner")
    assert len(orch.cache) == 0


def test_get_session_hides_other_owners(tmp_db, fake_models, user):
    orch = _orchestrator(tmp_db)
    session = orch.create(user.id, "Python", "Beginner")
    with pytest.raises(NotFoundError):
        orch.get_session(session.sessionId, "someone-else")
    with pytest.raises(NotFoundError):
        orch.get_session("session_missing", user.id)


def test_cache_serves_when_store_is_down(tmp_db, fake_models, user):
    store = _FlakyStore(Path(tmp_db))
    orch = _orchestrator(tmp_db, store)
    session = orch.create(user.id, "Python", "Beginner")
    store.fail.add("find")
    assert orch.get_session(session.sessionId, user.id).sessionId == session.sessionId


def test_submit_scores_and_records(tmp_db, fake_models, user):
    orch = _orchestrator(tmp_db)
    session = orch.create(user.id, "Python", "Beginner")
    question = session.questions[0]
    verdict = orch.submit_answer(session.sessionId, user.id, question.id, "uses REST and caching", 45)
    assert verdict.rating == 7
    assert verdict.feedback == "Solid answer with minor gaps."
    stored = orch.store.find_by_token(session.sessionId)
    assert [a.questionId for a in stored.answers] == [question.id]
    assert stored.answers[0].timeSpent == 45
    assert orch.cache.get(session.sessionId).answers[0].rating == 7


def test_out_of_range_rating_is_clamped(tmp_db, fake_models, user):
    bind_model(JUDGE_KEY, lambda **_: {"rating": 12.4, "feedback": "Over the top"})
    orch = _orchestrator(tmp_db)
    session = orch.create(user.id, "Python", "Beginner")
    verdict = orch.submit_answer(session.sessionId, user.id, session.questions[0].id, "answer", 10)
    assert verdict.rating == 10


def test_judge_failure_uses_fallback(tmp_db, fake_models, user):
    def _broken(**_):
        raise RuntimeError("judge offline")

    bind_model(JUDGE_KEY, _broken)
    orch = _orchestrator(tmp_db)
    session = orch.create(user.id, "Python", "Beginner")
    verdict = orch.submit_answer(session.sessionId, user.id, session.questions[0].id, "answer", 10)
    assert 5 <= verdict.rating <= 8
    assert verdict.feedback == FALLBACK_FEEDBACK
    assert verdict.fallback is True


def test_unbound_judge_scores_deterministically(tmp_db, fake_models, user):
    unbind_model(JUDGE_KEY)
    orch = _orchestrator(tmp_db)
    session = orch.create(user.id, "Python", "Beginner")
    qid = session.questions[0].id
    first = orch.submit_answer(session.sessionId, user.id, qid, "same answer", 10)
    second = orch.submit_answer(session.sessionId, user.id, qid, "same answer", 10)
    assert first.rating == second.rating


@pytest.mark.parametrize(
    "question_id, answer, time_spent",
    [("", "text", 1), ("q", "   ", 1), ("q", "text", -1), ("q", "text", "soon"), ("q", "text", True)],
)
def test_submit_validates_input(tmp_db, fake_models, user, question_id, answer, time_spent):
    orch = _orchestrator(tmp_db)
    session = orch.create(user.id, "Python", "Beginner")
    with pytest.raises(InvalidInputError):
        orch.submit_answer(session.sessionId, user.id, question_id, answer, time_spent)


def test_submit_unknown_question(tmp_db, fake_models, user):
    orch = _orchestrator(tmp_db)
    session = orch.create(user.id, "Python", "Beginner")
    with pytest.raises(NotFoundError):
        orch.submit_answer(session.sessionId, user.id, "q_missing", "text", 1)


def test_store_append_failure_is_tolerated(tmp_db, fake_models, user):
    store = _FlakyStore(Path(tmp_db))
    orch = _orchestrator(tmp_db, store)
    session = orch.create(user.id, "Python", "Beginner")
    store.fail.add("append")
    verdict = orch.submit_answer(session.sessionId, user.id, session.questions[0].id, "text", 5)
    assert verdict.rating == 7
    assert len(orch.cache.get(session.sessionId).answers) == 1
    assert store.find_by_token(session.sessionId).answers == []


def test_resubmission_keeps_history_last_write_wins(tmp_db, fake_models, user):
    orch = _orchestrator(tmp_db, judge=_FixedJudge(4))
    session = orch.create(user.id, "Python", "Beginner")
    qid = session.questions[0].id
    orch.submit_answer(session.sessionId, user.id, qid, "first try", 10)
    orch._judge = _FixedJudge(9)
    orch.submit_answer(session.sessionId, user.id, qid, "second try", 20)
    assert len(orch.store.find_by_token(session.sessionId).answers) == 2
    summary = orch.complete(session.sessionId, user.id)
    assert summary.answeredQuestions == 1
    assert summary.overallRating == 9.0
    assert [a.answer for a in summary.individualAnswers] == ["second try"]


def test_complete_without_answers(tmp_db, fake_models, user):
    orch = _orchestrator(tmp_db)
    session = orch.create(user.id, "Python", "Beginner")
    with pytest.raises(EmptySessionError):
        orch.complete(session.sessionId, user.id)


def test_complete_persists_awards_and_evicts(tmp_db, fake_models, user):
    orch = _orchestrator(tmp_db)
    session = orch.create(user.id, "Python", "Beginner")
    orch.submit_answer(session.sessionId, user.id, session.questions[0].id, "text", 45)
    summary = orch.complete(session.sessionId, user.id)
    assert summary.overallRating == 7.0
    assert summary.totalQuestions == 5
    assert summary.answeredQuestions == 1
    assert summary.totalTimeSpent == 45
    assert summary.pointsEarned == 27
    assert summary.overallFeedback == "Good session overall."
    assert summary.strengths == ["clarity"]
    assert summary.completedAt
    assert not orch.cache.has(session.sessionId)
    stored = orch.store.find_by_token(session.sessionId)
    assert stored.is_completed
    assert stored.pointsEarned == 27
    assert get_user(user.id).total_points == 27


def test_completed_session_rejects_answers_and_stays_uncached(tmp_db, fake_models, user):
    orch = _orchestrator(tmp_db)
    session = orch.create(user.id, "Python", "Beginner")
    orch.submit_answer(session.sessionId, user.id, session.questions[0].id, "text", 45)
    orch.complete(session.sessionId, user.id)
    with pytest.raises(SessionClosedError):
        orch.submit_answer(session.sessionId, user.id, session.questions[1].id, "late", 5)
    assert not orch.cache.has(session.sessionId)


def test_recompletion_is_idempotent(tmp_db, fake_models, user):
    orch = _orchestrator(tmp_db)
    session = orch.create(user.id, "Python", "Advanced")
    orch.submit_answer(session.sessionId, user.id, session.questions[0].id, "text", 45)
    first = orch.complete(session.sessionId, user.id)
    second = orch.complete(session.sessionId, user.id)
    assert second.pointsEarned == first.pointsEarned == 47
    assert second.completedAt == first.completedAt
    assert get_user(user.id).total_points == 47
    assert get_user(user.id).mock_interviews_completed == 1


def test_concurrent_completion_awards_once(tmp_db, fake_models, user):
    class _RacingStore(SessionStore):
        raced = False

        def update_by_token(self, token, fields, *, only_active=False):
            if only_active and not self.raced:
                self.raced = True
                super().update_by_token(token, {**fields, "pointsEarned": 99}, only_active=True)
            return super().update_by_token(token, fields, only_active=only_active)

    orch = _orchestrator(tmp_db, _RacingStore(Path(tmp_db)))
    session = orch.create(user.id, "Python", "Beginner")
    orch.submit_answer(session.sessionId, user.id, session.questions[0].id, "text", 45)
    summary = orch.complete(session.sessionId, user.id)
    assert summary.pointsEarned == 99
    assert get_user(user.id).total_points == 0
    assert not orch.cache.has(session.sessionId)


def test_completion_falls_back_to_fresh_record(tmp_db, fake_models, user):
    store = _FlakyStore(Path(tmp_db))
    orch = _orchestrator(tmp_db, store)
    session = orch.create(user.id, "Python", "Beginner")
    orch.submit_answer(session.sessionId, user.id, session.questions[0].id, "text", 45)
    store.fail.add("update")
    summary = orch.complete(session.sessionId, user.id)
    assert summary.pointsEarned == 27
    owned = store.find_by_owner(user.id)
    variants = [s for s in owned if s.sessionId.startswith(f"{session.sessionId}_completed_")]
    assert len(variants) == 1
    assert variants[0].is_completed
    assert get_user(user.id).total_points == 27


def test_completion_survives_ledger_failure(tmp_db, fake_models, user):
    class _BrokenLedger:
        def award(self, *args, **kwargs):
            raise RuntimeError("ledger offline")

    orch = _orchestrator(tmp_db, ledger=_BrokenLedger())
    session = orch.create(user.id, "Python", "Beginner")
    orch.submit_answer(session.sessionId, user.id, session.questions[0].id, "text", 45)
    summary = orch.complete(session.sessionId, user.id)
    assert summary.pointsEarned == 27
    assert orch.store.find_by_token(session.sessionId).is_completed


def test_feedback_failure_uses_defaults(tmp_db, fake_models, user):
    def _broken(**_):
        raise RuntimeError("feedback offline")

    bind_model(FEEDBACK_KEY, _broken)
    orch = _orchestrator(tmp_db)
    session = orch.create(user.id, "Python", "Beginner")
    orch.submit_answer(session.sessionId, user.id, session.questions[0].id, "text", 45)
    summary = orch.complete(session.sessionId, user.id)
    assert summary.overallFeedback == DEFAULT_FEEDBACK
    assert summary.strengths == [] and summary.recommendations == []


def test_list_sessions_newest_first(tmp_db, fake_models, user):
    tokens = iter(["session_a", "session_b"])
    orch = _orchestrator(tmp_db, token_factory=lambda: next(tokens))
    orch.create(user.id, "Python", "Beginner")
    orch.create(user.id, "Go", "Advanced")
    listed = orch.list_sessions(user.id)
    assert {s.sessionId for s in listed} == {"session_a", "session_b"}
    assert len(orch.list_sessions(user.id, limit=1)) == 1


def test_transient_update_failure_still_closes_original(tmp_db, fake_models, user):
    store = _FlakyStore(Path(tmp_db))
    orch = _orchestrator(tmp_db, store)
    session = orch.create(user.id, "Python", "Beginner")
    orch.submit_answer(session.sessionId, user.id, session.questions[0].id, "text", 45)
    store.update_errors = 1
    orch.complete(session.sessionId, user.id)
    assert store.find_by_token(session.sessionId).is_completed
    assert not orch.cache.has(session.sessionId)

    orch.complete(session.sessionId, user.id)
    stored_user = get_user(user.id)
    assert stored_user.total_points == 27
    assert stored_user.mock_interviews_completed == 1


def test_completion_during_judging_rejects_the_answer(tmp_db, fake_models, user):
    orch = _orchestrator(tmp_db, judge=_FixedJudge(7))
    session = orch.create(user.id, "Python", "Beginner")
    orch.submit_answer(session.sessionId, user.id, session.questions[0].id, "first", 30)

    class _SlowJudge:
        def score(self, question, reference_answer, submitted_answer):
            orch.complete(session.sessionId, user.id)
            return Verdict(rating=9, feedback="Late but good.")

    orch._judge = _SlowJudge()
    with pytest.raises(SessionClosedError):
        orch.submit_answer(session.sessionId, user.id, session.questions[1].id, "second", 30)
    stored = orch.store.find_by_token(session.sessionId)
    assert stored.is_completed
    assert [a.answer for a in stored.answers] == ["first"]
    assert not orch.cache.has(session.sessionId)


def test_concurrent_completions_of_two_sessions_sum_points(tmp_db, fake_models, user):
    orch = _orchestrator(tmp_db)
    sessions = [orch.create(user.id, "Python", "Beginner") for _ in range(2)]
    for session in sessions:
        orch.submit_answer(session.sessionId, user.id, session.questions[0].id, "text", 45)

    with ThreadPoolExecutor(max_workers=2) as pool:
        summaries = list(pool.map(lambda s: orch.complete(s.sessionId, user.id), sessions))

    assert [s.pointsEarned for s in summaries] == [27, 27]
    stored_user = get_user(user.id)
    assert stored_user.total_points == 27 + 27
    assert stored_user.mock_interviews_completed == 2
