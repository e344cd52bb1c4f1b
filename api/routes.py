"""FastAPI routes for the mock-interview session lifecycle."""
from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from api.deps import get_current_user, get_orchestrator, to_http
from api.schemas import (
    AnswerResp,
    CompletionResp,
    CreateSessionReq,
    CreateSessionResp,
    SessionCheckResp,
    SessionResp,
    SessionSummary,
    SubmitAnswerReq,
)
from mock_interview.errors import MockInterviewError
from mock_interview.models import MockSession
from mock_interview.orchestrator import SessionOrchestrator
from services.scoring import effective_answers
from storage.users import UserRecord

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/mockinterview")


def _summary(session: MockSession) -> SessionSummary:
    return SessionSummary(
        sessionId=session.sessionId,
        domain=session.domain,
        difficulty=session.difficulty,
        questionsCount=len(session.questions),
        answersCount=len(session.answers),
        createdAt=session.createdAt,
        completedAt=session.completedAt,
        overallRating=session.overallRating,
        pointsEarned=session.pointsEarned,
    )


def _unexpected(action: str, exc: Exception) -> HTTPException:
    logger.exception("Unexpected error while trying to %s", action)
    return HTTPException(status_code=500, detail="Internal Server Error")


@router.post("", response_model=CreateSessionResp, status_code=201)
def create_session(
    payload: CreateSessionReq,
    user: UserRecord = Depends(get_current_user),
    orchestrator: SessionOrchestrator = Depends(get_orchestrator),
) -> CreateSessionResp:
    if not payload.domain or not payload.difficulty:
        raise HTTPException(status_code=400, detail="Domain and difficulty are required")
    try:
        session = orchestrator.create(user.id, payload.domain, payload.difficulty)
    except MockInterviewError as exc:
        raise to_http(exc) from exc
    except Exception as exc:  # noqa: BLE001
        raise _unexpected("create session", exc) from exc
    return CreateSessionResp(
        sessionId=session.sessionId,
        userId=session.userId,
        domain=session.domain,
        difficulty=session.difficulty,
        questions=session.questions,
    )


@router.get("", response_model=List[SessionSummary])
def list_sessions(
    limit: Optional[int] = Query(default=None, ge=1, le=100),
    user: UserRecord = Depends(get_current_user),
    orchestrator: SessionOrchestrator = Depends(get_orchestrator),
) -> List[SessionSummary]:
    try:
        sessions = orchestrator.list_sessions(user.id, limit=limit)
    except MockInterviewError as exc:
        raise to_http(exc) from exc
    return [_summary(session) for session in sessions]


@router.get("/{session_id}", response_model=SessionResp)
def get_session(
    session_id: str,
    user: UserRecord = Depends(get_current_user),
    orchestrator: SessionOrchestrator = Depends(get_orchestrator),
) -> SessionResp:
    try:
        session = orchestrator.get_session(session_id, user.id)
    except MockInterviewError as exc:
        raise to_http(exc) from exc
    return SessionResp(
        sessionId=session.sessionId,
        domain=session.domain,
        difficulty=session.difficulty,
        questions=session.questions,
        answers=session.answers,
        createdAt=session.createdAt,
        currentQuestionIndex=len(effective_answers(session.answers)),
        completedAt=session.completedAt,
        overallRating=session.overallRating,
    )


@router.get("/{session_id}/check", response_model=SessionCheckResp)
def check_session(
    session_id: str,
    user: UserRecord = Depends(get_current_user),
    orchestrator: SessionOrchestrator = Depends(get_orchestrator),
) -> SessionCheckResp:
    try:
        session = orchestrator.check_session(session_id)
    except MockInterviewError as exc:
        raise to_http(exc) from exc
    if session is None or session.userId != user.id:
        return SessionCheckResp(sessionId=session_id, exists=False)
    return SessionCheckResp(sessionId=session_id, exists=True, details=_summary(session))


@router.post("/{session_id}", response_model=AnswerResp)
def submit_answer(
    session_id: str,
    payload: SubmitAnswerReq,
    user: UserRecord = Depends(get_current_user),
    orchestrator: SessionOrchestrator = Depends(get_orchestrator),
) -> AnswerResp:
    if not payload.questionId or not payload.answer or payload.timeSpent is None:
        raise HTTPException(status_code=400, detail="Missing required fields")
    try:
        verdict = orchestrator.submit_answer(
            session_id,
            user.id,
            payload.questionId,
            payload.answer,
            payload.timeSpent,
        )
    except MockInterviewError as exc:
        raise to_http(exc) from exc
    except Exception as exc:  # noqa: BLE001
        raise _unexpected("submit answer", exc) from exc
    return AnswerResp(rating=verdict.rating, feedback=verdict.feedback)


@router.post("/{session_id}/complete", response_model=CompletionResp)
def complete_session(
    session_id: str,
    user: UserRecord = Depends(get_current_user),
    orchestrator: SessionOrchestrator = Depends(get_orchestrator),
) -> CompletionResp:
    try:
        summary = orchestrator.complete(session_id, user.id)
    except MockInterviewError as exc:
        raise to_http(exc) from exc
    except Exception as exc:  # noqa: BLE001
        raise _unexpected("complete session", exc) from exc
    return CompletionResp(**summary.model_dump())


__all__ = ["router"]
