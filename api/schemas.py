"""Pydantic schemas for the mock-interview API."""
from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, Field

from mock_interview.models import AnswerRecord, QuestionView


class CreateSessionReq(BaseModel):
    domain: Optional[str] = None
    difficulty: Optional[str] = None


class SubmitAnswerReq(BaseModel):
    questionId: Optional[str] = None
    answer: Optional[str] = None
    timeSpent: Optional[Any] = None


class CreateSessionResp(BaseModel):
    sessionId: str
    userId: str
    domain: str
    difficulty: str
    questions: List[QuestionView]
    message: str = "Mock interview session created successfully"


class SessionResp(BaseModel):
    sessionId: str
    domain: str
    difficulty: str
    questions: List[QuestionView]
    answers: List[AnswerRecord] = Field(default_factory=list)
    createdAt: str
    currentQuestionIndex: int
    completedAt: Optional[str] = None
    overallRating: Optional[float] = None


class SessionSummary(BaseModel):
    sessionId: str
    domain: str
    difficulty: str
    questionsCount: int
    answersCount: int
    createdAt: str
    completedAt: Optional[str] = None
    overallRating: Optional[float] = None
    pointsEarned: Optional[int] = None


class SessionCheckResp(BaseModel):
    sessionId: str
    exists: bool
    details: Optional[SessionSummary] = None


class AnswerResp(BaseModel):
    rating: int
    feedback: str
    message: str = "Answer submitted successfully"


class CompletionResp(BaseModel):
    sessionId: str
    overallRating: float
    totalQuestions: int
    answeredQuestions: int
    totalTimeSpent: float
    overallFeedback: str
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    individualAnswers: List[AnswerRecord] = Field(default_factory=list)
    pointsEarned: int = 0
    completedAt: str
    message: str = "Mock interview session completed successfully"
