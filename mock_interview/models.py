from __future__ import annotations  # Mock-interview session data models

from typing import List, Optional

from pydantic import BaseModel, Field

from agents.types import Difficulty


class QuestionView(BaseModel):  # Question as presented to the candidate
    id: str
    title: str
    description: str = ""
    referenceAnswer: str = ""
    domain: str
    difficulty: Difficulty
    timeLimit: float = Field(gt=0)  # minutes


class AnswerRecord(BaseModel):  # One scored response to one question
    questionId: str
    answer: str
    rating: int = Field(ge=1, le=10)
    feedback: str
    timeSpent: float = Field(ge=0)  # seconds
    submittedAt: Optional[str] = None


class MockSession(BaseModel):  # One mock-interview attempt
    sessionId: str
    userId: str
    domain: str
    difficulty: Difficulty
    questions: List[QuestionView]
    answers: List[AnswerRecord] = Field(default_factory=list)
    createdAt: str
    overallRating: Optional[float] = None
    totalTimeSpent: Optional[float] = None
    overallFeedback: Optional[str] = None
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    pointsEarned: Optional[int] = None
    completedAt: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        return self.completedAt is not None

    def find_question(self, question_id: str) -> Optional[QuestionView]:
        for question in self.questions:
            if question.id == question_id:
                return question
        return None


class SessionStats(BaseModel):  # Aggregate numbers computed at completion
    totalQuestions: int
    answeredQuestions: int
    averageRating: float
    overallRating: float
    totalTimeSpent: float


class CompletionSummary(BaseModel):  # Result of finalizing a session
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


__all__ = ["AnswerRecord", "CompletionSummary", "MockSession", "QuestionView", "SessionStats"]
