"""Shared type definitions for the AI-backed agents."""
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field, StrictFloat, StrictInt

Difficulty = Literal["Beginner", "Intermediate", "Advanced"]

DIFFICULTIES = ("Beginner", "Intermediate", "Advanced")


class GeneratedQuestion(BaseModel):
    id: Optional[Union[int, str]] = None
    title: str
    description: str = ""
    referenceAnswer: str = ""
    timeLimit: Optional[float] = None  # minutes


class GeneratedQuestionSet(BaseModel):
    questions: List[GeneratedQuestion] = Field(default_factory=list)


class JudgeVerdict(BaseModel):
    rating: Union[StrictInt, StrictFloat]
    feedback: str = Field(min_length=1)


class Verdict(BaseModel):
    rating: int = Field(ge=1, le=10)
    feedback: str
    fallback: bool = False


class SessionFeedback(BaseModel):
    overallFeedback: str
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
