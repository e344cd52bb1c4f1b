"""Scoring aggregation helpers for finished sessions."""
from __future__ import annotations

import math
from typing import Dict, List, Sequence

from mock_interview.models import AnswerRecord, QuestionView, SessionStats


def _round1(value: float) -> float:
    """Round a non-negative float to one decimal place, halves going up."""
    return math.floor(value * 10 + 0.5) / 10


def effective_answers(answers: Sequence[AnswerRecord]) -> List[AnswerRecord]:
    """Collapse resubmissions: the last answer per question wins, in first-seen order."""

    latest: Dict[str, AnswerRecord] = {}
    for answer in answers:
        latest[answer.questionId] = answer
    return list(latest.values())


def aggregate(questions: Sequence[QuestionView], answers: Sequence[AnswerRecord]) -> SessionStats:
    """Compute the session totals from the de-duplicated answer set."""

    effective = effective_answers(answers)
    if effective:
        average = sum(answer.rating for answer in effective) / len(effective)
    else:
        average = 0.0
    return SessionStats(
        totalQuestions=len(questions),
        answeredQuestions=len(effective),
        averageRating=average,
        overallRating=_round1(average),
        totalTimeSpent=float(sum(answer.timeSpent for answer in effective)),
    )


__all__ = ["aggregate", "effective_answers"]
