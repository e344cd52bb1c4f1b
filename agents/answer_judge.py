"""Answer judge: LLM scoring with a deterministic fallback."""
from __future__ import annotations

import hashlib
import logging
import math
import textwrap
from typing import Any, Protocol

from pydantic import ValidationError

from agents.types import JudgeVerdict, Verdict
from config.registry import JUDGE_KEY, get_model, is_bound
from config.settings import settings

logger = logging.getLogger(__name__)

RATING_MIN = 1
RATING_MAX = 10

FALLBACK_FEEDBACK = (
    "We could not evaluate this answer automatically right now. "
    "Your answer was recorded and a provisional rating was assigned."
)

JUDGE_PROMPT = textwrap.dedent(
    """
    You are an expert interviewer evaluating candidate answers.
    You will be given the question, a reference answer and the candidate's answer.

    Task:
    - Compare the candidate's answer with the reference answer carefully.
    - Be strict and unbiased in your evaluation.
    - Rate from 1 to 10 based purely on accuracy, completeness and relevance.
    - Give honest feedback in 2-3 sentences pointing out strengths and weaknesses.
    - Do NOT inflate ratings or give generic feedback.

    Return output strictly as JSON: {"rating": number, "feedback": "string"}
    """
).strip()


def clamp_rating(value: float) -> int:
    """Round half-up and bound a rating into [1, 10]."""

    if not math.isfinite(value):
        return RATING_MIN
    rounded = math.floor(value + 0.5)
    return max(RATING_MIN, min(RATING_MAX, rounded))


class Judge(Protocol):
    def score(self, question: str, reference_answer: str, submitted_answer: str) -> Verdict: ...


class FallbackJudge:
    """Deterministic placeholder scoring used when the AI judge is unavailable.

    The rating is derived from a digest of the inputs, so the same answer to
    the same question always receives the same provisional rating.
    """

    def __init__(self, low: int | None = None, high: int | None = None) -> None:
        low = settings.FALLBACK_RATING_MIN if low is None else low
        high = settings.FALLBACK_RATING_MAX if high is None else high
        self.low = clamp_rating(min(low, high))
        self.high = clamp_rating(max(low, high))

    def score(self, question: str, reference_answer: str, submitted_answer: str) -> Verdict:
        digest = hashlib.sha256(
            "\x1f".join((question, reference_answer, submitted_answer)).encode("utf-8")
        ).digest()
        span = self.high - self.low + 1
        rating = self.low + int.from_bytes(digest[:4], "big") % span
        return Verdict(rating=clamp_rating(rating), feedback=FALLBACK_FEEDBACK, fallback=True)


class LlmJudge:
    """Scores answers through the registry-bound judge model; never raises."""

    def __init__(self, fallback: Judge | None = None, *, temperature: float = 0.2) -> None:
        self.fallback = fallback or FallbackJudge()
        self.temperature = temperature

    def score(self, question: str, reference_answer: str, submitted_answer: str) -> Verdict:
        try:
            raw = self._call(question, reference_answer, submitted_answer)
            parsed = JudgeVerdict.model_validate(raw)
        except (KeyError, ValidationError) as exc:
            logger.warning("Judge response unusable, falling back: %s", exc)
            return self.fallback.score(question, reference_answer, submitted_answer)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Judge call failed, falling back: %s", exc)
            return self.fallback.score(question, reference_answer, submitted_answer)

        feedback = parsed.feedback.strip()
        if not feedback:
            return self.fallback.score(question, reference_answer, submitted_answer)
        return Verdict(rating=clamp_rating(float(parsed.rating)), feedback=feedback)

    def _call(self, question: str, reference_answer: str, submitted_answer: str) -> Any:
        llm = get_model(JUDGE_KEY)
        return llm(
            system_prompt=JUDGE_PROMPT,
            inputs={
                "question": question,
                "referenceAnswer": reference_answer,
                "userAnswer": submitted_answer,
            },
            temperature=self.temperature,
        )


def select_judge() -> Judge:
    """Use the AI judge when a model is bound, otherwise score deterministically."""

    fallback = FallbackJudge()
    if is_bound(JUDGE_KEY):
        return LlmJudge(fallback)
    return fallback


__all__ = ["FALLBACK_FEEDBACK", "FallbackJudge", "Judge", "LlmJudge", "clamp_rating", "select_judge"]
