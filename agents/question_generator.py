"""LLM-backed generator for mock-interview question sets."""
from __future__ import annotations

import logging
import textwrap
import time
from typing import List

from pydantic import ValidationError

from agents.types import GeneratedQuestionSet
from config.registry import QUESTION_GEN_KEY, get_model
from config.settings import settings
from mock_interview.errors import GenerationError
from mock_interview.models import QuestionView

logger = logging.getLogger(__name__)


def _system_prompt(difficulty: str, count: int) -> str:
    return textwrap.dedent(
        f"""
        You are an expert assistant generating technical interview questions and answers.
        Generate exactly {count} questions with reference answers for the given domain and difficulty.

        Rules:
        1. Return only valid JSON with this structure:
           {{"questions": [{{"id": number, "title": "string", "description": "string",
                             "referenceAnswer": "string", "timeLimit": number}}]}}
        2. Every question must match the {difficulty} difficulty level.
        3. Reference answers must be brief, clear and properly summarized; include a short example when it helps.
        4. timeLimit is in minutes, between 3 and 8 depending on complexity and difficulty.
        5. Do not include any explanation outside the JSON.
        """
    ).strip()


def _time_limit(raw: float | None, difficulty: str) -> float:
    if raw is not None and raw > 0:
        return float(raw)
    return float(settings.DEFAULT_TIME_LIMITS.get(difficulty, 5))


def generate_questions(domain: str, difficulty: str, *, count: int | None = None) -> List[QuestionView]:
    """Ask the question model for ``count`` questions and map them to views.

    Raises:
        GenerationError: when no model is bound, the call fails, or fewer than
            ``count`` usable questions come back.
    """

    wanted = count or settings.QUESTIONS_PER_SESSION
    try:
        llm = get_model(QUESTION_GEN_KEY)
    except KeyError as exc:
        raise GenerationError("question generator is not configured") from exc

    try:
        raw = llm(
            system_prompt=_system_prompt(difficulty, wanted),
            inputs=f"Generate interview questions for the domain: {domain}, difficulty level: {difficulty}.",
            temperature=0.8,
        )
    except Exception as exc:  # noqa: BLE001
        logger.warning("Question generation call failed: %s", exc)
        raise GenerationError("AI failed to generate questions") from exc

    try:
        parsed = GeneratedQuestionSet.model_validate(raw)
    except ValidationError as exc:
        raise GenerationError("AI returned an unparseable question set") from exc

    usable = [item for item in parsed.questions if item.title.strip()]
    if len(usable) < wanted:
        raise GenerationError(f"AI returned {len(usable)} usable questions, expected {wanted}")

    stamp = int(time.time() * 1000)
    return [
        QuestionView(
            id=f"q_{position}_{stamp}",
            title=item.title.strip(),
            description=item.description,
            referenceAnswer=item.referenceAnswer,
            domain=domain,
            difficulty=difficulty,
            timeLimit=_time_limit(item.timeLimit, difficulty),
        )
        for position, item in enumerate(usable[:wanted], start=1)
    ]


__all__ = ["generate_questions"]
