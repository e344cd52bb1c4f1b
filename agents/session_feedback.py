"""Overall feedback for a finished mock interview."""
from __future__ import annotations

import logging
import textwrap
from typing import Any, Dict, List, Sequence

from pydantic import ValidationError

from agents.types import SessionFeedback
from config.registry import FEEDBACK_KEY, get_model

logger = logging.getLogger(__name__)

DEFAULT_FEEDBACK = "Session completed successfully. Detailed feedback is unavailable right now."

FEEDBACK_PROMPT = textwrap.dedent(
    """
    You are an expert interviewer giving overall feedback for a mock interview session.
    You will receive the domain, difficulty, overall statistics and per-question performance.

    Task:
    - Give comprehensive overall feedback about the candidate's performance in 3-4 sentences.
    - Highlight key strengths and areas for improvement.
    - Give specific, actionable advice for future interviews.
    - Be encouraging but honest about weaknesses.

    Return output strictly as JSON:
    {"overallFeedback": "string", "strengths": ["string"], "improvements": ["string"], "recommendations": ["string"]}
    """
).strip()


def default_feedback() -> SessionFeedback:
    return SessionFeedback(overallFeedback=DEFAULT_FEEDBACK)


def _clean_items(values: Any) -> List[str]:
    if not isinstance(values, list):
        return []
    items: List[str] = []
    for value in values:
        text = str(value).strip() if value is not None else ""
        if text:
            items.append(text)
    return items


def summarize_session(
    *,
    domain: str,
    difficulty: str,
    stats: Dict[str, Any],
    answers: Sequence[Dict[str, Any]],
) -> SessionFeedback:
    """Request overall feedback; any failure yields the generic default."""

    try:
        llm = get_model(FEEDBACK_KEY)
        raw = llm(
            system_prompt=FEEDBACK_PROMPT,
            inputs={
                "domain": domain,
                "difficulty": difficulty,
                **stats,
                "individualAnswers": list(answers),
            },
            temperature=0.7,
        )
    except KeyError:
        logger.info("Session feedback model not bound; using default feedback")
        return default_feedback()
    except Exception as exc:  # noqa: BLE001
        logger.warning("Session feedback call failed: %s", exc)
        return default_feedback()

    if not isinstance(raw, dict):
        logger.warning("Session feedback returned %s instead of an object", type(raw).__name__)
        return default_feedback()
    try:
        parsed = SessionFeedback(
            overallFeedback=raw.get("overallFeedback"),
            strengths=_clean_items(raw.get("strengths")),
            improvements=_clean_items(raw.get("improvements")),
            recommendations=_clean_items(raw.get("recommendations")),
        )
    except ValidationError as exc:
        logger.warning("Session feedback failed validation: %s", exc)
        return default_feedback()
    if not parsed.overallFeedback.strip():
        parsed.overallFeedback = DEFAULT_FEEDBACK
    return parsed


__all__ = ["DEFAULT_FEEDBACK", "default_feedback", "summarize_session"]
