"""Points ledger: per-tier award tables and atomic counter increments."""
from __future__ import annotations

import logging
import math
from typing import Dict, Tuple

from storage.users import increment_counters

logger = logging.getLogger(__name__)

MOCK_BASE_POINTS: Dict[str, int] = {"Beginner": 20, "Intermediate": 30, "Advanced": 40}
PRACTICE_BASE_POINTS: Dict[str, int] = {"Beginner": 10, "Intermediate": 15, "Advanced": 20}


def mock_interview_points(difficulty: str, mean_rating: float) -> Tuple[int, int]:
    """Return ``(base, bonus)``; the bonus is the half-up rounded mean rating in [0, 10]."""

    base = MOCK_BASE_POINTS.get(difficulty, MOCK_BASE_POINTS["Beginner"])
    bonus = max(0, min(10, math.floor(mean_rating + 0.5)))
    return base, bonus


def practice_session_points(difficulty: str) -> int:
    return PRACTICE_BASE_POINTS.get(difficulty, PRACTICE_BASE_POINTS["Beginner"])


class PointsLedger:
    """Applies point awards with a single in-place increment per completion."""

    def award(self, user_id: str, base_amount: int, bonus_amount: int = 0, *, kind: str = "mock_interview") -> bool:
        total = int(base_amount) + int(bonus_amount)
        updated = increment_counters(user_id, points=total, kind=kind)
        if not updated:
            logger.warning("Points award skipped, user %s not found", user_id)
        return updated


__all__ = [
    "MOCK_BASE_POINTS",
    "PRACTICE_BASE_POINTS",
    "PointsLedger",
    "mock_interview_points",
    "practice_session_points",
]
