"""Composite score and letter grade from the evaluated checks."""

import math
from typing import Iterable

from models import Check

GRADE_THRESHOLDS = [
    (90, "A+"),
    (80, "A"),
    (70, "B"),
    (60, "C"),
    (50, "D"),
]
LOWEST_GRADE = "F"


def round_half_up(value: float) -> int:
    # round() rounds halves to even; scores round .5 up.
    return int(math.floor(value + 0.5))


def compute_score(checks: Iterable[Check]) -> int:
    """
    Every check is worth an equal share of 100 points.
    No checks at all scores 0.
    """
    checks = list(checks)
    if not checks:
        return 0
    share = 100 / len(checks)
    passed = sum(1 for check in checks if check.passed)
    return max(0, min(100, round_half_up(share * passed)))


def get_grade(score: float) -> str:
    for threshold, grade in GRADE_THRESHOLDS:
        if score >= threshold:
            return grade
    return LOWEST_GRADE
