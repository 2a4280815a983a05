"""Threshold tables and scoring helpers.

Every signal is mapped to an integer score from 1 (worst) to 5 (best) by
scanning an ordered table of inclusive ranges. Tables are evaluated top to
bottom and the first admitting range wins, so ordering encodes priority and
ranges are allowed to overlap.
"""

from __future__ import annotations

import math
from typing import Iterable, Sequence, Tuple

from .models import ScoreRange, WeightedItem

FALLBACK_SCORE = 1

ScoreTable = Tuple[ScoreRange, ...]

_COMMIT_COUNT: ScoreTable = (
    ScoreRange(1, minimum=8),
    ScoreRange(2, minimum=6, maximum=7),
    ScoreRange(3, minimum=5, maximum=5),
    ScoreRange(4, minimum=3, maximum=4),
    ScoreRange(5, minimum=1, maximum=2),
)

_AVG_FILES_STANDARD: ScoreTable = (
    ScoreRange(1, minimum=40),
    ScoreRange(2, minimum=30, maximum=39.999),
    ScoreRange(3, minimum=20, maximum=29.999),
    ScoreRange(4, minimum=15, maximum=19.999),
    ScoreRange(5, maximum=14.999),
)

_AVG_FILES_LEGACY: ScoreTable = (
    ScoreRange(1, minimum=60),
    ScoreRange(2, minimum=50, maximum=59.999),
    ScoreRange(3, minimum=40, maximum=49.999),
    ScoreRange(4, minimum=35, maximum=39.999),
    ScoreRange(5, maximum=34.999),
)

_AVG_LINES_STANDARD: ScoreTable = (
    ScoreRange(1, minimum=350),
    ScoreRange(2, minimum=250, maximum=349.999),
    ScoreRange(3, minimum=150, maximum=249.999),
    ScoreRange(4, minimum=100, maximum=149.999),
    ScoreRange(5, maximum=99.999),
)

_AVG_LINES_LEGACY: ScoreTable = (
    ScoreRange(1, minimum=400),
    ScoreRange(2, minimum=300, maximum=399.999),
    ScoreRange(3, minimum=200, maximum=299.999),
    ScoreRange(4, minimum=150, maximum=199.999),
    ScoreRange(5, maximum=149.999),
)

_LINES_MODIFIED_STANDARD: ScoreTable = (
    ScoreRange(1, minimum=1200.0001),
    ScoreRange(2, minimum=500.0001, maximum=1200),
    ScoreRange(3, minimum=300.0001, maximum=500),
    ScoreRange(4, minimum=50.0001, maximum=300),
    ScoreRange(5, maximum=50),
)

_LINES_MODIFIED_LEGACY: ScoreTable = (
    ScoreRange(1, minimum=1200.0001),
    ScoreRange(2, minimum=700.0001, maximum=1200),
    ScoreRange(3, minimum=500.0001, maximum=700),
    ScoreRange(4, minimum=100.0001, maximum=500),
    ScoreRange(5, maximum=100),
)

_CLOSE_TIME_COMPLEX: ScoreTable = (
    ScoreRange(1, minimum=32.0001),
    ScoreRange(2, minimum=20.0001, maximum=32),
    ScoreRange(3, minimum=8.0001, maximum=20),
    ScoreRange(4, minimum=4.0001, maximum=8),
    ScoreRange(5, maximum=4),
)

# Closures within the first hour are scored as risky for simple changes.
_CLOSE_TIME_SIMPLE: ScoreTable = (
    ScoreRange(1, minimum=32.0001),
    ScoreRange(1, maximum=0.5),
    ScoreRange(2, minimum=20.0001, maximum=32),
    ScoreRange(2, minimum=0.5001, maximum=1),
    ScoreRange(3, minimum=8.0001, maximum=20),
    ScoreRange(4, minimum=4.0001, maximum=8),
    ScoreRange(5, maximum=4),
)

_OBSERVATIONS_LOW: ScoreTable = (
    ScoreRange(1, maximum=0),
    ScoreRange(2, minimum=1, maximum=1),
    ScoreRange(3, minimum=2, maximum=5),
    ScoreRange(4, minimum=6, maximum=10),
    ScoreRange(5, minimum=11),
)

_OBSERVATIONS_MEDIUM: ScoreTable = (
    ScoreRange(2, maximum=0),
    ScoreRange(3, minimum=1, maximum=2),
    ScoreRange(4, minimum=3),
)

# The 5-point band is shadowed by the open-ended 4-point band above it.
_OBSERVATIONS_HIGH: ScoreTable = (
    ScoreRange(3, maximum=0),
    ScoreRange(4, minimum=1),
    ScoreRange(5, minimum=2),
)

_OBSERVATIONS_MAXIMAL: ScoreTable = (
    ScoreRange(4, maximum=0),
    ScoreRange(5, minimum=1),
)


def score_by_thresholds(value: float, table: Sequence[ScoreRange]) -> int:
    """Return the score of the first range admitting ``value``.

    Bounds are inclusive and an omitted bound is open-ended. Returns
    ``FALLBACK_SCORE`` when no range matches.
    """
    for score_range in table:
        if score_range.admits(value):
            return score_range.score
    return FALLBACK_SCORE


def commit_count_table() -> ScoreTable:
    return _COMMIT_COUNT


def avg_files_table(legacy: bool) -> ScoreTable:
    return _AVG_FILES_LEGACY if legacy else _AVG_FILES_STANDARD


def avg_lines_table(legacy: bool) -> ScoreTable:
    return _AVG_LINES_LEGACY if legacy else _AVG_LINES_STANDARD


def lines_modified_table(legacy: bool) -> ScoreTable:
    return _LINES_MODIFIED_LEGACY if legacy else _LINES_MODIFIED_STANDARD


def close_time_table(complexity: int) -> ScoreTable:
    """Select the close-time table: complexity above 3 is a complex change."""
    return _CLOSE_TIME_COMPLEX if complexity > 3 else _CLOSE_TIME_SIMPLE


def observations_table(complexity: int) -> ScoreTable:
    """Select the observations table for the complexity band.

    Bands are ``[1, 3)``, ``[3, 4)``, ``[4, 5)`` and ``5``.
    """
    if 1 <= complexity < 3:
        return _OBSERVATIONS_LOW
    if 3 <= complexity < 4:
        return _OBSERVATIONS_MEDIUM
    if 4 <= complexity < 5:
        return _OBSERVATIONS_HIGH
    return _OBSERVATIONS_MAXIMAL


def commit_standard_score(ratio: float) -> int:
    """Score the share of commit messages matching the commit convention."""
    if ratio >= 0.9:
        return 5
    if ratio >= 0.75:
        return 4
    if ratio >= 0.6:
        return 3
    if ratio >= 0.4:
        return 2
    return 1


def approvals_score(approvals: int) -> int:
    if approvals > 2:
        return 5
    if approvals == 2:
        return 4
    if approvals == 1:
        return 3
    if approvals == 0:
        return 2
    return 1


def declined_score(declined: int) -> int:
    return 5 if declined == 0 else 3


def branch_score(conforms: bool) -> int:
    return 5 if conforms else 2


def weighted_average(items: Iterable[WeightedItem]) -> float:
    """Return ``sum(score * weight) / sum(weight)``, or ``0.0`` without weight.

    A single weighted item yields its own score exactly.
    """
    items = list(items)
    if len(items) == 1 and items[0].weight > 0:
        return float(items[0].score)

    numerator = 0.0
    denominator = 0.0
    for item in items:
        numerator += item.score * item.weight
        denominator += item.weight
    return numerator / denominator if denominator else 0.0


def round_half_up(value: float, digits: int = 0) -> float:
    """Round with ties going towards positive infinity."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def round1(value: float) -> float:
    """Round to one decimal place for display."""
    return round_half_up(value, 1)
