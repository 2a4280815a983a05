"""Maturity aggregation for a single pull request.

The evaluation runs in two phases. Phase one scores the commit and size
signals and derives a 1-5 complexity level from them. Phase two selects the
close-time and observations tables by that complexity, then combines every
score into the four category aggregates (M1-M4) and the overall maturity,
which is reduced by a staleness penalty (M5) for pull requests left open.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from .business_hours import business_minutes_between
from .config import Config
from .models import PullRequestData, WeightedItem
from .scoring import (
    approvals_score,
    avg_files_table,
    avg_lines_table,
    branch_score,
    close_time_table,
    commit_count_table,
    commit_standard_score,
    declined_score,
    lines_modified_table,
    observations_table,
    round_half_up,
    score_by_thresholds,
    weighted_average,
)
from .signals import Signals, extract_signals

logger = logging.getLogger(__name__)

STALENESS_THRESHOLD = timedelta(days=7)
STALENESS_PENALTY = 0.5

M1_WEIGHT = 0.25
M2_WEIGHT = 0.15
M3_WEIGHT = 0.35
M4_WEIGHT = 0.25


@dataclass(frozen=True, slots=True)
class SignalScores:
    """Integer 1-5 scores for each scored signal."""

    commit_count: int
    avg_files: int
    avg_lines: int
    commit_standard: int
    lines_modified: int
    close_time: int
    observations: int
    approvals: int
    declined: int
    branch: int


@dataclass(frozen=True, slots=True)
class MaturityResult:
    """Structured outcome of one maturity evaluation."""

    state: str
    merged: bool
    signals: Signals
    scores: SignalScores
    complexity: int
    business_minutes: int
    m1: float
    m2: float
    m3: float
    m4: float
    staleness_penalty: float
    maturity: float
    declined_window_days: int = 0

    @property
    def close_hours(self) -> float:
        return self.business_minutes / 60


def compute_complexity(
    commit_count: int,
    avg_files: int,
    avg_lines: int,
    lines_modified: int,
    functional: bool,
) -> int:
    """Derive the 1-5 complexity level from commit and size scores.

    Non-functional changes are always treated as maximally complex.
    """
    if not functional:
        return 5

    weighted = weighted_average(
        [
            WeightedItem(commit_count, 0.20),
            WeightedItem(avg_files, 0.25),
            WeightedItem(avg_lines, 0.25),
            WeightedItem(lines_modified, 0.30),
        ]
    )
    return int(min(5, max(1, round_half_up(weighted))))


def staleness_penalty(state: str, created_at: datetime, now: datetime) -> float:
    """Return the M5 penalty for pull requests open longer than a week."""
    if state == "open" and now - created_at > STALENESS_THRESHOLD:
        return STALENESS_PENALTY
    return 0.0


def evaluate_maturity(
    data: PullRequestData,
    config: Config,
    now: Optional[datetime] = None,
) -> MaturityResult:
    """Score a pull request and aggregate its maturity.

    Open pull requests measure close time up to ``now``. ``now`` defaults to
    the current UTC time and must be timezone-aware when provided.
    """
    now = now or datetime.now(timezone.utc)
    change_request = data.change_request
    signals = extract_signals(data, config.commit_pattern, config.branch_pattern)

    commit_count = score_by_thresholds(signals.total_commits, commit_count_table())
    avg_files = score_by_thresholds(signals.avg_files_per_commit, avg_files_table(config.legacy_repo))
    avg_lines = score_by_thresholds(signals.avg_lines_per_commit, avg_lines_table(config.legacy_repo))
    lines_modified = score_by_thresholds(signals.lines_modified, lines_modified_table(config.legacy_repo))
    commit_standard = commit_standard_score(signals.commit_standard_ratio)

    complexity = compute_complexity(
        commit_count=commit_count,
        avg_files=avg_files,
        avg_lines=avg_lines,
        lines_modified=lines_modified,
        functional=config.functional,
    )

    closed_at = change_request.closed_at or now
    business_minutes = business_minutes_between(
        change_request.created_at,
        closed_at,
        config.timezone,
        config.work_start,
        config.work_end,
        config.morning_cutoff,
    )
    close_time = score_by_thresholds(business_minutes / 60, close_time_table(complexity))
    observations = score_by_thresholds(signals.observations, observations_table(complexity))

    if config.declined_window_days > 0:
        logger.warning(
            "Historical declined lookup is not supported; scoring this pull request only",
            extra={"declined_window_days": config.declined_window_days},
        )

    scores = SignalScores(
        commit_count=commit_count,
        avg_files=avg_files,
        avg_lines=avg_lines,
        commit_standard=commit_standard,
        lines_modified=lines_modified,
        close_time=close_time,
        observations=observations,
        approvals=approvals_score(signals.approvals),
        declined=declined_score(signals.declined),
        branch=branch_score(signals.branch_conforms),
    )

    m1 = weighted_average(
        [
            WeightedItem(scores.commit_count, 0.30),
            WeightedItem(scores.avg_files, 0.20),
            WeightedItem(scores.avg_lines, 0.20),
            WeightedItem(scores.commit_standard, 0.30),
        ]
    )
    m2 = weighted_average(
        [
            WeightedItem(scores.approvals, 0.50),
            WeightedItem(scores.declined, 0.20),
            WeightedItem(scores.branch, 0.30),
        ]
    )
    m3 = weighted_average(
        [
            WeightedItem(scores.close_time, 0.75),
            WeightedItem(scores.lines_modified, 0.25),
        ]
    )
    m4 = weighted_average([WeightedItem(scores.observations, 1.00)])

    penalty = staleness_penalty(change_request.state, change_request.created_at, now)
    maturity = m1 * M1_WEIGHT + m2 * M2_WEIGHT + m3 * M3_WEIGHT + m4 * M4_WEIGHT - penalty

    logger.info(
        "Evaluated pull request maturity",
        extra={
            "pr_number": change_request.number,
            "complexity": complexity,
            "business_minutes": business_minutes,
            "maturity": maturity,
            "staleness_penalty": penalty,
        },
    )

    return MaturityResult(
        state=change_request.state,
        merged=change_request.merged,
        signals=signals,
        scores=scores,
        complexity=complexity,
        business_minutes=business_minutes,
        m1=m1,
        m2=m2,
        m3=m3,
        m4=m4,
        staleness_penalty=penalty,
        maturity=maturity,
        declined_window_days=config.declined_window_days,
    )
