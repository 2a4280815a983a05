"""Signal extraction from raw pull request data.

This module derives the primitive metrics scored by the maturity model:
- Commit count and commit-message conformance.
- Average files and lines per commit, ignoring housekeeping commit types.
- Distinct approvers, branch-name conformance and lines modified.
- Comment, resolved-thread and observation tallies.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import FrozenSet, Optional, Pattern

from .models import PullRequestData

logger = logging.getLogger(__name__)

EXCLUDED_COMMIT_TYPES: FrozenSet[str] = frozenset({"chore", "style", "docs"})

_COMMIT_TYPE_RE = re.compile(r"^(\w+)(\(.+\))?:\s")


@dataclass(frozen=True, slots=True)
class Signals:
    """Primitive metrics derived from one pull request."""

    total_commits: int
    conforming_commits: int
    commit_standard_ratio: float
    averaged_commits: int
    avg_files_per_commit: float
    avg_lines_per_commit: float
    approvers: FrozenSet[str]
    head_branch: str
    branch_conforms: bool
    lines_modified: int
    total_comments: int
    resolved_threads: int
    unresolved_threads: int
    declined: int

    @property
    def approvals(self) -> int:
        return len(self.approvers)

    @property
    def observations(self) -> int:
        return self.total_comments + self.resolved_threads


def first_line(message: str) -> str:
    return message.split("\n", 1)[0] if message else ""


def parse_commit_type(message: str) -> Optional[str]:
    """Return the conventional-commit type prefix of a message, if any."""
    match = _COMMIT_TYPE_RE.match(first_line(message))
    return match.group(1) if match else None


def extract_signals(
    data: PullRequestData,
    commit_pattern: Pattern[str],
    branch_pattern: Pattern[str],
) -> Signals:
    """Derive scoring signals from the collaborator data of one pull request.

    Commits whose type is in ``EXCLUDED_COMMIT_TYPES`` still count towards
    the commit total and conformance ratio but are left out of the
    per-commit averages. Averages are ``0`` when no commit is eligible.
    """
    change_request = data.change_request

    conforming = 0
    sum_files = 0
    sum_lines = 0
    averaged = 0

    for commit in data.commits:
        subject = first_line(commit.message)
        if commit_pattern.search(subject):
            conforming += 1

        commit_type = parse_commit_type(subject)
        if commit_type in EXCLUDED_COMMIT_TYPES:
            logger.debug(
                "Excluding commit from per-commit averages",
                extra={"sha": commit.sha, "commit_type": commit_type},
            )
            continue

        sum_files += commit.files_changed
        sum_lines += commit.line_delta
        averaged += 1

    total_commits = len(data.commits)

    approvers = frozenset(
        review.author
        for review in data.reviews
        if review.author and review.state.upper() == "APPROVED"
    )

    resolved = sum(1 for resolved in data.thread_resolutions if resolved)
    unresolved = len(data.thread_resolutions) - resolved

    declined = 1 if change_request.state == "closed" and not change_request.merged else 0

    signals = Signals(
        total_commits=total_commits,
        conforming_commits=conforming,
        commit_standard_ratio=conforming / total_commits if total_commits else 0.0,
        averaged_commits=averaged,
        avg_files_per_commit=sum_files / averaged if averaged else 0.0,
        avg_lines_per_commit=sum_lines / averaged if averaged else 0.0,
        approvers=approvers,
        head_branch=change_request.head_branch,
        branch_conforms=bool(branch_pattern.search(change_request.head_branch)),
        lines_modified=change_request.additions + change_request.deletions,
        total_comments=data.comments.total,
        resolved_threads=resolved,
        unresolved_threads=unresolved,
        declined=declined,
    )

    logger.info(
        "Extracted pull request signals",
        extra={
            "pr_number": change_request.number,
            "total_commits": total_commits,
            "averaged_commits": averaged,
            "approvals": signals.approvals,
            "observations": signals.observations,
        },
    )

    return signals
