"""Domain models for pull request maturity scoring.

These dataclasses intentionally model only the subset of GitHub payload fields
that are required for scoring. Instances are built once per run by the API
client and never mutated afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple


@dataclass(frozen=True, slots=True)
class ChangeRequest:
    """Represents the pull request summary required for scoring."""

    number: int
    state: str
    merged: bool
    created_at: datetime
    closed_at: Optional[datetime]
    head_branch: str
    additions: int
    deletions: int

    @property
    def is_open(self) -> bool:
        return self.state == "open"


@dataclass(frozen=True, slots=True)
class Commit:
    """Represents one commit of a pull request with its change footprint."""

    sha: str
    message: str
    files_changed: int
    line_delta: int


@dataclass(frozen=True, slots=True)
class Review:
    """Represents a submitted review and the identity of its author."""

    author: Optional[str]
    state: str


@dataclass(frozen=True, slots=True)
class CommentCounts:
    """Represents issue-level and review-level comment tallies."""

    issue_comments: int = 0
    review_comments: int = 0

    @property
    def total(self) -> int:
        return self.issue_comments + self.review_comments


@dataclass(frozen=True, slots=True)
class PullRequestData:
    """Bundles every collaborator input consumed by a single scoring run."""

    change_request: ChangeRequest
    commits: Tuple[Commit, ...] = ()
    reviews: Tuple[Review, ...] = ()
    comments: CommentCounts = field(default_factory=CommentCounts)
    thread_resolutions: Tuple[bool, ...] = ()


@dataclass(frozen=True, slots=True)
class ScoreRange:
    """One inclusive range of a threshold table; omitted bounds are open."""

    score: int
    minimum: Optional[float] = None
    maximum: Optional[float] = None

    def admits(self, value: float) -> bool:
        if self.minimum is not None and value < self.minimum:
            return False
        if self.maximum is not None and value > self.maximum:
            return False
        return True


@dataclass(frozen=True, slots=True)
class WeightedItem:
    """Represents a 1-5 score and its relative weight in an aggregate."""

    score: int
    weight: float
