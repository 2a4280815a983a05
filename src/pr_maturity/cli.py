"""Command-line argument parsing for the PR maturity scorer."""

from __future__ import annotations

import argparse
from typing import Optional, Sequence


def _non_negative_int(value: str) -> int:
    """Parse and validate a non-negative integer CLI value.

    Args:
        value: Raw command-line argument value.

    Returns:
        The validated integer.

    Raises:
        argparse.ArgumentTypeError: If value is not an integer of at least 0.
    """
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be an integer") from exc

    if parsed < 0:
        raise argparse.ArgumentTypeError("must be 0 or greater")

    return parsed


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments for maturity scoring.

    Options left unset are ``None`` so configuration loading can fall back to
    the matching environment variables.
    """
    parser = argparse.ArgumentParser(
        prog="pr-maturity-score",
        description=(
            "Score the maturity of a GitHub pull request from its commits, "
            "reviews, business-hours close time and review observations."
        ),
    )

    parser.add_argument(
        "--pr-url",
        help="Pull request URL, e.g. https://github.com/OWNER/REPO/pull/123 (env: PR_URL).",
    )
    parser.add_argument(
        "--legacy-repo",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Use the relaxed legacy-repository thresholds (env: LEGACY_REPO).",
    )
    parser.add_argument(
        "--functional",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Mark the PR as a functional change; --no-functional forces complexity 5 (env: FUNCTIONAL_PR).",
    )
    parser.add_argument(
        "--post-comment",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Post the report back to the pull request (env: POST_COMMENT).",
    )
    parser.add_argument("--timezone", help="IANA time zone for business hours (env: TZ).")
    parser.add_argument("--work-hours", help="Work window as HH:MM-HH:MM (env: WORK_HOURS).")
    parser.add_argument("--morning-cutoff", help="Morning cutoff as HH:MM (env: MORNING_CUTOFF).")
    parser.add_argument("--commit-regex", help="Commit message convention regex (env: COMMIT_REGEX).")
    parser.add_argument("--branch-regex", help="Branch naming convention regex (env: BRANCH_REGEX).")
    parser.add_argument(
        "--declined-window-days",
        type=_non_negative_int,
        default=None,
        help="Historical window for declined PRs; only 0 is scored (env: DECLINED_WINDOW_DAYS).",
    )
    parser.add_argument(
        "--output-dir",
        default=None,
        help="Directory for the report.md artifact (default: output).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )

    return parser.parse_args(argv)
