"""Configuration parsing and validation for the PR maturity scorer."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from datetime import time
from typing import Mapping, Optional, Pattern

from .business_hours import parse_clock, parse_work_hours, resolve_timezone
from .errors import AuthenticationError, ConfigurationError

DEFAULT_TIMEZONE = "America/Santo_Domingo"
DEFAULT_WORK_HOURS = "09:00-18:00"
DEFAULT_MORNING_CUTOFF = "07:30"
DEFAULT_COMMIT_REGEX = r"^(feat|fix|chore|docs|style|refactor|test|perf|build|ci)(\(.+\))?: .+"
DEFAULT_BRANCH_REGEX = r"^(feature|bugfix|hotfix|release)\/[^\s]+$"
DEFAULT_OUTPUT_DIR = "output"

_PR_URL_RE = re.compile(r"github\.com/([^/]+)/([^/]+)/pull/(\d+)", re.IGNORECASE)


@dataclass(frozen=True)
class Config:
    """Validated runtime settings used by the maturity scorer."""

    token: str
    pr_url: str
    owner: str
    repo: str
    pull_number: int
    legacy_repo: bool = False
    functional: bool = True
    post_comment: bool = True
    timezone: str = DEFAULT_TIMEZONE
    work_hours: str = DEFAULT_WORK_HOURS
    work_start: time = time(9, 0)
    work_end: time = time(18, 0)
    morning_cutoff: time = time(7, 30)
    commit_regex: str = DEFAULT_COMMIT_REGEX
    branch_regex: str = DEFAULT_BRANCH_REGEX
    commit_pattern: Pattern[str] = re.compile(DEFAULT_COMMIT_REGEX)
    branch_pattern: Pattern[str] = re.compile(DEFAULT_BRANCH_REGEX)
    declined_window_days: int = 0
    output_dir: str = DEFAULT_OUTPUT_DIR


def parse_pr_url(url: str) -> tuple[str, str, int]:
    """Split a GitHub pull request URL into owner, repository and number.

    Raises:
        ConfigurationError: If the URL does not point at a pull request.
    """
    match = _PR_URL_RE.search(url)
    if not match:
        raise ConfigurationError(f"Invalid pull request URL: {url}")
    return match.group(1), match.group(2), int(match.group(3))


def _env_flag(value: Optional[str], default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() == "true"


def _compile(name: str, pattern: str) -> Pattern[str]:
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise ConfigurationError(f"Invalid regular expression for '{name}': {exc}") from exc


def _first(*values: Optional[str]) -> Optional[str]:
    for value in values:
        if value:
            return value
    return None


def load_config(
    pr_url: Optional[str] = None,
    legacy_repo: Optional[bool] = None,
    functional: Optional[bool] = None,
    post_comment: Optional[bool] = None,
    timezone: Optional[str] = None,
    work_hours: Optional[str] = None,
    morning_cutoff: Optional[str] = None,
    commit_regex: Optional[str] = None,
    branch_regex: Optional[str] = None,
    declined_window_days: Optional[int] = None,
    output_dir: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Config:
    """Build and validate application configuration.

    Explicit arguments take precedence; unset values fall back to the
    ``PR_URL``, ``LEGACY_REPO``, ``FUNCTIONAL_PR``, ``POST_COMMENT``, ``TZ``,
    ``WORK_HOURS``, ``MORNING_CUTOFF``, ``COMMIT_REGEX``, ``BRANCH_REGEX`` and
    ``DECLINED_WINDOW_DAYS`` environment variables, then to defaults. The
    access token is only read from ``GH_TOKEN``.

    Returns:
        A validated ``Config`` instance.

    Raises:
        AuthenticationError: If ``GH_TOKEN`` is not configured.
        ConfigurationError: If the pull request URL is missing or any value
            is malformed.
    """
    env = os.environ if environ is None else environ

    token = env.get("GH_TOKEN", "").strip()
    if not token:
        raise AuthenticationError(
            "Missing required GitHub access token. "
            "Set the 'GH_TOKEN' environment variable before running the scorer."
        )

    resolved_url = _first(pr_url, env.get("PR_URL"))
    if not resolved_url:
        raise ConfigurationError("Missing pull request URL. Pass --pr-url or set 'PR_URL'.")
    owner, repo, pull_number = parse_pr_url(resolved_url)

    resolved_tz = _first(timezone, env.get("TZ")) or DEFAULT_TIMEZONE
    resolve_timezone(resolved_tz)

    resolved_hours = _first(work_hours, env.get("WORK_HOURS")) or DEFAULT_WORK_HOURS
    work_start, work_end = parse_work_hours(resolved_hours)

    cutoff = parse_clock(_first(morning_cutoff, env.get("MORNING_CUTOFF")) or DEFAULT_MORNING_CUTOFF)

    resolved_commit_regex = _first(commit_regex, env.get("COMMIT_REGEX")) or DEFAULT_COMMIT_REGEX
    resolved_branch_regex = _first(branch_regex, env.get("BRANCH_REGEX")) or DEFAULT_BRANCH_REGEX

    if declined_window_days is None:
        raw_days = env.get("DECLINED_WINDOW_DAYS", "").strip() or "0"
        try:
            declined_window_days = int(raw_days)
        except ValueError as exc:
            raise ConfigurationError(
                f"Invalid value for 'DECLINED_WINDOW_DAYS': expected an integer, got '{raw_days}'."
            ) from exc
    if declined_window_days < 0:
        raise ConfigurationError("Invalid value for 'declined window days': expected 0 or more.")

    return Config(
        token=token,
        pr_url=resolved_url,
        owner=owner,
        repo=repo,
        pull_number=pull_number,
        legacy_repo=legacy_repo if legacy_repo is not None else _env_flag(env.get("LEGACY_REPO"), False),
        functional=functional if functional is not None else _env_flag(env.get("FUNCTIONAL_PR"), True),
        post_comment=(
            post_comment if post_comment is not None else _env_flag(env.get("POST_COMMENT"), True)
        ),
        timezone=resolved_tz,
        work_hours=resolved_hours,
        work_start=work_start,
        work_end=work_end,
        morning_cutoff=cutoff,
        commit_regex=resolved_commit_regex,
        branch_regex=resolved_branch_regex,
        commit_pattern=_compile("commit regex", resolved_commit_regex),
        branch_pattern=_compile("branch regex", resolved_branch_regex),
        declined_window_days=declined_window_days,
        output_dir=output_dir or DEFAULT_OUTPUT_DIR,
    )
