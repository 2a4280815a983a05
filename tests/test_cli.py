"""Tests for command-line argument parsing."""

import sys
from pathlib import Path

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pr_maturity.cli import parse_args


def test_parse_args_with_valid_arguments():
    """Verify CLI parsing succeeds when options are provided."""
    args = parse_args(
        [
            "--pr-url",
            "https://github.com/acme/widgets/pull/7",
            "--legacy-repo",
            "--no-functional",
            "--no-post-comment",
            "--timezone",
            "UTC",
            "--work-hours",
            "08:00-16:00",
            "--morning-cutoff",
            "06:00",
            "--declined-window-days",
            "14",
            "--output-dir",
            "reports",
            "--verbose",
        ]
    )

    assert args.pr_url == "https://github.com/acme/widgets/pull/7"
    assert args.legacy_repo is True
    assert args.functional is False
    assert args.post_comment is False
    assert args.timezone == "UTC"
    assert args.work_hours == "08:00-16:00"
    assert args.morning_cutoff == "06:00"
    assert args.declined_window_days == 14
    assert args.output_dir == "reports"
    assert args.verbose is True


def test_parse_args_defaults_leave_environment_fallbacks():
    """Verify omitted options are None so the environment can supply them."""
    args = parse_args([])

    assert args.pr_url is None
    assert args.legacy_repo is None
    assert args.functional is None
    assert args.post_comment is None
    assert args.commit_regex is None
    assert args.branch_regex is None
    assert args.declined_window_days is None
    assert args.verbose is False


def test_parse_args_reads_sys_argv(monkeypatch):
    """Verify CLI parsing falls back to sys.argv."""
    monkeypatch.setattr(sys, "argv", ["pr-maturity-score", "--functional"])

    args = parse_args()

    assert args.functional is True


@pytest.mark.parametrize("value", ["-1", "abc"])
def test_parse_args_with_invalid_declined_window_fails_validation(value):
    """Verify CLI parsing exits with an error for invalid declined windows."""
    with pytest.raises(SystemExit):
        parse_args(["--declined-window-days", value])
