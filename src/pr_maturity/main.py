"""Application entry point for the PR maturity scorer."""

from __future__ import annotations

import logging
import sys
from typing import Optional, Sequence

from .cli import parse_args
from .config import load_config
from .errors import (
    AuthenticationError,
    ConfigurationError,
    DataValidationError,
    UpstreamFetchError,
)
from .github_client import GitHubClient
from .maturity import evaluate_maturity
from .report import append_step_summary, render_markdown, write_report

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_UNEXPECTED = 1
EXIT_CONFIGURATION = 2
EXIT_AUTHENTICATION = 3
EXIT_UPSTREAM = 4
EXIT_DATA_VALIDATION = 5


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def orchestrate_scoring(argv: Optional[Sequence[str]] = None) -> int:
    """Run the scoring workflow and return a process exit code.

    Any failure aborts the run before a report is written or posted.
    """
    try:
        args = parse_args(argv)
        _configure_logging(args.verbose)

        config = load_config(
            pr_url=args.pr_url,
            legacy_repo=args.legacy_repo,
            functional=args.functional,
            post_comment=args.post_comment,
            timezone=args.timezone,
            work_hours=args.work_hours,
            morning_cutoff=args.morning_cutoff,
            commit_regex=args.commit_regex,
            branch_regex=args.branch_regex,
            declined_window_days=args.declined_window_days,
            output_dir=args.output_dir,
        )

        print(f"Scoring pull request {config.owner}/{config.repo}#{config.pull_number}...")
        client = GitHubClient(config=config)
        data = client.fetch_pull_request_data()

        result = evaluate_maturity(data, config)
        markdown = render_markdown(result, config)

        write_report(markdown, config.output_dir)
        append_step_summary(markdown)

        if config.post_comment:
            client.post_comment(markdown)
            logger.info("Posted maturity report comment", extra={"pr_number": config.pull_number})

        print(markdown)
        return EXIT_OK
    except AuthenticationError as exc:
        logger.error("Authentication error: %s", exc)
        return EXIT_AUTHENTICATION
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        return EXIT_CONFIGURATION
    except UpstreamFetchError as exc:
        logger.error("GitHub API error: %s", exc)
        return EXIT_UPSTREAM
    except DataValidationError as exc:
        logger.error("Data validation error: %s", exc)
        return EXIT_DATA_VALIDATION
    except Exception:
        logger.exception("Unexpected error while scoring pull request")
        return EXIT_UNEXPECTED


def main() -> None:
    raise SystemExit(orchestrate_scoring())


if __name__ == "__main__":
    main()
