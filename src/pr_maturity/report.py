"""Report rendering for pull request maturity results.

This module provides utilities for:
- Deriving advisory recommendations from low sub-scores.
- Building the Markdown maturity report.
- Writing the report artifact and the GitHub Actions step summary.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Mapping, NamedTuple, Optional

from .config import Config
from .maturity import MaturityResult
from .scoring import round1, round_half_up

logger = logging.getLogger(__name__)

REPORT_FILENAME = "report.md"


class Recommendation(NamedTuple):
    """An advisory item triggered by a weak signal."""

    code: str
    message: str


def build_recommendations(result: MaturityResult, config: Config) -> List[Recommendation]:
    """Return the recommendations triggered by the result's sub-scores."""
    scores = result.scores
    signals = result.signals
    recommendations: List[Recommendation] = []

    if scores.commit_count <= 2:
        recommendations.append(
            Recommendation("commit_count", "Consider squashing or reorganizing commits; avoid PRs with many commits.")
        )
    if scores.avg_files <= 2:
        recommendations.append(
            Recommendation("avg_files", "Split changes per commit: too many files per commit make review harder.")
        )
    if scores.avg_lines <= 2:
        recommendations.append(
            Recommendation("avg_lines", "Aim for smaller commits with fewer changed lines each.")
        )
    if scores.commit_standard <= 3:
        recommendations.append(
            Recommendation(
                "commit_standard",
                f"Improve commit message consistency (current regex: `{config.commit_regex}`).",
            )
        )
    if not signals.branch_conforms:
        recommendations.append(
            Recommendation("branch", f"Rename the branch to match the regex: `{config.branch_regex}`.")
        )
    if signals.unresolved_threads > 0:
        recommendations.append(
            Recommendation(
                "unresolved_threads",
                f"Resolve conversations: **{signals.unresolved_threads}** threads are still unresolved.",
            )
        )
    if scores.close_time <= 2:
        recommendations.append(
            Recommendation("close_time", "Long business-hours window: try to speed up review cycles.")
        )

    return recommendations


def render_markdown(result: MaturityResult, config: Config) -> str:
    """Render the maturity result as a Markdown document."""
    scores = result.scores
    signals = result.signals

    merged_suffix = " (MERGED)" if result.merged else ""
    penalty_note = (
        f" (includes M5 staleness penalty: -{result.staleness_penalty})" if result.staleness_penalty else ""
    )
    branch_status = "✅ conforms" if signals.branch_conforms else "❌ does not conform"

    lines = [
        "# 📌 Code Review Metrics Report (per PR)",
        f"**PR:** {config.pr_url}",
        f"**Repo:** `{config.owner}/{config.repo}`",
        f"**State:** {result.state}{merged_suffix}",
        f"**Complexity (1-5):** **{result.complexity}**",
        f"**Maturity level (1-5):** **{round1(result.maturity)}**{penalty_note}",
        "",
        "---",
        "## M1 – Commit handling (weight 0.25)",
        f"- Commits in PR: **{signals.total_commits}** → score **{scores.commit_count}**",
        f"- Avg. files/commit (excludes chore/style/docs): **{round1(signals.avg_files_per_commit)}**"
        f" → score **{scores.avg_files}**",
        f"- Avg. lines/commit (excludes chore/style/docs): **{round1(signals.avg_lines_per_commit)}**"
        f" → score **{scores.avg_lines}**",
        f"- Commit standard: **{int(round_half_up(signals.commit_standard_ratio * 100))}%** match the regex"
        f" → score **{scores.commit_standard}**",
        f"- **M1:** **{round1(result.m1)}**",
        "",
        "## M2 – Pull request creation (weight 0.15)",
        f"- Unique approvers: **{signals.approvals}** → score **{scores.approvals}**",
        f"- Declined (single-PR mode): **{signals.declined}** → score **{scores.declined}**",
        f"- Branch: `{signals.head_branch}` → {branch_status} → score **{scores.branch}**",
        f"- **M2:** **{round1(result.m2)}**",
        "",
        "## M3 – Pull request review (weight 0.35)",
        f"- Business time open ({config.timezone}, {config.work_hours}): **{round1(result.close_hours)}h**"
        f" → score **{scores.close_time}**",
        f"- Lines modified (add+del): **{signals.lines_modified}** → score **{scores.lines_modified}**",
        f"- **M3:** **{round1(result.m3)}**",
        "",
        "## M4 – Observations on PR (weight 0.25)",
        f"- Comments (issue + review): **{signals.total_comments}**",
        f"- Resolved threads: **{signals.resolved_threads}** | unresolved: **{signals.unresolved_threads}**",
        f"- Observations (comments + resolved): **{signals.observations}** → score **{scores.observations}**",
        f"- **M4:** **{round1(result.m4)}**",
        "",
        "---",
        "## Quick recommendations",
    ]

    lines.extend(f"- {item.message}" for item in build_recommendations(result, config))
    lines.append("")
    lines.append(
        "> Note: \"declined\" is usually a historical metric; this report measures it in "
        "single-PR mode (this PR only)."
    )
    if result.declined_window_days > 0:
        lines.append(
            f"> A declined window of {result.declined_window_days} days was requested but "
            "historical lookup is not available."
        )

    return "\n".join(lines)


def write_report(markdown: str, output_dir: str) -> Path:
    """Write the report to ``<output_dir>/report.md`` and return its path."""
    directory = Path(output_dir)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / REPORT_FILENAME
    path.write_text(markdown, encoding="utf-8")
    logger.info("Wrote maturity report", extra={"path": str(path)})
    return path


def append_step_summary(markdown: str, environ: Optional[Mapping[str, str]] = None) -> Optional[Path]:
    """Append the report to the GitHub Actions step summary when available."""
    env = os.environ if environ is None else environ
    summary_path = env.get("GITHUB_STEP_SUMMARY")
    if not summary_path:
        return None

    path = Path(summary_path)
    with path.open("a", encoding="utf-8") as handle:
        handle.write(markdown + "\n")
    return path
