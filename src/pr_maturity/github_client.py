"""GitHub REST and GraphQL client for pull request scoring data."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import requests

from .config import Config
from .errors import DataValidationError, UpstreamFetchError
from .models import ChangeRequest, Commit, CommentCounts, PullRequestData, Review

logger = logging.getLogger(__name__)

_REVIEW_THREADS_QUERY = """
query($owner:String!, $repo:String!, $number:Int!, $after:String) {
  repository(owner:$owner, name:$repo) {
    pullRequest(number:$number) {
      reviewThreads(first:100, after:$after) {
        pageInfo { hasNextPage endCursor }
        nodes { isResolved }
      }
    }
  }
}
"""


class GitHubClient:
    """Small, typed client for the GitHub pull request APIs."""

    _API_BASE = "https://api.github.com"
    _API_VERSION = "2022-11-28"
    _PAGE_SIZE = 100
    _MAX_RETRIES = 5
    _MAX_BACKOFF_SECONDS = 30
    _COMMIT_DETAIL_WORKERS = 4

    def __init__(self, config: Config, timeout_seconds: int = 30) -> None:
        """Initialize an authenticated GitHub API client.

        Args:
            config: Validated runtime configuration including the PR and token.
            timeout_seconds: Per-request timeout in seconds.
        """
        self._config = config
        self._timeout_seconds = timeout_seconds
        self._repo_path = f"repos/{config.owner}/{config.repo}"

        # One session per thread; commit details are fetched from worker threads.
        self._local = threading.local()
        self._local.session = self._new_session()

    def _new_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update(
            {
                "Accept": "application/vnd.github+json",
                "Authorization": f"Bearer {self._config.token}",
                "X-GitHub-Api-Version": self._API_VERSION,
            }
        )
        return session

    @property
    def _session(self) -> requests.Session:
        """Return the calling thread's authenticated session."""
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._new_session()
            self._local.session = session
        return session

    def _build_url(self, path: str) -> str:
        """Build a fully qualified API URL from a path below the API root."""
        if path.startswith("https://"):
            return path
        return f"{self._API_BASE}/{path.lstrip('/')}"

    def _parse_datetime(self, value: Optional[str]) -> Optional[datetime]:
        """Parse GitHub ISO8601 timestamps into timezone-aware datetimes."""
        if not value:
            return None

        normalized = value[:-1] + "+00:00" if value.endswith("Z") else value
        parsed = datetime.fromisoformat(normalized)
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed

    def _extract_backoff_seconds(self, response: requests.Response, attempt: int) -> int:
        """Compute exponential backoff seconds, honoring Retry-After when available."""
        retry_after_header = response.headers.get("Retry-After")
        if retry_after_header:
            try:
                retry_after_seconds = int(retry_after_header)
                return min(self._MAX_BACKOFF_SECONDS, max(1, retry_after_seconds))
            except ValueError:
                pass

        return min(self._MAX_BACKOFF_SECONDS, 2 ** (attempt - 1))

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
        retry: bool = True,
    ) -> Tuple[Any, requests.Response]:
        """Execute a request with retry logic for 429/5xx responses.

        Pass ``retry=False`` for requests that are not safe to repeat; they
        are attempted once.

        Returns:
            The decoded JSON payload (``None`` for 204 responses) and the response.

        Raises:
            UpstreamFetchError: If the request repeatedly fails, returns
                HTTP >= 400, or does not return valid JSON.
        """
        url = self._build_url(path)
        last_error: Optional[Exception] = None
        max_attempts = self._MAX_RETRIES if retry else 1

        for attempt in range(1, max_attempts + 1):
            try:
                response = self._session.request(
                    method,
                    url,
                    params=params,
                    json=body,
                    timeout=self._timeout_seconds,
                )
            except requests.RequestException as exc:
                last_error = exc
                if attempt == max_attempts:
                    raise UpstreamFetchError(f"GitHub request failed after retries: {method} {url}") from exc
                time.sleep(min(self._MAX_BACKOFF_SECONDS, 2 ** (attempt - 1)))
                continue

            status_code = response.status_code
            is_retryable = status_code == 429 or 500 <= status_code <= 599

            if is_retryable and attempt < max_attempts:
                logger.debug(
                    "Retrying GitHub request",
                    extra={"url": url, "status_code": status_code, "attempt": attempt},
                )
                time.sleep(self._extract_backoff_seconds(response, attempt))
                continue

            if status_code >= 400:
                raise UpstreamFetchError(
                    f"GitHub API request failed: {method} {url} returned {status_code} - {response.text}"
                )

            if status_code == 204:
                return None, response

            try:
                payload = response.json()
            except ValueError as exc:
                raise UpstreamFetchError(f"GitHub API returned invalid JSON: {method} {url}") from exc

            return payload, response

        raise UpstreamFetchError(f"GitHub request failed after retries: {method} {url}") from last_error

    def _get_object(self, path: str) -> Dict[str, Any]:
        payload, _ = self._request("GET", path)
        if not isinstance(payload, dict):
            raise UpstreamFetchError(f"GitHub API returned unexpected payload shape: GET {path}")
        return payload

    def _paginate(self, path: str) -> List[Dict[str, Any]]:
        """Collect every page of a list endpoint by following ``rel="next"`` links.

        Raises:
            UpstreamFetchError: If any page is not a JSON array.
        """
        items: List[Dict[str, Any]] = []
        next_url: Optional[str] = path
        params: Optional[Dict[str, Any]] = {"per_page": self._PAGE_SIZE}

        while next_url:
            payload, response = self._request("GET", next_url, params=params)
            if not isinstance(payload, list):
                raise UpstreamFetchError(f"Expected array pagination response: {next_url}")
            items.extend(payload)

            next_url = response.links.get("next", {}).get("url")
            # next links already carry their query string
            params = None

        return items

    def get_change_request(self) -> ChangeRequest:
        """Fetch the pull request summary.

        Raises:
            DataValidationError: If required summary fields are missing.
        """
        item = self._get_object(f"{self._repo_path}/pulls/{self._config.pull_number}")

        state = item.get("state")
        created_at = self._parse_datetime(item.get("created_at"))
        if not state or created_at is None:
            raise DataValidationError(
                "GitHub pull request payload is missing required fields: "
                f"pr={self._config.pull_number}, payload_keys={sorted(item)}"
            )

        head = item.get("head") or {}
        return ChangeRequest(
            number=int(item.get("number") or self._config.pull_number),
            state=str(state),
            merged=bool(item.get("merged_at")),
            created_at=created_at,
            closed_at=self._parse_datetime(item.get("closed_at")),
            head_branch=str(head.get("ref") or ""),
            additions=int(item.get("additions") or 0),
            deletions=int(item.get("deletions") or 0),
        )

    def get_commit_detail(self, sha: str) -> Tuple[int, int]:
        """Return the touched-file count and total line delta of one commit."""
        item = self._get_object(f"{self._repo_path}/commits/{sha}")
        files = item.get("files") or []
        stats = item.get("stats") or {}
        return len(files), int(stats.get("total") or 0)

    def list_commits(self) -> List[Commit]:
        """List pull request commits together with their change footprint.

        Per-commit details are fetched concurrently; results keep the
        pull request's commit order.
        """
        raw_commits = self._paginate(f"{self._repo_path}/pulls/{self._config.pull_number}/commits")

        shas: List[str] = []
        messages: List[str] = []
        for item in raw_commits:
            sha = item.get("sha")
            if not sha:
                raise DataValidationError(f"GitHub commit payload is missing 'sha': {item}")
            shas.append(str(sha))
            messages.append(str((item.get("commit") or {}).get("message") or ""))

        with ThreadPoolExecutor(max_workers=self._COMMIT_DETAIL_WORKERS) as executor:
            details = list(executor.map(self.get_commit_detail, shas))

        return [
            Commit(sha=sha, message=message, files_changed=files, line_delta=lines)
            for sha, message, (files, lines) in zip(shas, messages, details)
        ]

    def list_reviews(self) -> List[Review]:
        """List submitted reviews with their author login and state."""
        reviews: List[Review] = []
        for item in self._paginate(f"{self._repo_path}/pulls/{self._config.pull_number}/reviews"):
            user = item.get("user") or {}
            reviews.append(Review(author=user.get("login"), state=str(item.get("state") or "")))
        return reviews

    def count_comments(self) -> CommentCounts:
        """Count issue-level and review-level comments."""
        issue_comments = self._paginate(f"{self._repo_path}/issues/{self._config.pull_number}/comments")
        review_comments = self._paginate(f"{self._repo_path}/pulls/{self._config.pull_number}/comments")
        return CommentCounts(issue_comments=len(issue_comments), review_comments=len(review_comments))

    def list_thread_resolutions(self) -> List[bool]:
        """Return the resolved flag of every review thread via GraphQL.

        Raises:
            UpstreamFetchError: If GraphQL reports errors or the repository
                is not accessible.
        """
        resolutions: List[bool] = []
        after: Optional[str] = None

        while True:
            body = {
                "query": _REVIEW_THREADS_QUERY,
                "variables": {
                    "owner": self._config.owner,
                    "repo": self._config.repo,
                    "number": self._config.pull_number,
                    "after": after,
                },
            }
            payload, _ = self._request("POST", "graphql", body=body)

            if not isinstance(payload, dict):
                raise UpstreamFetchError("GitHub GraphQL returned unexpected payload shape.")

            errors = payload.get("errors")
            if errors:
                logger.error("GitHub GraphQL returned errors", extra={"errors": errors})
                raise UpstreamFetchError(f"GraphQL error: {errors[0].get('message', errors[0])}")

            repository = (payload.get("data") or {}).get("repository")
            if not repository:
                raise UpstreamFetchError(
                    "Could not access the repository through GraphQL. Check the token permissions."
                )

            try:
                connection = repository["pullRequest"]["reviewThreads"]
                nodes = connection["nodes"]
                page_info = connection["pageInfo"]
            except (KeyError, TypeError) as exc:
                raise UpstreamFetchError("GitHub GraphQL review thread response is malformed.") from exc

            if not isinstance(nodes, list) or not all(isinstance(node, dict) for node in nodes):
                raise UpstreamFetchError("GitHub GraphQL review thread nodes are malformed.")
            if not isinstance(page_info, dict):
                raise UpstreamFetchError("GitHub GraphQL review thread pageInfo is malformed.")

            resolutions.extend(bool(node.get("isResolved")) for node in nodes)

            if not page_info.get("hasNextPage"):
                break

            cursor = page_info.get("endCursor")
            if not cursor or cursor == after:
                raise UpstreamFetchError(
                    f"GitHub GraphQL review thread pagination did not advance (endCursor={cursor!r})."
                )
            after = cursor

        return resolutions

    def fetch_pull_request_data(self) -> PullRequestData:
        """Fetch every input required to score the configured pull request."""
        change_request = self.get_change_request()
        commits = self.list_commits()
        reviews = self.list_reviews()
        comments = self.count_comments()
        resolutions = self.list_thread_resolutions()

        logger.info(
            "Fetched pull request data",
            extra={
                "pr_number": change_request.number,
                "commits": len(commits),
                "reviews": len(reviews),
                "comments": comments.total,
                "threads": len(resolutions),
            },
        )

        return PullRequestData(
            change_request=change_request,
            commits=tuple(commits),
            reviews=tuple(reviews),
            comments=comments,
            thread_resolutions=tuple(resolutions),
        )

    def post_comment(self, body: str) -> None:
        """Post the report as an issue comment on the pull request.

        The POST is attempted once so a failed response never duplicates
        the comment.
        """
        self._request(
            "POST",
            f"{self._repo_path}/issues/{self._config.pull_number}/comments",
            body={"body": body},
            retry=False,
        )
