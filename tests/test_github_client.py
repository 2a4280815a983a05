"""Tests for GitHub API client behavior with mocked HTTP."""

import sys
import threading
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import Mock, patch

import pytest
import requests

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pr_maturity.config import Config
from pr_maturity.errors import DataValidationError, UpstreamFetchError
from pr_maturity.github_client import GitHubClient
from pr_maturity.models import CommentCounts


def _build_client() -> GitHubClient:
    config = Config(
        token="gh-token",
        pr_url="https://github.com/acme/widgets/pull/7",
        owner="acme",
        repo="widgets",
        pull_number=7,
    )
    return GitHubClient(config=config)


def _response(
    status_code: int,
    payload=None,
    text: str = "",
    headers: dict | None = None,
    links: dict | None = None,
):
    response = Mock()
    response.status_code = status_code
    response.text = text
    response.headers = headers or {}
    response.links = links or {}
    response.json.return_value = payload if payload is not None else {}
    return response


def _threads_page(resolved: list, has_next: bool, cursor: str | None = None) -> dict:
    return {
        "data": {
            "repository": {
                "pullRequest": {
                    "reviewThreads": {
                        "pageInfo": {"hasNextPage": has_next, "endCursor": cursor},
                        "nodes": [{"isResolved": value} for value in resolved],
                    }
                }
            }
        }
    }


def test_session_sends_bearer_token_and_api_version():
    """Verify the session is authenticated for the GitHub REST API."""
    client = _build_client()

    assert client._session.headers["Authorization"] == "Bearer gh-token"
    assert client._session.headers["X-GitHub-Api-Version"] == "2022-11-28"


def test_request_retries_on_429_and_succeeds():
    """Verify _request retries after HTTP 429 and eventually returns JSON payload."""
    client = _build_client()
    first = _response(429, payload={}, headers={"Retry-After": "1"})
    second = _response(200, payload={"number": 7})
    client._session.request = Mock(side_effect=[first, second])

    with patch("pr_maturity.github_client.time.sleep") as sleep_mock:
        payload, _ = client._request("GET", "repos/acme/widgets/pulls/7")

    assert payload == {"number": 7}
    assert client._session.request.call_count == 2
    sleep_mock.assert_called_once_with(1)


def test_request_retries_on_5xx_and_raises_after_max_retries():
    """Verify retryable server errors raise UpstreamFetchError after the limit."""
    client = _build_client()
    server_error = _response(503, text="service unavailable")
    client._session.request = Mock(side_effect=[server_error] * client._MAX_RETRIES)

    with patch("pr_maturity.github_client.time.sleep") as sleep_mock:
        with pytest.raises(UpstreamFetchError):
            client._request("GET", "repos/acme/widgets/pulls/7")

    assert client._session.request.call_count == client._MAX_RETRIES
    assert sleep_mock.call_count == client._MAX_RETRIES - 1


def test_request_connection_errors_raise_after_max_retries():
    """Verify repeated transport failures surface as UpstreamFetchError."""
    client = _build_client()
    client._session.request = Mock(side_effect=requests.ConnectionError("down"))

    with patch("pr_maturity.github_client.time.sleep"):
        with pytest.raises(UpstreamFetchError):
            client._request("GET", "repos/acme/widgets/pulls/7")


def test_request_client_error_is_not_retried():
    """Verify 4xx responses fail immediately."""
    client = _build_client()
    client._session.request = Mock(return_value=_response(404, text="Not Found"))

    with pytest.raises(UpstreamFetchError, match="404"):
        client._request("GET", "repos/acme/widgets/pulls/7")

    assert client._session.request.call_count == 1


def test_request_invalid_json_raises():
    """Verify undecodable bodies raise UpstreamFetchError."""
    client = _build_client()
    response = _response(200)
    response.json.side_effect = ValueError("bad json")
    client._session.request = Mock(return_value=response)

    with pytest.raises(UpstreamFetchError):
        client._request("GET", "repos/acme/widgets/pulls/7")


def test_paginate_follows_next_links():
    """Verify list endpoints follow rel=next links until exhausted."""
    client = _build_client()
    next_url = "https://api.github.com/repos/acme/widgets/pulls/7/reviews?page=2"
    first = _response(200, payload=[{"id": 1}], links={"next": {"url": next_url}})
    second = _response(200, payload=[{"id": 2}])
    client._session.request = Mock(side_effect=[first, second])

    items = client._paginate("repos/acme/widgets/pulls/7/reviews")

    assert items == [{"id": 1}, {"id": 2}]
    first_call, second_call = client._session.request.call_args_list
    assert first_call.kwargs["params"] == {"per_page": client._PAGE_SIZE}
    assert second_call.args[1] == next_url
    assert second_call.kwargs["params"] is None


def test_paginate_rejects_non_list_pages():
    """Verify a non-array page aborts pagination."""
    client = _build_client()
    client._session.request = Mock(return_value=_response(200, payload={"message": "oops"}))

    with pytest.raises(UpstreamFetchError):
        client._paginate("repos/acme/widgets/pulls/7/commits")


def test_get_change_request_maps_summary_fields():
    """Verify the pull request summary is mapped into a ChangeRequest."""
    client = _build_client()
    client._get_object = Mock(
        return_value={
            "number": 7,
            "state": "closed",
            "merged_at": "2026-01-05T16:00:00Z",
            "created_at": "2026-01-05T14:00:00Z",
            "closed_at": "2026-01-05T16:00:00Z",
            "head": {"ref": "feature/login"},
            "additions": 12,
            "deletions": 3,
        }
    )

    change_request = client.get_change_request()

    assert change_request.state == "closed"
    assert change_request.merged is True
    assert change_request.created_at == datetime(2026, 1, 5, 14, 0, tzinfo=timezone.utc)
    assert change_request.closed_at == datetime(2026, 1, 5, 16, 0, tzinfo=timezone.utc)
    assert change_request.head_branch == "feature/login"
    assert (change_request.additions, change_request.deletions) == (12, 3)


def test_get_change_request_missing_fields_raises():
    """Verify summaries without state or creation time are rejected."""
    client = _build_client()
    client._get_object = Mock(return_value={"number": 7})

    with pytest.raises(DataValidationError):
        client.get_change_request()


def test_list_commits_keeps_order_and_attaches_details():
    """Verify per-commit details are gathered and kept in commit order."""
    client = _build_client()
    client._paginate = Mock(
        return_value=[
            {"sha": "aaa", "commit": {"message": "feat: add login\n\nbody"}},
            {"sha": "bbb", "commit": {"message": "chore: deps"}},
        ]
    )
    details = {"aaa": (3, 40), "bbb": (1, 2)}
    client.get_commit_detail = Mock(side_effect=lambda sha: details[sha])

    commits = client.list_commits()

    assert [commit.sha for commit in commits] == ["aaa", "bbb"]
    assert commits[0].message == "feat: add login\n\nbody"
    assert (commits[0].files_changed, commits[0].line_delta) == (3, 40)
    assert (commits[1].files_changed, commits[1].line_delta) == (1, 2)


def test_get_commit_detail_counts_files_and_total_lines():
    """Verify commit details expose file count and stats total."""
    client = _build_client()
    client._get_object = Mock(return_value={"files": [{}, {}, {}], "stats": {"total": 57}})

    assert client.get_commit_detail("aaa") == (3, 57)


def test_list_reviews_and_count_comments():
    """Verify reviews and comment tallies are mapped from list endpoints."""
    client = _build_client()

    def _pages(path):
        if path.endswith("/reviews"):
            return [{"user": {"login": "alice"}, "state": "APPROVED"}, {"user": None, "state": "COMMENTED"}]
        if "/issues/" in path:
            return [{}, {}]
        return [{}]

    client._paginate = Mock(side_effect=_pages)

    reviews = client.list_reviews()
    counts = client.count_comments()

    assert [(review.author, review.state) for review in reviews] == [("alice", "APPROVED"), (None, "COMMENTED")]
    assert counts == CommentCounts(issue_comments=2, review_comments=1)


def test_list_thread_resolutions_follows_cursor():
    """Verify GraphQL review threads are paginated by cursor."""
    client = _build_client()
    client._request = Mock(
        side_effect=[
            (_threads_page([True, False], has_next=True, cursor="c1"), Mock()),
            (_threads_page([True], has_next=False), Mock()),
        ]
    )

    resolutions = client.list_thread_resolutions()

    assert resolutions == [True, False, True]
    second_body = client._request.call_args_list[1].kwargs["body"]
    assert second_body["variables"]["after"] == "c1"
    assert second_body["variables"]["number"] == 7


def test_list_thread_resolutions_graphql_errors_raise():
    """Verify GraphQL error payloads abort the run."""
    client = _build_client()
    client._request = Mock(return_value=({"errors": [{"message": "Bad credentials"}]}, Mock()))

    with pytest.raises(UpstreamFetchError, match="Bad credentials"):
        client.list_thread_resolutions()


def test_list_thread_resolutions_missing_repository_raises():
    """Verify an inaccessible repository is reported as an upstream failure."""
    client = _build_client()
    client._request = Mock(return_value=({"data": {"repository": None}}, Mock()))

    with pytest.raises(UpstreamFetchError):
        client.list_thread_resolutions()


def test_post_comment_posts_issue_comment():
    """Verify the report is posted to the issue comments endpoint."""
    client = _build_client()
    client._session.request = Mock(return_value=_response(201, payload={"id": 1}))

    client.post_comment("# Report")

    call = client._session.request.call_args
    assert call.args == ("POST", "https://api.github.com/repos/acme/widgets/issues/7/comments")
    assert call.kwargs["json"] == {"body": "# Report"}


def test_post_comment_is_not_retried_on_server_error():
    """Verify a failed comment POST is attempted once and never duplicated."""
    client = _build_client()
    client._session.request = Mock(side_effect=[_response(502, text="Bad Gateway"), _response(201, payload={"id": 1})])

    with patch("pr_maturity.github_client.time.sleep") as sleep_mock, pytest.raises(UpstreamFetchError):
        client.post_comment("# Report")

    assert client._session.request.call_count == 1
    sleep_mock.assert_not_called()


@pytest.mark.parametrize(
    "connection",
    [
        {"pageInfo": {"hasNextPage": False, "endCursor": None}, "nodes": None},
        {"pageInfo": {"hasNextPage": False, "endCursor": None}, "nodes": [None]},
        {"pageInfo": None, "nodes": [{"isResolved": True}]},
    ],
)
def test_list_thread_resolutions_malformed_connection_raises(connection):
    """Verify null nodes or pageInfo surface as upstream failures."""
    client = _build_client()
    payload = {"data": {"repository": {"pullRequest": {"reviewThreads": connection}}}}
    client._request = Mock(return_value=(payload, Mock()))

    with pytest.raises(UpstreamFetchError, match="malformed"):
        client.list_thread_resolutions()


def test_list_thread_resolutions_missing_end_cursor_raises():
    """Verify a next page without a cursor stops pagination with an error."""
    client = _build_client()
    client._request = Mock(return_value=(_threads_page([True], has_next=True, cursor=None), Mock()))

    with pytest.raises(UpstreamFetchError, match="did not advance"):
        client.list_thread_resolutions()

    assert client._request.call_count == 1


def test_list_thread_resolutions_repeated_cursor_raises():
    """Verify a cursor that does not change stops pagination with an error."""
    client = _build_client()
    client._request = Mock(
        side_effect=[
            (_threads_page([True], has_next=True, cursor="c1"), Mock()),
            (_threads_page([False], has_next=True, cursor="c1"), Mock()),
            (_threads_page([True], has_next=False), Mock()),
        ]
    )

    with pytest.raises(UpstreamFetchError, match="did not advance"):
        client.list_thread_resolutions()

    assert client._request.call_count == 2


def test_session_is_separate_per_thread():
    """Verify worker threads get their own authenticated session."""
    client = _build_client()
    main_session = client._session
    seen = []

    worker = threading.Thread(target=lambda: seen.append(client._session))
    worker.start()
    worker.join()

    assert seen[0] is not main_session
    assert seen[0].headers["Authorization"] == "Bearer gh-token"
    assert client._session is main_session
