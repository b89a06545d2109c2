from __future__ import annotations

import pytest

from deepblame.aggregator import aggregate_pull_request, find_file_change, resolve_issue_reference
from deepblame.github_client import GitHubApiError
from deepblame.models import IssueReference
from tests.helpers.fake_github import (
    FakeGitHubClient,
    api_error,
    empty_pr_routes,
    issue_payload,
    pull_payload,
)

BASE = "/repos/acme/widgets"


def _full_client() -> FakeGitHubClient:
    return FakeGitHubClient(
        json_routes={
            f"{BASE}/pulls/101": pull_payload(
                101,
                body=(
                    "Fixes https://github.com/acme/widgets/issues/42\n"
                    "Related: https://github.com/acme/widgets/issues/42"
                ),
            ),
            f"{BASE}/issues/42": issue_payload(42),
        },
        list_routes={
            f"{BASE}/pulls/101/files": [
                {
                    "filename": "src/other.ts",
                    "additions": 1,
                    "deletions": 1,
                    "changes": 2,
                    "patch": "@@ -1 +1 @@",
                    "raw_url": "https://github.com/acme/widgets/raw/abc/src/other.ts",
                },
                {
                    "filename": "src/app.ts",
                    "additions": 10,
                    "deletions": 2,
                    "changes": 12,
                    "patch": "@@ -1,2 +1,10 @@",
                    "raw_url": "https://github.com/acme/widgets/raw/abc/src/app.ts",
                },
            ],
            f"{BASE}/issues/101/comments": [
                {
                    "body": "LGTM once CI passes",
                    "user": {"login": "maintainer"},
                    "html_url": "https://github.com/acme/widgets/pull/101#issuecomment-1",
                    "created_at": "2024-03-01T01:00:00Z",
                    "updated_at": "2024-03-01T01:00:00Z",
                },
                {
                    "body": "Thanks!",
                    "user": None,
                    "html_url": "https://github.com/acme/widgets/pull/101#issuecomment-2",
                    "created_at": "2024-03-01T02:00:00Z",
                    "updated_at": "2024-03-01T02:00:00Z",
                },
            ],
            f"{BASE}/pulls/101/comments": [
                {
                    "body": "Prefer a const here.",
                    "user": {"login": "reviewer"},
                    "html_url": "https://github.com/acme/widgets/pull/101#discussion_r1",
                    "created_at": "2024-03-01T03:00:00Z",
                    "updated_at": "2024-03-01T04:00:00Z",
                    "path": "src/app.ts",
                }
            ],
            f"{BASE}/pulls/101/reviews": [
                {
                    "body": "",
                    "state": "APPROVED",
                    "user": {"login": "reviewer"},
                    "html_url": "https://github.com/acme/widgets/pull/101#pullrequestreview-1",
                    "submitted_at": "2024-03-01T05:00:00Z",
                }
            ],
        },
    )


def test_aggregates_all_resources_into_one_record() -> None:
    client = _full_client()

    record = aggregate_pull_request(
        client, owner="acme", repo="widgets", number=101, path="src/app.ts"
    )
    out = record.to_dict()

    assert out["number"] == 101
    assert out["state"] == "closed"
    assert out["merged_at"] == "2024-03-02T00:00:00Z"
    assert record.merged is True
    assert out["user_login"] == "octocat"
    assert [c["body"] for c in out["comments"]] == ["LGTM once CI passes", "Thanks!"]
    assert out["comments"][0]["user_login"] == "maintainer"
    assert "user_login" not in out["comments"][1]
    assert out["reviewComments"][0]["updated_at"] == "2024-03-01T04:00:00Z"
    assert out["reviews"] == [
        {
            "body": "",
            "state": "APPROVED",
            "user_login": "reviewer",
            "html_url": "https://github.com/acme/widgets/pull/101#pullrequestreview-1",
            "submitted_at": "2024-03-01T05:00:00Z",
        }
    ]
    assert out["file"] == {
        "patch": "@@ -1,2 +1,10 @@",
        "additions": 10,
        "deletions": 2,
        "changes": 12,
        "raw_url": "https://github.com/acme/widgets/raw/abc/src/app.ts",
    }


def test_repeated_issue_url_is_fetched_and_listed_once() -> None:
    client = _full_client()

    record = aggregate_pull_request(client, owner="acme", repo="widgets", number=101)

    assert [i.number for i in record.issues] == [42]
    assert client.paths().count(f"{BASE}/issues/42") == 1
    issue = record.to_dict()["issues"][0]
    assert issue["owner"] == "acme"
    assert issue["repo"] == "widgets"
    assert issue["user_login"] == "reporter"
    assert issue["closed_at"] is None


def test_file_key_absent_when_path_not_in_changed_files() -> None:
    client = _full_client()

    record = aggregate_pull_request(
        client, owner="acme", repo="widgets", number=101, path="docs/missing.md"
    )

    assert record.file is None
    assert "file" not in record.to_dict()


def test_changed_files_not_fetched_without_path() -> None:
    client = _full_client()

    record = aggregate_pull_request(client, owner="acme", repo="widgets", number=101)

    assert "file" not in record.to_dict()
    assert f"{BASE}/pulls/101/files" not in client.paths()


def test_open_and_closed_unmerged_prs_keep_provider_state() -> None:
    client = FakeGitHubClient(
        json_routes={
            f"{BASE}/pulls/1": pull_payload(1, state="open"),
            f"{BASE}/pulls/2": pull_payload(2, state="closed", merged_at=None),
        },
        list_routes={**empty_pr_routes("acme", "widgets", 1), **empty_pr_routes("acme", "widgets", 2)},
    )

    opened = aggregate_pull_request(client, owner="acme", repo="widgets", number=1)
    abandoned = aggregate_pull_request(client, owner="acme", repo="widgets", number=2)

    assert opened.state == "open" and opened.merged is False
    assert opened.to_dict()["closed_at"] is None
    assert abandoned.state == "closed" and abandoned.merged is False
    assert abandoned.to_dict()["merged_at"] is None


def test_unresolvable_issue_is_dropped_without_failing_pr() -> None:
    body = (
        "https://github.com/acme/widgets/issues/1 "
        "https://github.com/private/repo/issues/2 "
        "https://github.com/acme/widgets/issues/3"
    )
    client = FakeGitHubClient(
        json_routes={
            f"{BASE}/pulls/9": pull_payload(9, body=body, login=None),
            f"{BASE}/issues/1": issue_payload(1),
            f"{BASE}/issues/3": issue_payload(3),
        },
        list_routes=empty_pr_routes("acme", "widgets", 9),
        errors={"/repos/private/repo/issues/2": api_error(404)},
    )

    record = aggregate_pull_request(client, owner="acme", repo="widgets", number=9)

    assert [i.number for i in record.issues] == [1, 3]
    assert "user_login" not in record.to_dict()


def test_resolution_reports_error_instead_of_raising() -> None:
    ref = IssueReference("acme", "widgets", 5)
    client = FakeGitHubClient(errors={f"{BASE}/issues/5": api_error(403, "Forbidden")})

    resolution = resolve_issue_reference(client, ref)

    assert resolution.ok is False
    assert resolution.issue is None
    assert "Forbidden" in (resolution.error or "")


def test_resolution_handles_malformed_payload() -> None:
    ref = IssueReference("acme", "widgets", 6)
    client = FakeGitHubClient(json_routes={f"{BASE}/issues/6": ["not", "an", "issue"]})

    resolution = resolve_issue_reference(client, ref)

    assert resolution.ok is False
    assert resolution.error and resolution.error.startswith("unexpected payload")


@pytest.mark.parametrize(
    "failing_path",
    [
        f"{BASE}/pulls/101",
        f"{BASE}/pulls/101/files",
        f"{BASE}/issues/101/comments",
        f"{BASE}/pulls/101/comments",
        f"{BASE}/pulls/101/reviews",
    ],
)
def test_required_fetch_failure_propagates(failing_path: str) -> None:
    client = _full_client()
    client.errors[failing_path] = api_error(502, "Bad Gateway", path=failing_path)

    with pytest.raises(GitHubApiError) as excinfo:
        aggregate_pull_request(client, owner="acme", repo="widgets", number=101, path="src/app.ts")

    assert excinfo.value.status == 502


def test_find_file_change_requires_exact_match() -> None:
    files = [{"filename": "src/app.tsx", "additions": 1, "deletions": 0, "changes": 1}]

    assert find_file_change(files, "src/app.ts") is None


def test_binary_file_has_no_patch() -> None:
    files = [{"filename": "logo.png", "additions": 0, "deletions": 0, "changes": 0}]

    entry = find_file_change(files, "logo.png")

    assert entry is not None
    assert entry.to_dict()["patch"] is None
