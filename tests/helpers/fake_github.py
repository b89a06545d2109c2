from __future__ import annotations

from typing import Any, Mapping

from deepblame.github_client import GitHubApiError


def api_error(status: int, message: str = "Not Found", *, path: str = "") -> GitHubApiError:
    return GitHubApiError(
        message, status=status, url=f"https://api.github.com{path}", rate_limit=None
    )


class FakeGitHubClient:
    """Routes exact request paths to canned payloads and records every call."""

    def __init__(
        self,
        *,
        json_routes: Mapping[str, Any] | None = None,
        list_routes: Mapping[str, list[Any]] | None = None,
        errors: Mapping[str, Exception] | None = None,
    ) -> None:
        self.json_routes = dict(json_routes or {})
        self.list_routes = dict(list_routes or {})
        self.errors = dict(errors or {})
        self.calls: list[tuple[str, str, dict[str, Any] | None]] = []

    def request_json(
        self,
        path: str,
        *,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        del headers
        self.calls.append(("request_json", path, dict(query) if query else None))
        if path in self.errors:
            raise self.errors[path]
        if path in self.json_routes:
            return self.json_routes[path]
        raise AssertionError(f"unexpected request_json path: {path}")

    def paginate(
        self,
        path: str,
        *,
        query: Mapping[str, Any] | None = None,
        per_page: int = 100,
        max_pages: int | None = None,
    ) -> list[Any]:
        del per_page, max_pages
        self.calls.append(("paginate", path, dict(query) if query else None))
        if path in self.errors:
            raise self.errors[path]
        if path in self.list_routes:
            return list(self.list_routes[path])
        raise AssertionError(f"unexpected paginate path: {path}")

    def paths(self) -> list[str]:
        return [path for _, path, _ in self.calls]


def pull_payload(
    number: int,
    *,
    body: str | None = "",
    state: str = "closed",
    merged_at: str | None = "2024-03-02T00:00:00Z",
    login: str | None = "octocat",
) -> dict[str, Any]:
    return {
        "number": number,
        "state": state,
        "title": f"PR {number}",
        "body": body,
        "user": {"login": login, "type": "User"} if login else None,
        "html_url": f"https://github.com/acme/widgets/pull/{number}",
        "created_at": "2024-03-01T00:00:00Z",
        "updated_at": "2024-03-02T00:00:00Z",
        "closed_at": "2024-03-02T00:00:00Z" if state == "closed" else None,
        "merged_at": merged_at if state == "closed" else None,
    }


def issue_payload(number: int, *, owner: str = "acme", repo: str = "widgets") -> dict[str, Any]:
    return {
        "number": number,
        "title": f"Issue {number}",
        "body": "Something is broken",
        "user": {"login": "reporter"},
        "html_url": f"https://github.com/{owner}/{repo}/issues/{number}",
        "created_at": "2024-02-01T00:00:00Z",
        "updated_at": "2024-02-02T00:00:00Z",
        "closed_at": None,
    }


def empty_pr_routes(owner: str, repo: str, number: int) -> dict[str, list[Any]]:
    """Comments, review comments and reviews all empty for one PR."""
    base = f"/repos/{owner}/{repo}"
    return {
        f"{base}/issues/{number}/comments": [],
        f"{base}/pulls/{number}/comments": [],
        f"{base}/pulls/{number}/reviews": [],
    }
