from __future__ import annotations

from .config import COMMITS_PER_PAGE
from .github_client import GitHubReader, repo_path
from .logging_config import get_logger
from .models import (
    DEPENDABOT_LOGIN,
    CommitPage,
    DiscoveryPage,
    expect_dict,
    expect_int,
    expect_list,
    user_login,
)

logger = get_logger(__name__)


def fetch_commit_page(
    client: GitHubReader,
    *,
    owner: str,
    repo: str,
    path: str,
    page: int = 1,
    since: str | None = None,
    until: str | None = None,
    per_page: int = COMMITS_PER_PAGE,
) -> CommitPage:
    payload = client.request_json(
        repo_path(owner, repo, "commits"),
        query={
            "path": path,
            "page": page,
            "per_page": per_page,
            "since": since,
            "until": until,
        },
    )
    commits = expect_list(payload or [], where="commits")
    shas: list[str] = []
    for idx, commit in enumerate(commits):
        sha = expect_dict(commit, where=f"commits[{idx}]").get("sha")
        if not isinstance(sha, str) or not sha:
            raise TypeError(f"commits[{idx}].sha must be a non-empty string")
        shas.append(sha)
    return CommitPage(
        page=page, per_page=per_page, shas=tuple(shas), since=since, until=until
    )


def discover_pull_requests(
    client: GitHubReader,
    *,
    owner: str,
    repo: str,
    path: str,
    page: int = 1,
    since: str | None = None,
    until: str | None = None,
    ignore_dependabot: bool = True,
    per_page: int = COMMITS_PER_PAGE,
) -> DiscoveryPage:
    """
    Map one page of a file's commit history to the PRs that introduced it.

    `has_more` is true whenever the commit page came back full, so the page
    after it may be empty; a short page is the only reliable stop signal.
    Any failed request aborts the whole page.
    """
    commit_page = fetch_commit_page(
        client,
        owner=owner,
        repo=repo,
        path=path,
        page=page,
        since=since,
        until=until,
        per_page=per_page,
    )

    pr_numbers: dict[int, None] = {}
    skipped_bot = 0
    for sha in commit_page.shas:
        pulls = client.paginate(repo_path(owner, repo, "commits", sha, "pulls"))
        for idx, pull in enumerate(pulls):
            raw = expect_dict(pull, where=f"commit {sha} pulls[{idx}]")
            if ignore_dependabot and user_login(raw) == DEPENDABOT_LOGIN:
                skipped_bot += 1
                continue
            number = expect_int(raw.get("number"), where=f"commit {sha} pulls[{idx}].number")
            pr_numbers.setdefault(number, None)

    logger.info(
        "%s/%s %s page %d: %d commits -> %d PRs (dependabot skipped: %d)",
        owner,
        repo,
        path,
        page,
        len(commit_page.shas),
        len(pr_numbers),
        skipped_bot,
    )
    return DiscoveryPage(
        page=page, pr_numbers=tuple(pr_numbers), has_more=commit_page.is_full
    )
