from __future__ import annotations

from typing import Any, Iterable

from .config import DEFAULT_WEB_HOST
from .github_client import GitHubApiError, GitHubReader, repo_path
from .issue_refs import extract_issue_references
from .logging_config import get_logger
from .models import (
    CommentLike,
    FileChangeEntry,
    IssueRecord,
    IssueReference,
    IssueResolution,
    PRRecord,
    Review,
    expect_dict,
    expect_int,
    user_login,
)

logger = get_logger(__name__)


def find_file_change(files: Iterable[Any], path: str) -> FileChangeEntry | None:
    for idx, item in enumerate(files):
        raw = expect_dict(item, where=f"files[{idx}]")
        if raw.get("filename") == path:
            return FileChangeEntry.from_github(raw, where=f"files[{idx}]")
    return None


def resolve_issue_reference(client: GitHubReader, ref: IssueReference) -> IssueResolution:
    """Fetch one referenced issue; failures are returned, never raised."""
    try:
        payload = client.request_json(repo_path(ref.owner, ref.repo, "issues", ref.number))
        issue = IssueRecord.from_github(ref, payload)
    except GitHubApiError as exc:
        return IssueResolution(reference=ref, error=str(exc))
    except (TypeError, ValueError) as exc:
        # Malformed payload for this one issue (e.g. a proxy returned HTML).
        return IssueResolution(reference=ref, error=f"unexpected payload: {exc}")
    return IssueResolution(reference=ref, issue=issue)


def resolve_issue_references(
    client: GitHubReader, refs: Iterable[IssueReference]
) -> tuple[IssueResolution, ...]:
    return tuple(resolve_issue_reference(client, ref) for ref in refs)


def aggregate_pull_request(
    client: GitHubReader,
    *,
    owner: str,
    repo: str,
    number: int,
    path: str | None = None,
    issue_host: str = DEFAULT_WEB_HOST,
) -> PRRecord:
    """
    Assemble the full review context of one PR.

    PR metadata, changed files, comments, review comments and reviews must
    all load or the call fails. Issues linked from the PR body are resolved
    best-effort: a reference that cannot be fetched is logged and left out.
    """
    pr = expect_dict(
        client.request_json(repo_path(owner, repo, "pulls", number)),
        where=f"pull {number}",
    )

    file_change: FileChangeEntry | None = None
    if path:
        files = client.paginate(repo_path(owner, repo, "pulls", number, "files"))
        file_change = find_file_change(files, path)

    comments = client.paginate(repo_path(owner, repo, "issues", number, "comments"))
    review_comments = client.paginate(repo_path(owner, repo, "pulls", number, "comments"))
    reviews = client.paginate(repo_path(owner, repo, "pulls", number, "reviews"))

    body = pr.get("body") if isinstance(pr.get("body"), str) else None
    refs = extract_issue_references(body, host=issue_host)
    issues: list[IssueRecord] = []
    for resolution in resolve_issue_references(client, refs):
        if resolution.issue is None:
            logger.warning(
                "Skipping issue %s referenced by %s/%s#%d: %s",
                resolution.reference.key,
                owner,
                repo,
                number,
                resolution.error,
            )
            continue
        issues.append(resolution.issue)

    record = PRRecord(
        number=expect_int(pr.get("number"), where=f"pull {number}.number"),
        state=str(pr.get("state") or ""),
        title=str(pr.get("title") or ""),
        html_url=str(pr.get("html_url") or ""),
        created_at=str(pr.get("created_at") or ""),
        updated_at=str(pr.get("updated_at") or ""),
        body=body,
        user_login=user_login(pr),
        closed_at=pr.get("closed_at") if isinstance(pr.get("closed_at"), str) else None,
        merged_at=pr.get("merged_at") if isinstance(pr.get("merged_at"), str) else None,
        comments=tuple(
            CommentLike.from_github(c, where=f"pull {number} comments[{i}]")
            for i, c in enumerate(comments)
        ),
        review_comments=tuple(
            CommentLike.from_github(c, where=f"pull {number} review comments[{i}]")
            for i, c in enumerate(review_comments)
        ),
        reviews=tuple(
            Review.from_github(r, where=f"pull {number} reviews[{i}]")
            for i, r in enumerate(reviews)
        ),
        issues=tuple(issues),
        file=file_change,
    )
    logger.debug(
        "%s/%s#%d: %d comments, %d review comments, %d reviews, %d/%d issues, file=%s",
        owner,
        repo,
        number,
        len(record.comments),
        len(record.review_comments),
        len(record.reviews),
        len(record.issues),
        len(refs),
        record.file is not None,
    )
    return record
