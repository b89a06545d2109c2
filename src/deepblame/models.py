from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

DEPENDABOT_LOGIN = "dependabot[bot]"


def expect_dict(value: Any, *, where: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise TypeError(f"{where} must be an object")
    return value


def expect_list(value: Any, *, where: str) -> list[Any]:
    if not isinstance(value, list):
        raise TypeError(f"{where} must be an array")
    return value


def expect_int(value: Any, *, where: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{where} must be an integer")
    return value


def _optional_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _count(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        return 0
    return value


def user_login(payload: dict[str, Any]) -> str | None:
    # Deleted accounts ("ghost") and some apps come back with `user: null`.
    user = payload.get("user")
    if not isinstance(user, dict):
        return None
    return _optional_str(user.get("login"))


def _with_login(out: dict[str, Any], login: str | None) -> dict[str, Any]:
    if login is not None:
        out["user_login"] = login
    return out


@dataclass(frozen=True, slots=True)
class IssueReference:
    owner: str
    repo: str
    number: int

    @property
    def key(self) -> str:
        # Owner and repo names are case-insensitive on GitHub.
        return f"{self.owner.lower()}/{self.repo.lower()}/{self.number}"


@dataclass(frozen=True, slots=True)
class CommentLike:
    body: str | None
    html_url: str
    created_at: str
    updated_at: str
    user_login: str | None = None

    @classmethod
    def from_github(cls, payload: Any, *, where: str = "comment") -> "CommentLike":
        raw = expect_dict(payload, where=where)
        return cls(
            body=_optional_str(raw.get("body")),
            html_url=_str(raw.get("html_url")),
            created_at=_str(raw.get("created_at")),
            updated_at=_str(raw.get("updated_at")),
            user_login=user_login(raw),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"body": self.body}
        _with_login(out, self.user_login)
        out["html_url"] = self.html_url
        out["created_at"] = self.created_at
        out["updated_at"] = self.updated_at
        return out


@dataclass(frozen=True, slots=True)
class Review:
    state: str
    html_url: str
    body: str | None = None
    submitted_at: str | None = None
    user_login: str | None = None

    @classmethod
    def from_github(cls, payload: Any, *, where: str = "review") -> "Review":
        raw = expect_dict(payload, where=where)
        return cls(
            state=_str(raw.get("state")),
            html_url=_str(raw.get("html_url")),
            body=_optional_str(raw.get("body")),
            submitted_at=_optional_str(raw.get("submitted_at")),
            user_login=user_login(raw),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"body": self.body, "state": self.state}
        _with_login(out, self.user_login)
        out["html_url"] = self.html_url
        out["submitted_at"] = self.submitted_at
        return out


@dataclass(frozen=True, slots=True)
class FileChangeEntry:
    additions: int
    deletions: int
    changes: int
    raw_url: str | None = None
    patch: str | None = None

    @classmethod
    def from_github(cls, payload: Any, *, where: str = "file") -> "FileChangeEntry":
        raw = expect_dict(payload, where=where)
        return cls(
            additions=_count(raw.get("additions")),
            deletions=_count(raw.get("deletions")),
            changes=_count(raw.get("changes")),
            raw_url=_optional_str(raw.get("raw_url")),
            patch=_optional_str(raw.get("patch")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "patch": self.patch,
            "additions": self.additions,
            "deletions": self.deletions,
            "changes": self.changes,
            "raw_url": self.raw_url,
        }


@dataclass(frozen=True, slots=True)
class IssueRecord:
    owner: str
    repo: str
    number: int
    title: str
    html_url: str
    created_at: str
    updated_at: str
    body: str | None = None
    closed_at: str | None = None
    user_login: str | None = None

    @classmethod
    def from_github(cls, ref: IssueReference, payload: Any) -> "IssueRecord":
        raw = expect_dict(payload, where=f"issue {ref.key}")
        return cls(
            owner=ref.owner,
            repo=ref.repo,
            number=expect_int(raw.get("number"), where=f"issue {ref.key}.number"),
            title=_str(raw.get("title")),
            html_url=_str(raw.get("html_url")),
            created_at=_str(raw.get("created_at")),
            updated_at=_str(raw.get("updated_at")),
            body=_optional_str(raw.get("body")),
            closed_at=_optional_str(raw.get("closed_at")),
            user_login=user_login(raw),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "owner": self.owner,
            "repo": self.repo,
            "number": self.number,
            "title": self.title,
            "body": self.body,
        }
        _with_login(out, self.user_login)
        out["html_url"] = self.html_url
        out["created_at"] = self.created_at
        out["updated_at"] = self.updated_at
        out["closed_at"] = self.closed_at
        return out


@dataclass(frozen=True, slots=True)
class IssueResolution:
    """Outcome of resolving one reference: exactly one of `issue` or `error` is set."""

    reference: IssueReference
    issue: IssueRecord | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.issue is not None


@dataclass(frozen=True, slots=True)
class PRRecord:
    number: int
    state: str
    title: str
    html_url: str
    created_at: str
    updated_at: str
    body: str | None = None
    user_login: str | None = None
    closed_at: str | None = None
    merged_at: str | None = None
    comments: tuple[CommentLike, ...] = ()
    review_comments: tuple[CommentLike, ...] = ()
    reviews: tuple[Review, ...] = ()
    issues: tuple[IssueRecord, ...] = ()
    file: FileChangeEntry | None = None

    @property
    def merged(self) -> bool:
        return self.state == "closed" and self.merged_at is not None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "number": self.number,
            "state": self.state,
            "title": self.title,
            "body": self.body,
        }
        _with_login(out, self.user_login)
        out.update(
            {
                "html_url": self.html_url,
                "created_at": self.created_at,
                "updated_at": self.updated_at,
                "closed_at": self.closed_at,
                "merged_at": self.merged_at,
                "comments": [c.to_dict() for c in self.comments],
                "reviewComments": [c.to_dict() for c in self.review_comments],
                "reviews": [r.to_dict() for r in self.reviews],
            }
        )
        if self.file is not None:
            out["file"] = self.file.to_dict()
        out["issues"] = [i.to_dict() for i in self.issues]
        return out


@dataclass(frozen=True, slots=True)
class CommitPage:
    page: int
    per_page: int
    shas: tuple[str, ...] = ()
    since: str | None = None
    until: str | None = None

    @property
    def is_full(self) -> bool:
        return len(self.shas) == self.per_page


@dataclass(frozen=True, slots=True)
class DiscoveryPage:
    page: int
    pr_numbers: tuple[int, ...] = ()
    has_more: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "pr_numbers": list(self.pr_numbers),
            "has_more": self.has_more,
            "page": self.page,
        }


@dataclass(frozen=True, slots=True)
class BatchResult:
    records: tuple[PRRecord, ...] = ()
    remaining: tuple[int, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "pullRequests": [r.to_dict() for r in self.records],
            "remaining_pr_numbers": list(self.remaining),
        }
