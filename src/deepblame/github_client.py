from __future__ import annotations

import json
from dataclasses import dataclass, fields
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Protocol
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlencode
from urllib.request import Request, urlopen

from .config import DEFAULT_BASE_URL, Settings
from .logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class RateLimitInfo:
    limit: int | None = None
    remaining: int | None = None
    reset_at: str | None = None
    resource: str | None = None

    def to_dict(self) -> dict[str, Any]:
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        return {name: value for name, value in values.items() if value is not None}


class GitHubApiError(RuntimeError):
    """An upstream request failed; `status` is 0 when no HTTP response arrived."""

    def __init__(
        self, message: str, *, status: int, url: str, rate_limit: RateLimitInfo | None
    ):
        super().__init__(message)
        self.status = status
        self.url = url
        self.rate_limit = rate_limit

    @property
    def is_rate_limited(self) -> bool:
        if self.status == 429:
            return True
        message = str(self.args[0]) if self.args else ""
        return self.status == 403 and "rate limit" in message.lower()

    def __str__(self) -> str:
        base = super().__str__()
        if self.status:
            return f"{base} (HTTP {self.status}, {self.url})"
        return f"{base} ({self.url})"


def _parse_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _iso_from_unix_seconds(value: str | None) -> str | None:
    seconds = _parse_int(value)
    if seconds is None:
        return None
    return datetime.fromtimestamp(seconds, tz=timezone.utc).isoformat()


def _parse_rate_limit(headers: Mapping[str, str] | Any) -> RateLimitInfo | None:
    if headers is None:
        return None
    # urllib hands back an `email.message.Message`, which is mapping-like.
    info = RateLimitInfo(
        limit=_parse_int(headers.get("X-RateLimit-Limit")),
        remaining=_parse_int(headers.get("X-RateLimit-Remaining")),
        reset_at=_iso_from_unix_seconds(headers.get("X-RateLimit-Reset")),
        resource=headers.get("X-RateLimit-Resource"),
    )
    return info if info.to_dict() else None


class GitHubReader(Protocol):
    """The subset of `GitHubClient` the pipeline depends on."""

    def request_json(
        self,
        path: str,
        *,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any: ...

    def paginate(
        self,
        path: str,
        *,
        query: Mapping[str, Any] | None = None,
        per_page: int = 100,
        max_pages: int | None = None,
    ) -> list[Any]: ...


def repo_path(owner: str, repo: str, *parts: str | int) -> str:
    """Build `/repos/{owner}/{repo}/...` with each segment percent-encoded."""
    segments = [quote(owner, safe=""), quote(repo, safe="")]
    segments.extend(quote(str(p), safe="") for p in parts)
    return "/repos/" + "/".join(segments)


class GitHubClient:
    def __init__(
        self,
        *,
        token: str | None,
        base_url: str = DEFAULT_BASE_URL,
        user_agent: str = "github-deep-blame",
        api_version: str = "2022-11-28",
        timeout_sec: float = 30.0,
        max_pages: int = 10,
        urlopen_impl: Callable[..., Any] = urlopen,
    ) -> None:
        self._token = token
        self._base_url = base_url.rstrip("/")
        self._user_agent = user_agent
        self._api_version = api_version
        self._timeout_sec = timeout_sec
        self._urlopen = urlopen_impl

        self.max_pages = max_pages
        self.request_count: int = 0
        self.rate_limit_events: int = 0
        self.last_rate_limit: RateLimitInfo | None = None

    @classmethod
    def from_settings(
        cls, settings: Settings, *, urlopen_impl: Callable[..., Any] = urlopen
    ) -> "GitHubClient":
        return cls(
            token=settings.token,
            base_url=settings.base_url,
            timeout_sec=settings.timeout_sec,
            max_pages=settings.max_pages,
            urlopen_impl=urlopen_impl,
        )

    def _build_url(self, path: str, query: Mapping[str, Any] | None) -> str:
        url = f"{self._base_url}{path}"
        if not query:
            return url
        qs = urlencode({k: v for k, v in query.items() if v is not None})
        return f"{url}?{qs}" if qs else url

    def request_json(
        self,
        path: str,
        *,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        url = self._build_url(path, query)
        req_headers: dict[str, str] = {
            "Accept": "application/vnd.github+json",
            "User-Agent": self._user_agent,
            "X-GitHub-Api-Version": self._api_version,
        }
        if headers:
            req_headers.update(dict(headers))
        if self._token:
            req_headers["Authorization"] = f"Bearer {self._token}"

        request = Request(url, headers=req_headers)
        self.request_count += 1
        logger.debug("GET %s", url)

        try:
            with self._urlopen(request, timeout=self._timeout_sec) as response:
                rate_limit = _parse_rate_limit(response.headers)
                if rate_limit is not None:
                    self.last_rate_limit = rate_limit

                if getattr(response, "status", None) == 204:
                    return None

                raw = response.read()
                if not raw:
                    return None
                return json.loads(raw)
        except HTTPError as error:
            rate_limit = _parse_rate_limit(error.headers)
            if rate_limit is not None:
                self.last_rate_limit = rate_limit

            try:
                payload = json.loads(error.read() or b"{}")
            except ValueError:
                payload = {}
            if not isinstance(payload, dict):
                payload = {}

            message = str(payload.get("message") or "GitHub API request failed")
            api_error = GitHubApiError(
                message,
                status=int(error.code),
                url=url,
                rate_limit=rate_limit,
            )
            if api_error.is_rate_limited:
                self.rate_limit_events += 1
                logger.warning(
                    "GitHub rate limit hit: %s", rate_limit.to_dict() if rate_limit else {}
                )
            raise api_error from None
        except URLError as error:
            raise GitHubApiError(
                str(error.reason),
                status=0,
                url=url,
                rate_limit=self.last_rate_limit,
            ) from None

    def paginate(
        self,
        path: str,
        *,
        query: Mapping[str, Any] | None = None,
        per_page: int = 100,
        max_pages: int | None = None,
    ) -> list[Any]:
        """Fetch list pages until a short page or the page cap is reached."""
        limit = self.max_pages if max_pages is None else max_pages
        all_items: list[Any] = []
        for page in range(1, limit + 1):
            items = self.request_json(
                path,
                query={
                    **(dict(query) if query else {}),
                    "per_page": per_page,
                    "page": page,
                },
            )
            if items is None:
                break
            if not isinstance(items, list):
                raise TypeError(f"Expected list from GitHub pagination (path={path}).")
            all_items.extend(items)
            if len(items) < per_page:
                break
        else:
            logger.warning(
                "Stopped paginating %s after %d pages; results may be truncated",
                path,
                limit,
            )
        return all_items
