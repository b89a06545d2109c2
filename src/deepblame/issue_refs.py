from __future__ import annotations

import re
from functools import lru_cache

from .config import DEFAULT_WEB_HOST
from .models import IssueReference


@lru_cache(maxsize=8)
def _issue_url_pattern(host: str) -> re.Pattern[str]:
    # Issue numbers are bounded so an absurdly long digit run never reaches int().
    return re.compile(
        rf"https://{re.escape(host)}/([^/\s]+)/([^/\s]+)/issues/([0-9]{{1,19}})(?![0-9])"
    )


def extract_issue_references(
    body: str | None, *, host: str = DEFAULT_WEB_HOST
) -> tuple[IssueReference, ...]:
    """
    Find `https://<host>/<owner>/<repo>/issues/<number>` links in a PR body.

    References come back in first-seen order with duplicates removed.
    Never raises and performs no I/O.
    """
    if not body:
        return ()

    seen: set[str] = set()
    out: list[IssueReference] = []
    for match in _issue_url_pattern(host).finditer(body):
        ref = IssueReference(
            owner=match.group(1), repo=match.group(2), number=int(match.group(3))
        )
        if ref.key in seen:
            continue
        seen.add(ref.key)
        out.append(ref)
    return tuple(out)
