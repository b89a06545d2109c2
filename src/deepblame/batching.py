from __future__ import annotations

from typing import Iterable

from .aggregator import aggregate_pull_request
from .config import DEFAULT_WEB_HOST, MAX_PRS_PER_REQUEST
from .github_client import GitHubReader
from .logging_config import get_logger
from .models import BatchResult, PRRecord

logger = get_logger(__name__)


def dedupe_preserving_order(numbers: Iterable[int]) -> list[int]:
    return list(dict.fromkeys(numbers))


def split_batch(
    numbers: Iterable[int], max_per_call: int = MAX_PRS_PER_REQUEST
) -> tuple[list[int], list[int]]:
    """Return (process now, send back later) after removing duplicates."""
    if max_per_call < 1:
        raise ValueError("max_per_call must be >= 1")
    unique = dedupe_preserving_order(numbers)
    return unique[:max_per_call], unique[max_per_call:]


def process_batch(
    client: GitHubReader,
    *,
    owner: str,
    repo: str,
    pr_numbers: Iterable[int],
    path: str | None = None,
    max_per_call: int = MAX_PRS_PER_REQUEST,
    issue_host: str = DEFAULT_WEB_HOST,
) -> BatchResult:
    """
    Detail at most `max_per_call` PRs and hand the rest back to the caller.

    Nothing is remembered between calls: the caller resubmits `remaining`
    until it comes back empty. One failing PR fails the batch.
    """
    batch, remaining = split_batch(pr_numbers, max_per_call)

    records: list[PRRecord] = []
    for number in batch:
        records.append(
            aggregate_pull_request(
                client,
                owner=owner,
                repo=repo,
                number=number,
                path=path,
                issue_host=issue_host,
            )
        )

    logger.info(
        "%s/%s: detailed %d PRs, %d remaining", owner, repo, len(records), len(remaining)
    )
    return BatchResult(records=tuple(records), remaining=tuple(remaining))
