"""Tool definitions exposed to MCP clients, and the dispatcher behind them."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Mapping

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, ValidationError, field_validator

from .batching import process_batch
from .config import COMMITS_PER_PAGE, MAX_PRS_PER_REQUEST, Settings, load_settings
from .discovery import discover_pull_requests
from .github_client import GitHubClient, GitHubReader
from .logging_config import get_logger

logger = get_logger(__name__)

LIST_PRS_FOR_FILE = "github_list_prs_for_file"
GET_PR_DETAILS = "github_get_pr_details"


class ToolError(Exception):
    def __init__(self, message: str, *, tool: str, operation: str = "call_tool") -> None:
        super().__init__(message)
        self.message = message
        self.tool = tool
        self.operation = operation

    def __str__(self) -> str:
        return f"[{self.operation}:{self.tool}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        return {"operation": self.operation, "tool": self.tool, "message": self.message}


class UnknownToolError(ToolError):
    def __init__(self, tool: str) -> None:
        super().__init__(f"Unknown tool name: {tool}", tool=tool)


class ToolInputError(ToolError):
    def __init__(
        self, message: str, *, tool: str, details: list[dict[str, Any]] | None = None
    ) -> None:
        super().__init__(message, tool=tool)
        self.details = details or []

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "details": self.details}


def _parse_iso_dt(value: str) -> datetime:
    raw = value.strip()
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    return datetime.fromisoformat(raw)


_OWNER_DESC = "The GitHub username or organization name that owns the repository"
_REPO_DESC = "The name of the GitHub repository containing the target file"


class ListPrsForFileInput(BaseModel):
    model_config = ConfigDict(extra="ignore")

    owner: str = Field(min_length=1, description=_OWNER_DESC)
    repo: str = Field(min_length=1, description=_REPO_DESC)
    path: str = Field(
        min_length=1,
        description="The relative file path within the repository (e.g., 'src/index.js', 'README.md')",
    )
    page: PositiveInt = Field(
        default=1, description="The page number for commits pagination (default: 1)"
    )
    since: str | None = Field(
        default=None,
        description="Only show commits after this timestamp (ISO 8601 format, e.g., '2023-01-01T00:00:00Z')",
    )
    until: str | None = Field(
        default=None,
        description="Only show commits before this timestamp (ISO 8601 format, e.g., '2023-12-31T23:59:59Z')",
    )
    ignoreDependabot: bool = Field(
        default=True,
        description="Whether to ignore PRs created by Dependabot (default: true)",
    )

    @field_validator("since", "until")
    @classmethod
    def _check_timestamp(cls, value: str | None) -> str | None:
        if value is None:
            return None
        try:
            _parse_iso_dt(value)
        except ValueError:
            raise ValueError(f"not an ISO 8601 timestamp: {value!r}") from None
        return value.strip()


class GetPrDetailsInput(BaseModel):
    model_config = ConfigDict(extra="ignore")

    owner: str = Field(min_length=1, description=_OWNER_DESC)
    repo: str = Field(min_length=1, description=_REPO_DESC)
    pr_numbers: list[PositiveInt] = Field(
        description=(
            "Array of PR numbers to get details for. Initially send all PR numbers "
            "obtained from github_list_prs_for_file. If the response includes "
            "'remaining_pr_numbers', send those in the next request."
        )
    )
    path: str | None = Field(
        default=None,
        description="The relative file path within the repository (optional, for file-specific details)",
    )


def _list_prs_for_file(
    args: ListPrsForFileInput, client: GitHubReader, settings: Settings
) -> dict[str, Any]:
    del settings
    page = discover_pull_requests(
        client,
        owner=args.owner,
        repo=args.repo,
        path=args.path,
        page=args.page,
        since=args.since,
        until=args.until,
        ignore_dependabot=args.ignoreDependabot,
        per_page=COMMITS_PER_PAGE,
    )
    return page.to_dict()


def _get_pr_details(
    args: GetPrDetailsInput, client: GitHubReader, settings: Settings
) -> dict[str, Any]:
    result = process_batch(
        client,
        owner=args.owner,
        repo=args.repo,
        pr_numbers=args.pr_numbers,
        path=args.path or None,
        max_per_call=MAX_PRS_PER_REQUEST,
        issue_host=settings.web_host,
    )
    return result.to_dict()


@dataclass(frozen=True, slots=True)
class ToolSpec:
    name: str
    description: str
    input_model: type[BaseModel]
    handler: Callable[[Any, GitHubReader, Settings], dict[str, Any]]

    def input_schema(self) -> dict[str, Any]:
        return self.input_model.model_json_schema()


TOOLS: dict[str, ToolSpec] = {
    LIST_PRS_FOR_FILE: ToolSpec(
        name=LIST_PRS_FOR_FILE,
        description=(
            "Lists pull request numbers that modified a specific file in a GitHub "
            "repository, with commits pagination support. This tool retrieves commits "
            "that modified the file and finds associated PRs. Use this tool multiple "
            "times with different pagination parameters to collect all relevant PRs "
            "before proceeding to github_get_pr_details. 'has_more' is true when the "
            "commit page was full; the next page may still come back empty."
        ),
        input_model=ListPrsForFileInput,
        handler=_list_prs_for_file,
    ),
    GET_PR_DETAILS: ToolSpec(
        name=GET_PR_DETAILS,
        description=(
            "Retrieves detailed information about specified pull requests, including "
            "PR details, comments, review comments, reviews, file changes, and related "
            "issues. The tool implements pseudo-pagination: initially send all PR "
            "numbers obtained from github_list_prs_for_file, and if not all can be "
            f"processed at once (at most {MAX_PRS_PER_REQUEST} per call), the response "
            "will include 'remaining_pr_numbers' that should be sent in a subsequent "
            "request. This process continues until all PRs are processed."
        ),
        input_model=GetPrDetailsInput,
        handler=_get_pr_details,
    ),
}


def parse_arguments(name: str, arguments: Mapping[str, Any] | None) -> BaseModel:
    tool = TOOLS.get(name)
    if tool is None:
        raise UnknownToolError(name)
    if arguments is None:
        raise ToolInputError("Arguments are required", tool=name)
    try:
        return tool.input_model.model_validate(dict(arguments))
    except ValidationError as exc:
        details = [
            {
                "loc": ".".join(str(part) for part in err.get("loc", ())),
                "msg": err.get("msg", ""),
                "type": err.get("type", ""),
            }
            for err in exc.errors(include_url=False)
        ]
        summary = "; ".join(f"{d['loc'] or '<root>'}: {d['msg']}" for d in details)
        raise ToolInputError(
            f"Invalid arguments for {name}: {summary}", tool=name, details=details
        ) from None


def call_tool(
    name: str,
    arguments: Mapping[str, Any] | None,
    *,
    settings: Settings | None = None,
    client: GitHubReader | None = None,
) -> dict[str, Any]:
    """
    Validate arguments and run one tool invocation to completion.

    Arguments are checked before any request is made. Upstream failures
    propagate unchanged so the caller can retry the same page or batch.
    """
    args = parse_arguments(name, arguments)
    settings = settings or load_settings()
    gh = client or GitHubClient.from_settings(settings)
    logger.debug("Calling %s", name)
    return TOOLS[name].handler(args, gh, settings)


def render_result(result: Mapping[str, Any]) -> str:
    return json.dumps(result, ensure_ascii=False, indent=2)
