"""GitHub REST API client.

Covers the four endpoints PR Pilot needs: branch comparison, repository
metadata, branch listing and pull-request creation. Every method returns a
``Result``; non-2xx responses are mapped through the GitHub status table in
``prpilot.errors``.
"""

import asyncio
import logging
from typing import Any
from typing import cast

from returns.result import Failure
from returns.result import Result
from returns.result import Success

from prpilot.config import GitHubConfig
from prpilot.errors import PilotError
from prpilot.errors import github_api_error
from prpilot.errors import invalid_response
from prpilot.errors import missing_github_token
from prpilot.errors import transport_error
from prpilot.http_client import HTTPRequest
from prpilot.http_client import HTTPTransport
from prpilot.models import BranchInfo
from prpilot.models import ChangeSet
from prpilot.models import ChangeStats
from prpilot.models import FileChange
from prpilot.models import FileStatus
from prpilot.models import RepositoryInfo


logger = logging.getLogger(__name__)


# -----------------------------
# Pure Functions - Parsing
# -----------------------------


def _as_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def parse_change_set(data: Any) -> ChangeSet:
    """Normalise a compare payload; missing ``files`` or ``stats`` mean empty."""
    if not isinstance(data, dict):
        return ChangeSet()

    raw_files = data.get("files") or []
    files = tuple(
        FileChange(
            filename=str(f.get("filename", "")),
            status=FileStatus.parse(f.get("status")),
            additions=_as_int(f.get("additions")),
            deletions=_as_int(f.get("deletions")),
        )
        for f in raw_files
        if isinstance(f, dict)
    )

    raw_stats = data.get("stats")
    if not isinstance(raw_stats, dict):
        raw_stats = {}
    additions = _as_int(raw_stats.get("additions"))
    deletions = _as_int(raw_stats.get("deletions"))
    total = _as_int(raw_stats.get("total"))
    if total != additions + deletions:
        if raw_stats:
            logger.warning(
                "Compare stats total %d does not match additions+deletions %d; using the sum",
                total,
                additions + deletions,
            )
        total = additions + deletions

    return ChangeSet(files=files, stats=ChangeStats(additions=additions, deletions=deletions, total=total))


def parse_repository(data: Any, branches: Any) -> Result[RepositoryInfo, PilotError]:
    """Build ``RepositoryInfo`` from repository and branch payloads."""
    if not isinstance(data, dict) or not data.get("name"):
        return Failure(invalid_response("GitHub", "repository payload is missing a name"))

    branch_items = branches if isinstance(branches, list) else []
    return Success(
        RepositoryInfo(
            name=str(data["name"]),
            full_name=str(data.get("full_name", data["name"])),
            description=data.get("description"),
            default_branch=str(data.get("default_branch", "")),
            private=bool(data.get("private", False)),
            html_url=str(data.get("html_url", "")),
            clone_url=str(data.get("clone_url", "")),
            branches=tuple(
                BranchInfo(name=str(b.get("name", "")), protected=bool(b.get("protected", False)))
                for b in branch_items
                if isinstance(b, dict)
            ),
        )
    )


# -----------------------------
# Client
# -----------------------------


class GitHubClient:
    """Token-authenticated client for the GitHub (or GitHub Enterprise) REST API."""

    def __init__(self, config: GitHubConfig, http: HTTPTransport) -> None:
        """Initialize with GitHub settings and an HTTP transport."""
        self._config = config
        self._http = http

    @property
    def api_base(self) -> str:
        """API base URL without a trailing slash."""
        return self._config.api_base.rstrip("/")

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"token {self._config.token}",
            "Accept": "application/vnd.github.v3+json",
            "Content-Type": "application/json",
        }

    async def _call(self, method: str, path: str, payload: Any = None) -> Result[Any, PilotError]:
        """Execute an API call and return the decoded JSON body."""
        if not self._config.token:
            return Failure(missing_github_token())

        result = await self._http.request(
            HTTPRequest(
                method=method,
                url=f"{self.api_base}{path}",
                headers=self._headers(),
                json_body=payload,
                timeout_seconds=self._config.timeout_seconds,
                service="github",
            )
        )
        if isinstance(result, Failure):
            return Failure(transport_error("GitHub", result.failure()))

        response = result.unwrap()
        if not response.is_success:
            return Failure(github_api_error(response.status_code, response.json_data or response.text))
        return Success(response.json_data)

    async def fetch_change_set(self, owner: str, repo: str, head: str, base: str) -> Result[ChangeSet, PilotError]:
        """Compare ``base...head`` and return the normalised change set.

        The path places the base ref first: the change set describes what
        ``head`` adds on top of ``base``.
        """
        result = await self._call("GET", f"/repos/{owner}/{repo}/compare/{base}...{head}")
        return result.map(parse_change_set)

    async def get_repository(self, owner: str, repo: str) -> Result[dict[str, Any], PilotError]:
        """Fetch raw repository metadata."""
        result = await self._call("GET", f"/repos/{owner}/{repo}")
        return cast("Result[dict[str, Any], PilotError]", result)

    async def list_branches(self, owner: str, repo: str) -> Result[list[dict[str, Any]], PilotError]:
        """Fetch the repository's branches."""
        result = await self._call("GET", f"/repos/{owner}/{repo}/branches")
        return result.map(lambda data: data if isinstance(data, list) else [])

    async def get_repository_info(self, owner: str, repo: str) -> Result[RepositoryInfo, PilotError]:
        """Fetch repository metadata and branches together."""
        repo_result, branches_result = await asyncio.gather(
            self.get_repository(owner, repo),
            self.list_branches(owner, repo),
        )
        if isinstance(repo_result, Failure):
            return repo_result
        if isinstance(branches_result, Failure):
            return branches_result
        return parse_repository(repo_result.unwrap(), branches_result.unwrap())

    async def create_pull_request(
        self,
        owner: str,
        repo: str,
        title: str,
        head: str,
        base: str,
        body: str,
        draft: bool,
    ) -> Result[dict[str, Any], PilotError]:
        """Submit a create-pull-request call and return the raw PR payload."""
        payload = {"title": title, "head": head, "base": base, "body": body, "draft": draft}
        result = await self._call("POST", f"/repos/{owner}/{repo}/pulls", payload)
        if isinstance(result, Success) and not isinstance(result.unwrap(), dict):
            return Failure(invalid_response("GitHub", "pull request payload is not a JSON object"))
        return cast("Result[dict[str, Any], PilotError]", result)
