"""Pull-request orchestration and the tool operations built on it.

``PRPilot`` is the single service behind both outer surfaces. Each operation
opens its own HTTP client, runs to completion and returns a JSON-ready
envelope; nothing is shared between invocations except the immutable
configuration.

Flow for ``create_pull_request``:
    credentials -> (optional) diff fetch -> ticket extraction ->
    narrative generation -> composition -> create-PR call -> envelope
"""

import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from datetime import UTC
from datetime import datetime
from typing import Any

from returns.result import Failure
from returns.result import Result
from returns.result import Success

from prpilot.composer import compose_description
from prpilot.composer import fallback_description
from prpilot.config import PilotConfig
from prpilot.errors import PilotError
from prpilot.errors import invalid_response
from prpilot.errors import missing_github_token
from prpilot.errors import validation_error
from prpilot.formatting import format_pull_request
from prpilot.formatting import format_repository
from prpilot.formatting import format_summary
from prpilot.formatting import pull_request_message
from prpilot.formatting import summary_message
from prpilot.github import GitHubClient
from prpilot.http_client import HTTPClient
from prpilot.http_client import HTTPTransport
from prpilot.llm import ChatCompletionModel
from prpilot.metrics import record_degradation
from prpilot.metrics import record_tool_call
from prpilot.models import PRSummary
from prpilot.models import PullRequestParams
from prpilot.models import PullRequestResult
from prpilot.models import unique_in_order
from prpilot.narrative import NarrativeGenerator
from prpilot.tickets import JiraTicketProvider
from prpilot.tickets import extract_ticket_refs


logger = logging.getLogger(__name__)

AI_SIGNATURE = " 🤖"

HTTPFactory = Callable[[], AbstractAsyncContextManager[HTTPTransport]]


def sign_title(title: str) -> str:
    """Append the agent signature unless the title already ends with it."""
    return title if title.endswith(AI_SIGNATURE) else f"{title}{AI_SIGNATURE}"


def parse_pull_request(
    data: dict[str, Any], body_length: int, includes_diff_analysis: bool
) -> Result[PullRequestResult, PilotError]:
    """Build a ``PullRequestResult`` from a create-PR response."""
    try:
        return Success(
            PullRequestResult(
                number=int(data["number"]),
                title=str(data["title"]),
                url=str(data["html_url"]),
                state=str(data.get("state", "open")),
                draft=bool(data.get("draft", False)),
                head=str(data["head"]["ref"]),
                base=str(data["base"]["ref"]),
                created_at=str(data.get("created_at", "")),
                author=str((data.get("user") or {}).get("login", "")),
                body_length=body_length,
                includes_diff_analysis=includes_diff_analysis,
            )
        )
    except (KeyError, TypeError, ValueError) as e:
        return Failure(invalid_response("GitHub", f"pull request payload is missing {e}"))


class PRPilot:
    """Service exposing the four tool operations.

    Example:
        >>> pilot = PRPilot(config)
        >>> envelope = await pilot.get_jira_ticket_details("ABC-123")
    """

    def __init__(self, config: PilotConfig, http_factory: HTTPFactory = HTTPClient) -> None:
        """Initialize with configuration and a factory for per-call HTTP clients."""
        self.config = config
        self._http_factory = http_factory

    def resolve_owner(self, owner: str | None) -> str:
        """Use the configured owner when the caller omits one."""
        return owner or self.config.github.owner or ""

    def require_owner(self, owner: str | None) -> Result[str, PilotError]:
        """Resolve the owner, failing validation when neither the caller nor the config names one."""
        resolved = self.resolve_owner(owner)
        if not resolved:
            return Failure(validation_error("Repository owner is required. Pass owner or set GITHUB_OWNER."))
        return Success(resolved)

    def _finish(self, tool: str, envelope: dict[str, Any]) -> dict[str, Any]:
        record_tool_call(tool, bool(envelope.get("success")))
        return envelope

    # -----------------------------
    # Description pipeline
    # -----------------------------

    async def build_description(
        self,
        http: HTTPTransport,
        owner: str,
        repo: str,
        head: str,
        base: str,
        body: str = "",
    ) -> str:
        """Build the enriched Markdown description, never failing.

        A failed diff fetch (or any unexpected error in the chain) replaces the
        whole description with the static fallback. A failed narrative only
        replaces the three prose fragments.
        """
        try:
            return await self._enriched_description(http, owner, repo, head, base, body)
        except Exception as e:
            logger.warning("Failed to analyze code diff, using static description: %s", e, exc_info=True)
            record_degradation("description")
            return fallback_description(head, base)

    async def _enriched_description(
        self,
        http: HTTPTransport,
        owner: str,
        repo: str,
        head: str,
        base: str,
        body: str,
    ) -> str:
        github = GitHubClient(self.config.github, http)
        change_result = await github.fetch_change_set(owner, repo, head, base)
        if isinstance(change_result, Failure):
            logger.warning("Failed to analyze code diff, using static description: %s", change_result.failure())
            record_degradation("diff_analysis")
            return fallback_description(head, base)

        change_set = change_result.unwrap()
        pattern = self.config.jira.ticket_pattern
        branch_refs = extract_ticket_refs(head, pattern)

        tickets = JiraTicketProvider(self.config.jira, http)
        generator = NarrativeGenerator(
            ChatCompletionModel(self.config.llm, http),
            tickets,
            concurrent=self.config.llm.concurrent_generation,
        )
        bundle = await generator.generate_or_fallback(change_set, head, base, branch_refs, body)

        all_refs = unique_in_order(extract_ticket_refs(bundle.detailed_summary, pattern) + branch_refs)
        figma_links: tuple[str, ...] = ()
        if all_refs:
            lookup = await tickets.lookup(all_refs[0])
            if lookup.success:
                figma_links = lookup.ticket.figma_links

        return compose_description(bundle, change_set, all_refs, figma_links, self.config.jira)

    # -----------------------------
    # Tool operations
    # -----------------------------

    async def create_pull_request(self, params: PullRequestParams) -> dict[str, Any]:
        """Create a pull request, optionally with an enriched description.

        The credential check runs before any network activity. Enrichment
        failures degrade the body; only the create-PR call itself can fail
        the operation.
        """
        tool = "create_pull_request"
        if not self.config.github.is_configured:
            return self._finish(tool, missing_github_token().to_envelope())

        owner_result = self.require_owner(params.owner)
        if isinstance(owner_result, Failure):
            return self._finish(tool, owner_result.failure().to_envelope())
        owner = owner_result.unwrap()

        title = sign_title(params.title)
        async with self._http_factory() as http:
            body = params.body
            if params.include_diff_analysis:
                body = await self.build_description(http, owner, params.repo, params.head, params.base, params.body)

            logger.info(
                "Creating enhanced PR for %s/%s: %s (%s → %s)", owner, params.repo, title, params.head, params.base
            )
            github = GitHubClient(self.config.github, http)
            response = await github.create_pull_request(
                owner, params.repo, title, params.head, params.base, body, params.draft
            )

        result = response.bind(lambda data: parse_pull_request(data, len(body), params.include_diff_analysis))
        if isinstance(result, Failure):
            failure: PilotError = result.failure()
            logger.error("Error creating pull request: %s", failure)
            return self._finish(tool, failure.to_envelope())

        pr = result.unwrap()
        logger.info("Created pull request #%d at %s", pr.number, pr.url)
        return self._finish(
            tool,
            {
                "success": True,
                "pull_request": pr.to_dict(),
                "formatted_response": format_pull_request(pr),
                "message": pull_request_message(pr),
            },
        )

    async def get_repository_info(self, owner: str | None, repo: str) -> dict[str, Any]:
        """Fetch repository metadata and branches."""
        tool = "get_repository_info"
        if not self.config.github.is_configured:
            return self._finish(tool, missing_github_token().to_envelope())

        owner_result = self.require_owner(owner)
        if isinstance(owner_result, Failure):
            return self._finish(tool, owner_result.failure().to_envelope())
        owner = owner_result.unwrap()
        async with self._http_factory() as http:
            result = await GitHubClient(self.config.github, http).get_repository_info(owner, repo)

        if isinstance(result, Failure):
            return self._finish(tool, result.failure().to_envelope())

        info = result.unwrap()
        formatted = format_repository(info)
        return self._finish(
            tool,
            {
                "success": True,
                "repository": info.to_dict(),
                "formatted_response": formatted,
                "message": formatted,
            },
        )

    async def get_jira_ticket_details(self, ticket_id: str) -> dict[str, Any]:
        """Fetch one ticket; failures return a placeholder with ``success: false``."""
        async with self._http_factory() as http:
            lookup = await JiraTicketProvider(self.config.jira, http).lookup(ticket_id)
        return self._finish("get_jira_ticket_details", lookup.to_dict())

    async def generate_pr_summary(
        self,
        owner: str | None,
        repo: str,
        head: str,
        base: str,
        title: str = "",
        body: str = "",
    ) -> dict[str, Any]:
        """Generate a PR description without creating the PR."""
        tool = "generate_pr_summary"
        if not self.config.github.is_configured:
            return self._finish(tool, missing_github_token().to_envelope())

        owner_result = self.require_owner(owner)
        if isinstance(owner_result, Failure):
            return self._finish(tool, owner_result.failure().to_envelope())
        owner = owner_result.unwrap()
        async with self._http_factory() as http:
            description = await self.build_description(http, owner, repo, head, base, body)
            repo_result = await GitHubClient(self.config.github, http).get_repository(owner, repo)

        if isinstance(repo_result, Failure):
            return self._finish(tool, repo_result.failure().to_envelope())

        repo_data = repo_result.unwrap() or {}
        summary = PRSummary(
            repository=str(repo_data.get("full_name", f"{owner}/{repo}")),
            head_branch=head,
            base_branch=base,
            suggested_title=title or f"Update from {head} to {base}",
            generated_description=description,
            analysis_timestamp=datetime.now(UTC).isoformat(),
            html_url=str(repo_data.get("html_url", "")),
        )
        return self._finish(
            tool,
            {
                "success": True,
                "summary": summary.to_dict(),
                "formatted_response": format_summary(summary),
                "message": summary_message(owner, repo, head, base),
            },
        )
