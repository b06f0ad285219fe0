"""PR Pilot MCP (Model Context Protocol) server.

JSON-RPC 2.0 over newline-delimited stdio. AI agents discover the four tools
with ``tools/list`` and invoke them with ``tools/call``; every tool result is
the operation's JSON envelope, serialised into a single text content item.
"""

import asyncio
import json
import logging
import sys
from collections.abc import Awaitable
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import ValidationError
from returns.result import Failure

from prpilot import __version__
from prpilot.config import configure_logging
from prpilot.config import load_config_with_environment
from prpilot.errors import validation_error
from prpilot.models import PullRequestParams
from prpilot.pipeline import PRPilot


logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "prpilot-mcp"


# -----------------------------
# Tool arguments
# -----------------------------


class ToolArguments(BaseModel):
    """Base for tool argument models; unknown keys are ignored."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class CreatePullRequestArgs(ToolArguments):
    """Arguments of ``create_pull_request``."""

    owner: str | None = Field(
        None, description="The owner of the repository (username or organization). Defaults to the configured owner."
    )
    repo: str = Field(..., min_length=1, description="The name of the repository")
    title: str = Field(..., min_length=1, description="The title of the pull request")
    head: str = Field(..., min_length=1, description="The branch containing the changes you want to merge")
    base: str = Field(
        ..., min_length=1, description="The branch you want the changes pulled into (usually 'main' or 'master')"
    )
    body: str = Field("", description="Additional custom description used as context for the generated description")
    draft: bool = Field(False, description="Whether this should be a draft pull request")
    include_diff_analysis: bool = Field(
        True, description="Whether to include automatic code diff analysis in the PR description"
    )


class RepositoryInfoArgs(ToolArguments):
    """Arguments of ``get_repository_info``."""

    owner: str | None = Field(
        None, description="The owner of the repository (username or organization). Defaults to the configured owner."
    )
    repo: str = Field(..., min_length=1, description="The name of the repository")


class TicketDetailsArgs(ToolArguments):
    """Arguments of ``get_jira_ticket_details``."""

    ticket_id: str = Field(..., alias="ticketId", min_length=1, description="JIRA ticket key (e.g., PROJ-123)")


class PRSummaryArgs(ToolArguments):
    """Arguments of ``generate_pr_summary``."""

    owner: str | None = Field(
        None, description="The owner of the repository (username or organization). Defaults to the configured owner."
    )
    repo: str = Field(..., min_length=1, description="The name of the repository")
    head: str = Field(..., min_length=1, description="The branch containing the changes you want to analyze")
    base: str = Field(..., min_length=1, description="The branch you want to compare against")
    title: str = Field("", description="Optional title for the PR (used for context in analysis)")
    body: str = Field("", description="Additional custom description for context in the analysis")


TOOL_DESCRIPTIONS: dict[str, str] = {
    "create_pull_request": (
        "Create a new pull request on GitHub with an enhanced description including code diff analysis, "
        "change statistics and JIRA ticket links. Returns a formatted response that should be displayed "
        "directly to the user without modification."
    ),
    "get_repository_info": (
        "Get information about a GitHub repository including branches and default branch. Returns a "
        "pre-formatted response that should be displayed exactly as-is to the user."
    ),
    "get_jira_ticket_details": (
        "Fetch JIRA ticket details including summary, description, status and linked Figma designs."
    ),
    "generate_pr_summary": (
        "Generate a detailed PR summary for a branch comparison without creating the actual PR. Includes "
        "JIRA ticket context, file changes and impact assessment."
    ),
}

TOOL_ARGUMENTS: dict[str, type[ToolArguments]] = {
    "create_pull_request": CreatePullRequestArgs,
    "get_repository_info": RepositoryInfoArgs,
    "get_jira_ticket_details": TicketDetailsArgs,
    "generate_pr_summary": PRSummaryArgs,
}

TOOL_CATEGORIES: dict[str, list[str]] = {
    "github": ["create_pull_request", "get_repository_info", "generate_pr_summary"],
    "jira": ["get_jira_ticket_details"],
}


def tool_definitions() -> list[dict[str, Any]]:
    """Describe every tool with its JSON input schema."""
    return [
        {
            "name": name,
            "description": TOOL_DESCRIPTIONS[name],
            "inputSchema": model.model_json_schema(by_alias=True),
        }
        for name, model in TOOL_ARGUMENTS.items()
    ]


def describe_validation_error(error: ValidationError) -> list[str]:
    """Flatten pydantic errors into ``field: message`` strings."""
    return [f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in error.errors()]


# -----------------------------
# Server
# -----------------------------


class PRPilotMCPServer:
    """MCP server exposing the PR Pilot tools to AI agents."""

    def __init__(self, pilot: PRPilot) -> None:
        """Initialize the MCP server around a configured service."""
        self.pilot = pilot
        self.tools = {tool["name"]: tool for tool in tool_definitions()}
        self._handlers: dict[str, Callable[[Any], Awaitable[dict[str, Any]]]] = {
            "create_pull_request": self._create_pull_request,
            "get_repository_info": self._get_repository_info,
            "get_jira_ticket_details": self._get_jira_ticket_details,
            "generate_pr_summary": self._generate_pr_summary,
        }

    async def handle_request(self, request: dict[str, Any]) -> dict[str, Any]:
        """Handle incoming MCP requests."""
        try:
            method = request.get("method")
            params = request.get("params") or {}
            request_id = request.get("id")

            if not isinstance(method, str):
                return self._error_response(request_id, -32601, f"Method not found: {method!r}")

            method_handlers: dict[str, Callable[[], Awaitable[dict[str, Any]]]] = {
                "initialize": lambda: self._handle_initialize(request_id),
                "tools/list": lambda: self._handle_tools_list(request_id),
                "tools/call": lambda: self._handle_tool_call(
                    request_id, params.get("name", ""), params.get("arguments") or {}
                ),
            }

            handler = method_handlers.get(method)
            if handler:
                return await handler()

            return self._error_response(request_id, -32601, f"Method not found: {method}")

        except Exception as e:
            logger.exception("Error handling MCP request")
            return self._error_response(request.get("id"), -32603, f"Internal error: {e}")

    async def _handle_initialize(self, request_id: int | str | None) -> dict[str, Any]:
        """Handle MCP initialize request."""
        return {
            "jsonrpc": "2.0",
            "id": request_id,
            "result": {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {
                    "tools": {},
                },
                "serverInfo": {
                    "name": SERVER_NAME,
                    "version": __version__,
                },
            },
        }

    async def _handle_tools_list(self, request_id: int | str | None) -> dict[str, Any]:
        """Handle tools/list request."""
        return {
            "jsonrpc": "2.0",
            "id": request_id,
            "result": {
                "tools": list(self.tools.values()),
            },
        }

    async def _handle_tool_call(
        self, request_id: int | str | None, tool_name: str, arguments: dict[str, Any]
    ) -> dict[str, Any]:
        """Handle tools/call request."""
        handler = self._handlers.get(tool_name)
        if handler is None:
            return self._error_response(request_id, -32602, f"Unknown tool: {tool_name}")

        try:
            args = TOOL_ARGUMENTS[tool_name].model_validate(arguments)
        except ValidationError as e:
            result = validation_error(f"Invalid arguments for {tool_name}", describe_validation_error(e)).to_envelope()
        else:
            try:
                result = await handler(args)
            except Exception as e:
                logger.exception("Error calling tool %s", tool_name)
                return self._error_response(request_id, -32603, f"Tool execution error: {e}")

        return {
            "jsonrpc": "2.0",
            "id": request_id,
            "result": {
                "content": [
                    {
                        "type": "text",
                        "text": json.dumps(result, indent=2, ensure_ascii=False),
                    }
                ],
                "isError": not result.get("success", False),
            },
        }

    # ---- Tool handlers ----------------------------------------------------

    async def _create_pull_request(self, args: CreatePullRequestArgs) -> dict[str, Any]:
        return await self.pilot.create_pull_request(
            PullRequestParams(
                owner=self.pilot.resolve_owner(args.owner),
                repo=args.repo,
                title=args.title,
                head=args.head,
                base=args.base,
                body=args.body,
                draft=args.draft,
                include_diff_analysis=args.include_diff_analysis,
            )
        )

    async def _get_repository_info(self, args: RepositoryInfoArgs) -> dict[str, Any]:
        return await self.pilot.get_repository_info(args.owner, args.repo)

    async def _get_jira_ticket_details(self, args: TicketDetailsArgs) -> dict[str, Any]:
        return await self.pilot.get_jira_ticket_details(args.ticket_id)

    async def _generate_pr_summary(self, args: PRSummaryArgs) -> dict[str, Any]:
        return await self.pilot.generate_pr_summary(args.owner, args.repo, args.head, args.base, args.title, args.body)

    def _error_response(self, request_id: int | str | None, code: int, message: str) -> dict[str, Any]:
        """Create error response."""
        return {
            "jsonrpc": "2.0",
            "id": request_id,
            "error": {
                "code": code,
                "message": message,
            },
        }


async def serve_stdio(server: PRPilotMCPServer) -> None:
    """Serve requests from stdin until it closes, writing responses to stdout."""
    loop = asyncio.get_running_loop()
    while True:
        line = await loop.run_in_executor(None, sys.stdin.readline)
        if not line:
            break
        if not line.strip():
            continue

        try:
            request = json.loads(line)
        except json.JSONDecodeError as e:
            logger.warning("Discarding malformed request: %s", e)
            response: dict[str, Any] = {
                "jsonrpc": "2.0",
                "id": None,
                "error": {"code": -32700, "message": f"Parse error: {e}"},
            }
        else:
            if not isinstance(request, dict):
                response = {"jsonrpc": "2.0", "id": None, "error": {"code": -32600, "message": "Invalid Request"}}
            elif "id" not in request:
                # Notifications (e.g. notifications/initialized) get no response.
                logger.debug("Received notification %s", request.get("method"))
                continue
            else:
                response = await server.handle_request(request)

        print(json.dumps(response, ensure_ascii=False), flush=True)  # noqa: T201


def run(config_path: str | None = None) -> None:
    """Console entry point: load configuration and serve over stdio."""
    config_result = load_config_with_environment(config_path)
    if isinstance(config_result, Failure):
        configure_logging("INFO")
        logger.error("Configuration error: %s", config_result.failure())
        sys.exit(1)

    config = config_result.unwrap()
    configure_logging(config.log_level)
    logger.info("Starting %s %s on stdio", SERVER_NAME, __version__)
    asyncio.run(serve_stdio(PRPilotMCPServer(PRPilot(config))))


if __name__ == "__main__":
    run()
