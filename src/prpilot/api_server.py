"""REST façade over the PR Pilot tools, built on ``aiohttp.web``."""

import json
import logging
from datetime import UTC
from datetime import datetime
from typing import Any

from aiohttp import web
from pydantic import ValidationError

from prpilot import __version__
from prpilot.config import GITHUB_SETUP_INSTRUCTIONS
from prpilot.config import PilotConfig
from prpilot.config import validate_github_config
from prpilot.mcp_server import TOOL_ARGUMENTS
from prpilot.mcp_server import TOOL_CATEGORIES
from prpilot.mcp_server import TOOL_DESCRIPTIONS
from prpilot.mcp_server import CreatePullRequestArgs
from prpilot.mcp_server import describe_validation_error
from prpilot.metrics import render_latest
from prpilot.models import PullRequestParams
from prpilot.pipeline import PRPilot


logger = logging.getLogger(__name__)

CONFIG_KEY = web.AppKey("config", PilotConfig)
PILOT_KEY = web.AppKey("pilot", PRPilot)

ENDPOINTS = {
    "health": "GET /health",
    "create_pr": "POST /create-pr",
    "test_github": "POST /test-github",
    "tools": "GET /tools",
    "metrics": "GET /metrics",
}


def tool_metadata() -> list[dict[str, Any]]:
    """Describe each tool with its category and parameter descriptions."""
    category_of = {name: category for category, names in TOOL_CATEGORIES.items() for name in names}
    tools = []
    for name, model in TOOL_ARGUMENTS.items():
        parameters = {}
        for field_name, info in model.model_fields.items():
            requirement = "required" if info.is_required() else "optional"
            parameters[info.alias or field_name] = f"{info.description} ({requirement})"
        tools.append(
            {
                "name": name,
                "description": TOOL_DESCRIPTIONS[name],
                "category": category_of.get(name, "other"),
                "parameters": parameters,
            }
        )
    return tools


def _not_configured(config: PilotConfig) -> web.Response:
    validation = validate_github_config(config)
    return web.json_response(
        {
            "success": False,
            "error": "GitHub not configured",
            "message": "Please set GITHUB_TOKEN environment variable",
            "instructions": validation.get("instructions", list(GITHUB_SETUP_INSTRUCTIONS)),
        },
        status=400,
    )


async def _read_json(request: web.Request) -> dict[str, Any]:
    if not request.can_read_body:
        return {}
    try:
        data = await request.json()
    except json.JSONDecodeError as e:
        raise web.HTTPBadRequest(
            text=json.dumps({"success": False, "error": f"Invalid JSON body: {e}"}),
            content_type="application/json",
        ) from e
    if not isinstance(data, dict):
        raise web.HTTPBadRequest(
            text=json.dumps({"success": False, "error": "Request body must be a JSON object"}),
            content_type="application/json",
        )
    return data


# -----------------------------
# Handlers
# -----------------------------


async def index(request: web.Request) -> web.Response:
    """API root: name, version and endpoint list."""
    return web.json_response({"message": "PR Pilot API Server", "version": __version__, "endpoints": ENDPOINTS})


async def health(request: web.Request) -> web.Response:
    """Liveness plus GitHub configuration status."""
    config = request.app[CONFIG_KEY]
    return web.json_response(
        {
            "status": "healthy",
            "timestamp": datetime.now(UTC).isoformat(),
            "username": config.llm.username or "system",
            "github": {
                "configured": config.github.is_configured,
                "validation": validate_github_config(config),
            },
        }
    )


async def test_github(request: web.Request) -> web.Response:
    """Check GitHub connectivity by fetching repository info."""
    config = request.app[CONFIG_KEY]
    if not config.github.is_configured:
        return _not_configured(config)

    body = await _read_json(request)
    pilot = request.app[PILOT_KEY]
    owner = pilot.resolve_owner(body.get("owner"))
    repo = body.get("repo") or config.github.default_repo
    if not repo:
        return web.json_response(
            {
                "success": False,
                "error": "Missing required parameters",
                "message": "Please provide repo or set GITHUB_DEFAULT_REPO",
            },
            status=400,
        )

    result = await pilot.get_repository_info(owner, repo)
    return web.json_response(
        {
            "success": result["success"],
            "message": f"GitHub connectivity test for {owner}/{repo}",
            "result": result,
            "github_config": {"token_configured": bool(config.github.token)},
        }
    )


async def create_pr(request: web.Request) -> web.Response:
    """Create a pull request through the ``create_pull_request`` tool."""
    config = request.app[CONFIG_KEY]
    if not config.github.is_configured:
        return _not_configured(config)

    try:
        args = CreatePullRequestArgs.model_validate(await _read_json(request))
    except ValidationError as e:
        return web.json_response(
            {
                "success": False,
                "error": "Missing required parameters",
                "message": "Please provide: repo, title, head, and base branch",
                "details": describe_validation_error(e),
            },
            status=400,
        )

    pilot = request.app[PILOT_KEY]
    result = await pilot.create_pull_request(
        PullRequestParams(
            owner=pilot.resolve_owner(args.owner),
            repo=args.repo,
            title=args.title,
            head=args.head,
            base=args.base,
            body=args.body,
            draft=args.draft,
            include_diff_analysis=args.include_diff_analysis,
        )
    )
    response = {"success": result["success"]}
    response.update({k: result[k] for k in ("pull_request", "formatted_response", "message", "error") if k in result})
    return web.json_response(response)


async def tools(request: web.Request) -> web.Response:
    """List the available tools grouped by category."""
    metadata = tool_metadata()
    by_category: dict[str, list[dict[str, Any]]] = {}
    for tool in metadata:
        by_category.setdefault(tool["category"], []).append(tool)
    return web.json_response(
        {
            "available_tools": metadata,
            "total_tools": len(metadata),
            "categories": list(by_category),
            "tools_by_category": by_category,
        }
    )


async def metrics(request: web.Request) -> web.Response:
    """Prometheus exposition of the service metrics."""
    payload, content_type = render_latest()
    return web.Response(body=payload, headers={"Content-Type": content_type})


@web.middleware
async def error_middleware(request: web.Request, handler: Any) -> web.StreamResponse:
    """Turn unhandled exceptions into a JSON 500 response."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except Exception as e:
        logger.exception("Unhandled error serving %s %s", request.method, request.path)
        return web.json_response(
            {"success": False, "error": str(e), "message": "Internal server error"},
            status=500,
        )


def create_app(config: PilotConfig, pilot: PRPilot | None = None) -> web.Application:
    """Build the REST application."""
    app = web.Application(middlewares=[error_middleware])
    app[CONFIG_KEY] = config
    app[PILOT_KEY] = pilot or PRPilot(config)
    app.add_routes(
        [
            web.get("/", index),
            web.get("/health", health),
            web.post("/test-github", test_github),
            web.post("/create-pr", create_pr),
            web.get("/tools", tools),
            web.get("/metrics", metrics),
        ]
    )
    return app


def run_server(config: PilotConfig, host: str | None = None, port: int | None = None) -> None:
    """Serve the REST façade until interrupted."""
    host = host or config.server.host
    port = port or config.server.port
    logger.info("PR Pilot API server listening on http://%s:%d", host, port)
    if config.github.is_configured:
        logger.info("GitHub: configured (token set)")
    else:
        logger.warning("GitHub: not configured, set GITHUB_TOKEN to enable pull request tools")
    web.run_app(create_app(config), host=host, port=port, print=None)
