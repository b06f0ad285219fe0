"""Tests for the REST façade."""

from typing import Any
from unittest.mock import AsyncMock
from unittest.mock import Mock

import pytest
from aiohttp import test_utils

from prpilot.api_server import create_app
from prpilot.api_server import tool_metadata
from prpilot.config import PilotConfig
from prpilot.models import PullRequestParams


def _mock_pilot(result: dict[str, Any]) -> Mock:
    pilot = Mock()
    pilot.resolve_owner = Mock(side_effect=lambda owner: owner or "acme")
    pilot.create_pull_request = AsyncMock(return_value=result)
    pilot.get_repository_info = AsyncMock(return_value=result)
    return pilot


def _client(config: PilotConfig, pilot: Mock | None = None) -> test_utils.TestClient:
    return test_utils.TestClient(test_utils.TestServer(create_app(config, pilot or _mock_pilot({"success": True}))))


class TestToolMetadata:
    """Test the tool listing helper."""

    def test_parameters_described(self) -> None:
        """Parameters carry their description and requirement."""
        by_name = {t["name"]: t for t in tool_metadata()}

        assert by_name["get_jira_ticket_details"]["category"] == "jira"
        assert by_name["get_jira_ticket_details"]["parameters"]["ticketId"].endswith("(required)")
        assert by_name["create_pull_request"]["parameters"]["draft"].endswith("(optional)")


class TestEndpoints:
    """Test the REST routes."""

    @pytest.mark.asyncio
    async def test_index_and_health(self, pilot_config: PilotConfig) -> None:
        """Root lists endpoints; health reports configuration."""
        async with _client(pilot_config) as client:
            index = await (await client.get("/")).json()
            health_resp = await client.get("/health")
            health = await health_resp.json()

        assert index["message"] == "PR Pilot API Server"
        assert "create_pr" in index["endpoints"]
        assert health_resp.status == 200
        assert health["status"] == "healthy"
        assert health["username"] == "pilot"
        assert health["github"]["configured"] is True

    @pytest.mark.asyncio
    async def test_tools(self, pilot_config: PilotConfig) -> None:
        """Tools are grouped by category."""
        async with _client(pilot_config) as client:
            data = await (await client.get("/tools")).json()

        assert data["total_tools"] == 4
        assert data["categories"] == ["github", "jira"]
        assert len(data["tools_by_category"]["github"]) == 3

    @pytest.mark.asyncio
    async def test_metrics(self, pilot_config: PilotConfig) -> None:
        """Metrics use the Prometheus text format."""
        async with _client(pilot_config) as client:
            resp = await client.get("/metrics")
            text = await resp.text()

        assert resp.status == 200
        assert resp.headers["Content-Type"].startswith("text/plain")
        assert "prpilot_tool_calls_total" in text

    @pytest.mark.asyncio
    async def test_create_pr_not_configured(self) -> None:
        """Without a token the request is rejected before validation."""
        pilot = _mock_pilot({"success": True})
        async with _client(PilotConfig(), pilot) as client:
            resp = await client.post("/create-pr", json={})
            data = await resp.json()

        assert resp.status == 400
        assert data["error"] == "GitHub not configured"
        assert data["instructions"]
        pilot.create_pull_request.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_pr_missing_parameters(self, pilot_config: PilotConfig) -> None:
        """Missing fields are a 400 with details."""
        async with _client(pilot_config) as client:
            resp = await client.post("/create-pr", json={"repo": "web"})
            data = await resp.json()

        assert resp.status == 400
        assert data["message"] == "Please provide: repo, title, head, and base branch"
        assert data["details"]

    @pytest.mark.asyncio
    async def test_create_pr_invalid_json(self, pilot_config: PilotConfig) -> None:
        """A malformed body is a 400."""
        async with _client(pilot_config) as client:
            resp = await client.post("/create-pr", data="{oops", headers={"Content-Type": "application/json"})

        assert resp.status == 400

    @pytest.mark.asyncio
    async def test_create_pr_delegates(self, pilot_config: PilotConfig) -> None:
        """A valid request reaches the service and its envelope is returned."""
        result = {"success": True, "pull_request": {"number": 7}, "formatted_response": "done", "message": "ok"}
        pilot = _mock_pilot(result)
        async with _client(pilot_config, pilot) as client:
            resp = await client.post(
                "/create-pr",
                json={"repo": "web", "title": "T", "head": "feature", "base": "main", "draft": True},
            )
            data = await resp.json()

        assert resp.status == 200
        assert data == result
        pilot.create_pull_request.assert_awaited_once_with(
            PullRequestParams(owner="acme", repo="web", title="T", head="feature", base="main", draft=True)
        )

    @pytest.mark.asyncio
    async def test_github_check_uses_default_repo(self, pilot_config: PilotConfig) -> None:
        """The connectivity test falls back to the configured repository."""
        pilot = _mock_pilot({"success": True, "repository": {"name": "web"}})
        async with _client(pilot_config, pilot) as client:
            data = await (await client.post("/test-github")).json()

        pilot.get_repository_info.assert_awaited_once_with("acme", "web")
        assert data["success"] is True
        assert data["github_config"] == {"token_configured": True}

    @pytest.mark.asyncio
    async def test_unhandled_error_is_500(self, pilot_config: PilotConfig) -> None:
        """Unexpected exceptions become a JSON 500."""
        pilot = _mock_pilot({})
        pilot.create_pull_request = AsyncMock(side_effect=RuntimeError("kaboom"))
        async with _client(pilot_config, pilot) as client:
            resp = await client.post("/create-pr", json={"repo": "web", "title": "T", "head": "f", "base": "main"})
            data = await resp.json()

        assert resp.status == 500
        assert data == {"success": False, "error": "kaboom", "message": "Internal server error"}
