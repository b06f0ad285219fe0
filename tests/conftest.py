"""Shared test doubles for PR Pilot tests.

``FakeTransport`` stands in for ``HTTPClient``: routes are matched by method
and URL suffix, and every request is recorded so tests can assert on exactly
what went over the wire (including that nothing did).
"""

import json
from typing import Any

import pytest
from returns.result import Failure
from returns.result import Result
from returns.result import Success

from prpilot.config import GitHubConfig
from prpilot.config import JiraConfig
from prpilot.config import LLMConfig
from prpilot.config import PilotConfig
from prpilot.http_client import HTTPRequest
from prpilot.http_client import HTTPResponse


GITHUB_API = "https://api.github.test"
JIRA_BASE = "https://jira.test"
LLM_BASE = "https://llm.test/v1"


class FakeTransport:
    """Scripted ``HTTPTransport`` that records requests."""

    def __init__(self) -> None:
        self.routes: list[tuple[str, str, list[Result[HTTPResponse, str]]]] = []
        self.requests: list[HTTPRequest] = []

    def add(
        self,
        method: str,
        suffix: str,
        json_data: Any = None,
        status: int = 200,
        failure: str | None = None,
    ) -> "FakeTransport":
        """Queue a response; the last queued response for a route repeats."""
        if failure is not None:
            response: Result[HTTPResponse, str] = Failure(failure)
        else:
            text = "" if json_data is None else json.dumps(json_data)
            response = Success(HTTPResponse(status_code=status, headers={}, text=text, json_data=json_data))

        for route_method, route_suffix, queue in self.routes:
            if route_method == method and route_suffix == suffix:
                queue.append(response)
                return self
        self.routes.append((method, suffix, [response]))
        return self

    async def request(self, request: HTTPRequest) -> Result[HTTPResponse, str]:
        self.requests.append(request)
        for method, suffix, queue in self.routes:
            if method == request.method and request.url.endswith(suffix):
                return queue.pop(0) if len(queue) > 1 else queue[0]
        not_found = {"message": "Not Found"}
        return Success(HTTPResponse(status_code=404, headers={}, text=json.dumps(not_found), json_data=not_found))

    def urls(self, method: str | None = None) -> list[str]:
        return [r.url for r in self.requests if method is None or r.method == method]

    async def __aenter__(self) -> "FakeTransport":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        return None


def completion(text: str) -> dict[str, Any]:
    """Build a chat-completion payload carrying ``text``."""
    return {"choices": [{"index": 0, "message": {"role": "assistant", "content": text}}]}


def compare_payload() -> dict[str, Any]:
    """Three files: two modified, one added; 40 additions and 5 deletions."""
    return {
        "files": [
            {"filename": "src/app.js", "status": "modified", "additions": 20, "deletions": 3},
            {"filename": "src/login.tsx", "status": "added", "additions": 15, "deletions": 0},
            {"filename": "config/app.yml", "status": "modified", "additions": 5, "deletions": 2},
        ],
        "stats": {"additions": 40, "deletions": 5, "total": 45},
    }


def jira_issue(key: str = "TICKET-12345", description: str = "Build login") -> dict[str, Any]:
    """Build a Jira v2 issue payload."""
    return {
        "key": key,
        "fields": {
            "summary": "Add login page",
            "description": description,
            "status": {"name": "In Progress"},
            "priority": {"name": "High"},
            "assignee": {"name": "jdoe", "displayName": "Jane Doe"},
            "reporter": {"name": "psmith", "displayName": "Pat Smith"},
            "issuetype": {"name": "Story"},
            "created": "2024-01-01T10:00:00.000+0000",
            "updated": "2024-01-02T10:00:00.000+0000",
            "labels": ["frontend", "auth"],
            "components": [{"name": "Web"}],
            "fixVersions": [{"name": "1.2.0"}],
        },
    }


def pull_request_payload(title: str = "Add login 🤖", number: int = 42, draft: bool = False) -> dict[str, Any]:
    """Build a create-PR response payload."""
    return {
        "number": number,
        "title": title,
        "html_url": f"https://github.test/acme/web/pull/{number}",
        "state": "open",
        "draft": draft,
        "head": {"ref": "TICKET-12345-feature"},
        "base": {"ref": "develop"},
        "created_at": "2024-03-05T14:30:00Z",
        "user": {"login": "octocat"},
    }


@pytest.fixture
def transport() -> FakeTransport:
    """Fresh fake transport per test."""
    return FakeTransport()


@pytest.fixture
def pilot_config() -> PilotConfig:
    """Fully configured PilotConfig pointing at fake endpoints."""
    return PilotConfig(
        github=GitHubConfig(token="ghp_test_token", owner="acme", api_base=GITHUB_API, default_repo="web"),
        jira=JiraConfig(base_url=JIRA_BASE, api_token="jira-token"),
        llm=LLMConfig(username="pilot", base_url=LLM_BASE, api_key="llm-key", model="test-model"),
    )
