"""Tests for the GitHub client and compare payload parsing."""

import pytest
from conftest import GITHUB_API
from conftest import FakeTransport
from conftest import compare_payload
from conftest import pull_request_payload
from returns.result import Failure
from returns.result import Success

from prpilot.config import GitHubConfig
from prpilot.errors import ErrorKind
from prpilot.github import GitHubClient
from prpilot.github import parse_change_set
from prpilot.github import parse_repository
from prpilot.models import FileStatus


@pytest.fixture
def github_config() -> GitHubConfig:
    """GitHub settings pointing at the fake API."""
    return GitHubConfig(token="ghp_test", owner="acme", api_base=GITHUB_API)


class TestParseChangeSet:
    """Test compare payload normalisation."""

    def test_files_and_stats(self) -> None:
        """Files keep their order and statuses."""
        change_set = parse_change_set(compare_payload())

        assert [f.filename for f in change_set.files] == ["src/app.js", "src/login.tsx", "config/app.yml"]
        assert [f.status for f in change_set.files] == [FileStatus.MODIFIED, FileStatus.ADDED, FileStatus.MODIFIED]
        assert change_set.stats.additions == 40
        assert change_set.stats.deletions == 5
        assert change_set.stats.total == 45

    def test_missing_files_and_stats_is_empty(self) -> None:
        """A payload without files or stats is an empty change set."""
        change_set = parse_change_set({"status": "identical"})

        assert change_set.files == ()
        assert change_set.stats.additions == 0
        assert change_set.stats.total == 0

    def test_non_mapping_stats_are_ignored(self) -> None:
        """Malformed stats count as zero instead of raising."""
        change_set = parse_change_set({"files": [{"filename": "a.py", "additions": 2}], "stats": [1, 2]})

        assert len(change_set.files) == 1
        assert change_set.stats.total == 0

    def test_inconsistent_total_is_recomputed(self) -> None:
        """The total is always additions plus deletions."""
        change_set = parse_change_set({"files": [], "stats": {"additions": 3, "deletions": 2, "total": 99}})
        assert change_set.stats.total == 5

    def test_unknown_status_treated_as_modified(self) -> None:
        """Statuses such as ``changed`` map to modified."""
        change_set = parse_change_set({"files": [{"filename": "a.py", "status": "changed"}]})
        assert change_set.files[0].status == FileStatus.MODIFIED


class TestParseRepository:
    """Test repository payload parsing."""

    def test_missing_name_fails(self) -> None:
        """A repository payload must carry a name."""
        result = parse_repository({}, [])
        assert isinstance(result, Failure)
        assert result.failure().kind == ErrorKind.INVALID_RESPONSE


class TestGitHubClient:
    """Test GitHub API calls."""

    @pytest.mark.asyncio
    async def test_compare_path_puts_base_first(self, transport: FakeTransport, github_config: GitHubConfig) -> None:
        """The compare URL is ``base...head``."""
        transport.add("GET", "/repos/acme/web/compare/develop...feature-x", compare_payload())
        client = GitHubClient(github_config, transport)

        result = await client.fetch_change_set("acme", "web", "feature-x", "develop")

        assert isinstance(result, Success)
        assert transport.urls() == [f"{GITHUB_API}/repos/acme/web/compare/develop...feature-x"]

    @pytest.mark.asyncio
    async def test_token_headers(self, transport: FakeTransport, github_config: GitHubConfig) -> None:
        """Requests use the ``token`` scheme and the v3 media type."""
        transport.add("GET", "/repos/acme/web/compare/main...dev", compare_payload())
        await GitHubClient(github_config, transport).fetch_change_set("acme", "web", "dev", "main")

        headers = transport.requests[0].headers
        assert headers["Authorization"] == "token ghp_test"
        assert headers["Accept"] == "application/vnd.github.v3+json"

    @pytest.mark.asyncio
    async def test_api_error_propagates(self, transport: FakeTransport, github_config: GitHubConfig) -> None:
        """Non-2xx responses come back as upstream failures."""
        transport.add("GET", "/repos/acme/web/compare/main...dev", {"message": "Not Found"}, status=404)

        result = await GitHubClient(github_config, transport).fetch_change_set("acme", "web", "dev", "main")

        assert isinstance(result, Failure)
        error = result.failure()
        assert error.kind == ErrorKind.UPSTREAM_API
        assert error.status == 404
        assert error.message == "GitHub API error (404): Repository not found or you don't have access to it."

    @pytest.mark.asyncio
    async def test_transport_error(self, transport: FakeTransport, github_config: GitHubConfig) -> None:
        """Transport failures are reported as TRANSPORT errors."""
        transport.add("GET", "/repos/acme/web", failure="Network error: connection refused")

        result = await GitHubClient(github_config, transport).get_repository("acme", "web")

        assert isinstance(result, Failure)
        assert result.failure().kind == ErrorKind.TRANSPORT
        assert "connection refused" in result.failure().message

    @pytest.mark.asyncio
    async def test_missing_token_sends_nothing(self, transport: FakeTransport) -> None:
        """Without a token the client fails before any request."""
        client = GitHubClient(GitHubConfig(api_base=GITHUB_API), transport)

        result = await client.get_repository_info("acme", "web")

        assert isinstance(result, Failure)
        assert result.failure().kind == ErrorKind.CONFIGURATION
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_repository_info_with_branches(self, transport: FakeTransport, github_config: GitHubConfig) -> None:
        """Repository metadata and branches are combined."""
        transport.add(
            "GET",
            "/repos/acme/web",
            {
                "name": "web",
                "full_name": "acme/web",
                "description": None,
                "default_branch": "main",
                "private": True,
                "html_url": "https://github.test/acme/web",
                "clone_url": "https://github.test/acme/web.git",
            },
        )
        transport.add("GET", "/repos/acme/web/branches", [{"name": "main", "protected": True}, {"name": "dev"}])

        result = await GitHubClient(github_config, transport).get_repository_info("acme", "web")

        info = result.unwrap()
        assert info.full_name == "acme/web"
        assert info.private is True
        assert [(b.name, b.protected) for b in info.branches] == [("main", True), ("dev", False)]

    @pytest.mark.asyncio
    async def test_create_pull_request_payload(self, transport: FakeTransport, github_config: GitHubConfig) -> None:
        """The create call posts title, head, base, body and draft."""
        transport.add("POST", "/repos/acme/web/pulls", pull_request_payload(), status=201)

        result = await GitHubClient(github_config, transport).create_pull_request(
            "acme", "web", "Add login 🤖", "TICKET-12345-feature", "develop", "body", True
        )

        assert isinstance(result, Success)
        request = transport.requests[0]
        assert request.method == "POST"
        assert request.json_body == {
            "title": "Add login 🤖",
            "head": "TICKET-12345-feature",
            "base": "develop",
            "body": "body",
            "draft": True,
        }

    @pytest.mark.asyncio
    async def test_create_pull_request_validation_error(
        self, transport: FakeTransport, github_config: GitHubConfig
    ) -> None:
        """A 422 includes the upstream message."""
        transport.add("POST", "/repos/acme/web/pulls", {"message": "A pull request already exists"}, status=422)

        result = await GitHubClient(github_config, transport).create_pull_request(
            "acme", "web", "t", "h", "b", "", False
        )

        assert result.failure().message == "GitHub API error (422): Validation failed. A pull request already exists"
