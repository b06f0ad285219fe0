"""Tests for ticket reference extraction and the Jira ticket provider."""

import re

import pytest
from conftest import JIRA_BASE
from conftest import FakeTransport
from conftest import jira_issue
from hypothesis import given
from hypothesis import strategies as st
from returns.result import Failure
from returns.result import Success

from prpilot.config import JiraConfig
from prpilot.errors import ErrorKind
from prpilot.tickets import JiraTicketProvider
from prpilot.tickets import extract_design_links
from prpilot.tickets import extract_ticket_refs
from prpilot.tickets import parse_ticket
from prpilot.tickets import placeholder_ticket


TICKET_GRAMMAR = re.compile(r"^[A-Z][A-Z0-9]*-[0-9]+$")


class TestExtractTicketRefs:
    """Test the ticket reference extractor."""

    def test_lowercase_ignored_and_duplicates_collapsed(self) -> None:
        """Lowercase keys never match; repeated keys appear once."""
        assert extract_ticket_refs("Fix ABC-123 and abc-999 for ABC-123/ui") == ("ABC-123",)

    def test_requires_separator_after_digits(self) -> None:
        """A trailing letter glued to the number blocks the match."""
        assert extract_ticket_refs("ABC-123X") == ()

    def test_matches_before_hyphen_and_at_end(self) -> None:
        """Hyphen separator and end of text both terminate a key."""
        assert extract_ticket_refs("ABC-123-fix") == ("ABC-123",)
        assert extract_ticket_refs("ABC-123") == ("ABC-123",)

    def test_underscore_and_slash_separators(self) -> None:
        """Underscore and slash are valid separators."""
        assert extract_ticket_refs("feature/PROJ-7_login") == ("PROJ-7",)
        assert extract_ticket_refs("PROJ-7/ui") == ("PROJ-7",)

    def test_first_occurrence_order(self) -> None:
        """Keys come back in order of first appearance."""
        text = "B2-2 then A1-1 then B2-2 again and C-3"
        assert extract_ticket_refs(text) == ("B2-2", "A1-1", "C-3")

    def test_digit_start_rejected(self) -> None:
        """Project keys must start with a letter."""
        assert extract_ticket_refs("1ABC-22 ") == ()

    def test_empty_text(self) -> None:
        """Empty input yields nothing."""
        assert extract_ticket_refs("") == ()

    def test_custom_pattern(self) -> None:
        """A configured pattern replaces the default grammar."""
        assert extract_ticket_refs("see #42 and #7", r"#(\d+)") == ("42", "7")

    @given(st.text(alphabet="ABCXYZ0123456789-_/ abc", max_size=60))
    def test_results_unique_and_well_formed(self, text: str) -> None:
        """Property: no duplicates and every key matches the ticket grammar."""
        refs = extract_ticket_refs(text)
        assert len(refs) == len(set(refs))
        assert all(TICKET_GRAMMAR.match(ref) for ref in refs)
        assert all(ref in text for ref in refs)

    @given(st.lists(st.sampled_from(["AB-1", "CD-22", "EF-333"]), min_size=1, max_size=8))
    def test_order_matches_first_appearance(self, keys: list[str]) -> None:
        """Property: output equals the de-duplicated input sequence."""
        assert extract_ticket_refs(" ".join(keys)) == tuple(dict.fromkeys(keys))


class TestExtractDesignLinks:
    """Test design-link extraction."""

    def test_duplicates_kept_in_order(self) -> None:
        """Design links are not de-duplicated."""
        link = "https://www.figma.com/file/AbC123/Login-Screen"
        other = "https://figma.com/design/Z9/Checkout"
        text = f"See {link} and {other} and again {link}?node-id=1"
        assert extract_design_links(text) == (link, other, link)

    def test_query_and_whitespace_excluded(self) -> None:
        """The match stops before a query string or whitespace."""
        assert extract_design_links("https://figma.com/file/abc/Page?x=1 tail") == ("https://figma.com/file/abc/Page",)

    def test_other_domains_ignored(self) -> None:
        """Only the design-tool domain is recognised."""
        assert extract_design_links("https://example.com/file/abc/Page") == ()


class TestParseTicket:
    """Test Jira payload normalisation."""

    def test_full_payload(self) -> None:
        """All fields are mapped, names taken from nested objects."""
        config = JiraConfig(base_url=JIRA_BASE)
        description = "Mockups: https://www.figma.com/file/AbC123/Login"
        result = parse_ticket("TICKET-12345", jira_issue(description=description), config)

        assert isinstance(result, Success)
        ticket = result.unwrap()
        assert ticket.summary == "Add login page"
        assert ticket.status == "In Progress"
        assert ticket.priority == "High"
        assert ticket.assignee == "Jane Doe"
        assert ticket.reporter == "Pat Smith"
        assert ticket.issue_type == "Story"
        assert ticket.labels == ("frontend", "auth")
        assert ticket.components == ("Web",)
        assert ticket.fix_versions == ("1.2.0",)
        assert ticket.figma_links == ("https://www.figma.com/file/AbC123/Login",)
        assert ticket.url == f"{JIRA_BASE}/browse/TICKET-12345"

    def test_missing_optional_fields_use_defaults(self) -> None:
        """Absent fields fall back to display defaults."""
        result = parse_ticket("X-1", {"key": "X-1", "fields": {"summary": "S"}}, JiraConfig(base_url=JIRA_BASE))

        ticket = result.unwrap()
        assert ticket.description == "No description provided"
        assert ticket.priority == "Not set"
        assert ticket.assignee == "Unassigned"
        assert ticket.reporter == "Unknown"
        assert ticket.status == "Unknown"

    def test_missing_fields_object_fails(self) -> None:
        """A payload without ``fields`` is an invalid response."""
        result = parse_ticket("X-1", {"key": "X-1"}, JiraConfig())
        assert isinstance(result, Failure)
        assert result.failure().kind == ErrorKind.INVALID_RESPONSE


class TestJiraTicketProvider:
    """Test the Jira ticket detail fetcher."""

    @pytest.mark.asyncio
    async def test_lookup_success(self, transport: FakeTransport) -> None:
        """A successful fetch is returned with success=True."""
        transport.add("GET", "/rest/api/2/issue/TICKET-12345", jira_issue())
        provider = JiraTicketProvider(JiraConfig(base_url=JIRA_BASE, api_token="secret"), transport)

        lookup = await provider.lookup("TICKET-12345")

        assert lookup.success is True
        assert lookup.ticket.summary == "Add login page"
        assert transport.urls() == [f"{JIRA_BASE}/rest/api/2/issue/TICKET-12345"]
        assert transport.requests[0].headers["Authorization"] == "Bearer secret"

    @pytest.mark.asyncio
    async def test_anonymous_without_token(self, transport: FakeTransport) -> None:
        """No Authorization header is sent when no token is configured."""
        transport.add("GET", "/rest/api/2/issue/A-1", jira_issue("A-1"))
        provider = JiraTicketProvider(JiraConfig(base_url=JIRA_BASE), transport)

        await provider.lookup("A-1")

        assert "Authorization" not in transport.requests[0].headers

    @pytest.mark.asyncio
    async def test_not_found_returns_placeholder(self, transport: FakeTransport) -> None:
        """A 404 folds into a placeholder ticket without raising."""
        transport.add("GET", "/rest/api/2/issue/ABC-404", {"errorMessages": ["Issue does not exist"]}, status=404)
        provider = JiraTicketProvider(JiraConfig(base_url=JIRA_BASE), transport)

        lookup = await provider.lookup("ABC-404")
        data = lookup.to_dict()

        assert data["success"] is False
        assert data["ticket"]["key"] == "ABC-404"
        assert data["ticket"]["status"] == "Unknown"
        assert data["ticket"]["figmaLinks"] == []
        assert "Issue does not exist" in data["error"]

    @pytest.mark.asyncio
    async def test_transport_failure_returns_placeholder(self, transport: FakeTransport) -> None:
        """Network errors fold into the same placeholder branch."""
        transport.add("GET", "/rest/api/2/issue/ABC-1", failure="Request timeout after 30s")
        provider = JiraTicketProvider(JiraConfig(base_url=JIRA_BASE), transport)

        lookup = await provider.lookup("ABC-1")

        assert lookup.success is False
        assert lookup.ticket == placeholder_ticket("ABC-1", JiraConfig(base_url=JIRA_BASE))

    @pytest.mark.asyncio
    async def test_malformed_payload_returns_placeholder(self, transport: FakeTransport) -> None:
        """A body without fields is treated like any other failure."""
        transport.add("GET", "/rest/api/2/issue/ABC-1", {"unexpected": True})
        provider = JiraTicketProvider(JiraConfig(base_url=JIRA_BASE), transport)

        lookup = await provider.lookup("ABC-1")

        assert lookup.success is False
        assert lookup.ticket.summary == "JIRA ticket ABC-1"

    @pytest.mark.asyncio
    async def test_unconfigured_base_url_makes_no_request(self, transport: FakeTransport) -> None:
        """Without a Jira base URL nothing is sent."""
        provider = JiraTicketProvider(JiraConfig(), transport)

        result = await provider.fetch("ABC-1")

        assert isinstance(result, Failure)
        assert result.failure().kind == ErrorKind.CONFIGURATION
        assert transport.requests == []
