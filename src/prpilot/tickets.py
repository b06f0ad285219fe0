"""Jira ticket references and ticket details.

Pure text scanning for ticket keys and design links, plus the ticket detail
fetcher used by the narrative generator, the composer and the
``get_jira_ticket_details`` tool.
"""

import functools
import logging
import re
from typing import Any
from typing import Protocol
from typing import cast

from returns.result import Failure
from returns.result import Result
from returns.result import Success

from prpilot.config import DEFAULT_DESIGN_LINK_PATTERN
from prpilot.config import DEFAULT_TICKET_PATTERN
from prpilot.config import JiraConfig
from prpilot.errors import PilotError
from prpilot.errors import configuration_error
from prpilot.errors import invalid_response
from prpilot.errors import jira_api_error
from prpilot.errors import transport_error
from prpilot.http_client import HTTPRequest
from prpilot.http_client import HTTPTransport
from prpilot.models import TicketDetail
from prpilot.models import TicketLookup
from prpilot.models import unique_in_order


logger = logging.getLogger(__name__)


# -----------------------------
# Pure Functions - Extraction
# -----------------------------


@functools.lru_cache(maxsize=16)
def _compile(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern)


def extract_ticket_refs(text: str, pattern: str = DEFAULT_TICKET_PATTERN) -> tuple[str, ...]:
    """Find ticket keys in free text.

    A key is an uppercase project key, a hyphen and a number, followed by
    ``_``, ``-``, ``/``, whitespace or the end of the text. Lowercase keys
    never match. Duplicates are dropped; first-occurrence order is kept.

    Example:
        >>> extract_ticket_refs("Fix ABC-123 and abc-999 for ABC-123/ui")
        ('ABC-123',)
    """
    if not text:
        return ()
    compiled = _compile(pattern)
    found = [m.group(1) if compiled.groups else m.group(0) for m in compiled.finditer(text)]
    return unique_in_order(found)


def extract_design_links(text: str, pattern: str = DEFAULT_DESIGN_LINK_PATTERN) -> tuple[str, ...]:
    """Find design-tool links in encounter order, duplicates included."""
    if not text:
        return ()
    return tuple(m.group(0) for m in _compile(pattern).finditer(text))


def placeholder_ticket(ticket_id: str, config: JiraConfig) -> TicketDetail:
    """Build the degraded ticket returned when details cannot be fetched."""
    return TicketDetail(
        key=ticket_id,
        summary=f"JIRA ticket {ticket_id}",
        description="Unable to fetch ticket details from JIRA API",
        status="Unknown",
        url=config.browse_url(ticket_id),
    )


def _name(value: Any, default: str, attribute: str = "name") -> str:
    if isinstance(value, dict):
        name = value.get(attribute)
        if name:
            return str(name)
    return default


def _names(values: Any) -> tuple[str, ...]:
    if not isinstance(values, list):
        return ()
    return tuple(str(v.get("name")) for v in values if isinstance(v, dict) and v.get("name"))


def parse_ticket(ticket_id: str, raw_data: Any, config: JiraConfig) -> Result[TicketDetail, PilotError]:
    """Normalise a Jira issue payload into a ``TicketDetail``."""
    if not isinstance(raw_data, dict):
        return Failure(invalid_response("Jira", "issue payload is not a JSON object"))
    fields = raw_data.get("fields")
    if not isinstance(fields, dict):
        return Failure(invalid_response("Jira", "issue payload has no fields"))

    summary = fields.get("summary") or ""
    description = fields.get("description") or "No description provided"
    if not isinstance(description, str):
        description = str(description)

    labels = fields.get("labels")
    key = str(raw_data.get("key") or ticket_id)

    return Success(
        TicketDetail(
            key=key,
            summary=str(summary),
            description=description,
            status=_name(fields.get("status"), "Unknown"),
            priority=_name(fields.get("priority"), "Not set"),
            assignee=_name(fields.get("assignee"), "Unassigned", "displayName"),
            reporter=_name(fields.get("reporter"), "Unknown", "displayName"),
            issue_type=_name(fields.get("issuetype"), "Unknown"),
            created=fields.get("created"),
            updated=fields.get("updated"),
            labels=tuple(str(label) for label in labels) if isinstance(labels, list) else (),
            components=_names(fields.get("components")),
            fix_versions=_names(fields.get("fixVersions")),
            figma_links=extract_design_links(f"{summary} {description}", config.design_link_pattern),
            url=config.browse_url(ticket_id),
        )
    )


# -----------------------------
# Ticket Detail Providers
# -----------------------------


class TicketDetailProvider(Protocol):
    """Capability to look up ticket details; never raises."""

    async def lookup(self, ticket_id: str) -> TicketLookup:
        """Return the ticket, or a placeholder tagged ``success=False``."""
        ...


class JiraTicketProvider:
    """Fetches ticket details from the Jira REST API (v2)."""

    def __init__(self, config: JiraConfig, http: HTTPTransport) -> None:
        """Initialize with Jira settings and an HTTP transport."""
        self._config = config
        self._http = http

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if self._config.api_token:
            headers["Authorization"] = f"Bearer {self._config.api_token}"
        return headers

    async def fetch(self, ticket_id: str) -> Result[TicketDetail, PilotError]:
        """Fetch and normalise a single ticket."""
        if not self._config.base_url:
            return Failure(configuration_error("JIRA_BASE_URL is not configured"))

        url = f"{self._config.base_url.rstrip('/')}/rest/api/2/issue/{ticket_id}"
        result = await self._http.request(
            HTTPRequest(
                method="GET",
                url=url,
                headers=self._headers(),
                timeout_seconds=self._config.timeout_seconds,
                service="jira",
            )
        )
        if isinstance(result, Failure):
            return Failure(transport_error("Jira", result.failure()))

        response = result.unwrap()
        if not response.is_success:
            return Failure(jira_api_error(response.status_code, response.json_data or response.text))

        return parse_ticket(ticket_id, response.json_data, self._config)

    async def lookup(self, ticket_id: str) -> TicketLookup:
        """Fetch a ticket, folding every failure into a placeholder."""
        result = await self.fetch(ticket_id)
        if isinstance(result, Success):
            return TicketLookup(ticket=result.unwrap(), success=True)

        error = cast("PilotError", result.failure())
        logger.warning("Failed to fetch JIRA ticket details for %s: %s", ticket_id, error)
        return TicketLookup(
            ticket=placeholder_ticket(ticket_id, self._config),
            success=False,
            error=error.message,
        )
