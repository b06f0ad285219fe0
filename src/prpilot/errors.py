"""Error taxonomy shared by every component boundary.

Components return ``Result[T, PilotError]``; only the outermost tool operation
turns a failure into a ``{"success": False, ...}`` envelope.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


GITHUB_TOKEN_MISSING = "GitHub token not found. Please set GITHUB_TOKEN environment variable."
GITHUB_TOKEN_INSTRUCTIONS = (
    "To get a GitHub token: 1) Go to GitHub Settings > Developer settings > Personal access tokens, "
    "2) Generate new token with 'repo' scope, 3) Set GITHUB_TOKEN environment variable"
)

_GITHUB_STATUS_MESSAGES = {
    401: "Authentication failed. Check your GitHub token.",
    403: "Access forbidden. Token may lack required permissions.",
    404: "Repository not found or you don't have access to it.",
}
_UNPROCESSABLE = 422


class ErrorKind(Enum):
    """Error category enumeration."""

    CONFIGURATION = "configuration"
    UPSTREAM_API = "upstream_api"
    TRANSPORT = "transport"
    INVALID_RESPONSE = "invalid_response"
    VALIDATION = "validation"


@dataclass(frozen=True, slots=True)
class PilotError:
    """Immutable description of a failed operation.

    Attributes:
        kind: Error category
        message: Human-readable message
        status: Upstream HTTP status, when one was received
        details: Upstream response body or other debugging data
        instructions: Remediation steps for configuration errors
    """

    kind: ErrorKind
    message: str
    status: int | None = None
    details: Any = None
    instructions: str | None = None

    def __str__(self) -> str:
        """Render as the plain message."""
        return self.message

    def to_envelope(self) -> dict[str, Any]:
        """Convert to a failure envelope for tool and REST callers."""
        envelope: dict[str, Any] = {"success": False, "error": self.message}
        if self.details is not None:
            envelope["details"] = self.details
        if self.instructions:
            envelope["instructions"] = self.instructions
        return envelope


def configuration_error(message: str, instructions: str | None = None) -> PilotError:
    """Create a configuration error."""
    return PilotError(kind=ErrorKind.CONFIGURATION, message=message, instructions=instructions)


def missing_github_token() -> PilotError:
    """Create the error returned when no GitHub token is configured."""
    return configuration_error(GITHUB_TOKEN_MISSING, GITHUB_TOKEN_INSTRUCTIONS)


def transport_error(service: str, reason: str) -> PilotError:
    """Create an error for a request that never produced a response."""
    return PilotError(kind=ErrorKind.TRANSPORT, message=f"{service} request failed: {reason}")


def _upstream_message(details: Any) -> str | None:
    if isinstance(details, dict):
        message = details.get("message")
        if isinstance(message, str) and message:
            return message
    return None


def github_api_error(status: int, details: Any) -> PilotError:
    """Map a non-2xx GitHub response to a human-readable error."""
    upstream = _upstream_message(details)
    if status == _UNPROCESSABLE:
        text = "Validation failed. " + (upstream or "Check your parameters.")
    else:
        text = _GITHUB_STATUS_MESSAGES.get(status) or upstream or "Unknown error occurred."

    return PilotError(
        kind=ErrorKind.UPSTREAM_API,
        message=f"GitHub API error ({status}): {text}",
        status=status,
        details=details,
    )


def jira_api_error(status: int, details: Any) -> PilotError:
    """Map a non-2xx Jira response to an error."""
    upstream = _upstream_message(details)
    if upstream is None and isinstance(details, dict):
        messages = details.get("errorMessages")
        if isinstance(messages, list) and messages:
            upstream = "; ".join(str(m) for m in messages)

    return PilotError(
        kind=ErrorKind.UPSTREAM_API,
        message=f"Jira API error ({status}): {upstream or 'Unknown error occurred.'}",
        status=status,
        details=details,
    )


def invalid_response(service: str, reason: str) -> PilotError:
    """Create an error for a response that could not be interpreted."""
    return PilotError(kind=ErrorKind.INVALID_RESPONSE, message=f"Invalid {service} response: {reason}")


def validation_error(message: str, details: Any = None) -> PilotError:
    """Create an error for invalid caller input."""
    return PilotError(kind=ErrorKind.VALIDATION, message=message, details=details)


def llm_api_error(status: int, details: Any) -> PilotError:
    """Map a non-2xx language-model response to an error."""
    upstream = _upstream_message(details)
    if upstream is None and isinstance(details, dict) and isinstance(details.get("error"), dict):
        upstream = _upstream_message(details["error"])

    return PilotError(
        kind=ErrorKind.UPSTREAM_API,
        message=f"Language model API error ({status}): {upstream or 'Unknown error occurred.'}",
        status=status,
        details=details,
    )
