"""Async HTTP client for the GitHub, Jira and language-model APIs.

This module wraps ``aiohttp`` behind immutable request/response values and
``Result`` return types, so callers never handle transport exceptions
directly.

Classes:
    HTTPRequest: Immutable request specification
    HTTPResponse: Immutable response representation
    HTTPTransport: Protocol implemented by anything that can execute a request
    HTTPClient: aiohttp-backed transport with a lazily created session
"""

import json
import logging
import time
import types
from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Protocol

import aiohttp
from returns.result import Failure
from returns.result import Result
from returns.result import Success

from prpilot import __version__
from prpilot.metrics import record_upstream


logger = logging.getLogger(__name__)

USER_AGENT = f"PR-Pilot/{__version__}"


@dataclass(frozen=True, slots=True)
class HTTPRequest:
    """Immutable HTTP request specification.

    Attributes:
        method: HTTP method (GET, POST, etc.)
        url: Request URL
        headers: Request headers
        json_body: JSON-serialisable body, sent with a JSON content type
        params: URL parameters
        timeout_seconds: Total request timeout
        service: Upstream service name used for logging and metrics
    """

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    json_body: Any = None
    params: dict[str, str] = field(default_factory=dict)
    timeout_seconds: float = 30.0
    service: str = "http"


@dataclass(frozen=True, slots=True)
class HTTPResponse:
    """Immutable HTTP response representation.

    Attributes:
        status_code: HTTP status code
        headers: Response headers
        text: Response content as text
        json_data: Parsed JSON body, or None if the body is not JSON
        url: Final URL (after redirects)
        response_time: Response time in milliseconds
    """

    status_code: int
    headers: dict[str, str]
    text: str
    json_data: Any = None
    url: str = ""
    response_time: float = 0.0

    @property
    def is_success(self) -> bool:
        """Check if response indicates success (2xx status)."""
        http_success_min = 200
        http_success_max = 300
        return http_success_min <= self.status_code < http_success_max


class HTTPTransport(Protocol):
    """Anything that can execute an ``HTTPRequest``."""

    async def request(self, request: HTTPRequest) -> Result[HTTPResponse, str]:
        """Execute the request; transport problems are returned as Failure."""
        ...


def parse_json_body(text: str) -> Any:
    """Parse a response body as JSON, returning None when it is not JSON."""
    if not text.strip():
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return None


class HTTPClient:
    """aiohttp-backed ``HTTPTransport``.

    One client is opened per tool invocation and closed when the invocation
    finishes; no session is shared between invocations.

    Example:
        >>> async with HTTPClient() as http:
        ...     result = await http.request(HTTPRequest(method="GET", url="https://api.github.com/rate_limit"))
    """

    def __init__(self, session: aiohttp.ClientSession | None = None) -> None:
        """Initialize the client, optionally around an existing session."""
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "HTTPClient":
        """Async context manager entry."""
        await self._ensure_session()
        return self

    async def __aexit__(
        self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: types.TracebackType | None
    ) -> None:
        """Async context manager exit."""
        await self.close()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure an HTTP session exists."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers={"User-Agent": USER_AGENT})
            self._owns_session = True
        return self._session

    async def request(self, request: HTTPRequest) -> Result[HTTPResponse, str]:
        """Execute an HTTP request.

        Args:
            request: HTTP request specification

        Returns:
            Success with HTTPResponse (for any status code) or Failure with a
            transport error message
        """
        start_time = time.monotonic()
        logger.debug("%s %s %s", request.service, request.method, request.url)
        try:
            session = await self._ensure_session()
            async with session.request(
                method=request.method,
                url=request.url,
                headers=request.headers,
                json=request.json_body,
                params=request.params or None,
                timeout=aiohttp.ClientTimeout(total=request.timeout_seconds),
            ) as response:
                content = await response.read()
                text = content.decode("utf-8", errors="ignore")
                elapsed = time.monotonic() - start_time

                http_response = HTTPResponse(
                    status_code=response.status,
                    headers=dict(response.headers),
                    text=text,
                    json_data=parse_json_body(text),
                    url=str(response.url),
                    response_time=elapsed * 1000,
                )
        except TimeoutError:
            record_upstream(request.service, "timeout", time.monotonic() - start_time)
            return Failure(f"Request timeout after {request.timeout_seconds}s")
        except aiohttp.ClientError as e:
            record_upstream(request.service, "error", time.monotonic() - start_time)
            return Failure(f"HTTP client error: {e}")
        except OSError as e:
            record_upstream(request.service, "error", time.monotonic() - start_time)
            return Failure(f"Network error: {e}")

        outcome = "success" if http_response.is_success else f"http_{http_response.status_code}"
        record_upstream(request.service, outcome, elapsed)
        logger.debug(
            "%s %s %s -> %d (%.0fms)",
            request.service,
            request.method,
            request.url,
            http_response.status_code,
            http_response.response_time,
        )
        return Success(http_response)

    async def close(self) -> None:
        """Close the session if this client created it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
