"""Chat-completion client used by the narrative generator."""

import logging
from typing import Any
from typing import Protocol

from returns.result import Failure
from returns.result import Result
from returns.result import Success

from prpilot.config import LLMConfig
from prpilot.errors import PilotError
from prpilot.errors import configuration_error
from prpilot.errors import invalid_response
from prpilot.errors import llm_api_error
from prpilot.errors import transport_error
from prpilot.http_client import HTTPRequest
from prpilot.http_client import HTTPTransport


logger = logging.getLogger(__name__)


class LanguageModel(Protocol):
    """Anything that turns a single prompt into generated text."""

    async def complete(self, prompt: str) -> Result[str, PilotError]:
        """Generate text for one prompt."""
        ...


def extract_content(data: Any) -> str | None:
    """Pull ``choices[0].message.content`` out of a chat-completion payload."""
    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    message = choices[0].get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    return content if isinstance(content, str) else None


class ChatCompletionModel:
    """OpenAI-compatible ``/chat/completions`` client.

    Each call sends one user message and no conversation history.
    """

    def __init__(self, config: LLMConfig, http: HTTPTransport) -> None:
        """Initialize with endpoint settings and an HTTP transport."""
        self._config = config
        self._http = http

    def _headers(self) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self._config.api_key}",
            "Content-Type": "application/json",
        }
        headers.update(self._config.extra_headers)
        if self._config.username:
            headers["X-User"] = self._config.username
        return headers

    async def complete(self, prompt: str) -> Result[str, PilotError]:
        """Send one prompt and return the generated text."""
        missing = self._config.missing_settings()
        if missing:
            return Failure(configuration_error(f"{missing[0]} environment variable is required"))

        url = f"{(self._config.base_url or '').rstrip('/')}/chat/completions"
        logger.debug("Requesting completion from model %s (%d prompt chars)", self._config.model, len(prompt))
        result = await self._http.request(
            HTTPRequest(
                method="POST",
                url=url,
                headers=self._headers(),
                json_body={"model": self._config.model, "messages": [{"role": "user", "content": prompt}]},
                timeout_seconds=self._config.timeout_seconds,
                service="llm",
            )
        )
        if isinstance(result, Failure):
            return Failure(transport_error("Language model", result.failure()))

        response = result.unwrap()
        if not response.is_success:
            return Failure(llm_api_error(response.status_code, response.json_data or response.text))

        content = extract_content(response.json_data)
        if content is None:
            return Failure(invalid_response("language model", "no choices[0].message.content"))
        return Success(content)
