"""Built-in httpx client for the Anthropic Messages API.

Provides a sync HTTP client that posts a transcript plus tool schemas to
``/v1/messages`` and returns the decoded JSON body. Reads configuration from
constructor arguments or environment variables.

Failed requests are mapped onto the agentloop error hierarchy and are not
retried: the session loop treats every completion failure as terminal.
"""

from __future__ import annotations

import logging
import os
from typing import Any

import httpx

from agentloop.llm.errors import (
    AuthError,
    ConfigError,
    ResponseFormatError,
    ServiceError,
    TransportError,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.anthropic.com"
API_VERSION = "2023-06-01"

_AUTH_ERROR_STATUS_CODES = {401, 403}


class AnthropicClient:
    """Sync httpx client for the Anthropic Messages API.

    Implements the CompletionClient protocol.

    Usage::

        with AnthropicClient(api_key="sk-ant-...") as client:
            raw = client.create_message(
                model="claude-sonnet-4-20250514",
                messages=[{"role": "user", "content": "Hello"}],
                tools=[],
                max_tokens=1024,
            )
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = 120.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: API key. Falls back to the ANTHROPIC_API_KEY env var.
            base_url: API base URL. Falls back to ANTHROPIC_BASE_URL, then
                to https://api.anthropic.com.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (used by tests).

        Raises:
            ConfigError: If no API key is provided or found in environment.
        """
        self._api_key = api_key or os.environ.get("ANTHROPIC_API_KEY", "")
        if not self._api_key:
            raise ConfigError(
                "No API key provided. Pass api_key= or set ANTHROPIC_API_KEY "
                "environment variable."
            )
        self._base_url = (
            base_url or os.environ.get("ANTHROPIC_BASE_URL", DEFAULT_BASE_URL)
        ).rstrip("/")
        self._timeout = timeout
        self._client = httpx.Client(
            timeout=timeout,
            transport=transport,
            headers={
                "content-type": "application/json",
                "x-api-key": self._api_key,
                "anthropic-version": API_VERSION,
            },
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    def create_message(
        self,
        *,
        model: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        max_tokens: int,
        system: str | None = None,
    ) -> dict:
        """Send a single Messages API request.

        Args:
            model: Model identifier.
            messages: Transcript in wire format.
            tools: Tool schemas in Anthropic format, in registration order.
            max_tokens: Maximum tokens to generate.
            system: Optional system prompt.

        Returns:
            The decoded response body.

        Raises:
            TransportError: On connection errors and timeouts.
            AuthError: On 401/403.
            ServiceError: On any other non-2xx status.
            ResponseFormatError: If the body is not a JSON object with
                a ``content`` list.
        """
        payload: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "messages": messages,
        }
        if tools:
            payload["tools"] = tools
        if system:
            payload["system"] = system

        try:
            response = self._client.post(
                f"{self._base_url}/v1/messages", json=payload
            )
        except httpx.TransportError as exc:
            raise TransportError(
                f"Completion service unreachable: {type(exc).__name__}: {exc}"
            ) from exc

        if response.status_code in _AUTH_ERROR_STATUS_CODES:
            raise AuthError(
                f"Authentication failed: HTTP {response.status_code} - "
                f"{response.text}",
                status_code=response.status_code,
            )
        if response.is_error:
            raise ServiceError(
                f"Completion service error: HTTP {response.status_code} - "
                f"{response.text}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise ResponseFormatError(
                f"Response body is not JSON: {response.text[:200]}"
            ) from exc
        if not isinstance(data, dict) or not isinstance(data.get("content"), list):
            raise ResponseFormatError(
                f"Unexpected response format: missing 'content' list. "
                f"Response: {data}"
            )
        logger.debug(
            "Completion %s stop_reason=%s", data.get("id"), data.get("stop_reason")
        )
        return data

    def close(self) -> None:
        """Close the underlying httpx client."""
        self._client.close()

    def __enter__(self) -> AnthropicClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
