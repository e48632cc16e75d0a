"""
Streaming chat-completion client over httpx.

The client validates credentials before any network call, turns non-success
responses into TransportError with the provider's message, and hands raw
response bytes to a fresh StreamDecoder per request.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

import httpx

from papermind.config import AISettings, TimeoutSettings
from papermind.logging_utils import operation_context

from .exceptions import ConfigError, TransportError
from .models import LLMMessage, LLMRequest, MessageRole
from .streaming.parser import DeltaCallback, StreamDecoder

GENERIC_ERROR_MESSAGE = "API request failed"
MISSING_KEY_MESSAGE = "API key is not configured. Add it in the settings first."


def parse_error_body(body: bytes) -> dict[str, Any]:
    """Parse a non-streamed error body, returning {} if it is not a JSON object."""
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return {}
    return data if isinstance(data, dict) else {}


def extract_error_message(body_data: dict[str, Any]) -> str:
    """Best-effort ``error.message`` with a generic fallback."""
    error = body_data.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        if isinstance(message, str) and message:
            return message
    return GENERIC_ERROR_MESSAGE


def _coerce_message(message: LLMMessage | dict[str, Any]) -> LLMMessage:
    if isinstance(message, LLMMessage):
        return message
    return LLMMessage(role=MessageRole(message["role"]), content=message["content"])


class StreamingChatClient:
    """HTTP client for streaming chat-completion requests."""

    def __init__(
        self,
        settings: AISettings,
        *,
        timeout: TimeoutSettings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings
        timeout = timeout or TimeoutSettings()
        self._owns_client = http_client is None
        self.client: httpx.AsyncClient = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=timeout.connect,
                read=timeout.read,
                write=timeout.write,
                pool=timeout.pool,
            ),
        )

    def build_request(
        self, messages: Sequence[LLMMessage | dict[str, Any]]
    ) -> LLMRequest:
        """Build the streaming request body for the configured model."""
        return LLMRequest(
            model=self.settings.model,
            messages=[_coerce_message(message) for message in messages],
            stream=True,
        )

    def _require_api_key(self) -> str:
        if not self.settings.openai_key:
            raise ConfigError(
                MISSING_KEY_MESSAGE,
                provider=self.settings.provider,
                model=self.settings.model,
            )
        return self.settings.openai_key

    async def stream_chat(
        self,
        messages: Sequence[LLMMessage | dict[str, Any]],
        on_delta: DeltaCallback | None = None,
    ) -> str:
        """Stream a completion and return the full text.

        Raises:
            ConfigError: If no API key is configured. No request is sent.
            TransportError: On a non-success status or an HTTP failure.
        """
        api_key = self._require_api_key()
        payload = self.build_request(messages).to_payload()
        decoder = StreamDecoder(on_delta=on_delta)

        context = {"provider": self.settings.provider, "model": self.settings.model}
        async with operation_context("stream_chat", context=context):
            try:
                async with self.client.stream(
                    "POST",
                    self.settings.endpoint,
                    json=payload,
                    headers={
                        "Authorization": f"Bearer {api_key}",
                        "Content-Type": "application/json",
                    },
                ) as response:
                    if not response.is_success:
                        body_data = parse_error_body(await response.aread())
                        raise TransportError(
                            extract_error_message(body_data),
                            provider=self.settings.provider,
                            model=self.settings.model,
                            status_code=response.status_code,
                            response_data=body_data,
                        )

                    async for chunk in response.aiter_bytes():
                        decoder.feed(chunk)

            except httpx.HTTPError as e:
                raise TransportError(
                    f"HTTP error: {e!s}",
                    provider=self.settings.provider,
                    model=self.settings.model,
                ) from e

            return decoder.finish()

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> StreamingChatClient:
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()
