"""
AI service for the reading assistant.

Builds the explanation and report conversations and streams the answers
through a StreamingChatClient.
"""

from __future__ import annotations

from papermind.config import Configuration
from papermind.llm.client import StreamingChatClient
from papermind.llm.streaming.parser import DeltaCallback
from papermind.logging_utils import log_operation
from papermind.prompts import (
    EXPLANATION_CONTEXT_CHARS,
    REPORT_CONTEXT_CHARS,
    ReadingNote,
    build_explanation_messages,
    build_report_messages,
)


class AIService:
    """Reading-assistant operations on top of a streaming chat client."""

    def __init__(
        self,
        client: StreamingChatClient,
        *,
        explanation_context_chars: int = EXPLANATION_CONTEXT_CHARS,
        report_context_chars: int = REPORT_CONTEXT_CHARS,
    ) -> None:
        self.client = client
        self.explanation_context_chars = explanation_context_chars
        self.report_context_chars = report_context_chars

    @classmethod
    def from_config(cls, config: Configuration) -> AIService:
        """Create a service with settings, timeouts and limits from configuration."""
        prompts_config = config.get_prompts_config()
        client = StreamingChatClient(
            config.get_ai_settings(),
            timeout=config.get_timeout_settings(),
        )
        return cls(
            client,
            explanation_context_chars=prompts_config["explanation_context_chars"],
            report_context_chars=prompts_config["report_context_chars"],
        )

    @log_operation("get_explanation")
    async def get_explanation(
        self,
        context: str,
        selection: str,
        on_delta: DeltaCallback | None = None,
    ) -> str:
        """Stream an analysis of a highlighted selection."""
        messages = build_explanation_messages(
            context, selection, self.explanation_context_chars
        )
        return await self.client.stream_chat(messages, on_delta)

    @log_operation("generate_report")
    async def generate_report(
        self,
        context: str,
        notes: list[ReadingNote],
        on_delta: DeltaCallback | None = None,
    ) -> str:
        """Stream a reading report built from the user's notes."""
        messages = build_report_messages(context, notes, self.report_context_chars)
        return await self.client.stream_chat(messages, on_delta)

    async def close(self) -> None:
        await self.client.close()

    async def __aenter__(self) -> AIService:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
