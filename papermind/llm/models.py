"""
Core LLM dataclasses for chat-completion requests.

This module provides:
- Provider detection
- Message structures
- The streaming request body
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ProviderType(Enum):
    """Supported LLM providers."""
    DEEPSEEK = "deepseek"
    OPENAI = "openai"


class MessageRole(Enum):
    """OpenAI-compatible message roles."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class LLMMessage:
    """OpenAI-compatible message structure."""
    role: MessageRole
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


@dataclass
class LLMRequest:
    """Chat-completion request body."""
    model: str
    messages: list[LLMMessage] = field(default_factory=list)
    stream: bool = True

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the JSON body expected by /chat/completions."""
        return {
            "model": self.model,
            "messages": [message.to_dict() for message in self.messages],
            "stream": self.stream,
        }
