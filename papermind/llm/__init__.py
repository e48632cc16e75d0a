"""
LLM integration for chat-completion streaming.

This package provides:
- Type-safe request and message models
- Provider detection from the configured model
- Error taxonomy for configuration, transport and frame failures
"""

from __future__ import annotations

from .exceptions import ConfigError, FrameError, LLMError, TransportError
from .models import LLMMessage, LLMRequest, MessageRole, ProviderType

__all__ = [
    # Exceptions
    "ConfigError",
    "FrameError",
    "LLMError",
    # Core models
    "LLMMessage",
    "LLMRequest",
    "MessageRole",
    "ProviderType",
    "TransportError",
]
