"""
Error handling for LLM streaming operations.

This module provides the error taxonomy used by the client and decoder:
- Configuration errors raised before any network call
- Transport errors for failed HTTP exchanges
- Frame errors for single malformed event lines (logged, never raised)
"""

from __future__ import annotations

from typing import Any


class LLMError(Exception):
    """Base LLM error with rich context."""

    def __init__(
        self,
        message: str,
        provider: str = "unknown",
        model: str = "unknown",
        status_code: int | None = None,
        response_data: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.model = model
        self.status_code = status_code
        self.response_data = response_data or {}


class ConfigError(LLMError):
    """Missing credential or invalid settings; raised before streaming starts."""
    pass


class TransportError(LLMError):
    """Non-success HTTP status or connection failure."""
    pass


class FrameError(LLMError):
    """A single event frame could not be decoded."""

    def __init__(self, message: str, raw_line: str, **kwargs):
        super().__init__(message, **kwargs)
        self.raw_line = raw_line
