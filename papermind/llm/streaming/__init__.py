"""
Streaming functionality for LLM clients.

This module contains:
- Line-delimited event frame parsing
- Delta accumulation
- Per-frame error recovery
"""

from .models import DecoderStats, DeltaEvent, FrameKind
from .parser import StreamDecoder, decode_stream, extract_delta_content

__all__ = [
    "DecoderStats",
    "DeltaEvent",
    "FrameKind",
    "StreamDecoder",
    "decode_stream",
    "extract_delta_content",
]
