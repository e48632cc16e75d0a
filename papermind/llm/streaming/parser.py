"""
Incremental decoder for newline-delimited chat-completion event streams.

Raw transport chunks may split a frame anywhere, including in the middle of a
UTF-8 sequence. The decoder keeps at most one trailing partial line buffered
and only processes a line once its terminating newline has arrived.
"""

from __future__ import annotations

import codecs
import json
from collections.abc import AsyncIterable, Callable
from typing import Any

from papermind.logging_utils import get_logger

from ..exceptions import FrameError
from .models import DecoderStats, DeltaEvent, FrameKind

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"
LINE_SEPARATOR = "\n"

DeltaCallback = Callable[[str, str], None]

logger = get_logger(__name__)


def extract_delta_content(payload: Any) -> str:
    """Return ``choices[0].delta.content`` or an empty string if any part is missing."""
    if not isinstance(payload, dict):
        return ""
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    choice = choices[0]
    if not isinstance(choice, dict):
        return ""
    delta = choice.get("delta")
    if not isinstance(delta, dict):
        return ""
    content = delta.get("content")
    return content if isinstance(content, str) else ""


class StreamDecoder:
    """Turns raw chunks into ordered text deltas and a final accumulated string."""

    def __init__(
        self,
        on_delta: DeltaCallback | None = None,
        encoding: str = "utf-8",
    ):
        self.on_delta = on_delta
        self._encoding = encoding
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""
        self._text = ""
        self._finished = False
        self.deltas: list[DeltaEvent] = []
        self.stats = DecoderStats()

    @property
    def text(self) -> str:
        """Accumulated text so far."""
        return self._text

    @property
    def pending(self) -> str:
        """Buffered partial line not yet terminated by a newline."""
        return self._buffer

    @property
    def finished(self) -> bool:
        return self._finished

    def feed(self, chunk: bytes | str) -> None:
        """Append a raw chunk and process every complete line it produces.

        Text chunks go through the same incremental decoder as bytes, so a
        multi-byte character left pending by an earlier chunk is completed or
        replaced in order. Malformed frames are skipped, never raised.

        Raises:
            RuntimeError: If called after ``finish``.
            Exception: Whatever the caller's ``on_delta`` raises is not caught.
        """
        if self._finished:
            raise RuntimeError("Cannot feed a finished stream decoder")

        if isinstance(chunk, str):
            chunk = chunk.encode(self._encoding, errors="replace")
        self._buffer += self._decoder.decode(chunk)

        lines = self._buffer.split(LINE_SEPARATOR)
        # The last element has not seen its separator yet
        self._buffer = lines.pop()

        for line in lines:
            self._process_line(line)

    def finish(self) -> str:
        """Close the stream and return the accumulated text.

        Any unterminated trailing line is discarded without being parsed.
        """
        if self._finished:
            return self._text

        tail = self._buffer + self._decoder.decode(b"", final=True)
        if tail:
            self.stats.discarded_tail_chars = len(tail)
            logger.debug(
                "Discarding unterminated trailing frame",
                discarded_chars=len(tail),
            )
        self._buffer = ""
        self._finished = True

        logger.debug("Stream decoded", **self.stats.as_dict())
        return self._text

    def get_stats(self) -> DecoderStats:
        """Get a copy of the decoding counters."""
        return DecoderStats(**self.stats.as_dict())

    def _process_line(self, line: str) -> None:
        kind, content = self._classify_line(line.strip())
        self.stats.record(kind)
        if content:
            self._emit(content)

    def _classify_line(self, line: str) -> tuple[FrameKind, str]:
        if not line.startswith(DATA_PREFIX):
            return FrameKind.IGNORED, ""

        data_str = line[len(DATA_PREFIX):]
        if data_str == DONE_SENTINEL:
            return FrameKind.DONE, ""

        try:
            payload = json.loads(data_str)
        except (json.JSONDecodeError, RecursionError) as e:
            error = FrameError(f"Invalid JSON in stream frame: {e}", raw_line=line)
            logger.warning(
                "Skipping malformed stream frame",
                error_message=str(error),
                raw_line=error.raw_line[:200],
            )
            return FrameKind.MALFORMED, ""

        return FrameKind.DATA, extract_delta_content(payload)

    def _emit(self, content: str) -> None:
        self._text += content
        self.stats.deltas += 1
        self.deltas.append(DeltaEvent(content=content, accumulated_content=self._text))
        if self.on_delta is not None:
            self.on_delta(content, self._text)


async def decode_stream(
    chunks: AsyncIterable[bytes | str],
    on_delta: DeltaCallback | None = None,
) -> str:
    """Feed every chunk of an async source into a fresh decoder."""
    decoder = StreamDecoder(on_delta=on_delta)
    async for chunk in chunks:
        decoder.feed(chunk)
    return decoder.finish()
