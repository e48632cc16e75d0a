"""
Streaming-specific dataclasses for the event-stream decoder.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class FrameKind(Enum):
    """Classification of a single complete event line."""
    DATA = "data"
    DONE = "done"
    IGNORED = "ignored"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class DeltaEvent:
    """One non-empty text delta with the accumulated text after it."""
    content: str
    accumulated_content: str


@dataclass
class DecoderStats:
    """Counters for a single decoded stream."""
    lines: int = 0
    data_frames: int = 0
    deltas: int = 0
    ignored_lines: int = 0
    malformed_frames: int = 0
    done_frames: int = 0
    discarded_tail_chars: int = 0

    def record(self, kind: FrameKind) -> None:
        """Count one complete line by its classification."""
        self.lines += 1
        if kind is FrameKind.DATA:
            self.data_frames += 1
        elif kind is FrameKind.DONE:
            self.done_frames += 1
        elif kind is FrameKind.MALFORMED:
            self.malformed_frames += 1
        else:
            self.ignored_lines += 1

    def as_dict(self) -> dict[str, int]:
        return {
            "lines": self.lines,
            "data_frames": self.data_frames,
            "deltas": self.deltas,
            "ignored_lines": self.ignored_lines,
            "malformed_frames": self.malformed_frames,
            "done_frames": self.done_frames,
            "discarded_tail_chars": self.discarded_tail_chars,
        }
