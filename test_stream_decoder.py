#!/usr/bin/env python3
"""
Tests for the incremental event-stream decoder.
"""

import json
import random

import pytest

from papermind.llm.streaming import (
    DeltaEvent,
    StreamDecoder,
    decode_stream,
    extract_delta_content,
)


def frame(content: str) -> str:
    """Build one content frame terminated by a newline."""
    payload = {"choices": [{"delta": {"content": content}}]}
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n"


def decode_chunks(chunks, on_delta=None) -> str:
    decoder = StreamDecoder(on_delta=on_delta)
    for chunk in chunks:
        decoder.feed(chunk)
    return decoder.finish()


STREAM = (
    frame("Hel")
    + frame("lo, ")
    + frame("论文")
    + frame("の要約 🚀")
    + frame(" done.")
    + "data: [DONE]\n"
).encode("utf-8")
EXPECTED = "Hello, 论文の要約 🚀 done."


class TestExamples:
    """Test the basic delta contract."""

    def test_two_frames_accumulate(self):
        """Test that two frames produce two ordered callbacks and the joined text."""
        calls = []
        decoder = StreamDecoder(on_delta=lambda text, full: calls.append((text, full)))

        decoder.feed(b'data: {"choices":[{"delta":{"content":"Hel"}}]}\n')
        decoder.feed(b'data: {"choices":[{"delta":{"content":"lo"}}]}\n')

        assert decoder.finish() == "Hello"
        assert calls == [("Hel", "Hel"), ("lo", "Hello")]

    def test_deltas_are_recorded(self):
        """Test that the decoder keeps its own ordered delta history."""
        decoder = StreamDecoder()
        decoder.feed(frame("a") + frame("b"))

        assert decoder.deltas == [
            DeltaEvent(content="a", accumulated_content="a"),
            DeltaEvent(content="b", accumulated_content="ab"),
        ]

    def test_without_callback_still_accumulates(self):
        """Test that deltas are accumulated when no callback is supplied."""
        assert decode_chunks([STREAM]) == EXPECTED

    def test_text_property_tracks_progress(self):
        """Test that partial output is readable before finish."""
        decoder = StreamDecoder()
        decoder.feed(frame("partial"))
        assert decoder.text == "partial"
        assert not decoder.finished


class TestChunkBoundaries:
    """Test that chunk fragmentation never changes the result."""

    def test_single_split_at_every_offset(self):
        """Test splitting the stream in two at every byte offset."""
        for offset in range(len(STREAM) + 1):
            chunks = [STREAM[:offset], STREAM[offset:]]
            assert decode_chunks(chunks) == EXPECTED, f"split at {offset}"

    def test_one_byte_at_a_time(self):
        """Test feeding one byte per chunk, splitting every multi-byte character."""
        calls = []
        chunks = [STREAM[i:i + 1] for i in range(len(STREAM))]

        result = decode_chunks(chunks, lambda text, full: calls.append(text))

        assert result == EXPECTED
        assert calls == ["Hel", "lo, ", "论文", "の要約 🚀", " done."]

    def test_random_multi_splits(self):
        """Test many random multi-point splits against the single-chunk result."""
        rng = random.Random(1234)
        for _ in range(200):
            cut_count = rng.randint(1, 12)
            cuts = sorted(rng.sample(range(1, len(STREAM)), cut_count))
            bounds = [0, *cuts, len(STREAM)]
            chunks = [STREAM[a:b] for a, b in zip(bounds, bounds[1:])]
            assert decode_chunks(chunks) == EXPECTED

    def test_empty_chunks_are_harmless(self):
        """Test that empty chunks between real ones change nothing."""
        half = len(STREAM) // 2
        assert decode_chunks([b"", STREAM[:half], b"", STREAM[half:], b""]) == EXPECTED

    def test_text_chunks_are_accepted(self):
        """Test that already-decoded text chunks work like bytes."""
        text = STREAM.decode("utf-8")
        assert decode_chunks([text[:7], text[7:40], text[40:]]) == EXPECTED

    def test_partial_line_stays_buffered(self):
        """Test that at most one trailing partial line is held back."""
        decoder = StreamDecoder()
        decoder.feed(frame("x") + "data: {\"cho")
        assert decoder.text == "x"
        assert decoder.pending == 'data: {"cho'

    def test_text_and_byte_chunks_can_be_mixed(self):
        """Test a stream that alternates between byte and text chunks."""
        chunks = [frame("Hel").encode(), frame("lo, "), frame("论文").encode(), frame("!")]
        assert decode_chunks(chunks) == "Hello, 论文!"

    def test_text_chunk_after_split_character(self):
        """Test that a text chunk does not jump ahead of bytes held by the decoder."""
        head = 'data: {"choices":[{"delta":{"content":"x'.encode() + "论".encode()[:2]
        decoder = StreamDecoder()
        decoder.feed(frame("a").encode())
        decoder.feed(head)
        decoder.feed('"}}]}\n')
        decoder.feed(frame("b").encode())

        assert decoder.finish() == "ax\ufffdb"
        assert decoder.stats.malformed_frames == 0
        assert decoder.stats.deltas == 3


class TestIgnoredLines:
    """Test that non-data lines are no-ops."""

    def test_noise_lines_do_not_change_output(self):
        """Test blank, comment, event and unprefixed lines between frames."""
        noise = [
            "\n",
            "   \n",
            ": keep-alive\n",
            "event: message\n",
            "id: 42\n",
            'data:{"choices":[{"delta":{"content":"no space"}}]}\n',
            "retry: 3000\n",
        ]
        clean_calls = []
        noisy_calls = []
        clean = [frame("one"), frame("two"), frame("three")]
        noisy = []
        for i, part in enumerate(clean):
            noisy.append(noise[i % len(noise)])
            noisy.append(part)
            noisy.append(noise[(i + 3) % len(noise)])
        noisy.extend(noise)

        clean_result = decode_chunks(
            ["".join(clean)], lambda t, f: clean_calls.append((t, f))
        )
        noisy_result = decode_chunks(
            ["".join(noisy)], lambda t, f: noisy_calls.append((t, f))
        )

        assert noisy_result == clean_result == "onetwothree"
        assert noisy_calls == clean_calls

    def test_surrounding_whitespace_is_trimmed(self):
        """Test that indented and CRLF-terminated frames are still decoded."""
        stream = (
            '   data: {"choices":[{"delta":{"content":"a"}}]}   \n'
            'data: {"choices":[{"delta":{"content":"b"}}]}\r\n'
        )
        assert decode_chunks([stream]) == "ab"

    def test_ignored_lines_are_counted(self):
        """Test statistics for ignored lines."""
        decoder = StreamDecoder()
        decoder.feed("\n: ping\n" + frame("a"))
        decoder.finish()

        stats = decoder.get_stats()
        assert stats.lines == 3
        assert stats.ignored_lines == 2
        assert stats.data_frames == 1
        assert stats.deltas == 1


class TestSentinelAndMalformedFrames:
    """Test recovery from sentinel and malformed frames."""

    def test_done_sentinel_produces_no_delta(self):
        """Test that [DONE] never reaches the callback or the text."""
        calls = []
        result = decode_chunks(
            ["data: [DONE]\n", "  data: [DONE]  \n"],
            lambda t, f: calls.append(t),
        )
        assert result == ""
        assert calls == []

    def test_done_does_not_stop_decoding(self):
        """Test that frames after [DONE] are still processed until finish."""
        decoder = StreamDecoder()
        decoder.feed(frame("a") + "data: [DONE]\n" + frame("b"))
        assert decoder.finish() == "ab"
        assert decoder.stats.done_frames == 1

    def test_malformed_json_is_skipped(self):
        """Test that one bad frame does not abort the stream."""
        calls = []
        stream = (
            frame("before ")
            + 'data: {"choices":[{"delta":{"content":\n'
            + "data: not json at all\n"
            + frame("after")
        )

        result = decode_chunks([stream], lambda t, f: calls.append((t, f)))

        assert result == "before after"
        assert calls == [("before ", "before "), ("after", "before after")]

    def test_malformed_frames_are_counted(self):
        """Test statistics for malformed frames."""
        decoder = StreamDecoder()
        decoder.feed("data: {oops}\n" + frame("ok"))
        decoder.finish()
        assert decoder.stats.malformed_frames == 1
        assert decoder.stats.deltas == 1

    def test_deeply_nested_frame_is_skipped(self):
        """Test that a frame too deeply nested to parse is treated as malformed."""
        decoder = StreamDecoder()
        decoder.feed(frame("a") + "data: " + "[" * 200000 + "\n" + frame("b"))

        assert decoder.finish() == "ab"
        assert decoder.stats.malformed_frames == 1

    def test_sentinel_with_extra_space_is_malformed(self):
        """Test that only the exact sentinel is treated as [DONE]."""
        decoder = StreamDecoder()
        decoder.feed("data:  [DONE]\n")
        assert decoder.finish() == ""
        assert decoder.stats.done_frames == 0
        assert decoder.stats.malformed_frames == 1

    def test_invalid_utf8_is_replaced(self):
        """Test that undecodable bytes do not raise."""
        decoder = StreamDecoder()
        decoder.feed(b'data: {"choices":[{"delta":{"content":"a\xffb"}}]}\n')
        assert decoder.finish() == "a\ufffdb"


class TestMissingKeys:
    """Test tolerance of payloads without a content delta."""

    @pytest.mark.parametrize(
        "payload",
        [
            '{"choices":[{}]}',
            '{"choices":[]}',
            "{}",
            '{"choices":[{"delta":{}}]}',
            '{"choices":[{"delta":{"content":null}}]}',
            '{"choices":[{"delta":{"content":""}}]}',
            '{"choices":[{"delta":{"content":7}}]}',
            '{"choices":[{"delta":{"role":"assistant"}}]}',
            '{"choices":null}',
            '{"choices":["text"]}',
            "[1, 2, 3]",
            '"just a string"',
        ],
    )
    def test_payload_without_content_is_noop(self, payload):
        """Test that a frame without choices[0].delta.content changes nothing."""
        calls = []
        decoder = StreamDecoder(on_delta=lambda t, f: calls.append(t))
        decoder.feed(frame("keep"))
        decoder.feed(f"data: {payload}\n")

        assert decoder.finish() == "keep"
        assert calls == ["keep"]

    def test_only_first_choice_is_consulted(self):
        """Test that later choices are ignored."""
        payload = {
            "choices": [
                {"delta": {"content": "first"}},
                {"delta": {"content": "second"}},
            ]
        }
        assert extract_delta_content(payload) == "first"


class TestFinish:
    """Test end-of-stream handling."""

    def test_trailing_partial_line_is_discarded(self):
        """Test that an unterminated final frame is never parsed."""
        calls = []
        decoder = StreamDecoder(on_delta=lambda t, f: calls.append(t))
        decoder.feed(frame("kept"))
        decoder.feed('data: {"choices":[{"delta":{"content":"lost"}}]}')

        assert decoder.finish() == "kept"
        assert calls == ["kept"]
        assert decoder.stats.discarded_tail_chars > 0
        assert decoder.pending == ""

    def test_incomplete_multibyte_tail_is_discarded(self):
        """Test that a dangling partial character at the end does not raise."""
        decoder = StreamDecoder()
        decoder.feed(frame("ok").encode("utf-8") + "论".encode("utf-8")[:2])
        assert decoder.finish() == "ok"

    def test_finish_is_idempotent(self):
        """Test that finishing twice returns the same text."""
        decoder = StreamDecoder()
        decoder.feed(frame("same"))
        assert decoder.finish() == "same"
        assert decoder.finish() == "same"
        assert decoder.finished

    def test_feed_after_finish_raises(self):
        """Test that a finished decoder rejects more input."""
        decoder = StreamDecoder()
        decoder.finish()
        with pytest.raises(RuntimeError):
            decoder.feed(frame("late"))

    def test_callback_errors_propagate(self):
        """Test that exceptions raised by the caller's callback are not swallowed."""
        def on_delta(text, full):
            raise KeyError("consumer failed")

        decoder = StreamDecoder(on_delta=on_delta)
        with pytest.raises(KeyError):
            decoder.feed(frame("boom"))
        assert decoder.text == "boom"


class TestDecodeStream:
    """Test the async helper."""

    @pytest.mark.asyncio
    async def test_decode_stream_from_async_iterable(self):
        """Test decoding chunks from an async generator."""
        async def chunks():
            for i in range(0, len(STREAM), 5):
                yield STREAM[i:i + 5]

        calls = []
        result = await decode_stream(chunks(), lambda t, f: calls.append(f))

        assert result == EXPECTED
        assert calls[-1] == EXPECTED
