"""
Tests for transport line framing and decoding.
"""

import json

import pytest

from livescribe.errors import TranscriptDecodeError
from livescribe.framing import LineFramer, parse_line
from livescribe.types import ReadySignal, RecognitionEvent

from conftest import output_line


class TestLineFramer:
    """Tests for LineFramer buffering."""

    def test_partial_line_is_buffered(self):
        """Test that a chunk without newline yields nothing."""
        framer = LineFramer()

        assert list(framer.feed("Output: {\"st")) == []
        assert framer.pending == "Output: {\"st"

    def test_line_completed_across_chunks(self):
        """Test that a line split over chunks is reassembled."""
        framer = LineFramer()

        list(framer.feed("Press Enter to "))
        lines = list(framer.feed("stop recording\n"))

        assert lines == ["Press Enter to stop recording"]
        assert framer.pending == ""

    def test_multiple_lines_in_one_chunk(self):
        """Test that several complete lines come out in order."""
        framer = LineFramer()

        lines = list(framer.feed("one\ntwo\nthree\nfour"))

        assert lines == ["one", "two", "three"]
        assert framer.pending == "four"

    def test_crlf_stripped(self):
        framer = LineFramer()
        assert list(framer.feed("hello\r\n")) == ["hello"]

    def test_iterator_is_restartable(self):
        """Test that unconsumed lines stay buffered for the next call."""
        framer = LineFramer()

        lines = framer.feed("a\nb\nc\n")
        assert next(lines) == "a"

        # Abandon the iterator; remaining lines are still available
        assert list(framer.lines()) == ["b", "c"]

    def test_bytes_with_split_multibyte_character(self):
        """Test that UTF-8 characters split across chunks survive."""
        framer = LineFramer()
        data = "café\n".encode("utf-8")

        assert list(framer.feed(data[:4])) == []
        assert list(framer.feed(data[4:])) == ["café"]

    def test_flush_returns_leftover(self):
        framer = LineFramer()
        list(framer.feed("done\nleft"))

        assert framer.flush() == "left"
        assert framer.pending == ""

    def test_reset_discards_leftover(self):
        framer = LineFramer()
        list(framer.feed("partial"))
        framer.reset()

        assert list(framer.feed(" line\n")) == [" line"]


class TestParseLine:
    """Tests for parse_line classification."""

    def test_ready_signal(self):
        assert parse_line("Press Enter to stop recording") == ReadySignal()

    def test_ready_signal_with_whitespace(self):
        assert parse_line("  Press Enter to stop recording  ") == ReadySignal()

    def test_payload_decoded(self):
        """Test that a payload line becomes a RecognitionEvent."""
        event = parse_line(output_line(1.5, "hello world", is_final=True, speech_final=False))

        assert event == RecognitionEvent(
            start=1.5, is_final=True, speech_final=False, transcript="hello world"
        )

    def test_only_first_alternative_used(self):
        payload = {
            "channel": {"alternatives": [{"transcript": "first"}, {"transcript": "second"}]},
            "start": 0,
            "is_final": False,
            "speech_final": False,
        }
        event = parse_line("Output: " + json.dumps(payload))

        assert event.transcript == "first"
        assert event.start == 0.0

    def test_speech_final_implies_final(self):
        event = parse_line(output_line(2.0, "done", is_final=False, speech_final=True))

        assert event.is_final is True
        assert event.speech_final is True

    def test_missing_alternatives_gives_empty_transcript(self):
        event = parse_line('Output: {"channel": {"alternatives": []}, "start": 3}')

        assert event.transcript == ""
        assert event.is_final is False

    def test_other_lines_ignored(self):
        assert parse_line("Connecting to recognizer...") is None
        assert parse_line("") is None
        assert parse_line("output: lowercase prefix") is None

    def test_malformed_json_raises(self):
        with pytest.raises(TranscriptDecodeError) as exc:
            parse_line("Output: {not json")

        assert exc.value.line == "Output: {not json"

    def test_missing_start_raises(self):
        with pytest.raises(TranscriptDecodeError):
            parse_line('Output: {"channel": {"alternatives": [{"transcript": "x"}]}}')

    def test_non_object_payload_raises(self):
        with pytest.raises(TranscriptDecodeError):
            parse_line("Output: [1, 2, 3]")
