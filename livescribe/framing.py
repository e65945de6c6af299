"""
Transport line framing and decoding.

The speech transport writes a line-oriented text stream. Output arrives in
arbitrary chunks, so lines are buffered until a newline completes them.

Two line shapes matter:
    Press Enter to stop recording       -> ReadySignal
    Output: {"channel": {...}, ...}     -> RecognitionEvent
Everything else is ignored.
"""

import codecs
import json
from typing import Iterator, Optional, Union

from .errors import TranscriptDecodeError
from .types import ReadySignal, RecognitionEvent, TransportMessage


READY_LINE = "Press Enter to stop recording"
OUTPUT_PREFIX = "Output: "


class LineFramer:
    """
    Buffers transport chunks and yields complete lines.

    The iterator returned by feed() is lazy: lines not consumed stay in the
    buffer and are yielded by the next feed() or lines() call.
    """

    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""

    def feed(self, chunk: Union[str, bytes]) -> Iterator[str]:
        """Append a chunk and return an iterator over complete lines."""
        if isinstance(chunk, bytes):
            chunk = self._decoder.decode(chunk)
        self._buffer += chunk
        return self.lines()

    def lines(self) -> Iterator[str]:
        """Yield buffered complete lines, oldest first."""
        while True:
            newline = self._buffer.find("\n")
            if newline < 0:
                return
            line = self._buffer[:newline]
            self._buffer = self._buffer[newline + 1:]
            yield line.rstrip("\r")

    @property
    def pending(self) -> str:
        """Partial line waiting for its delimiter."""
        return self._buffer

    def flush(self) -> str:
        """Return and clear leftover partial data."""
        leftover = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        self._decoder.reset()
        return leftover.rstrip("\r")

    def reset(self) -> None:
        self._buffer = ""
        self._decoder.reset()


def parse_line(line: str) -> Optional[TransportMessage]:
    """
    Classify one transport line.

    Returns ReadySignal, a RecognitionEvent, or None for lines to ignore.
    Raises TranscriptDecodeError for a payload line that cannot be decoded.
    """
    if line.strip() == READY_LINE:
        return ReadySignal()

    if not line.startswith(OUTPUT_PREFIX):
        return None

    payload = line[len(OUTPUT_PREFIX):]
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise TranscriptDecodeError(f"invalid JSON: {e.msg}", line) from e

    if not isinstance(data, dict):
        raise TranscriptDecodeError("payload is not an object", line)

    return _event_from_payload(data, line)


def _event_from_payload(data: dict, line: str) -> RecognitionEvent:
    start = data.get("start")
    if isinstance(start, bool) or not isinstance(start, (int, float)):
        raise TranscriptDecodeError("missing numeric 'start'", line)

    channel = data.get("channel") or {}
    alternatives = channel.get("alternatives") if isinstance(channel, dict) else None
    alternatives = alternatives or [{}]
    first = alternatives[0] if isinstance(alternatives[0], dict) else {}
    transcript = first.get("transcript") or ""
    if not isinstance(transcript, str):
        raise TranscriptDecodeError("transcript is not a string", line)

    speech_final = bool(data.get("speech_final", False))
    # speech_final implies is_final
    is_final = speech_final or bool(data.get("is_final", False))

    return RecognitionEvent(
        start=float(start),
        is_final=is_final,
        speech_final=speech_final,
        transcript=transcript,
    )
