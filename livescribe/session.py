"""
Session state for the dictation lifecycle.

A DictationSession lives for the whole process and is opened/closed with
dictation. Every open and close bumps its generation, so edit results
computed against an earlier generation can be recognised and dropped.
"""

import threading
import time
from dataclasses import dataclass, field
from typing import List, Optional, Tuple
from uuid import UUID, uuid4


@dataclass
class DictationSession:
    """
    Process-wide dictation state.

    Invariant: command_mode_start_time is cleared when the command utterance
    reaches speech_final, or when dictation stops.
    """
    id: UUID = field(default_factory=uuid4)
    mode_active: bool = False
    generation: int = 0
    opened_at: float = 0.0
    dictation_start_time: Optional[float] = None
    command_mode_start_time: Optional[float] = None
    anchor_position: Optional[int] = None

    def open(self, now: float) -> int:
        """Start a new dictation generation. Returns the generation tag."""
        self.generation += 1
        self.id = uuid4()
        self.mode_active = True
        self.opened_at = now
        self.dictation_start_time = None
        self.command_mode_start_time = None
        self.anchor_position = None
        return self.generation

    def close(self) -> None:
        """Reset everything unconditionally, including an armed command timer."""
        self.mode_active = False
        self.generation += 1
        self.dictation_start_time = None
        self.command_mode_start_time = None
        self.anchor_position = None

    def mark_ready(self, now: float) -> None:
        self.dictation_start_time = now

    def arm_command(self, now: float) -> None:
        self.command_mode_start_time = now

    def clear_command(self) -> None:
        self.command_mode_start_time = None

    def set_anchor(self, position: int) -> None:
        self.anchor_position = max(0, position)

    def clear_anchor(self) -> None:
        self.anchor_position = None

    def is_current(self, generation: int) -> bool:
        return generation == self.generation


class UtteranceHistory:
    """
    Stores recent finalized utterances for fix-prompt context.

    Keeps last N utterances within a time window.
    """

    def __init__(self, max_entries: int = 5, max_age_seconds: float = 300):
        self.max_entries = max_entries
        self.max_age_seconds = max_age_seconds
        self._entries: List[Tuple[float, str]] = []
        self._lock = threading.Lock()

    def add(self, text: str) -> None:
        if not text or not text.strip():
            return

        with self._lock:
            self._entries.append((time.time(), text.strip()))
            self._prune()

    def recent(self) -> List[str]:
        """Recent utterances, newest last."""
        with self._lock:
            self._prune()
            return [text for _, text in self._entries[-self.max_entries:]]

    def get_context(self) -> str:
        """Pipe-separated recent utterances, newest last."""
        return " | ".join(self.recent())

    def clear(self) -> None:
        with self._lock:
            self._entries = []

    def _prune(self) -> None:
        cutoff = time.time() - self.max_age_seconds
        self._entries = [(t, text) for t, text in self._entries if t > cutoff]
        if len(self._entries) > self.max_entries:
            self._entries = self._entries[-self.max_entries:]
