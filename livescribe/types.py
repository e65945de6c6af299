"""
Shared type definitions for LiveScribe.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Union


@dataclass(frozen=True)
class RecognitionEvent:
    """One transcription message from the speech transport."""
    start: float            # Utterance key: speech-time offset in seconds
    is_final: bool          # Terminal result for this recognition window
    speech_final: bool      # Whole utterance complete (implies is_final)
    transcript: str         # Best alternative only


@dataclass(frozen=True)
class ReadySignal:
    """Transport is recording; dictation time starts now."""


TransportMessage = Union[RecognitionEvent, ReadySignal]


@dataclass(eq=False)
class TextSpan:
    """
    A run of inserted text tagged with the event that produced it.

    Offsets are document positions, end exclusive.
    """
    start: int
    end: int
    event: RecognitionEvent
    is_command: bool = False
    is_provisional: bool = False

    @property
    def key(self) -> float:
        return self.event.start

    def __len__(self) -> int:
        return self.end - self.start


@dataclass(frozen=True)
class EditRegion:
    """Resolved (start, end) offsets an edit applies to. Never persisted."""
    start: int
    end: int

    @property
    def is_empty(self) -> bool:
        return self.end <= self.start


class ReconcileMode(Enum):
    INSERT = "insert"
    REPLACE = "replace"


@dataclass(frozen=True)
class Reconciliation:
    mode: ReconcileMode
    prior_span: Optional[TextSpan] = None


@dataclass(frozen=True)
class ConfigSnapshot:
    """
    Immutable snapshot of configuration for a dictation session.
    Ensures config changes mid-session don't cause inconsistency.
    """
    # Transport
    transport_command: List[str]
    separator: str

    # Input
    dictation_key: str
    command_key: str
    fix_key: str

    # History
    history_max_entries: int
    history_max_age_seconds: float

    # LLM
    llm_timeout: float
    groq_api_key: str
    gemini_api_key: str
    openrouter_api_key: str
    edit_prompt: str = ""   # Custom system prompt for command edits
    fix_prompt: str = ""    # Custom system prompt for fix-last

    # Diagnostics
    debug: bool = False
    metrics_enabled: bool = True


@dataclass
class LLMEditResult:
    """Result from an edit/fix collaborator call with metadata for logging."""
    text: str
    task: str               # "edit" | "fix"
    provider: str           # "groq", "gemini", "openrouter"
    model: str
    latency_ms: float
    fallback_used: bool = False


@dataclass
class EditJob:
    """An edit submitted to the backend, tagged for stale-result detection."""
    task: str                       # "edit" | "fix"
    region: EditRegion
    content: str                    # Region text at submit time
    generation: int
    command: Optional[str] = None
