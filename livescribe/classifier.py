"""
Command classification.

Command mode is armed by the user (start_command_mode) and stays armed until
the command utterance reaches speech_final. An utterance is a command when
the trigger happened before its speech began.
"""

from enum import Enum
from typing import TYPE_CHECKING

from .types import RecognitionEvent

if TYPE_CHECKING:
    from .session import DictationSession


class CommandState(Enum):
    DICTATION = "dictation"
    AWAITING_COMMAND_FINAL = "awaiting_command_final"


class CommandClassifier:
    """
    Time-window classifier keyed by the session's command_mode_start_time.

    Only final events are classified; provisional events carry unreliable
    timing and are always treated as dictation.
    """

    def state(self, session: "DictationSession") -> CommandState:
        if session.command_mode_start_time is None:
            return CommandState.DICTATION
        return CommandState.AWAITING_COMMAND_FINAL

    def classify(self, event: RecognitionEvent, session: "DictationSession") -> bool:
        if not event.is_final:
            return False

        armed_at = session.command_mode_start_time
        if armed_at is None or session.dictation_start_time is None:
            return False

        speech_began = session.dictation_start_time + event.start
        return armed_at < speech_began

    def should_clear(self, event: RecognitionEvent, is_command: bool) -> bool:
        """Command mode ends when the command utterance is complete."""
        return is_command and event.speech_final
