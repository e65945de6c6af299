"""
Tests for command classification and command-mode session state.
"""

import pytest

from livescribe.classifier import CommandClassifier, CommandState
from livescribe.session import DictationSession
from livescribe.types import RecognitionEvent


def event(start, is_final=True, speech_final=False):
    return RecognitionEvent(start=start, is_final=is_final, speech_final=speech_final, transcript="t")


@pytest.fixture
def session():
    s = DictationSession()
    s.open(now=100.0)
    s.mark_ready(now=100.0)
    return s


class TestCommandClassifier:
    """Tests for the time-window rule."""

    def test_not_armed_is_dictation(self, session):
        classifier = CommandClassifier()

        assert classifier.classify(event(5.0), session) is False
        assert classifier.state(session) is CommandState.DICTATION

    def test_armed_before_speech_is_command(self, session):
        """Test that a trigger before the utterance began makes it a command."""
        classifier = CommandClassifier()
        session.arm_command(now=103.0)

        assert classifier.classify(event(4.0), session) is True
        assert classifier.state(session) is CommandState.AWAITING_COMMAND_FINAL

    def test_armed_mid_utterance_is_dictation(self, session):
        """Test that speech which began before the trigger stays dictation."""
        classifier = CommandClassifier()
        session.arm_command(now=103.0)

        assert classifier.classify(event(2.0), session) is False

    def test_trigger_at_exact_speech_start_is_dictation(self, session):
        classifier = CommandClassifier()
        session.arm_command(now=103.0)

        assert classifier.classify(event(3.0), session) is False

    def test_provisional_events_never_classified(self, session):
        """Test that non-final events are dictation even when armed early."""
        classifier = CommandClassifier()
        session.arm_command(now=100.5)

        assert classifier.classify(event(4.0, is_final=False), session) is False

    def test_no_readiness_means_no_command(self):
        classifier = CommandClassifier()
        s = DictationSession()
        s.open(now=100.0)
        s.arm_command(now=101.0)

        assert classifier.classify(event(4.0), s) is False

    def test_deterministic(self, session):
        classifier = CommandClassifier()
        session.arm_command(now=103.0)
        results = {classifier.classify(event(4.0), session) for _ in range(5)}

        assert results == {True}

    @pytest.mark.parametrize("is_command,speech_final,expected", [
        (True, True, True),
        (True, False, False),
        (False, True, False),
    ])
    def test_should_clear(self, is_command, speech_final, expected):
        classifier = CommandClassifier()
        e = event(1.0, speech_final=speech_final)

        assert classifier.should_clear(e, is_command) is expected
