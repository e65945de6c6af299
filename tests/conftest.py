"""Shared fixtures for LiveScribe tests."""

import json
import threading

import pytest

from livescribe.types import ConfigSnapshot


def make_snapshot(**overrides) -> ConfigSnapshot:
    values = dict(
        transport_command=[],
        separator=" ",
        dictation_key="f8",
        command_key="f9",
        fix_key="f10",
        history_max_entries=5,
        history_max_age_seconds=300.0,
        llm_timeout=5.0,
        groq_api_key="",
        gemini_api_key="",
        openrouter_api_key="",
        metrics_enabled=False,
    )
    values.update(overrides)
    return ConfigSnapshot(**values)


def output_line(start, text, is_final=True, speech_final=False) -> str:
    """A transport payload line as the recognizer prints it."""
    payload = {
        "channel": {"alternatives": [{"transcript": text}]},
        "start": start,
        "is_final": is_final,
        "speech_final": speech_final,
    }
    return "Output: " + json.dumps(payload)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeBackend:
    """Records calls; returns canned responses or raises."""

    def __init__(self, edit_result="", fix_result="", error=None, gate=None):
        self.edit_result = edit_result
        self.fix_result = fix_result
        self.error = error
        self.gate = gate
        self.edit_calls = []
        self.fix_calls = []

    def make_edits(self, content, command=None):
        self.edit_calls.append((content, command))
        return self._respond(self.edit_result)

    def fix_content(self, content):
        self.fix_calls.append(content)
        return self._respond(self.fix_result)

    def _respond(self, result):
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.error is not None:
            raise self.error
        return result


@pytest.fixture
def snapshot():
    return make_snapshot()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notices():
    return []


@pytest.fixture
def make_engine(snapshot, clock, notices):
    """Build an engine over a fresh TextDocument; shut down afterwards."""
    from livescribe.document import TextDocument
    from livescribe.engine import DictationEngine

    engines = []

    def factory(backend=None, document=None, **kwargs):
        engine = DictationEngine(
            document=document if document is not None else TextDocument(),
            backend=backend or FakeBackend(),
            config=kwargs.pop("config", snapshot),
            notify=notices.append,
            clock=clock,
            **kwargs,
        )
        engines.append(engine)
        return engine

    yield factory

    for engine in engines:
        engine.shutdown()


@pytest.fixture
def gate():
    event = threading.Event()
    yield event
    event.set()
