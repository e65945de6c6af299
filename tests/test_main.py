"""
Tests for the process entry point wiring.
"""

from unittest.mock import Mock

import pytest

pytest.importorskip("pynput.keyboard")

from livescribe import __main__ as app


class TestTransportCallbacks:
    """Tests for transport lifecycle callbacks."""

    def test_transport_exit_forgets_process(self, monkeypatch):
        monkeypatch.setattr(app, "transport", Mock())
        monkeypatch.setattr(app, "engine", Mock(), raising=False)
        monkeypatch.setattr(app, "input_controller", Mock(), raising=False)

        app.on_transport_exit(1)

        assert app.transport is None
        app.engine.transport_died.assert_called_once_with(1)
        app.input_controller.set_dictating.assert_called_once_with(False)

    def test_stop_after_transport_exit_skips_dead_process(self, monkeypatch):
        dead = Mock()
        monkeypatch.setattr(app, "transport", dead)
        monkeypatch.setattr(app, "engine", Mock(), raising=False)
        monkeypatch.setattr(app, "input_controller", Mock(), raising=False)

        app.on_transport_exit(1)
        app.on_stop()

        dead.stop.assert_not_called()
        app.engine.stop_dictation.assert_called_once_with()
