"""
Tests for InputController hotkey handling.
"""

from unittest.mock import Mock

import pytest

keyboard = pytest.importorskip("pynput.keyboard")

from livescribe.input import InputController

from conftest import make_snapshot


Key = keyboard.Key
KeyCode = keyboard.KeyCode


@pytest.fixture
def controller():
    controller = InputController(make_snapshot(dictation_key="f8", command_key="f9", fix_key="x"))
    controller.on_start_dictation = Mock()
    controller.on_stop_dictation = Mock()
    controller.on_command_mode = Mock()
    controller.on_fix_last = Mock()
    return controller


def tap(controller, key):
    controller.on_key_press(key)
    controller.on_key_release(key)


class TestInputController:
    """Tests for key-to-command mapping."""

    def test_dictation_key_toggles(self, controller):
        tap(controller, Key.f8)
        assert controller.state == "dictating"
        controller.on_start_dictation.assert_called_once()

        tap(controller, Key.f8)
        assert controller.state == "idle"
        controller.on_stop_dictation.assert_called_once()

    def test_held_key_does_not_repeat(self, controller):
        controller.on_key_press(Key.f8)
        controller.on_key_press(Key.f8)

        controller.on_start_dictation.assert_called_once()

    def test_command_key_only_while_dictating(self, controller):
        tap(controller, Key.f9)
        controller.on_command_mode.assert_not_called()

        tap(controller, Key.f8)
        tap(controller, Key.f9)
        controller.on_command_mode.assert_called_once()

    def test_character_fix_key(self, controller):
        tap(controller, KeyCode.from_char("X"))

        controller.on_fix_last.assert_called_once()

    def test_shift_esc_emergency_stop(self, controller):
        tap(controller, Key.f8)

        controller.on_key_press(Key.shift)
        controller.on_key_press(Key.esc)

        assert controller.state == "idle"
        controller.on_stop_dictation.assert_called_once()

    def test_set_dictating_syncs_state(self, controller):
        tap(controller, Key.f8)
        controller.set_dictating(False)

        tap(controller, Key.f8)

        assert controller.on_start_dictation.call_count == 2
        controller.on_stop_dictation.assert_not_called()
