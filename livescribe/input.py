"""
Input controller for the dictation hotkeys.

Maps key presses to the four user commands: toggle dictation, arm command
mode, fix last region, and the Shift+Esc emergency stop.
"""

import threading
from typing import Callable, Literal, Optional

from .types import ConfigSnapshot


InputState = Literal["idle", "dictating"]


class InputController:
    """
    Translates raw key events into dictation commands.

    Handles:
    - Dictation key: press toggles dictation on/off
    - Command key: arms command mode while dictating
    - Fix key: fix the last region
    - Emergency reset: Shift+Esc always stops dictation

    Usage:
        controller = InputController(snapshot)
        controller.on_start_dictation = start_fn
        controller.on_stop_dictation = stop_fn

        listener = keyboard.Listener(
            on_press=controller.on_key_press,
            on_release=controller.on_key_release
        )
    """

    def __init__(self, config: ConfigSnapshot):
        self.config = config
        self.state: InputState = "idle"
        self._lock = threading.Lock()
        self._pressed: set = set()
        self._shift_pressed = False

        # Callbacks
        self.on_start_dictation: Optional[Callable[[], None]] = None
        self.on_stop_dictation: Optional[Callable[[], None]] = None
        self.on_command_mode: Optional[Callable[[], None]] = None
        self.on_fix_last: Optional[Callable[[], None]] = None

    def on_key_press(self, key) -> None:
        """
        Handle key press events.

        Args:
            key: pynput key object
        """
        from pynput.keyboard import Key

        if key in (Key.shift, Key.shift_r):
            self._shift_pressed = True
            return

        if key == Key.esc and self._shift_pressed:
            self._emergency_reset()
            return

        name = self._key_name(key)
        if name is None:
            return

        with self._lock:
            # Ignore auto-repeat while held
            if name in self._pressed:
                return
            self._pressed.add(name)

            if name == self.config.dictation_key:
                self._toggle_dictation()
            elif name == self.config.command_key:
                if self.state == "dictating" and self.on_command_mode:
                    self.on_command_mode()
            elif name == self.config.fix_key:
                if self.on_fix_last:
                    self.on_fix_last()

    def on_key_release(self, key) -> None:
        from pynput.keyboard import Key

        if key in (Key.shift, Key.shift_r):
            self._shift_pressed = False
            return

        name = self._key_name(key)
        if name is None:
            return
        with self._lock:
            self._pressed.discard(name)

    def set_dictating(self, dictating: bool) -> None:
        """Sync state when dictation stops for other reasons (e.g. transport exit)."""
        with self._lock:
            self.state = "dictating" if dictating else "idle"

    def _key_name(self, key) -> Optional[str]:
        """Configured-name form of a key: "f8", "alt_r", or a character."""
        from pynput.keyboard import Key, KeyCode

        if isinstance(key, Key):
            return key.name
        if isinstance(key, KeyCode) and key.char:
            return key.char.lower()
        return None

    def _toggle_dictation(self) -> None:
        """Must hold lock."""
        if self.state == "idle":
            self.state = "dictating"
            if self.on_start_dictation:
                self.on_start_dictation()
        else:
            self.state = "idle"
            if self.on_stop_dictation:
                self.on_stop_dictation()

    def _emergency_reset(self) -> None:
        with self._lock:
            self.state = "idle"
            self._pressed.clear()

        if self.on_stop_dictation:
            self.on_stop_dictation()

        print("Emergency reset triggered")
