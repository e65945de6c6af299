"""
Main entry point for LiveScribe.

Run with: python -m livescribe
"""

import signal
import sys
import threading
from typing import Optional

from pynput import keyboard

from . import __version__
from .config import Config
from .correct import LLMBackend
from .document import TextDocument, render
from .engine import DictationEngine
from .errors import TransportError
from .input import InputController
from .metrics import MetricsWriter, log_llm_edit
from .output import notify
from .session import UtteranceHistory
from .transport import TransportProcess
from .types import LLMEditResult


# Global state
config: Config
engine: DictationEngine
input_controller: InputController
metrics: Optional[MetricsWriter] = None
transport: Optional[TransportProcess] = None
_keyboard_listener: Optional[keyboard.Listener] = None
_done = threading.Event()
_last_render = ""


def main():
    """Main entry point."""
    global config, engine, input_controller, metrics, _keyboard_listener

    print(f"LiveScribe v{__version__} starting...")

    config = Config.load()
    snapshot = config.snapshot()
    if not snapshot.transport_command:
        print(f"No transport_command configured in {config.settings_file}")
        sys.exit(1)
    print(f"  Transport: {' '.join(snapshot.transport_command)}")

    if snapshot.metrics_enabled:
        metrics = MetricsWriter(config.metrics_file)

    def on_llm_metadata(result: LLMEditResult) -> None:
        log_llm_edit(metrics, result.task, result.provider, result.model,
                     result.latency_ms, result.fallback_used)

    history = UtteranceHistory(
        max_entries=snapshot.history_max_entries,
        max_age_seconds=snapshot.history_max_age_seconds,
    )
    engine = DictationEngine(
        document=TextDocument(),
        backend=LLMBackend(snapshot, history=history, on_metadata=on_llm_metadata),
        config=snapshot,
        on_change=on_change,
        metrics=metrics,
        history=history,
    )

    input_controller = InputController(snapshot)
    input_controller.on_start_dictation = on_start
    input_controller.on_stop_dictation = on_stop
    input_controller.on_command_mode = engine.start_command_mode
    input_controller.on_fix_last = engine.fix_last

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    _keyboard_listener = keyboard.Listener(
        on_press=input_controller.on_key_press,
        on_release=input_controller.on_key_release,
    )
    _keyboard_listener.start()

    print(f"Ready! {snapshot.dictation_key}: dictate, {snapshot.command_key}: command, "
          f"{snapshot.fix_key}: fix last")
    print("Press Ctrl+C to quit.")

    try:
        _done.wait()
    finally:
        shutdown()


def on_start() -> None:
    """Start dictation and the transport feeding it."""
    global transport

    if not engine.start_dictation():
        return

    transport = TransportProcess(
        config.transport_command,
        on_chunk=engine.feed,
        on_exit=on_transport_exit,
    )
    try:
        transport.start()
    except TransportError as e:
        notify(str(e))
        engine.stop_dictation(reason="transport")
        input_controller.set_dictating(False)
        transport = None


def on_stop() -> None:
    """Stop the transport, then reset the session."""
    global transport

    if transport is not None:
        transport.stop()
        transport = None
    engine.stop_dictation()


def on_transport_exit(returncode: Optional[int]) -> None:
    global transport

    transport = None
    engine.transport_died(returncode)
    input_controller.set_dictating(False)


def on_change() -> None:
    """Redraw the document when it changes."""
    global _last_render

    text = render(engine.document, engine.tracker.spans, engine.pending_region)
    if text != _last_render:
        _last_render = text
        print(f"\n--- document ---\n{text}\n----------------")


def shutdown() -> None:
    """Clean shutdown."""
    print("\nShutting down...")

    if _keyboard_listener:
        _keyboard_listener.stop()

    on_stop()
    engine.shutdown()

    if metrics:
        metrics.shutdown()

    print("Goodbye!")


def _signal_handler(signum, frame):
    _done.set()


if __name__ == "__main__":
    main()
