"""
Dictation engine: transport chunks in, document edits out.

Usage:
    engine = DictationEngine(TextDocument(), LLMBackend(snapshot), snapshot)
    engine.start_dictation()
    transport = TransportProcess(cmd, on_chunk=engine.feed, on_exit=engine.transport_died)

Every line is handled to completion, span bookkeeping included, before the
next one, under a single re-entrant lock. Edit results from the backend
thread take the same lock.
"""

import threading
import time
from concurrent.futures import Future
from typing import Callable, List, Optional, Union

from .classifier import CommandClassifier, CommandState
from .dispatch import EditBackend, EditDispatcher
from .document import Document
from .errors import TranscriptDecodeError
from .framing import LineFramer, parse_line
from .metrics import MetricsWriter, log_decode_error, log_dictation_started, log_dictation_stopped
from .output import notify as default_notify
from .region import RegionResolver
from .session import DictationSession, UtteranceHistory
from .tracker import UtteranceTracker
from .types import (
    ConfigSnapshot, EditRegion, ReadySignal, RecognitionEvent, ReconcileMode, TextSpan,
    TransportMessage,
)


class DictationEngine:
    """
    Owns the session, the span list and the edit dispatcher for one document.
    """

    def __init__(
        self,
        document: Document,
        backend: EditBackend,
        config: ConfigSnapshot,
        notify: Callable[[str], None] = default_notify,
        on_speech_final: Optional[Callable[[TextSpan], None]] = None,
        on_change: Optional[Callable[[], None]] = None,
        metrics: Optional[MetricsWriter] = None,
        history: Optional[UtteranceHistory] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.document = document
        self.config = config
        self.notify = notify
        self.on_change = on_change
        self.metrics = metrics
        self.clock = clock

        self.session = DictationSession()
        self.tracker = UtteranceTracker()
        self.classifier = CommandClassifier()
        self.resolver = RegionResolver()
        self.framer = LineFramer()
        self.history = history or UtteranceHistory(
            max_entries=config.history_max_entries,
            max_age_seconds=config.history_max_age_seconds,
        )
        self._lock = threading.RLock()

        self.dispatcher = EditDispatcher(
            document=document,
            tracker=self.tracker,
            session=self.session,
            backend=backend,
            lock=self._lock,
            notify=notify,
            history=self.history,
            separator=config.separator,
            resolver=self.resolver,
            on_speech_final=on_speech_final,
            on_change=on_change,
            metrics=metrics,
            debug=config.debug,
        )

    # -- user-facing commands ------------------------------------------------

    @property
    def active(self) -> bool:
        return self.session.mode_active

    @property
    def command_state(self) -> CommandState:
        return self.classifier.state(self.session)

    def start_dictation(self) -> bool:
        """Open a new session. Returns False if dictation is already running."""
        with self._lock:
            if self.session.mode_active:
                return False
            generation = self.session.open(self.clock())
            self.framer.reset()
            self.tracker.clear()
            print(f"[Engine] Dictation started (generation {generation})")
            log_dictation_started(self.metrics, str(self.session.id), generation)
            self._changed()
            return True

    def stop_dictation(self, reason: str = "user") -> None:
        """End dictation and reset all session state, armed command mode included."""
        with self._lock:
            was_active = self.session.mode_active
            session_id = str(self.session.id)
            self.session.close()
            self.framer.reset()
            self.tracker.clear()
            if was_active:
                print(f"[Engine] Dictation stopped ({reason})")
                log_dictation_stopped(self.metrics, session_id, reason)
            self._changed()

    def start_command_mode(self) -> bool:
        """Arm command mode: the next utterance is an edit instruction."""
        with self._lock:
            if not self.session.mode_active:
                self.notify("Start dictation before giving a command.")
                return False
            self.session.arm_command(self.clock())
            print("[Engine] Command mode armed")
            self._changed()
            return True

    def fix_last(self) -> Optional[Future]:
        """Clean up the region ending at the insertion point."""
        with self._lock:
            return self.dispatcher.fix_last(self.document.point)

    def set_anchor(self, position: Optional[int] = None) -> None:
        """Pin the start of edit regions (defaults to the insertion point)."""
        with self._lock:
            self.session.set_anchor(self.document.point if position is None else position)

    def clear_anchor(self) -> None:
        with self._lock:
            self.session.clear_anchor()

    def transport_died(self, returncode: Optional[int]) -> None:
        with self._lock:
            if not self.session.mode_active:
                return
            self.notify(f"Speech transport exited (code {returncode}), dictation stopped.")
            self.stop_dictation(reason="transport")

    # -- transport input -------------------------------------------------------

    def feed(self, chunk: Union[str, bytes]) -> None:
        """Accept a raw transport chunk; complete lines are handled in order."""
        with self._lock:
            for line in self.framer.feed(chunk):
                self.handle_line(line)

    def handle_line(self, line: str) -> None:
        with self._lock:
            try:
                message = parse_line(line)
            except TranscriptDecodeError as e:
                print(f"[Engine] Dropping undecodable line: {e}")
                log_decode_error(self.metrics, str(self.session.id), str(e))
                return
            if message is not None:
                self.handle_message(message)

    def handle_message(self, message: TransportMessage) -> None:
        with self._lock:
            if isinstance(message, ReadySignal):
                if self.session.mode_active:
                    self.session.mark_ready(self.clock())
                    print("[Engine] Transport ready")
                return
            self.handle_event(message)

    def handle_event(self, event: RecognitionEvent) -> Optional[TextSpan]:
        """
        Reconcile one recognition event into the document.

        Returns the span now holding the event's text, if any.
        """
        with self._lock:
            if not self.session.mode_active:
                return None

            if self.config.debug:
                print(f"[Engine] Event start={event.start} final={event.is_final} "
                      f"speech_final={event.speech_final} \"{event.transcript}\"")

            rec = self.tracker.reconcile(event)
            text = event.transcript
            if text and event.is_final:
                text += self.config.separator

            if rec.mode is ReconcileMode.REPLACE:
                prior = rec.prior_span
                start = prior.start
                self.document.replace(prior.start, prior.end, text)
                self.tracker.apply_edit(prior.start, prior.end, len(text))
            elif text:
                start = self.document.point
                self.document.insert(start, text)
                self.tracker.apply_edit(start, start, len(text))
            else:
                # Empty transcript for a new utterance: nothing to show
                return None

            span = TextSpan(
                start=start,
                end=start + len(text),
                event=event,
                is_command=self.classifier.classify(event, self.session),
                is_provisional=not event.is_final,
            )
            self.tracker.record(span, replaces=rec.prior_span)
            self._changed()

            if event.speech_final:
                self.dispatcher.dispatch_final(span)
            return span

    # -- queries ---------------------------------------------------------------

    @property
    def spans(self) -> List[TextSpan]:
        with self._lock:
            return self.tracker.spans

    @property
    def pending_region(self) -> Optional[EditRegion]:
        return self.dispatcher.pending_region

    @property
    def busy(self) -> bool:
        return self.dispatcher.busy

    def wait_for_edits(self, timeout: Optional[float] = None) -> bool:
        """Block until the in-flight edit is applied or discarded. Do not hold the lock."""
        return self.dispatcher.wait(timeout)

    def shutdown(self) -> None:
        self.stop_dictation(reason="shutdown")
        self.dispatcher.shutdown()

    def _changed(self) -> None:
        if self.on_change:
            self.on_change()
