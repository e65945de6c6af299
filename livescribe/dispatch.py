"""
Edit dispatch: what happens when an utterance completes, and the explicit
fix-last action.

Only one edit runs at a time. The backend call happens on a single worker
thread; the result is applied under the engine lock, and only if the
session generation and the region text are unchanged since submission.
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable, Optional, Protocol

from .document import Document
from .errors import EditBusyError, EditError, EmptyResponseError, NoRegionError, user_message
from .metrics import (
    MetricsWriter, log_command_dispatched, log_edit_outcome, log_utterance_final,
)
from .output import play_busy_sound
from .region import RegionResolver
from .session import DictationSession, UtteranceHistory
from .tracker import UtteranceTracker
from .types import EditJob, EditRegion, TextSpan


class EditBackend(Protocol):
    def make_edits(self, content: str, command: Optional[str] = None) -> str: ...

    def fix_content(self, content: str) -> str: ...


class EditDispatcher:
    """
    Decides, per completed utterance, whether to run an edit, and runs
    edits one at a time.

    All public methods must be called with the engine lock held, except
    wait() which must be called without it.
    """

    def __init__(
        self,
        document: Document,
        tracker: UtteranceTracker,
        session: DictationSession,
        backend: EditBackend,
        lock: threading.RLock,
        notify: Callable[[str], None],
        history: UtteranceHistory,
        separator: str = " ",
        resolver: Optional[RegionResolver] = None,
        on_speech_final: Optional[Callable[[TextSpan], None]] = None,
        on_change: Optional[Callable[[], None]] = None,
        metrics: Optional[MetricsWriter] = None,
        debug: bool = False,
    ):
        self.document = document
        self.tracker = tracker
        self.session = session
        self.backend = backend
        self.lock = lock
        self.notify = notify
        self.history = history
        self.separator = separator
        self.resolver = resolver or RegionResolver()
        self.on_speech_final = on_speech_final
        self.on_change = on_change
        self.metrics = metrics
        self.debug = debug

        self.pending_region: Optional[EditRegion] = None
        self._future: Optional[Future] = None
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="livescribe-edit")

    @property
    def busy(self) -> bool:
        return self._future is not None and not self._future.done()

    def dispatch_final(self, span: TextSpan) -> Optional[Future]:
        """
        Handle a speech_final utterance.

        Plain dictation only fires the on_speech_final hook. A command
        utterance clears command mode, leaves the document, and edits the
        text between the previous utterance and itself.
        """
        text = self.document.text(span.start, span.end)
        log_utterance_final(self.metrics, str(self.session.id), span.key, text, span.is_command)

        if not span.is_command:
            self.history.add(text)
            if self.on_speech_final:
                self.on_speech_final(span)
            return None

        self.session.clear_command()
        run = self.tracker.command_run(span)
        first = run[0]
        words = [self.document.text(s.start, s.end).strip() for s in run]
        command = " ".join(w for w in words if w)
        prior_start = self.tracker.previous_start(first)
        point = first.start

        # The spoken instruction is not dictation
        for command_span in reversed(run):
            start, end = command_span.start, command_span.end
            self.document.delete(start, end)
            self.tracker.apply_edit(start, end, 0)
            self.tracker.remove(command_span)
        self._changed()

        if not command:
            self.notify(user_message(NoRegionError("empty command")))
            return None

        region = self.resolver.resolve(self.document, point, self.session, fallback_start=prior_start)
        print(f"[Dispatch] Command \"{command[:50]}\" on [{region.start}, {region.end})")
        log_command_dispatched(self.metrics, str(self.session.id), command, region.start, region.end)

        return self._submit("edit", region, command)

    def fix_last(self, point: int) -> Optional[Future]:
        """Run general cleanup on the resolved region ending at point."""
        region = self.resolver.resolve(self.document, point, self.session)
        return self._submit("fix", self._before_provisional(region))

    def _before_provisional(self, region: EditRegion) -> EditRegion:
        """Cut the region off where an unfinished utterance begins."""
        end = region.end
        for span in self.tracker.provisional_spans():
            if span.start < end and span.end > region.start:
                end = max(region.start, min(end, span.start))
        if end == region.end:
            return region
        return EditRegion(region.start, end)

    def _submit(self, task: str, region: EditRegion, command: Optional[str] = None) -> Optional[Future]:
        if self.busy:
            play_busy_sound()
            self.notify(user_message(EditBusyError()))
            log_edit_outcome(self.metrics, str(self.session.id), task, applied=False, reason="busy")
            return None

        content = self.document.text(region.start, region.end)
        if region.is_empty or not content.strip():
            self.notify(user_message(NoRegionError()))
            return None

        job = EditJob(
            task=task,
            region=region,
            content=content,
            generation=self.session.generation,
            command=command,
        )

        if task == "fix":
            self.pending_region = region
            self._changed()

        self._future = self._executor.submit(self._run, job)
        return self._future

    def _run(self, job: EditJob) -> bool:
        """Worker thread: call the backend, then apply under the engine lock."""
        error: Optional[Exception] = None
        result = ""
        try:
            if job.task == "edit":
                result = self.backend.make_edits(job.content, job.command)
            else:
                result = self.backend.fix_content(job.content)
        except Exception as e:
            print(f"[Dispatch] {job.task} backend error: {e}")
            error = e

        with self.lock:
            if job.task == "fix":
                self.pending_region = None
            applied = self._apply(job, result, error)
            self._changed()
            return applied

    def _apply(self, job: EditJob, result: str, error: Optional[Exception]) -> bool:
        session_id = str(self.session.id)

        if not self.session.is_current(job.generation):
            print(f"[Dispatch] Discarding stale {job.task} result")
            log_edit_outcome(self.metrics, session_id, job.task, applied=False, reason="stale")
            return False

        if error is not None:
            self.notify(user_message(EditError(str(error))))
            log_edit_outcome(self.metrics, session_id, job.task, applied=False, reason="error")
            return False

        if not result or not result.strip():
            self.notify(user_message(EmptyResponseError()))
            log_edit_outcome(self.metrics, session_id, job.task, applied=False, reason="empty")
            return False

        region = job.region
        if self.document.text(region.start, region.end) != job.content:
            self.notify("Text changed while editing, result discarded.")
            log_edit_outcome(self.metrics, session_id, job.task, applied=False, reason="changed")
            return False

        if job.task == "edit":
            replacement = result.strip() + self.separator
        else:
            trailing = job.content[len(job.content.rstrip()):]
            replacement = result.strip() + trailing

        self.document.replace(region.start, region.end, replacement)
        self.tracker.apply_edit(region.start, region.end, len(replacement))
        if self.debug:
            print(f"[Dispatch] {job.task} applied: \"{replacement[:80]}\"")
        log_edit_outcome(self.metrics, session_id, job.task, applied=True)
        return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the in-flight edit finishes. Returns False on timeout."""
        future = self._future
        if future is None:
            return True
        done, _ = wait([future], timeout=timeout)
        return bool(done)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)

    def _changed(self) -> None:
        if self.on_change:
            self.on_change()
