"""
Utterance tracking: decides whether an event inserts new text or replaces
the provisional text of the utterance it revises.

The tracker owns the ordered list of TextSpan records. The engine applies
the document mutation and reports it back via apply_edit() so span offsets
stay consistent with the document.
"""

from typing import List, Optional

from .types import ReconcileMode, Reconciliation, RecognitionEvent, TextSpan


class UtteranceTracker:
    """
    Maintains the identity and text span of the in-progress utterance.

    Usage:
        rec = tracker.reconcile(event)
        if rec.mode is ReconcileMode.REPLACE:
            document.delete(rec.prior_span.start, rec.prior_span.end)
        ...
        tracker.record(new_span)
    """

    def __init__(self):
        self._spans: List[TextSpan] = []
        self._last: Optional[TextSpan] = None

    @property
    def last_span(self) -> Optional[TextSpan]:
        return self._last

    @property
    def spans(self) -> List[TextSpan]:
        """Ordered copy of all live spans."""
        return list(self._spans)

    def provisional_spans(self) -> List[TextSpan]:
        return [s for s in self._spans if s.is_provisional]

    def reconcile(self, event: RecognitionEvent) -> Reconciliation:
        """Same utterance key as the last span replaces it; anything else inserts."""
        last = self._last
        if last is not None and last.key == event.start and last in self._spans:
            return Reconciliation(ReconcileMode.REPLACE, last)
        return Reconciliation(ReconcileMode.INSERT)

    def record(self, span: TextSpan, replaces: Optional[TextSpan] = None) -> None:
        """Store a freshly inserted span, dropping the one it superseded."""
        if replaces is not None and replaces in self._spans:
            self._spans.remove(replaces)
        self._spans.append(span)
        self._spans.sort(key=lambda s: (s.start, s.end))
        self._last = span

    def apply_edit(self, start: int, end: int, new_length: int) -> None:
        """
        Keep span offsets consistent with a document replacement of
        [start, end) by new_length characters.

        Spans overlapping the replaced range are dropped; spans after it
        shift by the length difference.
        """
        delta = new_length - (end - start)
        kept: List[TextSpan] = []
        for span in self._spans:
            if span.end <= start:
                kept.append(span)
            elif span.start >= end:
                span.start += delta
                span.end += delta
                kept.append(span)
        self._spans = kept
        if self._last is not None and self._last not in self._spans:
            self._last = None

    def remove(self, span: TextSpan) -> None:
        if span in self._spans:
            self._spans.remove(span)
        if self._last is span:
            self._last = None

    def previous_start(self, span: TextSpan) -> Optional[int]:
        """Insertion start of the utterance recorded just before span."""
        before = [s for s in self._spans if s is not span and s.start < span.start]
        if not before:
            return None
        return before[-1].start

    def command_run(self, span: TextSpan) -> List[TextSpan]:
        """
        Contiguous command spans ending with span, oldest first.

        A command spoken across several final windows is recorded as one
        span per window; together they form the instruction.
        """
        if span not in self._spans:
            return [span]
        run: List[TextSpan] = []
        for candidate in reversed(self._spans[:self._spans.index(span) + 1]):
            if not candidate.is_command:
                break
            run.append(candidate)
        run.reverse()
        return run or [span]

    def clear(self) -> None:
        self._spans = []
        self._last = None
