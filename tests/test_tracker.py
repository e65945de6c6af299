"""
Tests for UtteranceTracker reconciliation and span bookkeeping.
"""

from livescribe.tracker import UtteranceTracker
from livescribe.types import RecognitionEvent, ReconcileMode, TextSpan


def event(start, text="x", is_final=True, speech_final=False):
    return RecognitionEvent(start=start, is_final=is_final, speech_final=speech_final, transcript=text)


def span(start, end, key, **kwargs):
    return TextSpan(start=start, end=end, event=event(key), **kwargs)


class TestReconcile:
    """Tests for insert-vs-replace decisions."""

    def test_first_event_inserts(self):
        tracker = UtteranceTracker()

        rec = tracker.reconcile(event(1.0))

        assert rec.mode is ReconcileMode.INSERT
        assert rec.prior_span is None

    def test_same_key_replaces(self):
        """Test that a revision of the last utterance replaces its span."""
        tracker = UtteranceTracker()
        first = span(0, 5, key=1.0, is_provisional=True)
        tracker.record(first)

        rec = tracker.reconcile(event(1.0))

        assert rec.mode is ReconcileMode.REPLACE
        assert rec.prior_span is first

    def test_different_key_inserts(self):
        tracker = UtteranceTracker()
        tracker.record(span(0, 5, key=1.0))

        rec = tracker.reconcile(event(2.5))

        assert rec.mode is ReconcileMode.INSERT

    def test_only_last_span_is_considered(self):
        """Test that an older utterance key does not replace."""
        tracker = UtteranceTracker()
        tracker.record(span(0, 5, key=1.0))
        tracker.record(span(5, 9, key=2.0))

        assert tracker.reconcile(event(1.0)).mode is ReconcileMode.INSERT

    def test_record_replaces_prior(self):
        tracker = UtteranceTracker()
        first = span(0, 5, key=1.0)
        tracker.record(first)
        second = span(0, 8, key=1.0)

        tracker.record(second, replaces=first)

        assert tracker.spans == [second]
        assert tracker.last_span is second


class TestApplyEdit:
    """Tests for keeping offsets consistent with document mutations."""

    def test_spans_after_edit_shift(self):
        tracker = UtteranceTracker()
        before = span(0, 5, key=1.0)
        after = span(10, 15, key=2.0)
        tracker.record(before)
        tracker.record(after)

        tracker.apply_edit(6, 8, 5)  # 2 chars replaced by 5

        assert (before.start, before.end) == (0, 5)
        assert (after.start, after.end) == (13, 18)

    def test_overlapping_spans_dropped(self):
        tracker = UtteranceTracker()
        tracker.record(span(0, 5, key=1.0))
        tracker.record(span(5, 10, key=2.0))

        tracker.apply_edit(3, 7, 0)

        assert tracker.spans == []
        assert tracker.last_span is None

    def test_insertion_at_span_end_keeps_span(self):
        tracker = UtteranceTracker()
        first = span(0, 5, key=1.0)
        tracker.record(first)

        tracker.apply_edit(5, 5, 4)

        assert tracker.spans == [first]
        assert (first.start, first.end) == (0, 5)

    def test_insertion_at_span_start_shifts_span(self):
        tracker = UtteranceTracker()
        later = span(5, 9, key=2.0)
        tracker.record(later)

        tracker.apply_edit(5, 5, 3)

        assert (later.start, later.end) == (8, 12)


class TestHistoryQueries:
    def test_previous_start(self):
        """Test lookup of the utterance inserted before a span."""
        tracker = UtteranceTracker()
        a = span(0, 6, key=1.0)
        b = span(6, 12, key=2.0)
        c = span(12, 20, key=3.0)
        for s in (a, b, c):
            tracker.record(s)

        assert tracker.previous_start(c) == 6
        assert tracker.previous_start(b) == 0
        assert tracker.previous_start(a) is None

    def test_provisional_spans(self):
        tracker = UtteranceTracker()
        tracker.record(span(0, 4, key=1.0))
        pending = span(4, 8, key=2.0, is_provisional=True)
        tracker.record(pending)

        assert tracker.provisional_spans() == [pending]

    def test_clear(self):
        tracker = UtteranceTracker()
        tracker.record(span(0, 4, key=1.0))
        tracker.clear()

        assert tracker.spans == []
        assert tracker.last_span is None
        assert tracker.reconcile(event(1.0)).mode is ReconcileMode.INSERT

    def test_command_run_collects_contiguous_commands(self):
        tracker = UtteranceTracker()
        dictation = span(0, 6, key=0.5)
        first = span(6, 14, key=2.0, is_command=True)
        second = span(14, 19, key=3.0, is_command=True)
        for s in (dictation, first, second):
            tracker.record(s)

        assert tracker.command_run(second) == [first, second]
        assert tracker.previous_start(first) == 0

    def test_command_run_single_span(self):
        tracker = UtteranceTracker()
        dictation = span(0, 6, key=0.5)
        command = span(6, 14, key=2.0, is_command=True)
        tracker.record(dictation)
        tracker.record(command)

        assert tracker.command_run(command) == [command]
