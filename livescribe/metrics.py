"""
Thread-safe metrics logging with batched writes.

Usage:
    metrics = MetricsWriter(config.metrics_file)
    metrics.log("utterance_final", session_id=..., text="hello")
"""

import json
import time
import threading
from queue import Queue, Empty
from pathlib import Path
from typing import Any, Optional


class MetricsWriter:
    """
    Appends JSONL entries from a background thread.
    Producers never block on disk I/O.
    """

    def __init__(self, metrics_file: Path):
        self.metrics_file = metrics_file
        self._queue: Queue[dict] = Queue()
        self._shutdown = threading.Event()
        self._writer_thread = threading.Thread(target=self._writer_loop, daemon=True)
        self._writer_thread.start()

    def log(self, event: str, **kwargs: Any) -> None:
        """Queue a metric for writing. Non-blocking."""
        self._queue.put({"ts": time.time(), "event": event, **kwargs})

    def _writer_loop(self) -> None:
        while not self._shutdown.is_set():
            try:
                entries = [self._queue.get(timeout=0.5)]
                while True:
                    try:
                        entries.append(self._queue.get_nowait())
                    except Empty:
                        break
                self._write_entries(entries)
            except Empty:
                continue

    def _write_entries(self, entries: list[dict]) -> None:
        try:
            self.metrics_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.metrics_file, "a") as f:
                for entry in entries:
                    f.write(json.dumps(entry, default=str) + "\n")
        except OSError as e:
            print(f"[Metrics] Failed to write metrics: {e}")

    def flush(self) -> None:
        """Write anything still queued."""
        entries = []
        while True:
            try:
                entries.append(self._queue.get_nowait())
            except Empty:
                break

        if entries:
            self._write_entries(entries)

    def shutdown(self) -> None:
        self._shutdown.set()
        self._writer_thread.join(timeout=2.0)
        self.flush()


# Typed helpers for consistent event logging. All accept metrics=None.

def log_dictation_started(metrics: Optional[MetricsWriter], session_id: str, generation: int) -> None:
    if metrics:
        metrics.log("dictation_started", session_id=session_id, generation=generation)


def log_dictation_stopped(metrics: Optional[MetricsWriter], session_id: str, reason: str) -> None:
    if metrics:
        metrics.log("dictation_stopped", session_id=session_id, reason=reason)


def log_decode_error(metrics: Optional[MetricsWriter], session_id: str, error: str) -> None:
    if metrics:
        metrics.log("decode_error", session_id=session_id, error=error[:200])


def log_utterance_final(
    metrics: Optional[MetricsWriter],
    session_id: str,
    start: float,
    text: str,
    is_command: bool,
) -> None:
    if metrics:
        metrics.log(
            "utterance_final",
            session_id=session_id,
            start=start,
            text=text[:200],
            is_command=is_command,
        )


def log_command_dispatched(
    metrics: Optional[MetricsWriter],
    session_id: str,
    command: str,
    region_start: int,
    region_end: int,
) -> None:
    if metrics:
        metrics.log(
            "command_dispatched",
            session_id=session_id,
            command=command[:200],
            region_start=region_start,
            region_end=region_end,
        )


def log_llm_edit(
    metrics: Optional[MetricsWriter],
    task: str,
    provider: str,
    model: str,
    latency_ms: float,
    fallback_used: bool,
) -> None:
    if metrics:
        metrics.log(
            "llm_edit",
            task=task,
            provider=provider,
            model=model,
            latency_ms=latency_ms,
            fallback_used=fallback_used,
        )


def log_edit_outcome(
    metrics: Optional[MetricsWriter],
    session_id: str,
    task: str,
    applied: bool,
    reason: str = "",
) -> None:
    """Log edit_applied or edit_discarded."""
    if metrics:
        event = "edit_applied" if applied else "edit_discarded"
        metrics.log(event, session_id=session_id, task=task, reason=reason)
