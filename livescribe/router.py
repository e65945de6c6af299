"""
LLM provider routing for edit and fix requests.

Picks among providers with a configured API key:
- fix requests on short content go to the fastest provider
- edit requests, and anything long, go to the best-quality provider
- providers that keep failing are backed off exponentially
"""

from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional
import threading
import time

from .types import ConfigSnapshot


# Failure tracking is shared by all router instances
_FAILURES: Dict[str, int] = defaultdict(int)
_BACKOFF_UNTIL: Dict[str, float] = defaultdict(float)
_LOCK = threading.Lock()

GROQ_MODEL = "openai/gpt-oss-120b"
GEMINI_MODEL = "gemini-2.5-flash"
OPENROUTER_MODEL = "google/gemini-2.5-flash"

SHORT_CONTENT_WORDS = 20
BACKOFF_AFTER_FAILURES = 3
MAX_BACKOFF_SECONDS = 300


@dataclass(frozen=True)
class LLMProvider:
    name: str
    key_field: str          # ConfigSnapshot field holding the API key
    latency_ms: int         # Rough expected latency
    priority: int           # Lower = better quality
    model: str

    def is_configured(self, config: ConfigSnapshot) -> bool:
        return bool(getattr(config, self.key_field, ""))


PROVIDERS = [
    LLMProvider("groq", "groq_api_key", latency_ms=400, priority=2, model=GROQ_MODEL),
    LLMProvider("gemini", "gemini_api_key", latency_ms=700, priority=1, model=GEMINI_MODEL),
    LLMProvider("openrouter", "openrouter_api_key", latency_ms=900, priority=3, model=OPENROUTER_MODEL),
]


class LLMRouter:
    """Selects a provider per request and tracks provider health."""

    def __init__(self, config: ConfigSnapshot):
        self.config = config

    def available(self) -> List[LLMProvider]:
        """Configured providers that are not backing off."""
        now = time.time()
        with _LOCK:
            return [
                p for p in PROVIDERS
                if p.is_configured(self.config) and now >= _BACKOFF_UNTIL[p.name]
            ]

    def select(self, task: str, word_count: int) -> Optional[LLMProvider]:
        """
        Pick a provider for a request.

        Args:
            task: "edit" or "fix"
            word_count: Words of content being sent

        Returns:
            Provider, or None if nothing is configured
        """
        candidates = self.available()
        if not candidates:
            return None

        if task == "fix" and word_count < SHORT_CONTENT_WORDS:
            return min(candidates, key=lambda p: p.latency_ms)
        return min(candidates, key=lambda p: p.priority)

    def fallback(self, exclude: str) -> Optional[LLMProvider]:
        candidates = [p for p in self.available() if p.name != exclude]
        if not candidates:
            return None
        return min(candidates, key=lambda p: p.priority)

    def record_failure(self, name: str) -> None:
        with _LOCK:
            _FAILURES[name] += 1
            failures = _FAILURES[name]
            if failures >= BACKOFF_AFTER_FAILURES:
                backoff = min(2 ** failures, MAX_BACKOFF_SECONDS)
                _BACKOFF_UNTIL[name] = time.time() + backoff
                print(f"[Router] {name} backing off for {backoff}s after {failures} failures")

    def record_success(self, name: str) -> None:
        with _LOCK:
            _FAILURES[name] = 0
            _BACKOFF_UNTIL[name] = 0.0


def reset_health() -> None:
    """Forget all failure history."""
    with _LOCK:
        _FAILURES.clear()
        _BACKOFF_UNTIL.clear()
