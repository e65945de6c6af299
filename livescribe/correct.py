"""
Language-model collaborators for targeted edits and general cleanup.

make_edits(): apply a spoken instruction to a region of dictated text.
fix_content(): clean disfluencies and embedded edit requests from a region.

Both are few-shot primed and routed to the best available provider.
Failures are logged and reported as an empty string; callers leave the
document untouched in that case.
"""

import threading
import time
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Tuple

import requests

from .router import LLMProvider, LLMRouter
from .types import ConfigSnapshot, LLMEditResult

if TYPE_CHECKING:
    from .session import UtteranceHistory


Message = Dict[str, str]

# Persistent sessions for connection reuse
_openrouter_session = requests.Session()
_gemini_session = requests.Session()

_groq_client = None
_groq_client_key = None
_groq_lock = threading.Lock()


def _get_groq_client(api_key: str):
    """Lazy-load Groq client. Thread-safe, recreated on key change."""
    global _groq_client, _groq_client_key

    if _groq_client is not None and _groq_client_key == api_key:
        return _groq_client

    with _groq_lock:
        if _groq_client is not None and _groq_client_key == api_key:
            return _groq_client

        from groq import Groq
        _groq_client = Groq(api_key=api_key)
        _groq_client_key = api_key

    return _groq_client


DEFAULT_EDIT_PROMPT = """You are an editing assistant for dictated text.

You receive CONTENT and an INSTRUCTION spoken by the author. Correct the
content according to the instruction and nothing else.

- Preserve the original case unless the instruction says otherwise
- Keep every part of the content the instruction does not touch
- Return only the corrected content, no explanations or quotes"""


DEFAULT_FIX_PROMPT = """You are a transcription assistant that cleans up dictated text.

Clean up:
- Remove filler sounds and false starts: "um", "uh", "er", repeated words
- Apply edit requests embedded in the speech and drop the request itself
  Examples: "Tuesday, no wait, Friday" -> "Friday"
            "delete that last sentence" -> remove the previous sentence
- Fix grammar and punctuation

Do not invent new information. Keep the speaker's meaning, wording and tone.

Return only the cleaned text."""


# (content, instruction, corrected)
EDIT_EXAMPLES: List[Tuple[str, str, str]] = [
    (
        "I met with Jon Smyth yesterday to go over the budget.",
        "the name is spelled J O H N S M I T H",
        "I met with John Smith yesterday to go over the budget.",
    ),
    (
        "we should ship the release on tuesday after the review",
        "capitalize the day of the week",
        "we should ship the release on Tuesday after the review",
    ),
    (
        "The results were good. The results were very good overall.",
        "remove the first sentence",
        "The results were very good overall.",
    ),
    (
        "Please send the report to the team by end of day.",
        "make it more formal",
        "Kindly send the report to the team by the end of the day.",
    ),
]

# (disfluent, cleaned)
FIX_EXAMPLES: List[Tuple[str, str]] = [
    (
        "so um I think we should uh go to the the store later",
        "So I think we should go to the store later.",
    ),
    (
        "send it to John, I mean Jane, by Friday",
        "Send it to Jane by Friday.",
    ),
    (
        "the meeting is at three no wait four o'clock in room twelve",
        "The meeting is at four o'clock in room twelve.",
    ),
    (
        "we need more tests. actually scratch that. we need better tests",
        "We need better tests.",
    ),
]


def _edit_request(content: str, command: str) -> str:
    return f"CONTENT:\n{content}\n\nINSTRUCTION: {command}"


def build_edit_messages(content: str, command: str, system_prompt: str = "") -> List[Message]:
    """Chat messages for an instruction-driven edit, few-shot primed."""
    messages: List[Message] = [{"role": "system", "content": system_prompt or DEFAULT_EDIT_PROMPT}]
    for example_content, instruction, corrected in EDIT_EXAMPLES:
        messages.append({"role": "user", "content": _edit_request(example_content, instruction)})
        messages.append({"role": "assistant", "content": corrected})
    messages.append({"role": "user", "content": _edit_request(content, command)})
    return messages


def build_fix_messages(content: str, system_prompt: str = "", history_context: str = "") -> List[Message]:
    """Chat messages for general cleanup, few-shot primed."""
    system = system_prompt or DEFAULT_FIX_PROMPT
    if history_context:
        system += f"\n\nPrevious dictation (for reference only, do not include in output): {history_context}"

    messages: List[Message] = [{"role": "system", "content": system}]
    for raw, cleaned in FIX_EXAMPLES:
        messages.append({"role": "user", "content": raw})
        messages.append({"role": "assistant", "content": cleaned})
    messages.append({"role": "user", "content": content})
    return messages


def make_edits(
    content: str,
    command: Optional[str],
    config: ConfigSnapshot,
    on_metadata: Optional[Callable[[LLMEditResult], None]] = None,
) -> str:
    """
    Apply a spoken instruction to content.

    Without a command this falls back to general cleanup.

    Returns:
        Edited text, or "" if every provider failed
    """
    if not command:
        return fix_content(content, config, on_metadata=on_metadata)
    if not content.strip():
        return ""

    messages = build_edit_messages(content, command, config.edit_prompt)
    return _complete("edit", messages, content, config, on_metadata)


def fix_content(
    content: str,
    config: ConfigSnapshot,
    history_context: str = "",
    on_metadata: Optional[Callable[[LLMEditResult], None]] = None,
) -> str:
    """
    Clean disfluencies and embedded edit requests from content.

    Returns:
        Cleaned text, or "" if every provider failed
    """
    if not content.strip():
        return ""

    messages = build_fix_messages(content, config.fix_prompt, history_context)
    return _complete("fix", messages, content, config, on_metadata)


def _complete(
    task: str,
    messages: List[Message],
    content: str,
    config: ConfigSnapshot,
    on_metadata: Optional[Callable[[LLMEditResult], None]],
) -> str:
    """Route, call, fall back once, report metadata."""
    word_count = len(content.split())
    router = LLMRouter(config)
    provider = router.select(task, word_count)

    if not provider:
        print("[LLM] No LLM API keys configured")
        return ""

    start = time.perf_counter()
    result = _call_provider(provider, messages, config)
    fallback_used = False

    if result:
        router.record_success(provider.name)
    else:
        router.record_failure(provider.name)
        fallback = router.fallback(exclude=provider.name)
        if fallback:
            print(f"[LLM] Falling back to {fallback.name}")
            result = _call_provider(fallback, messages, config)
            if result:
                router.record_success(fallback.name)
                provider = fallback
                fallback_used = True
            else:
                router.record_failure(fallback.name)

    if not result:
        print(f"[LLM] All providers failed ({task})")
        return ""

    elapsed = (time.perf_counter() - start) * 1000
    print(f"[LLM] {task} via {provider.name} ({word_count} words) -> {elapsed/1000:.2f}s")

    if on_metadata:
        on_metadata(LLMEditResult(
            text=result,
            task=task,
            provider=provider.name,
            model=provider.model,
            latency_ms=elapsed,
            fallback_used=fallback_used,
        ))

    return result


def _call_provider(provider: LLMProvider, messages: List[Message], config: ConfigSnapshot) -> str:
    if provider.name == "groq":
        return _call_groq(provider.model, messages, config)
    elif provider.name == "gemini":
        return _call_gemini(provider.model, messages, config)
    elif provider.name == "openrouter":
        return _call_openrouter(provider.model, messages, config)
    print(f"[LLM] Unknown provider: {provider.name}")
    return ""


def _call_groq(model: str, messages: List[Message], config: ConfigSnapshot) -> str:
    try:
        client = _get_groq_client(config.groq_api_key)
        completion = client.chat.completions.create(
            model=model,
            messages=messages,
            temperature=0.2,
            max_completion_tokens=2000,
            timeout=config.llm_timeout,
        )
        return (completion.choices[0].message.content or "").strip()
    except ImportError:
        print("[LLM] Groq package not installed")
        return ""
    except Exception as e:
        print(f"[LLM] Groq error: {e}")
        return ""


def _to_gemini_contents(messages: List[Message]) -> Tuple[str, List[dict]]:
    """Split chat messages into a system instruction and Gemini contents."""
    system = ""
    contents = []
    for message in messages:
        if message["role"] == "system":
            system = message["content"]
            continue
        role = "model" if message["role"] == "assistant" else "user"
        contents.append({"role": role, "parts": [{"text": message["content"]}]})
    return system, contents


def _call_gemini(model: str, messages: List[Message], config: ConfigSnapshot) -> str:
    url = f"https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
    system, contents = _to_gemini_contents(messages)

    data = {
        "contents": contents,
        "generationConfig": {
            "temperature": 0.2,
            "maxOutputTokens": 2000,
            "thinkingConfig": {"thinkingBudget": 0},
        },
    }
    if system:
        data["systemInstruction"] = {"parts": [{"text": system}]}

    try:
        response = _gemini_session.post(
            url,
            params={"key": config.gemini_api_key},
            json=data,
            timeout=config.llm_timeout,
        )

        if response.status_code != 200:
            print(f"[LLM] Gemini API error: {response.status_code}")
            return ""

        result = response.json()
        parts = result.get("candidates", [{}])[0].get("content", {}).get("parts", [{}])
        return "".join(part.get("text", "") for part in parts).strip()

    except (requests.RequestException, ValueError, IndexError) as e:
        print(f"[LLM] Gemini error: {e}")
        return ""


def _call_openrouter(model: str, messages: List[Message], config: ConfigSnapshot) -> str:
    headers = {
        "Authorization": f"Bearer {config.openrouter_api_key}",
        "Content-Type": "application/json",
    }

    data = {
        "model": model,
        "messages": messages,
        "temperature": 0.2,
        "max_tokens": 2000,
    }

    try:
        response = _openrouter_session.post(
            "https://openrouter.ai/api/v1/chat/completions",
            headers=headers,
            json=data,
            timeout=config.llm_timeout,
        )

        if response.status_code != 200:
            print(f"[LLM] OpenRouter API error: {response.status_code}")
            return ""

        result = response.json()
        if "error" in result:
            print(f"[LLM] OpenRouter error: {result['error']}")
            return ""
        return (result["choices"][0]["message"].get("content") or "").strip()

    except (requests.RequestException, ValueError, KeyError, IndexError) as e:
        print(f"[LLM] OpenRouter error: {e}")
        return ""


class LLMBackend:
    """
    Edit/fix collaborator bound to a config snapshot.

    The engine only needs make_edits() and fix_content(); tests swap in any
    object with the same two methods.
    """

    def __init__(
        self,
        config: ConfigSnapshot,
        history: Optional["UtteranceHistory"] = None,
        on_metadata: Optional[Callable[[LLMEditResult], None]] = None,
    ):
        self.config = config
        self.history = history
        self.on_metadata = on_metadata

    def make_edits(self, content: str, command: Optional[str] = None) -> str:
        return make_edits(content, command, self.config, on_metadata=self.on_metadata)

    def fix_content(self, content: str) -> str:
        history_context = self.history.get_context() if self.history else ""
        return fix_content(content, self.config, history_context, on_metadata=self.on_metadata)
