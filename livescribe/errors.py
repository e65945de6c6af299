"""
Exceptions and user-facing messages.

Nothing raised here is fatal to a dictation session: decode errors drop a
line, edit errors leave the document untouched and notify the user.
"""


class LiveScribeError(Exception):
    """Base class for all LiveScribe errors."""
    code = "LIVESCRIBE_ERROR"


class TranscriptDecodeError(LiveScribeError, ValueError):
    """A transport payload line could not be decoded."""
    code = "DECODE_ERROR"

    def __init__(self, message: str, line: str = ""):
        super().__init__(message)
        self.line = line


class TransportError(LiveScribeError):
    """The speech transport failed to start or died."""
    code = "TRANSPORT_ERROR"


class EditError(LiveScribeError):
    """An edit or fix request could not be completed."""
    code = "EDIT_FAILED"


class EditBusyError(EditError):
    code = "EDIT_BUSY"


class NoRegionError(EditError):
    code = "NO_REGION"


class EmptyResponseError(EditError):
    code = "EMPTY_RESPONSE"


ERROR_MESSAGES = {
    TranscriptDecodeError.code: "Transcript line could not be decoded.",
    TransportError.code: "Speech transport stopped unexpectedly.",
    EditError.code: "Edit failed, text left unchanged.",
    EditBusyError.code: "Another edit is still running.",
    NoRegionError.code: "Nothing to edit here.",
    EmptyResponseError.code: "Language model returned nothing, text left unchanged.",
}


def user_message(exc: Exception) -> str:
    """Message suitable for the notification channel."""
    code = getattr(exc, "code", None)
    base = ERROR_MESSAGES.get(code, ERROR_MESSAGES[EditError.code])
    detail = str(exc)
    if detail and detail != base:
        return f"{base} ({detail[:80]})"
    return base
