"""Shared error codes, engine error names and user-facing messages."""

from __future__ import annotations

# Engine error codes delivered with ``error`` events.
NO_SPEECH = "no-speech"
ABORTED = "aborted"
AUDIO_CAPTURE = "audio-capture"
NETWORK = "network"
NOT_ALLOWED = "not-allowed"
SERVICE_NOT_ALLOWED = "service-not-allowed"
BAD_GRAMMAR = "bad-grammar"
LANGUAGE_NOT_SUPPORTED = "language-not-supported"

TRANSIENT_CODES = frozenset(
    {
        NO_SPEECH,
        ABORTED,
        AUDIO_CAPTURE,
        NETWORK,
        SERVICE_NOT_ALLOWED,
        BAD_GRAMMAR,
        LANGUAGE_NOT_SUPPORTED,
    }
)

# Names carried by EngineError, raised synchronously from start/stop/abort.
INVALID_STATE = "InvalidStateError"
NOT_ALLOWED_ERROR = "NotAllowedError"
NOT_FOUND_ERROR = "NotFoundError"

# Controller / dispatcher outcomes.
UNSUPPORTED = "UNSUPPORTED"
TEMPORARILY_UNAVAILABLE = "TEMPORARILY_UNAVAILABLE"
SPEECH_DISABLED = "SPEECH_DISABLED"
NO_TRIGGER = "NO_TRIGGER"
NO_DOMAIN = "NO_DOMAIN"

ERROR_MESSAGES = {
    NO_SPEECH: "No speech detected. Please try again.",
    ABORTED: "Recognition aborted.",
    AUDIO_CAPTURE: "Could not capture audio. Please check your microphone.",
    NETWORK: "Network error occurred. Please check your connection.",
    NOT_ALLOWED: "Microphone access denied. Please check your permissions.",
    SERVICE_NOT_ALLOWED: "Speech service not allowed.",
    BAD_GRAMMAR: "Bad grammar configuration.",
    LANGUAGE_NOT_SUPPORTED: "Language not supported.",
    INVALID_STATE: "Speech recognition is busy. Please try again in a moment.",
    UNSUPPORTED: "Speech recognition is not supported on this system.",
    TEMPORARILY_UNAVAILABLE: "Speech recognition temporarily unavailable. Please try again in a moment.",
    SPEECH_DISABLED: "Speech input is disabled until microphone access is granted.",
    NO_TRIGGER: 'Commands should start with "log" or "add". Try "log an activity" or "add a meal".',
    NO_DOMAIN: 'Could not determine what to log. Try "log activity", "log meal", "log sleep", etc.',
}


def message_for(code: str) -> str:
    return ERROR_MESSAGES.get(code, "Error in speech recognition.")


class SpeechError(Exception):
    """Base class for voice entry errors."""


class UnsupportedError(SpeechError):
    def __init__(self, message: str = ERROR_MESSAGES[UNSUPPORTED]) -> None:
        super().__init__(message)


class EngineError(SpeechError):
    """Synchronous failure reported by a speech engine call.

    ``name`` mirrors the platform exception name (``InvalidStateError``,
    ``NotAllowedError``, ``NotFoundError``) so callers can reclassify it.
    """

    def __init__(self, name: str, message: str = "") -> None:
        super().__init__(message or name)
        self.name = name
        self.message = message or name
