"""Core data models for voice entry."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class SessionState(str, Enum):
    IDLE = "IDLE"
    STARTING = "STARTING"
    LISTENING = "LISTENING"
    RECOVERING = "RECOVERING"


class RecognitionKind(str, Enum):
    START = "start"
    PARTIAL = "partial"
    FINAL = "final"
    ERROR = "error"
    END = "end"


class StopReason(str, Enum):
    USER = "user"
    INACTIVITY = "inactivity"
    RESULT = "result"
    ENDED = "ended"
    SUPERSEDED = "superseded"
    PERMISSION_DENIED = "permission_denied"
    EXHAUSTED = "exhausted"
    ERROR = "error"
    RESET = "reset"


class Severity(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class FieldKind(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    TIME = "time"
    TEXTAREA = "textarea"
    SELECT = "select"


@dataclass
class RecognitionEvent:
    kind: str
    text: str = ""
    code: str = ""
    message: str = ""
    confidence: float = 0.0


@dataclass(frozen=True)
class RecoveryPolicy:
    max_attempts: int = 5
    backoff_ms: tuple[int, ...] = (500, 1000, 2000, 3000, 5000)
    min_spacing_ms: int = 10000

    def delay_for(self, attempt: int) -> int:
        """Backoff delay for a zero-based attempt index, clamped to the last rung."""
        if not self.backoff_ms:
            return 0
        return self.backoff_ms[min(attempt, len(self.backoff_ms) - 1)]


@dataclass(frozen=True)
class MatchWeights:
    threshold: float = 0.5
    contains: float = 0.9
    contained: float = 0.8


@dataclass
class RecognitionSession:
    session_id: int
    target: Any
    handler: Any
    state: SessionState = SessionState.STARTING
    final_transcript: str = ""
    interim_transcript: str = ""
    confirmed: bool = False
    recovered: bool = False
    inactivity_deadline_ms: Optional[int] = None

    @property
    def transcript(self) -> str:
        if self.interim_transcript:
            return f"{self.final_transcript} {self.interim_transcript}".strip()
        return self.final_transcript.strip()


@dataclass
class SelectOption:
    value: str
    label: str
    disabled: bool = False


# ---------------------------------------------------------------------------
# Parsed command results. Every field is optional; extractors return None
# instead of an all-empty record.
# ---------------------------------------------------------------------------


@dataclass
class ActivityDetails:
    name: Optional[str] = None
    type: Optional[str] = None
    duration: Optional[int] = None
    calories: Optional[int] = None
    distance: Optional[float] = None


@dataclass
class MealDetails:
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    calories: Optional[int] = None
    protein: Optional[int] = None
    carbs: Optional[int] = None
    fat: Optional[int] = None


@dataclass
class SleepDetails:
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    quality: Optional[int] = None
    notes: Optional[str] = None


@dataclass
class HabitDetails:
    name: Optional[str] = None
    description: Optional[str] = None
    frequency: Optional[int] = None
    frequency_unit: Optional[str] = None
    category: Optional[str] = None
    trigger: Optional[str] = None
    alternative: Optional[str] = None


@dataclass
class StepsDetails:
    steps: Optional[int] = None


class DispatchOutcome(str, Enum):
    HANDLED = "handled"
    EMPTY = "empty"
    NO_TRIGGER = "no_trigger"
    NO_DOMAIN = "no_domain"
    FEATURE_UNAVAILABLE = "feature_unavailable"


@dataclass
class DispatchResult:
    outcome: DispatchOutcome
    domain: Optional[str] = None
    details: Any = None
    filled: list[str] = field(default_factory=list)
