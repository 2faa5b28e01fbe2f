"""Protocol interfaces used by the controller, dispatcher and form binding."""

from __future__ import annotations

from datetime import date
from typing import Callable, Iterable, Optional, Protocol

from models import FieldKind, RecognitionEvent, RecoveryPolicy, MatchWeights, SelectOption, Severity, StopReason


class SpeechEngine(Protocol):
    continuous: bool
    interim_results: bool
    lang: str
    on_event: Optional[Callable[[RecognitionEvent], None]]

    def start(self) -> None: ...

    def stop(self) -> None: ...

    def abort(self) -> None: ...


EngineFactory = Callable[[], SpeechEngine]


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle: ...


class Notifier(Protocol):
    def show_toast(self, message: str, severity: Severity = Severity.INFO) -> None: ...


class ListeningTarget(Protocol):
    """UI element a session is bound to; owns the visual listening indicator."""

    def set_listening(self, active: bool) -> None: ...

    def listening_shown(self) -> bool: ...


class ResultHandler(Protocol):
    continuous: bool
    interim_results: bool

    def handle_partial(self, target: ListeningTarget, transcript: str) -> None: ...

    def handle_final(self, target: ListeningTarget, transcript: str) -> None: ...

    def handle_status(self, target: ListeningTarget, message: str) -> None: ...

    def handle_stopped(self, target: ListeningTarget, reason: StopReason) -> None: ...


class FormTarget(Protocol):
    def set_text(self, field_id: str, value: str) -> bool: ...

    def set_number(self, field_id: str, value: float) -> bool: ...

    def set_date(self, field_id: str, value: str) -> bool: ...

    def set_time(self, field_id: str, value: str) -> bool: ...

    def set_selection(self, field_id: str, value: str) -> bool: ...


class ModalSurface(Protocol):
    def has_modal(self, modal_id: str) -> bool: ...

    def open_modal(self, modal_id: str) -> FormTarget: ...


class FieldHandle(ListeningTarget, Protocol):
    key: str
    kind: FieldKind

    def has_controls(self) -> bool: ...

    def attach_controls(self, on_start: Callable[[], None], on_stop: Callable[[], None]) -> None: ...

    def current_value(self) -> str: ...

    def set_value(self, value: str) -> None: ...

    def options(self) -> list[SelectOption]: ...

    def set_status(self, message: str) -> None: ...


class FormSurface(Protocol):
    def eligible_fields(self) -> Iterable[FieldHandle]: ...

    def watch(self, on_change: Callable[[], None]) -> None: ...


class ConfigStore(Protocol):
    def get_api_key(self) -> str: ...

    def set_api_key(self, key: str) -> None: ...

    def get_hotkey(self) -> str: ...

    def set_hotkey(self, hotkey: str) -> None: ...

    def get_lang(self) -> str: ...

    def get_inactivity_timeout_ms(self) -> int: ...

    def get_recovery_policy(self) -> RecoveryPolicy: ...

    def get_match_weights(self) -> MatchWeights: ...

    def get_log_level(self) -> str: ...


DateProvider = Callable[[], date]
