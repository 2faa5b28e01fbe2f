"""Speech input for arbitrary form fields."""

from __future__ import annotations

from datetime import date
from functools import partial
from typing import Optional

from loguru import logger

from errors import UnsupportedError
from interfaces import DateProvider, FieldHandle, FormSurface, Notifier, Scheduler
from models import FieldKind, MatchWeights, Severity, StopReason
from parsers import choose_option, parse_date, parse_number, parse_time
from session_controller import RecognitionSessionController

SILENCE_STATUS = "Stopped listening due to silence"
FREE_TEXT_KINDS = (FieldKind.TEXT, FieldKind.TEXTAREA)


class FieldFillHandler:
    """Writes each transcript into the bound field using the field's parser."""

    continuous = True
    interim_results = True

    def __init__(
        self,
        scheduler: Scheduler,
        weights: Optional[MatchWeights] = None,
        status_clear_ms: int = 3000,
        today: DateProvider = date.today,
    ) -> None:
        self._scheduler = scheduler
        self._weights = weights or MatchWeights()
        self._status_clear_ms = status_clear_ms
        self._today = today
        self._status_tokens: dict[str, int] = {}

    def fill(self, field: FieldHandle, transcript: str) -> Optional[str]:
        """Write ``transcript`` into ``field``; returns the value written, if any."""
        value: Optional[str] = None
        kind = field.kind
        if kind == FieldKind.DATE:
            value = parse_date(transcript, self._today())
        elif kind == FieldKind.TIME:
            value = parse_time(transcript)
        elif kind == FieldKind.NUMBER:
            number = parse_number(transcript)
            value = None if number is None else str(number)
        elif kind == FieldKind.SELECT:
            option = choose_option(transcript, field.options(), self._weights)
            if option is not None:
                value = option.value
                field.set_status(f"Selected: {option.label}")
        else:
            value = transcript
        if value is not None:
            field.set_value(value)
        return value

    def handle_partial(self, target: FieldHandle, transcript: str) -> None:
        self._set_status(target, f"Hearing: {transcript}")
        self.fill(target, transcript)

    def handle_final(self, target: FieldHandle, transcript: str) -> None:
        self._set_status(target, "Listening... (speak now)")
        self.fill(target, transcript)

    def handle_status(self, target: FieldHandle, message: str) -> None:
        self._set_status(target, message)

    def handle_stopped(self, target: FieldHandle, reason: StopReason) -> None:
        if reason == StopReason.INACTIVITY:
            self._set_status(target, SILENCE_STATUS)
        token = self._status_tokens.get(target.key, 0)
        self._scheduler.call_later(self._status_clear_ms, partial(self._clear_status, target, token))

    def _set_status(self, target: FieldHandle, message: str) -> None:
        self._status_tokens[target.key] = self._status_tokens.get(target.key, 0) + 1
        target.set_status(message)

    def _clear_status(self, target: FieldHandle, token: int) -> None:
        if self._status_tokens.get(target.key, 0) == token:
            target.set_status("")


class FormBindingAdapter:
    """Attaches start/stop speech controls to every eligible field of a surface.

    The surface reports structural changes (new dialogs, new fields); each
    report triggers a rescan, and fields that already carry controls are
    skipped.
    """

    def __init__(
        self,
        controller: RecognitionSessionController,
        surface: FormSurface,
        notifier: Notifier,
        scheduler: Scheduler,
        weights: Optional[MatchWeights] = None,
        status_clear_ms: int = 3000,
        today: DateProvider = date.today,
    ) -> None:
        self._controller = controller
        self._surface = surface
        self._notifier = notifier
        self._unsupported_reported = False
        self.handler = FieldFillHandler(scheduler, weights, status_clear_ms, today)

    def start(self) -> None:
        self.scan()
        self._surface.watch(self.scan)

    def scan(self) -> int:
        attached = 0
        for field in self._surface.eligible_fields():
            if field.has_controls():
                continue
            field.attach_controls(partial(self.start_listening_for, field), partial(self.stop_listening_for, field))
            attached += 1
        if attached:
            logger.debug("Attached speech controls to {} new field(s)", attached)
        return attached

    def start_listening_for(self, field: FieldHandle) -> bool:
        seed = field.current_value() if field.kind in FREE_TEXT_KINDS else ""
        try:
            return self._controller.start_listening(field, self.handler, seed)
        except UnsupportedError as exc:
            if not self._unsupported_reported:
                self._unsupported_reported = True
                self._notifier.show_toast(str(exc), Severity.ERROR)
            return False

    def stop_listening(self) -> None:
        self._controller.stop_listening()

    def stop_listening_for(self, field: FieldHandle) -> None:
        if self._controller.active_target is field:
            self._controller.stop_listening()
        elif field.listening_shown():
            logger.debug("Clearing stale listening indicator on {}", field.key)
            field.set_listening(False)
