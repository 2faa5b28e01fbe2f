"""State-machine based recognition session orchestration."""

from __future__ import annotations

import threading
import time
from functools import partial
from typing import Callable, Optional

from loguru import logger

from errors import (
    INVALID_STATE,
    NOT_ALLOWED,
    NOT_ALLOWED_ERROR,
    SPEECH_DISABLED,
    TEMPORARILY_UNAVAILABLE,
    EngineError,
    UnsupportedError,
    message_for,
)
from interfaces import EngineFactory, ListeningTarget, Notifier, ResultHandler, Scheduler, SpeechEngine, TimerHandle
from models import (
    RecognitionEvent,
    RecognitionKind,
    RecognitionSession,
    RecoveryPolicy,
    SessionState,
    Severity,
    StopReason,
)

StateCallback = Callable[[SessionState, SessionState], None]
Clock = Callable[[], int]

LISTENING_STATUS = "Listening... (speak now)"
RECOVERED_STATUS = "Listening... (recovered)"


def now_ms() -> int:
    return int(time.time() * 1000)


class RecognitionSessionController:
    """Owns the single active recognition session of the application.

    One controller is shared by every UI component that needs speech input;
    what happens with recognized text is decided by the ``ResultHandler``
    passed to :meth:`start_listening`.

    Engine calls are never trusted: a failing ``start()`` is reclassified
    (busy engine, denied permission, other failure) and a busy engine is
    replaced by a fresh instance under the recovery policy. Events are only
    accepted from the engine instance currently owned by the controller.
    """

    def __init__(
        self,
        engine_factory: Optional[EngineFactory],
        scheduler: Scheduler,
        notifier: Notifier,
        policy: Optional[RecoveryPolicy] = None,
        inactivity_timeout_ms: int = 5000,
        lang: str = "en-US",
        clock: Optional[Clock] = None,
        on_state_change: Optional[StateCallback] = None,
    ) -> None:
        self._engine_factory = engine_factory
        self._scheduler = scheduler
        self._notifier = notifier
        self._policy = policy or RecoveryPolicy()
        self._inactivity_timeout_ms = inactivity_timeout_ms
        self._lang = lang
        self._clock = clock or now_ms
        self._on_state_change = on_state_change

        self._lock = threading.RLock()
        self._state = SessionState.IDLE
        self._session: Optional[RecognitionSession] = None
        self._session_counter = 0
        self._engine: Optional[SpeechEngine] = None
        self._inactivity_timer: Optional[TimerHandle] = None
        self._retry_timer: Optional[TimerHandle] = None
        self._indicator_on = False
        self._speech_enabled = True
        self._recovery_attempts = 0
        self._last_recovery_ms: Optional[int] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session(self) -> Optional[RecognitionSession]:
        return self._session

    @property
    def active_target(self) -> Optional[ListeningTarget]:
        return self._session.target if self._session else None

    @property
    def is_listening(self) -> bool:
        return self._state in (SessionState.LISTENING, SessionState.RECOVERING)

    @property
    def is_supported(self) -> bool:
        return self._engine_factory is not None

    @property
    def speech_enabled(self) -> bool:
        return self._speech_enabled

    @property
    def recovery_attempts(self) -> int:
        return self._recovery_attempts

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def start_listening(self, target: ListeningTarget, handler: ResultHandler, seed: str = "") -> bool:
        """Start a session bound to ``target``; returns False if it ended immediately.

        Raises UnsupportedError when no speech engine is available.
        """
        with self._lock:
            if self._engine_factory is None:
                raise UnsupportedError()
            if not self._speech_enabled:
                self._notifier.show_toast(message_for(SPEECH_DISABLED), Severity.ERROR)
                return False
            if self._ui_out_of_sync(target):
                logger.warning("Listening indicator disagrees with session state, forcing reset")
                self._hard_reset(target)
            if self._session is not None:
                self._end_session(StopReason.SUPERSEDED)

            self._session_counter += 1
            self._session = RecognitionSession(
                session_id=self._session_counter,
                target=target,
                handler=handler,
                final_transcript=(seed or "").strip(),
            )
            self._transition(SessionState.STARTING)
            self._launch_engine()
            return self._session is not None

    def stop_listening(self) -> None:
        with self._lock:
            if self._session is None:
                return
            self._end_session(StopReason.USER)
            self._reset_recovery()

    def toggle_listening(self, target: ListeningTarget, handler: ResultHandler, seed: str = "") -> bool:
        with self._lock:
            if self._session is not None and self._session.target is target:
                self.stop_listening()
                return False
            return self.start_listening(target, handler, seed)

    def enable_speech(self) -> None:
        with self._lock:
            self._speech_enabled = True

    # ------------------------------------------------------------------
    # Engine lifecycle
    # ------------------------------------------------------------------

    def _launch_engine(self, retry: bool = False) -> None:
        session = self._session
        assert session is not None and self._engine_factory is not None
        try:
            engine = self._engine_factory()
        except Exception as exc:
            logger.error("Could not construct speech engine: {}", exc)
            self._notifier.show_toast(f"Speech error: {exc}", Severity.ERROR)
            self._end_session(StopReason.ERROR)
            return

        engine.continuous = session.handler.continuous
        engine.interim_results = session.handler.interim_results
        engine.lang = self._lang
        engine.on_event = partial(self._handle_engine_event, engine)
        self._engine = engine

        try:
            engine.start()
        except EngineError as exc:
            self._handle_start_failure(exc)
            return
        except Exception as exc:
            self._handle_start_failure(EngineError(type(exc).__name__, str(exc)))
            return

        if self._session is not session or self._engine is not engine:
            # The engine reported a failure synchronously from start().
            return
        self._transition(SessionState.LISTENING)
        self._set_indicator(session.target, True)
        self._arm_inactivity_timer()
        session.handler.handle_status(session.target, RECOVERED_STATUS if retry else LISTENING_STATUS)

    def _handle_start_failure(self, exc: EngineError) -> None:
        logger.warning("Engine start failed with {}: {}", exc.name, exc.message)
        self._discard_engine()
        if exc.name == INVALID_STATE:
            self._begin_recovery(INVALID_STATE)
        elif exc.name == NOT_ALLOWED_ERROR:
            self._deny_permission()
        else:
            self._notifier.show_toast(f"Speech error: {exc.message}", Severity.ERROR)
            self._end_session(StopReason.ERROR)

    def _begin_recovery(self, code: str) -> None:
        session = self._session
        if session is None:
            return
        self._discard_engine()
        self._cancel_inactivity_timer()

        now = self._clock()
        spaced = self._last_recovery_ms is None or now - self._last_recovery_ms >= self._policy.min_spacing_ms
        if self._recovery_attempts >= self._policy.max_attempts or not spaced:
            logger.error(
                "Recovery suppressed for {} after {} attempts (spaced={})",
                code,
                self._recovery_attempts,
                spaced,
            )
            message = message_for(TEMPORARILY_UNAVAILABLE)
            session.handler.handle_status(session.target, message)
            self._notifier.show_toast(message, Severity.WARNING)
            self._end_session(StopReason.EXHAUSTED)
            return

        delay = self._policy.delay_for(self._recovery_attempts)
        self._recovery_attempts += 1
        self._last_recovery_ms = now
        session.interim_transcript = ""
        self._transition(SessionState.RECOVERING)
        logger.info("Recovery attempt {} for {} in {} ms", self._recovery_attempts, code, delay)
        self._retry_timer = self._scheduler.call_later(delay, partial(self._retry, session.session_id))

    def _retry(self, session_id: int) -> None:
        with self._lock:
            self._retry_timer = None
            session = self._session
            if session is None or session.session_id != session_id or self._state != SessionState.RECOVERING:
                logger.debug("Dropping stale recovery callback for session {}", session_id)
                return
            self._launch_engine(retry=True)

    def _deny_permission(self) -> None:
        logger.error("Microphone permission denied, disabling speech input")
        self._speech_enabled = False
        self._discard_engine()
        self._notifier.show_toast(message_for(NOT_ALLOWED), Severity.ERROR)
        self._end_session(StopReason.PERMISSION_DENIED)

    # ------------------------------------------------------------------
    # Engine events
    # ------------------------------------------------------------------

    def _handle_engine_event(self, engine: SpeechEngine, event: RecognitionEvent) -> None:
        with self._lock:
            if engine is not self._engine or self._session is None:
                logger.debug("Ignoring {} event from a replaced engine", event.kind)
                return
            kind = event.kind
            if kind == RecognitionKind.START.value:
                self._session.confirmed = True
            elif kind in (RecognitionKind.PARTIAL.value, RecognitionKind.FINAL.value):
                self._handle_result(event)
            elif kind == RecognitionKind.ERROR.value:
                self._handle_error(event)
            elif kind == RecognitionKind.END.value:
                self._session.confirmed = False
                self._engine = None
                self._end_session(StopReason.ENDED)

    def _handle_result(self, event: RecognitionEvent) -> None:
        session = self._session
        assert session is not None
        handler, target = session.handler, session.target
        self._arm_inactivity_timer()

        if event.kind == RecognitionKind.PARTIAL.value:
            session.interim_transcript = event.text.strip()
            handler.handle_partial(target, session.transcript)
            return

        text = event.text.strip()
        session.interim_transcript = ""
        if text:
            session.final_transcript = f"{session.final_transcript} {text}".strip()
        transcript = session.transcript
        logger.debug("Final result: {!r} (confidence {:.2f})", text, event.confidence)

        if handler.continuous:
            handler.handle_final(target, transcript)
            return

        self._end_session(StopReason.RESULT, notify_handler=False)
        if transcript:
            handler.handle_final(target, transcript)
        handler.handle_stopped(target, StopReason.RESULT)

    def _handle_error(self, event: RecognitionEvent) -> None:
        session = self._session
        assert session is not None
        code = event.code
        logger.warning("Engine error {}: {}", code, event.message)
        if code == NOT_ALLOWED:
            self._deny_permission()
            return
        session.handler.handle_status(session.target, message_for(code))
        self._begin_recovery(code)

    def _handle_inactivity(self, session_id: int) -> None:
        with self._lock:
            self._inactivity_timer = None
            session = self._session
            if session is None or session.session_id != session_id or self._state != SessionState.LISTENING:
                return
            logger.info("Stopping session {} after {} ms without speech", session_id, self._inactivity_timeout_ms)
            self._end_session(StopReason.INACTIVITY)
            self._reset_recovery()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _end_session(self, reason: StopReason, notify_handler: bool = True) -> None:
        session = self._session
        if session is None:
            return
        self._cancel_inactivity_timer()
        self._cancel_retry_timer()
        engine = self._engine
        self._engine = None
        if engine is not None:
            self._safe_stop(engine)
        self._session = None
        self._set_indicator(session.target, False)
        self._transition(SessionState.IDLE)
        logger.debug("Session {} ended: {}", session.session_id, reason.value)
        if notify_handler:
            session.handler.handle_stopped(session.target, reason)

    def _hard_reset(self, target: ListeningTarget) -> None:
        session = self._session
        self._cancel_inactivity_timer()
        self._cancel_retry_timer()
        self._discard_engine()
        self._session = None
        self._indicator_on = False
        if session is not None and session.target is not target:
            session.target.set_listening(False)
        target.set_listening(False)
        self._transition(SessionState.IDLE)
        if session is not None:
            session.handler.handle_stopped(session.target, StopReason.RESET)

    def _ui_out_of_sync(self, target: ListeningTarget) -> bool:
        active = self.active_target
        if active is not None and active.listening_shown() != self._indicator_on:
            return True
        return active is not target and target.listening_shown()

    def _set_indicator(self, target: ListeningTarget, active: bool) -> None:
        self._indicator_on = active
        target.set_listening(active)

    def _arm_inactivity_timer(self) -> None:
        session = self._session
        if session is None:
            return
        self._cancel_inactivity_timer()
        session.inactivity_deadline_ms = self._clock() + self._inactivity_timeout_ms
        self._inactivity_timer = self._scheduler.call_later(
            self._inactivity_timeout_ms,
            partial(self._handle_inactivity, session.session_id),
        )

    def _cancel_inactivity_timer(self) -> None:
        if self._inactivity_timer is not None:
            self._inactivity_timer.cancel()
            self._inactivity_timer = None
        if self._session is not None:
            self._session.inactivity_deadline_ms = None

    def _cancel_retry_timer(self) -> None:
        if self._retry_timer is not None:
            self._retry_timer.cancel()
            self._retry_timer = None

    def _reset_recovery(self) -> None:
        self._recovery_attempts = 0
        self._last_recovery_ms = None

    def _discard_engine(self) -> None:
        engine = self._engine
        self._engine = None
        if engine is None:
            return
        engine.on_event = None
        self._safe_abort(engine)

    def _safe_stop(self, engine: SpeechEngine) -> None:
        try:
            engine.stop()
        except EngineError as exc:
            if exc.name == INVALID_STATE:
                logger.debug("Engine already stopped: {}", exc.message)
                return
            logger.warning("Engine stop failed with {}, aborting", exc.name)
            self._safe_abort(engine)
        except Exception as exc:
            logger.warning("Engine stop failed: {}, aborting", exc)
            self._safe_abort(engine)

    def _safe_abort(self, engine: SpeechEngine) -> None:
        try:
            engine.abort()
        except Exception as exc:
            logger.debug("Engine abort failed: {}", exc)

    def _transition(self, to_state: SessionState) -> None:
        from_state = self._state
        if from_state == to_state:
            return
        self._state = to_state
        if self._session is not None:
            self._session.state = to_state
        logger.debug("Session state {} -> {}", from_state.value, to_state.value)
        if self._on_state_change:
            self._on_state_change(from_state, to_state)
