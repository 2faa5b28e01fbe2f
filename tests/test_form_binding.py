from __future__ import annotations

from datetime import date

from errors import UNSUPPORTED, message_for
from fakes import FakeEngineFactory, FakeField, FakeFormSurface, FakeNotifier, FakeScheduler
from form_binding import SILENCE_STATUS, FormBindingAdapter
from models import FieldKind, MatchWeights, RecognitionKind, SelectOption, SessionState, Severity
from session_controller import LISTENING_STATUS, RecognitionSessionController

WORKOUT_OPTIONS = [
    SelectOption("", "Select..."),
    SelectOption("running", "Running"),
    SelectOption("cycling", "Cycling"),
    SelectOption("weights", "Weight training", disabled=True),
]


def _make(*fields: FakeField, weights: MatchWeights | None = None):  # noqa: ANN202
    scheduler = FakeScheduler()
    notifier = FakeNotifier()
    factory = FakeEngineFactory()
    controller = RecognitionSessionController(factory, scheduler, notifier, clock=lambda: scheduler.now)
    surface = FakeFormSurface(*fields)
    adapter = FormBindingAdapter(
        controller,
        surface,
        notifier,
        scheduler,
        weights=weights,
        today=lambda: date(2025, 3, 10),
    )
    adapter.start()
    return adapter, controller, factory, scheduler, surface


def _speak(factory: FakeEngineFactory, text: str) -> None:
    factory.last.emit(RecognitionKind.FINAL, text=text)


# ---------------------------------------------------------------
# Attaching controls
# ---------------------------------------------------------------


def test_start_attaches_controls_once_per_field() -> None:
    name = FakeField("meal-name", FieldKind.TEXT)
    calories = FakeField("meal-calories", FieldKind.NUMBER)
    adapter, *_ = _make(name, calories)

    assert name.has_controls() and calories.has_controls()
    assert adapter.scan() == 0


def test_fields_added_later_are_picked_up() -> None:
    adapter, _, _, _, surface = _make(FakeField("meal-name", FieldKind.TEXT))
    late = FakeField("sleep-notes", FieldKind.TEXTAREA)

    surface.add(late)

    assert late.has_controls()
    assert adapter.scan() == 0


# ---------------------------------------------------------------
# Filling fields
# ---------------------------------------------------------------


def test_text_field_receives_full_transcript_after_existing_value() -> None:
    field = FakeField("workout-name", FieldKind.TEXT, value="Morning")
    _, controller, factory, _, _ = _make(field)

    field.on_start()
    engine = factory.last
    assert engine.continuous is True
    assert engine.interim_results is True
    assert field.listening is True
    assert field.status == LISTENING_STATUS

    engine.emit(RecognitionKind.PARTIAL, text="ru")
    assert field.value == "Morning ru"
    assert field.status == "Hearing: Morning ru"

    engine.emit(RecognitionKind.FINAL, text="run")
    assert field.value == "Morning run"
    assert controller.state == SessionState.LISTENING


def test_number_field_only_written_when_parsed() -> None:
    field = FakeField("meal-calories", FieldKind.NUMBER, value="10")
    _, _, factory, _, _ = _make(field)

    field.on_start()
    _speak(factory, "hello there")
    assert field.value == "10"

    _speak(factory, "about two hundred fifty")
    assert field.value == "250"


def test_date_field_uses_reference_day() -> None:
    field = FakeField("workout-date", FieldKind.DATE)
    _, _, factory, _, _ = _make(field)

    field.on_start()
    _speak(factory, "tomorrow")

    assert field.value == "2025-03-11"


def test_time_field_parses_spoken_time() -> None:
    field = FakeField("sleep-start", FieldKind.TIME, value="22:00")
    _, _, factory, _, _ = _make(field)

    field.on_start()
    _speak(factory, "half past seven pm")

    assert field.value == "19:30"


def test_select_field_picks_best_enabled_option() -> None:
    field = FakeField("workout-type", FieldKind.SELECT, options=WORKOUT_OPTIONS)
    _, _, factory, _, _ = _make(field)

    field.on_start()
    _speak(factory, "I went cycling")

    assert field.value == "cycling"
    assert "Selected: Cycling" in field.statuses


def test_select_field_ignores_disabled_and_weak_matches() -> None:
    field = FakeField("workout-type", FieldKind.SELECT, options=WORKOUT_OPTIONS)
    _, _, factory, _, _ = _make(field)

    field.on_start()
    _speak(factory, "weight training")

    assert field.value == ""


def test_match_threshold_is_configurable() -> None:
    field = FakeField("workout-type", FieldKind.SELECT, options=WORKOUT_OPTIONS)
    _, _, factory, _, _ = _make(field, weights=MatchWeights(threshold=0.95))

    field.on_start()
    _speak(factory, "I went cycling")

    assert field.value == ""


# ---------------------------------------------------------------
# Stopping and status
# ---------------------------------------------------------------


def test_silence_stops_listening_and_status_clears() -> None:
    field = FakeField("meal-name", FieldKind.TEXT)
    _, controller, _, scheduler, _ = _make(field)

    field.on_start()
    scheduler.advance(5000)

    assert controller.state == SessionState.IDLE
    assert field.listening is False
    assert field.status == SILENCE_STATUS

    scheduler.advance(3000)
    assert field.status == ""


def test_stop_button_ends_session() -> None:
    field = FakeField("meal-name", FieldKind.TEXT)
    _, controller, factory, scheduler, _ = _make(field)

    field.on_start()
    field.on_stop()

    assert controller.state == SessionState.IDLE
    assert factory.last.stopped is True
    assert field.listening is False
    scheduler.advance(3000)
    assert field.status == ""


def test_status_clear_does_not_wipe_a_newer_session() -> None:
    field = FakeField("meal-name", FieldKind.TEXT)
    _, controller, _, scheduler, _ = _make(field)

    field.on_start()
    field.on_stop()
    field.on_start()
    scheduler.advance(3000)

    assert controller.state == SessionState.LISTENING
    assert field.status == LISTENING_STATUS


def test_starting_another_field_moves_the_session() -> None:
    first = FakeField("meal-name", FieldKind.TEXT)
    second = FakeField("meal-description", FieldKind.TEXTAREA)
    _, controller, factory, _, _ = _make(first, second)

    first.on_start()
    second.on_start()
    _speak(factory, "grilled chicken")

    assert first.listening is False
    assert second.listening is True
    assert controller.active_target is second
    assert second.value == "grilled chicken"
    assert first.value == ""


def test_stop_on_inactive_field_clears_stale_indicator() -> None:
    first = FakeField("meal-name", FieldKind.TEXT)
    second = FakeField("meal-description", FieldKind.TEXTAREA)
    _, controller, _, _, _ = _make(first, second)

    first.on_start()
    second.listening = True
    second.on_stop()

    assert second.listening is False
    assert controller.active_target is first


def test_unsupported_engine_is_reported_once() -> None:
    notifier = FakeNotifier()
    scheduler = FakeScheduler()
    controller = RecognitionSessionController(None, scheduler, notifier)
    field = FakeField("meal-name", FieldKind.TEXT)
    adapter = FormBindingAdapter(controller, FakeFormSurface(field), notifier, scheduler)
    adapter.start()

    assert adapter.start_listening_for(field) is False
    assert notifier.toasts == [(message_for(UNSUPPORTED), Severity.ERROR)]

    assert adapter.start_listening_for(field) is False
    assert len(notifier.toasts) == 1
