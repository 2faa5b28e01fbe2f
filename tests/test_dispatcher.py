from __future__ import annotations

from dispatcher import (
    ACTIVITY_MODAL,
    HABIT_MODAL,
    MEAL_MODAL,
    SLEEP_MODAL,
    STEPS_MODAL,
    CommandDispatcher,
    find_domain,
    has_trigger,
)
from errors import NO_DOMAIN, NO_TRIGGER, UNSUPPORTED, message_for
from fakes import FakeEngineFactory, FakeModalSurface, FakeNotifier, FakeScheduler, FakeTarget
from models import ActivityDetails, DispatchOutcome, RecognitionKind, SessionState, Severity
from session_controller import RecognitionSessionController

ALL_MODALS = (ACTIVITY_MODAL, MEAL_MODAL, SLEEP_MODAL, HABIT_MODAL, STEPS_MODAL)


def _make(*modal_ids: str, factory: FakeEngineFactory | None = None):  # noqa: ANN202
    notifier = FakeNotifier()
    controller = RecognitionSessionController(
        factory if factory is not None else FakeEngineFactory(),
        FakeScheduler(),
        notifier,
    )
    modals = FakeModalSurface(*(modal_ids or ALL_MODALS))
    return CommandDispatcher(controller, modals, notifier), modals, notifier, controller


# ---------------------------------------------------------------
# Trigger and domain detection
# ---------------------------------------------------------------


def test_trigger_words_match_whole_words_only() -> None:
    assert has_trigger("log a meal") is True
    assert has_trigger("please add my steps") is True
    assert has_trigger("blog about my meal") is False
    assert has_trigger("address book") is False


def test_domain_keywords_checked_in_order() -> None:
    assert find_domain("log a workout and a meal").name == "activity"
    assert find_domain("log my meals").name == "nutrition"
    assert find_domain("add some food").name == "nutrition"
    assert find_domain("log last night's sleep").name == "sleep"
    assert find_domain("log 9000 steps").name == "steps"
    assert find_domain("log something") is None


def test_command_without_trigger_never_reaches_a_form() -> None:
    dispatcher, modals, notifier, _ = _make()

    result = dispatcher.dispatch("running thirty minutes")

    assert result.outcome == DispatchOutcome.NO_TRIGGER
    assert modals.opened == []
    assert notifier.toasts == [(message_for(NO_TRIGGER), Severity.INFO)]


def test_command_without_domain_is_reported() -> None:
    dispatcher, modals, notifier, _ = _make()

    result = dispatcher.dispatch("log something")

    assert result.outcome == DispatchOutcome.NO_DOMAIN
    assert modals.opened == []
    assert notifier.toasts == [(message_for(NO_DOMAIN), Severity.WARNING)]


def test_empty_command_is_ignored() -> None:
    dispatcher, modals, notifier, _ = _make()
    assert dispatcher.dispatch("   ").outcome == DispatchOutcome.EMPTY
    assert notifier.toasts == []


def test_missing_modal_reports_feature_unavailable() -> None:
    dispatcher, modals, notifier, _ = _make(ACTIVITY_MODAL)

    result = dispatcher.dispatch("add a breakfast meal")

    assert result.outcome == DispatchOutcome.FEATURE_UNAVAILABLE
    assert result.domain == "nutrition"
    assert modals.opened == []
    assert notifier.toasts[-1] == ("Nutrition tracking feature is not available on this page", Severity.WARNING)


# ---------------------------------------------------------------
# Domain handlers
# ---------------------------------------------------------------


def test_activity_command_fills_workout_form() -> None:
    dispatcher, modals, notifier, _ = _make()

    result = dispatcher.dispatch("Log a running workout for 30 minutes burned 250 calories")

    assert result.outcome == DispatchOutcome.HANDLED
    assert result.details == ActivityDetails(name="Running workout", type="running", duration=30, calories=250)
    assert modals.opened == [ACTIVITY_MODAL]
    assert modals.forms[ACTIVITY_MODAL].values == {
        "workout-name": "Running workout",
        "workout-type": "running",
        "workout-duration": 30,
        "workout-calories": 250,
    }
    assert notifier.toasts[0] == ("Processing activity command...", Severity.INFO)
    assert notifier.toasts[-1] == (
        "Activity form opened. I heard: Name: Running workout, Type: running, Duration: 30 min, Calories: 250",
        Severity.SUCCESS,
    )


def test_command_without_details_still_opens_form() -> None:
    dispatcher, modals, notifier, _ = _make()

    result = dispatcher.dispatch("log activity")

    assert result.outcome == DispatchOutcome.HANDLED
    assert result.details is None
    assert modals.opened == [ACTIVITY_MODAL]
    assert modals.forms[ACTIVITY_MODAL].values == {}
    assert notifier.toasts[-1] == ("Activity form opened. Please fill in the details.", Severity.INFO)


def test_meal_command_fills_nutrition_form() -> None:
    dispatcher, modals, notifier, _ = _make()

    dispatcher.dispatch("add a lunch meal with 600 calories and 30 grams of protein")

    values = modals.forms[MEAL_MODAL].values
    assert values["meal-name"] == "Lunch meal"
    assert values["meal-category"] == "lunch"
    assert values["meal-calories"] == 600
    assert values["meal-protein"] == 30
    assert "Protein: 30g" in notifier.messages[-1]


def test_sleep_command_fills_sleep_form() -> None:
    dispatcher, modals, _, _ = _make()

    dispatcher.dispatch("log sleep went to bed at 11 pm and woke up at 7 am, it was good")

    assert modals.forms[SLEEP_MODAL].values == {
        "sleep-start": "23:00",
        "sleep-end": "07:00",
        "sleep-quality": "4",
    }


def test_habit_command_fills_habit_form() -> None:
    dispatcher, modals, _, _ = _make()

    dispatcher.dispatch("add a habit called no soda twice a day")

    values = modals.forms[HABIT_MODAL].values
    assert values["habit-name"] == "no soda"
    assert values["habit-frequency"] == 2
    assert values["habit-frequency-unit"] == "daily"


def test_steps_command_fills_steps_form() -> None:
    dispatcher, modals, notifier, _ = _make()

    result = dispatcher.dispatch("log 8,500 steps")

    assert result.filled == ["8500 steps"]
    assert modals.forms[STEPS_MODAL].values == {"steps-count": 8500}
    assert notifier.toasts[-1] == ("Steps form opened. I heard: 8500 steps", Severity.SUCCESS)


def test_unknown_workout_type_is_reported_but_not_selected() -> None:
    dispatcher, modals, notifier, _ = _make()

    dispatcher.dispatch("log a workout of type yoga")

    assert "workout-type" not in modals.forms[ACTIVITY_MODAL].values
    assert "Type: yoga" in notifier.messages[-1]


# ---------------------------------------------------------------
# Voice flow
# ---------------------------------------------------------------


def test_final_result_is_dispatched_and_session_ends() -> None:
    factory = FakeEngineFactory()
    dispatcher, modals, notifier, controller = _make(factory=factory)
    button = FakeTarget()

    assert dispatcher.toggle_listening(button) is True
    engine = factory.last
    assert engine.continuous is False
    assert engine.interim_results is False

    engine.emit(RecognitionKind.FINAL, text="log 8,500 steps")

    assert ("Heard: log 8,500 steps", Severity.INFO) in notifier.toasts
    assert modals.opened == [STEPS_MODAL]
    assert controller.state == SessionState.IDLE
    assert button.listening is False


def test_toggle_twice_stops_listening() -> None:
    dispatcher, _, _, controller = _make()
    button = FakeTarget()

    dispatcher.toggle_listening(button)
    assert dispatcher.toggle_listening(button) is False
    assert controller.state == SessionState.IDLE


def test_toggle_without_engine_reports_unsupported_once() -> None:
    notifier = FakeNotifier()
    controller = RecognitionSessionController(None, FakeScheduler(), notifier)
    dispatcher = CommandDispatcher(controller, FakeModalSurface(*ALL_MODALS), notifier)

    assert dispatcher.toggle_listening(FakeTarget()) is False
    assert notifier.toasts == [(message_for(UNSUPPORTED), Severity.ERROR)]

    assert dispatcher.toggle_listening(FakeTarget()) is False
    assert len(notifier.toasts) == 1
