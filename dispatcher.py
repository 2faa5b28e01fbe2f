"""Routes "log ..." voice commands to the matching tracker form."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Optional

from loguru import logger

from command_parsers import (
    HABIT_CATEGORIES,
    MEAL_CATEGORIES,
    WORKOUT_TYPES,
    extract_activity_details,
    extract_habit_details,
    extract_meal_details,
    extract_sleep_details,
    extract_steps_details,
)
from errors import NO_DOMAIN, NO_TRIGGER, UnsupportedError, message_for
from interfaces import FormTarget, ListeningTarget, ModalSurface, Notifier
from models import (
    ActivityDetails,
    DispatchOutcome,
    DispatchResult,
    HabitDetails,
    MealDetails,
    Severity,
    SleepDetails,
    StepsDetails,
    StopReason,
)
from parsers import find_best_match
from session_controller import RecognitionSessionController

ACTIVITY_MODAL = "addWorkoutModal"
MEAL_MODAL = "addMealModal"
SLEEP_MODAL = "addSleepModal"
HABIT_MODAL = "addHabitModal"
STEPS_MODAL = "addStepsModal"

TRIGGER_WORDS = ("log", "add")
_TRIGGER_RE = re.compile(r"\b(?:" + "|".join(TRIGGER_WORDS) + r")\b")


@dataclass(frozen=True)
class Domain:
    name: str
    label: str
    modal_id: str
    extract: Callable[[str], object]
    fill: Callable[[FormTarget, object], list[str]]


# ---------------------------------------------------------------------------
# Form fillers: each writes the parsed fields it has and returns the
# "I heard" fragments for the confirmation toast.
# ---------------------------------------------------------------------------


def _fill_activity(form: FormTarget, details: ActivityDetails) -> list[str]:
    heard = []
    if details.name:
        form.set_text("workout-name", details.name)
        heard.append(f"Name: {details.name}")
    if details.type:
        match = find_best_match(details.type, WORKOUT_TYPES)
        if match:
            form.set_selection("workout-type", match)
        heard.append(f"Type: {details.type}")
    if details.duration:
        form.set_number("workout-duration", details.duration)
        heard.append(f"Duration: {details.duration} min")
    if details.calories:
        form.set_number("workout-calories", details.calories)
        heard.append(f"Calories: {details.calories}")
    if details.distance:
        form.set_number("workout-distance", details.distance)
        heard.append(f"Distance: {details.distance} km")
    return heard


def _fill_meal(form: FormTarget, details: MealDetails) -> list[str]:
    heard = []
    if details.name:
        form.set_text("meal-name", details.name)
        heard.append(f"Name: {details.name}")
    if details.description:
        form.set_text("meal-description", details.description)
    if details.category:
        match = find_best_match(details.category, MEAL_CATEGORIES)
        if match:
            form.set_selection("meal-category", match)
        heard.append(f"Category: {details.category}")
    for field_id, label, value, unit in (
        ("meal-calories", "Calories", details.calories, ""),
        ("meal-protein", "Protein", details.protein, "g"),
        ("meal-carbs", "Carbs", details.carbs, "g"),
        ("meal-fat", "Fat", details.fat, "g"),
    ):
        if value:
            form.set_number(field_id, value)
            heard.append(f"{label}: {value}{unit}")
    return heard


def _fill_sleep(form: FormTarget, details: SleepDetails) -> list[str]:
    heard = []
    if details.start_time:
        form.set_time("sleep-start", details.start_time)
        heard.append(f"Went to bed: {details.start_time}")
    if details.end_time:
        form.set_time("sleep-end", details.end_time)
        heard.append(f"Woke up: {details.end_time}")
    if details.quality:
        form.set_selection("sleep-quality", str(details.quality))
        heard.append(f"Quality: {details.quality}/5")
    if details.notes:
        form.set_text("sleep-notes", details.notes)
        heard.append(f"Notes: {details.notes}")
    return heard


def _fill_habit(form: FormTarget, details: HabitDetails) -> list[str]:
    heard = []
    if details.name:
        form.set_text("habit-name", details.name)
        heard.append(f"Name: {details.name}")
    if details.description:
        form.set_text("habit-description", details.description)
    if details.frequency:
        form.set_number("habit-frequency", details.frequency)
    if details.frequency_unit:
        form.set_selection("habit-frequency-unit", details.frequency_unit)
    if details.frequency and details.frequency_unit:
        heard.append(f"Frequency: {details.frequency} {details.frequency_unit}")
    if details.category:
        match = find_best_match(details.category, HABIT_CATEGORIES)
        if match:
            form.set_selection("habit-category", match)
        heard.append(f"Category: {details.category}")
    if details.trigger:
        form.set_text("habit-trigger", details.trigger)
        heard.append(f"Trigger: {details.trigger}")
    if details.alternative:
        form.set_text("habit-alternative", details.alternative)
        heard.append(f"Alternative: {details.alternative}")
    return heard


def _fill_steps(form: FormTarget, details: StepsDetails) -> list[str]:
    if not details.steps:
        return []
    form.set_number("steps-count", details.steps)
    return [f"{details.steps} steps"]


ACTIVITY = Domain("activity", "Activity", ACTIVITY_MODAL, extract_activity_details, _fill_activity)
NUTRITION = Domain("nutrition", "Meal", MEAL_MODAL, extract_meal_details, _fill_meal)
SLEEP = Domain("sleep", "Sleep", SLEEP_MODAL, extract_sleep_details, _fill_sleep)
HABIT = Domain("habit", "Habit", HABIT_MODAL, extract_habit_details, _fill_habit)
STEPS = Domain("steps", "Steps", STEPS_MODAL, extract_steps_details, _fill_steps)

# Checked in order; the first keyword present in the command wins.
KEYWORD_DOMAINS = [
    ("activity", ACTIVITY),
    ("workout", ACTIVITY),
    ("exercise", ACTIVITY),
    ("nutrition", NUTRITION),
    ("meal", NUTRITION),
    ("food", NUTRITION),
    ("sleep", SLEEP),
    ("habit", HABIT),
    ("steps", STEPS),
]

FEATURE_NAMES = {
    "activity": "Activity",
    "nutrition": "Nutrition",
    "sleep": "Sleep",
    "habit": "Habit",
    "steps": "Steps",
}


def has_trigger(command: str) -> bool:
    return _TRIGGER_RE.search(command) is not None


def find_domain(command: str) -> Optional[Domain]:
    for keyword, domain in KEYWORD_DOMAINS:
        if re.search(r"\b" + keyword, command):
            return domain
    return None


class CommandDispatcher:
    """Voice command mode: one utterance, one tracker form.

    Also acts as the ``ResultHandler`` for command sessions, so it can be
    handed straight to the shared controller.
    """

    continuous = False
    interim_results = False

    def __init__(
        self,
        controller: RecognitionSessionController,
        modals: ModalSurface,
        notifier: Notifier,
    ) -> None:
        self._controller = controller
        self._modals = modals
        self._notifier = notifier
        self._unsupported_reported = False

    def toggle_listening(self, target: ListeningTarget) -> bool:
        try:
            return self._controller.toggle_listening(target, self)
        except UnsupportedError as exc:
            if not self._unsupported_reported:
                self._unsupported_reported = True
                self._notifier.show_toast(str(exc), Severity.ERROR)
            return False

    def dispatch(self, command: str) -> DispatchResult:
        text = (command or "").lower().strip()
        if not text:
            return DispatchResult(DispatchOutcome.EMPTY)
        if not has_trigger(text):
            logger.info("No trigger word in command {!r}", text)
            self._notifier.show_toast(message_for(NO_TRIGGER), Severity.INFO)
            return DispatchResult(DispatchOutcome.NO_TRIGGER)

        domain = find_domain(text)
        if domain is None:
            logger.info("No domain keyword in command {!r}", text)
            self._notifier.show_toast(message_for(NO_DOMAIN), Severity.WARNING)
            return DispatchResult(DispatchOutcome.NO_DOMAIN)
        return self._handle(domain, text)

    def _handle(self, domain: Domain, text: str) -> DispatchResult:
        self._notifier.show_toast(f"Processing {domain.name} command...", Severity.INFO)
        details = domain.extract(text)

        if not self._modals.has_modal(domain.modal_id):
            logger.warning("Modal {} is not available", domain.modal_id)
            self._notifier.show_toast(
                f"{FEATURE_NAMES[domain.name]} tracking feature is not available on this page",
                Severity.WARNING,
            )
            return DispatchResult(DispatchOutcome.FEATURE_UNAVAILABLE, domain.name, details)

        form = self._modals.open_modal(domain.modal_id)
        heard = domain.fill(form, details) if details is not None else []
        if heard:
            self._notifier.show_toast(f"{domain.label} form opened. I heard: {', '.join(heard)}", Severity.SUCCESS)
        else:
            self._notifier.show_toast(f"{domain.label} form opened. Please fill in the details.", Severity.INFO)
        logger.info("Dispatched {!r} to {}", text, domain.name)
        return DispatchResult(DispatchOutcome.HANDLED, domain.name, details, heard)

    # ------------------------------------------------------------------
    # ResultHandler
    # ------------------------------------------------------------------

    def handle_partial(self, target: ListeningTarget, transcript: str) -> None:
        pass

    def handle_final(self, target: ListeningTarget, transcript: str) -> None:
        self._notifier.show_toast(f"Heard: {transcript}", Severity.INFO)
        self.dispatch(transcript)

    def handle_status(self, target: ListeningTarget, message: str) -> None:
        logger.debug("Command session status: {}", message)

    def handle_stopped(self, target: ListeningTarget, reason: StopReason) -> None:
        logger.debug("Command session stopped: {}", reason.value)
