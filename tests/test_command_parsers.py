from __future__ import annotations

from command_parsers import (
    extract_activity_details,
    extract_habit_details,
    extract_meal_details,
    extract_sleep_details,
    extract_steps_details,
)
from models import ActivityDetails, HabitDetails, SleepDetails, StepsDetails


# ---------------------------------------------------------------
# Activity
# ---------------------------------------------------------------


def test_activity_from_spoken_workout() -> None:
    details = extract_activity_details("log a running workout for 30 minutes burned 250 calories")
    assert details == ActivityDetails(name="Running workout", type="running", duration=30, calories=250)


def test_activity_named_with_hours_and_miles() -> None:
    details = extract_activity_details("log an activity called evening ride for 2 hours, 10 miles on my bike")
    assert details.name == "evening ride"
    assert details.type == "cycling"
    assert details.duration == 120
    assert details.distance == 16.09


def test_activity_generic_workout_name() -> None:
    details = extract_activity_details("log a workout at the gym")
    assert details.name == "Workout"
    assert details.type == "weights"


def test_activity_explicit_type() -> None:
    details = extract_activity_details("log activity of type swimming lasting 45 min")
    assert details.type == "swimming"
    assert details.duration == 45


def test_activity_without_details() -> None:
    assert extract_activity_details("log activity") is None


# ---------------------------------------------------------------
# Meal
# ---------------------------------------------------------------


def test_meal_with_macros() -> None:
    details = extract_meal_details("add a dinner meal with 700 calories 40g protein 60 grams of carbs and 20 g fat")
    assert details.name == "Dinner meal"
    assert details.category == "dinner"
    assert details.calories == 700
    assert details.protein == 40
    assert details.carbs == 60
    assert details.fat == 20


def test_meal_named_with_description() -> None:
    details = extract_meal_details("add a meal named power bowl containing rice and beans")
    assert details.name == "power bowl"
    assert details.description == "rice and beans"


def test_meal_without_details() -> None:
    assert extract_meal_details("add a meal") is None


# ---------------------------------------------------------------
# Sleep
# ---------------------------------------------------------------


def test_sleep_times_and_explicit_quality() -> None:
    details = extract_sleep_details("log sleep went to bed at 10:30 pm woke up at 6 am quality of 4")
    assert details == SleepDetails(start_time="22:30", end_time="06:00", quality=4)


def test_sleep_quality_words() -> None:
    assert extract_sleep_details("log sleep it was terrible").quality == 1
    assert extract_sleep_details("log sleep slept at midnight, it was amazing").quality == 5


def test_sleep_out_of_range_quality_is_dropped() -> None:
    assert extract_sleep_details("log sleep quality of 9") is None


def test_sleep_notes() -> None:
    details = extract_sleep_details("log sleep fell asleep around 11 pm notes saying noisy neighbours")
    assert details.start_time == "23:00"
    assert details.notes == "noisy neighbours"


# ---------------------------------------------------------------
# Habit
# ---------------------------------------------------------------


def test_habit_from_category() -> None:
    details = extract_habit_details("add a habit to cut down on social media three times a week")
    assert details == HabitDetails(name="Reduce social media", category="social media", frequency=3, frequency_unit="weekly")


def test_habit_trigger_and_alternative() -> None:
    details = extract_habit_details(
        "add a habit called late snacking daily triggered by boredom alternative is drinking tea"
    )
    assert details.name == "late snacking"
    assert details.frequency == 1
    assert details.frequency_unit == "daily"
    assert details.trigger == "boredom"
    assert details.alternative == "drinking tea"


def test_habit_unparseable_count_defaults_to_one() -> None:
    details = extract_habit_details("add a habit called nail biting many times per day")
    assert details.frequency == 1
    assert details.frequency_unit == "daily"


# ---------------------------------------------------------------
# Steps
# ---------------------------------------------------------------


def test_steps_digits_and_words() -> None:
    assert extract_steps_details("log 10,000 steps") == StepsDetails(steps=10000)
    assert extract_steps_details("log 7500 steps today") == StepsDetails(steps=7500)
    assert extract_steps_details("log twelve thousand steps") == StepsDetails(steps=12000)


def test_steps_without_count() -> None:
    assert extract_steps_details("log my steps") is None
