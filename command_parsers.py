"""Domain extractors for "log ..." voice commands.

Each extractor takes the spoken command and returns a details record, or
``None`` when nothing could be extracted. Extractors do not validate values;
the receiving form does.
"""

from __future__ import annotations

import re
from typing import Optional

from models import ActivityDetails, HabitDetails, MealDetails, SleepDetails, StepsDetails
from parsers import NUMBER_WORDS, parse_number, parse_time

WORKOUT_TYPES = ["running", "cycling", "swimming", "weights"]
MEAL_CATEGORIES = ["breakfast", "lunch", "dinner", "snack", "dessert"]
HABIT_CATEGORIES = ["smoking", "drinking", "junk food", "social media", "other"]

ACTIVITY_NAME_WORDS = ["running", "cycling", "swimming", "weights", "workout", "exercise"]
ACTIVITY_TYPE_KEYWORDS = {
    "running": ["run", "running", "jog", "jogging"],
    "cycling": ["cycle", "cycling", "bike", "biking", "bicycle"],
    "swimming": ["swim", "swimming"],
    "weights": ["weight", "weights", "strength", "lifting", "gym"],
}
SLEEP_QUALITY_WORDS = {
    1: ["terrible", "awful", "very bad", "horrible", "worst"],
    2: ["bad", "poor", "not good"],
    3: ["okay", "average", "decent", "fine", "alright"],
    4: ["good", "restful", "nice", "well"],
    5: ["excellent", "amazing", "great", "perfect", "best"],
}
KM_PER_MILE = 1.609344

_TIME = r"(\d{1,2}(?::\d{2})?\s*(?:[ap]\.?\s?m\.?)?|noon|midnight)"

_ACTIVITY_NAME_RE = re.compile(r"(?:called|named)\s+([a-z0-9\s]+?)(?:\s+for|\s+with|\s+lasting|\s+burned|$)")
_ACTIVITY_TYPE_RE = re.compile(r"(?:type|category)\s+(?:of\s+)?([a-z]+)")
_DURATION_RE = re.compile(r"(?:for|duration|lasting)\s+(\d+)\s*(min|minute|minutes|mins|hour|hours|hr|hrs)\b")
_BURNED_RE = re.compile(r"(?:burned|burning|burnt)\s+(\d+)\s*(?:k?cal|calories)")
_DISTANCE_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(km|kilometers?|kilometres?|miles?)\b")

_MEAL_NAME_RE = re.compile(r"(?:called|named)\s+([a-z0-9\s]+?)(?:\s+with|\s+containing|\s+for|\s+having|$)")
_MEAL_CATEGORY_RE = re.compile(r"(?:category|type)\s+(?:is\s+)?([a-z]+)")
_CALORIES_RE = re.compile(r"(\d+)\s*(?:k?cal|calories)")
_PROTEIN_RE = re.compile(r"(\d+)\s*(?:g|grams)?\s*(?:of\s+)?protein")
_CARBS_RE = re.compile(r"(\d+)\s*(?:g|grams)?\s*(?:of\s+)?(?:carbs|carbohydrates)")
_FAT_RE = re.compile(r"(\d+)\s*(?:g|grams)?\s*(?:of\s+)?fat\b")
_FOOD_RE = re.compile(
    r"(?:containing|with|having|made of)\s+([a-z0-9\s]+?)(?=\s+(?:with|has|having|containing)\b|\s+\d|[,.]|$)"
)

_SLEEP_START_RE = re.compile(r"(?:went to bed|fell asleep|slept)\s+(?:at|around)\s+" + _TIME)
_SLEEP_END_RE = re.compile(r"(?:woke up|got up|awoke)\s+(?:at|around)\s+" + _TIME)
_SLEEP_QUALITY_RE = re.compile(r"(?:quality|rating|score)\s+(?:of|was|is)\s+(\d)")
_NOTES_RE = re.compile(r"(?:notes|note|comments)(?:\s+(?:saying|that|about))?\s+([^,.]+)")

_HABIT_NAME_RE = re.compile(
    r"(?:called|named)\s+([a-z0-9\s]+?)"
    r"(?:\s+with|\s+because|\s+about|\s+that|\s+\d|\s+(?:once|twice|daily|weekly|triggered|category)\b|$)"
)
_FREQUENCY_RE = re.compile(r"\b([a-z0-9]+)\s+times?\s+(?:per|a|each)\s+(day|week)\b")
_ONCE_TWICE_RE = re.compile(r"\b(once|twice)\s+(?:per|a|each)\s+(day|week)\b")
_DAILY_WEEKLY_RE = re.compile(r"\b(daily|weekly|every day|every week)\b")
_HABIT_CATEGORY_RE = re.compile(r"(?:category|type)\s+(?:is\s+)?([a-z\s]+?)(?:\s+and|\s+with|\s+triggered|$)")
_TRIGGER_RE = re.compile(
    r"(?:triggered|happens|occurs)\s+(?:by|when|during)\s+([^,.]+?)(?:\s+and|\s+with|\s+alternative|$)"
)
_ALTERNATIVE_RE = re.compile(
    r"(?:alternative|instead|replace with|substitute)\s+(?:(?:is|with)\s+)?([^,.]+?)(?:\s+and|\s+with|$)"
)
_DESCRIPTION_RE = re.compile(r"(?:description|about|reason)\s+(?:(?:is|says)\s+)?([^,.]+?)(?:\s+and|\s+with|$)")

_STEPS_RE = re.compile(r"(\d{1,3}(?:,\d{3})+|\d+)\s+steps?\b")
_STEPS_WORDS_RE = re.compile(
    r"\b((?:(?:" + "|".join(sorted(NUMBER_WORDS | {"and"}, key=len, reverse=True)) + r")[\s-]+)+)steps?\b"
)


def _clean(command: str) -> str:
    return (command or "").lower().strip()


def _has_word(text: str, word: str) -> bool:
    return re.search(r"\b" + re.escape(word), text) is not None


def _first_int(pattern: re.Pattern, text: str) -> Optional[int]:
    match = pattern.search(text)
    return int(match.group(1)) if match else None


def _capitalize(word: str) -> str:
    return word[:1].upper() + word[1:]


def _is_empty(details: object) -> bool:
    return all(value is None for value in vars(details).values())


def extract_activity_details(command: str) -> Optional[ActivityDetails]:
    text = _clean(command)
    result = ActivityDetails()

    match = _ACTIVITY_NAME_RE.search(text)
    if match and match.group(1).strip():
        result.name = match.group(1).strip()
    else:
        for word in ACTIVITY_NAME_WORDS:
            if word in text:
                result.name = _capitalize(word) if word in ("workout", "exercise") else f"{_capitalize(word)} workout"
                break

    match = _ACTIVITY_TYPE_RE.search(text)
    if match:
        result.type = match.group(1).strip()
    else:
        for activity_type, keywords in ACTIVITY_TYPE_KEYWORDS.items():
            if any(_has_word(text, keyword) for keyword in keywords):
                result.type = activity_type
                break

    match = _DURATION_RE.search(text)
    if match:
        amount = int(match.group(1))
        result.duration = amount * 60 if match.group(2).startswith(("hour", "hr")) else amount

    result.calories = _first_int(_BURNED_RE, text)

    match = _DISTANCE_RE.search(text)
    if match:
        distance = float(match.group(1))
        if match.group(2).startswith("mile"):
            distance = round(distance * KM_PER_MILE, 2)
        result.distance = distance

    return None if _is_empty(result) else result


def extract_meal_details(command: str) -> Optional[MealDetails]:
    text = _clean(command)
    result = MealDetails()

    match = _MEAL_NAME_RE.search(text)
    if match and match.group(1).strip():
        result.name = match.group(1).strip()
    else:
        for category in MEAL_CATEGORIES:
            if _has_word(text, category):
                result.name = f"{_capitalize(category)} meal"
                result.category = category
                break

    if result.category is None:
        match = _MEAL_CATEGORY_RE.search(text)
        if match:
            result.category = match.group(1).strip()

    result.calories = _first_int(_CALORIES_RE, text)
    result.protein = _first_int(_PROTEIN_RE, text)
    result.carbs = _first_int(_CARBS_RE, text)
    result.fat = _first_int(_FAT_RE, text)

    match = _FOOD_RE.search(text)
    if match and match.group(1).strip():
        result.description = match.group(1).strip()

    return None if _is_empty(result) else result


def _quality_from_words(text: str) -> Optional[int]:
    for rating, words in SLEEP_QUALITY_WORDS.items():
        for word in words:
            if re.search(r"\b" + re.escape(word) + r"\b", text):
                return rating
    return None


def extract_sleep_details(command: str) -> Optional[SleepDetails]:
    text = _clean(command)
    result = SleepDetails()

    match = _SLEEP_START_RE.search(text)
    if match:
        result.start_time = parse_time(match.group(1))

    match = _SLEEP_END_RE.search(text)
    if match:
        result.end_time = parse_time(match.group(1))

    match = _SLEEP_QUALITY_RE.search(text)
    if match:
        quality = int(match.group(1))
        if 1 <= quality <= 5:
            result.quality = quality
    else:
        result.quality = _quality_from_words(text)

    match = _NOTES_RE.search(text)
    if match and match.group(1).strip():
        result.notes = match.group(1).strip()

    return None if _is_empty(result) else result


def _frequency(text: str) -> tuple[Optional[int], Optional[str]]:
    match = _ONCE_TWICE_RE.search(text)
    if match:
        count = 1 if match.group(1) == "once" else 2
        return count, "daily" if match.group(2) == "day" else "weekly"

    match = _FREQUENCY_RE.search(text)
    if match:
        value = parse_number(match.group(1))
        count = int(value) if value is not None else 1
        return count, "daily" if match.group(2) == "day" else "weekly"

    match = _DAILY_WEEKLY_RE.search(text)
    if match:
        return 1, "daily" if "day" in match.group(1) or match.group(1) == "daily" else "weekly"
    return None, None


def extract_habit_details(command: str) -> Optional[HabitDetails]:
    text = _clean(command)
    result = HabitDetails()

    match = _HABIT_NAME_RE.search(text)
    if match and match.group(1).strip():
        result.name = match.group(1).strip()
    else:
        for category in HABIT_CATEGORIES[:-1]:
            if category in text:
                result.name = f"Reduce {category}"
                result.category = category
                break

    result.frequency, result.frequency_unit = _frequency(text)

    if result.category is None:
        match = _HABIT_CATEGORY_RE.search(text)
        if match and match.group(1).strip():
            result.category = match.group(1).strip()

    match = _TRIGGER_RE.search(text)
    if match:
        result.trigger = match.group(1).strip()

    match = _ALTERNATIVE_RE.search(text)
    if match:
        result.alternative = match.group(1).strip()

    match = _DESCRIPTION_RE.search(text)
    if match:
        result.description = match.group(1).strip()

    return None if _is_empty(result) else result


def extract_steps_details(command: str) -> Optional[StepsDetails]:
    text = _clean(command)
    match = _STEPS_RE.search(text)
    if match:
        return StepsDetails(steps=int(match.group(1).replace(",", "")))
    match = _STEPS_WORDS_RE.search(text)
    if match:
        value = parse_number(match.group(1))
        if value is not None:
            return StepsDetails(steps=int(value))
    return None
