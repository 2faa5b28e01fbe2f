from __future__ import annotations

from datetime import date

import pytest

from models import MatchWeights, SelectOption
from parsers import (
    calculate_similarity,
    choose_option,
    find_best_match,
    format_date_for_input,
    parse_date,
    parse_number,
    parse_time,
    words_to_number,
)

REFERENCE = date(2025, 3, 10)


# ---------------------------------------------------------------
# Numbers
# ---------------------------------------------------------------


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("30", 30),
        ("I walked 8,500 steps", 8500),
        ("2.5 kilometers", 2.5),
        ("-3", -3),
        ("twenty five", 25),
        ("two hundred fifty calories", 250),
        ("one thousand two hundred", 1200),
        ("about ninety", 90),
    ],
)
def test_parse_number(text: str, expected: float) -> None:
    assert parse_number(text) == expected


def test_parse_number_returns_int_for_integral_values() -> None:
    assert isinstance(parse_number("40.0"), int)


def test_parse_number_without_number() -> None:
    assert parse_number("a lot") is None
    assert parse_number("") is None


def test_words_to_number_stops_at_unknown_word() -> None:
    assert words_to_number(["three", "hundred", "and", "five", "grams"]) == 305
    assert words_to_number(["grams"]) is None


# ---------------------------------------------------------------
# Times
# ---------------------------------------------------------------


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("7:30 pm", "19:30"),
        ("7:30 p.m.", "19:30"),
        ("12 am", "00:00"),
        ("12 pm", "12:00"),
        ("noon", "12:00"),
        ("midnight", "00:00"),
        ("quarter past 7", "19:15"),
        ("half past six am", "06:30"),
        ("quarter to 8 am", "07:45"),
        ("10 to eleven pm", "22:50"),
        ("23:15", "23:15"),
        ("06:45", "06:45"),
        ("12:30", "12:30"),
        ("7:30", "07:30"),
        ("seven o'clock", "19:00"),
        ("three pm", "15:00"),
    ],
)
def test_parse_time(text: str, expected: str) -> None:
    assert parse_time(text) == expected


def test_bare_hours_follow_evening_heuristic() -> None:
    assert parse_time("at 7") == "19:00"
    assert parse_time("at 3") == "03:00"
    assert parse_time("at 12") == "00:00"


def test_parse_time_rejects_nonsense() -> None:
    assert parse_time("25:99") is None
    assert parse_time("sometime") is None
    assert parse_time("") is None


# ---------------------------------------------------------------
# Dates
# ---------------------------------------------------------------


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("today", "2025-03-10"),
        ("tomorrow", "2025-03-11"),
        ("yesterday", "2025-03-09"),
        ("March 15th", "2025-03-15"),
        ("march 15, 2024", "2024-03-15"),
        ("jan 3, 99", "1999-01-03"),
        ("the 4th of July", "2025-07-04"),
        ("15 march 2026", "2026-03-15"),
        ("12/25/2024", "2024-12-25"),
        ("1-2-24", "2024-01-02"),
    ],
)
def test_parse_date(text: str, expected: str) -> None:
    assert parse_date(text, REFERENCE) == expected


def test_month_day_followed_by_time_keeps_current_year() -> None:
    assert parse_date("march 15 at 10", REFERENCE) == "2025-03-15"


def test_invalid_calendar_date_is_rejected() -> None:
    assert parse_date("February 30", REFERENCE) is None
    assert parse_date("13/45/2024", REFERENCE) is None
    assert parse_date("someday", REFERENCE) is None


def test_format_date_for_input_pads() -> None:
    assert format_date_for_input(date(2025, 1, 5)) == "2025-01-05"


# ---------------------------------------------------------------
# Option matching
# ---------------------------------------------------------------


def test_similarity_scores() -> None:
    assert calculate_similarity("Running", "running") == 1.0
    assert calculate_similarity("i went running", "running") == 0.9
    assert calculate_similarity("run", "running") == 0.8
    assert calculate_similarity("junk food snacks", "junk food") == 0.9
    assert calculate_similarity("social networks", "social media") == 0.5
    assert calculate_similarity("", "running") == 0.0


def test_similarity_uses_weights() -> None:
    weights = MatchWeights(threshold=0.5, contains=0.7, contained=0.6)
    assert calculate_similarity("i went running", "running", weights) == 0.7
    assert calculate_similarity("run", "running", weights) == 0.6


def test_choose_option_skips_placeholder_and_disabled() -> None:
    options = [
        SelectOption("", "Select a category"),
        SelectOption("snack", "Snack", disabled=True),
        SelectOption("dinner", "Dinner"),
    ]
    assert choose_option("select a category", options) is None
    assert choose_option("snack", options) is None
    assert choose_option("it was dinner", options).value == "dinner"


def test_choose_option_requires_score_above_threshold() -> None:
    options = [SelectOption("social", "Social media")]
    assert choose_option("social networks", options) is None


def test_find_best_match() -> None:
    vocabulary = ["running", "cycling", "swimming", "weights"]
    assert find_best_match("Cycling", vocabulary) == "cycling"
    assert find_best_match("weight", vocabulary) == "weights"
    assert find_best_match("swimming laps", vocabulary) == "swimming"
    assert find_best_match("yoga", vocabulary) is None
    assert find_best_match(None, vocabulary) is None
