"""Field parsers for spoken text.

Every function here is pure and best-effort: malformed input yields ``None``
(or a score of 0), never an exception.
"""

from __future__ import annotations

import re
from datetime import date, timedelta
from typing import Iterable, Optional, Sequence, Union

from models import MatchWeights, SelectOption

Number = Union[int, float]

UNITS = {
    "zero": 0, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
    "eleven": 11, "twelve": 12, "thirteen": 13, "fourteen": 14, "fifteen": 15,
    "sixteen": 16, "seventeen": 17, "eighteen": 18, "nineteen": 19,
}
TENS = {
    "twenty": 20, "thirty": 30, "forty": 40, "fifty": 50,
    "sixty": 60, "seventy": 70, "eighty": 80, "ninety": 90,
}
SCALES = {"thousand": 1000, "million": 1000000}
NUMBER_WORDS = frozenset(UNITS) | frozenset(TENS) | frozenset(SCALES) | {"hundred"}

MONTHS = {
    "january": 1, "jan": 1, "february": 2, "feb": 2, "march": 3, "mar": 3,
    "april": 4, "apr": 4, "may": 5, "june": 6, "jun": 6, "july": 7, "jul": 7,
    "august": 8, "aug": 8, "september": 9, "sept": 9, "sep": 9,
    "october": 10, "oct": 10, "november": 11, "nov": 11, "december": 12, "dec": 12,
}
_MONTH = "(" + "|".join(sorted(MONTHS, key=len, reverse=True)) + r")\.?"
_HOUR_WORD = "(" + "|".join(w for w, n in UNITS.items() if 1 <= n <= 12) + ")"

_DIGITS_RE = re.compile(r"(?<![\w.])[-+]?(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d+)?")
_WORD_RE = re.compile(r"[a-z]+")

_NOON_RE = re.compile(r"\bnoon\b")
_MIDNIGHT_RE = re.compile(r"\bmidnight\b")
_RELATIVE_RE = re.compile(
    r"\b(quarter|half|\d{1,2})\s+(?:minutes?\s+)?(past|after|to)\s+(\d{1,2}|" + _HOUR_WORD[1:-1] + r")\b\s*(am|pm)?"
)
_CLOCK_RE = re.compile(r"\b(\d{1,2})(?::(\d{2}))?\s*(am|pm)?\b")
_WORD_CLOCK_RE = re.compile(r"\b" + _HOUR_WORD + r"\s*(am|pm|oclock)\b")

_TODAY_RE = re.compile(r"\b(today|now)\b")
_TOMORROW_RE = re.compile(r"\btomorrow\b")
_YESTERDAY_RE = re.compile(r"\byesterday\b")
# Two-digit years only after a comma, so "march 15 at 10" keeps the current year.
_YEAR = r"(?:,?\s+(\d{4})|,\s*(\d{2}))?\b"
_MONTH_DAY_RE = re.compile(r"\b" + _MONTH + r"\s+(\d{1,2})(?:st|nd|rd|th)?" + _YEAR)
_DAY_MONTH_RE = re.compile(r"\b(\d{1,2})(?:st|nd|rd|th)?\s+(?:of\s+)?" + _MONTH + _YEAR)
_NUMERIC_DATE_RE = re.compile(r"\b(\d{1,2})[/-](\d{1,2})[/-](\d{4}|\d{2})\b")


# ---------------------------------------------------------------------------
# Numbers
# ---------------------------------------------------------------------------


def _as_number(value: float) -> Number:
    return int(value) if float(value).is_integer() else value


def words_to_number(words: Sequence[str]) -> Optional[int]:
    """Compose English number words ("two hundred fifty") into an int."""
    total = 0
    current = 0
    seen = False
    for word in words:
        if word in UNITS:
            current += UNITS[word]
        elif word in TENS:
            current += TENS[word]
        elif word == "hundred":
            current = max(current, 1) * 100
        elif word in SCALES:
            total += max(current, 1) * SCALES[word]
            current = 0
        elif word == "and" and seen:
            continue
        else:
            break
        seen = True
    return total + current if seen else None


def parse_number(text: str) -> Optional[Number]:
    """First number in ``text``: digits win over number words."""
    if not text:
        return None
    clean = text.lower().strip()
    match = _DIGITS_RE.search(clean)
    if match:
        try:
            return _as_number(float(match.group(0).replace(",", "")))
        except ValueError:
            return None

    words = _WORD_RE.findall(clean)
    for index, word in enumerate(words):
        if word in NUMBER_WORDS:
            return words_to_number(words[index:])
    return None


# ---------------------------------------------------------------------------
# Times
# ---------------------------------------------------------------------------


def format_time(hour: int, minute: int) -> str:
    return f"{hour:02d}:{minute:02d}"


def _normalize_time_text(text: str) -> str:
    clean = text.lower().strip()
    clean = re.sub(r"\b([ap])\.\s?m\.?", r"\1m", clean)
    clean = re.sub(r"o'?\s?clock", "oclock", clean)
    return clean


def _hour_value(token: str) -> Optional[int]:
    if token.isdigit():
        return int(token)
    return UNITS.get(token)


def to_24_hour(hour: int, minute: int, period: Optional[str], literal: bool = False) -> Optional[str]:
    """Convert a spoken clock reading to ``HH:MM``.

    Without an am/pm marker, bare hours 6-11 are read as PM and every other
    bare hour as AM. ``literal`` readings (24-hour, zero-padded or with
    minutes) are kept as spoken.
    """
    if period == "pm" and hour < 12:
        hour += 12
    elif period == "am" and hour == 12:
        hour = 0
    elif period is None and not literal and 1 <= hour <= 12:
        if 6 <= hour <= 11:
            hour += 12
        elif hour == 12:
            hour = 0
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return None
    return format_time(hour, minute)


def parse_time(text: str) -> Optional[str]:
    """Parse a spoken time into 24-hour ``HH:MM``."""
    if not text:
        return None
    clean = _normalize_time_text(text)

    if _NOON_RE.search(clean):
        return "12:00"
    if _MIDNIGHT_RE.search(clean):
        return "00:00"

    match = _RELATIVE_RE.search(clean)
    if match:
        amount, direction, hour_token, period = match.groups()
        hour = _hour_value(hour_token)
        minutes = {"quarter": 15, "half": 30}.get(amount)
        if minutes is None:
            minutes = int(amount)
        if hour is not None and 0 < minutes < 60 and not (amount == "half" and direction == "to"):
            if direction == "to":
                hour = hour - 1 if hour > 1 else 12
                minutes = 60 - minutes
            result = to_24_hour(hour, minutes, period)
            if result:
                return result

    for match in _CLOCK_RE.finditer(clean):
        hour_token, minute_token, period = match.groups()
        hour = int(hour_token)
        minute = int(minute_token) if minute_token else 0
        literal = minute_token is not None or hour > 12 or hour == 0 or hour_token.startswith("0")
        result = to_24_hour(hour, minute, period, literal=literal)
        if result:
            return result

    match = _WORD_CLOCK_RE.search(clean)
    if match:
        hour = UNITS[match.group(1)]
        period = match.group(2) if match.group(2) in ("am", "pm") else None
        return to_24_hour(hour, 0, period)
    return None


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


def format_date_for_input(value: date) -> str:
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def _expand_year(token: Optional[str], reference: date) -> int:
    if not token:
        return reference.year
    year = int(token)
    if len(token) == 2:
        year += 1900 if year >= 50 else 2000
    return year


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_date(text: str, reference: Optional[date] = None) -> Optional[str]:
    """Parse a spoken date into ``YYYY-MM-DD`` relative to ``reference``."""
    if not text:
        return None
    today = reference or date.today()
    clean = text.lower().strip()

    if _TODAY_RE.search(clean):
        return format_date_for_input(today)
    if _TOMORROW_RE.search(clean):
        return format_date_for_input(today + timedelta(days=1))
    if _YESTERDAY_RE.search(clean):
        return format_date_for_input(today - timedelta(days=1))

    parsed: Optional[date] = None
    match = _MONTH_DAY_RE.search(clean)
    if match:
        month_token, day_token, year4, year2 = match.groups()
        parsed = _safe_date(_expand_year(year4 or year2, today), MONTHS[month_token], int(day_token))
    else:
        match = _DAY_MONTH_RE.search(clean)
        if match:
            day_token, month_token, year4, year2 = match.groups()
            parsed = _safe_date(_expand_year(year4 or year2, today), MONTHS[month_token], int(day_token))
        else:
            match = _NUMERIC_DATE_RE.search(clean)
            if match:
                month_token, day_token, year_token = match.groups()
                parsed = _safe_date(_expand_year(year_token, today), int(month_token), int(day_token))

    return format_date_for_input(parsed) if parsed else None


# ---------------------------------------------------------------------------
# Option matching
# ---------------------------------------------------------------------------


def calculate_similarity(spoken: str, label: str, weights: MatchWeights = MatchWeights()) -> float:
    """Score 0..1: exact, then containment either way, then word overlap."""
    first = (spoken or "").lower().strip()
    second = (label or "").lower().strip()
    if not first or not second:
        return 0.0
    if first == second:
        return 1.0
    if second in first:
        return weights.contains
    if first in second:
        return weights.contained

    words1 = first.split()
    words2 = second.split()
    matches = 0
    for word1 in words1:
        if len(word1) < 3:
            continue
        if any(word2 in word1 or word1 in word2 for word2 in words2):
            matches += 1
    return matches / max(len(words1), len(words2))


def choose_option(
    spoken: str,
    options: Iterable[SelectOption],
    weights: MatchWeights = MatchWeights(),
) -> Optional[SelectOption]:
    """Best option for ``spoken`` by label similarity, if above the threshold."""
    best: Optional[SelectOption] = None
    best_score = 0.0
    for option in options:
        if not option.value or option.disabled:
            continue
        score = calculate_similarity(spoken, option.label, weights)
        if score > best_score:
            best, best_score = option, score
    if best is not None and best_score > weights.threshold:
        return best
    return None


def find_best_match(value: Optional[str], vocabulary: Sequence[str]) -> Optional[str]:
    if not value or not vocabulary:
        return None
    needle = value.lower()
    for option in vocabulary:
        if option.lower() == needle:
            return option
    for option in vocabulary:
        lowered = option.lower()
        if needle in lowered or lowered in needle:
            return option
    return None
