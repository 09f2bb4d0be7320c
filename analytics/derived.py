"""
derived.py - Small data-shaping helpers for values that are never persisted.

Provides:
- Age calculation from a date of birth against an explicit "today"
- Per-match ratios with round-half-away-from-zero and a zero-matches policy
- Match result parsing and win/draw/loss classification
"""

import re
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Tuple, Union

RESULT_PATTERN = re.compile(r"(\d+)\s*-\s*(\d+)")

RESULT_WIN = "win"
RESULT_DRAW = "draw"
RESULT_LOSS = "loss"
RESULT_UNKNOWN = "unknown"

DateLike = Union[str, date, datetime]


def to_date(value: DateLike) -> date:
    """
    Normalize a date, datetime, or ISO string ("YYYY-MM-DD[...]") to a date.

    Raises:
        ValueError: If the string is not an ISO date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip()[:10])


def calculate_age(date_of_birth: DateLike, today: DateLike) -> int:
    """
    Age in whole years on `today`.

    The year difference is decremented when today's month/day falls before
    the birthday, so a player born 2000-06-15 is 23 on 2024-06-14 and 24 on
    2024-06-15.
    """
    birth = to_date(date_of_birth)
    current = to_date(today)
    age = current.year - birth.year
    if (current.month, current.day) < (birth.month, birth.day):
        age -= 1
    return age


def round_half_up(value: Union[int, float, Decimal], places: int = 2) -> float:
    """Round with ROUND_HALF_UP semantics (2.675 -> 2.68, -0.125 -> -0.13)."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def per_match_ratio(total: Union[int, float], matches: int, places: int = 2) -> float:
    """
    total / matches rounded to `places` decimals.

    Zero matches yields 0.0, never NaN or an exception.
    """
    if not matches:
        return 0.0
    quantum = Decimal(1).scaleb(-places)
    ratio = Decimal(str(total)) / Decimal(matches)
    return float(ratio.quantize(quantum, rounding=ROUND_HALF_UP))


def parse_score(result: Optional[str]) -> Optional[Tuple[int, int]]:
    """Extract (home_goals, away_goals) from a "<int>-<int>" result string."""
    if not result:
        return None
    found = RESULT_PATTERN.search(result)
    if not found:
        return None
    return int(found.group(1)), int(found.group(2))


def classify_result(result: Optional[str], home: bool) -> str:
    """
    Classify a match result from the club's point of view.

    The result string always lists the home side first; when the club played
    away its goals are the second number.
    """
    score = parse_score(result)
    if score is None:
        return RESULT_UNKNOWN

    home_goals, away_goals = score
    ours, theirs = (home_goals, away_goals) if home else (away_goals, home_goals)

    if ours > theirs:
        return RESULT_WIN
    if ours == theirs:
        return RESULT_DRAW
    return RESULT_LOSS
