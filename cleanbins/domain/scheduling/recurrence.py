"""Recurrence rules - Nth weekday of month computations for service passages"""

import calendar
from datetime import date, timedelta
from typing import Iterable, Optional

EVERY_WEEK = 0
LAST_WEEK = 5
VALID_WEEKS = range(0, 6)

# (week_of_month, weekday) with weekday 0 = Sunday ... 6 = Saturday
Passage = tuple[int, int]


def sunday_based_weekday(day: date) -> int:
    """Weekday number with Sunday = 0"""
    return (day.weekday() + 1) % 7


def nth_weekday_of_month(year: int, month: int, week_of_month: int, weekday: int) -> list[date]:
    """
    Dates in ``year``/``month`` matching a passage rule.

    Args:
        week_of_month: 0 for every occurrence, 1-4 for the Nth one, 5 for the last one
        weekday: 0 = Sunday ... 6 = Saturday

    Returns:
        Matching dates in ascending order. Empty when the Nth occurrence does not exist.
    """
    if week_of_month not in VALID_WEEKS:
        raise ValueError(f"week_of_month must be between 0 and 5, got {week_of_month}")
    if weekday not in range(7):
        raise ValueError(f"weekday must be between 0 and 6, got {weekday}")

    first_of_month = date(year, month, 1)
    offset = (weekday - sunday_based_weekday(first_of_month)) % 7
    days_in_month = calendar.monthrange(year, month)[1]

    occurrences = [
        first_of_month + timedelta(days=day_offset)
        for day_offset in range(offset, days_in_month, 7)
    ]

    if week_of_month == EVERY_WEEK:
        return occurrences
    if week_of_month == LAST_WEEK:
        return occurrences[-1:]
    if week_of_month <= len(occurrences):
        return [occurrences[week_of_month - 1]]
    return []


def iter_months(start: date, end: date) -> Iterable[tuple[int, int]]:
    """Yield (year, month) for every month touched by [start, end]"""
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month):
        yield year, month
        month += 1
        if month > 12:
            year, month = year + 1, 1


def passage_dates(passages: list[Passage], start: date, end: date) -> list[str]:
    """
    Union of the dates produced by each passage rule within [start, end].

    Returns ISO formatted dates, sorted and deduplicated.
    """
    found: set[date] = set()
    for year, month in iter_months(start, end):
        for week_of_month, weekday in passages:
            for day in nth_weekday_of_month(year, month, week_of_month, weekday):
                if start <= day <= end:
                    found.add(day)
    return [day.isoformat() for day in sorted(found)]


def build_passages(
    passage1_week: Optional[int],
    passage1_day: Optional[int],
    passage2_week: Optional[int],
    passage2_day: Optional[int],
) -> list[Passage]:
    """Keep the passage pairs whose week and day are both set (week 0 is a real value)"""
    passages = []
    for week, day in ((passage1_week, passage1_day), (passage2_week, passage2_day)):
        if week is not None and day is not None:
            passages.append((week, day))
    return passages
