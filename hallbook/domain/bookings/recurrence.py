"""Recurrence expansion - turns a series definition into concrete dates

Weekly and biweekly series run through ``dateutil.rrule`` with a weekday
set. Monthly series step from the anchor date with ``relativedelta``,
which clamps to the last day of shorter months (Jan 31 -> Feb 28/29 ->
Mar 31) instead of skipping them.
"""

from datetime import date, datetime, time
from enum import Enum
from itertools import islice
from typing import Iterable, Iterator, Optional

from dateutil.relativedelta import relativedelta
from dateutil.rrule import FR, MO, SA, SU, TH, TU, WE, WEEKLY, rrule

from ...config import SERIES_DEFAULT_OCCURRENCES, SERIES_MAX_OCCURRENCES
from ...exceptions import NoOccurrencesError, ValidationError

# Index is the weekday number used throughout the API: 0=Sunday..6=Saturday
RRULE_WEEKDAYS = (SU, MO, TU, WE, TH, FR, SA)


class Frequency(str, Enum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"

    def step(self, interval: int = 1) -> int:
        """Weeks (or months, for MONTHLY) between consecutive recurrence periods"""
        return interval * 2 if self is Frequency.BIWEEKLY else interval


def weekday_number(day: date) -> int:
    """Sunday-first weekday number (0=Sunday..6=Saturday)"""
    return day.isoweekday() % 7


def realized_weekdays(dates: Iterable[date]) -> list[int]:
    """Sorted set of weekday numbers the given dates actually fall on"""
    return sorted({weekday_number(d) for d in dates})


def _weekly_dates(
    start_date: date, step: int, weekdays: Optional[list[int]], until: Optional[date]
) -> Iterator[date]:
    rule = rrule(
        WEEKLY,
        dtstart=datetime.combine(start_date, time()),
        interval=step,
        wkst=MO,
        byweekday=[RRULE_WEEKDAYS[d] for d in sorted(set(weekdays))] if weekdays is not None else None,
        until=datetime.combine(until, time()) if until else None,
    )
    for occurrence in rule:
        yield occurrence.date()


def _monthly_dates(start_date: date, step: int, until: Optional[date]) -> Iterator[date]:
    months = 0
    while True:
        # Always offset from the anchor so a clamped month doesn't drag later ones
        current = start_date + relativedelta(months=months)
        if until is not None and current > until:
            return
        yield current
        months += step


def expand(
    start_date: date,
    frequency: Frequency | str,
    weekdays: Optional[list[int]] = None,
    until: Optional[date] = None,
    occurrence_count: Optional[int] = None,
    interval: int = 1,
) -> list[date]:
    """
    Expand a recurrence into its occurrence dates.

    Args:
        start_date: Anchor date; nothing earlier is produced
        frequency: weekly, biweekly or monthly
        weekdays: Weekday numbers (0=Sunday) for weekly/biweekly. ``None``
            means the anchor's own weekday. Ignored for monthly.
        until: Last allowed date, inclusive
        occurrence_count: Maximum number of dates
        interval: Multiplier on the base period (weekly=1 week,
            biweekly=2 weeks, monthly=1 month)

    Returns:
        Strictly increasing list of distinct dates

    Raises:
        ValidationError: On an unknown frequency, bad interval or weekday
        NoOccurrencesError: If nothing falls inside the bounds
    """
    try:
        frequency = Frequency(frequency)
    except ValueError:
        raise ValidationError(f"Unknown frequency: {frequency!r}") from None

    if interval < 1:
        raise ValidationError("Interval must be at least 1")

    if frequency is not Frequency.MONTHLY and weekdays is not None:
        invalid = [d for d in weekdays if not 0 <= d <= 6]
        if invalid:
            raise ValidationError(f"Weekdays must be between 0 (Sunday) and 6 (Saturday): {invalid}")
        if not weekdays:
            raise NoOccurrencesError("No weekdays selected")

    if until is None and occurrence_count is None:
        occurrence_count = SERIES_DEFAULT_OCCURRENCES
    if occurrence_count is not None and occurrence_count < 1:
        raise NoOccurrencesError("Occurrence count must be at least 1")
    if until is not None and until < start_date:
        raise NoOccurrencesError(f"End date {until} is before start date {start_date}")

    limit = min(occurrence_count or SERIES_MAX_OCCURRENCES, SERIES_MAX_OCCURRENCES)
    step = frequency.step(interval)

    if frequency is Frequency.MONTHLY:
        candidates = _monthly_dates(start_date, step, until)
    else:
        candidates = _weekly_dates(start_date, step, weekdays, until)

    dates: list[date] = []
    for day in islice(candidates, limit):
        if day < start_date or (dates and day <= dates[-1]):
            continue
        dates.append(day)

    if not dates:
        raise NoOccurrencesError("Recurrence produced no dates")
    return dates
