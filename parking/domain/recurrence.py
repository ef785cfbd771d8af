"""Expansion of recurring booking rules into concrete booking dates."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time

from dateutil.rrule import DAILY, MONTHLY, WEEKLY, rrule

from ..models import RecurrencePattern
from .errors import InputError

_DAY_NAMES = ["", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


@dataclass(frozen=True)
class RecurrenceRule:
    pattern: RecurrencePattern
    start_date: date
    end_date: date | None = None
    weekdays: tuple[int, ...] = field(default_factory=tuple)  # ISO: 1 = Monday

    def __post_init__(self) -> None:
        bad = [d for d in self.weekdays if d < 1 or d > 7]
        if bad:
            raise InputError(f"days_of_week must be between 1 and 7, got {bad}")
        if self.end_date is not None and self.end_date < self.start_date:
            raise InputError("end_date must not be earlier than start_date")


def expand_dates(rule: RecurrenceRule, start: date, end: date) -> list[date]:
    """Return the dates matched by `rule` within [start, end], inclusive.

    Weekly and biweekly rules without weekdays fall back to the weekday of
    `rule.start_date`; biweekly weeks are counted from the start date's week.
    Monthly rules repeat on the start date's day of month and skip months that
    lack it.
    """
    window_start = max(start, rule.start_date)
    window_end = min(end, rule.end_date) if rule.end_date is not None else end
    if window_start > window_end:
        return []

    dtstart = datetime.combine(rule.start_date, time())
    weekdays = [d - 1 for d in rule.weekdays] or [rule.start_date.weekday()]

    if rule.pattern == RecurrencePattern.DAILY:
        recurrence = rrule(DAILY, dtstart=dtstart)
    elif rule.pattern == RecurrencePattern.WEEKLY:
        recurrence = rrule(WEEKLY, dtstart=dtstart, byweekday=weekdays)
    elif rule.pattern == RecurrencePattern.BIWEEKLY:
        recurrence = rrule(WEEKLY, interval=2, dtstart=dtstart, byweekday=weekdays)
    else:
        recurrence = rrule(MONTHLY, dtstart=dtstart, bymonthday=rule.start_date.day)

    occurrences = recurrence.between(
        datetime.combine(window_start, time()),
        datetime.combine(window_end, time()),
        inc=True,
    )
    return [dt.date() for dt in occurrences]


def format_days_of_week(days: tuple[int, ...]) -> str:
    return ", ".join(_DAY_NAMES[d] for d in days if 1 <= d <= 7)
