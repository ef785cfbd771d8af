from datetime import date

import pytest
from parking.domain.errors import InputError
from parking.domain.recurrence import RecurrenceRule, expand_dates, format_days_of_week
from parking.models import RecurrencePattern

MONDAY = date(2026, 3, 2)


def test_daily_rule_covers_every_day_in_window() -> None:
    rule = RecurrenceRule(pattern=RecurrencePattern.DAILY, start_date=MONDAY)
    assert expand_dates(rule, MONDAY, date(2026, 3, 4)) == [MONDAY, date(2026, 3, 3), date(2026, 3, 4)]


def test_weekly_rule_uses_iso_weekdays() -> None:
    rule = RecurrenceRule(pattern=RecurrencePattern.WEEKLY, start_date=MONDAY, weekdays=(1, 3))
    assert expand_dates(rule, MONDAY, date(2026, 3, 11)) == [
        date(2026, 3, 2),
        date(2026, 3, 4),
        date(2026, 3, 9),
        date(2026, 3, 11),
    ]


def test_weekly_rule_without_weekdays_repeats_start_weekday() -> None:
    rule = RecurrenceRule(pattern=RecurrencePattern.WEEKLY, start_date=MONDAY)
    assert expand_dates(rule, MONDAY, date(2026, 3, 16)) == [MONDAY, date(2026, 3, 9), date(2026, 3, 16)]


def test_biweekly_rule_skips_alternate_weeks_from_start() -> None:
    rule = RecurrenceRule(pattern=RecurrencePattern.BIWEEKLY, start_date=MONDAY, weekdays=(5,))
    assert expand_dates(rule, MONDAY, date(2026, 3, 31)) == [date(2026, 3, 6), date(2026, 3, 20)]


def test_monthly_rule_keeps_day_of_month() -> None:
    rule = RecurrenceRule(pattern=RecurrencePattern.MONTHLY, start_date=date(2026, 1, 15))
    assert expand_dates(rule, date(2026, 1, 1), date(2026, 3, 31)) == [
        date(2026, 1, 15),
        date(2026, 2, 15),
        date(2026, 3, 15),
    ]


def test_window_is_clipped_by_rule_end_date() -> None:
    rule = RecurrenceRule(pattern=RecurrencePattern.DAILY, start_date=MONDAY, end_date=date(2026, 3, 3))
    assert expand_dates(rule, date(2026, 3, 3), date(2026, 3, 10)) == [date(2026, 3, 3)]


def test_window_before_start_is_empty() -> None:
    rule = RecurrenceRule(pattern=RecurrencePattern.DAILY, start_date=MONDAY)
    assert expand_dates(rule, date(2026, 2, 1), date(2026, 2, 28)) == []


def test_invalid_weekday_is_rejected() -> None:
    with pytest.raises(InputError):
        RecurrenceRule(pattern=RecurrencePattern.WEEKLY, start_date=MONDAY, weekdays=(0,))


def test_end_before_start_is_rejected() -> None:
    with pytest.raises(InputError):
        RecurrenceRule(pattern=RecurrencePattern.DAILY, start_date=MONDAY, end_date=date(2026, 3, 1))


def test_format_days_of_week() -> None:
    assert format_days_of_week((1, 3, 5)) == "Mon, Wed, Fri"
