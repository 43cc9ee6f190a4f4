# File: employees/calendar.py
# Version: 1.1.0
# Author: vas
# Modified: 2026-10-18

"""
Working-day calculus for leave requests.

A day is "off" when it is a weekend, a national public holiday from the
active HolidayCalendar, or an institution-declared CustomHoliday.
"""
from __future__ import annotations

from datetime import date
from typing import Iterable, Optional, Union

from django.conf import settings

from core.utils.weekday_helper import is_weekend, weekdays_between
from .models import CustomHoliday, HolidayCalendar

DateLike = Union[date, str]

_ACTIVE = object()


def _resolve(calendar) -> Optional[HolidayCalendar]:
    if calendar is _ACTIVE:
        return HolidayCalendar.get_active()
    return calendar


def _as_date(value: DateLike) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip()[:10])


def _as_date_set(values: Optional[Iterable[DateLike]]) -> set[date]:
    return {_as_date(v) for v in (values or ())}


def generic_holiday_label() -> str:
    return getattr(settings, "LEAVE_GENERIC_HOLIDAY_LABEL", "Sărbătoare legală")


def custom_holiday_dates() -> set[date]:
    """All institution days off, as dates."""
    return set(CustomHoliday.objects.values_list("date", flat=True))


def is_public_holiday(day: date, calendar=_ACTIVE) -> bool:
    cal = _resolve(calendar)
    if cal is None:
        return False
    return day in cal.holidays_for_year(day.year)


def get_holiday_name(day: date, calendar=_ACTIVE) -> Optional[str]:
    """Name of the public holiday on `day`, the generic label if unnamed, None if not a holiday."""
    cal = _resolve(calendar)
    if cal is None or not is_public_holiday(day, cal):
        return None
    return cal.names_by_month_day().get(day.strftime("%m-%d")) or generic_holiday_label()


def is_day_off(day: date, custom_holiday_dates: Optional[Iterable[DateLike]] = None, calendar=_ACTIVE) -> bool:
    if is_weekend(day):
        return True
    if is_public_holiday(day, calendar):
        return True
    return day in _as_date_set(custom_holiday_dates)


def days_off_between(
    start: date,
    end: date,
    custom_holiday_dates: Optional[Iterable[DateLike]] = None,
    calendar=_ACTIVE,
) -> set[date]:
    """Weekday dates in [start, end] that are public holidays or institution days off."""
    if end < start:
        return set()
    cal = _resolve(calendar)
    off = {d for d in _as_date_set(custom_holiday_dates) if start <= d <= end}
    if cal is not None:
        for year in range(start.year, end.year + 1):
            off |= {d for d in cal.holidays_for_year(year) if start <= d <= end}
    return {d for d in off if not is_weekend(d)}


def count_working_days(
    start: date,
    end: date,
    custom_holiday_dates: Optional[Iterable[DateLike]] = None,
    calendar=_ACTIVE,
) -> int:
    """
    Working days in [start, end], both ends included.
    An inverted range (end < start) is empty and counts 0.
    """
    if start is None or end is None or end < start:
        return 0
    weekdays = weekdays_between(start, end, inclusive=True) or 0
    return weekdays - len(days_off_between(start, end, custom_holiday_dates, calendar))


def holiday_warnings(start: date, end: date, calendar=_ACTIVE) -> list[str]:
    """One note per public holiday inside [start, end], for the request form."""
    cal = _resolve(calendar)
    if cal is None or end < start:
        return []
    names = cal.names_by_month_day()
    generic = generic_holiday_label()
    notes = []
    # one lookup per year, not per day
    for year in range(start.year, end.year + 1):
        for d in sorted(cal.holidays_for_year(year)):
            if start <= d <= end:
                name = names.get(d.strftime("%m-%d")) or generic
                notes.append(f"{d.strftime('%d.%m.%Y')} este sărbătoare legală ({name})")
    return notes
