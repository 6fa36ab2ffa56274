"""
Day keys: a habit's history is tracked per local calendar day.

Every "today" and every stored date goes through ``to_day_key`` so the
whole engine agrees on a single time zone (Django's current one).
"""
from datetime import date, datetime
from typing import Optional

from django.utils import timezone

DayKey = date


class SystemClock:
    def now(self) -> datetime:
        return timezone.now()


def to_day_key(instant) -> DayKey:
    if isinstance(instant, datetime):
        if timezone.is_aware(instant):
            return timezone.localtime(instant).date()
        return instant.date()
    return instant


def local_today(clock=None) -> DayKey:
    clock = clock or SystemClock()
    return to_day_key(clock.now())


def format_day_key(day: DayKey) -> str:
    return day.isoformat()


def parse_day_key(text: str) -> DayKey:
    return date.fromisoformat(text[:10])


def days_between(a: DayKey, b: DayKey) -> int:
    return (b - a).days


def coerce_day_key(value) -> Optional[DayKey]:
    """
    Best-effort conversion of a raw storage value into a day key.
    Returns None for anything that is not a date, datetime or ISO string.
    """
    if isinstance(value, (date, datetime)):
        return to_day_key(value)
    if isinstance(value, str):
        try:
            return parse_day_key(value)
        except ValueError:
            return None
    return None
