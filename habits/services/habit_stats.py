from dataclasses import dataclass, field
from datetime import timedelta
from typing import FrozenSet, Iterable, Optional

from django.conf import settings

from habits.models import Habit
from habits.services.calendar import DayKey, coerce_day_key, local_today
from habits.services.gamification import compute_experience, compute_level
from habits.services.storage import HabitRecord

DEFAULT_LOOKBACK_DAYS = 365


@dataclass(frozen=True)
class HabitStats:
    current_streak: int = 0
    best_streak: int = 0
    total_completions: int = 0
    experience: int = 0
    level: int = 1
    is_completed_today: bool = False
    has_rest_day_today: bool = False


@dataclass(frozen=True)
class HabitView:
    habit: HabitRecord
    today: DayKey
    stats: HabitStats
    completions: FrozenSet[DayKey] = field(default_factory=frozenset)
    rest_days: FrozenSet[DayKey] = field(default_factory=frozenset)


def _lookback_days() -> int:
    return getattr(settings, "HABITS_STREAK_LOOKBACK_DAYS", DEFAULT_LOOKBACK_DAYS)


def compute_current_streak(completions, rest_days, today: DayKey, lookback_days: Optional[int] = None) -> int:
    """
    Consecutive qualifying days ending at `today`, walking backwards.

    A rest day keeps the walk going. It adds to the count only once a
    completion is found on both sides of it, so a rest day today (or at
    the start of a run) never inflates the streak.
    """
    if not completions:
        return 0
    if lookback_days is None:
        lookback_days = _lookback_days()

    streak = 0
    bridged = 0
    day = today
    for _ in range(lookback_days):
        if day in completions:
            streak += 1 + bridged
            bridged = 0
        elif day in rest_days:
            if streak:
                bridged += 1
        else:
            break
        day -= timedelta(days=1)
    return streak


def compute_best_streak(completions, rest_days) -> int:
    """
    Max streak across the full history.
    Forward scan from the first to the last completion using the same
    adjacency rule as compute_current_streak.
    """
    if not completions:
        return 0

    ordered = sorted(completions)
    day, last = ordered[0], ordered[-1]
    best = 0
    cur = 0
    bridged = 0
    while day <= last:
        if day in completions:
            cur += 1 + bridged
            bridged = 0
            if cur > best:
                best = cur
        elif day in rest_days and cur:
            bridged += 1
        else:
            cur = 0
            bridged = 0
        day += timedelta(days=1)
    return best


def build_habit_view(
        habit: HabitRecord,
        completions: Iterable[DayKey],
        rest_days: Iterable[DayKey],
        today: DayKey,
) -> HabitView:
    completion_set = frozenset(completions)
    # rest days only excuse gaps on habits that allow them
    rest_set = frozenset(rest_days) if habit.allow_rest_days else frozenset()

    current = compute_current_streak(completion_set, rest_set, today)
    best = compute_best_streak(completion_set, rest_set)
    total = len(completion_set)
    experience = compute_experience(total, current)

    stats = HabitStats(
        current_streak=current,
        best_streak=best,
        total_completions=total,
        experience=experience,
        level=compute_level(experience),
        is_completed_today=today in completion_set,
        has_rest_day_today=today in rest_set,
    )
    return HabitView(habit=habit, today=today, stats=stats, completions=completion_set, rest_days=rest_set)


def empty_habit_view(habit: HabitRecord, today: DayKey) -> HabitView:
    return HabitView(habit=habit, today=today, stats=HabitStats())


def _prefetched_dates_or_none(habit: Habit, relation: str, date_field: str):
    """
    If `relation` was prefetched, Django stores it in _prefetched_objects_cache.
    We can use that to avoid DB queries.
    """
    cache = getattr(habit, "_prefetched_objects_cache", None) or {}
    if relation not in cache:
        return None
    return {
        getattr(obj, date_field)
        for obj in cache[relation]
        if obj.user_id == habit.owner_id
    }


def view_for_habit(habit: Habit, today: Optional[DayKey] = None) -> HabitView:
    """Synchronous read path for ORM habits (GraphQL resolvers)."""
    today = today or local_today()

    completions = _prefetched_dates_or_none(habit, "completions", "completed_date")
    if completions is None:
        completions = habit.completions.filter(user_id=habit.owner_id).values_list("completed_date", flat=True)
    rest_days = _prefetched_dates_or_none(habit, "rest_days", "rest_date")
    if rest_days is None:
        rest_days = habit.rest_days.filter(user_id=habit.owner_id).values_list("rest_date", flat=True)

    return build_habit_view(
        HabitRecord.from_model(habit),
        [d for d in map(coerce_day_key, completions) if d is not None],
        [d for d in map(coerce_day_key, rest_days) if d is not None],
        today,
    )
