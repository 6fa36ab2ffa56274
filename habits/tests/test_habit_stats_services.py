import random
from datetime import date, timedelta

import pytest
from django.db import connection
from django.test.utils import CaptureQueriesContext
from django.utils import timezone

from habits.models import Habit, Completion, RestDay
from habits.services import habit_stats
from habits.services.storage import HabitRecord

TODAY = date(2024, 5, 20)


def _days(*offsets):
    return {TODAY - timedelta(days=o) for o in offsets}


def _record(**kwargs):
    kwargs.setdefault("allow_rest_days", True)
    kwargs.setdefault("rest_days_per_week", 1)
    return HabitRecord(id=1, user_id=1, name="Gym", **kwargs)


def test_current_streak__empty_completions_is_zero():
    assert habit_stats.compute_current_streak(set(), _days(0, 1), TODAY) == 0


def test_current_streak__counts_consecutive_days_ending_today():
    completions = _days(0, 1, 2, 5)  # break at 3
    assert habit_stats.compute_current_streak(completions, set(), TODAY) == 3


def test_current_streak__today_not_done_is_zero():
    completions = _days(1, 2, 3)
    assert habit_stats.compute_current_streak(completions, set(), TODAY) == 0


def test_current_streak__rest_day_today_keeps_prior_run_without_adding():
    completions = _days(1, 2, 3)
    assert habit_stats.compute_current_streak(completions, _days(0), TODAY) == 3


def test_current_streak__rest_day_bridges_gap():
    # D-9..D-7 and D-5..D completed, D-6 rested
    completions = _days(9, 8, 7, 5, 4, 3, 2, 1, 0)
    assert habit_stats.compute_current_streak(completions, _days(6), TODAY) == 10


def test_current_streak__unbridged_rest_at_run_start_is_not_counted():
    completions = _days(0, 1)
    assert habit_stats.compute_current_streak(completions, _days(2, 3), TODAY) == 2


def test_current_streak__gap_yesterday_caps_at_one():
    completions = _days(0, 2, 3, 4)
    assert habit_stats.compute_current_streak(completions, set(), TODAY) == 1
    assert habit_stats.compute_current_streak(completions - _days(0), set(), TODAY) == 0


def test_current_streak__walk_is_bounded_by_lookback():
    completions = {TODAY - timedelta(days=i) for i in range(500)}
    assert habit_stats.compute_current_streak(completions, set(), TODAY, lookback_days=365) == 365


def test_current_streak__lookback_comes_from_settings(settings):
    settings.HABITS_STREAK_LOOKBACK_DAYS = 10
    completions = {TODAY - timedelta(days=i) for i in range(30)}
    assert habit_stats.compute_current_streak(completions, set(), TODAY) == 10


def test_best_streak__returns_max_historical_run():
    # Runs: (today..today-2) => 3
    # and (today-10..today-6) => 5  (best)
    completions = _days(0, 1, 2, 6, 7, 8, 9, 10)
    assert habit_stats.compute_best_streak(completions, set()) == 5


def test_best_streak__rest_days_bridge_historical_runs():
    completions = _days(20, 19, 17, 16, 15, 0)
    assert habit_stats.compute_best_streak(completions, _days(18)) == 6
    assert habit_stats.compute_best_streak(completions, set()) == 3


def test_best_streak__empty_is_zero():
    assert habit_stats.compute_best_streak(set(), _days(1)) == 0


def test_best_streak_is_never_below_current_streak():
    rng = random.Random(1234)
    for _ in range(300):
        completions = {d for d in _days(*range(60)) if rng.random() < 0.6}
        rest_days = {d for d in _days(*range(60)) if rng.random() < 0.15} - completions
        current = habit_stats.compute_current_streak(completions, rest_days, TODAY)
        assert habit_stats.compute_best_streak(completions, rest_days) >= current


def test_rest_day_on_gap_never_decreases_streak_and_on_completion_is_noop():
    rng = random.Random(99)
    for _ in range(300):
        completions = {d for d in _days(*range(30)) if rng.random() < 0.7}
        rest_days = set()
        before = habit_stats.compute_current_streak(completions, rest_days, TODAY)

        day = TODAY - timedelta(days=rng.randrange(30))
        after = habit_stats.compute_current_streak(completions, rest_days | {day}, TODAY)
        if day in completions:
            assert after == before
        else:
            assert after >= before


def test_build_habit_view__scenario_three_consecutive_days():
    view = habit_stats.build_habit_view(_record(), _days(2, 1, 0), set(), TODAY)
    assert view.stats.current_streak == 3
    assert view.stats.total_completions == 3
    assert view.stats.experience == 30
    assert view.stats.level == 1
    assert view.stats.is_completed_today is True
    assert view.stats.has_rest_day_today is False


def test_build_habit_view__scenario_rest_day_bridge():
    completions = _days(9, 8, 7, 5, 4, 3, 2, 1, 0)
    view = habit_stats.build_habit_view(_record(), completions, _days(6), TODAY)
    assert view.stats.current_streak == 10
    assert view.stats.total_completions == 9
    assert view.stats.best_streak == 10


def test_build_habit_view__ignores_rest_days_when_habit_disallows_them():
    record = _record(allow_rest_days=False, rest_days_per_week=0)
    completions = _days(9, 8, 7, 5, 4, 3, 2, 1, 0)
    view = habit_stats.build_habit_view(record, completions, _days(6), TODAY)
    assert view.stats.current_streak == 6
    assert view.rest_days == frozenset()


def test_build_habit_view__rest_day_today_flag():
    view = habit_stats.build_habit_view(_record(), _days(1), _days(0), TODAY)
    assert view.stats.has_rest_day_today is True
    assert view.stats.is_completed_today is False
    assert view.stats.current_streak == 1


def test_build_habit_view__is_deterministic():
    completions = _days(0, 1, 3)
    first = habit_stats.build_habit_view(_record(), completions, _days(2), TODAY)
    second = habit_stats.build_habit_view(_record(), list(completions), [TODAY - timedelta(days=2)], TODAY)
    assert first == second


@pytest.fixture()
def user(django_user_model):
    return django_user_model.objects.create_user(
        username="u1",
        password="pass12345",
        email="u1@example.com",
    )


@pytest.mark.django_db
def test_view_for_habit__prefetched__counts_rest_days_and_hits_no_db(user):
    today = timezone.localdate()
    habit = Habit.objects.create(owner=user, name="Streaky", allow_rest_days=True, rest_days_per_week=1)
    Completion.objects.bulk_create([
        Completion(habit=habit, user=user, completed_date=today - timedelta(days=d))
        for d in (0, 1, 3)
    ])
    RestDay.objects.create(habit=habit, user=user, rest_date=today - timedelta(days=2))

    obj = Habit.objects.prefetch_related("completions", "rest_days").get(pk=habit.pk)

    with CaptureQueriesContext(connection) as ctx:
        view = habit_stats.view_for_habit(obj)

    assert view.stats.current_streak == 4
    assert view.stats.total_completions == 3
    assert len(ctx) == 0


@pytest.mark.django_db
def test_view_for_habit__non_prefetched__reads_history(user):
    today = timezone.localdate()
    habit = Habit.objects.create(owner=user, name="BestStreakDB")
    Completion.objects.bulk_create([
        Completion(habit=habit, user=user, completed_date=today - timedelta(days=i))
        for i in range(4)
    ])

    view = habit_stats.view_for_habit(Habit.objects.get(pk=habit.pk))
    assert view.stats.best_streak == 4
    assert view.stats.current_streak == 4
    assert view.stats.is_completed_today is True
