"""
Per-user streak engine session.

A ``HabitEngine`` owns everything that changes while a user has the app
open: the day cursor (via its rollover controller), the loaded habits and
their derived views. All recomputation goes through ``refresh_habit`` and
always re-reads the full completion/rest-day history from the store.
"""
import enum
import logging
import random
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from habits.services.calendar import DayKey
from habits.services.gamification import compute_experience_gained, summarize_profile
from habits.services.habit_stats import HabitView, build_habit_view, compute_best_streak, empty_habit_view
from habits.services.messages import (
    celebration_message,
    is_celebration,
    new_day_message,
    rest_day_message,
    select_message,
)
from habits.services.rollover import DailyRolloverController
from habits.services.storage import HabitRecord, HabitStore, InsertResult, StorageError

logger = logging.getLogger(__name__)


class ActionOutcome(enum.Enum):
    COMPLETED = "completed"
    REST_DAY_MARKED = "rest_day_marked"
    ALREADY_COMPLETED = "already_completed"
    ALREADY_RESTED = "already_rested"
    REST_DAYS_NOT_ALLOWED = "rest_days_not_allowed"


class HabitNotFound(Exception):
    pass


@dataclass(frozen=True)
class CompletionResult:
    outcome: ActionOutcome
    view: HabitView
    message: str = ""
    experience_gained: int = 0
    is_new_record: bool = False
    celebrate: bool = False
    celebration: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome is ActionOutcome.COMPLETED


@dataclass(frozen=True)
class RestDayResult:
    outcome: ActionOutcome
    view: HabitView
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome is ActionOutcome.REST_DAY_MARKED


class HabitEngine:
    def __init__(
            self,
            store: HabitStore,
            user_id,
            *,
            clock=None,
            rng: Optional[random.Random] = None,
            on_stats_updated: Optional[Callable[[int, HabitView], None]] = None,
            on_message: Optional[Callable[[str], None]] = None,
            interval: Optional[float] = None,
    ):
        self.store = store
        self.user_id = user_id
        self.rng = rng or random.Random()
        self.on_stats_updated = on_stats_updated
        self.on_message = on_message
        self.rollover = DailyRolloverController(
            on_rollover=self._handle_rollover,
            clock=clock,
            interval=interval,
        )
        self._habits: Dict[int, HabitRecord] = {}
        self._views: Dict[int, HabitView] = {}

    @property
    def today(self) -> DayKey:
        return self.rollover.current_day

    @property
    def views(self) -> Dict[int, HabitView]:
        return dict(self._views)

    def view(self, habit_id) -> Optional[HabitView]:
        return self._views.get(habit_id)

    def summary(self):
        return summarize_profile(self._views.values())

    # lifecycle

    async def load(self) -> List[HabitView]:
        """Load the user's active habits and compute every view."""
        records = await self.store.fetch_habits(self.user_id)
        self._habits = {r.id: r for r in records if r.is_active}
        self._views = {k: v for k, v in self._views.items() if k in self._habits}
        await self.refresh_all()
        return [self._views[k] for k in self._habits]

    def start(self):
        return self.rollover.start()

    async def stop(self):
        await self.rollover.stop()

    async def check_rollover(self) -> bool:
        return await self.rollover.check()

    async def on_foreground(self) -> bool:
        return await self.rollover.on_foreground()

    # recomputation

    async def refresh_habit(self, habit_id) -> HabitView:
        habit = self._habits.get(habit_id)
        if habit is None:
            raise HabitNotFound(habit_id)

        today = self.today
        try:
            completions = await self.store.fetch_completions(habit.id, self.user_id)
            rest_days = await self.store.fetch_rest_days(habit.id, self.user_id)
        except StorageError:
            logger.warning("Could not load history for habit %s; showing empty stats", habit.id, exc_info=True)
            view = empty_habit_view(habit, today)
        else:
            view = build_habit_view(habit, completions, rest_days, today)

        self._views[habit.id] = view
        if self.on_stats_updated is not None:
            self.on_stats_updated(habit.id, view)
        return view

    async def refresh_all(self) -> None:
        for habit_id in list(self._habits):
            await self.refresh_habit(habit_id)

    async def _handle_rollover(self, today, previous):
        await self.refresh_all()
        self._emit(new_day_message(self.rng))

    def _emit(self, text: str):
        if self.on_message is not None:
            self.on_message(text)

    async def _habit(self, habit_id) -> HabitRecord:
        habit = self._habits.get(habit_id)
        if habit is None:
            habit = await self.store.fetch_habit(habit_id, self.user_id)
            if habit is None or not habit.is_active:
                raise HabitNotFound(habit_id)
            self._habits[habit.id] = habit
        return habit

    async def _current_view(self, habit: HabitRecord) -> HabitView:
        view = self._views.get(habit.id)
        if view is None or view.today != self.today:
            view = await self.refresh_habit(habit.id)
        return view

    # actions

    async def complete_habit(self, habit_id, note: str = "") -> CompletionResult:
        await self.check_rollover()
        habit = await self._habit(habit_id)
        before = await self._current_view(habit)

        if before.stats.is_completed_today:
            return CompletionResult(outcome=ActionOutcome.ALREADY_COMPLETED, view=before)
        if before.stats.has_rest_day_today:
            return CompletionResult(outcome=ActionOutcome.ALREADY_RESTED, view=before)

        result = await self.store.insert_completion(habit.id, self.user_id, self.today, note)
        if result is InsertResult.CONFLICT:
            # written from another device since our last read
            view = await self.refresh_habit(habit.id)
            return CompletionResult(outcome=ActionOutcome.ALREADY_COMPLETED, view=view)

        view = await self.refresh_habit(habit.id)
        streak = view.stats.current_streak
        # record is judged against the stored history, not the cached view
        previous_best = compute_best_streak(view.completions - {self.today}, view.rest_days)
        is_new_record = streak > previous_best
        message = select_message(habit.name, streak, is_new_record, self.rng)
        celebrate = is_celebration(streak, is_new_record)

        logger.info("Habit %s completed for %s (streak=%s, record=%s)", habit.id, self.today, streak, is_new_record)
        self._emit(message)

        return CompletionResult(
            outcome=ActionOutcome.COMPLETED,
            view=view,
            message=message,
            experience_gained=compute_experience_gained(streak),
            is_new_record=is_new_record,
            celebrate=celebrate,
            celebration=celebration_message(habit.name, streak) if celebrate else "",
        )

    async def mark_rest_day(self, habit_id, reason: str = "") -> RestDayResult:
        await self.check_rollover()
        habit = await self._habit(habit_id)
        before = await self._current_view(habit)

        if not habit.allow_rest_days:
            return RestDayResult(outcome=ActionOutcome.REST_DAYS_NOT_ALLOWED, view=before)
        if before.stats.is_completed_today:
            return RestDayResult(outcome=ActionOutcome.ALREADY_COMPLETED, view=before)
        if before.stats.has_rest_day_today:
            return RestDayResult(outcome=ActionOutcome.ALREADY_RESTED, view=before)

        result = await self.store.insert_rest_day(habit.id, self.user_id, self.today, reason)
        if result is InsertResult.CONFLICT:
            view = await self.refresh_habit(habit.id)
            return RestDayResult(outcome=ActionOutcome.ALREADY_RESTED, view=view)

        view = await self.refresh_habit(habit.id)
        message = rest_day_message(habit.name)
        logger.info("Rest day marked for habit %s on %s", habit.id, self.today)
        self._emit(message)
        return RestDayResult(outcome=ActionOutcome.REST_DAY_MARKED, view=view, message=message)
