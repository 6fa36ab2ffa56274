"""
Storage boundary for the streak engine.

The engine only ever talks to a store through the coroutine methods of
``HabitStore``. ``DjangoHabitStore`` is the ORM-backed implementation;
anything exposing the same methods (e.g. an in-memory store in tests)
can be handed to the engine instead.

Raw rows are validated here: malformed dates are dropped and logged so
nothing undefined reaches the calculators.
"""
import enum
import logging
from dataclasses import dataclass
from typing import List, Optional

from asgiref.sync import sync_to_async
from django.db import DatabaseError, IntegrityError, transaction

from habits.models import Completion, Habit, RestDay
from habits.services.calendar import DayKey, coerce_day_key

logger = logging.getLogger(__name__)


class InsertResult(enum.Enum):
    CREATED = "created"
    CONFLICT = "conflict"


class StorageError(Exception):
    """The backing store failed (connection lost, database unavailable...)."""


@dataclass(frozen=True)
class HabitRecord:
    id: int
    user_id: int
    name: str
    allow_rest_days: bool = False
    rest_days_per_week: int = 0
    is_active: bool = True
    group_id: Optional[int] = None

    @classmethod
    def from_model(cls, habit: Habit) -> "HabitRecord":
        allow = bool(habit.allow_rest_days)
        return cls(
            id=habit.pk,
            user_id=habit.owner_id,
            name=habit.name or "",
            allow_rest_days=allow,
            rest_days_per_week=int(habit.rest_days_per_week or 0) if allow else 0,
            is_active=bool(habit.is_active),
            group_id=habit.group_id,
        )


def clean_day_keys(values, *, source: str) -> List[DayKey]:
    days = []
    for value in values:
        day = coerce_day_key(value)
        if day is None:
            logger.warning("Dropping malformed %s value: %r", source, value)
            continue
        days.append(day)
    return days


class HabitStore:
    """Interface expected by HabitEngine."""

    async def fetch_habits(self, user_id) -> List[HabitRecord]:
        raise NotImplementedError

    async def fetch_habit(self, habit_id, user_id) -> Optional[HabitRecord]:
        raise NotImplementedError

    async def fetch_completions(self, habit_id, user_id) -> List[DayKey]:
        raise NotImplementedError

    async def fetch_rest_days(self, habit_id, user_id) -> List[DayKey]:
        raise NotImplementedError

    async def insert_completion(self, habit_id, user_id, day: DayKey, note: str = "") -> InsertResult:
        raise NotImplementedError

    async def insert_rest_day(self, habit_id, user_id, day: DayKey, reason: str = "") -> InsertResult:
        raise NotImplementedError


def _insert_once(model, **fields) -> InsertResult:
    try:
        with transaction.atomic():
            model.objects.create(**fields)
    except IntegrityError:
        return InsertResult.CONFLICT
    except DatabaseError as exc:
        raise StorageError(str(exc)) from exc
    return InsertResult.CREATED


def _read(fn, *args):
    try:
        return fn(*args)
    except DatabaseError as exc:
        raise StorageError(str(exc)) from exc


def _habits_for_user(user_id):
    qs = Habit.objects.filter(owner_id=user_id, is_active=True).order_by("name")
    return [HabitRecord.from_model(h) for h in qs]


def _habit_for_user(habit_id, user_id):
    habit = Habit.objects.filter(pk=habit_id, owner_id=user_id).first()
    return HabitRecord.from_model(habit) if habit is not None else None


def _completion_dates(habit_id, user_id):
    return list(
        Completion.objects.filter(habit_id=habit_id, user_id=user_id)
        .values_list("completed_date", flat=True)
    )


def _rest_dates(habit_id, user_id):
    return list(
        RestDay.objects.filter(habit_id=habit_id, user_id=user_id)
        .values_list("rest_date", flat=True)
    )


class DjangoHabitStore(HabitStore):
    """ORM-backed store. Full history is always returned, never a date window."""

    async def fetch_habits(self, user_id):
        return await sync_to_async(_read)(_habits_for_user, user_id)

    async def fetch_habit(self, habit_id, user_id):
        return await sync_to_async(_read)(_habit_for_user, habit_id, user_id)

    async def fetch_completions(self, habit_id, user_id):
        rows = await sync_to_async(_read)(_completion_dates, habit_id, user_id)
        return clean_day_keys(rows, source="completed_date")

    async def fetch_rest_days(self, habit_id, user_id):
        rows = await sync_to_async(_read)(_rest_dates, habit_id, user_id)
        return clean_day_keys(rows, source="rest_date")

    async def insert_completion(self, habit_id, user_id, day, note=""):
        return await sync_to_async(_insert_once)(
            Completion,
            habit_id=habit_id,
            user_id=user_id,
            completed_date=day,
            note=note or "",
        )

    async def insert_rest_day(self, habit_id, user_id, day, reason=""):
        return await sync_to_async(_insert_once)(
            RestDay,
            habit_id=habit_id,
            user_id=user_id,
            rest_date=day,
            reason=reason or "",
        )
