from typing import Optional

from django.db import IntegrityError, transaction

from habits.models import Habit

NAME_MIN_LENGTH = 3
NAME_MAX_LENGTH = 50
DESCRIPTION_MAX_LENGTH = 200


class HabitValidationError(Exception):
    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


def _clean_name(name) -> str:
    name = (name or "").strip()
    if not name:
        raise HabitValidationError("name_required", "Habit name is required.")
    if len(name) < NAME_MIN_LENGTH:
        raise HabitValidationError("name_too_short", f"Name must be at least {NAME_MIN_LENGTH} characters.")
    if len(name) > NAME_MAX_LENGTH:
        raise HabitValidationError("name_too_long", f"Name cannot exceed {NAME_MAX_LENGTH} characters.")
    return name


def _clean_description(description) -> str:
    description = (description or "").strip()
    if len(description) > DESCRIPTION_MAX_LENGTH:
        raise HabitValidationError(
            "description_too_long",
            f"Description cannot exceed {DESCRIPTION_MAX_LENGTH} characters.",
        )
    return description


def _clean_rest_policy(allow_rest_days: bool, rest_days_per_week: Optional[int]) -> int:
    if not allow_rest_days:
        return 0
    if rest_days_per_week is None or not 1 <= rest_days_per_week <= 6:
        raise HabitValidationError(
            "invalid_rest_days",
            "When rest days are allowed there must be between 1 and 6 per week.",
        )
    return rest_days_per_week


def _save(habit: Habit, **kwargs) -> Habit:
    try:
        with transaction.atomic():
            habit.save(**kwargs)
    except IntegrityError as exc:
        raise HabitValidationError("duplicate_name", "You already have a habit with that name.") from exc
    return habit


def create_habit(*, owner, name, description="", allow_rest_days=False,
                 rest_days_per_week=None, group_id=None) -> Habit:
    habit = Habit(
        owner=owner,
        name=_clean_name(name),
        description=_clean_description(description),
        allow_rest_days=bool(allow_rest_days),
        rest_days_per_week=_clean_rest_policy(allow_rest_days, rest_days_per_week),
        group_id=group_id,
        is_active=True,
    )
    return _save(habit)


def update_habit(habit: Habit, *, name=None, description=None, allow_rest_days=None,
                 rest_days_per_week=None) -> Habit:
    """Edit name/description/rest-day policy. Omitted fields keep their value."""
    if name is not None:
        habit.name = _clean_name(name)
    if description is not None:
        habit.description = _clean_description(description)
    if allow_rest_days is not None or rest_days_per_week is not None:
        allow = habit.allow_rest_days if allow_rest_days is None else bool(allow_rest_days)
        per_week = habit.rest_days_per_week if rest_days_per_week is None else rest_days_per_week
        habit.allow_rest_days = allow
        habit.rest_days_per_week = _clean_rest_policy(allow, per_week)
    return _save(habit, update_fields=["name", "description", "allow_rest_days", "rest_days_per_week"])


def deactivate_habit(habit: Habit) -> Habit:
    # history stays; habits are never purged from here
    habit.is_active = False
    habit.save(update_fields=["is_active"])
    return habit


def adopt_habit(source: Habit, *, user) -> Habit:
    """Clone a shared habit into a new row owned by `user`, same group."""
    if source.group_id is None:
        raise HabitValidationError("not_shared", "Only shared habits can be adopted.")
    if source.owner_id == user.pk or Habit.objects.filter(owner=user, group_id=source.group_id).exists():
        raise HabitValidationError("already_adopted", "You already track this habit.")

    habit = Habit(
        owner=user,
        name=source.name,
        description=source.description,
        allow_rest_days=source.allow_rest_days,
        rest_days_per_week=source.rest_days_per_week if source.allow_rest_days else 0,
        group_id=source.group_id,
        is_active=True,
    )
    return _save(habit)
