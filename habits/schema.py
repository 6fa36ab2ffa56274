import graphene
from asgiref.sync import async_to_sync
from django.contrib.auth import get_user_model
from graphene_django import DjangoObjectType

from .models import Habit, Completion, RestDay
from habits.services import habit_stats
from .services.engine import ActionOutcome, HabitEngine, HabitNotFound
from .services.gamification import summarize_profile
from .services.habit_management import (
    HabitValidationError,
    adopt_habit,
    create_habit,
    deactivate_habit,
    update_habit,
)
from .services.storage import DjangoHabitStore, StorageError

ActionOutcomeEnum = graphene.Enum.from_enum(ActionOutcome)


def _require_user(info):
    user = info.context.user
    if user.is_anonymous:
        raise Exception("Authentication required")
    return user


def _habits_with_history(qs):
    return qs.prefetch_related("completions", "rest_days")


def _engine_for(user) -> HabitEngine:
    return HabitEngine(DjangoHabitStore(), user.pk)


class HabitType(DjangoObjectType):
    current_streak = graphene.Int()
    best_streak = graphene.Int()
    total_completions = graphene.Int()
    experience = graphene.Int()
    level = graphene.Int()
    is_completed_today = graphene.Boolean()
    has_rest_day_today = graphene.Boolean()

    class Meta:
        model = Habit
        fields = (
            "id", "name", "description", "allow_rest_days", "rest_days_per_week",
            "is_active", "group_id", "created_at", "completions", "rest_days",
        )

    def _stats(self):
        # one view per resolved habit, shared by all derived fields
        view = getattr(self, "_habit_view", None)
        if view is None:
            view = habit_stats.view_for_habit(self)
            self._habit_view = view
        return view.stats

    def resolve_current_streak(self, info):
        return HabitType._stats(self).current_streak

    def resolve_best_streak(self, info):
        return HabitType._stats(self).best_streak

    def resolve_total_completions(self, info):
        return HabitType._stats(self).total_completions

    def resolve_experience(self, info):
        return HabitType._stats(self).experience

    def resolve_level(self, info):
        return HabitType._stats(self).level

    def resolve_is_completed_today(self, info):
        return HabitType._stats(self).is_completed_today

    def resolve_has_rest_day_today(self, info):
        return HabitType._stats(self).has_rest_day_today


class CompletionType(DjangoObjectType):
    class Meta:
        model = Completion
        fields = ("id", "habit", "completed_date", "note", "created_at")


class RestDayType(DjangoObjectType):
    class Meta:
        model = RestDay
        fields = ("id", "habit", "rest_date", "reason", "created_at")


class ProfileType(graphene.ObjectType):
    total_habits = graphene.Int()
    active_streaks = graphene.Int()
    best_streak = graphene.Int()
    total_completions = graphene.Int()
    total_experience = graphene.Int()
    level = graphene.Int()
    achievements = graphene.Int()


class UserType(DjangoObjectType):
    class Meta:
        model = get_user_model()
        fields = ("id", "username", "email")


class Query(graphene.ObjectType):
    me = graphene.Field(UserType)
    profile = graphene.Field(ProfileType)
    habits = graphene.List(HabitType, active_only=graphene.Boolean(required=False))
    habit = graphene.Field(HabitType, id=graphene.ID(required=True))

    def resolve_habits(self, info, active_only=None):
        user = info.context.user
        if user.is_anonymous:
            return Habit.objects.none()

        qs = Habit.objects.filter(owner=user).order_by("name")
        if active_only is True:
            qs = qs.filter(is_active=True)
        return _habits_with_history(qs)

    def resolve_habit(self, info, id):
        user = _require_user(info)
        return _habits_with_history(Habit.objects.filter(owner=user)).get(pk=id)

    def resolve_profile(self, info):
        user = info.context.user
        if user.is_anonymous:
            return None
        habits = _habits_with_history(Habit.objects.filter(owner=user, is_active=True))
        return summarize_profile(habit_stats.view_for_habit(h) for h in habits)

    def resolve_me(self, info):
        user = info.context.user
        return None if user.is_anonymous else user


class HabitMutationMixin:
    habit = graphene.Field(HabitType)
    ok = graphene.Boolean(required=True)
    error_code = graphene.String()
    error_message = graphene.String()

    @classmethod
    def failed(cls, exc: HabitValidationError):
        return cls(ok=False, error_code=exc.code, error_message=exc.message)


class CreateHabit(HabitMutationMixin, graphene.Mutation):
    class Arguments:
        name = graphene.String(required=True)
        description = graphene.String(required=False)
        allow_rest_days = graphene.Boolean(required=False)
        rest_days_per_week = graphene.Int(required=False)
        group_id = graphene.Int(required=False)

    @classmethod
    def mutate(cls, root, info, name, description="", allow_rest_days=False,
               rest_days_per_week=None, group_id=None):
        user = _require_user(info)
        try:
            habit = create_habit(
                owner=user,
                name=name,
                description=description,
                allow_rest_days=allow_rest_days,
                rest_days_per_week=rest_days_per_week,
                group_id=group_id,
            )
        except HabitValidationError as exc:
            return cls.failed(exc)
        return cls(ok=True, habit=habit)


class UpdateHabit(HabitMutationMixin, graphene.Mutation):
    class Arguments:
        id = graphene.ID(required=True)
        name = graphene.String(required=False)
        description = graphene.String(required=False)
        allow_rest_days = graphene.Boolean(required=False)
        rest_days_per_week = graphene.Int(required=False)

    @classmethod
    def mutate(cls, root, info, id, **changes):
        user = _require_user(info)
        habit = Habit.objects.get(pk=id, owner=user)
        try:
            habit = update_habit(habit, **changes)
        except HabitValidationError as exc:
            return cls.failed(exc)
        return cls(ok=True, habit=habit)


class DeactivateHabit(graphene.Mutation):
    class Arguments:
        id = graphene.ID(required=True)

    ok = graphene.Boolean(required=True)
    habit = graphene.Field(HabitType)

    def mutate(self, info, id):
        user = _require_user(info)
        habit = Habit.objects.get(pk=id, owner=user)
        deactivate_habit(habit)
        return DeactivateHabit(ok=True, habit=habit)


class AdoptHabit(HabitMutationMixin, graphene.Mutation):
    class Arguments:
        id = graphene.ID(required=True)

    @classmethod
    def mutate(cls, root, info, id):
        user = _require_user(info)
        source = Habit.objects.get(pk=id, group_id__isnull=False, is_active=True)
        try:
            habit = adopt_habit(source, user=user)
        except HabitValidationError as exc:
            return cls.failed(exc)
        return cls(ok=True, habit=habit)


def _run_action(user, action, habit_id, text):
    engine = _engine_for(user)
    try:
        return async_to_sync(getattr(engine, action))(int(habit_id), text or "")
    except HabitNotFound:
        raise Exception("Habit not found")
    except StorageError:
        raise Exception("Habit storage is unavailable, please try again")


def _reloaded(habit_id, user):
    return _habits_with_history(Habit.objects.filter(owner=user)).get(pk=habit_id)


class CompleteHabit(graphene.Mutation):
    class Arguments:
        habit_id = graphene.ID(required=True)
        note = graphene.String(required=False)

    outcome = graphene.Field(ActionOutcomeEnum, required=True)
    message = graphene.String()
    experience_gained = graphene.Int()
    is_new_record = graphene.Boolean()
    celebrate = graphene.Boolean()
    celebration = graphene.String()
    habit = graphene.Field(HabitType)

    @classmethod
    def mutate(cls, root, info, habit_id, note=None):
        user = _require_user(info)
        result = _run_action(user, "complete_habit", habit_id, note)

        return cls(
            outcome=result.outcome,
            message=result.message,
            experience_gained=result.experience_gained,
            is_new_record=result.is_new_record,
            celebrate=result.celebrate,
            celebration=result.celebration,
            habit=_reloaded(habit_id, user),
        )


class MarkRestDay(graphene.Mutation):
    class Arguments:
        habit_id = graphene.ID(required=True)
        reason = graphene.String(required=False)

    outcome = graphene.Field(ActionOutcomeEnum, required=True)
    message = graphene.String()
    habit = graphene.Field(HabitType)

    @classmethod
    def mutate(cls, root, info, habit_id, reason=None):
        user = _require_user(info)
        result = _run_action(user, "mark_rest_day", habit_id, reason)
        return cls(outcome=result.outcome, message=result.message, habit=_reloaded(habit_id, user))


class Mutation(graphene.ObjectType):
    create_habit = CreateHabit.Field()
    update_habit = UpdateHabit.Field()
    deactivate_habit = DeactivateHabit.Field()
    adopt_habit = AdoptHabit.Field()
    complete_habit = CompleteHabit.Field()
    mark_rest_day = MarkRestDay.Field()
