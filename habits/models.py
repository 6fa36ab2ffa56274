from __future__ import annotations
from typing import TYPE_CHECKING

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator
from django.db import models


class Habit(models.Model):
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='habits',
    )
    name = models.CharField(max_length=50)
    description = models.TextField(blank=True, max_length=200)
    allow_rest_days = models.BooleanField(default=False)
    rest_days_per_week = models.PositiveSmallIntegerField(
        default=0,
        validators=[MaxValueValidator(6)],
    )
    is_active = models.BooleanField(default=True)
    # opaque reference to a shared/group habit; groups live elsewhere
    group_id = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['owner', 'name'], name='unique_habit_name_per_user')
        ]

    if TYPE_CHECKING:
        # Django dynamically injects these via related_name
        completions = None
        rest_days = None

    def clean(self):
        if self.allow_rest_days and not 1 <= self.rest_days_per_week <= 6:
            raise ValidationError({"rest_days_per_week": "Must be between 1 and 6 when rest days are allowed."})
        if not self.allow_rest_days and self.rest_days_per_week != 0:
            raise ValidationError({"rest_days_per_week": "Must be 0 when rest days are not allowed."})

    def __str__(self) -> str:
        return self.name


class Completion(models.Model):
    habit = models.ForeignKey(Habit, on_delete=models.CASCADE,
                              related_name="completions")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE,
                             related_name="habit_completions")
    completed_date = models.DateField()
    note = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["habit", "user", "completed_date"],
                                    name="unique_completion_per_habit_user_day")
        ]
        ordering = ["-completed_date", "-created_at"]

    def __str__(self) -> str:
        return f"{self.habit.name} @ {self.completed_date}"


class RestDay(models.Model):
    habit = models.ForeignKey(Habit, on_delete=models.CASCADE,
                              related_name="rest_days")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE,
                             related_name="habit_rest_days")
    rest_date = models.DateField()
    reason = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["habit", "user", "rest_date"],
                                    name="unique_rest_day_per_habit_user_day")
        ]
        ordering = ["-rest_date", "-created_at"]

    def __str__(self) -> str:
        return f"{self.habit.name} rest @ {self.rest_date}"
