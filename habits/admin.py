from django.contrib import admin

from .models import Completion, Habit, RestDay


@admin.register(Habit)
class HabitAdmin(admin.ModelAdmin):
    list_display = ("name", "owner", "allow_rest_days", "rest_days_per_week", "is_active", "created_at")
    list_filter = ("is_active", "allow_rest_days")
    search_fields = ("name", "owner__username")


@admin.register(Completion)
class CompletionAdmin(admin.ModelAdmin):
    list_display = ("habit", "user", "completed_date")
    date_hierarchy = "completed_date"


@admin.register(RestDay)
class RestDayAdmin(admin.ModelAdmin):
    list_display = ("habit", "user", "rest_date", "reason")
    date_hierarchy = "rest_date"
