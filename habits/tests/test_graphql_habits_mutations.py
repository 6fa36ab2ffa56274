import json
from datetime import timedelta
from unittest import mock

import pytest
from django.utils import timezone

from habits.models import Completion, Habit, RestDay
from habits.services.storage import StorageError

pytestmark = pytest.mark.django_db


@pytest.fixture
def user(django_user_model):
    return django_user_model.objects.create_user(
        username="u1",
        password="pass12345",
        email="u1@example.com",
    )


def _post_graphql(client, query: str, variables=None):
    payload = {"query": query}
    if variables is not None:
        payload["variables"] = variables

    response = client.post("/graphql/", data=payload, content_type="application/json")
    assert response.status_code == 200
    data = json.loads(response.content)

    # helpful assertion message if graphql errors happen
    assert "errors" not in data, data.get("errors")
    return data["data"]


COMPLETE = """
  mutation($habitId: ID!, $note: String) {
    completeHabit(habitId: $habitId, note: $note) {
      outcome
      message
      experienceGained
      isNewRecord
      celebrate
      habit { currentStreak bestStreak totalCompletions isCompletedToday experience level }
    }
  }
"""

REST = """
  mutation($habitId: ID!) {
    markRestDay(habitId: $habitId) {
      outcome
      message
      habit { hasRestDayToday currentStreak }
    }
  }
"""


def test_complete_habit_records_completion_and_returns_stats(client, user):
    assert client.login(username="u1", password="pass12345")

    habit = Habit.objects.create(owner=user, name="Gym")
    today = timezone.localdate()
    Completion.objects.bulk_create([
        Completion(habit=habit, user=user, completed_date=today - timedelta(days=d))
        for d in range(1, 7)
    ])

    data = _post_graphql(client, COMPLETE, {"habitId": str(habit.id), "note": "legs"})
    payload = data["completeHabit"]

    assert payload["outcome"] == "COMPLETED"
    assert payload["experienceGained"] == 15
    assert payload["isNewRecord"] is True
    assert payload["celebrate"] is True
    assert payload["message"]
    assert payload["habit"]["currentStreak"] == 7
    assert payload["habit"]["totalCompletions"] == 7
    assert payload["habit"]["isCompletedToday"] is True
    assert Completion.objects.get(habit=habit, completed_date=today).note == "legs"


def test_complete_habit_twice_does_not_duplicate(client, user):
    assert client.login(username="u1", password="pass12345")
    habit = Habit.objects.create(owner=user, name="Read")

    first = _post_graphql(client, COMPLETE, {"habitId": str(habit.id)})["completeHabit"]
    second = _post_graphql(client, COMPLETE, {"habitId": str(habit.id)})["completeHabit"]

    assert first["outcome"] == "COMPLETED"
    assert second["outcome"] == "ALREADY_COMPLETED"
    assert second["message"] == ""
    assert second["habit"]["experience"] == first["habit"]["experience"]
    assert Completion.objects.filter(habit=habit).count() == 1


def test_complete_habit_requires_authentication(client, user):
    habit = Habit.objects.create(owner=user, name="Read")

    response = client.post(
        "/graphql/",
        data={"query": COMPLETE, "variables": {"habitId": str(habit.id)}},
        content_type="application/json",
    )
    payload = json.loads(response.content)

    assert "errors" in payload
    assert not Completion.objects.exists()


def test_complete_habit_storage_failure_is_reported(client, user):
    assert client.login(username="u1", password="pass12345")
    habit = Habit.objects.create(owner=user, name="Read")

    with mock.patch("habits.services.storage._insert_once", side_effect=StorageError("db down")):
        response = client.post(
            "/graphql/",
            data={"query": COMPLETE, "variables": {"habitId": str(habit.id)}},
            content_type="application/json",
        )
    payload = json.loads(response.content)

    assert "errors" in payload
    assert not Completion.objects.exists()


def test_mark_rest_day_outcomes(client, user):
    assert client.login(username="u1", password="pass12345")
    strict = Habit.objects.create(owner=user, name="Strict")
    relaxed = Habit.objects.create(owner=user, name="Relaxed", allow_rest_days=True, rest_days_per_week=2)

    denied = _post_graphql(client, REST, {"habitId": str(strict.id)})["markRestDay"]
    marked = _post_graphql(client, REST, {"habitId": str(relaxed.id)})["markRestDay"]
    again = _post_graphql(client, REST, {"habitId": str(relaxed.id)})["markRestDay"]

    assert denied["outcome"] == "REST_DAYS_NOT_ALLOWED"
    assert marked["outcome"] == "REST_DAY_MARKED"
    assert "Relaxed" in marked["message"]
    assert marked["habit"]["hasRestDayToday"] is True
    assert again["outcome"] == "ALREADY_RESTED"
    assert RestDay.objects.filter(habit=relaxed).count() == 1
    assert not RestDay.objects.filter(habit=strict).exists()


def test_mark_rest_day_after_completion_is_rejected(client, user):
    assert client.login(username="u1", password="pass12345")
    habit = Habit.objects.create(owner=user, name="Relaxed", allow_rest_days=True, rest_days_per_week=2)

    _post_graphql(client, COMPLETE, {"habitId": str(habit.id)})
    result = _post_graphql(client, REST, {"habitId": str(habit.id)})["markRestDay"]

    assert result["outcome"] == "ALREADY_COMPLETED"
    assert not RestDay.objects.exists()


def test_complete_habit_on_rest_day_is_rejected(client, user):
    assert client.login(username="u1", password="pass12345")
    habit = Habit.objects.create(owner=user, name="Relaxed", allow_rest_days=True, rest_days_per_week=2)

    _post_graphql(client, REST, {"habitId": str(habit.id)})
    result = _post_graphql(client, COMPLETE, {"habitId": str(habit.id)})["completeHabit"]

    assert result["outcome"] == "ALREADY_RESTED"
    assert result["habit"]["isCompletedToday"] is False
    assert not Completion.objects.exists()


def test_create_update_deactivate_habit(client, user):
    assert client.login(username="u1", password="pass12345")

    create = """
      mutation($name: String!, $allow: Boolean, $perWeek: Int) {
        createHabit(name: $name, allowRestDays: $allow, restDaysPerWeek: $perWeek) {
          ok errorCode habit { id name allowRestDays restDaysPerWeek isActive }
        }
      }
    """
    created = _post_graphql(client, create, {"name": "Stretch", "allow": True, "perWeek": 2})["createHabit"]
    assert created["ok"] is True
    assert created["habit"]["restDaysPerWeek"] == 2
    habit_id = created["habit"]["id"]

    invalid = _post_graphql(client, create, {"name": "Yo", "allow": False})["createHabit"]
    assert invalid == {"ok": False, "errorCode": "name_too_short", "habit": None}

    duplicate = _post_graphql(client, create, {"name": "Stretch"})["createHabit"]
    assert duplicate["errorCode"] == "duplicate_name"

    update = """
      mutation($id: ID!, $name: String) {
        updateHabit(id: $id, name: $name) { ok habit { name restDaysPerWeek } }
      }
    """
    updated = _post_graphql(client, update, {"id": habit_id, "name": "Stretching"})["updateHabit"]
    assert updated == {"ok": True, "habit": {"name": "Stretching", "restDaysPerWeek": 2}}

    deactivate = """
      mutation($id: ID!) {
        deactivateHabit(id: $id) { ok habit { isActive } }
      }
    """
    gone = _post_graphql(client, deactivate, {"id": habit_id})["deactivateHabit"]
    assert gone == {"ok": True, "habit": {"isActive": False}}
    assert Habit.objects.filter(pk=habit_id).exists()

    result = client.post(
        "/graphql/",
        data={"query": COMPLETE, "variables": {"habitId": habit_id}},
        content_type="application/json",
    )
    assert "errors" in json.loads(result.content)


def test_adopt_shared_habit(client, user, django_user_model):
    owner = django_user_model.objects.create_user(username="u2", password="pass12345")
    shared = Habit.objects.create(owner=owner, name="Team run", group_id=3,
                                  allow_rest_days=True, rest_days_per_week=1)
    assert client.login(username="u1", password="pass12345")

    adopt = """
      mutation($id: ID!) {
        adoptHabit(id: $id) { ok errorCode habit { name groupId restDaysPerWeek } }
      }
    """
    first = _post_graphql(client, adopt, {"id": str(shared.id)})["adoptHabit"]
    second = _post_graphql(client, adopt, {"id": str(shared.id)})["adoptHabit"]

    assert first == {"ok": True, "errorCode": None,
                     "habit": {"name": "Team run", "groupId": 3, "restDaysPerWeek": 1}}
    assert second["ok"] is False
    assert second["errorCode"] == "already_adopted"
    assert Habit.objects.filter(owner=user, group_id=3).count() == 1
