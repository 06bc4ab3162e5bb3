import os
import sys
import asyncio
import datetime
import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from auth import AuthContext, User
from weekly_service import (
    ScheduledExercise,
    WeeklyExercise,
    WeeklyExercisesView,
    flatten_scheduled,
)

TODAY = datetime.date(2024, 3, 6)
USER = User(1, "lifter@example.com")


class FakeBackend:
    def __init__(self, exercises=None, workouts=None) -> None:
        self.exercises = exercises or []
        self.workouts = workouts or []
        self.fail = False
        self.calls: list[tuple[int, str, str]] = []
        self.loading_seen: list[bool] = []
        self.view = None

    async def fetch_exercises(self):
        if self.view is not None:
            self.loading_seen.append(self.view.loading)
        if self.fail:
            raise RuntimeError("backend unavailable")
        return list(self.exercises)

    async def fetch_scheduled_workouts(self, user_id, start_date, end_date):
        self.calls.append((user_id, start_date, end_date))
        return [
            w
            for w in self.workouts
            if w["user_id"] == user_id and start_date <= w["scheduled_date"] <= end_date
        ]


def _backend() -> FakeBackend:
    return FakeBackend(
        exercises=[{"id": 2, "name": "Bench Press"}, {"id": 1, "name": "Squat"}],
        workouts=[
            {
                "id": 10,
                "user_id": 1,
                "scheduled_date": "2024-03-05",
                "workout_exercises": [{"exercise_id": 1}],
            },
            {
                "id": 11,
                "user_id": 1,
                "scheduled_date": "2024-03-12",
                "workout_exercises": [{"exercise_id": 2}],
            },
        ],
    )


def test_flatten_scheduled():
    workouts = [
        {
            "scheduled_date": "2024-03-05",
            "workout_exercises": [{"exercise_id": 1}, {"exercise_id": 3}],
        },
        {"scheduled_date": "2024-03-07", "workout_exercises": []},
    ]
    assert flatten_scheduled(workouts) == [
        ScheduledExercise(1, "2024-03-05"),
        ScheduledExercise(3, "2024-03-05"),
    ]
    assert flatten_scheduled(None) == []


@pytest.mark.asyncio
async def test_mount_without_user_loads_catalog_only():
    backend = _backend()
    view = WeeklyExercisesView(backend, AuthContext(), today=TODAY)
    assert view.loading is True
    await view.mount()
    assert view.loading is False
    assert view.exercises == [WeeklyExercise(2, "Bench Press"), WeeklyExercise(1, "Squat")]
    assert view.scheduled_exercises == []
    assert backend.calls == []


@pytest.mark.asyncio
async def test_mount_with_user_marks_scheduled_exercises():
    backend = _backend()
    view = WeeklyExercisesView(backend, AuthContext(USER), today=TODAY)
    backend.view = view
    await view.mount()
    assert backend.loading_seen == [True]
    assert backend.calls == [(1, "2024-03-04", "2024-03-10")]
    assert view.is_exercise_scheduled(1) is True
    assert view.is_exercise_scheduled(2) is False
    assert [(ex.name, s) for ex, s in view.checklist()] == [
        ("Bench Press", False),
        ("Squat", True),
    ]


@pytest.mark.asyncio
async def test_week_navigation_shifts_and_reloads():
    backend = _backend()
    view = WeeklyExercisesView(backend, AuthContext(USER), today=TODAY)
    await view.mount()
    start = view.current_week_start

    await view.next_week()
    assert view.current_week_start == start + datetime.timedelta(days=7)
    assert backend.calls[-1] == (1, "2024-03-11", "2024-03-17")
    assert view.is_exercise_scheduled(2) is True
    assert view.is_exercise_scheduled(1) is False

    await view.prev_week()
    await view.prev_week()
    assert view.current_week_start == start - datetime.timedelta(days=7)
    assert backend.calls[-1] == (1, "2024-02-26", "2024-03-03")
    assert view.checklist() == [
        (WeeklyExercise(2, "Bench Press"), False),
        (WeeklyExercise(1, "Squat"), False),
    ]


@pytest.mark.asyncio
async def test_failed_load_keeps_last_known_state():
    backend = _backend()
    view = WeeklyExercisesView(backend, AuthContext(USER), today=TODAY)
    await view.mount()
    exercises = list(view.exercises)
    scheduled = list(view.scheduled_exercises)

    backend.fail = True
    await view.next_week()
    assert view.loading is False
    assert view.exercises == exercises
    assert view.scheduled_exercises == scheduled


@pytest.mark.asyncio
async def test_injected_schedule_overrides_fetched_data():
    backend = _backend()
    injected = [{"exercise_id": 2, "scheduled_date": "2024-03-08"}]
    view = WeeklyExercisesView(
        backend, AuthContext(USER), scheduled_exercises=injected, today=TODAY
    )
    await view.mount()
    assert backend.calls == [(1, "2024-03-04", "2024-03-10")]
    assert view.scheduled_exercises == [ScheduledExercise(2, "2024-03-08")]
    assert view.is_exercise_scheduled(2) is True
    assert view.is_exercise_scheduled(1) is False

    view.set_scheduled_exercises([ScheduledExercise(1, "2024-03-04")])
    assert view.is_exercise_scheduled(1) is True
    assert view.is_exercise_scheduled(2) is False


def test_membership_uses_full_day_boundaries():
    view = WeeklyExercisesView(
        _backend(),
        AuthContext(),
        scheduled_exercises=[
            (1, "2024-03-10T23:59:59.999"),
            (2, "2024-03-11"),
            (3, "2024-03-03T23:59:59"),
            (4, "not a date"),
            (5, "2024-03-04T00:00:00"),
            (7, "2024-03-10T23:59:59.999500"),
        ],
        today=TODAY,
    )
    assert view.is_exercise_scheduled(1) is True
    assert view.is_exercise_scheduled(2) is False
    assert view.is_exercise_scheduled(3) is False
    assert view.is_exercise_scheduled(4) is False
    assert view.is_exercise_scheduled(5) is True
    assert view.is_exercise_scheduled(6) is False
    assert view.is_exercise_scheduled(7) is True


def test_sign_in_without_running_loop_reloads_immediately():
    backend = _backend()
    auth = AuthContext()
    view = WeeklyExercisesView(backend, auth, today=TODAY)
    auth.sign_in(USER)
    assert backend.calls == [(1, "2024-03-04", "2024-03-10")]
    assert view.is_exercise_scheduled(1) is True
    view.close()
    auth.sign_out()
    assert len(backend.calls) == 1


@pytest.mark.asyncio
async def test_sign_in_inside_loop_schedules_reload():
    backend = _backend()
    auth = AuthContext()
    view = WeeklyExercisesView(backend, auth, today=TODAY)
    await view.mount()
    auth.sign_in(USER)
    await asyncio.gather(*list(view._pending))
    assert backend.calls == [(1, "2024-03-04", "2024-03-10")]
    assert view.is_exercise_scheduled(1) is True


@pytest.mark.asyncio
async def test_sign_out_keeps_previous_schedule():
    backend = _backend()
    auth = AuthContext(USER)
    view = WeeklyExercisesView(backend, auth, today=TODAY)
    await view.mount()
    assert view.is_exercise_scheduled(1) is True

    auth.sign_out()
    await asyncio.gather(*list(view._pending))
    assert backend.calls == [(1, "2024-03-04", "2024-03-10")]
    assert view.scheduled_exercises == [ScheduledExercise(1, "2024-03-05")]
    assert view.is_exercise_scheduled(1) is True

    await view.next_week()
    assert len(backend.calls) == 1
    assert view.is_exercise_scheduled(1) is False


@pytest.mark.asyncio
async def test_to_dict():
    view = WeeklyExercisesView(_backend(), AuthContext(USER), today=TODAY)
    await view.mount()
    assert view.to_dict() == {
        "week_start": "2024-03-04",
        "week_end": "2024-03-10",
        "label": "Mar 4 - Mar 10",
        "loading": False,
        "exercises": [
            {"id": 2, "name": "Bench Press", "scheduled": False},
            {"id": 1, "name": "Squat", "scheduled": True},
        ],
    }
