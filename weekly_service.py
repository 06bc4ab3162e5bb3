from __future__ import annotations

import asyncio
import datetime
from dataclasses import dataclass
from typing import Any, Coroutine, Iterable, Optional

from loguru import logger

from algorithms import WeekWindow
from auth import AuthContext, User
from client import RemoteScheduleBackend, RemoteUserDirectory, WeeklyClient
from db import AsyncExerciseRepository, AsyncWorkoutRepository, UserRepository
from settings_schema import SettingsSchema


@dataclass(frozen=True)
class WeeklyExercise:
    id: Any
    name: str


@dataclass(frozen=True)
class ScheduledExercise:
    exercise_id: Any
    scheduled_date: str

    @classmethod
    def coerce(cls, item: "ScheduledExercise | dict | tuple") -> "ScheduledExercise":
        if isinstance(item, ScheduledExercise):
            return item
        if isinstance(item, dict):
            return cls(item["exercise_id"], item["scheduled_date"])
        exercise_id, scheduled_date = item
        return cls(exercise_id, scheduled_date)


def flatten_scheduled(workouts: Optional[Iterable[dict]]) -> list[ScheduledExercise]:
    """Turn workouts with nested ``workout_exercises`` into one entry per exercise."""
    return [
        ScheduledExercise(ex["exercise_id"], workout["scheduled_date"])
        for workout in workouts or []
        for ex in workout.get("workout_exercises") or []
    ]


class ScheduleBackend:
    """Catalog and schedule reads served by the local SQLite database."""

    def __init__(self, db_path: str = "workout.db") -> None:
        self.exercises = AsyncExerciseRepository(db_path)
        self.workouts = AsyncWorkoutRepository(db_path)

    async def fetch_exercises(self) -> list[dict]:
        return await self.exercises.fetch_catalog()

    async def fetch_scheduled_workouts(
        self, user_id: int, start_date: str, end_date: str
    ) -> list[dict]:
        return await self.workouts.fetch_scheduled(user_id, start_date, end_date)


def _remote_client(settings: SettingsSchema) -> WeeklyClient:
    return WeeklyClient(settings.backend_url, api_key=settings.api_key)


def build_backend(settings: SettingsSchema):
    """Use the remote API when ``backend_url`` is configured, else the local database."""
    if settings.backend_url:
        return RemoteScheduleBackend(_remote_client(settings))
    return ScheduleBackend(settings.db_path)


def build_user_directory(settings: SettingsSchema):
    """Return the user lookups matching :func:`build_backend`."""
    if settings.backend_url:
        return RemoteUserDirectory(_remote_client(settings))
    return UserRepository(settings.db_path)


class WeeklyExercisesView:
    """Checklist of catalog exercises marked by whether they are scheduled this week.

    State is reloaded on :meth:`mount`, on week navigation and whenever the
    signed-in user changes. Loads are neither cancelled nor de-duplicated, so
    overlapping loads finish in whatever order the backend answers.
    """

    def __init__(
        self,
        backend,
        auth: AuthContext,
        scheduled_exercises: Optional[Iterable] = None,
        today: datetime.date | datetime.datetime | None = None,
    ) -> None:
        self.backend = backend
        self.auth = auth
        self.exercises: list[WeeklyExercise] = []
        self.scheduled_exercises: list[ScheduledExercise] = []
        self._injected = False
        self.set_scheduled_exercises(scheduled_exercises)
        self.loading = True
        self.week = WeekWindow.for_date(today or datetime.datetime.now())
        self._pending: set[asyncio.Task] = set()
        self._unsubscribe = auth.subscribe(self._on_user_changed)

    @property
    def current_week_start(self) -> datetime.datetime:
        return self.week.start

    def set_scheduled_exercises(self, items: Optional[Iterable]) -> None:
        """Override fetched schedule data with ``items``; ``None`` leaves it alone."""
        if items is None:
            return
        self._injected = True
        self.scheduled_exercises = [ScheduledExercise.coerce(i) for i in items]

    async def mount(self) -> None:
        await self.load()

    async def load(self) -> None:
        week = self.week
        self.loading = True
        try:
            rows = await self.backend.fetch_exercises()
            self.exercises = [WeeklyExercise(r["id"], r["name"]) for r in rows or []]

            user = self.auth.user
            if user is not None:
                week_start, week_end = week.date_range()
                logger.debug(
                    "Fetching scheduled exercises between {} and {}",
                    week_start,
                    week_end,
                )
                workouts = await self.backend.fetch_scheduled_workouts(
                    user.id, week_start, week_end
                )
                scheduled = flatten_scheduled(workouts)
                logger.debug(
                    "Fetched {} workouts with {} scheduled exercises",
                    len(workouts or []),
                    len(scheduled),
                )
                if not self._injected:
                    self.scheduled_exercises = scheduled
        except Exception:
            logger.exception("Error fetching weekly exercises")
        finally:
            self.loading = False

    async def prev_week(self) -> None:
        self.week = self.week.shift(-1)
        await self.load()

    async def next_week(self) -> None:
        self.week = self.week.shift(1)
        await self.load()

    def is_exercise_scheduled(self, exercise_id: Any) -> bool:
        week = self.week
        for scheduled in self.scheduled_exercises:
            if scheduled.exercise_id != exercise_id:
                continue
            moment = WeekWindow.parse_scheduled_date(scheduled.scheduled_date)
            if moment is not None and week.contains(moment):
                return True
        return False

    def checklist(self) -> list[tuple[WeeklyExercise, bool]]:
        return [(ex, self.is_exercise_scheduled(ex.id)) for ex in self.exercises]

    def to_dict(self) -> dict:
        week_start, week_end = self.week.date_range()
        return {
            "week_start": week_start,
            "week_end": week_end,
            "label": self.week.label(),
            "loading": self.loading,
            "exercises": [
                {"id": ex.id, "name": ex.name, "scheduled": scheduled}
                for ex, scheduled in self.checklist()
            ],
        }

    def close(self) -> None:
        self._unsubscribe()

    def _on_user_changed(self, _user: Optional[User]) -> None:
        self._run(self.load())

    def _run(self, coro: Coroutine) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(coro)
            return
        task = loop.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
