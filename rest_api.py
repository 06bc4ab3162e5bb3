import datetime
import os
from fastapi import (
    FastAPI,
    HTTPException,
    Request,
    Response,
    APIRouter,
)
from auth import AuthContext, User
from config import load_settings
from db import UserRepository, ExerciseRepository, WorkoutRepository
from weekly_service import ScheduleBackend, WeeklyExercisesView


class APIKeyGuard:
    """Reject requests lacking the configured ``X-API-Key`` header."""

    OPEN_PATHS = {"/health", "/docs", "/openapi.json"}

    def __init__(self, api_key: str) -> None:
        self.api_key = api_key

    async def __call__(self, request: Request, call_next):
        if request.url.path not in self.OPEN_PATHS:
            if request.headers.get("X-API-Key") != self.api_key:
                return Response("invalid api key", status_code=401)
        return await call_next(request)


class WeeklyAPI:
    """Provides REST endpoints for the exercise catalog and weekly schedules."""

    def __init__(
        self,
        db_path: str = "workout.db",
        yaml_path: str = "settings.yaml",
        *,
        api_key: str | None = None,
    ) -> None:
        self.db_path = db_path
        self.settings = load_settings(yaml_path)
        self.api_key = api_key if api_key is not None else self.settings.api_key
        self.users = UserRepository(db_path)
        self.exercises = ExerciseRepository(db_path)
        self.workouts = WorkoutRepository(db_path)
        self.backend = ScheduleBackend(db_path)
        self.app = FastAPI(
            title="Weekly Exercises API",
            description="Exercise catalog and weekly schedule checklist",
        )
        if self.api_key:
            self.app.middleware("http")(APIKeyGuard(self.api_key))
        self._setup_routes()

    async def weekly_view(
        self, user_id: int, date: str | None = None, offset: int = 0
    ) -> WeeklyExercisesView:
        uid, email = self.users.fetch_detail(user_id)
        pivot = datetime.date.fromisoformat(date) if date else datetime.date.today()
        view = WeeklyExercisesView(
            self.backend, AuthContext(User(uid, email)), today=pivot
        )
        view.week = view.week.shift(offset)
        try:
            await view.mount()
        finally:
            view.close()
        return view

    def _setup_routes(self) -> None:
        exercises_router = APIRouter(prefix="/exercises", tags=["Exercises"])
        users_router = APIRouter(prefix="/users", tags=["Users"])
        workouts_router = APIRouter(prefix="/workouts", tags=["Workouts"])

        @self.app.get(
            "/health",
            summary="Health check",
            description="Verify API and database connectivity.",
        )
        def health():
            """Return API and database connection status."""
            try:
                self.exercises.fetch_catalog()
                return {"status": "ok"}
            except Exception as e:  # pragma: no cover - connectivity failure
                raise HTTPException(status_code=500, detail=str(e))

        @exercises_router.get("")
        def list_exercises():
            return self.exercises.fetch_catalog()

        @exercises_router.post("")
        def add_exercise(name: str):
            try:
                return {"id": self.exercises.add(name)}
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))

        @exercises_router.delete("/{exercise_id}")
        def delete_exercise(exercise_id: int):
            try:
                self.exercises.remove(exercise_id)
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))
            return {"status": "deleted"}

        @users_router.post("")
        def add_user(email: str):
            try:
                return {"id": self.users.create(email)}
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))

        @users_router.get("")
        def list_users():
            return [{"id": uid, "email": email} for uid, email in self.users.fetch_users()]

        @users_router.get("/{user_id}")
        def get_user(user_id: int):
            try:
                uid, email = self.users.fetch_detail(user_id)
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))
            return {"id": uid, "email": email}

        @users_router.get("/{user_id}/weekly_exercises")
        async def weekly_exercises(
            user_id: int, date: str | None = None, offset: int = 0
        ):
            try:
                self.users.fetch_detail(user_id)
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))
            try:
                view = await self.weekly_view(user_id, date, offset)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return view.to_dict()

        @workouts_router.post("")
        def create_workout(user_id: int, scheduled_date: str, name: str | None = None):
            try:
                datetime.date.fromisoformat(scheduled_date[:10])
                return {"id": self.workouts.create(user_id, scheduled_date, name)}
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))

        @workouts_router.get("")
        def list_workouts(
            user_id: int, start_date: str | None = None, end_date: str | None = None
        ):
            return self.workouts.fetch_scheduled(user_id, start_date, end_date)

        @workouts_router.post("/{workout_id}/exercises")
        def attach_exercise(workout_id: int, exercise_id: int):
            try:
                return {"id": self.workouts.add_exercise(workout_id, exercise_id)}
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))

        @workouts_router.delete("/{workout_id}")
        def delete_workout(workout_id: int):
            try:
                self.workouts.delete(workout_id)
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))
            return {"status": "deleted"}

        self.app.include_router(exercises_router)
        self.app.include_router(users_router)
        self.app.include_router(workouts_router)


api = WeeklyAPI(db_path=os.environ.get("DB_PATH", "workout.db"))
app = api.app

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app)
