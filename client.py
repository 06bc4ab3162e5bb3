import asyncio
import requests
from typing import Optional

class WeeklyClient:
    """Simple REST client for the weekly checklist API."""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        api_key: Optional[str] = None,
        timeout: float = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.headers = {"X-API-Key": api_key} if api_key else {}

    def _get(self, path: str, **params):
        resp = requests.get(
            f"{self.base_url}{path}",
            params=params,
            headers=self.headers,
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()

    def _post(self, path: str, **params):
        resp = requests.post(
            f"{self.base_url}{path}",
            params=params,
            headers=self.headers,
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()

    def list_exercises(self) -> list[dict]:
        return self._get("/exercises")

    def add_exercise(self, name: str) -> int:
        return self._post("/exercises", name=name)["id"]

    def list_users(self) -> list[dict]:
        return self._get("/users")

    def get_user(self, user_id: int) -> dict:
        return self._get(f"/users/{user_id}")

    def create_user(self, email: str) -> int:
        return self._post("/users", email=email)["id"]

    def create_workout(self, user_id: int, scheduled_date: str) -> int:
        return self._post(
            "/workouts", user_id=user_id, scheduled_date=scheduled_date
        )["id"]

    def attach_exercise(self, workout_id: int, exercise_id: int) -> int:
        return self._post(
            f"/workouts/{workout_id}/exercises", exercise_id=exercise_id
        )["id"]

    def list_scheduled_workouts(
        self, user_id: int, start_date: str, end_date: str
    ) -> list[dict]:
        return self._get(
            "/workouts", user_id=user_id, start_date=start_date, end_date=end_date
        )


class RemoteUserDirectory:
    """User lookups against a remote API, shaped like ``UserRepository``."""

    def __init__(self, client: WeeklyClient) -> None:
        self.client = client

    def fetch_users(self) -> list[tuple[int, str]]:
        return [(u["id"], u["email"]) for u in self.client.list_users()]

    def fetch_detail(self, user_id: int) -> tuple[int, str]:
        try:
            user = self.client.get_user(user_id)
        except requests.HTTPError as e:
            if e.response is not None and e.response.status_code == 404:
                raise ValueError("user not found") from e
            raise
        return user["id"], user["email"]

    def fetch_by_email(self, email: str) -> Optional[tuple[int, str]]:
        email = email.strip().lower()
        for uid, known in self.fetch_users():
            if known == email:
                return uid, known
        return None


class RemoteScheduleBackend:
    """Serves the weekly view's reads from a remote API via :class:`WeeklyClient`."""

    def __init__(self, client: WeeklyClient) -> None:
        self.client = client

    async def fetch_exercises(self) -> list[dict]:
        return await asyncio.to_thread(self.client.list_exercises)

    async def fetch_scheduled_workouts(
        self, user_id: int, start_date: str, end_date: str
    ) -> list[dict]:
        return await asyncio.to_thread(
            self.client.list_scheduled_workouts, user_id, start_date, end_date
        )
