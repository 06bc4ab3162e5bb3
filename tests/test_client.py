import asyncio
import datetime
import unittest
import sys
import os
from unittest import mock

import requests

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from client import WeeklyClient, RemoteScheduleBackend, RemoteUserDirectory
from auth import AuthContext, User
from weekly_service import WeeklyExercisesView


def _response(payload, status: int = 200) -> mock.Mock:
    resp = mock.Mock()
    resp.status_code = status
    resp.json.return_value = payload
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(
            f"{status} error", response=resp
        )
    return resp


class ClientTest(unittest.TestCase):
    def setUp(self) -> None:
        self.client = WeeklyClient(base_url="http://testserver/", api_key="k")

    @mock.patch("client.requests.get")
    def test_list_scheduled_workouts(self, get) -> None:
        get.return_value = _response([])
        self.client.list_scheduled_workouts(1, "2024-03-04", "2024-03-10")
        get.assert_called_once_with(
            "http://testserver/workouts",
            params={"user_id": 1, "start_date": "2024-03-04", "end_date": "2024-03-10"},
            headers={"X-API-Key": "k"},
            timeout=10.0,
        )

    @mock.patch("client.requests.post")
    def test_create_workout(self, post) -> None:
        post.return_value = _response({"id": 7})
        self.assertEqual(self.client.create_workout(1, "2024-03-05"), 7)

    @mock.patch("client.requests.post")
    def test_seeding_calls(self, post) -> None:
        post.side_effect = [_response({"id": 4}), _response({"id": 9}), _response({"id": 21})]
        self.assertEqual(self.client.create_user("a@b.com"), 4)
        self.assertEqual(self.client.add_exercise("Squat"), 9)
        self.assertEqual(self.client.attach_exercise(3, 9), 21)
        self.assertEqual(
            [c.args[0] for c in post.call_args_list],
            [
                "http://testserver/users",
                "http://testserver/exercises",
                "http://testserver/workouts/3/exercises",
            ],
        )
        self.assertEqual(post.call_args_list[2].kwargs["params"], {"exercise_id": 9})

    @mock.patch("client.requests.get")
    def test_user_directory(self, get) -> None:
        def fake_get(url, params=None, headers=None, timeout=None):
            if url.endswith("/users"):
                return _response([{"id": 2, "email": "a@b.com"}, {"id": 5, "email": "z@b.com"}])
            if url.endswith("/users/5"):
                return _response({"id": 5, "email": "z@b.com"})
            return _response({"detail": "user not found"}, status=404)

        get.side_effect = fake_get
        users = RemoteUserDirectory(self.client)
        self.assertEqual(users.fetch_users(), [(2, "a@b.com"), (5, "z@b.com")])
        self.assertEqual(users.fetch_by_email(" Z@B.com "), (5, "z@b.com"))
        self.assertIsNone(users.fetch_by_email("nobody@b.com"))
        self.assertEqual(users.fetch_detail(5), (5, "z@b.com"))
        with self.assertRaises(ValueError):
            users.fetch_detail(42)

    @mock.patch("client.requests.get")
    def test_user_directory_propagates_server_errors(self, get) -> None:
        get.return_value = _response({}, status=500)
        with self.assertRaises(requests.HTTPError):
            RemoteUserDirectory(self.client).fetch_detail(1)

    @mock.patch("client.requests.get")
    def test_http_error_propagates(self, get) -> None:
        get.return_value = _response({}, status=500)
        with self.assertRaises(requests.HTTPError):
            self.client.list_exercises()

    @mock.patch("client.requests.get")
    def test_remote_backend_feeds_weekly_view(self, get) -> None:
        def fake_get(url, params=None, headers=None, timeout=None):
            if url.endswith("/exercises"):
                return _response([{"id": 1, "name": "Squat"}])
            return _response(
                [
                    {
                        "id": 3,
                        "scheduled_date": "2024-03-07",
                        "workout_exercises": [{"exercise_id": 1}],
                    }
                ]
            )

        get.side_effect = fake_get
        backend = RemoteScheduleBackend(self.client)
        view = WeeklyExercisesView(
            backend, AuthContext(User(1, "a@b.com")), today=datetime.date(2024, 3, 6)
        )
        asyncio.run(view.mount())
        self.assertEqual([(e.name, s) for e, s in view.checklist()], [("Squat", True)])

    @mock.patch("client.requests.get")
    def test_remote_failure_is_logged_not_raised(self, get) -> None:
        get.return_value = _response({}, status=503)
        view = WeeklyExercisesView(RemoteScheduleBackend(self.client), AuthContext())
        asyncio.run(view.mount())
        self.assertFalse(view.loading)
        self.assertEqual(view.exercises, [])


if __name__ == '__main__':
    unittest.main()
