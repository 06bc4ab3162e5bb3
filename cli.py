import argparse
import asyncio
import datetime
from typing import Optional

from auth import AuthContext, User
from client import RemoteUserDirectory, WeeklyClient
from config import load_settings
from db import UserRepository, ExerciseRepository, WorkoutRepository
from localization import translator
from logger import setup_logger
from settings_schema import SettingsSchema
from weekly_service import WeeklyExercisesView, build_backend, build_user_directory

DEMO_EXERCISES = [
    "Bench Press",
    "Deadlift",
    "Overhead Press",
    "Pull Up",
    "Squat",
]


def render_week(
    view: WeeklyExercisesView,
    scheduled_icon: str = "✅",
    unscheduled_icon: str = "⚪",
) -> str:
    """Return the weekly checklist as plain text."""
    _ = translator.gettext
    if view.loading:
        return _("Loading...")
    lines = [
        f"{_('Weekly Exercises')}  < {view.week.label()} >",
    ]
    checklist = view.checklist()
    if not checklist:
        lines.append(_("No exercises in the catalog"))
    for exercise, scheduled in checklist:
        icon = scheduled_icon if scheduled else unscheduled_icon
        lines.append(f"{icon} {exercise.name}")
    return "\n".join(lines)


def resolve_user(users, ref: Optional[str]) -> Optional[User]:
    """Look up a user by id or email in ``users``; ``None`` when ``ref`` is empty.

    ``users`` is a ``UserRepository`` or a ``RemoteUserDirectory``.
    """
    if not ref:
        return None
    if ref.isdigit():
        uid, email = users.fetch_detail(int(ref))
        return User(uid, email)
    row = users.fetch_by_email(ref)
    if row is None:
        raise ValueError("user not found")
    return User(*row)


def show_week(
    settings: SettingsSchema,
    user_ref: Optional[str] = None,
    date: Optional[str] = None,
    offset: int = 0,
) -> str:
    pivot = datetime.date.fromisoformat(date) if date else datetime.date.today()
    auth = AuthContext(resolve_user(build_user_directory(settings), user_ref))
    view = WeeklyExercisesView(build_backend(settings), auth, today=pivot)
    view.week = view.week.shift(offset)
    asyncio.run(view.mount())
    view.close()
    return render_week(view, settings.scheduled_icon, settings.unscheduled_icon)


def _demo_plan() -> dict[datetime.date, list[str]]:
    monday = datetime.date.today() - datetime.timedelta(
        days=datetime.date.today().weekday()
    )
    return {
        monday: ["Bench Press", "Overhead Press"],
        monday + datetime.timedelta(days=2): ["Squat"],
        monday + datetime.timedelta(days=8): ["Deadlift"],
    }


def demo_data(db_path: str, email: str = "demo@example.com") -> None:
    """Populate the database with a demo catalog and this week's workouts if empty."""
    users = UserRepository(db_path)
    if users.fetch_by_email(email) is not None:
        print("Database already contains demo data")
        return
    exercises = ExerciseRepository(db_path)
    workouts = WorkoutRepository(db_path)
    uid = users.create(email)
    ids = dict(zip(DEMO_EXERCISES, exercises.ensure(DEMO_EXERCISES)))
    for day, names in _demo_plan().items():
        wid = workouts.create(uid, day.isoformat())
        for name in names:
            workouts.add_exercise(wid, ids[name])
    print("Demo data inserted")


def demo_remote_data(client: WeeklyClient, email: str = "demo@example.com") -> None:
    """Seed the same demo data through the REST API."""
    if RemoteUserDirectory(client).fetch_by_email(email) is not None:
        print("Backend already contains demo data")
        return
    uid = client.create_user(email)
    ids = {e["name"]: e["id"] for e in client.list_exercises()}
    for name in DEMO_EXERCISES:
        if name not in ids:
            ids[name] = client.add_exercise(name)
    for day, names in _demo_plan().items():
        wid = client.create_workout(uid, day.isoformat())
        for name in names:
            client.attach_exercise(wid, ids[name])
    print("Demo data inserted")


def main() -> None:
    parser = argparse.ArgumentParser(description="Weekly exercise checklist")
    parser.add_argument("--yaml", default=None, help="settings file")
    parser.add_argument("--db", default=None, help="override database path")
    sub = parser.add_subparsers(dest="cmd", required=True)

    week = sub.add_parser("week")
    week.add_argument("--user", help="user id or email")
    week.add_argument("--date", help="any day in the week (YYYY-MM-DD)")
    week.add_argument("--offset", type=int, default=0, help="weeks to shift")

    demo = sub.add_parser("demo")
    demo.add_argument("--email", default="demo@example.com")

    sub.add_parser("users")

    args = parser.parse_args()
    settings = load_settings(args.yaml)
    if args.db:
        settings.db_path = args.db
    setup_logger(settings.log_level, settings.log_file)
    translator.set_language(settings.language)

    if args.cmd == "week":
        print(show_week(settings, args.user, args.date, args.offset))
    elif args.cmd == "demo":
        if settings.backend_url:
            client = WeeklyClient(settings.backend_url, api_key=settings.api_key)
            demo_remote_data(client, args.email)
        else:
            demo_data(settings.db_path, args.email)
    elif args.cmd == "users":
        for uid, email in build_user_directory(settings).fetch_users():
            print(f"{uid}\t{email}")


if __name__ == "__main__":
    main()
