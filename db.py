import sqlite3
import aiosqlite
from contextlib import contextmanager, asynccontextmanager
from typing import List, Tuple, Optional, Iterable


class Database:
    """Provides SQLite connection management and schema initialization."""

    _TABLE_DEFINITIONS = {
        "users": (
            """CREATE TABLE users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    email TEXT NOT NULL UNIQUE
                );""",
            ["id", "email"],
        ),
        "exercises": (
            """CREATE TABLE exercises (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL UNIQUE
                );""",
            ["id", "name"],
        ),
        "workouts": (
            """CREATE TABLE workouts (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    scheduled_date TEXT NOT NULL,
                    name TEXT,
                    FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
                );""",
            ["id", "user_id", "scheduled_date", "name"],
        ),
        "workout_exercises": (
            """CREATE TABLE workout_exercises (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    workout_id INTEGER NOT NULL,
                    exercise_id INTEGER NOT NULL,
                    FOREIGN KEY(workout_id) REFERENCES workouts(id) ON DELETE CASCADE,
                    FOREIGN KEY(exercise_id) REFERENCES exercises(id) ON DELETE CASCADE
                );""",
            ["id", "workout_id", "exercise_id"],
        ),
    }

    def __init__(self, db_path: str = "workout.db") -> None:
        self._db_path = db_path
        self._ensure_schema()

    @contextmanager
    def _connection(self):
        connection = sqlite3.connect(self._db_path)
        connection.execute("PRAGMA foreign_keys=on;")
        try:
            yield connection
            connection.commit()
        finally:
            connection.close()

    def _ensure_schema(self) -> None:
        with self._connection() as conn:
            conn.execute("PRAGMA foreign_keys=off;")
            for table, (sql, columns) in self._TABLE_DEFINITIONS.items():
                self._ensure_table(conn, table, sql, columns)
            conn.execute("PRAGMA foreign_keys=on;")

    def _ensure_table(
        self, conn: sqlite3.Connection, table: str, sql: str, columns: List[str]
    ) -> None:
        cur = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?;", (table,)
        )
        if cur.fetchone() is None:
            conn.execute(sql)
            return

        cur = conn.execute(f"PRAGMA table_info({table});")
        existing_cols = [row[1] for row in cur.fetchall()]
        if existing_cols == columns:
            return

        conn.execute(f"ALTER TABLE {table} RENAME TO {table}_old;")
        conn.execute(sql)
        common = [c for c in existing_cols if c in columns]
        if common:
            cols = ", ".join(common)
            conn.execute(
                f"INSERT INTO {table} ({cols}) SELECT {cols} FROM {table}_old;"
            )
        conn.execute(f"DROP TABLE {table}_old;")


class BaseRepository(Database):
    """Base repository providing helper methods."""

    def execute(self, query: str, params: Tuple = ()) -> int:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.lastrowid

    def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.fetchall()


class AsyncDatabase(Database):
    """Provides asynchronous connection management."""

    @asynccontextmanager
    async def _async_connection(self):
        conn = await aiosqlite.connect(self._db_path)
        try:
            await conn.execute("PRAGMA foreign_keys=on;")
            yield conn
            await conn.commit()
        finally:
            await conn.close()


class AsyncBaseRepository(AsyncDatabase):
    """Asynchronous variant of BaseRepository using aiosqlite."""

    async def execute(self, query: str, params: Tuple = ()) -> int:
        async with self._async_connection() as conn:
            cursor = await conn.execute(query, params)
            await conn.commit()
            return cursor.lastrowid

    async def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        async with self._async_connection() as conn:
            cursor = await conn.execute(query, params)
            rows = await cursor.fetchall()
            return list(rows)


_SCHEDULED_QUERY = (
    "SELECT w.id, w.scheduled_date, we.exercise_id FROM workouts w "
    "LEFT JOIN workout_exercises we ON we.workout_id = w.id "
    "WHERE w.user_id = ?"
)


def _scheduled_query(
    start_date: Optional[str], end_date: Optional[str]
) -> Tuple[str, list]:
    query = _SCHEDULED_QUERY
    params: list = []
    if start_date:
        query += " AND w.scheduled_date >= ?"
        params.append(start_date)
    if end_date:
        query += " AND w.scheduled_date <= ?"
        params.append(end_date)
    query += " ORDER BY w.scheduled_date ASC, w.id ASC, we.id ASC;"
    return query, params


def _group_scheduled(rows: Iterable[Tuple]) -> List[dict]:
    """Nest joined ``(workout_id, scheduled_date, exercise_id)`` rows per workout."""
    workouts: dict[int, dict] = {}
    for wid, scheduled_date, exercise_id in rows:
        workout = workouts.setdefault(
            wid,
            {"id": wid, "scheduled_date": scheduled_date, "workout_exercises": []},
        )
        if exercise_id is not None:
            workout["workout_exercises"].append({"exercise_id": exercise_id})
    return list(workouts.values())


class UserRepository(BaseRepository):
    """Repository for user accounts."""

    def create(self, email: str) -> int:
        email = email.strip().lower()
        if not email:
            raise ValueError("email required")
        if self.fetch_all("SELECT id FROM users WHERE email = ?;", (email,)):
            raise ValueError("email exists")
        return self.execute("INSERT INTO users (email) VALUES (?);", (email,))

    def fetch_detail(self, user_id: int) -> Tuple[int, str]:
        rows = self.fetch_all(
            "SELECT id, email FROM users WHERE id = ?;", (user_id,)
        )
        if not rows:
            raise ValueError("user not found")
        return rows[0]

    def fetch_by_email(self, email: str) -> Optional[Tuple[int, str]]:
        rows = self.fetch_all(
            "SELECT id, email FROM users WHERE email = ?;",
            (email.strip().lower(),),
        )
        return rows[0] if rows else None

    def fetch_users(self) -> List[Tuple[int, str]]:
        return self.fetch_all("SELECT id, email FROM users ORDER BY email ASC;")


class ExerciseRepository(BaseRepository):
    """Repository for the exercise catalog."""

    def add(self, name: str) -> int:
        name = name.strip()
        if not name:
            raise ValueError("name required")
        if self.fetch_all("SELECT id FROM exercises WHERE name = ?;", (name,)):
            raise ValueError("exercise exists")
        return self.execute("INSERT INTO exercises (name) VALUES (?);", (name,))

    def ensure(self, names: Iterable[str]) -> List[int]:
        """Return ids for ``names``, inserting the ones not in the catalog."""
        ids = []
        for name in names:
            rows = self.fetch_all("SELECT id FROM exercises WHERE name = ?;", (name,))
            ids.append(rows[0][0] if rows else self.add(name))
        return ids

    def fetch_catalog(self) -> List[dict]:
        rows = self.fetch_all("SELECT id, name FROM exercises ORDER BY name ASC;")
        return [{"id": eid, "name": name} for eid, name in rows]

    def fetch_detail(self, exercise_id: int) -> Tuple[int, str]:
        rows = self.fetch_all(
            "SELECT id, name FROM exercises WHERE id = ?;", (exercise_id,)
        )
        if not rows:
            raise ValueError("exercise not found")
        return rows[0]

    def remove(self, exercise_id: int) -> None:
        self.fetch_detail(exercise_id)
        self.execute("DELETE FROM exercises WHERE id = ?;", (exercise_id,))


class WorkoutRepository(BaseRepository):
    """Repository for scheduled workouts and their exercises."""

    def create(self, user_id: int, scheduled_date: str, name: str | None = None) -> int:
        if not self.fetch_all("SELECT id FROM users WHERE id = ?;", (user_id,)):
            raise ValueError("user not found")
        return self.execute(
            "INSERT INTO workouts (user_id, scheduled_date, name) VALUES (?, ?, ?);",
            (user_id, scheduled_date, name),
        )

    def fetch_detail(self, workout_id: int) -> Tuple[int, int, str, Optional[str]]:
        rows = self.fetch_all(
            "SELECT id, user_id, scheduled_date, name FROM workouts WHERE id = ?;",
            (workout_id,),
        )
        if not rows:
            raise ValueError("workout not found")
        return rows[0]

    def add_exercise(self, workout_id: int, exercise_id: int) -> int:
        self.fetch_detail(workout_id)
        if not self.fetch_all("SELECT id FROM exercises WHERE id = ?;", (exercise_id,)):
            raise ValueError("exercise not found")
        return self.execute(
            "INSERT INTO workout_exercises (workout_id, exercise_id) VALUES (?, ?);",
            (workout_id, exercise_id),
        )

    def fetch_scheduled(
        self,
        user_id: int,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> List[dict]:
        """Return the user's workouts in range with nested ``workout_exercises``."""
        query, params = _scheduled_query(start_date, end_date)
        return _group_scheduled(self.fetch_all(query, (user_id, *params)))

    def delete(self, workout_id: int) -> None:
        self.fetch_detail(workout_id)
        self.execute("DELETE FROM workouts WHERE id = ?;", (workout_id,))



class AsyncExerciseRepository(AsyncBaseRepository):
    """Asynchronous reads of the exercise catalog."""

    async def fetch_catalog(self) -> List[dict]:
        rows = await self.fetch_all("SELECT id, name FROM exercises ORDER BY name ASC;")
        return [{"id": eid, "name": name} for eid, name in rows]


class AsyncWorkoutRepository(AsyncBaseRepository):
    """Asynchronous reads of scheduled workouts."""

    async def fetch_scheduled(
        self,
        user_id: int,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> List[dict]:
        query, params = _scheduled_query(start_date, end_date)
        rows = await self.fetch_all(query, (user_id, *params))
        return _group_scheduled(rows)
