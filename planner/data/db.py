"""
Day Planner — Task Database.

SQLite-backed implementation of the TaskStore port. Each public method runs
in its own short transaction, so a single call is atomic per task.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import closing, contextmanager
from pathlib import Path

from planner.data.models import Task
from planner.ports.task_store import NotFoundError, StoreError

logger = logging.getLogger(__name__)


class TaskDB:
    """SQLite-backed storage for scheduled tasks."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from planner.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection inside a transaction; sqlite errors become StoreError."""
        try:
            with closing(self._connect()) as conn, conn:
                yield conn
        except sqlite3.Error as exc:
            logger.error("Task store failure at %s: %s", self._db_path, exc)
            raise StoreError(str(exc)) from exc

    def _init_db(self) -> None:
        """Create the scheduler table if it doesn't exist, and migrate schema."""
        with self._transaction() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS scheduler (
                    id       INTEGER PRIMARY KEY AUTOINCREMENT,
                    date     CHAR(8)      NOT NULL,
                    title    TEXT         NOT NULL,
                    comment  TEXT         NOT NULL DEFAULT '',
                    repeat   VARCHAR(128) NOT NULL DEFAULT ''
                )
            """)
            # Migrate existing DBs: add new columns if missing
            existing_cols = {
                row[1] for row in conn.execute("PRAGMA table_info(scheduler)").fetchall()
            }
            if "comment" not in existing_cols:
                conn.execute("ALTER TABLE scheduler ADD COLUMN comment TEXT NOT NULL DEFAULT ''")
            if "repeat" not in existing_cols:
                conn.execute(
                    "ALTER TABLE scheduler ADD COLUMN repeat VARCHAR(128) NOT NULL DEFAULT ''"
                )
            conn.execute("CREATE INDEX IF NOT EXISTS scheduler_date ON scheduler (date)")
        logger.debug("Scheduler table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=str(row["id"]),
            date=row["date"],
            title=row["title"],
            comment=row["comment"] or "",
            repeat=row["repeat"] or "",
        )

    @staticmethod
    def _row_id(task_id: str) -> int:
        """Convert an opaque id to a row id. Non-numeric ids cannot exist."""
        text = str(task_id).strip()
        if not (text.isascii() and text.isdigit()):
            raise NotFoundError(task_id)
        return int(text)

    def add_task(self, task: Task) -> str:
        """Insert a new task and return its id."""
        with self._transaction() as conn:
            cursor = conn.execute(
                "INSERT INTO scheduler (date, title, comment, repeat) VALUES (?, ?, ?, ?)",
                (task.date, task.title, task.comment, task.repeat),
            )
            task_id = str(cursor.lastrowid)
        logger.info("Task added: #%s '%s' on %s repeat=%r", task_id, task.title, task.date, task.repeat)
        return task_id

    def get_task(self, task_id: str) -> Task:
        """Fetch a single task by id."""
        row_id = self._row_id(task_id)
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM scheduler WHERE id = ?", (row_id,)
            ).fetchone()
        if row is None:
            raise NotFoundError(task_id)
        return self._row_to_task(row)

    def update_task(self, task: Task) -> None:
        """Replace date, title, comment and repeat of an existing task."""
        row_id = self._row_id(task.id)
        with self._transaction() as conn:
            cursor = conn.execute(
                "UPDATE scheduler SET date = ?, title = ?, comment = ?, repeat = ? WHERE id = ?",
                (task.date, task.title, task.comment, task.repeat, row_id),
            )
        if cursor.rowcount == 0:
            raise NotFoundError(task.id)
        logger.info("Task #%s updated", task.id)

    def update_date(self, task_id: str, new_date: str) -> None:
        """Move a task to a new date."""
        row_id = self._row_id(task_id)
        with self._transaction() as conn:
            cursor = conn.execute(
                "UPDATE scheduler SET date = ? WHERE id = ?", (new_date, row_id),
            )
        if cursor.rowcount == 0:
            raise NotFoundError(task_id)
        logger.info("Task #%s moved to %s", task_id, new_date)

    def delete_task(self, task_id: str) -> None:
        """Permanently delete a task."""
        row_id = self._row_id(task_id)
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM scheduler WHERE id = ?", (row_id,))
        if cursor.rowcount == 0:
            raise NotFoundError(task_id)
        logger.info("Task #%s deleted", task_id)

    def search_tasks(
        self, search: str = "", day: str | None = None, limit: int = 20,
    ) -> list[Task]:
        """List tasks ordered by date.

        `day` filters by an exact YYYYMMDD date and takes precedence over
        `search`, a case-insensitive substring of the title or comment.
        """
        query = "SELECT * FROM scheduler"
        params: list = []
        if day:
            query += " WHERE date = ?"
            params.append(day)
        elif search:
            pattern = "%" + _escape_like(search) + "%"
            query += " WHERE title LIKE ? ESCAPE '\\' OR comment LIKE ? ESCAPE '\\'"
            params.extend([pattern, pattern])
        query += " ORDER BY date ASC, id ASC LIMIT ?"
        params.append(limit)

        with self._transaction() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_task(r) for r in rows]

    def due_tasks(self, day: str) -> list[Task]:
        """Return all tasks dated on or before `day`."""
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM scheduler WHERE date <= ? ORDER BY date ASC, id ASC", (day,),
            ).fetchall()
        return [self._row_to_task(r) for r in rows]


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
