"""Shared test fixtures and configuration.

Sets up environment variables before any planner imports, and provides
common fixtures: a temp TaskDB, an in-memory store and a pinned clock.
"""

import os

# Patch env vars BEFORE any planner imports
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "fake-token-for-tests")
os.environ.setdefault("ALLOWED_USER_IDS", "12345")
os.environ.setdefault("DATABASE_PATH", ":memory:")
os.environ.setdefault("TASKS_LIMIT", "20")
os.environ.setdefault("TIMEZONE", "UTC")

from dataclasses import replace
from datetime import date

import pytest

from planner.data.models import Task
from planner.ports.task_store import NotFoundError

TODAY = date(2024, 1, 26)


class FakeTaskStore:
    """In-memory TaskStore with the same contract as TaskDB.

    Keeps tests of the lifecycle rules free of SQLite, and records every
    write so tests can assert that nothing was persisted.
    """

    def __init__(self, tasks: list[Task] | None = None) -> None:
        self.tasks: dict[str, Task] = {}
        self.writes: list[tuple[str, str]] = []
        self._next_id = 1
        for task in tasks or []:
            self.tasks[task.id] = task
            self._next_id = max(self._next_id, int(task.id) + 1)

    def add_task(self, task: Task) -> str:
        task_id = str(self._next_id)
        self._next_id += 1
        self.tasks[task_id] = replace(task, id=task_id)
        self.writes.append(("add", task_id))
        return task_id

    def get_task(self, task_id: str) -> Task:
        if task_id not in self.tasks:
            raise NotFoundError(task_id)
        return self.tasks[task_id]

    def update_task(self, task: Task) -> None:
        if task.id not in self.tasks:
            raise NotFoundError(task.id)
        self.tasks[task.id] = task
        self.writes.append(("update", task.id))

    def update_date(self, task_id: str, new_date: str) -> None:
        task = self.get_task(task_id)
        self.tasks[task_id] = replace(task, date=new_date)
        self.writes.append(("update_date", task_id))

    def delete_task(self, task_id: str) -> None:
        if self.tasks.pop(task_id, None) is None:
            raise NotFoundError(task_id)
        self.writes.append(("delete", task_id))

    def search_tasks(self, search: str = "", day: str | None = None, limit: int = 20) -> list[Task]:
        found = list(self.tasks.values())
        if day:
            found = [t for t in found if t.date == day]
        elif search:
            needle = search.lower()
            found = [t for t in found if needle in t.title.lower() or needle in t.comment.lower()]
        found.sort(key=lambda t: (t.date, int(t.id)))
        return found[:limit]

    def due_tasks(self, day: str) -> list[Task]:
        return sorted(
            (t for t in self.tasks.values() if t.date <= day),
            key=lambda t: (t.date, int(t.id)),
        )


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_scheduler.db")


@pytest.fixture
def task_db(tmp_db_path):
    """Return a TaskDB instance backed by a temp file."""
    from planner.data.db import TaskDB
    return TaskDB(db_path=tmp_db_path)


@pytest.fixture
def memory_store():
    """Return an empty in-memory task store."""
    return FakeTaskStore()


@pytest.fixture
def service(memory_store):
    """Return a TaskService over the in-memory store with today pinned to TODAY."""
    from planner.core.task_service import TaskService
    return TaskService(memory_store, clock=lambda: TODAY, default_limit=20)
