"""Task store port — abstract interface for task persistence.

Core modules depend on this protocol, never on a specific database.
Per-task atomicity (read-then-write races) is the store's responsibility.
"""

from __future__ import annotations

from typing import Protocol

from planner.data.models import Task


class StoreError(Exception):
    """Raised when the task store fails for reasons opaque to the core."""


class NotFoundError(StoreError):
    """Raised when an operation references a task id absent from the store."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"task {task_id!r} not found")
        self.task_id = task_id


class TaskStore(Protocol):
    """Abstract task storage used by the lifecycle manager."""

    def add_task(self, task: Task) -> str: ...

    def get_task(self, task_id: str) -> Task: ...

    def update_task(self, task: Task) -> None: ...

    def update_date(self, task_id: str, new_date: str) -> None: ...

    def delete_task(self, task_id: str) -> None: ...

    def search_tasks(
        self, search: str = "", day: str | None = None, limit: int = 20,
    ) -> list[Task]: ...

    def due_tasks(self, day: str) -> list[Task]: ...
