"""
Day Planner — Task Lifecycle Service.

UI-agnostic service layer that owns every rule about a task's date:
validate input -> normalize the date (today / next occurrence) -> write
through the injected TaskStore.

Each interface (HTTP API, Telegram bot) calls this service and renders the
results or exceptions in its own way.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import date, datetime
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

from planner.core.recurrence import (
    DateSyntaxError,
    format_day,
    next_occurrence,
    parse_day,
    parse_rule,
)

if TYPE_CHECKING:
    from planner.data.models import Task
    from planner.ports.task_store import TaskStore

logger = logging.getLogger(__name__)

SEARCH_DATE_FORMAT = "%d.%m.%Y"


class ValidationError(ValueError):
    """Raised when a required field is missing or a date is unreadable."""


def local_today() -> date:
    """Today's date in settings.TIMEZONE."""
    from planner.config import settings
    return datetime.now(ZoneInfo(settings.TIMEZONE)).date()


class TaskService:
    """Creates, updates and completes tasks against a TaskStore.

    Args:
        store: Task persistence (e.g. TaskDB).
        clock: Returns "today". Defaults to the date in settings.TIMEZONE;
               injected so tests can pin the date.
        default_limit: Page size for list_tasks when none is given.
    """

    def __init__(
        self,
        store: TaskStore,
        clock: Callable[[], date] | None = None,
        default_limit: int | None = None,
    ) -> None:
        if default_limit is None:
            from planner.config import settings
            default_limit = settings.TASKS_LIMIT
        self._store = store
        self._clock = clock or local_today
        self._default_limit = default_limit

    def today(self) -> date:
        return self._clock()

    # ------------------------------------------------------------------
    # Normalization
    # ------------------------------------------------------------------

    def normalize(self, task: Task) -> Task:
        """Validate a task and bring its date to today or later.

        - title is required; it is stored as given
        - an empty date means today
        - a non-empty repeat rule must parse, even for future dates
        - a past recurring task moves to its next occurrence after today
        - a past one-off task moves to today
        """
        if not task.title.strip():
            raise ValidationError("task title is required")

        today = self.today()
        if not task.date:
            day = today
        else:
            try:
                day = parse_day(task.date)
            except DateSyntaxError as exc:
                raise ValidationError("date must be in YYYYMMDD format") from exc

        rule = parse_rule(task.repeat)
        if day < today:
            day = next_occurrence(today, day, rule) if rule is not None else today

        return replace(task, date=format_day(day))

    # ------------------------------------------------------------------
    # Lifecycle operations
    # ------------------------------------------------------------------

    def create_task(self, task: Task) -> Task:
        """Normalize and persist a new task. Returns it with its id."""
        normalized = self.normalize(task)
        task_id = self._store.add_task(normalized)
        created = replace(normalized, id=task_id)
        logger.info("Created task #%s '%s' due %s", task_id, created.title, created.date)
        return created

    def update_task(self, task: Task) -> Task:
        """Normalize and overwrite an existing task (same id)."""
        task_id = _require_id(task.id)
        normalized = replace(self.normalize(task), id=task_id)
        self._store.get_task(task_id)
        self._store.update_task(normalized)
        logger.info("Updated task #%s, due %s", task_id, normalized.date)
        return normalized

    def complete_task(self, task_id: str) -> Task | None:
        """Mark a task done.

        One-off tasks are deleted and None is returned. Recurring tasks move
        to their next occurrence after their own current date and the
        updated task is returned.
        """
        task_id = _require_id(task_id)
        task = self._store.get_task(task_id)

        rule = parse_rule(task.repeat)
        if rule is None:
            self._store.delete_task(task_id)
            logger.info("Completed one-off task #%s, deleted", task_id)
            return None

        current = parse_day(task.date)
        next_day = format_day(next_occurrence(current, current, rule))
        self._store.update_date(task_id, next_day)
        logger.info("Completed recurring task #%s, next due %s", task_id, next_day)
        return replace(task, date=next_day)

    # ------------------------------------------------------------------
    # Queries and plain CRUD
    # ------------------------------------------------------------------

    def get_task(self, task_id: str) -> Task:
        return self._store.get_task(_require_id(task_id))

    def delete_task(self, task_id: str) -> None:
        self._store.delete_task(_require_id(task_id))

    def list_tasks(self, search: str = "", limit: int | None = None) -> list[Task]:
        """List tasks by date; `search` is either DD.MM.YYYY or free text."""
        if limit is None or limit <= 0:
            limit = self._default_limit
        search = search.strip()
        day = _search_day(search)
        if day is not None:
            return self._store.search_tasks(day=day, limit=limit)
        return self._store.search_tasks(search=search, limit=limit)

    def tasks_due(self, day: date | None = None) -> list[Task]:
        """Tasks due on or before `day` (default: today)."""
        if day is None:
            day = self.today()
        return self._store.due_tasks(format_day(day))


def _require_id(task_id: str) -> str:
    task_id = (task_id or "").strip()
    if not task_id:
        raise ValidationError("task id is required")
    return task_id


def _search_day(search: str) -> str | None:
    """Return YYYYMMDD if `search` is a DD.MM.YYYY date, else None."""
    if len(search) != 10 or search.count(".") != 2:
        return None
    try:
        return format_day(datetime.strptime(search, SEARCH_DATE_FORMAT).date())
    except ValueError:
        return None
