"""
Day Planner — Daily Agenda.

A proactive daily push listing the tasks due today, plus anything overdue.
Overdue tasks exist when nobody completed yesterday's occurrence; they are
shown first so they are not lost.

This module is provider-agnostic: it depends on the NotificationPort
protocol and the TaskService, not on Telegram.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import TYPE_CHECKING

from planner.core.recurrence import format_day, parse_day

if TYPE_CHECKING:
    from planner.core.task_service import TaskService
    from planner.data.models import Task
    from planner.ports.notification_port import NotificationPort

logger = logging.getLogger(__name__)


def _describe_repeat(repeat: str) -> str:
    if repeat == "y":
        return "yearly"
    if repeat.startswith("d "):
        days = repeat[2:]
        return "daily" if days == "1" else f"every {days} days"
    return ""


def _format_line(task: Task) -> str:
    line = f"• #{task.id} {task.title}"
    repeat = _describe_repeat(task.repeat)
    if repeat:
        line += f" ({repeat})"
    if task.comment:
        line += f" — {task.comment}"
    return line


def build_agenda(tasks: list[Task], day: date) -> str:
    """Render the agenda text for `day` from tasks due on or before it."""
    today_key = format_day(day)
    overdue = [t for t in tasks if t.date < today_key]
    due_today = [t for t in tasks if t.date == today_key]

    header = f"Agenda for {day.strftime('%d.%m.%Y')}"
    if not overdue and not due_today:
        return f"{header}\n\nNothing scheduled today."

    lines = [header, ""]
    if overdue:
        lines.append("Overdue:")
        for task in overdue:
            since = parse_day(task.date).strftime("%d.%m")
            lines.append(f"{_format_line(task)} [since {since}]")
        lines.append("")
    if due_today:
        lines.append("Today:")
        lines.extend(_format_line(task) for task in due_today)
    else:
        lines.append("Nothing new today.")
    return "\n".join(lines).rstrip()


async def send_daily_agenda(
    service: TaskService,
    notifier: NotificationPort,
    user_ids: list[int],
    day: date | None = None,
) -> None:
    """Send the agenda for `day` to every user in `user_ids`.

    `day` defaults to the service's today, so it matches the job timezone.

    A failure for one user is logged and does not stop the others.
    """
    if day is None:
        day = service.today()
    tasks = service.tasks_due(day)
    text = build_agenda(tasks, day)

    for chat_id in user_ids:
        try:
            await notifier.send_message(chat_id, text)
            logger.info("Daily agenda sent to user %d (%d tasks)", chat_id, len(tasks))
        except Exception as exc:
            logger.error("Failed to send daily agenda to %d: %s", chat_id, exc)
