"""
Day Planner — Telegram Bot.

A chat front-end over the same TaskService the HTTP API uses: add, list,
complete and delete tasks, ask for the next date of a rule, and receive a
daily agenda push.

Security-first: unauthorized users are silently ignored.
"""

from __future__ import annotations

import logging
import sys
from datetime import time as dt_time
from functools import wraps
from typing import TYPE_CHECKING, Any, Callable, Coroutine
from zoneinfo import ZoneInfo

from telegram import Update
from telegram.ext import Application, ApplicationBuilder, CommandHandler, ContextTypes
from telegram.helpers import escape_markdown

from planner.config import settings
from planner.core.recurrence import DateSyntaxError, RuleSyntaxError, next_date
from planner.core.task_service import ValidationError
from planner.data.models import Task
from planner.ports.task_store import NotFoundError, StoreError

if TYPE_CHECKING:
    from planner.core.task_service import TaskService
    from planner.ports.notification_port import NotificationPort

logger = logging.getLogger(__name__)

_INPUT_ERRORS = (ValidationError, RuleSyntaxError, DateSyntaxError)


# ---------------------------------------------------------------------------
# Security: silent-ignore decorator
# ---------------------------------------------------------------------------


def authorized_only(
    func: Callable[..., Coroutine[Any, Any, None]],
) -> Callable[..., Coroutine[Any, Any, None]]:
    """Decorator that silently ignores messages from unauthorized users."""

    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        user = update.effective_user
        if user is None or user.id not in settings.ALLOWED_USER_IDS:
            uid = user.id if user else "unknown"
            logger.warning("Unauthorized access attempt from user_id=%s", uid)
            return  # Silent ignore
        return await func(update, context)

    return wrapper


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _parse_add_args(text: str) -> Task:
    """Parse "/add" arguments: `title [| YYYYMMDD [| rule]]`.

    Missing parts stay empty so the service applies its defaults.
    """
    parts = [p.strip() for p in text.split("|")]
    title = parts[0] if parts else ""
    day = parts[1] if len(parts) > 1 else ""
    repeat = parts[2] if len(parts) > 2 else ""
    return Task(title=title, date=day, repeat=repeat)


def _format_task(task: Task) -> str:
    day = f"{task.date[6:8]}.{task.date[4:6]}.{task.date[:4]}"
    line = f"`{task.id}` — {escape_markdown(task.title)} ({day}"
    if task.repeat:
        line += f", repeat: {escape_markdown(task.repeat)}"
    return line + ")"


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start — welcome message."""
    await update.message.reply_text(
        "Welcome to *Day Planner*!\n\n"
        "• /add to schedule a task, one-off or recurring\n"
        "• /tasks to see what's coming up\n"
        "• /done to complete a task; recurring tasks move to their next date\n\n"
        "Type /help for the full command list.",
        parse_mode="Markdown",
    )


@authorized_only
async def cmd_help(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help — list available commands."""
    await update.message.reply_text(
        "*Available commands:*\n"
        "/add <title> | <YYYYMMDD> | <rule> — Add a task (date and rule optional)\n"
        "/tasks [text or DD.MM.YYYY] — List or search tasks\n"
        "/done <id> — Complete a task\n"
        "/delete <id> — Delete a task\n"
        "/nextdate <now> <date> <rule> — Compute the next date of a rule\n"
        "/help — Show this message\n\n"
        "Rules: `y` (yearly) or `d N` (every N days, N up to 400).",
        parse_mode="Markdown",
    )


@authorized_only
async def cmd_add(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /add <title> [| date [| rule]]."""
    service: TaskService = context.bot_data["tasks"]

    task = _parse_add_args(" ".join(context.args or []))
    try:
        created = service.create_task(task)
    except _INPUT_ERRORS as exc:
        await update.message.reply_text(f"Couldn't add the task: {exc}")
        return
    except StoreError as exc:
        logger.error("/add store error: %s", exc)
        await update.message.reply_text("Couldn't save the task. Please try again.")
        return

    await update.message.reply_text(
        f"✅ Task added: {_format_task(created)}", parse_mode="Markdown",
    )


@authorized_only
async def cmd_tasks(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /tasks [search] — list upcoming tasks."""
    service: TaskService = context.bot_data["tasks"]

    try:
        tasks = service.list_tasks(search=" ".join(context.args or []))
    except StoreError as exc:
        logger.error("/tasks error: %s", exc)
        await update.message.reply_text("Couldn't load tasks. Please try again.")
        return

    if not tasks:
        await update.message.reply_text("No tasks found.")
        return

    lines = ["*Tasks:*\n"]
    lines.extend(_format_task(t) for t in tasks)
    await update.message.reply_text("\n".join(lines), parse_mode="Markdown")


@authorized_only
async def cmd_done(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /done <id> — complete a task."""
    service: TaskService = context.bot_data["tasks"]

    args = context.args
    if not args:
        await update.message.reply_text("Usage: /done <task_id>\nUse /tasks to see IDs.")
        return

    task_id = args[0]
    try:
        moved = service.complete_task(task_id)
    except NotFoundError:
        await update.message.reply_text(f"Task {task_id} not found. Use /tasks to see IDs.")
        return
    except _INPUT_ERRORS as exc:
        await update.message.reply_text(f"Couldn't complete task {task_id}: {exc}")
        return
    except StoreError as exc:
        logger.error("/done error: %s", exc)
        await update.message.reply_text(f"Couldn't complete task {task_id}. Please try again.")
        return

    if moved is None:
        await update.message.reply_text(f"✅ Task {task_id} done and removed.")
    else:
        await update.message.reply_text(
            f"✅ Done. Next time: {_format_task(moved)}", parse_mode="Markdown",
        )


@authorized_only
async def cmd_delete(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /delete <id> — delete a task without completing it."""
    service: TaskService = context.bot_data["tasks"]

    args = context.args
    if not args:
        await update.message.reply_text("Usage: /delete <task_id>")
        return

    task_id = args[0]
    try:
        service.delete_task(task_id)
    except NotFoundError:
        await update.message.reply_text(f"Task {task_id} not found.")
        return
    except StoreError as exc:
        logger.error("/delete error: %s", exc)
        await update.message.reply_text(f"Couldn't delete task {task_id}. Please try again.")
        return

    await update.message.reply_text(f"🗑 Task {task_id} deleted.")


@authorized_only
async def cmd_nextdate(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /nextdate <now> <date> <rule...>."""
    args = context.args or []
    if len(args) < 3:
        await update.message.reply_text("Usage: /nextdate <YYYYMMDD> <YYYYMMDD> <rule>")
        return

    now, day, repeat = args[0], args[1], " ".join(args[2:])
    try:
        result = next_date(now, day, repeat)
    except (DateSyntaxError, RuleSyntaxError) as exc:
        await update.message.reply_text(f"Can't compute: {exc}")
        return
    await update.message.reply_text(result)


# ---------------------------------------------------------------------------
# App builder
# ---------------------------------------------------------------------------


def build_app(
    service: TaskService | None = None,
    notifier: NotificationPort | None = None,
) -> Application:
    """Build and configure the Telegram Application with all handlers.

    Args:
        service: Task service. Defaults to one backed by TaskDB.
        notifier: Notification port for the daily agenda. Defaults to
                  TelegramNotifier (created from the bot after app is built).
    """
    app = ApplicationBuilder().token(settings.TELEGRAM_BOT_TOKEN).build()

    if service is None:
        from planner.core.task_service import TaskService
        from planner.data.db import TaskDB
        service = TaskService(TaskDB())

    if notifier is None:
        from planner.adapters.telegram_notifier import TelegramNotifier
        notifier = TelegramNotifier(app.bot)

    app.bot_data["tasks"] = service
    app.bot_data["notifier"] = notifier

    app.add_handler(CommandHandler("start", cmd_start))
    app.add_handler(CommandHandler("help", cmd_help))
    app.add_handler(CommandHandler("add", cmd_add))
    app.add_handler(CommandHandler("tasks", cmd_tasks))
    app.add_handler(CommandHandler("done", cmd_done))
    app.add_handler(CommandHandler("delete", cmd_delete))
    app.add_handler(CommandHandler("nextdate", cmd_nextdate))

    _setup_daily_agenda(app, service, notifier)

    logger.info("Telegram bot application built with %d handlers", len(app.handlers[0]))
    return app


def _setup_daily_agenda(
    app: Application,
    service: TaskService,
    notifier: NotificationPort,
) -> None:
    """Register the daily agenda job at settings.AGENDA_HOUR in settings.TIMEZONE."""
    from planner.core.agenda import send_daily_agenda

    tz = ZoneInfo(settings.TIMEZONE)
    agenda_time = dt_time(hour=settings.AGENDA_HOUR, minute=0, tzinfo=tz)

    async def _agenda_job_callback(context: ContextTypes.DEFAULT_TYPE) -> None:
        await send_daily_agenda(service, notifier, settings.ALLOWED_USER_IDS)

    if app.job_queue is None:
        logger.warning("Job queue unavailable; daily agenda disabled")
        return

    app.job_queue.run_daily(
        _agenda_job_callback,
        time=agenda_time,
        name="daily_agenda",
    )
    logger.info("Daily agenda scheduled at %02d:00 %s", settings.AGENDA_HOUR, settings.TIMEZONE)


def main() -> None:
    """Entry point: build the app and start polling."""
    if not settings.TELEGRAM_BOT_TOKEN or settings.TELEGRAM_BOT_TOKEN.startswith("your-"):
        print("ERROR: TELEGRAM_BOT_TOKEN is missing or not set in .env", file=sys.stderr)
        sys.exit(1)

    logger.info("Starting Day Planner bot...")
    app = build_app()
    app.run_polling()
