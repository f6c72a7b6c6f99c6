"""Agenda delivery port.

core/agenda.py builds the list of due and overdue tasks and hands the
finished text to this port, one call per allowed user. TelegramNotifier
is the production implementation.
"""

from __future__ import annotations

from typing import Protocol


class NotificationPort(Protocol):
    async def send_message(self, user_id: int, text: str) -> None:
        """Deliver `text` to `user_id`. Failures raise; the agenda logs them per user."""
        ...
