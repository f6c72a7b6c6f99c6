"""Telegram delivery of the daily agenda.

The agenda job runs inside the bot's job queue, so it pushes through the
same telegram.Bot that answers commands. Agenda text is plain (no
parse_mode): task titles are user input and may contain Markdown markers.
"""

from __future__ import annotations

import logging

from telegram import Bot

logger = logging.getLogger(__name__)


class TelegramNotifier:
    """NotificationPort that sends agenda text to a Telegram chat."""

    def __init__(self, bot: Bot) -> None:
        self._bot = bot

    async def send_message(self, user_id: int, text: str) -> None:
        # user_id doubles as the private chat id
        await self._bot.send_message(chat_id=user_id, text=text)
        logger.debug("Agenda delivered to chat %d (%d chars)", user_id, len(text))
