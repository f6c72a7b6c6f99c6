"""
Day Planner — Entry Point.

`python main.py` starts the HTTP server; `python main.py bot` starts the
Telegram bot.
"""

import logging
import sys

from planner.config import settings

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

if __name__ == "__main__":
    if sys.argv[1:] == ["bot"]:
        from planner.bot.telegram_bot import main
    else:
        from planner.api.http_server import run as main
    main()
