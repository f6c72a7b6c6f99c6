"""
Day Planner — Data Models.

A task lives in SQLite until it is completed. One-off tasks disappear on
completion; recurring tasks roll forward to their next date.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass


@dataclass
class Task:
    """A calendar-scheduled task.

    All fields are text, matching the JSON shape served over HTTP.
    """

    id: str = ""          # assigned by the store, e.g. "42"
    date: str = ""        # YYYYMMDD
    title: str = ""
    comment: str = ""
    repeat: str = ""      # "" (one-off), "y" or "d N"

    @property
    def is_recurring(self) -> bool:
        return self.repeat != ""

    def to_dict(self) -> dict[str, str]:
        return asdict(self)
