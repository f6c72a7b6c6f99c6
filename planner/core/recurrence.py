"""Recurrence engine — pure business logic.

Parses repeat rules ("y", "d N") and computes the next occurrence of a
recurring task strictly after a reference day.

No I/O: this module only transforms data. Safe to call from any thread.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y%m%d"
MAX_DAYS_INTERVAL = 400


class RuleSyntaxError(ValueError):
    """Raised when a repeat rule string does not follow the grammar."""


class DateSyntaxError(ValueError):
    """Raised when a day is not a valid YYYYMMDD calendar date."""


# ---------------------------------------------------------------------------
# Rule grammar
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Yearly:
    """Repeat every year on the same month and day."""

    def __str__(self) -> str:
        return "y"


@dataclass(frozen=True)
class EveryNDays:
    """Repeat every `days` days (1..400)."""

    days: int

    def __str__(self) -> str:
        return f"d {self.days}"


Rule = Yearly | EveryNDays


def parse_rule(text: str) -> Rule | None:
    """Parse a repeat rule string.

    Returns None for the empty string (a one-off task).

    Raises:
        RuleSyntaxError: the rule is not exactly "y" or "d <1..400>".
    """
    if text == "":
        return None

    tokens = text.split(" ")
    kind, args = tokens[0], tokens[1:]

    if kind == "y":
        if args:
            raise RuleSyntaxError(f"rule 'y' takes no arguments: {text!r}")
        return Yearly()

    if kind == "d":
        if not args or args[0] == "":
            raise RuleSyntaxError(f"rule 'd' requires a number of days: {text!r}")
        if len(args) > 1:
            raise RuleSyntaxError(f"rule 'd' takes a single argument: {text!r}")
        raw = args[0]
        if not (raw.isascii() and raw.isdigit()):
            raise RuleSyntaxError(f"number of days must be a positive integer: {raw!r}")
        days = int(raw)
        if days <= 0:
            raise RuleSyntaxError(f"number of days must be a positive integer: {raw!r}")
        if days > MAX_DAYS_INTERVAL:
            raise RuleSyntaxError(
                f"cannot move a task more than {MAX_DAYS_INTERVAL} days ahead: {days}"
            )
        return EveryNDays(days)

    raise RuleSyntaxError(f"unsupported repeat rule: {text!r}")


# ---------------------------------------------------------------------------
# Day codec
# ---------------------------------------------------------------------------


def parse_day(text: str) -> date:
    """Parse a strict 8-digit YYYYMMDD string into a date.

    Raises DateSyntaxError on anything else, including impossible days.
    """
    if len(text) != 8 or not (text.isascii() and text.isdigit()):
        raise DateSyntaxError(f"date must be in YYYYMMDD format: {text!r}")
    try:
        return datetime.strptime(text, DATE_FORMAT).date()
    except ValueError as exc:
        raise DateSyntaxError(f"not a calendar date: {text!r}") from exc


def format_day(day: date) -> str:
    return day.strftime(DATE_FORMAT)


# ---------------------------------------------------------------------------
# Next occurrence
# ---------------------------------------------------------------------------


def _add_year(day: date) -> date:
    """Same month/day one year later; Feb 29 falls back to March 1."""
    try:
        return day.replace(year=day.year + 1)
    except ValueError:
        return date(day.year + 1, 3, 1)


def next_occurrence(
    reference: date | datetime,
    anchor: str | date,
    rule: Rule,
) -> date:
    """Return the earliest occurrence of `rule` after `reference`.

    The sequence starts from `anchor` and always advances at least one
    step, so the anchor itself is never returned.

    Args:
        reference: Day the result must be strictly after. A datetime is
                   truncated to its day.
        anchor: The task's date, as YYYYMMDD text or a date.
        rule: A parsed rule. None is a programming error.

    Raises:
        DateSyntaxError: `anchor` is not a valid YYYYMMDD day, or the next
                         occurrence falls after year 9999.
        TypeError: `rule` is not a parsed rule.
    """
    if isinstance(reference, datetime):
        reference = reference.date()
    current = parse_day(anchor) if isinstance(anchor, str) else anchor

    if isinstance(rule, Yearly):
        step = _add_year
    elif isinstance(rule, EveryNDays):
        delta = timedelta(days=rule.days)

        def step(day: date) -> date:
            return day + delta
    else:
        raise TypeError(f"next_occurrence() needs a parsed rule, got {rule!r}")

    try:
        current = step(current)
        while current <= reference:
            current = step(current)
    except (OverflowError, ValueError) as exc:
        raise DateSyntaxError("next date is out of range") from exc

    logger.debug("Next occurrence of '%s' from %s after %s: %s", rule, anchor, reference, current)
    return current


def next_date(now: str, day: str, repeat: str) -> str:
    """Text boundary of the engine: three strings in, YYYYMMDD out.

    Raises:
        DateSyntaxError: `now` or `day` is not a valid day.
        RuleSyntaxError: `repeat` is empty or malformed.
    """
    reference = parse_day(now)
    rule = parse_rule(repeat)
    if rule is None:
        raise RuleSyntaxError("repeat rule is missing")
    return format_day(next_occurrence(reference, day, rule))
