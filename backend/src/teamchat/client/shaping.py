"""Helpers for rendering a message feed: day grouping and compact rows."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, Iterable

COMPACT_THRESHOLD_MINUTES = 5


def _created(message: dict[str, Any]) -> datetime:
    return datetime.fromtimestamp(message["creation_time"] / 1000)


def group_messages_by_date(
    messages: Iterable[dict[str, Any]],
) -> dict[str, list[dict[str, Any]]]:
    """Group a newest-first feed by local day (``YYYY-MM-DD``).

    Days keep the feed's order; messages inside a day are oldest first.
    """
    groups: dict[str, list[dict[str, Any]]] = {}
    for message in messages:
        day_key = _created(message).strftime("%Y-%m-%d")
        groups.setdefault(day_key, []).insert(0, message)
    return groups


def format_date_label(day: str | date, today: date | None = None) -> str:
    if isinstance(day, str):
        day = date.fromisoformat(day)
    today = today or date.today()
    if day == today:
        return "Today"
    if day == today - timedelta(days=1):
        return "Yesterday"
    return f"{day:%A}, {day:%B} {day.day}"


def is_compact(message: dict[str, Any], previous: dict[str, Any] | None) -> bool:
    """True when ``previous`` is by the same user and under five minutes older."""
    if previous is None:
        return False
    if message["user"]["id"] != previous["user"]["id"]:
        return False
    elapsed = (message["creation_time"] - previous["creation_time"]) / 60000
    return int(elapsed) < COMPACT_THRESHOLD_MINUTES
