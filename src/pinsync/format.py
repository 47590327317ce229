"""Display helpers for pin timestamps."""

from __future__ import annotations

import time
from datetime import datetime


def now_ms() -> int:
    return int(time.time() * 1000)


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'s' if count > 1 else ''}"


def format_time_ago(timestamp: int, *, now: int | None = None) -> str:
    """Render a pin timestamp (epoch ms) as a relative age, or a date once it is a month old."""
    current = now_ms() if now is None else now
    seconds = max(0, current - timestamp) // 1000
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24
    weeks = days // 7

    if seconds < 60:
        return "Pinned just now"
    if minutes < 60:
        return f"Pinned {_plural(minutes, 'min')} ago"
    if hours < 24:
        return f"Pinned {_plural(hours, 'hour')} ago"
    if days < 7:
        return f"Pinned {_plural(days, 'day')} ago"
    if weeks < 4:
        return f"Pinned {_plural(weeks, 'week')} ago"
    return f"Pinned on {datetime.fromtimestamp(timestamp / 1000).date().isoformat()}"


def format_sync_time(timestamp: int | None) -> str:
    if timestamp is None:
        return "never"
    return datetime.fromtimestamp(timestamp / 1000).strftime("%Y-%m-%d %H:%M:%S")
