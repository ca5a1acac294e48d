"""Timezone-aware timestamp utilities.

Alerts carry unix seconds; the helpers at the bottom render those for
display the way the web UI did ("42 seconds ago", "2024-05-01, 13:37 (...)").
"""

from datetime import datetime, timezone
from typing import Optional


def now() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)


def unix_now() -> int:
    """Return the current time as whole unix seconds."""
    return int(now().timestamp())


def _plural(n: int, unit: str) -> str:
    if n == 1:
        article = "an" if unit == "hour" else "a"
        return f"{article} {unit} ago"
    return f"{n} {unit}s ago"


def time_ago(value: int, reference: Optional[int] = None) -> str:
    """Describe how long ago a unix timestamp was.

    Under a minute the exact number of seconds is shown; beyond that the
    output is coarse (minutes, hours, days, months, years).
    """
    ref = unix_now() if reference is None else reference
    diff = ref - int(value)
    if diff < 60:
        return f"{diff} seconds ago"

    minutes = round(diff / 60)
    if minutes < 45:
        return _plural(minutes, "minute")
    hours = round(diff / 3600)
    if hours < 22:
        return _plural(max(hours, 1), "hour")
    days = round(diff / 86400)
    if days < 26:
        return _plural(max(days, 1), "day")
    months = round(diff / (86400 * 30))
    if months < 11:
        return _plural(max(months, 1), "month")
    return _plural(max(round(diff / (86400 * 365)), 1), "year")


def fmt_date(value: int, reference: Optional[int] = None) -> str:
    """Format a unix timestamp as local "YYYY-MM-DD, HH:MM (<time ago>)"."""
    local = datetime.fromtimestamp(int(value), tz=timezone.utc).astimezone()
    return f"{local.strftime('%Y-%m-%d, %H:%M')} ({time_ago(value, reference)})"
