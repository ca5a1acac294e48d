"""
Bounded alert log.

Holds the most recent user-facing messages, newest first. Severities are
the bootstrap-style names the server also uses: danger, success, info,
warning.
"""

from collections import deque
from dataclasses import asdict, dataclass, field
from typing import Iterator, Optional

from provisioner.timestamps import unix_now

MAX_ALERTS = 5


class Severity:
    """Well-known alert severities. The server may send others."""
    DANGER = "danger"
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"


@dataclass(frozen=True)
class Alert:
    """A single user-visible message."""
    severity: str
    message: str
    timestamp: int = field(default_factory=unix_now)

    @property
    def style(self) -> str:
        """CSS class used to render this alert."""
        return f"alert-{self.severity}"

    def to_dict(self) -> dict:
        return asdict(self)


class AlertLog:
    """Newest-first log that keeps at most ``limit`` entries."""

    def __init__(self, limit: int = MAX_ALERTS):
        self._entries: deque = deque(maxlen=limit)

    def log(self, severity: str, message: str, timestamp: Optional[int] = None) -> Alert:
        """Prepend an alert, dropping the oldest one beyond the limit."""
        if timestamp is None:
            alert = Alert(severity=severity, message=message)
        else:
            alert = Alert(severity=severity, message=message, timestamp=timestamp)
        self._entries.appendleft(alert)
        return alert

    def snapshot(self) -> tuple:
        return tuple(self._entries)

    def __iter__(self) -> Iterator[Alert]:
        return iter(tuple(self._entries))

    def __len__(self) -> int:
        return len(self._entries)
