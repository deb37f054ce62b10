"""Notification sinks for user-facing ledger messages"""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Deque, List, Optional, Protocol

from sidekick_ledger.utils.date_utils import utcnow


class Severity(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


_LOG_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.SUCCESS: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}


@dataclass
class Notification:
    title: str
    message: str
    severity: Severity
    duration_ms: Optional[int] = None
    created_at: datetime = field(default_factory=utcnow)


class Notifier(Protocol):
    """Fire-and-forget notification sink"""

    def show(self, title: str, message: str, severity: Severity = Severity.INFO, duration_ms: Optional[int] = None) -> None: ...


class NullNotifier:
    """Discards notifications; for headless runs"""

    def show(self, title: str, message: str, severity: Severity = Severity.INFO, duration_ms: Optional[int] = None) -> None:
        pass


class FeedNotifier:
    """Logs each notification and keeps the most recent ones for the UI to poll"""

    def __init__(self, maxlen: int = 100):
        self._feed: Deque[Notification] = deque(maxlen=maxlen)

    def show(self, title: str, message: str, severity: Severity = Severity.INFO, duration_ms: Optional[int] = None) -> None:
        self._feed.append(Notification(title=title, message=message, severity=severity, duration_ms=duration_ms))
        logging.log(_LOG_LEVELS[severity], f"{title}: {message}", extra={"notification_severity": severity.value})

    def recent(self) -> List[Notification]:
        return list(self._feed)

    def clear(self) -> None:
        self._feed.clear()
