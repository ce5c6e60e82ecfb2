"""Local notification sinks with per-key rate limiting."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, List, Protocol, Tuple

from cachetools import TLRUCache

from .config import (
    NOTIFICATION_RATE_LIMIT_MAX_KEYS,
    NOTIFICATION_WINDOW_END_HOUR,
    NOTIFICATION_WINDOW_START_HOUR,
)

_LOG = logging.getLogger(__name__)

Deliver = Callable[[str, str], None]


class NotificationSink(Protocol):
    def send_now(
        self,
        title: str,
        body: str,
        rate_limit_seconds: float | None = None,
        rate_limit_key: str | None = None,
    ) -> bool: ...


def within_notification_window(
    hour: int,
    *,
    all_day: bool = False,
    start_hour: int = NOTIFICATION_WINDOW_START_HOUR,
    end_hour: int = NOTIFICATION_WINDOW_END_HOUR,
) -> bool:
    return all_day or start_hour <= hour < end_hour


def _expires_at(_key: str, rate_limit_seconds: float, now: float) -> float:
    return now + rate_limit_seconds


class RateLimitedNotifier:
    """Deliver notifications, dropping repeats inside a key's rate-limit window.

    A key is remembered only for the window passed with the notification
    that opened it; once that window lapses the next send goes through.
    """

    def __init__(
        self,
        deliver: Deliver,
        *,
        timer: Callable[[], float] = time.monotonic,
        max_keys: int = NOTIFICATION_RATE_LIMIT_MAX_KEYS,
    ) -> None:
        self._deliver = deliver
        self._lock = threading.Lock()
        self._recent: TLRUCache[str, float] = TLRUCache(
            maxsize=max_keys, ttu=_expires_at, timer=timer
        )

    def send_now(
        self,
        title: str,
        body: str,
        rate_limit_seconds: float | None = None,
        rate_limit_key: str | None = None,
    ) -> bool:
        if rate_limit_seconds:
            key = rate_limit_key or title
            with self._lock:
                if key in self._recent:
                    _LOG.debug("Notification %r suppressed by rate limit", key)
                    return False
                self._recent[key] = float(rate_limit_seconds)
        try:
            self._deliver(title, body)
        except Exception:
            _LOG.exception("Notification delivery failed title=%r", title)
            return False
        return True


class LoggingNotificationSink(RateLimitedNotifier):
    """Notifier that writes alerts to the log; used when no OS sink exists."""

    def __init__(self, **kwargs) -> None:
        super().__init__(self._log_alert, **kwargs)
        self.sent: List[Tuple[str, str]] = []

    def _log_alert(self, title: str, body: str) -> None:
        self.sent.append((title, body))
        _LOG.info("NOTIFY %s: %s", title, body)


__all__ = [
    "LoggingNotificationSink",
    "NotificationSink",
    "RateLimitedNotifier",
    "within_notification_window",
]
