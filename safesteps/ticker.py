"""Cancellable fixed-interval ticker running on a daemon thread."""

from __future__ import annotations

import logging
import threading
from typing import Callable

__all__ = ["Ticker"]

_LOG = logging.getLogger(__name__)


class Ticker:
    """Invoke ``callback`` every ``interval`` seconds until stopped.

    The first call happens one interval after :meth:`start`. Exceptions raised
    by the callback are logged and the ticker keeps running.
    """

    def __init__(
        self, interval: float, callback: Callable[[], None], *, name: str = "ticker"
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be greater than zero")
        self._interval = interval
        self._callback = callback
        self._name = name
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        with self._lock:
            return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return
            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._run, args=(self._stop_event,), name=self._name, daemon=True
            )
            self._thread.start()
        _LOG.debug("Ticker %s started interval=%ss", self._name, self._interval)

    def stop(self, timeout: float | None = 2.0) -> None:
        with self._lock:
            thread = self._thread
            self._thread = None
            self._stop_event.set()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        if thread is not None:
            _LOG.debug("Ticker %s stopped", self._name)

    def _run(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self._interval):
            try:
                self._callback()
            except Exception:
                _LOG.exception("Ticker %s callback failed", self._name)

    def __enter__(self) -> "Ticker":
        self.start()
        return self

    def __exit__(self, *_exc: object) -> None:
        self.stop()
