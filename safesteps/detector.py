"""GPS-based walking detection.

Every check compares the latest fix with the one seen on the previous check.
Moving further than the movement threshold extends the "moving" timestamp,
otherwise the "stationary" timestamp is extended. Once one timestamp leads the
other by the dwell threshold the recording state flips and both timestamps
are re-synchronised so the flip cannot immediately repeat.
"""

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime
from typing import Callable

from .config import (
    CANNOT_START_RATE_LIMIT_KEY,
    CANNOT_START_RATE_LIMIT_SECONDS,
    DETECTION_CHECK_INTERVAL_SECONDS,
    MOVEMENT_THRESHOLD_M,
)
from .geometry import distance_m
from .models import ActivityState, Coordinate
from .notifications import NotificationSink, within_notification_window
from .producer import PositionProducer
from .settings import SettingsStore
from .ticker import Ticker

_LOG = logging.getLogger(__name__)

Trigger = Callable[[], object]


def _local_hour() -> int:
    return datetime.now().hour


class ActivityDetector:
    def __init__(
        self,
        producer: PositionProducer,
        settings: SettingsStore,
        notifier: NotificationSink,
        *,
        is_recording: Callable[[], bool],
        on_start: Trigger,
        on_stop: Trigger,
        clock: Callable[[], float] = time.time,
        hour_of_day: Callable[[], int] = _local_hour,
        movement_threshold_m: float = MOVEMENT_THRESHOLD_M,
        check_interval: float = DETECTION_CHECK_INTERVAL_SECONDS,
    ) -> None:
        self._producer = producer
        self._settings = settings
        self._notifier = notifier
        self._is_recording = is_recording
        self._on_start = on_start
        self._on_stop = on_stop
        self._clock = clock
        self._hour_of_day = hour_of_day
        self.movement_threshold_m = movement_threshold_m
        self._lock = threading.RLock()
        self._initialized = False
        self._last_coordinate: Coordinate | None = None
        now = clock()
        self.last_movement_at = now
        self.last_stationary_at = now
        self._ticker = Ticker(check_interval, self.check, name="walking-detector")

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def enabled(self) -> bool:
        return self._ticker.running

    @property
    def state(self) -> ActivityState:
        if self._is_recording():
            return ActivityState.RECORDING
        return ActivityState.NOT_RECORDING

    def initialize(self) -> bool:
        """Run one-time setup; later calls do nothing and return False."""

        with self._lock:
            if self._initialized:
                return False
            self.reset()
            if self._settings.detection_enabled:
                self._producer.start()
                self._ticker.start()
            self._initialized = True
        _LOG.info(
            "Walking detection initialised (enabled=%s)", self._settings.detection_enabled
        )
        return True

    def enable(self, enabled: bool) -> None:
        self._settings.detection_enabled = enabled
        if enabled:
            self._producer.start()
            self._ticker.start()
        else:
            self._ticker.stop()
            with self._lock:
                self._last_coordinate = None
        _LOG.info("Walking detection %s", "enabled" if enabled else "disabled")

    def close(self) -> None:
        self._ticker.stop()

    def reset(self, now: float | None = None) -> None:
        """Re-synchronise both timestamps, e.g. after any session boundary."""

        with self._lock:
            current = self._clock() if now is None else now
            self.last_movement_at = current
            self.last_stationary_at = current

    def check(self, now: float | None = None) -> None:
        """Classify the latest fix and evaluate a recording transition."""

        with self._lock:
            coordinate = self._producer.last_fix()
            if coordinate is None:
                return
            current = self._clock() if now is None else now
            previous = self._last_coordinate
            if previous is not None:
                moved = distance_m(previous, coordinate)
                if moved > self.movement_threshold_m:
                    self.last_movement_at = current
                    _LOG.debug("Movement detected: %.1fm", moved)
                else:
                    self.last_stationary_at = current
                    _LOG.debug("Stationary detected: %.1fm", moved)
            self._last_coordinate = coordinate
            self._evaluate(current)

    def _evaluate(self, now: float) -> None:
        dwell = self._settings.dwell_threshold_seconds
        if self._is_recording():
            if self.last_stationary_at - self.last_movement_at >= dwell:
                _LOG.info("Movement stopped detected")
                self._fire(self._on_stop)
                self._notify(
                    "Movement Stopped Detected",
                    "Don't forget to stop the walking session!",
                )
                self.reset(now)
            return

        if self.last_movement_at - self.last_stationary_at < dwell:
            return
        if not self._producer.location_available():
            _LOG.warning("Cannot start session: location disabled")
            self._notify(
                "Cannot Start Recording",
                "Movement detected, but location services are disabled. "
                "Please enable location services to record your walking sessions.",
                rate_limit_seconds=CANNOT_START_RATE_LIMIT_SECONDS,
                rate_limit_key=CANNOT_START_RATE_LIMIT_KEY,
            )
            return
        _LOG.info("Movement start detected")
        self._fire(self._on_start)
        self._notify("Movement Detected", "Don't forget to start the walking session!")
        self.reset(now)

    def _fire(self, trigger: Trigger) -> None:
        try:
            trigger()
        except Exception:
            _LOG.exception("Walking detection trigger failed")

    def _notify(
        self,
        title: str,
        body: str,
        *,
        rate_limit_seconds: float | None = None,
        rate_limit_key: str | None = None,
    ) -> None:
        if not self._settings.detection_enabled:
            return
        if not within_notification_window(
            self._hour_of_day(), all_day=self._settings.notifications_all_day
        ):
            return
        self._notifier.send_now(
            title,
            body,
            rate_limit_seconds=rate_limit_seconds,
            rate_limit_key=rate_limit_key,
        )


__all__ = ["ActivityDetector"]
