"""Position producer fanning location samples out to subscribers.

The producer forwards every platform location update and, on a fixed cadence,
re-emits the last known location so that the sample stream stays continuous
while the device is stationary (platforms suppress updates when nothing
moves).
"""

from __future__ import annotations

import itertools
import logging
import threading
import time
from typing import Callable, Dict, Protocol

from .config import DEFAULT_SOURCE_KIND, SAMPLING_INTERVAL_SECONDS
from .errors import PermissionUnavailableError
from .models import Coordinate, Sample, UNKNOWN_COORDINATE
from .ticker import Ticker

_LOG = logging.getLogger(__name__)

SampleHandler = Callable[[Sample], None]
Clock = Callable[[], float]


class LocationDriver(Protocol):
    """Platform location service as seen by the producer."""

    def request_permission(self) -> None: ...

    def permission_granted(self) -> bool: ...

    def start_updates(self, callback: Callable[[Coordinate], None]) -> None: ...

    def stop_updates(self) -> None: ...

    def last_location(self) -> Coordinate | None: ...


class Broadcaster:
    """Thread-safe fan-out of samples to registered handlers."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handlers: Dict[int, SampleHandler] = {}
        self._tokens = itertools.count(1)

    def subscribe(self, handler: SampleHandler) -> int:
        with self._lock:
            token = next(self._tokens)
            self._handlers[token] = handler
        return token

    def unsubscribe(self, token: int) -> bool:
        with self._lock:
            return self._handlers.pop(token, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._handlers.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._handlers)

    def publish(self, sample: Sample) -> None:
        with self._lock:
            handlers = list(self._handlers.values())
        for handler in handlers:
            try:
                handler(sample)
            except Exception:
                _LOG.exception("Sample handler %r failed", handler)


class PositionProducer:
    def __init__(
        self,
        driver: LocationDriver,
        *,
        clock: Clock = time.time,
        sampling_interval: float = SAMPLING_INTERVAL_SECONDS,
        source_kind: str = DEFAULT_SOURCE_KIND,
        idle_sampling: bool = True,
    ) -> None:
        self._driver = driver
        self._clock = clock
        self._source_kind = source_kind
        self._idle_sampling = idle_sampling
        self._broadcaster = Broadcaster()
        self._lock = threading.Lock()
        self._running = False
        self._permission_requested = False
        self._last_coordinate: Coordinate | None = None
        self._ticker = Ticker(
            sampling_interval, self.emit_current, name="position-sampler"
        )

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Begin forwarding updates and idle sampling; repeated calls are no-ops."""

        with self._lock:
            if self._running:
                return
            self._running = True
        self.ensure_permission()
        self._driver.start_updates(self._on_location_update)
        if self._idle_sampling:
            self._ticker.start()
        _LOG.info(
            "Position producer started (permission=%s)", self.location_available()
        )

    def stop(self) -> None:
        with self._lock:
            if not self._running:
                self._broadcaster.clear()
                return
            self._running = False
        self._ticker.stop()
        self._driver.stop_updates()
        self._broadcaster.clear()
        _LOG.info("Position producer stopped")

    def ensure_permission(self) -> None:
        """Ask the platform for location access once per producer."""

        if self._permission_requested:
            return
        self._permission_requested = True
        if not self._driver.permission_granted():
            _LOG.info("Requesting location permission")
            self._driver.request_permission()

    def location_available(self) -> bool:
        return self._driver.permission_granted()

    def subscribe(self, handler: SampleHandler) -> int:
        return self._broadcaster.subscribe(handler)

    def unsubscribe(self, token: int) -> bool:
        return self._broadcaster.unsubscribe(token)

    @property
    def subscriber_count(self) -> int:
        return len(self._broadcaster)

    def current_coordinate(self) -> Coordinate:
        """Last known coordinate, or the zero sentinel when unknown or denied."""

        if not self._driver.permission_granted():
            return UNKNOWN_COORDINATE
        coordinate = self._last_coordinate
        if coordinate is None:
            coordinate = self._driver.last_location()
        return coordinate if coordinate is not None else UNKNOWN_COORDINATE

    def require_location(self) -> Coordinate:
        """Current coordinate, raising when it is denied or not yet known."""

        if not self._driver.permission_granted():
            raise PermissionUnavailableError("Location access is denied or restricted")
        coordinate = self.current_coordinate()
        if coordinate.is_unknown:
            raise PermissionUnavailableError("No location fix available yet")
        return coordinate

    def last_fix(self) -> Coordinate | None:
        """Most recent platform fix, even when permission has since been revoked."""

        if self._last_coordinate is not None:
            return self._last_coordinate
        return self._driver.last_location()

    def capture_sample(self) -> Sample:
        """Build a sample from the current coordinate without publishing it."""

        return Sample(
            coordinate=self.current_coordinate(),
            timestamp=self._clock(),
            source_kind=self._source_kind,
        )

    def emit_current(self) -> None:
        """Publish the last known coordinate; driven by the idle sampler."""

        if not self._running:
            return
        self._broadcaster.publish(self.capture_sample())

    def _on_location_update(self, coordinate: Coordinate) -> None:
        if not self._running:
            return
        if self._driver.permission_granted():
            self._last_coordinate = coordinate
        self._broadcaster.publish(self.capture_sample())


class SimulatedLocationDriver:
    """In-process driver fed by :meth:`push`; used for replays and tests."""

    def __init__(self, *, permission: bool = True) -> None:
        self._permission = permission
        self._callback: Callable[[Coordinate], None] | None = None
        self._last: Coordinate | None = None
        self.permission_requests = 0

    def request_permission(self) -> None:
        self.permission_requests += 1

    def permission_granted(self) -> bool:
        return self._permission

    def set_permission(self, granted: bool) -> None:
        self._permission = granted

    def start_updates(self, callback: Callable[[Coordinate], None]) -> None:
        self._callback = callback

    def stop_updates(self) -> None:
        self._callback = None

    def last_location(self) -> Coordinate | None:
        return self._last

    @property
    def updating(self) -> bool:
        return self._callback is not None

    def push(self, coordinate: Coordinate) -> None:
        self._last = coordinate
        if self._callback is not None:
            self._callback(coordinate)


__all__ = [
    "Broadcaster",
    "LocationDriver",
    "PositionProducer",
    "SampleHandler",
    "SimulatedLocationDriver",
]
