"""Process-wide wiring of the producer, recorder and walking detector.

Build one :class:`AppContext` at startup and pass its components to whatever
needs them; it owns the single producer and the single recorder.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable

from .config import STORE_BASE_URL
from .detector import ActivityDetector
from .models import Route
from .notifications import LoggingNotificationSink, NotificationSink
from .producer import LocationDriver, PositionProducer
from .progress import RouteProgress
from .recorder import SessionRecorder
from .settings import SettingsStore
from .store import BackgroundWriter, HttpDocumentStore, InMemoryDocumentStore, RemoteStore

_LOG = logging.getLogger(__name__)


def default_store() -> RemoteStore:
    if STORE_BASE_URL:
        return HttpDocumentStore(STORE_BASE_URL)
    return InMemoryDocumentStore()


@dataclass
class AppContext:
    driver: LocationDriver
    store: RemoteStore = field(default_factory=default_store)
    settings: SettingsStore = field(default_factory=SettingsStore)
    notifier: NotificationSink = field(default_factory=LoggingNotificationSink)
    clock: Callable[[], float] = time.time
    idle_sampling: bool = True
    producer: PositionProducer = field(init=False)
    writer: BackgroundWriter = field(init=False)
    recorder: SessionRecorder = field(init=False)
    detector: ActivityDetector = field(init=False)

    def __post_init__(self) -> None:
        self.producer = PositionProducer(
            self.driver, clock=self.clock, idle_sampling=self.idle_sampling
        )
        self.writer = BackgroundWriter(self.store)
        self.recorder = SessionRecorder(
            self.producer, self.writer, settings=self.settings, clock=self.clock
        )
        self.detector = ActivityDetector(
            self.producer,
            self.settings,
            self.notifier,
            is_recording=lambda: self.recorder.active,
            on_start=self.recorder.start_session,
            on_stop=self.recorder.stop_session,
            clock=self.clock,
        )
        self.recorder.add_boundary_listener(self.detector.reset)

    def start(self) -> None:
        self.producer.start()
        self.detector.initialize()

    def track(self, route: Route) -> RouteProgress:
        return RouteProgress(route, self.producer)

    def close(self) -> None:
        """Stop every timer and drain pending writes."""

        self.detector.close()
        self.recorder.close()
        self.producer.stop()
        self.writer.flush()
        self.writer.close()
        _LOG.info("Application context closed")

    def __enter__(self) -> "AppContext":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()


__all__ = ["AppContext", "default_store"]
