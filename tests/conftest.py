"""Global pytest fixtures & helpers.

Adds project root to path and provides a manual clock, a simulated location
driver and in-memory collaborators so tests never wait on real timers.
"""
from __future__ import annotations

import os
import sys
from typing import Iterator, List, Tuple

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from safesteps.models import Coordinate
from safesteps.producer import PositionProducer, SimulatedLocationDriver
from safesteps.recorder import SessionRecorder
from safesteps.settings import SettingsStore
from safesteps.store import BackgroundWriter, InMemoryDocumentStore


# --- Factory helpers -------------------------------------------------
class ManualClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


class RecordingNotifier:
    def __init__(self) -> None:
        self.sent: List[Tuple[str, str, float | None, str | None]] = []

    def send_now(self, title, body, rate_limit_seconds=None, rate_limit_key=None):
        self.sent.append((title, body, rate_limit_seconds, rate_limit_key))
        return True

    @property
    def titles(self) -> List[str]:
        return [entry[0] for entry in self.sent]


def north_of(origin: Coordinate, meters: float) -> Coordinate:
    """Point ``meters`` due north of ``origin`` (good to a few cm over short spans)."""

    return Coordinate(origin.latitude + meters / 111_194.93, origin.longitude, origin.altitude)


ANN_ARBOR = Coordinate(42.2808, -83.7430, 256.0)


# --- Fixtures --------------------------------------------------------
@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def driver() -> SimulatedLocationDriver:
    return SimulatedLocationDriver()


@pytest.fixture
def settings() -> SettingsStore:
    return SettingsStore()


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def writer(store: InMemoryDocumentStore) -> Iterator[BackgroundWriter]:
    background = BackgroundWriter(store)
    yield background
    background.close()


@pytest.fixture
def producer(driver: SimulatedLocationDriver, clock: ManualClock) -> Iterator[PositionProducer]:
    position_producer = PositionProducer(driver, clock=clock, idle_sampling=False)
    yield position_producer
    position_producer.stop()


@pytest.fixture
def recorder(
    producer: PositionProducer,
    writer: BackgroundWriter,
    settings: SettingsStore,
    clock: ManualClock,
) -> SessionRecorder:
    return SessionRecorder(producer, writer, settings=settings, clock=clock)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
