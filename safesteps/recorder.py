"""Walking session recorder with bounded, chunked flushing.

Only one session may be active at a time. Incoming samples are buffered and,
once the buffer is full, handed to the background writer as an immutable
segment so memory stays bounded and at most one buffer of samples is lost on
abnormal termination.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, List, Sequence

from .config import (
    APP_VERSION,
    SEGMENT_COLLECTION,
    SEGMENT_SAMPLE_THRESHOLD,
    SUMMARY_COLLECTION,
)
from .models import (
    Coordinate,
    Record,
    Sample,
    SampleBuffer,
    Session,
    SubmissionMetadata,
    UNKNOWN_COORDINATE,
)
from .producer import PositionProducer
from .settings import SettingsStore
from .store import BackgroundWriter

_LOG = logging.getLogger(__name__)

BoundaryListener = Callable[[], None]


def _new_document_id() -> str:
    return str(uuid.uuid4()).upper()


@dataclass(slots=True)
class SubmissionResult:
    summary_id: str
    segment_ids: List[str] = field(default_factory=list)


class SessionRecorder:
    def __init__(
        self,
        producer: PositionProducer,
        writer: BackgroundWriter,
        *,
        settings: SettingsStore | None = None,
        clock: Callable[[], float] = time.time,
        segment_threshold: int = SEGMENT_SAMPLE_THRESHOLD,
        id_factory: Callable[[], str] = _new_document_id,
        app_version: str = APP_VERSION,
        segment_collection: str = SEGMENT_COLLECTION,
        summary_collection: str = SUMMARY_COLLECTION,
    ) -> None:
        if segment_threshold < 1:
            raise ValueError("segment_threshold must be >= 1")
        self._producer = producer
        self._writer = writer
        self._settings = settings or SettingsStore()
        self._clock = clock
        self._segment_threshold = segment_threshold
        self._id_factory = id_factory
        self._app_version = app_version
        self._segment_collection = segment_collection
        self._summary_collection = summary_collection
        self._lock = threading.RLock()
        self._session = Session()
        self._buffer = SampleBuffer()
        self._subscription: int | None = None
        self._boundary_listeners: List[BoundaryListener] = []

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def active(self) -> bool:
        return self._session.active

    @property
    def session(self) -> Session:
        with self._lock:
            return Session(
                start_time=self._session.start_time,
                start_location=self._session.start_location,
                active=self._session.active,
                pending_segment_ids=list(self._session.pending_segment_ids),
            )

    def buffered_samples(self) -> tuple[Sample, ...]:
        with self._lock:
            return self._buffer.snapshot()

    def add_boundary_listener(self, listener: BoundaryListener) -> None:
        """Register a callable run whenever a session starts or ends."""

        self._boundary_listeners.append(listener)

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------
    def start_session(self) -> bool:
        """Begin recording; a no-op returning False when already active."""

        # start() may block on the permission prompt; never under the lock.
        self._producer.start()
        with self._lock:
            if self._session.active:
                _LOG.warning(
                    "Ignoring start request: session started at %s still active",
                    self._session.start_time,
                )
                return False
            self._buffer.clear()
            self._session = Session(
                start_time=self._clock(),
                start_location=self._producer.current_coordinate(),
                active=True,
            )
            self._subscription = self._producer.subscribe(self.handle_sample)
        _LOG.info("Walking session started at %s", self._session.start_time)
        self._notify_boundary()
        return True

    def stop_session(self) -> bool:
        """Stop collecting samples without flushing or uploading them."""

        with self._lock:
            if not self._session.active:
                _LOG.debug("Ignoring stop request: no active session")
                return False
            self._detach()
            self._session.active = False
            buffered = len(self._buffer)
        _LOG.info("Walking session stopped with %d buffered samples", buffered)
        self._notify_boundary()
        return True

    def finalize_and_submit(self, metadata: SubmissionMetadata | None = None) -> SubmissionResult:
        """Flush what is left and write the session summary record."""

        metadata = metadata or SubmissionMetadata()
        with self._lock:
            was_active = self._session.active
            self._detach()
            last_sample = self._buffer.last()
            self._flush_locked()
            last_location = last_sample.coordinate if last_sample else UNKNOWN_COORDINATE
            segment_ids = list(self._session.pending_segment_ids)
            summary_id = self._write_summary(
                metadata,
                segment_ids=segment_ids,
                start_location=self._session.start_location,
                last_location=last_location,
                start_time=self._session.start_time,
            )
            self._reset_locked()
        _LOG.info(
            "Submitted session summary %s with %d segments", summary_id, len(segment_ids)
        )
        if was_active:
            self._notify_boundary()
        return SubmissionResult(summary_id=summary_id, segment_ids=segment_ids)

    def cancel(self) -> List[str]:
        """Discard the session, still flushing buffered samples so none are lost."""

        with self._lock:
            was_active = self._session.active
            self._detach()
            self._flush_locked()
            segment_ids = list(self._session.pending_segment_ids)
            self._reset_locked()
        _LOG.info("Walking session cancelled (%d segments flushed)", len(segment_ids))
        if was_active:
            self._notify_boundary()
        return segment_ids

    def report_single_point(
        self, metadata: SubmissionMetadata | None = None
    ) -> SubmissionResult:
        """Report the current position as a one-sample session.

        Independent of any active session; the shared session state is not
        touched.
        """

        metadata = metadata or SubmissionMetadata()
        sample = self._producer.capture_sample()
        segment_id = self._submit_segment((sample,))
        summary_id = self._write_summary(
            metadata,
            segment_ids=[segment_id],
            start_location=sample.coordinate,
            last_location=sample.coordinate,
            start_time=sample.timestamp,
        )
        _LOG.info("Submitted single point report %s", summary_id)
        return SubmissionResult(summary_id=summary_id, segment_ids=[segment_id])

    def close(self) -> None:
        with self._lock:
            self._detach()

    # ------------------------------------------------------------------
    # Sample path
    # ------------------------------------------------------------------
    def handle_sample(self, sample: Sample) -> None:
        """Buffer one sample, flushing a full buffer as a segment first."""

        with self._lock:
            if not self._session.active:
                return
            if len(self._buffer) >= self._segment_threshold:
                self._flush_locked()
            self._buffer.append(sample)

    def _flush_locked(self) -> str | None:
        if not len(self._buffer):
            return None
        snapshot = self._buffer.snapshot()
        self._buffer.clear()
        segment_id = self._submit_segment(snapshot)
        self._session.pending_segment_ids.append(segment_id)
        _LOG.debug("Flushed segment %s with %d samples", segment_id, len(snapshot))
        return segment_id

    def _submit_segment(self, samples: Sequence[Sample]) -> str:
        segment_id = self._id_factory()
        self._writer.submit(
            self._segment_collection,
            segment_id,
            {
                "samples": [sample.to_record() for sample in samples],
                "app_version": self._app_version,
            },
        )
        return segment_id

    def _write_summary(
        self,
        metadata: SubmissionMetadata,
        *,
        segment_ids: List[str],
        start_location: Coordinate,
        last_location: Coordinate,
        start_time: float,
    ) -> str:
        summary_id = self._id_factory()
        record: Record = {
            "user_id": metadata.user_id,
            "timestamp": self._clock(),
            "hazard_tags": list(metadata.hazard_tags),
            "intensity_values": list(metadata.intensity_values),
            "segment_ids": list(segment_ids),
            "image_id": metadata.image_id,
            "last_location": last_location.to_record(),
            "start_location": start_location.to_record(),
            "start_time": start_time,
            "building_info": metadata.building_info(),
            "detection_sensitivity": self._settings.dwell_threshold_seconds,
            "app_version": self._app_version,
        }
        self._writer.submit(self._summary_collection, summary_id, record)
        return summary_id

    def _detach(self) -> None:
        if self._subscription is not None:
            self._producer.unsubscribe(self._subscription)
            self._subscription = None

    def _reset_locked(self) -> None:
        self._buffer.clear()
        self._session = Session()

    def _notify_boundary(self) -> None:
        for listener in list(self._boundary_listeners):
            try:
                listener()
            except Exception:
                _LOG.exception("Session boundary listener failed")


__all__ = ["SessionRecorder", "SubmissionResult"]
