"""Read-back of recorded sessions from the remote store.

Summaries list a user's past walks; each summary names the segment documents
that together hold its samples, in upload order.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Mapping

from .config import APP_VERSION, SEGMENT_COLLECTION, SUMMARY_COLLECTION
from .errors import MalformedRecordError, StoreReadError
from .models import SampleBuffer, SessionSummary
from .store import RemoteStore

_LOG = logging.getLogger(__name__)


def load_session_samples(
    store: RemoteStore,
    segment_ids: Iterable[str],
    *,
    collection: str = SEGMENT_COLLECTION,
) -> SampleBuffer:
    """Concatenate the samples of ``segment_ids`` in the order given.

    Segments that are missing or cannot be read are logged and skipped, so
    the result may be shorter than the recorded session.
    """

    buffer = SampleBuffer()
    for segment_id in segment_ids:
        try:
            record = store.get_record(collection, segment_id)
        except StoreReadError as exc:
            _LOG.warning("Could not read segment %s/%s: %s", collection, segment_id, exc)
            continue
        if record is None:
            _LOG.warning("Segment %s/%s does not exist", collection, segment_id)
            continue
        raw_samples = record.get("samples") or []
        if not isinstance(raw_samples, list):
            _LOG.warning("Segment %s/%s has no sample list", collection, segment_id)
            continue
        for sample in SampleBuffer.from_records(
            raw for raw in raw_samples if isinstance(raw, Mapping)
        ):
            buffer.append(sample)
    _LOG.debug("Loaded %d samples from %s", len(buffer), collection)
    return buffer


def load_summaries(
    store: RemoteStore,
    user_id: str,
    *,
    app_version: str = APP_VERSION,
    collection: str = SUMMARY_COLLECTION,
) -> List[SessionSummary]:
    """A user's session summaries for ``app_version``, oldest first."""

    try:
        records = list(
            store.get_records(
                collection,
                {"user_id": user_id, "app_version": app_version},
                order_by="timestamp",
            )
        )
    except StoreReadError as exc:
        _LOG.warning("Could not load history for user %s: %s", user_id, exc)
        return []
    summaries: List[SessionSummary] = []
    for record in records:
        try:
            summaries.append(SessionSummary.from_record(record))
        except MalformedRecordError as exc:
            _LOG.warning("Skipping summary record %r: %s", record.get("id"), exc)
    _LOG.info("Loaded %d session summaries for user %s", len(summaries), user_id)
    return summaries


__all__ = ["load_session_samples", "load_summaries"]
