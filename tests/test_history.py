"""Reading recorded sessions back from the store."""

from __future__ import annotations

import importlib
import logging
from unittest.mock import MagicMock

import pytest
import requests

from safesteps.config import APP_VERSION, SEGMENT_COLLECTION, SUMMARY_COLLECTION
from safesteps.history import load_session_samples, load_summaries
from safesteps.models import Sample, SubmissionMetadata
from safesteps.producer import PositionProducer, SimulatedLocationDriver
from safesteps.recorder import SessionRecorder
from safesteps.store import BackgroundWriter, HttpDocumentStore, InMemoryDocumentStore

from conftest import ANN_ARBOR, ManualClock, north_of

# safesteps/__init__ re-exports the main() function, shadowing the submodule.
cli = importlib.import_module("safesteps.main")


def _segment(*timestamps: float) -> dict:
    return {
        "samples": [Sample(ANN_ARBOR, ts).to_record() for ts in timestamps],
        "app_version": APP_VERSION,
    }


def _offline_store() -> HttpDocumentStore:
    session = MagicMock()
    session.get.side_effect = requests.ConnectionError("offline")
    return HttpDocumentStore("https://store.example/api", session=session)


def test_segments_concatenate_in_given_order(caplog: pytest.LogCaptureFixture) -> None:
    store = InMemoryDocumentStore()
    store.put_record(SEGMENT_COLLECTION, "A", _segment(1.0, 2.0))
    store.put_record(SEGMENT_COLLECTION, "B", _segment(3.0))

    with caplog.at_level(logging.WARNING, logger="safesteps.history"):
        buffer = load_session_samples(store, ["B", "missing", "A"])

    assert [sample.timestamp for sample in buffer] == [3.0, 1.0, 2.0]
    assert "segment realtime_data_gps/missing does not exist" in caplog.text.lower()


def test_unreadable_segments_are_skipped() -> None:
    assert len(load_session_samples(_offline_store(), ["A", "B"])) == 0


def test_summaries_filtered_by_user_and_version() -> None:
    store = InMemoryDocumentStore()
    store.put_record(
        SUMMARY_COLLECTION,
        "late",
        {"id": "late", "user_id": "walker", "app_version": APP_VERSION, "timestamp": 20.0},
    )
    store.put_record(
        SUMMARY_COLLECTION,
        "early",
        {"id": "early", "user_id": "walker", "app_version": APP_VERSION, "timestamp": 10.0},
    )
    store.put_record(
        SUMMARY_COLLECTION,
        "other",
        {"id": "other", "user_id": "someone", "app_version": APP_VERSION, "timestamp": 5.0},
    )
    store.put_record(
        SUMMARY_COLLECTION,
        "legacy",
        {"id": "legacy", "user_id": "walker", "app_version": "gps_v1", "timestamp": 1.0},
    )
    store.put_record(
        SUMMARY_COLLECTION,
        "broken",
        {
            "id": "broken",
            "user_id": "walker",
            "app_version": APP_VERSION,
            "timestamp": 30.0,
            "segment_ids": "not-a-list",
        },
    )

    summaries = load_summaries(store, "walker")

    assert [summary.summary_id for summary in summaries] == ["early", "late"]


def test_summaries_from_unreachable_store_are_empty(
    caplog: pytest.LogCaptureFixture,
) -> None:
    with caplog.at_level(logging.WARNING, logger="safesteps.history"):
        assert load_summaries(_offline_store(), "walker") == []
    assert "could not load history" in caplog.text.lower()


def test_recorded_session_reloads_in_order(clock: ManualClock) -> None:
    store = InMemoryDocumentStore()
    writer = BackgroundWriter(store)
    driver = SimulatedLocationDriver()
    producer = PositionProducer(driver, clock=clock, idle_sampling=False)
    recorder = SessionRecorder(producer, writer, clock=clock, segment_threshold=4)
    try:
        recorder.start_session()
        for step in range(10):
            clock.advance(1.0)
            driver.push(north_of(ANN_ARBOR, step * 1.4))
        recorder.finalize_and_submit(SubmissionMetadata(user_id="walker"))
        assert writer.flush(5.0)
    finally:
        writer.close()
        producer.stop()

    (summary,) = load_summaries(store, "walker")
    samples = list(load_session_samples(store, summary.segment_ids))

    assert len(summary.segment_ids) == 3
    assert len(samples) == 10
    timestamps = [sample.timestamp for sample in samples]
    assert timestamps == sorted(timestamps)
    assert samples[-1].coordinate == summary.last_location


def test_history_command_lists_sessions(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    store = InMemoryDocumentStore()
    store.put_record(SEGMENT_COLLECTION, "A", _segment(100.0, 160.0))
    store.put_record(
        SUMMARY_COLLECTION,
        "S1",
        {
            "id": "S1",
            "user_id": "walker",
            "app_version": APP_VERSION,
            "timestamp": 200.0,
            "start_time": 100.0,
            "segment_ids": ["A"],
            "hazard_tags": ["ice"],
        },
    )
    monkeypatch.setattr(cli, "default_store", lambda: store)

    with caplog.at_level(logging.INFO):
        cli.main(["history", "walker"])
        cli.main(["history", "nobody"])

    assert "1 segments, 2 samples, duration 0:01:00, ice" in caplog.text
    assert "no recorded sessions for user nobody" in caplog.text.lower()
