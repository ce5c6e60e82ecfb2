"""Record (de)serialisation and defaults for the core dataclasses."""

from __future__ import annotations

import dataclasses

import pytest

from safesteps.errors import MalformedRecordError
from safesteps.models import (
    Coordinate,
    Route,
    RoutePoint,
    Sample,
    SampleBuffer,
    SessionSummary,
    UNKNOWN_COORDINATE,
)


def test_sample_record_round_trip() -> None:
    sample = Sample(Coordinate(42.28, -83.74, 250.5), timestamp=1_700_000_000.25, sensor_id=3)
    record = sample.to_record()

    assert record == {
        "timestamp": 1_700_000_000.25,
        "loc_latitude": 42.28,
        "loc_longitude": -83.74,
        "loc_altitude": 250.5,
        "data_type": "gps",
        "sensor_id": 3,
    }
    assert Sample.from_record(record) == sample


def test_sample_from_record_fills_defaults() -> None:
    sample = Sample.from_record({"loc_latitude": "12.5", "data_type": None})

    assert sample.coordinate == Coordinate(12.5, 0.0, 0.0)
    assert sample.timestamp == 0.0
    assert sample.source_kind == "gps"
    assert sample.sensor_id == 0


def test_sample_is_immutable() -> None:
    sample = Sample(UNKNOWN_COORDINATE, timestamp=1.0)
    with pytest.raises(dataclasses.FrozenInstanceError):
        sample.timestamp = 2.0  # type: ignore[misc]


def test_unknown_coordinate_sentinel() -> None:
    assert UNKNOWN_COORDINATE.is_unknown
    assert not Coordinate(0.0, 0.0, 1.0).is_unknown
    assert Coordinate.from_record(None) == UNKNOWN_COORDINATE


def test_sample_buffer_snapshot_is_detached() -> None:
    buffer = SampleBuffer()
    first = Sample(Coordinate(1.0, 1.0), timestamp=1.0)
    buffer.append(first)
    snapshot = buffer.snapshot()
    buffer.append(Sample(Coordinate(2.0, 2.0), timestamp=2.0))
    buffer.clear()

    assert snapshot == (first,)
    assert len(buffer) == 0
    assert buffer.last() is None


def test_sample_buffer_from_records_keeps_order() -> None:
    records = [{"timestamp": float(ts), "loc_latitude": float(ts)} for ts in (3, 1, 2)]
    buffer = SampleBuffer.from_records(records)
    assert [sample.timestamp for sample in buffer] == [3.0, 1.0, 2.0]
    assert buffer.to_records()[0]["loc_latitude"] == 3.0


def test_route_from_record_prepends_start_point() -> None:
    record = {
        "id": "route-1",
        "name": "Diag loop",
        "description": "Campus walk",
        "city": "Ann Arbor",
        "start_location": "Union",
        "end_location": "Library",
        "start_latitude": 42.2750,
        "start_longitude": -83.7415,
        "route_points": [
            {"latitude": 42.2765, "longitude": -83.7390, "label": "Diag"},
            {"latitude": 42.2770, "longitude": -83.7380},
        ],
    }
    route = Route.from_record(record)

    assert route.waypoints[0] == RoutePoint(42.2750, -83.7415, "Union")
    assert [p.label for p in route.waypoints] == ["Union", "Diag", ""]
    assert route.destination == RoutePoint(42.2770, -83.7380, "")
    assert route.city == "Ann Arbor"
    assert route.end_location == "Library"


def test_route_from_record_defaults_missing_strings() -> None:
    route = Route.from_record({"route_points": [{"latitude": 1.0, "longitude": 2.0}]})

    assert route.id == ""
    assert route.name == ""
    assert route.waypoints[0] == RoutePoint(0.0, 0.0, "")


def test_route_requires_two_waypoints() -> None:
    with pytest.raises(MalformedRecordError):
        Route.from_record({"id": "short", "route_points": []})


def test_route_rejects_points_without_coordinates() -> None:
    with pytest.raises(MalformedRecordError):
        Route.from_record({"id": "bad", "route_points": [{"label": "nowhere"}]})


def test_session_summary_from_record() -> None:
    summary = SessionSummary.from_record(
        {
            "id": "S1",
            "user_id": "walker",
            "timestamp": 20.0,
            "start_time": 10.0,
            "segment_ids": ["A", "B"],
            "hazard_tags": ["ice"],
            "intensity_values": ["3"],
            "start_location": {"latitude": 42.0, "longitude": -83.0},
            "last_location": "garbage",
        }
    )

    assert summary.summary_id == "S1"
    assert summary.segment_ids == ["A", "B"]
    assert summary.intensity_values == [3]
    assert summary.start_location == Coordinate(42.0, -83.0)
    assert summary.last_location == UNKNOWN_COORDINATE
    assert SessionSummary.from_record({}, summary_id="S2").segment_ids == []


def test_session_summary_rejects_non_list_segments() -> None:
    with pytest.raises(MalformedRecordError):
        SessionSummary.from_record({"segment_ids": "A,B"})
