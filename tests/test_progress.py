"""Route progress tracking and route loading from the store."""

from __future__ import annotations

import logging
from unittest.mock import MagicMock

import pytest
import requests

from safesteps.errors import PermissionUnavailableError
from safesteps.geometry import decode_path
from safesteps.models import Coordinate, Route, RoutePoint
from safesteps.producer import PositionProducer, SimulatedLocationDriver
from safesteps.progress import RouteProgress, load_routes, sort_by_distance
from safesteps.store import HttpDocumentStore, InMemoryDocumentStore

from conftest import ANN_ARBOR, ManualClock, north_of


def _north_route(feet: float) -> Route:
    end = north_of(ANN_ARBOR, feet * 0.3048)
    return Route(
        id="north",
        name="Due north",
        waypoints=(
            RoutePoint(ANN_ARBOR.latitude, ANN_ARBOR.longitude, "start"),
            RoutePoint(end.latitude, end.longitude, "end"),
        ),
    )


def test_remaining_feet_follows_producer(
    producer: PositionProducer, driver: SimulatedLocationDriver, clock: ManualClock
) -> None:
    progress = RouteProgress(_north_route(500), producer)
    producer.start()

    driver.push(Coordinate(42.2808, -83.7430))
    first = progress.remaining_feet()
    clock.advance(12)
    driver.push(Coordinate(42.2810, -83.7432))
    second = progress.remaining_feet()

    assert second < first


def test_arrival_within_threshold() -> None:
    route = _north_route(500)
    progress = RouteProgress(route)
    near_end = north_of(ANN_ARBOR, 490 * 0.3048)

    assert progress.has_arrived(near_end)
    assert not progress.has_arrived(ANN_ARBOR)
    assert progress.remaining_feet(route.destination) == 0


def test_position_required_without_producer() -> None:
    with pytest.raises(ValueError):
        RouteProgress(_north_route(100)).remaining_feet()


def test_encoded_path_round_trips_waypoints() -> None:
    route = _north_route(500)
    decoded = decode_path(RouteProgress(route).encoded_path())
    assert len(decoded) == 2
    assert decoded[1].latitude == pytest.approx(route.destination.latitude, abs=1e-5)


def test_load_routes_skips_malformed(caplog: pytest.LogCaptureFixture) -> None:
    store = InMemoryDocumentStore()
    store.put_record(
        "routes",
        "good",
        {
            "id": "good",
            "name": "Good",
            "start_latitude": 42.0,
            "start_longitude": -83.0,
            "route_points": [{"latitude": 42.001, "longitude": -83.0, "label": "end"}],
        },
    )
    store.put_record("routes", "bad", {"id": "bad", "route_points": []})

    with caplog.at_level(logging.WARNING, logger="safesteps.progress"):
        routes = load_routes(store)

    assert [route.id for route in routes] == ["good"]
    assert "skipping route record" in caplog.text.lower()


def test_sort_by_distance_orders_by_start() -> None:
    def route(route_id: str, lat: float) -> Route:
        return Route(
            id=route_id,
            name=route_id,
            waypoints=(RoutePoint(lat, -83.74), RoutePoint(lat + 0.001, -83.74)),
        )

    routes = [route("far", 42.5), route("near", 42.281), route("mid", 42.3)]
    ordered = sort_by_distance(routes, ANN_ARBOR)
    assert [r.id for r in ordered] == ["near", "mid", "far"]


def test_progress_requires_location_access(
    producer: PositionProducer, driver: SimulatedLocationDriver
) -> None:
    producer.start()
    driver.push(ANN_ARBOR)
    driver.set_permission(False)
    with pytest.raises(PermissionUnavailableError):
        RouteProgress(_north_route(500), producer).remaining_feet()


def test_load_routes_survives_unreachable_store(caplog: pytest.LogCaptureFixture) -> None:
    session = MagicMock()
    session.get.side_effect = requests.ConnectionError("offline")
    store = HttpDocumentStore("https://store.example/api", session=session)

    with caplog.at_level(logging.WARNING, logger="safesteps.progress"):
        assert load_routes(store) == []

    assert "could not load routes" in caplog.text.lower()
