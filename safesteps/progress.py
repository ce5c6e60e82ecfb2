"""Live progress along a selected route."""

from __future__ import annotations

import logging
from typing import Iterable, List

from .config import ARRIVED_THRESHOLD_FEET, ROUTE_COLLECTION
from .errors import MalformedRecordError, StoreReadError
from .geometry import (
    HasLatLon,
    distance_m,
    encode_path,
    nearest_segment,
    remaining_distance,
)
from .models import Coordinate, Route, RoutePoint
from .producer import PositionProducer
from .store import RemoteStore

_LOG = logging.getLogger(__name__)


class RouteProgress:
    """Remaining distance from the producer's position to a route's end."""

    def __init__(self, route: Route, producer: PositionProducer | None = None) -> None:
        self.route = route
        self._producer = producer

    @property
    def destination(self) -> RoutePoint:
        return self.route.destination

    def _position(self, position: HasLatLon | None) -> HasLatLon:
        if position is not None:
            return position
        if self._producer is None:
            raise ValueError("A position is required when no producer is attached")
        return self._producer.require_location()

    def nearest_segment_index(self, position: HasLatLon | None = None) -> int:
        return nearest_segment(self.route, self._position(position))

    def remaining_feet(self, position: HasLatLon | None = None) -> int:
        return remaining_distance(self.route, self._position(position))

    def has_arrived(self, position: HasLatLon | None = None) -> bool:
        return self.remaining_feet(position) <= ARRIVED_THRESHOLD_FEET

    def encoded_path(self) -> str:
        return encode_path(self.route.waypoints)


def load_routes(store: RemoteStore, collection: str = ROUTE_COLLECTION) -> List[Route]:
    """Parse every route record, skipping ones that cannot form a route.

    An unreachable store yields no routes rather than an error.
    """

    try:
        records = list(store.get_records(collection))
    except StoreReadError as exc:
        _LOG.warning("Could not load routes from %s: %s", collection, exc)
        return []
    routes: List[Route] = []
    for record in records:
        try:
            routes.append(Route.from_record(record))
        except MalformedRecordError as exc:
            _LOG.warning("Skipping route record %r: %s", record.get("id"), exc)
    _LOG.info("Loaded %d routes from %s", len(routes), collection)
    return routes


def sort_by_distance(routes: Iterable[Route], origin: Coordinate) -> List[Route]:
    """Order routes by great-circle distance from ``origin`` to their start."""

    return sorted(routes, key=lambda route: distance_m(origin, route.waypoints[0]))


__all__ = ["RouteProgress", "load_routes", "sort_by_distance"]
