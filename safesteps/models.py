"""Dataclasses describing samples, sessions and routes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Sequence, Tuple

from .config import DEFAULT_SOURCE_KIND
from .errors import MalformedRecordError

Record = Dict[str, Any]


def _coerce_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _coerce_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _coerce_str(value: Any, default: str = "") -> str:
    return value if isinstance(value, str) else default


@dataclass(frozen=True, slots=True)
class Coordinate:
    latitude: float
    longitude: float
    altitude: float = 0.0

    @property
    def is_unknown(self) -> bool:
        """True for the zero sentinel used when no fix is available."""

        return self.latitude == 0.0 and self.longitude == 0.0 and self.altitude == 0.0

    def to_record(self) -> Record:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "altitude": self.altitude,
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any] | None) -> "Coordinate":
        record = record or {}
        return cls(
            latitude=_coerce_float(record.get("latitude")),
            longitude=_coerce_float(record.get("longitude")),
            altitude=_coerce_float(record.get("altitude")),
        )


UNKNOWN_COORDINATE = Coordinate(0.0, 0.0, 0.0)


@dataclass(frozen=True, slots=True)
class Sample:
    """One timestamped coordinate reading."""

    coordinate: Coordinate
    timestamp: float
    source_kind: str = DEFAULT_SOURCE_KIND
    sensor_id: int = 0

    def to_record(self) -> Record:
        return {
            "timestamp": float(self.timestamp),
            "loc_latitude": self.coordinate.latitude,
            "loc_longitude": self.coordinate.longitude,
            "loc_altitude": self.coordinate.altitude,
            "data_type": self.source_kind,
            "sensor_id": self.sensor_id,
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Sample":
        """Rebuild a sample, filling missing fields with zero/"gps" defaults."""

        return cls(
            coordinate=Coordinate(
                latitude=_coerce_float(record.get("loc_latitude")),
                longitude=_coerce_float(record.get("loc_longitude")),
                altitude=_coerce_float(record.get("loc_altitude")),
            ),
            timestamp=_coerce_float(record.get("timestamp")),
            source_kind=_coerce_str(record.get("data_type"), DEFAULT_SOURCE_KIND),
            sensor_id=_coerce_int(record.get("sensor_id")),
        )


class SampleBuffer:
    """Append-only, insertion-ordered list of samples."""

    def __init__(self, samples: Iterable[Sample] | None = None) -> None:
        self._samples: List[Sample] = list(samples or [])

    def append(self, sample: Sample) -> None:
        self._samples.append(sample)

    def clear(self) -> None:
        self._samples = []

    def snapshot(self) -> Tuple[Sample, ...]:
        """Return an immutable copy of the current contents."""

        return tuple(self._samples)

    def last(self) -> Sample | None:
        return self._samples[-1] if self._samples else None

    def to_records(self) -> List[Record]:
        return [sample.to_record() for sample in self._samples]

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> "SampleBuffer":
        return cls(Sample.from_record(record) for record in records)

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[Sample]:
        return iter(self._samples)


class ActivityState(Enum):
    NOT_RECORDING = "not_recording"
    RECORDING = "recording"


@dataclass
class Session:
    """Metadata for the single walking session that may be active."""

    start_time: float = 0.0
    start_location: Coordinate = UNKNOWN_COORDINATE
    active: bool = False
    pending_segment_ids: List[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class RoutePoint:
    latitude: float
    longitude: float
    label: str = ""

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.latitude, self.longitude)


@dataclass(frozen=True, slots=True)
class Route:
    """Named, ordered sequence of waypoints used for progress tracking."""

    id: str
    name: str
    waypoints: Tuple[RoutePoint, ...]
    description: str = ""
    city: str = ""
    start_location: str = ""
    end_location: str = ""

    def __post_init__(self) -> None:
        if len(self.waypoints) < 2:
            raise MalformedRecordError(
                f"Route {self.id!r} needs at least 2 waypoints (got {len(self.waypoints)})"
            )

    @property
    def destination(self) -> RoutePoint:
        return self.waypoints[-1]

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Route":
        """Build a route from a store record.

        The stored ``route_points`` list omits the start point; it is rebuilt
        from ``start_latitude``/``start_longitude`` and labelled with the
        route's ``start_location``. Missing scalar fields default to empty
        strings or zero.
        """

        start_label = _coerce_str(record.get("start_location"))
        waypoints: List[RoutePoint] = [
            RoutePoint(
                latitude=_coerce_float(record.get("start_latitude")),
                longitude=_coerce_float(record.get("start_longitude")),
                label=start_label,
            )
        ]
        raw_points = record.get("route_points") or []
        if not isinstance(raw_points, Sequence) or isinstance(raw_points, str):
            raise MalformedRecordError("route_points must be a list of mappings")
        for raw in raw_points:
            if not isinstance(raw, Mapping):
                raise MalformedRecordError(f"Invalid route point: {raw!r}")
            if raw.get("latitude") is None or raw.get("longitude") is None:
                raise MalformedRecordError(f"Route point missing coordinates: {raw!r}")
            waypoints.append(
                RoutePoint(
                    latitude=_coerce_float(raw.get("latitude")),
                    longitude=_coerce_float(raw.get("longitude")),
                    label=_coerce_str(raw.get("label")),
                )
            )
        return cls(
            id=_coerce_str(record.get("id")),
            name=_coerce_str(record.get("name")),
            description=_coerce_str(record.get("description")),
            city=_coerce_str(record.get("city")),
            start_location=start_label,
            end_location=_coerce_str(record.get("end_location")),
            waypoints=tuple(waypoints),
        )


@dataclass(slots=True)
class SubmissionMetadata:
    """Caller-supplied fields attached to a session summary record."""

    user_id: str = ""
    hazard_tags: List[str] = field(default_factory=list)
    intensity_values: List[int] = field(default_factory=list)
    image_id: str = ""
    building_id: str = ""
    building_floor: str = ""
    building_remarks: str = ""
    building_hazard_location: str = ""

    def building_info(self) -> Record:
        return {
            "building_id": self.building_id,
            "building_floor": self.building_floor,
            "hazard_location": self.building_hazard_location,
            "hazard_remarks": self.building_remarks,
        }


@dataclass(slots=True)
class SessionSummary:
    """A stored session summary as listed in a user's walk history."""

    summary_id: str = ""
    user_id: str = ""
    timestamp: float = 0.0
    start_time: float = 0.0
    segment_ids: List[str] = field(default_factory=list)
    hazard_tags: List[str] = field(default_factory=list)
    intensity_values: List[int] = field(default_factory=list)
    image_id: str = ""
    start_location: Coordinate = UNKNOWN_COORDINATE
    last_location: Coordinate = UNKNOWN_COORDINATE

    @classmethod
    def from_record(cls, record: Mapping[str, Any], summary_id: str = "") -> "SessionSummary":
        """Build a summary; ``summary_id`` falls back to the record's ``id`` field."""

        raw_segments = record.get("segment_ids") or []
        if not isinstance(raw_segments, Sequence) or isinstance(raw_segments, str):
            raise MalformedRecordError("segment_ids must be a list of document ids")
        raw_tags = record.get("hazard_tags") or []
        raw_values = record.get("intensity_values") or []
        start = record.get("start_location")
        last = record.get("last_location")
        return cls(
            summary_id=summary_id or _coerce_str(record.get("id")),
            user_id=_coerce_str(record.get("user_id")),
            timestamp=_coerce_float(record.get("timestamp")),
            start_time=_coerce_float(record.get("start_time")),
            segment_ids=[str(segment_id) for segment_id in raw_segments if segment_id],
            hazard_tags=[str(tag) for tag in raw_tags] if isinstance(raw_tags, list) else [],
            intensity_values=(
                [_coerce_int(value) for value in raw_values]
                if isinstance(raw_values, list)
                else []
            ),
            image_id=_coerce_str(record.get("image_id")),
            start_location=Coordinate.from_record(start if isinstance(start, Mapping) else None),
            last_location=Coordinate.from_record(last if isinstance(last, Mapping) else None),
        )


__all__ = [
    "ActivityState",
    "Coordinate",
    "Record",
    "Route",
    "RoutePoint",
    "Sample",
    "SampleBuffer",
    "Session",
    "SessionSummary",
    "SubmissionMetadata",
    "UNKNOWN_COORDINATE",
]
