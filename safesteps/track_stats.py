"""Summary helpers for a recorded sequence of samples."""

from __future__ import annotations

from datetime import datetime
from typing import Sequence

from .config import METERS_PER_FOOT, TRACK_SUMMARY_STRIDE
from .geometry import encode_path, path_length_m
from .models import Coordinate, Sample, UNKNOWN_COORDINATE

_PLACEHOLDER = "Loading"


def _strided(samples: Sequence[Sample], stride: int) -> list[Coordinate]:
    step = max(1, stride)
    return [samples[index].coordinate for index in range(0, len(samples), step)]


def distance_travelled_feet(
    samples: Sequence[Sample], stride: int = TRACK_SUMMARY_STRIDE
) -> float:
    """Great-circle distance covered, measured between every ``stride``-th sample."""

    return path_length_m(_strided(samples, stride)) / METERS_PER_FOOT


def encoded_track(samples: Sequence[Sample], stride: int = TRACK_SUMMARY_STRIDE) -> str:
    return encode_path(_strided(samples, stride))


def final_location(samples: Sequence[Sample]) -> Coordinate:
    if not samples:
        return UNKNOWN_COORDINATE
    return samples[-1].coordinate


def format_clock(timestamp: float) -> str:
    """Local wall-clock time as ``hh:mm AM``."""

    return datetime.fromtimestamp(timestamp).strftime("%I:%M %p")


def start_time_label(samples: Sequence[Sample]) -> str:
    if not samples:
        return _PLACEHOLDER
    return format_clock(samples[0].timestamp)


def end_time_label(samples: Sequence[Sample]) -> str:
    if not samples:
        return _PLACEHOLDER
    return format_clock(samples[-1].timestamp)


def format_duration(samples: Sequence[Sample]) -> str:
    """Elapsed time between first and last sample as ``H:MM:SS``."""

    if not samples:
        return _PLACEHOLDER
    duration = int(samples[-1].timestamp - samples[0].timestamp)
    hours, remainder = divmod(duration, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours}:{minutes:02d}:{seconds:02d}"


__all__ = [
    "distance_travelled_feet",
    "encoded_track",
    "end_time_label",
    "final_location",
    "format_clock",
    "format_duration",
    "start_time_label",
]
