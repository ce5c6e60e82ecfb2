"""Command line entry points.

``replay`` feeds a recorded track through walking detection and the session
recorder, then summarises every session it produced. ``progress`` reports
the distance left on a route from a given position. ``history`` lists a
user's stored sessions, rebuilding each one from its segment documents.
"""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Sequence

from .config import (
    DETECTION_CHECK_INTERVAL_SECONDS,
    SUMMARY_COLLECTION,
)
from .context import AppContext, default_store
from .errors import SafeStepsError
from .history import load_session_samples, load_summaries
from .models import (
    Coordinate,
    Route,
    Sample,
    SampleBuffer,
    SessionSummary,
    SubmissionMetadata,
)
from .producer import SimulatedLocationDriver
from .progress import RouteProgress
from .recorder import SubmissionResult
from .settings import SettingsStore
from .store import InMemoryDocumentStore, RemoteStore
from . import track_stats

_LOG = logging.getLogger(__name__)


def _setup_logging(verbose: bool = False) -> None:
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(
            level=logging.DEBUG if verbose else logging.INFO,
            format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        )


def _load_json(path: str | Path) -> Any:
    with Path(path).open("r", encoding="utf-8") as handle:
        return json.load(handle)


def load_samples(path: str | Path) -> List[Sample]:
    payload = _load_json(path)
    if isinstance(payload, dict):
        payload = payload.get("samples", [])
    samples = list(SampleBuffer.from_records(payload))
    samples.sort(key=lambda sample: sample.timestamp)
    return samples


class _ReplayClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@dataclass(slots=True)
class SessionReport:
    summary_id: str
    samples: List[Sample]

    def describe(self) -> str:
        return (
            f"session {self.summary_id}: {len(self.samples)} samples, "
            f"{track_stats.start_time_label(self.samples)}-"
            f"{track_stats.end_time_label(self.samples)}, "
            f"duration {track_stats.format_duration(self.samples)}, "
            f"{track_stats.distance_travelled_feet(self.samples, stride=1):.0f} ft"
        )


def _collect_samples(store: RemoteStore, result: SubmissionResult) -> List[Sample]:
    return list(load_session_samples(store, result.segment_ids))


def replay_track(
    samples: Sequence[Sample],
    *,
    settings: SettingsStore | None = None,
    check_interval: float = DETECTION_CHECK_INTERVAL_SECONDS,
    user_id: str = "",
) -> List[SessionReport]:
    """Run recorded samples through detection and recording on a simulated clock."""

    if not samples:
        return []
    store = InMemoryDocumentStore()
    clock = _ReplayClock(samples[0].timestamp)
    driver = SimulatedLocationDriver()
    results: List[SubmissionResult] = []
    metadata = SubmissionMetadata(user_id=user_id)
    with AppContext(
        driver=driver,
        store=store,
        settings=settings or SettingsStore(),
        clock=clock,
        idle_sampling=False,
    ) as context:
        context.producer.start()
        context.detector.reset()
        next_check = samples[0].timestamp + check_interval
        for sample in samples:
            while next_check <= sample.timestamp:
                clock.now = next_check
                was_active = context.recorder.active
                context.detector.check()
                if was_active and not context.recorder.active:
                    results.append(context.recorder.finalize_and_submit(metadata))
                next_check += check_interval
            clock.now = sample.timestamp
            driver.push(sample.coordinate)
        if context.recorder.active:
            context.recorder.stop_session()
            results.append(context.recorder.finalize_and_submit(metadata))
        context.writer.flush()
        reports = [
            SessionReport(result.summary_id, _collect_samples(store, result))
            for result in results
        ]
    _LOG.info(
        "Replay produced %d sessions (%d summary records)",
        len(reports),
        len(store.document_ids(SUMMARY_COLLECTION)),
    )
    return reports


def report_progress(route: Route, position: Coordinate) -> str:
    progress = RouteProgress(route)
    remaining = progress.remaining_feet(position)
    status = "arrived" if progress.has_arrived(position) else "en route"
    return (
        f"{route.name or route.id}: {remaining} ft remaining "
        f"(segment {progress.nearest_segment_index(position)}, {status})"
    )


def describe_history(store: RemoteStore, user_id: str) -> List[str]:
    """One line per stored session of ``user_id``, oldest first."""

    lines: List[str] = []
    for summary in load_summaries(store, user_id):
        samples = list(load_session_samples(store, summary.segment_ids))
        lines.append(_describe_summary(summary, samples))
    return lines


def _describe_summary(summary: SessionSummary, samples: List[Sample]) -> str:
    hazards = ", ".join(summary.hazard_tags) or "no hazards"
    return (
        f"{track_stats.format_clock(summary.start_time)}: "
        f"{len(summary.segment_ids)} segments, {len(samples)} samples, "
        f"duration {track_stats.format_duration(samples)}, {hazards}"
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="SafeSteps walk tracking tools")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    replay = sub.add_parser("replay", help="Replay a recorded track through detection")
    replay.add_argument("track", help="JSON file of sample records")
    replay.add_argument(
        "--dwell",
        type=int,
        default=None,
        help="Dwell threshold in seconds (defaults to the stored setting)",
    )
    replay.add_argument("--user-id", default="", help="User id written to summaries")

    progress = sub.add_parser("progress", help="Distance remaining on a route")
    progress.add_argument("route", help="JSON route record")
    progress.add_argument("--lat", type=float, required=True)
    progress.add_argument("--lon", type=float, required=True)

    history = sub.add_parser("history", help="List a user's recorded sessions")
    history.add_argument("user_id", help="User id the summaries were written with")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    _setup_logging(args.verbose)

    if args.command == "replay":
        try:
            samples = load_samples(args.track)
        except (OSError, ValueError) as exc:
            _LOG.error("Failed to load track '%s': %s", args.track, exc)
            raise SystemExit(1) from exc
        settings = SettingsStore()
        if args.dwell is not None:
            settings.dwell_threshold_seconds = args.dwell
        for report in replay_track(samples, settings=settings, user_id=args.user_id):
            _LOG.info("%s", report.describe())
        return

    if args.command == "history":
        store = default_store()
        lines = describe_history(store, args.user_id)
        if not lines:
            _LOG.info("No recorded sessions for user %s", args.user_id)
        for line in lines:
            _LOG.info("%s", line)
        return

    try:
        route = Route.from_record(_load_json(args.route))
    except (OSError, ValueError, SafeStepsError) as exc:
        _LOG.error("Failed to load route '%s': %s", args.route, exc)
        raise SystemExit(1) from exc
    _LOG.info("%s", report_progress(route, Coordinate(args.lat, args.lon)))


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    main()
