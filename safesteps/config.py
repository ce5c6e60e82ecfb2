"""Central configuration for the SafeSteps walk tracker.

All values are constants imported by the rest of the package. Adjust as needed
for your environment. Deployment-specific values are read from environment
variables (optionally via a local `.env`).
"""

from __future__ import annotations

import importlib
import os


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


# Load .env variables when python-dotenv is available.
_load_dotenv = None
try:
    _dotenv_mod = importlib.import_module("dotenv")
    _load_dotenv = getattr(_dotenv_mod, "load_dotenv", None)
except Exception:
    _load_dotenv = None

if callable(_load_dotenv):
    # Load .env from the current directory or any parent folder.
    _load_dotenv()


# ---------------------------------------------------------------------------
# Remote store
# ---------------------------------------------------------------------------
# Version tag written into every record so GPS-only data can be told apart.
APP_VERSION = os.getenv("SAFESTEPS_APP_VERSION", "gps_v2")

# Collection names.
SEGMENT_COLLECTION = os.getenv("SAFESTEPS_SEGMENT_COLLECTION", "realtime_data_gps")
SUMMARY_COLLECTION = os.getenv("SAFESTEPS_SUMMARY_COLLECTION", "records_gps")
ROUTE_COLLECTION = os.getenv("SAFESTEPS_ROUTE_COLLECTION", "routes")

# Base URL of the HTTP document store. Empty means "use the in-memory store".
STORE_BASE_URL = os.getenv("SAFESTEPS_STORE_BASE_URL", "")

# Optional bearer token sent with every store request.
STORE_API_TOKEN = os.getenv("SAFESTEPS_STORE_API_TOKEN", "")

# HTTP session pool sizes and request timeout (seconds).
HTTP_POOL_CONNECTIONS = 4
HTTP_POOL_MAXSIZE = 4
REQUEST_TIMEOUT = _env_int("SAFESTEPS_REQUEST_TIMEOUT", 15)

# Threads used to dispatch store writes off the sampling path.
WRITER_MAX_WORKERS = _env_int("SAFESTEPS_WRITER_MAX_WORKERS", 2)

# Failed writes kept for inspection; older entries roll off.
WRITER_FAILURE_HISTORY = _env_int("SAFESTEPS_WRITER_FAILURE_HISTORY", 100)


# ---------------------------------------------------------------------------
# Sampling & recording
# ---------------------------------------------------------------------------
# Seconds between idle re-emissions of the last known location.
SAMPLING_INTERVAL_SECONDS = _env_float("SAFESTEPS_SAMPLING_INTERVAL_SECONDS", 1.0)

# A segment is flushed once the live buffer holds more than this many samples.
SEGMENT_SAMPLE_THRESHOLD = _env_int("SAFESTEPS_SEGMENT_SAMPLE_THRESHOLD", 3000)

# Source tag attached to every emitted sample.
DEFAULT_SOURCE_KIND = "gps"


# ---------------------------------------------------------------------------
# Walking detection
# ---------------------------------------------------------------------------
# Seconds between movement checks.
DETECTION_CHECK_INTERVAL_SECONDS = _env_float(
    "SAFESTEPS_DETECTION_CHECK_INTERVAL_SECONDS", 10.0
)

# Distance (metres) between consecutive checks above which the user is moving.
MOVEMENT_THRESHOLD_M = _env_float("SAFESTEPS_MOVEMENT_THRESHOLD_M", 10.0)

# Seconds of continuous motion/rest needed to flip the recording state.
DEFAULT_DWELL_THRESHOLD_SECONDS = 45

# Local-time window [start, end) during which detection notifications fire
# unless the all-day override is set.
NOTIFICATION_WINDOW_START_HOUR = 8
NOTIFICATION_WINDOW_END_HOUR = 18

# Rate limit for the "location disabled" notification.
CANNOT_START_RATE_LIMIT_SECONDS = 300
CANNOT_START_RATE_LIMIT_KEY = "cannotStartSessionLocationDisabled"

# Upper bound on distinct rate-limit keys remembered by the notification sink.
NOTIFICATION_RATE_LIMIT_MAX_KEYS = 256


# ---------------------------------------------------------------------------
# Route progress
# ---------------------------------------------------------------------------
# Distance (metres) from the final waypoint treated as zero remaining.
ARRIVAL_EPSILON_M = _env_float("SAFESTEPS_ARRIVAL_EPSILON_M", 1.0)

# Remaining distance (feet) at or below which a trip counts as arrived.
ARRIVED_THRESHOLD_FEET = 25

METERS_PER_FOOT = 0.3048

# Number of samples skipped between points when summarising a recorded track.
# The recorder historically sampled at 100 Hz and kept one point every 10 s.
TRACK_SUMMARY_STRIDE = _env_int("SAFESTEPS_TRACK_SUMMARY_STRIDE", 1000)


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------
# JSON file used by the file-backed settings store.
SETTINGS_FILE = os.getenv("SAFESTEPS_SETTINGS_FILE", "safesteps_settings.json")

# Defaults applied when a setting has never been written.
DEFAULT_DETECTION_ENABLED = _env_bool("SAFESTEPS_DETECTION_ENABLED", True)
DEFAULT_NOTIFICATIONS_ALL_DAY = _env_bool("SAFESTEPS_NOTIFICATIONS_ALL_DAY", False)
DEFAULT_SHOW_ALL_ROUTES = _env_bool("SAFESTEPS_SHOW_ALL_ROUTES", False)
