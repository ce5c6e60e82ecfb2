"""Typed key-value settings used by walking detection and route listing."""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict

from .config import (
    DEFAULT_DETECTION_ENABLED,
    DEFAULT_DWELL_THRESHOLD_SECONDS,
    DEFAULT_NOTIFICATIONS_ALL_DAY,
    DEFAULT_SHOW_ALL_ROUTES,
    SETTINGS_FILE,
)

_LOG = logging.getLogger(__name__)

DETECTION_ENABLED = "receiveWalkingDetectionNotifications"
DWELL_THRESHOLD_SECONDS = "walkingDetectionSensitivity"
NOTIFICATIONS_ALL_DAY = "receiveWalkingDetectionNotificationsAllDay"
SHOW_ALL_ROUTES = "showAllRoutes"


class SettingsStore:
    """In-memory settings with typed accessors."""

    def __init__(self, values: Dict[str, Any] | None = None) -> None:
        self._lock = threading.RLock()
        self._values: Dict[str, Any] = dict(values or {})

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._values[key] = value
            self._persist()

    def _persist(self) -> None:
        """Hook for durable subclasses; the in-memory store keeps nothing."""

    def get_bool(self, key: str, default: bool) -> bool:
        value = self.get(key)
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized in {"1", "true", "yes", "on"}:
                return True
            if normalized in {"0", "false", "no", "off"}:
                return False
        if isinstance(value, (int, float)):
            return bool(value)
        return default

    def get_int(self, key: str, default: int) -> int:
        value = self.get(key)
        if value is None or isinstance(value, bool):
            return default
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    @property
    def detection_enabled(self) -> bool:
        return self.get_bool(DETECTION_ENABLED, DEFAULT_DETECTION_ENABLED)

    @detection_enabled.setter
    def detection_enabled(self, value: bool) -> None:
        self.set(DETECTION_ENABLED, bool(value))

    @property
    def dwell_threshold_seconds(self) -> int:
        # An unset or non-positive value would make detection fire on every check.
        value = self.get_int(DWELL_THRESHOLD_SECONDS, DEFAULT_DWELL_THRESHOLD_SECONDS)
        return value if value > 0 else DEFAULT_DWELL_THRESHOLD_SECONDS

    @dwell_threshold_seconds.setter
    def dwell_threshold_seconds(self, value: int) -> None:
        self.set(DWELL_THRESHOLD_SECONDS, int(value))

    @property
    def notifications_all_day(self) -> bool:
        return self.get_bool(NOTIFICATIONS_ALL_DAY, DEFAULT_NOTIFICATIONS_ALL_DAY)

    @notifications_all_day.setter
    def notifications_all_day(self, value: bool) -> None:
        self.set(NOTIFICATIONS_ALL_DAY, bool(value))

    @property
    def show_all_routes(self) -> bool:
        return self.get_bool(SHOW_ALL_ROUTES, DEFAULT_SHOW_ALL_ROUTES)

    @show_all_routes.setter
    def show_all_routes(self, value: bool) -> None:
        self.set(SHOW_ALL_ROUTES, bool(value))


class JsonFileSettingsStore(SettingsStore):
    """Settings persisted to a JSON file after every write."""

    def __init__(self, path: str | Path = SETTINGS_FILE) -> None:
        self._path = Path(path)
        super().__init__(self._load(self._path))

    @staticmethod
    def _load(path: Path) -> Dict[str, Any]:
        try:
            with path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as exc:
            _LOG.warning("Ignoring unreadable settings file %s: %s", path, exc)
            return {}
        if not isinstance(data, dict):
            _LOG.warning("Ignoring settings file %s: expected a JSON object", path)
            return {}
        return data

    def _persist(self) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
            with tmp_path.open("w", encoding="utf-8") as handle:
                json.dump(self._values, handle, indent=2, sort_keys=True)
            tmp_path.replace(self._path)
        except OSError as exc:
            _LOG.error("Failed writing settings file %s: %s", self._path, exc)


__all__ = [
    "DETECTION_ENABLED",
    "DWELL_THRESHOLD_SECONDS",
    "JsonFileSettingsStore",
    "NOTIFICATIONS_ALL_DAY",
    "SHOW_ALL_ROUTES",
    "SettingsStore",
]
