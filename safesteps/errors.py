"""Central error types used across the application."""

from __future__ import annotations


class SafeStepsError(RuntimeError):
    """Base error for walk tracking failures."""


class PermissionUnavailableError(SafeStepsError):
    """Raised when location access is denied or restricted."""


class TransientWriteError(SafeStepsError):
    """Raised when the remote store rejects a write or times out."""


class StoreReadError(SafeStepsError):
    """Raised when the remote store cannot be queried or returns garbage."""


class MalformedRecordError(SafeStepsError):
    """Raised when a store record cannot be turned into a model at all."""


__all__ = [
    "SafeStepsError",
    "PermissionUnavailableError",
    "TransientWriteError",
    "StoreReadError",
    "MalformedRecordError",
]
