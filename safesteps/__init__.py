"""SafeSteps walk tracking package."""

from .context import AppContext
from .errors import (
    MalformedRecordError,
    PermissionUnavailableError,
    SafeStepsError,
    StoreReadError,
    TransientWriteError,
)
from .main import main
from .models import (
    Coordinate,
    Route,
    RoutePoint,
    Sample,
    SessionSummary,
    SubmissionMetadata,
)

__all__ = [
    "main",
    "AppContext",
    "Coordinate",
    "Route",
    "RoutePoint",
    "Sample",
    "SessionSummary",
    "SubmissionMetadata",
    "SafeStepsError",
    "PermissionUnavailableError",
    "StoreReadError",
    "TransientWriteError",
    "MalformedRecordError",
]
