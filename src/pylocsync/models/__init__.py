"""Data models for pylocsync."""

from pylocsync.models.events import (
    EngineEvent,
    LocationUpdated,
    PermissionDenied,
    ProximityReached,
    ReauthenticationRequired,
)
from pylocsync.models.fix import PositionFix
from pylocsync.models.outcome import AuthRejected, Delivered, FailureKind, SyncOutcome, TransportFailure
from pylocsync.models.profile import Accuracy, SamplingProfile, round_displacement
from pylocsync.models.response import SaveLocationResponse, SaveLocationResult

__all__ = [
    "Accuracy",
    "AuthRejected",
    "Delivered",
    "EngineEvent",
    "FailureKind",
    "LocationUpdated",
    "PermissionDenied",
    "PositionFix",
    "ProximityReached",
    "ReauthenticationRequired",
    "SamplingProfile",
    "SaveLocationResponse",
    "SaveLocationResult",
    "SyncOutcome",
    "TransportFailure",
    "round_displacement",
]
