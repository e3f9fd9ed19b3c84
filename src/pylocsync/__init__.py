"""pylocsync - Async adaptive location-reporting engine."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pylocsync")
except PackageNotFoundError:
    __version__ = "0+local"
from pylocsync.config import LocSyncConfig
from pylocsync.controller import AdaptationController
from pylocsync.engine import EngineState, LocationEngine
from pylocsync.exceptions import (
    EngineClosedError,
    InvalidSessionError,
    LocationPermissionError,
    LocationUnavailableError,
    LocSyncConfigError,
    LocSyncError,
    LocSyncTransportError,
)
from pylocsync.lifetime import LifetimeRegistrar, NullLifetimeRegistrar
from pylocsync.models import (
    Accuracy,
    AuthRejected,
    Delivered,
    FailureKind,
    PositionFix,
    SamplingProfile,
    SyncOutcome,
    TransportFailure,
)
from pylocsync.notifier import EngineListener, EventNotifier
from pylocsync.position import FeedPositionSource, PositionSource
from pylocsync.session import SessionContext, SessionState

__all__ = [
    "__version__",
    "Accuracy",
    "AdaptationController",
    "AuthRejected",
    "Delivered",
    "EngineClosedError",
    "EngineListener",
    "EngineState",
    "EventNotifier",
    "FailureKind",
    "FeedPositionSource",
    "InvalidSessionError",
    "LifetimeRegistrar",
    "LocSyncConfig",
    "LocSyncConfigError",
    "LocSyncError",
    "LocSyncTransportError",
    "LocationEngine",
    "LocationPermissionError",
    "LocationUnavailableError",
    "NullLifetimeRegistrar",
    "PositionFix",
    "PositionSource",
    "SamplingProfile",
    "SessionContext",
    "SessionState",
    "SyncOutcome",
    "TransportFailure",
]
