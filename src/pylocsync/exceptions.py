"""Custom exception hierarchy for pylocsync."""

from __future__ import annotations


class LocSyncError(Exception):
    """Base exception for all pylocsync errors."""


class LocSyncConfigError(LocSyncError):
    """Invalid or missing configuration."""


class LocSyncTransportError(LocSyncError):
    """HTTP-level failure (network unreachable, timeout, broken connection)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class InvalidSessionError(LocSyncError):
    """Auth token or session identifier missing or blank.

    This is a precondition failure: the engine never retries it, the
    caller has to supply fresh credentials.
    """


class LocationPermissionError(LocSyncError):
    """The platform denied access to the location provider.

    Requires user action (granting permission); never retried automatically.
    """


class LocationUnavailableError(LocSyncError):
    """No last-known position is available for a one-shot sample."""


class EngineClosedError(LocSyncError):
    """Engine used outside of its ``async with`` block."""
