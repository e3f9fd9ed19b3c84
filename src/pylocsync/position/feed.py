"""Feed-driven position source.

Bridges a platform provider that pushes raw readings (a location callback,
a GPS daemon, a replayed track) into the :class:`PositionSource` contract.
The profile filters are applied here, the way a fused provider applies its
request parameters.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from pylocsync.exceptions import LocationPermissionError
from pylocsync.models.fix import PositionFix
from pylocsync.models.profile import SamplingProfile
from pylocsync.position.base import FixCallback
from pylocsync.position.geo import haversine_distance

_logger = logging.getLogger(__name__)


class FeedPositionSource:
    """Position source fed with readings through :meth:`push`.

    Parameters
    ----------
    permission_granted : bool
        Platform consent state; when ``False`` subscribing and reading the
        last-known fix raise :class:`LocationPermissionError`.
    """

    def __init__(self, *, permission_granted: bool = True) -> None:
        self.permission_granted = permission_granted
        self._profile: SamplingProfile | None = None
        self._on_fix: FixCallback | None = None
        self._last_known: PositionFix | None = None
        self._last_emitted: PositionFix | None = None
        self.subscriptions = 0

    @property
    def is_subscribed(self) -> bool:
        return self._on_fix is not None

    @property
    def profile(self) -> SamplingProfile | None:
        """Profile of the live subscription, if any."""
        return self._profile

    def _check_permission(self) -> None:
        if not self.permission_granted:
            raise LocationPermissionError("Location permission is not granted")

    def subscribe(self, profile: SamplingProfile, on_fix: FixCallback) -> None:
        self._check_permission()
        if self._on_fix is not None:
            raise RuntimeError("Already subscribed; unsubscribe before applying a new profile")
        self._profile = profile
        self._on_fix = on_fix
        self._last_emitted = None
        self.subscriptions += 1
        _logger.debug(
            "Subscribed: displacement=%sm interval=%d-%dms accuracy=%s",
            profile.min_displacement_m,
            profile.min_interval_ms,
            profile.max_interval_ms,
            profile.accuracy,
        )

    def unsubscribe(self) -> None:
        if self._on_fix is None:
            return
        self._on_fix = None
        self._profile = None
        self._last_emitted = None
        _logger.debug("Unsubscribed")

    def current_fix(self) -> PositionFix | None:
        self._check_permission()
        return self._last_known

    def push(self, latitude: float, longitude: float, captured_at: datetime | None = None) -> PositionFix | None:
        """Feed a raw provider reading.

        Returns the fix when it was delivered to the subscriber, else ``None``.
        """
        fix = PositionFix(
            latitude=latitude,
            longitude=longitude,
            captured_at=captured_at or datetime.now(UTC),
        )
        if self._last_known is None or fix.captured_at >= self._last_known.captured_at:
            self._last_known = fix

        on_fix = self._on_fix
        profile = self._profile
        if on_fix is None or profile is None:
            return None
        if not self._qualifies(fix, profile):
            return None

        self._last_emitted = fix
        on_fix(fix)
        return fix

    def _qualifies(self, fix: PositionFix, profile: SamplingProfile) -> bool:
        previous = self._last_emitted
        if previous is None:
            return True
        elapsed_ms = (fix.captured_at - previous.captured_at).total_seconds() * 1000
        if elapsed_ms < 0:
            _logger.debug("Dropping out-of-order reading captured at %s", fix.captured_at)
            return False
        if elapsed_ms < profile.min_interval_ms:
            return False
        moved = haversine_distance(previous.latitude, previous.longitude, fix.latitude, fix.longitude)
        return moved >= profile.min_displacement_m
