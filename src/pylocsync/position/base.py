"""Position source capability implemented by platform adapters."""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

from pylocsync.models.fix import PositionFix
from pylocsync.models.profile import SamplingProfile

FixCallback = Callable[[PositionFix], None]
"""Receives each qualifying fix, on the engine's event loop."""


class PositionSource(Protocol):
    """Abstracts the platform location provider.

    Implementations apply the profile only at subscription time; a new
    profile requires ``unsubscribe()`` followed by ``subscribe()``.
    """

    def subscribe(self, profile: SamplingProfile, on_fix: FixCallback) -> None:
        """Start delivering fixes that satisfy *profile* to *on_fix*.

        Raises
        ------
        LocationPermissionError
            If the platform denies location access.
        """
        ...

    def unsubscribe(self) -> None:
        """Stop delivering fixes. Safe to call when not subscribed."""
        ...

    def current_fix(self) -> PositionFix | None:
        """Best-effort last-known fix; never blocks.

        Raises
        ------
        LocationPermissionError
            If the platform denies location access.
        """
        ...
