"""Adaptation controller: applies server feedback to the sampling profile.

Changing the displacement threshold costs a full resubscription of the
position source, so a hint only triggers one when it differs from the
current threshold at the server's reporting precision.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from pylocsync.models.events import ProximityReached, ReauthenticationRequired
from pylocsync.models.outcome import AuthRejected, Delivered, SyncOutcome, TransportFailure
from pylocsync.models.profile import SamplingProfile, round_displacement
from pylocsync.notifier import EventNotifier
from pylocsync.session import SessionState

_logger = logging.getLogger(__name__)

ResubscribeHook = Callable[[SamplingProfile], Awaitable[None]]
StopHook = Callable[[], Awaitable[None]]


class AdaptationController:
    """Owner of the :class:`SamplingProfile` and consumer of send outcomes.

    Parameters
    ----------
    profile : SamplingProfile
        Initial profile.
    session_state : SessionState
        Cleared when the server rejects the token.
    notifier : EventNotifier
        Receives proximity and re-authentication signals.
    resubscribe : callable
        Coroutine applying a new profile to the position source.
    stop_sampling : callable
        Coroutine that halts the engine after an auth rejection.
    """

    def __init__(
        self,
        profile: SamplingProfile,
        *,
        session_state: SessionState,
        notifier: EventNotifier,
        resubscribe: ResubscribeHook,
        stop_sampling: StopHook,
    ) -> None:
        self._profile = profile
        self._session_state = session_state
        self._notifier = notifier
        self._resubscribe = resubscribe
        self._stop_sampling = stop_sampling
        self._issued_seq = 0
        self._applied_seq = 0

    @property
    def profile(self) -> SamplingProfile:
        """Snapshot of the current profile."""
        return self._profile

    def reset(self, profile: SamplingProfile) -> None:
        """Install *profile* without resubscribing (used at engine start)."""
        self._profile = profile

    def issue(self) -> int:
        """Reserve the sequence number of a send about to be issued."""
        self._issued_seq += 1
        return self._issued_seq

    def is_stale(self, seq: int) -> bool:
        return seq <= self._applied_seq

    async def apply(self, seq: int, outcome: SyncOutcome) -> bool:
        """Apply the outcome of send *seq*.

        Returns ``False`` when the outcome was discarded because a later send
        was already applied.
        """
        if self.is_stale(seq):
            _logger.debug("Discarding stale outcome seq=%d (applied=%d)", seq, self._applied_seq)
            return False
        self._applied_seq = seq

        if isinstance(outcome, Delivered):
            await self._apply_delivered(outcome)
        elif isinstance(outcome, AuthRejected):
            await self._apply_auth_rejected(outcome)
        elif isinstance(outcome, TransportFailure):
            # Next natural fix is the retry.
            _logger.debug("Send seq=%d failed (%s): %s", seq, outcome.kind, outcome.reason)
        return True

    async def _apply_delivered(self, outcome: Delivered) -> None:
        if outcome.proximity_reached:
            self._notifier.notify(ProximityReached(reached=True))

        hint = outcome.suggested_displacement
        if hint is None:
            return
        new_displacement = round_displacement(hint)
        # A hint that rounds to zero would disable filtering; not a reset.
        if new_displacement <= 0 or self._profile.same_displacement(new_displacement):
            return

        _logger.info(
            "Displacement threshold %sm -> %sm",
            self._profile.min_displacement_m,
            new_displacement,
        )
        self._profile = self._profile.with_displacement(new_displacement)
        await self._resubscribe(self._profile)

    async def _apply_auth_rejected(self, outcome: AuthRejected) -> None:
        _logger.warning("Authentication rejected (status=%s); stopping sampling", outcome.status_code)
        self._session_state.clear()
        await self._stop_sampling()
        self._notifier.notify(ReauthenticationRequired())
