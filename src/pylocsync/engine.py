"""Location engine: lifecycle and wiring of the reporting components."""

from __future__ import annotations

import asyncio
import logging
from enum import StrEnum
from typing import Any

import aiohttp

from pylocsync._api import location as _location_api
from pylocsync._transport import HttpTransport, Transport
from pylocsync.config import LocSyncConfig
from pylocsync.controller import AdaptationController
from pylocsync.exceptions import (
    EngineClosedError,
    InvalidSessionError,
    LocationPermissionError,
    LocationUnavailableError,
)
from pylocsync.lifetime import LifetimeRegistrar, NullLifetimeRegistrar
from pylocsync.models.events import LocationUpdated, PermissionDenied
from pylocsync.models.fix import PositionFix
from pylocsync.models.outcome import SyncOutcome
from pylocsync.models.profile import SamplingProfile
from pylocsync.notifier import EngineListener, EventNotifier
from pylocsync.position.base import PositionSource
from pylocsync.session import SessionContext, SessionState

_logger = logging.getLogger(__name__)


class EngineState(StrEnum):
    STOPPED = "stopped"
    RUNNING = "running"


class LocationEngine:
    """Adaptive location-reporting engine.

    Usage::

        async with LocationEngine(config, source, listener=listener) as engine:
            await engine.start(token, room_id)
            ...
            await engine.stop()

    Fixes from the position source land in a one-slot mailbox (a newer fix
    supersedes one that has not been sent yet) drained by a single worker
    task. Every send, including :meth:`sample_now` and background refreshes,
    runs under one lock, so at most one request is outstanding and outcomes
    are applied in the order sends were issued.
    """

    def __init__(
        self,
        config: LocSyncConfig,
        source: PositionSource,
        *,
        listener: EngineListener | None = None,
        lifetime: LifetimeRegistrar | None = None,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
    ) -> None:
        self._config = config
        self._source = source
        self._lifetime: LifetimeRegistrar = lifetime or NullLifetimeRegistrar()
        self._external_session = session is not None
        self._http_session = session
        self._external_transport = transport is not None
        self._transport = transport
        self._session_state = SessionState()
        self._notifier = EventNotifier(
            listener,
            max_attempts=config.notify_max_attempts,
            retry_delay=config.notify_retry_delay,
        )
        self._controller = AdaptationController(
            config.default_profile(),
            session_state=self._session_state,
            notifier=self._notifier,
            resubscribe=self._resubscribe,
            stop_sampling=self._halt,
        )
        self._state = EngineState.STOPPED
        self._epoch = 0
        self._send_lock = asyncio.Lock()
        self._pending: PositionFix | None = None
        self._wakeup = asyncio.Event()
        self._worker: asyncio.Task[None] | None = None
        self._refresher: asyncio.Task[None] | None = None
        self._entered = False

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> LocationEngine:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = HttpTransport(self._config, self._http_session)
        self._notifier.start()
        self._entered = True
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()
        await self._notifier.aclose()
        self._entered = False
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        if not self._external_transport:
            self._transport = None

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is EngineState.RUNNING

    @property
    def profile(self) -> SamplingProfile:
        return self._controller.profile

    @property
    def session(self) -> SessionContext | None:
        return self._session_state.snapshot()

    # ------------------------------------------------------------------
    # Control surface
    # ------------------------------------------------------------------

    async def start(self, token: str | None, session_id: str | None) -> None:
        """Start sampling and reporting for the given session.

        Raises
        ------
        InvalidSessionError
            If the token or session identifier is missing.
        LocationPermissionError
            If the position source refuses the subscription.
        """
        self._require_transport()
        try:
            context = SessionContext.build(token, session_id)
        except InvalidSessionError as exc:
            _logger.error("Refusing to start: %s", exc)
            raise

        if self._state is EngineState.RUNNING:
            _logger.debug("Engine already running; replacing session")
            self._session_state.set(context)
            return

        self._controller.reset(self._config.default_profile())
        self._session_state.set(context)
        self._epoch += 1
        self._pending = None
        self._wakeup.clear()
        try:
            self._source.subscribe(self._controller.profile, self._on_fix)
        except LocationPermissionError:
            _logger.error("Location permission is missing; engine stays stopped")
            self._session_state.clear()
            self._notifier.notify(PermissionDenied())
            raise

        self._state = EngineState.RUNNING
        self._lifetime.register()
        epoch = self._epoch
        loop = asyncio.get_running_loop()
        self._worker = loop.create_task(self._run_worker(epoch), name="pylocsync-worker")
        interval = self._config.background_refresh_interval
        if interval > 0:
            self._refresher = loop.create_task(self._run_refresh(epoch, interval), name="pylocsync-refresh")
        _logger.info("Location engine started for room %s", context.session_id)

    async def stop(self) -> None:
        """Stop sampling and forget the session. No-op when already stopped."""
        if self._state is EngineState.STOPPED:
            return
        await self._halt()
        self._session_state.clear()
        _logger.info("Location updates stopped")

    def set_session(self, token: str | None, session_id: str | None) -> None:
        """Replace the session without touching the subscription."""
        context = SessionContext.build(token, session_id)
        self._session_state.set(context)

    async def sample_now(self) -> PositionFix:
        """Send the last-known fix immediately, bypassing the cadence.

        Works whether or not the engine is running and never changes its
        state.

        Raises
        ------
        LocationPermissionError
            If the platform denies location access.
        LocationUnavailableError
            If no position is known yet.
        InvalidSessionError
            If no session has been supplied.
        """
        self._require_transport()
        fix = self._source.current_fix()
        if fix is None:
            raise LocationUnavailableError("Location not available")
        if not self._session_state.is_set:
            raise InvalidSessionError("No session; call start() or set_session() first")
        await self._send_and_apply(fix, self._epoch)
        return fix

    def last_known_fix(self) -> PositionFix | None:
        """Last position seen by the source, without sending it.

        Raises
        ------
        LocationPermissionError
            If the platform denies location access.
        """
        return self._source.current_fix()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_transport(self) -> Transport:
        if not self._entered or self._transport is None:
            raise EngineClosedError("Engine not initialized. Use 'async with LocationEngine(...) as engine:'")
        return self._transport

    def _on_fix(self, fix: PositionFix) -> None:
        """Position source callback; must return without blocking."""
        if self._state is not EngineState.RUNNING:
            return
        if self._pending is not None:
            _logger.debug("Fix captured at %s superseded before send", self._pending.captured_at)
        self._pending = fix
        self._wakeup.set()

    async def _run_worker(self, epoch: int) -> None:
        while epoch == self._epoch:
            await self._wakeup.wait()
            self._wakeup.clear()
            fix = self._pending
            self._pending = None
            if fix is None:
                continue
            self._notifier.notify(LocationUpdated(fix=fix))
            await self._send_guarded(fix, epoch)

    async def _run_refresh(self, epoch: int, interval: float) -> None:
        while epoch == self._epoch:
            await asyncio.sleep(interval)
            try:
                fix = self._source.current_fix()
            except LocationPermissionError:
                _logger.warning("Background refresh skipped: location permission is missing")
                continue
            if fix is None:
                continue
            await self._send_guarded(fix, epoch)

    async def _send_guarded(self, fix: PositionFix, epoch: int) -> None:
        """Send from a background task; the task must outlive any single send."""
        try:
            await self._send_and_apply(fix, epoch)
        except asyncio.CancelledError:
            raise
        except Exception:
            _logger.exception("Unexpected error sending fix captured at %s", fix.captured_at)

    async def _send_and_apply(self, fix: PositionFix, epoch: int) -> SyncOutcome | None:
        async with self._send_lock:
            if epoch != self._epoch:
                return None
            session = self._session_state.snapshot()
            if session is None:
                _logger.debug("No session; dropping fix captured at %s", fix.captured_at)
                return None
            transport = self._require_transport()
            seq = self._controller.issue()
            outcome = await _location_api.send_location(self._config, transport, fix, session)
            if epoch != self._epoch:
                _logger.debug("Discarding outcome of send seq=%d issued before stop", seq)
                return outcome
            await self._controller.apply(seq, outcome)
            return outcome

    async def _resubscribe(self, profile: SamplingProfile) -> None:
        """Swap the subscription for one using *profile*; stays RUNNING."""
        if self._state is not EngineState.RUNNING:
            _logger.debug("Profile updated while stopped; applied at next start")
            return
        _logger.debug("Restarting location updates with displacement %sm", profile.min_displacement_m)
        self._source.unsubscribe()
        try:
            self._source.subscribe(profile, self._on_fix)
        except LocationPermissionError:
            _logger.error("Location permission lost while resubscribing; stopping")
            await self._halt()
            self._session_state.clear()
            self._notifier.notify(PermissionDenied())

    async def _halt(self) -> None:
        """Leave RUNNING: unsubscribe, invalidate in-flight work, cancel tasks."""
        if self._state is EngineState.STOPPED:
            return
        self._state = EngineState.STOPPED
        self._epoch += 1
        self._pending = None
        self._source.unsubscribe()
        self._lifetime.unregister()

        tasks = [task for task in (self._worker, self._refresher) if task is not None]
        self._worker = None
        self._refresher = None
        current = asyncio.current_task()
        for task in tasks:
            if task is current:
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception:
                _logger.debug("Background task %s ended with an error", task.get_name(), exc_info=True)
