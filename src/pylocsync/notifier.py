"""Event notifier: decoupled delivery of engine signals to the host application.

``notify()`` only enqueues. A dispatcher task calls the listener, retrying a
failing delivery a bounded number of times (at-least-once). Listeners must
therefore tolerate receiving the same signal more than once.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from typing import Any

from pylocsync.models.events import (
    EngineEvent,
    LocationUpdated,
    PermissionDenied,
    ProximityReached,
    ReauthenticationRequired,
)

_logger = logging.getLogger(__name__)


class EngineListener:
    """Callbacks for the host application.

    Override the methods you care about; the defaults do nothing. Methods
    may be plain functions or coroutines.
    """

    def on_proximity_reached(self, reached: bool) -> Any:
        return None

    def on_reauthentication_required(self) -> Any:
        return None

    def on_location_updated(self, latitude: float, longitude: float) -> Any:
        return None

    def on_permission_denied(self) -> Any:
        return None


def _dispatch(listener: EngineListener, event: EngineEvent) -> Any:
    if isinstance(event, ProximityReached):
        return listener.on_proximity_reached(event.reached)
    if isinstance(event, ReauthenticationRequired):
        return listener.on_reauthentication_required()
    if isinstance(event, LocationUpdated):
        return listener.on_location_updated(event.fix.latitude, event.fix.longitude)
    if isinstance(event, PermissionDenied):
        return listener.on_permission_denied()
    raise TypeError(f"Unsupported event: {event!r}")


class EventNotifier:
    """Queue-backed, fire-and-forget event delivery."""

    def __init__(
        self,
        listener: EngineListener | None = None,
        *,
        max_attempts: int = 3,
        retry_delay: float = 0.5,
    ) -> None:
        self._listener = listener or EngineListener()
        self._max_attempts = max(1, max_attempts)
        self._retry_delay = retry_delay
        self._queue: asyncio.Queue[EngineEvent] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the dispatcher on the running loop (no-op if already started)."""
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="pylocsync-notifier")

    def notify(self, event: EngineEvent) -> None:
        """Enqueue *event*; never blocks and never raises into the caller.

        Events raised while the dispatcher is not running are dropped.
        """
        if not self.is_running:
            _logger.warning("Dropping %s: notifier is not running", event.event)
            return
        self._queue.put_nowait(event)
        _logger.debug("Queued event %s", event.event)

    async def drain(self) -> None:
        """Wait until every queued event has been handled."""
        if self.is_running:
            await self._queue.join()

    async def aclose(self) -> None:
        """Deliver what is queued, then stop the dispatcher."""
        task = self._task
        if task is None:
            return
        if not task.done():
            await self._queue.join()
        self._task = None
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _run(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self._deliver(event)
            finally:
                self._queue.task_done()

    async def _deliver(self, event: EngineEvent) -> None:
        for attempt in range(1, self._max_attempts + 1):
            try:
                result = _dispatch(self._listener, event)
                if inspect.isawaitable(result):
                    await result
                return
            except asyncio.CancelledError:
                raise
            except Exception:
                _logger.debug(
                    "Listener failed for %s (attempt %d/%d)",
                    event.event,
                    attempt,
                    self._max_attempts,
                    exc_info=True,
                )
            if attempt < self._max_attempts and self._retry_delay > 0:
                await asyncio.sleep(self._retry_delay)
        _logger.warning("Giving up delivering %s after %d attempts", event.event, self._max_attempts)
