from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from pylocsync._transport import HttpResponse
from pylocsync.config import LocSyncConfig
from pylocsync.engine import EngineState, LocationEngine
from pylocsync.exceptions import (
    EngineClosedError,
    InvalidSessionError,
    LocationPermissionError,
    LocationUnavailableError,
    LocSyncTransportError,
)
from pylocsync.lifetime import NullLifetimeRegistrar
from pylocsync.notifier import EngineListener
from pylocsync.position import FeedPositionSource

_EMPTY = HttpResponse(status=200, text='{"data":{}}')


class _FakeTransport:
    def __init__(self, *responses: HttpResponse | Exception) -> None:
        self._responses = list(responses)
        self.calls: list[dict[str, Any]] = []
        self.gate: asyncio.Event | None = None

    async def post_json(
        self,
        endpoint: str,
        payload: Mapping[str, Any],
        *,
        headers: Mapping[str, str],
    ) -> HttpResponse:
        self.calls.append({"endpoint": endpoint, "payload": dict(payload), "headers": dict(headers)})
        if self.gate is not None:
            await self.gate.wait()
        response = self._responses.pop(0) if self._responses else _EMPTY
        if isinstance(response, Exception):
            raise response
        return response


class _Listener(EngineListener):
    def __init__(self) -> None:
        self.proximity: list[bool] = []
        self.reauth = 0
        self.locations: list[tuple[float, float]] = []
        self.permission_denied = 0

    def on_proximity_reached(self, reached: bool) -> None:
        self.proximity.append(reached)

    def on_reauthentication_required(self) -> None:
        self.reauth += 1

    def on_location_updated(self, latitude: float, longitude: float) -> None:
        self.locations.append((latitude, longitude))

    def on_permission_denied(self) -> None:
        self.permission_denied += 1


class _Route:
    """Successive readings 10 s and ~111 m apart."""

    def __init__(self, source: FeedPositionSource) -> None:
        self._source = source
        self._t = datetime(2026, 1, 1, tzinfo=UTC)
        self._lat = 47.9

    def step(self) -> None:
        self._source.push(round(self._lat, 6), 106.9, self._t)
        self._t += timedelta(seconds=10)
        self._lat += 0.001


async def _wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.001)

    await asyncio.wait_for(_poll(), timeout)


async def _idle(engine: LocationEngine) -> None:
    await _wait_until(
        lambda: engine._pending is None and not engine._send_lock.locked()  # noqa: SLF001
    )
    await engine._notifier.drain()  # noqa: SLF001


def _config(**overrides: Any) -> LocSyncConfig:
    overrides.setdefault("notify_retry_delay", 0.0)
    return LocSyncConfig(**overrides)


class _Setup:
    def __init__(self, *responses: HttpResponse | Exception, permission: bool = True, **config: Any) -> None:
        self.source = FeedPositionSource(permission_granted=permission)
        self.transport = _FakeTransport(*responses)
        self.listener = _Listener()
        self.lifetime = NullLifetimeRegistrar()
        self.route = _Route(self.source)
        self.engine = LocationEngine(
            _config(**config),
            self.source,
            listener=self.listener,
            lifetime=self.lifetime,
            transport=self.transport,
        )


@pytest.mark.asyncio
async def test_start_requires_both_session_fields() -> None:
    s = _Setup()
    async with s.engine as engine:
        with pytest.raises(InvalidSessionError):
            await engine.start(None, "room1")
        with pytest.raises(InvalidSessionError):
            await engine.start("abc", "")

        assert engine.state is EngineState.STOPPED
        assert not s.source.is_subscribed
        assert not s.lifetime.registered


@pytest.mark.asyncio
async def test_start_subscribes_with_default_profile() -> None:
    s = _Setup()
    async with s.engine as engine:
        await engine.start("abc", "room1")

        assert engine.state is EngineState.RUNNING
        assert s.lifetime.registered
        assert s.source.profile is not None
        assert s.source.profile.min_displacement_m == 10.0

    assert s.engine.state is EngineState.STOPPED
    assert not s.lifetime.registered


@pytest.mark.asyncio
async def test_round_trip_fix_is_sent_and_forwarded() -> None:
    s = _Setup()
    async with s.engine as engine:
        await engine.start("abc", "room1")
        s.source.push(47.9, 106.9)
        await _idle(engine)

        assert len(s.transport.calls) == 1
        call = s.transport.calls[0]
        assert call["payload"] == {"lat": 47.9, "lng": 106.9, "roomId": "room1"}
        assert call["headers"]["Authorization"] == "Bearer abc"
        assert s.listener.locations == [(47.9, 106.9)]
        assert s.listener.proximity == []
        assert engine.profile.min_displacement_m == 10.0


@pytest.mark.asyncio
async def test_displacement_hint_resubscribes_once() -> None:
    hint = HttpResponse(status=200, text='{"data":{"distance":25.004}}')
    s = _Setup(hint, hint)
    async with s.engine as engine:
        await engine.start("abc", "room1")

        s.route.step()
        await _idle(engine)
        assert engine.profile.min_displacement_m == 25.0
        assert s.source.profile is not None
        assert s.source.profile.min_displacement_m == 25.0
        assert s.source.subscriptions == 2

        s.route.step()
        await _idle(engine)
        assert len(s.transport.calls) == 2
        assert s.source.subscriptions == 2
        assert engine.state is EngineState.RUNNING


@pytest.mark.asyncio
async def test_proximity_signal_fires_once() -> None:
    s = _Setup(HttpResponse(status=200, text='{"data":{"arrivedInFifty":true}}'))
    async with s.engine as engine:
        await engine.start("abc", "room1")
        s.route.step()
        await _idle(engine)

        assert s.listener.proximity == [True]


@pytest.mark.asyncio
async def test_auth_failure_is_terminal_until_restart() -> None:
    s = _Setup(HttpResponse(status=401, text="expired"))
    async with s.engine as engine:
        await engine.start("abc", "room1")
        s.route.step()
        await _idle(engine)

        assert engine.state is EngineState.STOPPED
        assert engine.session is None
        assert s.listener.reauth == 1
        assert not s.source.is_subscribed
        assert not s.lifetime.registered

        s.route.step()
        await asyncio.sleep(0.01)
        assert len(s.transport.calls) == 1
        with pytest.raises(InvalidSessionError):
            await engine.sample_now()
        assert len(s.transport.calls) == 1

        await engine.start("fresh", "room1")
        s.route.step()
        await _idle(engine)
        assert len(s.transport.calls) == 2
        assert s.transport.calls[1]["headers"]["Authorization"] == "Bearer fresh"
        assert s.listener.reauth == 1


@pytest.mark.asyncio
async def test_restart_resets_profile_to_default() -> None:
    s = _Setup(HttpResponse(status=200, text='{"data":{"distance":40}}'))
    async with s.engine as engine:
        await engine.start("abc", "room1")
        s.route.step()
        await _idle(engine)
        assert engine.profile.min_displacement_m == 40.0

        await engine.stop()
        await engine.start("abc", "room1")
        assert engine.profile.min_displacement_m == 10.0


@pytest.mark.asyncio
async def test_malformed_body_is_silently_absorbed() -> None:
    s = _Setup(HttpResponse(status=200, text="not json"))
    async with s.engine as engine:
        await engine.start("abc", "room1")
        s.route.step()
        await _idle(engine)

        assert engine.state is EngineState.RUNNING
        assert s.listener.proximity == []
        assert s.listener.reauth == 0
        assert s.source.subscriptions == 1


@pytest.mark.asyncio
async def test_transport_failures_do_not_change_state() -> None:
    s = _Setup(LocSyncTransportError("offline"), HttpResponse(status=500, text="oops"))
    async with s.engine as engine:
        await engine.start("abc", "room1")
        s.route.step()
        await _idle(engine)
        s.route.step()
        await _idle(engine)
        s.route.step()
        await _idle(engine)

        assert len(s.transport.calls) == 3
        assert engine.state is EngineState.RUNNING
        assert engine.session is not None
        assert s.listener.reauth == 0


@pytest.mark.asyncio
async def test_stop_is_idempotent_and_clears_session() -> None:
    s = _Setup()
    async with s.engine as engine:
        await engine.stop()
        await engine.start("abc", "room1")
        await engine.stop()
        await engine.stop()

        assert engine.state is EngineState.STOPPED
        assert engine.session is None
        assert not s.source.is_subscribed


@pytest.mark.asyncio
async def test_stop_discards_in_flight_send() -> None:
    s = _Setup(HttpResponse(status=200, text='{"data":{"distance":50,"arrivedInFifty":true}}'))
    s.transport.gate = asyncio.Event()
    async with s.engine as engine:
        await engine.start("abc", "room1")
        s.route.step()
        await _wait_until(lambda: len(s.transport.calls) == 1)

        await engine.stop()
        s.transport.gate.set()
        await asyncio.sleep(0.01)
        await engine._notifier.drain()  # noqa: SLF001

        assert engine.profile.min_displacement_m == 10.0
        assert s.source.subscriptions == 1
        assert s.listener.proximity == []


@pytest.mark.asyncio
async def test_newer_fix_supersedes_unsent_one() -> None:
    s = _Setup()
    s.transport.gate = asyncio.Event()
    async with s.engine as engine:
        await engine.start("abc", "room1")
        s.route.step()
        await _wait_until(lambda: len(s.transport.calls) == 1)

        s.route.step()
        s.route.step()
        s.transport.gate.set()
        await _idle(engine)

        assert len(s.transport.calls) == 2
        assert s.transport.calls[1]["payload"]["lat"] == pytest.approx(47.902)


@pytest.mark.asyncio
async def test_sample_now_while_stopped_is_one_shot() -> None:
    s = _Setup()
    async with s.engine as engine:
        s.source.push(47.9, 106.9)
        with pytest.raises(InvalidSessionError):
            await engine.sample_now()

        engine.set_session("abc", "room1")
        fix = await engine.sample_now()

        assert fix.as_coordinates() == {"latitude": 47.9, "longitude": 106.9}
        assert len(s.transport.calls) == 1
        assert engine.state is EngineState.STOPPED
        assert not s.source.is_subscribed


@pytest.mark.asyncio
async def test_sample_now_while_running_sends_immediately() -> None:
    s = _Setup(HttpResponse(status=200, text='{"data":{"arrivedInFifty":true}}'))
    async with s.engine as engine:
        await engine.start("abc", "room1")
        s.route.step()
        await _idle(engine)

        await engine.sample_now()
        await _idle(engine)

        assert len(s.transport.calls) == 2
        assert s.listener.proximity == [True]
        assert engine.state is EngineState.RUNNING


@pytest.mark.asyncio
async def test_sample_now_errors() -> None:
    s = _Setup()
    async with s.engine as engine:
        engine.set_session("abc", "room1")
        with pytest.raises(LocationUnavailableError):
            await engine.sample_now()

        s.source.permission_granted = False
        with pytest.raises(LocationPermissionError):
            await engine.sample_now()

    assert s.transport.calls == []


@pytest.mark.asyncio
async def test_start_without_permission_stays_stopped() -> None:
    s = _Setup(permission=False)
    async with s.engine as engine:
        with pytest.raises(LocationPermissionError):
            await engine.start("abc", "room1")
        await engine._notifier.drain()  # noqa: SLF001

        assert engine.state is EngineState.STOPPED
        assert engine.session is None
        assert not s.lifetime.registered
        assert s.listener.permission_denied == 1


@pytest.mark.asyncio
async def test_permission_lost_on_resubscribe_stops_engine() -> None:
    s = _Setup(HttpResponse(status=200, text='{"data":{"distance":30}}'))
    async with s.engine as engine:
        await engine.start("abc", "room1")
        s.source.push(47.9, 106.9)
        s.source.permission_granted = False
        await _idle(engine)

        assert engine.state is EngineState.STOPPED
        assert s.listener.permission_denied == 1


@pytest.mark.asyncio
async def test_set_session_keeps_subscription() -> None:
    s = _Setup()
    async with s.engine as engine:
        await engine.start("abc", "room1")
        engine.set_session("xyz", "room2")
        s.route.step()
        await _idle(engine)

        assert s.source.subscriptions == 1
        assert s.transport.calls[0]["payload"]["roomId"] == "room2"
        assert s.transport.calls[0]["headers"]["Authorization"] == "Bearer xyz"

        with pytest.raises(InvalidSessionError):
            engine.set_session("", "room3")


@pytest.mark.asyncio
async def test_background_refresh_sends_last_known_fix() -> None:
    s = _Setup(background_refresh_interval=0.01)
    async with s.engine as engine:
        await engine.start("abc", "room1")
        s.route.step()
        await _wait_until(lambda: len(s.transport.calls) >= 3)

    assert all(call["payload"]["lat"] == 47.9 for call in s.transport.calls)


@pytest.mark.asyncio
async def test_engine_requires_context() -> None:
    s = _Setup()
    with pytest.raises(EngineClosedError):
        await s.engine.start("abc", "room1")
    with pytest.raises(EngineClosedError):
        await s.engine.sample_now()


@pytest.mark.asyncio
async def test_huge_distance_hint_keeps_engine_alive() -> None:
    s = _Setup(HttpResponse(status=200, text='{"data":{"distance":1e30}}'))
    async with s.engine as engine:
        await engine.start("abc", "room1")
        s.route.step()
        await _idle(engine)

        assert engine.profile.min_displacement_m == 1e30
        assert s.source.subscriptions == 2
        assert engine._worker is not None and not engine._worker.done()  # noqa: SLF001

        await engine.sample_now()
        assert len(s.transport.calls) == 2
        await engine.stop()

    assert engine.state is EngineState.STOPPED


@pytest.mark.asyncio
async def test_unexpected_send_error_does_not_kill_worker() -> None:
    s = _Setup(RuntimeError("boom"))
    async with s.engine as engine:
        await engine.start("abc", "room1")
        s.route.step()
        await _idle(engine)
        s.route.step()
        await _idle(engine)

        assert len(s.transport.calls) == 2
        assert engine.state is EngineState.RUNNING
        await engine.stop()
        await engine.stop()


@pytest.mark.asyncio
async def test_last_known_fix_does_not_send() -> None:
    s = _Setup()
    async with s.engine as engine:
        assert engine.last_known_fix() is None
        s.route.step()

        fix = engine.last_known_fix()
        assert fix is not None
        assert fix.latitude == 47.9
        assert s.transport.calls == []
