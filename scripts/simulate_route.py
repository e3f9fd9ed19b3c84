#!/usr/bin/env python3
"""Replay a recorded route through the location engine against a live endpoint.

Each CSV row is ``latitude,longitude[,offset_seconds]``; rows without an
offset are spaced by ``--step`` seconds. Readings are pushed into a
``FeedPositionSource`` so the profile filters and server-driven displacement
changes behave as they would on a device.

Credential sourcing:
- LOCSYNC_TOKEN (or --token)
- LOCSYNC_ROOM_ID (or --room)

Endpoint settings come from the usual ``LOCSYNC_*`` configuration variables.
"""

from __future__ import annotations

import argparse
import asyncio
import csv
import logging
import os
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path

_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pylocsync import EngineListener, FeedPositionSource, LocationEngine, LocSyncConfig, LocSyncError  # noqa: E402


class _PrintingListener(EngineListener):
    def on_proximity_reached(self, reached: bool) -> None:
        print(f"[event] proximity reached: {reached}")

    def on_reauthentication_required(self) -> None:
        print("[event] re-authentication required; engine stopped")

    def on_location_updated(self, latitude: float, longitude: float) -> None:
        print(f"[fix]   {latitude:.6f}, {longitude:.6f}")

    def on_permission_denied(self) -> None:
        print("[event] location permission denied")


def _load_route(path: Path, step: float) -> list[tuple[float, float, float]]:
    rows: list[tuple[float, float, float]] = []
    with path.open(newline="", encoding="utf-8") as handle:
        for index, row in enumerate(csv.reader(handle)):
            if not row or row[0].strip().startswith("#"):
                continue
            try:
                lat = float(row[0])
                lng = float(row[1])
            except (IndexError, ValueError):
                if index == 0:
                    continue  # header
                raise
            offset = float(row[2]) if len(row) > 2 and row[2].strip() else len(rows) * step
            rows.append((lat, lng, offset))
    return rows


async def _run(args: argparse.Namespace) -> int:
    token = args.token or os.environ.get("LOCSYNC_TOKEN")
    room = args.room or os.environ.get("LOCSYNC_ROOM_ID")
    route = _load_route(Path(args.route), args.step)
    if not route:
        print("Route is empty", file=sys.stderr)
        return 2

    config = LocSyncConfig.from_env()
    source = FeedPositionSource()
    start = datetime.now(UTC)

    async with LocationEngine(config, source, listener=_PrintingListener()) as engine:
        try:
            await engine.start(token, room)
        except LocSyncError as exc:
            print(f"Cannot start: {exc}", file=sys.stderr)
            return 1

        previous_offset = 0.0
        for lat, lng, offset in route:
            if not engine.is_running:
                break
            await asyncio.sleep(max(0.0, offset - previous_offset) * args.speed)
            previous_offset = offset
            source.push(lat, lng, start + timedelta(seconds=offset))

        await asyncio.sleep(args.linger)
        print(f"Final displacement threshold: {engine.profile.min_displacement_m}m (state={engine.state})")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("route", help="CSV file with latitude,longitude[,offset_seconds] rows")
    parser.add_argument("--token", help="Bearer token (default: $LOCSYNC_TOKEN)")
    parser.add_argument("--room", help="Room identifier (default: $LOCSYNC_ROOM_ID)")
    parser.add_argument("--step", type=float, default=10.0, help="Seconds between rows without an offset")
    parser.add_argument("--speed", type=float, default=0.1, help="Wall-clock factor applied to offsets")
    parser.add_argument("--linger", type=float, default=2.0, help="Seconds to wait for the last send")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable DEBUG logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())
