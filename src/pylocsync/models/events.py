"""Out-of-band signals delivered to the host application."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict

from pylocsync.models.fix import PositionFix


class ProximityReached(BaseModel):
    model_config = ConfigDict(frozen=True)

    event: Literal["proximity_reached"] = "proximity_reached"
    reached: bool = True


class ReauthenticationRequired(BaseModel):
    model_config = ConfigDict(frozen=True)

    event: Literal["reauthentication_required"] = "reauthentication_required"


class LocationUpdated(BaseModel):
    """A fix was taken from the live subscription and is about to be sent."""

    model_config = ConfigDict(frozen=True)

    event: Literal["location_updated"] = "location_updated"
    fix: PositionFix


class PermissionDenied(BaseModel):
    """Location permission was lost while the engine was running."""

    model_config = ConfigDict(frozen=True)

    event: Literal["permission_denied"] = "permission_denied"


EngineEvent = ProximityReached | ReauthenticationRequired | LocationUpdated | PermissionDenied
