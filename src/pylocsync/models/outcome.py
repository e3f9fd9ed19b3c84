"""Typed result of a single location send."""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field


class FailureKind(StrEnum):
    """Why a send did not reach a usable server answer."""

    NETWORK = "network"
    PROTOCOL = "protocol"


class Delivered(BaseModel):
    """The server accepted the fix.

    Parameters
    ----------
    proximity_reached : bool
        Server says the tracked party arrived within range of the destination.
    suggested_displacement : float or None
        Displacement threshold hint in metres; ``None`` means "no hint".
    """

    model_config = ConfigDict(frozen=True)

    outcome: Literal["delivered"] = "delivered"
    proximity_reached: bool = False
    suggested_displacement: float | None = Field(default=None, gt=0)


class AuthRejected(BaseModel):
    """The server refused the bearer token (HTTP 401/403)."""

    model_config = ConfigDict(frozen=True)

    outcome: Literal["auth_rejected"] = "auth_rejected"
    status_code: int | None = None


class TransportFailure(BaseModel):
    """The send failed transiently; the next natural fix is the retry."""

    model_config = ConfigDict(frozen=True)

    outcome: Literal["transport_failure"] = "transport_failure"
    kind: FailureKind
    reason: str = ""
    status_code: int | None = None


SyncOutcome = Annotated[Delivered | AuthRejected | TransportFailure, Field(discriminator="outcome")]
"""Tagged union produced once per send."""
