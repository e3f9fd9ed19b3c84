"""Position fix model."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _utcnow() -> datetime:
    return datetime.now(UTC)


class PositionFix(BaseModel):
    """A single reported geographic position.

    Parameters
    ----------
    latitude : float
        Latitude in degrees, ``-90`` to ``90``.
    longitude : float
        Longitude in degrees, ``-180`` to ``180``.
    captured_at : datetime
        When the provider captured the position (UTC).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
    captured_at: datetime = Field(default_factory=_utcnow)

    @field_validator("captured_at")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def as_coordinates(self) -> dict[str, float]:
        """Return ``{"latitude": ..., "longitude": ...}`` for the host application."""
        return {"latitude": self.latitude, "longitude": self.longitude}
