"""Wire model for the save-location success body.

Expected shape::

    {"data": {"arrivedInFifty": true, "distance": 25.0}}

Both inner fields are optional. Anything that does not fit this shape is
handled by the caller as "no hint".
"""

from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pylocsync._normalize import safe_float


class SaveLocationResult(BaseModel):
    """Inner ``data`` object of the response."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    arrived_in_fifty: bool = Field(default=False, alias="arrivedInFifty")
    distance: float | None = None

    @field_validator("arrived_in_fifty", mode="before")
    @classmethod
    def _null_is_false(cls, value: Any) -> Any:
        return False if value is None else value

    @field_validator("distance", mode="before")
    @classmethod
    def _coerce_distance(cls, value: Any) -> float | None:
        parsed = safe_float(value)
        if parsed is None or not math.isfinite(parsed):
            return None
        return parsed

    @property
    def suggested_displacement(self) -> float | None:
        """Positive distance hint, else ``None`` (zero is not a reset)."""
        if self.distance is None or self.distance <= 0:
            return None
        return self.distance


class SaveLocationResponse(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    data: SaveLocationResult
