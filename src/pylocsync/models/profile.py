"""Sampling profile applied to the position source subscription."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, localcontext
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pylocsync._constants import (
    DEFAULT_DISPLACEMENT_M,
    DEFAULT_MAX_INTERVAL_MS,
    DEFAULT_MIN_INTERVAL_MS,
    DISPLACEMENT_PRECISION,
)

_QUANTUM = Decimal(1).scaleb(-DISPLACEMENT_PRECISION)


def round_displacement(value: float) -> float:
    """Round a displacement to the server's reporting granularity.

    Rounds half away from zero (``25.005`` -> ``25.01``), going through the
    shortest decimal representation so binary float noise does not leak in.
    """
    exact = Decimal(repr(float(value)))
    with localcontext() as ctx:
        # quantize needs every integer digit plus the fractional ones
        ctx.prec = max(ctx.prec, exact.adjusted() + DISPLACEMENT_PRECISION + 2)
        return float(exact.quantize(_QUANTUM, rounding=ROUND_HALF_UP))


class Accuracy(StrEnum):
    """Location provider request priority."""

    HIGH = "high"
    BALANCED = "balanced"
    LOW = "low"


class SamplingProfile(BaseModel):
    """Request profile for a position source subscription.

    A live subscription never observes changes to this object; the only way
    to apply a new profile is to unsubscribe and subscribe again.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    min_interval_ms: int = Field(default=DEFAULT_MIN_INTERVAL_MS, ge=0)
    max_interval_ms: int = Field(default=DEFAULT_MAX_INTERVAL_MS, ge=0)
    min_displacement_m: float = Field(default=DEFAULT_DISPLACEMENT_M, ge=0.0)
    accuracy: Accuracy = Accuracy.HIGH

    @model_validator(mode="after")
    def _check_interval_order(self) -> SamplingProfile:
        if self.min_interval_ms > self.max_interval_ms:
            raise ValueError(
                f"min_interval_ms ({self.min_interval_ms}) must not exceed max_interval_ms ({self.max_interval_ms})"
            )
        return self

    def with_displacement(self, meters: float) -> SamplingProfile:
        """Return a copy with a new displacement threshold."""
        return self.model_copy(update={"min_displacement_m": float(meters)})

    def same_displacement(self, meters: float) -> bool:
        """Whether *meters* equals the current threshold at reporting precision."""
        return round_displacement(meters) == round_displacement(self.min_displacement_m)
