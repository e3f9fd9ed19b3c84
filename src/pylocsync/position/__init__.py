"""Position sources."""

from pylocsync.position.base import FixCallback, PositionSource
from pylocsync.position.feed import FeedPositionSource
from pylocsync.position.geo import haversine_distance

__all__ = [
    "FeedPositionSource",
    "FixCallback",
    "PositionSource",
    "haversine_distance",
]
