"""
Distance calculation using the Haversine formula.

Every distance inside the engine (facility proximity, device pairs,
fallback routes) is great-circle distance on a sphere of radius 6371 km.
Road distances only ever come from the routing provider.

Complexity: O(1) per call.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .entities import Coordinate

EARTH_RADIUS_KM = 6_371.0


def haversine_km(a: Coordinate, b: Coordinate) -> float:
    """Return the great-circle distance in **km** between two points."""
    lat1_r, lat2_r = math.radians(a.latitude), math.radians(b.latitude)
    dlat = math.radians(b.latitude - a.latitude)
    dlng = math.radians(b.longitude - a.longitude)

    h = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlng / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(h))
