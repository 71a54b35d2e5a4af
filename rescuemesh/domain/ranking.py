"""
Hospital Ranking
================

Turns raw facility-directory records into ``Facility`` value objects and
orders them by work priority.

Work priority
-------------
  +10  emergency-capable (``emergency=yes``, ``emergency:medical=yes`` or an
       "emergency" speciality)
   +5  wheelchair accessible
   +3  published emergency opening hours
   +8 / +5 / +2  within 2 / 5 / 10 km (nearest bracket only)

Order: ``work_priority`` descending, then ``distance`` ascending.

If the directory cannot be reached the ranker answers with four synthetic
facilities around the origin, so callers always get a usable list.

Complexity: O(N log N) for N directory records.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional, Protocol

from .distance import haversine_km
from .entities import Coordinate, Facility
from .enums import FacilityType

logger = logging.getLogger(__name__)

FALLBACK_OFFSET_DEG = 0.01

# (name, lat sign, lon sign, emergency)
_FALLBACK_LAYOUT = (
    ("Emergency Medical Center", 1, 1, True),
    ("General Hospital", -1, 1, False),
    ("City Medical Center", 1, -1, False),
    ("Regional Hospital", -1, -1, True),
)


class FacilityDirectory(Protocol):
    async def fetch_facilities(
        self, origin: Coordinate, radius_m: float
    ) -> list[dict[str, Any]]: ...


# ── Scoring ───────────────────────────────────────────────────────────


def is_emergency_capable(tags: dict[str, Any]) -> bool:
    return (
        tags.get("emergency") == "yes"
        or tags.get("emergency:medical") == "yes"
        or "emergency" in (tags.get("healthcare:speciality") or "")
    )


def proximity_bonus(distance_km: float) -> int:
    if distance_km < 2:
        return 8
    if distance_km < 5:
        return 5
    if distance_km < 10:
        return 2
    return 0


def work_priority(tags: dict[str, Any], distance_km: float) -> int:
    score = 0
    if is_emergency_capable(tags):
        score += 10
    if tags.get("wheelchair") == "yes":
        score += 5
    if tags.get("opening_hours:emergency"):
        score += 3
    return score + proximity_bonus(distance_km)


def sort_facilities(facilities: Iterable[Facility]) -> list[Facility]:
    return sorted(facilities, key=lambda f: (-f.work_priority, f.distance))


# ── Parsing ───────────────────────────────────────────────────────────


def element_position(element: dict[str, Any]) -> Optional[Coordinate]:
    """Nodes carry ``lat``/``lon``; ways and relations carry a ``center``."""
    if element.get("type") == "node":
        lat, lon = element.get("lat"), element.get("lon")
    else:
        center = element.get("center") or {}
        lat, lon = center.get("lat"), center.get("lon")
    if lat is None or lon is None:
        return None
    return Coordinate(float(lat), float(lon))


def facility_from_element(
    element: dict[str, Any], origin: Coordinate
) -> Optional[Facility]:
    position = element_position(element)
    if position is None:
        return None

    tags = element.get("tags") or {}
    distance = haversine_km(origin, position)
    return Facility(
        id=f"hospital-{element.get('id')}",
        name=tags.get("name") or tags.get("name:en") or "Medical Facility",
        type=(
            FacilityType.CLINIC
            if tags.get("amenity") == "clinic"
            else FacilityType.HOSPITAL
        ),
        position=position,
        distance=distance,
        emergency=is_emergency_capable(tags),
        work_priority=work_priority(tags, distance),
        address=tags.get("addr:street") or tags.get("addr:full") or "",
        phone=tags.get("phone") or tags.get("contact:phone") or "",
        website=tags.get("website") or tags.get("contact:website") or "",
        wheelchair_access=tags.get("wheelchair") == "yes",
        opening_hours=tags.get("opening_hours") or "",
        emergency_hours=tags.get("opening_hours:emergency") or "",
        specialties=tags.get("healthcare:speciality") or "",
        tags=dict(tags),
    )


def rank_elements(
    elements: Iterable[dict[str, Any]], origin: Coordinate
) -> list[Facility]:
    """Parse, score and sort raw records; unplaceable records are dropped."""
    facilities = []
    for element in elements:
        facility = facility_from_element(element, origin)
        if facility is not None:
            facilities.append(facility)
    return sort_facilities(facilities)


def fallback_facilities(origin: Coordinate) -> list[Facility]:
    """Deterministic stand-ins used when the directory is unreachable."""
    facilities = []
    for index, (name, lat_sign, lon_sign, emergency) in enumerate(_FALLBACK_LAYOUT):
        position = Coordinate(
            origin.latitude + lat_sign * FALLBACK_OFFSET_DEG,
            origin.longitude + lon_sign * FALLBACK_OFFSET_DEG,
        )
        facilities.append(
            Facility(
                id=f"fallback-hospital-{index}",
                name=name,
                position=position,
                distance=haversine_km(origin, position),
                emergency=emergency,
                work_priority=10 if emergency else 5,
                address="Address not available",
                phone="Emergency: 911",
                is_fallback=True,
            )
        )
    return sort_facilities(facilities)


# ── Ranker ────────────────────────────────────────────────────────────


class HospitalRanker:
    """Directory query + scoring, with directory failures absorbed."""

    def __init__(self, directory: FacilityDirectory):
        self.directory = directory

    async def rank(self, origin: Coordinate, radius_km: float) -> list[Facility]:
        try:
            elements = await self.directory.fetch_facilities(
                origin, radius_km * 1000
            )
            return rank_elements(elements, origin)
        except Exception as exc:
            logger.warning(
                "Facility directory unavailable (%s), using fallback facilities",
                exc,
            )
            return fallback_facilities(origin)
