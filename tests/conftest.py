"""
Shared test fixtures.

External collaborators (facility directory, routing provider) are replaced
by small in-process fakes so tests run without network access or Redis.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import pytest

from rescuemesh.domain.distance import haversine_km
from rescuemesh.domain.entities import (
    Coordinate,
    Device,
    DownstreamUnavailable,
    Facility,
    Route,
)
from rescuemesh.domain.ranking import HospitalRanker
from rescuemesh.domain.routing import RoutingOrchestrator
from rescuemesh.services.coordinator import CoordinationService

# Howrah, Kolkata (approx)
ORIGIN = Coordinate(22.5958, 88.2636)

# ~0.009 degrees of latitude per km
KM_LAT = 1 / 111.195


def north_of(origin: Coordinate, km: float) -> Coordinate:
    return Coordinate(origin.latitude + km * KM_LAT, origin.longitude)


def make_device(
    device_id: str,
    position: Optional[Coordinate],
    online: bool = True,
) -> Device:
    return Device(id=device_id, name=device_id.upper(), position=position, is_online=online)


def make_facility(
    facility_id: str,
    position: Coordinate,
    priority: int = 0,
    origin: Coordinate = ORIGIN,
    emergency: bool = False,
) -> Facility:
    return Facility(
        id=facility_id,
        name=facility_id.title(),
        position=position,
        distance=haversine_km(origin, position),
        emergency=emergency,
        work_priority=priority,
    )


def node(osm_id: int, position: Coordinate, **tags: Any) -> dict[str, Any]:
    """Overpass node element; tag keys use ``__`` for ``:``."""
    return {
        "type": "node",
        "id": osm_id,
        "lat": position.latitude,
        "lon": position.longitude,
        "tags": {k.replace("__", ":"): v for k, v in tags.items()},
    }


# ── Fakes ─────────────────────────────────────────────────────────────


class FakeDirectory:
    def __init__(self, elements=None, error: Optional[Exception] = None):
        self.elements = elements or []
        self.error = error
        self.calls: list[tuple[Coordinate, float]] = []

    async def fetch_facilities(self, origin, radius_m):
        self.calls.append((origin, radius_m))
        if self.error is not None:
            raise self.error
        return self.elements


class FakeProvider:
    """Road route = 1.3 x great-circle, 1.5 min per km, three-point line."""

    def __init__(self, fail_for=(), error: Optional[Exception] = None):
        self.fail_for = set(fail_for)
        self.error = error
        self.calls: list[tuple[Coordinate, Coordinate, str]] = []

    async def fetch_route(self, origin, destination, profile="driving"):
        self.calls.append((origin, destination, profile))
        await asyncio.sleep(0)
        if self.error is not None or destination in self.fail_for:
            raise self.error or DownstreamUnavailable("no route")
        road = haversine_km(origin, destination) * 1.3
        middle = Coordinate(
            (origin.latitude + destination.latitude) / 2, origin.longitude
        )
        return Route(
            coordinates=(origin, middle, destination),
            distance=road,
            duration=road * 1.5,
        )


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest.fixture
def hospital_elements():
    """Three hospitals around ORIGIN with different scores."""
    return [
        # 1 km, plain: 8
        node(1, north_of(ORIGIN, 1.0), amenity="hospital", name="Near Clinic"),
        # 3 km, emergency: 10 + 5 = 15
        node(2, north_of(ORIGIN, 3.0), amenity="hospital", name="Trauma Centre",
             emergency="yes"),
        # 7 km, emergency: 10 + 2 = 12
        node(3, north_of(ORIGIN, 7.0), amenity="hospital", name="District Hospital",
             emergency="yes"),
    ]


@pytest.fixture
def directory(hospital_elements):
    return FakeDirectory(hospital_elements)


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def coordinator(directory, provider):
    return CoordinationService(
        HospitalRanker(directory),
        RoutingOrchestrator(provider),
        radius_km=10,
    )
