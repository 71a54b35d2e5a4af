"""
Domain entities and value objects.

Patterns used
-------------
- ``Device`` is the only mutable entity; it is owned by ``DeviceRegistry``.
- ``Facility``, ``Route``, ``RankedRoute`` and ``Connection`` are frozen
  value objects, rebuilt wholesale on every coordination cycle.
- Work roles are a projection (``DeviceRole``) computed by the topology
  engine and joined onto ``DeviceView`` when a snapshot is taken.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional

from .enums import FacilityType, TopologyMode, WorkRole


class DownstreamUnavailable(Exception):
    """Raised by external collaborators (router, facility directory)."""


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float

    @classmethod
    def from_lon_lat(cls, pair) -> Coordinate:
        """Build from a GeoJSON ``[lon, lat]`` pair."""
        return cls(latitude=float(pair[1]), longitude=float(pair[0]))


@dataclass(frozen=True)
class Facility:
    id: str
    name: str
    position: Coordinate
    distance: float  # great-circle km from the ranking origin
    type: FacilityType = FacilityType.HOSPITAL
    emergency: bool = False
    work_priority: int = 0
    address: str = ""
    phone: str = ""
    website: str = ""
    wheelchair_access: bool = False
    opening_hours: str = ""
    emergency_hours: str = ""
    specialties: str = ""
    tags: Mapping[str, Any] = field(default_factory=dict, compare=False)
    is_fallback: bool = False


@dataclass(frozen=True)
class Route:
    coordinates: tuple[Coordinate, ...]
    distance: float  # km
    duration: float  # minutes
    is_fallback: bool = False


@dataclass(frozen=True)
class RankedRoute:
    facility: Facility
    route: Route
    road_distance: float
    estimated_time: float

    @property
    def id(self) -> str:
        return self.facility.id

    @property
    def name(self) -> str:
        return self.facility.name

    @property
    def urgency_score(self) -> float:
        """``work_priority + 20 / (road_distance + 0.1)``."""
        return self.facility.work_priority + 20 / (self.road_distance + 0.1)


@dataclass(frozen=True)
class Connection:
    source_id: str
    target_id: str
    positions: tuple[Coordinate, Coordinate]
    distance: float
    work_score: Optional[float] = None
    is_emergency_path: bool = False


@dataclass(frozen=True)
class DeviceRole:
    work_role: WorkRole = WorkRole.WORKER
    emergency_responder: bool = False


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class Device:
    id: str
    name: str
    position: Optional[Coordinate] = None
    last_update: Optional[datetime] = None
    is_online: bool = True
    accuracy: float = 0.0
    work_role: WorkRole = WorkRole.WORKER  # requested at registration; snapshots derive their own

    @property
    def is_locatable(self) -> bool:
        """Online and positioned -- eligible for topology and roles."""
        return self.is_online and self.position is not None


# ── Snapshot ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class DeviceView:
    id: str
    name: str
    position: Optional[Coordinate]
    last_update: Optional[datetime]
    is_online: bool
    accuracy: float
    work_role: WorkRole
    emergency_responder: bool

    @classmethod
    def of(cls, device: Device, role: Optional[DeviceRole] = None) -> DeviceView:
        """Project *device* with its derived role; no role means worker."""
        role = role or DeviceRole()
        return cls(
            id=device.id,
            name=device.name,
            position=device.position,
            last_update=device.last_update,
            is_online=device.is_online,
            accuracy=device.accuracy,
            work_role=role.work_role,
            emergency_responder=role.emergency_responder,
        )


@dataclass(frozen=True)
class WorkContext:
    emergency_mode: bool = False
    prioritize_speed: bool = True
    max_response_time: int = 15  # minutes


@dataclass(frozen=True)
class NetworkSnapshot:
    """Full session state as published to subscribers.

    ``emergency_route`` is the top-urgency route (the auto pick).
    ``shortest_route`` is the minimum road distance among routed facilities,
    which need not be the auto pick.  ``selected_route`` is whatever the
    auto policy or an explicit selection chose.
    """

    devices: tuple[DeviceView, ...] = ()
    connections: tuple[Connection, ...] = ()
    facilities: tuple[Facility, ...] = ()
    ranked_routes: tuple[RankedRoute, ...] = ()
    topology: TopologyMode = TopologyMode.EMERGENCY
    work_context: WorkContext = field(default_factory=WorkContext)
    emergency_route: Optional[RankedRoute] = None
    shortest_route: Optional[RankedRoute] = None
    selected_route: Optional[RankedRoute] = None
    auto_routing: bool = True
    status: str = "idle"
    generation: int = 0
    created_at: Optional[datetime] = None

    @property
    def emergency_mode(self) -> bool:
        return self.work_context.emergency_mode
