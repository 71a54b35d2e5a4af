"""Pydantic request / response schemas for the REST and WebSocket API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from rescuemesh.domain.enums import FacilityType, TopologyMode, WorkRole


# ── Requests ──────────────────────────────────────────────────────────


class DeviceRegisterRequest(BaseModel):
    id: str = Field(..., min_length=1, max_length=128)
    name: str = Field(..., min_length=1, max_length=120)
    work_role: WorkRole = WorkRole.WORKER


class LocationUpdateRequest(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    accuracy: float = Field(0.0, ge=0, description="Reported accuracy in metres.")


class HospitalRefreshRequest(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    radius_km: Optional[float] = Field(None, gt=0, le=50)


class TopologyModeRequest(BaseModel):
    mode: str = Field(
        ...,
        description="emergency | work-optimal | mst; unknown values mean emergency.",
    )


class ToggleRequest(BaseModel):
    enabled: bool


class RouteSelectRequest(BaseModel):
    facility_id: str


# ── Responses ─────────────────────────────────────────────────────────


class CoordinateSchema(BaseModel):
    latitude: float
    longitude: float

    model_config = {"from_attributes": True}


class DeviceResponse(BaseModel):
    id: str
    name: str
    position: Optional[CoordinateSchema] = None
    last_update: Optional[datetime] = None
    is_online: bool
    accuracy: float
    work_role: WorkRole
    emergency_responder: bool = False

    model_config = {"from_attributes": True}


class LocationUpdateResponse(BaseModel):
    accepted: bool


class FacilityResponse(BaseModel):
    id: str
    name: str
    type: FacilityType
    position: CoordinateSchema
    distance: float
    emergency: bool
    work_priority: int
    address: str = ""
    phone: str = ""
    website: str = ""
    wheelchair_access: bool = False
    opening_hours: str = ""
    emergency_hours: str = ""
    specialties: str = ""
    tags: dict[str, Any] = {}
    is_fallback: bool = False

    model_config = {"from_attributes": True}


class RouteResponse(BaseModel):
    coordinates: list[CoordinateSchema]
    distance: float
    duration: float
    is_fallback: bool

    model_config = {"from_attributes": True}


class RankedRouteResponse(BaseModel):
    id: str
    name: str
    facility: FacilityResponse
    route: RouteResponse
    road_distance: float
    estimated_time: float
    urgency_score: float

    model_config = {"from_attributes": True}


class ConnectionResponse(BaseModel):
    source_id: str
    target_id: str
    positions: list[CoordinateSchema]
    distance: float
    work_score: Optional[float] = None
    is_emergency_path: bool

    model_config = {"from_attributes": True}


class WorkContextResponse(BaseModel):
    emergency_mode: bool
    prioritize_speed: bool
    max_response_time: int

    model_config = {"from_attributes": True}


class SnapshotResponse(BaseModel):
    devices: list[DeviceResponse]
    connections: list[ConnectionResponse]
    facilities: list[FacilityResponse]
    ranked_routes: list[RankedRouteResponse]
    topology: TopologyMode
    work_context: WorkContextResponse
    emergency_mode: bool
    emergency_route: Optional[RankedRouteResponse] = None
    shortest_route: Optional[RankedRouteResponse] = None
    selected_route: Optional[RankedRouteResponse] = None
    auto_routing: bool
    status: str
    generation: int
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class HealthResponse(BaseModel):
    status: str = "ok"
    devices: int = 0
    sweeper_running: bool = False


class ErrorResponse(BaseModel):
    detail: str
