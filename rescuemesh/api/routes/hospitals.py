"""
Hospital endpoints
==================

GET  /api/v1/hospitals          -- ranked facilities from the last refresh
POST /api/v1/hospitals/refresh  -- rank and route around a point
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from rescuemesh.api.dependencies import get_coordinator
from rescuemesh.api.middleware import limiter
from rescuemesh.api.schemas import (
    FacilityResponse,
    HospitalRefreshRequest,
    SnapshotResponse,
)
from rescuemesh.domain.entities import Coordinate
from rescuemesh.services.coordinator import CoordinationService

router = APIRouter(prefix="/hospitals", tags=["hospitals"])


@router.get("", response_model=list[FacilityResponse], summary="Ranked facilities")
@limiter.limit("100/minute")
async def list_hospitals(
    request: Request,
    coordinator: CoordinationService = Depends(get_coordinator),
):
    return [
        FacilityResponse.model_validate(f) for f in coordinator.snapshot().facilities
    ]


@router.post(
    "/refresh",
    response_model=SnapshotResponse,
    summary="Refresh facilities and routes around a point",
    description=(
        "Used by observers that track a position without sharing it as a "
        "device.  Falls back to synthetic facilities and straight-line "
        "routes when the directory or router is unavailable."
    ),
)
@limiter.limit("100/minute")
async def refresh_hospitals(
    request: Request,
    body: HospitalRefreshRequest,
    coordinator: CoordinationService = Depends(get_coordinator),
):
    await coordinator.refresh_hospitals(
        Coordinate(body.latitude, body.longitude), body.radius_km
    )
    return SnapshotResponse.model_validate(coordinator.snapshot())
