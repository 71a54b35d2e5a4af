"""
Device endpoints
================

POST   /api/v1/devices                      -- register a device
GET    /api/v1/devices                      -- list devices with derived roles
PUT    /api/v1/devices/{device_id}/location -- push a position report
DELETE /api/v1/devices/{device_id}          -- remove a device
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from rescuemesh.api.dependencies import get_coordinator
from rescuemesh.api.middleware import limiter
from rescuemesh.api.schemas import (
    DeviceRegisterRequest,
    DeviceResponse,
    LocationUpdateRequest,
    LocationUpdateResponse,
)
from rescuemesh.domain.entities import Coordinate
from rescuemesh.services.coordinator import CoordinationService

router = APIRouter(prefix="/devices", tags=["devices"])


@router.post(
    "",
    status_code=201,
    response_model=DeviceResponse,
    summary="Register a device",
    description="Registering an id that already exists replaces the entry.",
)
@limiter.limit("100/minute")
async def register_device(
    request: Request,
    body: DeviceRegisterRequest,
    coordinator: CoordinationService = Depends(get_coordinator),
):
    device = await coordinator.register_device(body.id, body.name, body.work_role)
    view = next(d for d in coordinator.snapshot().devices if d.id == device.id)
    return DeviceResponse.model_validate(view)


@router.get("", response_model=list[DeviceResponse], summary="List devices")
@limiter.limit("100/minute")
async def list_devices(
    request: Request,
    coordinator: CoordinationService = Depends(get_coordinator),
):
    return [DeviceResponse.model_validate(d) for d in coordinator.snapshot().devices]


@router.put(
    "/{device_id}/location",
    status_code=202,
    response_model=LocationUpdateResponse,
    summary="Push a position report",
    description=(
        "Updates the device, refreshes nearby facilities and routes, and "
        "rebuilds the topology.  Reports for unregistered devices are "
        "ignored (``accepted: false``)."
    ),
)
@limiter.limit("100/minute")
async def update_location(
    request: Request,
    device_id: str,
    body: LocationUpdateRequest,
    coordinator: CoordinationService = Depends(get_coordinator),
):
    accepted = await coordinator.update_location(
        device_id, Coordinate(body.latitude, body.longitude), body.accuracy
    )
    return LocationUpdateResponse(accepted=accepted)


@router.delete("/{device_id}", status_code=204, summary="Remove a device")
@limiter.limit("100/minute")
async def remove_device(
    request: Request,
    device_id: str,
    coordinator: CoordinationService = Depends(get_coordinator),
):
    if not await coordinator.remove_device(device_id):
        raise HTTPException(status_code=404, detail="Device not found")
    return Response(status_code=204)
