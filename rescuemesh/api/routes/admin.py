"""
Admin / observability endpoints
===============================

GET /api/v1/admin/health -- health check with device count and sweeper state
"""

from fastapi import APIRouter, Depends, Request

from rescuemesh.api.dependencies import get_coordinator
from rescuemesh.api.schemas import HealthResponse
from rescuemesh.services.coordinator import CoordinationService

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health(
    request: Request,
    coordinator: CoordinationService = Depends(get_coordinator),
):
    sweeper = getattr(request.app.state, "sweeper", None)
    return HealthResponse(
        devices=len(coordinator.registry),
        sweeper_running=bool(sweeper and sweeper.running),
    )
