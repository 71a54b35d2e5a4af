"""
Network endpoints
=================

GET    /api/v1/network                    -- current snapshot
PUT    /api/v1/network/topology           -- switch topology mode
PUT    /api/v1/network/emergency          -- toggle emergency mode
PUT    /api/v1/network/routing/auto       -- toggle auto route selection
POST   /api/v1/network/routing/select     -- select a facility's route
POST   /api/v1/network/routing/shortest   -- select the shortest road route
DELETE /api/v1/network/routing/selection  -- clear the selection
WS     /api/v1/network/stream             -- snapshot on connect + every publish
"""

from __future__ import annotations

import asyncio
import logging

from fastapi import (
    APIRouter,
    Depends,
    HTTPException,
    Request,
    Response,
    WebSocket,
    WebSocketDisconnect,
)

from rescuemesh.api.dependencies import get_coordinator
from rescuemesh.api.middleware import limiter
from rescuemesh.api.schemas import (
    RankedRouteResponse,
    RouteSelectRequest,
    SnapshotResponse,
    ToggleRequest,
    TopologyModeRequest,
)
from rescuemesh.domain.entities import NetworkSnapshot
from rescuemesh.services.coordinator import CoordinationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/network", tags=["network"])


def _snapshot_response(snapshot: NetworkSnapshot) -> SnapshotResponse:
    return SnapshotResponse.model_validate(snapshot)


@router.get("", response_model=SnapshotResponse, summary="Current network snapshot")
@limiter.limit("100/minute")
async def get_network(
    request: Request,
    coordinator: CoordinationService = Depends(get_coordinator),
):
    return _snapshot_response(coordinator.snapshot())


@router.put("/topology", response_model=SnapshotResponse, summary="Set topology mode")
@limiter.limit("100/minute")
async def set_topology(
    request: Request,
    body: TopologyModeRequest,
    coordinator: CoordinationService = Depends(get_coordinator),
):
    await coordinator.set_topology_mode(body.mode)
    return _snapshot_response(coordinator.snapshot())


@router.put(
    "/emergency",
    response_model=SnapshotResponse,
    summary="Toggle emergency mode",
    description="Enabling emergency mode also forces the emergency topology.",
)
@limiter.limit("100/minute")
async def set_emergency(
    request: Request,
    body: ToggleRequest,
    coordinator: CoordinationService = Depends(get_coordinator),
):
    await coordinator.set_emergency_mode(body.enabled)
    return _snapshot_response(coordinator.snapshot())


@router.put(
    "/routing/auto",
    response_model=SnapshotResponse,
    summary="Toggle automatic route selection",
)
@limiter.limit("100/minute")
async def set_auto_routing(
    request: Request,
    body: ToggleRequest,
    coordinator: CoordinationService = Depends(get_coordinator),
):
    await coordinator.set_auto_routing(body.enabled)
    return _snapshot_response(coordinator.snapshot())


@router.post(
    "/routing/select",
    response_model=RankedRouteResponse,
    summary="Select the route to a facility",
)
@limiter.limit("100/minute")
async def select_route(
    request: Request,
    body: RouteSelectRequest,
    coordinator: CoordinationService = Depends(get_coordinator),
):
    route = await coordinator.select_route(body.facility_id)
    if route is None:
        raise HTTPException(status_code=404, detail="Facility not found")
    return RankedRouteResponse.model_validate(route)


@router.post(
    "/routing/shortest",
    response_model=RankedRouteResponse,
    summary="Select the shortest road route",
)
@limiter.limit("100/minute")
async def select_shortest(
    request: Request,
    coordinator: CoordinationService = Depends(get_coordinator),
):
    route = await coordinator.select_shortest_route()
    if route is None:
        raise HTTPException(status_code=404, detail="No routes available")
    return RankedRouteResponse.model_validate(route)


@router.delete("/routing/selection", status_code=204, summary="Clear route selection")
@limiter.limit("100/minute")
async def clear_selection(
    request: Request,
    coordinator: CoordinationService = Depends(get_coordinator),
):
    await coordinator.clear_selection()
    return Response(status_code=204)


# ── Stream ────────────────────────────────────────────────────────────


def offer_latest(queue: asyncio.Queue, snapshot: NetworkSnapshot) -> None:
    """Keep only the newest snapshot; a slow reader skips intermediate ones."""
    if queue.full():
        queue.get_nowait()
    queue.put_nowait(snapshot)


@router.websocket("/stream")
async def stream_network(websocket: WebSocket):
    coordinator: CoordinationService = websocket.app.state.coordinator
    await websocket.accept()

    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[NetworkSnapshot] = asyncio.Queue(maxsize=1)
    unsubscribe = coordinator.subscribe(
        lambda snapshot: loop.call_soon_threadsafe(offer_latest, queue, snapshot)
    )

    async def pump() -> None:
        await websocket.send_json(
            _snapshot_response(coordinator.snapshot()).model_dump(mode="json")
        )
        while True:
            snapshot = await queue.get()
            await websocket.send_json(
                _snapshot_response(snapshot).model_dump(mode="json")
            )

    async def drain() -> None:
        # Clients only listen; reading detects the disconnect.
        while True:
            await websocket.receive_text()

    tasks = {asyncio.create_task(pump()), asyncio.create_task(drain())}
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                logger.warning("Snapshot stream closed: %s", exc)
    finally:
        for task in tasks:
            task.cancel()
        unsubscribe()
