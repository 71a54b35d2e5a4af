"""
FastAPI application factory.

* Registers routes for devices, hospitals, the network and admin.
* Owns the session's ``CoordinationService`` on ``app.state`` (one per app,
  no module-level instance).
* Starts / stops the staleness sweeper via lifespan events.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging
from typing import Optional

import httpx
from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from rescuemesh.api.middleware import limiter
from rescuemesh.api.routes import admin, devices, hospitals, network
from rescuemesh.config import settings
from rescuemesh.infrastructure.redis_client import close_redis, get_redis
from rescuemesh.infrastructure.route_cache import RedisRouteCache
from rescuemesh.services.coordinator import CoordinationService, create_coordinator
from rescuemesh.workers.sweeper import StaleSweeper

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Wire the coordinator if none was injected, run the sweeper."""
    http_client: Optional[httpx.AsyncClient] = None
    if app.state.coordinator is None:
        http_client = httpx.AsyncClient(timeout=settings.http_timeout_seconds)
        cache = None
        if settings.route_cache_enabled:
            cache = RedisRouteCache(
                await get_redis(),
                ttl_seconds=settings.route_cache_ttl_seconds,
                resolution=settings.h3_resolution,
            )
            logger.info("Route cache enabled (ttl=%ds)", settings.route_cache_ttl_seconds)
        app.state.coordinator = create_coordinator(http_client, cache)

    sweeper = StaleSweeper(app.state.coordinator, settings.sweep_interval_seconds)
    app.state.sweeper = sweeper
    await sweeper.start()
    yield
    await sweeper.stop()
    if http_client is not None:
        await http_client.aclose()
        if settings.route_cache_enabled:
            await close_redis()


def create_app(coordinator: Optional[CoordinationService] = None) -> FastAPI:
    app = FastAPI(
        title="RescueMesh Coordination API",
        description=(
            "Coordinates field workers sharing location during an emergency: "
            "ranks nearby medical facilities, routes to them by road, and "
            "derives a live worker network topology with responder roles."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.coordinator = coordinator

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Routers
    app.include_router(devices.router, prefix="/api/v1")
    app.include_router(hospitals.router, prefix="/api/v1")
    app.include_router(network.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
