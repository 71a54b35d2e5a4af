"""
Redis-backed memoization for provider routes.

Key: ``route:{profile}:{h3 cell of origin}:{facility id}``.  Origins that
fall in the same H3 hexagon share an entry, so a worker jittering around
one spot does not re-query the router every few seconds.  Only real
provider routes are stored; fallback routes are always recomputed.

Redis errors are logged and treated as a miss.
"""

from __future__ import annotations

import json
import logging
from typing import Optional

import h3
import redis.asyncio as aioredis
from redis.exceptions import RedisError

from rescuemesh.domain.entities import Coordinate, Route

logger = logging.getLogger(__name__)


def origin_bucket(origin: Coordinate, resolution: int) -> str:
    """Map a geo-point to an H3 hexagonal cell index.  O(1)."""
    return h3.latlng_to_cell(origin.latitude, origin.longitude, resolution)


def dump_route(route: Route) -> str:
    return json.dumps(
        {
            "coordinates": [[c.latitude, c.longitude] for c in route.coordinates],
            "distance": route.distance,
            "duration": route.duration,
        }
    )


def load_route(raw: str) -> Route:
    data = json.loads(raw)
    return Route(
        coordinates=tuple(Coordinate(lat, lng) for lat, lng in data["coordinates"]),
        distance=data["distance"],
        duration=data["duration"],
    )


class RedisRouteCache:
    def __init__(
        self, client: aioredis.Redis, ttl_seconds: int = 300, resolution: int = 8
    ):
        self.redis = client
        self.ttl = ttl_seconds
        self.resolution = resolution

    def key(self, origin: Coordinate, facility_id: str, profile: str) -> str:
        return f"route:{profile}:{origin_bucket(origin, self.resolution)}:{facility_id}"

    async def get(
        self, origin: Coordinate, facility_id: str, profile: str
    ) -> Optional[Route]:
        try:
            raw = await self.redis.get(self.key(origin, facility_id, profile))
        except RedisError as exc:
            logger.warning("Route cache read failed: %s", exc)
            return None
        if raw is None:
            return None
        try:
            return load_route(raw)
        except (ValueError, KeyError, TypeError):
            logger.warning("Discarding corrupt route cache entry for %s", facility_id)
            return None

    async def put(
        self, origin: Coordinate, facility_id: str, profile: str, route: Route
    ) -> None:
        try:
            await self.redis.set(
                self.key(origin, facility_id, profile), dump_route(route), ex=self.ttl
            )
        except RedisError as exc:
            logger.warning("Route cache write failed: %s", exc)
