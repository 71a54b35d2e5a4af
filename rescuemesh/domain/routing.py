"""
Route Aggregation
=================

Asks the routing provider for a road route to each candidate facility and
merges the answers into ``RankedRoute`` objects.

Fallback
--------
Any provider failure yields a two-point straight line with
``duration = 2 x distance`` (30 km/h average), flagged ``is_fallback``.

Fan-out
-------
``route_many`` runs one request per facility concurrently and joins them
with ``asyncio.gather(return_exceptions=True)``: a failing or slow
destination only degrades its own entry.

Urgency
-------
  urgency = work_priority + 20 / (road_distance + 0.1)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional, Protocol

from .distance import haversine_km
from .entities import Coordinate, Facility, RankedRoute, Route

logger = logging.getLogger(__name__)

FALLBACK_MINUTES_PER_KM = 2.0


class RoutingProvider(Protocol):
    async def fetch_route(
        self, origin: Coordinate, destination: Coordinate, profile: str
    ) -> Route: ...


class RouteCache(Protocol):
    async def get(
        self, origin: Coordinate, facility_id: str, profile: str
    ) -> Optional[Route]: ...

    async def put(
        self, origin: Coordinate, facility_id: str, profile: str, route: Route
    ) -> None: ...


def fallback_route(origin: Coordinate, destination: Coordinate) -> Route:
    distance = haversine_km(origin, destination)
    return Route(
        coordinates=(origin, destination),
        distance=distance,
        duration=distance * FALLBACK_MINUTES_PER_KM,
        is_fallback=True,
    )


def ranked_route(facility: Facility, route: Route) -> RankedRoute:
    return RankedRoute(
        facility=facility,
        route=route,
        road_distance=route.distance,
        estimated_time=route.duration,
    )


def fallback_ranked_route(origin: Coordinate, facility: Facility) -> RankedRoute:
    """Entry for a destination whose routing task itself blew up."""
    return RankedRoute(
        facility=facility,
        route=fallback_route(origin, facility.position),
        road_distance=facility.distance,
        estimated_time=facility.distance * FALLBACK_MINUTES_PER_KM,
    )


def sort_by_urgency(routes: Iterable[RankedRoute]) -> list[RankedRoute]:
    return sorted(routes, key=lambda r: r.urgency_score, reverse=True)


def shortest_route(routes: Iterable[RankedRoute]) -> Optional[RankedRoute]:
    """Minimum ``road_distance``; the earliest entry wins ties."""
    best = None
    for route in routes:
        if best is None or route.road_distance < best.road_distance:
            best = route
    return best


class RoutingOrchestrator:
    def __init__(
        self,
        provider: RoutingProvider,
        profile: str = "driving",
        cache: Optional[RouteCache] = None,
    ):
        self.provider = provider
        self.profile = profile
        self.cache = cache

    async def route_one(
        self,
        origin: Coordinate,
        destination: Coordinate,
        profile: Optional[str] = None,
    ) -> Route:
        """Provider route, or a straight-line fallback. Never raises."""
        try:
            return await self.provider.fetch_route(
                origin, destination, profile or self.profile
            )
        except Exception as exc:
            logger.warning("Road routing failed, using direct path: %s", exc)
            return fallback_route(origin, destination)

    async def route_many(
        self, origin: Coordinate, facilities: Iterable[Facility]
    ) -> list[RankedRoute]:
        """One ``RankedRoute`` per facility, in input order."""
        facilities = list(facilities)
        results = await asyncio.gather(
            *(self._route_facility(origin, f) for f in facilities),
            return_exceptions=True,
        )

        routes = []
        for facility, result in zip(facilities, results):
            if isinstance(result, BaseException):
                logger.warning(
                    "Routing to %s failed: %s", facility.id, result
                )
                routes.append(fallback_ranked_route(origin, facility))
            else:
                routes.append(ranked_route(facility, result))
        return routes

    async def _route_facility(self, origin: Coordinate, facility: Facility) -> Route:
        if self.cache is not None:
            cached = await self.cache.get(origin, facility.id, self.profile)
            if cached is not None:
                return cached

        route = await self.route_one(origin, facility.position)

        if self.cache is not None and not route.is_fallback:
            await self.cache.put(origin, facility.id, self.profile, route)
        return route
