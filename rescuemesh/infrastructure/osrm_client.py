"""
OSRM routing-provider client.

Talks to ``/route/v1/{profile}/{lon,lat;lon,lat}`` and normalises the
answer into a ``Route``: GeoJSON ``[lon, lat]`` pairs become
``Coordinate`` objects, metres become km and seconds become minutes.

Every failure (transport error, non-2xx status, ``code != "Ok"``, empty
route list, malformed body) is raised as ``RoutingProviderError``.
"""

from __future__ import annotations

import httpx

from rescuemesh.domain.entities import Coordinate, DownstreamUnavailable, Route


class RoutingProviderError(DownstreamUnavailable):
    """The routing provider could not produce a route."""


class OsrmClient:
    def __init__(self, client: httpx.AsyncClient, base_url: str):
        self.client = client
        self.base_url = base_url.rstrip("/")

    @staticmethod
    def format_coordinates(*points: Coordinate) -> str:
        return ";".join(f"{p.longitude},{p.latitude}" for p in points)

    async def fetch_route(
        self, origin: Coordinate, destination: Coordinate, profile: str = "driving"
    ) -> Route:
        url = (
            f"{self.base_url}/route/v1/{profile}/"
            f"{self.format_coordinates(origin, destination)}"
        )
        try:
            response = await self.client.get(
                url, params={"overview": "full", "geometries": "geojson"}
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise RoutingProviderError(f"Routing service unavailable: {exc}") from exc

        if data.get("code") != "Ok":
            raise RoutingProviderError(
                f"OSRM error: {data.get('message', data.get('code', 'unknown'))}"
            )
        routes = data.get("routes") or []
        if not routes:
            raise RoutingProviderError("No route found")

        try:
            best = routes[0]
            return Route(
                coordinates=tuple(
                    Coordinate.from_lon_lat(pair)
                    for pair in best["geometry"]["coordinates"]
                ),
                distance=best["distance"] / 1000,
                duration=best["duration"] / 60,
            )
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise RoutingProviderError(f"Malformed OSRM route: {exc}") from exc
