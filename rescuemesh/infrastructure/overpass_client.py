"""
Overpass API client -- the facility directory.

Returns the raw ``elements`` list for hospitals and clinics around a point;
scoring and parsing live in ``rescuemesh.domain.ranking``.
"""

from __future__ import annotations

from typing import Any

import httpx

from rescuemesh.domain.entities import Coordinate, DownstreamUnavailable


class FacilityDirectoryError(DownstreamUnavailable):
    """The facility directory query failed or returned garbage."""


_SELECTORS = (
    'node["amenity"="hospital"]',
    'way["amenity"="hospital"]',
    'relation["amenity"="hospital"]',
    'node["amenity"="clinic"]',
    'node["healthcare"="hospital"]',
)


def build_query(origin: Coordinate, radius_m: float, timeout_s: int = 25) -> str:
    around = f"(around:{radius_m:g},{origin.latitude},{origin.longitude})"
    body = " ".join(f"{selector}{around};" for selector in _SELECTORS)
    return f"[out:json][timeout:{timeout_s}]; ( {body} ); out center meta;"


class OverpassClient:
    def __init__(self, client: httpx.AsyncClient, url: str, query_timeout: int = 25):
        self.client = client
        self.url = url
        self.query_timeout = query_timeout

    async def fetch_facilities(
        self, origin: Coordinate, radius_m: float
    ) -> list[dict[str, Any]]:
        query = build_query(origin, radius_m, self.query_timeout)
        try:
            response = await self.client.post(self.url, data={"data": query})
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise FacilityDirectoryError(f"Failed to fetch hospitals: {exc}") from exc

        elements = data.get("elements") if isinstance(data, dict) else None
        if not isinstance(elements, list):
            raise FacilityDirectoryError("Overpass response has no elements list")
        return elements
