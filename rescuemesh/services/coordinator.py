"""
Coordination Service
====================

Owns the session state (registry, facilities, routes, topology, selection)
and publishes a full ``NetworkSnapshot`` to every subscriber after each
mutating event.

Cycle on a location update
--------------------------
1. Update the registry, rebuild topology, publish.
2. Rank facilities around the new position (radius-bounded).
3. Route to the top-K facilities concurrently, sort by urgency.
4. Apply the auto-route policy, rebuild topology, publish.

Concurrency
-----------
* All state mutation and publication happen under one ``asyncio.Lock``, so
  no subscriber ever sees a half-updated state.
* Network calls (steps 2-3) run *outside* the lock.  Each refresh takes a
  generation number first; when its results come back and a newer refresh
  has started in the meantime, the stale results are dropped.

There is no module-level instance: whoever hosts the session (the FastAPI
app, a test) creates and owns its coordinator.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, Optional

import httpx

from rescuemesh.config import Settings, settings as default_settings
from rescuemesh.domain.entities import (
    Coordinate,
    Device,
    DeviceRole,
    DeviceView,
    Facility,
    NetworkSnapshot,
    RankedRoute,
    WorkContext,
)
from rescuemesh.domain.enums import SpanningStrategy, TopologyMode, WorkRole
from rescuemesh.domain.ranking import HospitalRanker
from rescuemesh.domain.registry import DEFAULT_STALE_TIMEOUT_MS, DeviceRegistry, utcnow
from rescuemesh.domain.routing import (
    RouteCache,
    RoutingOrchestrator,
    ranked_route,
    shortest_route,
    sort_by_urgency,
)
from rescuemesh.domain.selection import RouteSelector
from rescuemesh.domain.topology import TopologyEngine
from rescuemesh.infrastructure.osrm_client import OsrmClient
from rescuemesh.infrastructure.overpass_client import OverpassClient

logger = logging.getLogger(__name__)

Subscriber = Callable[[NetworkSnapshot], None]

STATUS_FACILITY_FALLBACK = "facilities unavailable, showing fallback"
STATUS_ROUTING_FALLBACK = "routing unavailable, showing direct paths"


class CoordinationService:
    def __init__(
        self,
        ranker: HospitalRanker,
        router: RoutingOrchestrator,
        topology: Optional[TopologyEngine] = None,
        *,
        radius_km: float = 2.0,
        routed_count: int = 5,
        stale_timeout_ms: int = DEFAULT_STALE_TIMEOUT_MS,
        max_response_time: int = 15,
    ):
        self.ranker = ranker
        self.router = router
        self.topology = topology or TopologyEngine()
        self.registry = DeviceRegistry()
        self.selector = RouteSelector(auto=True)

        self.radius_km = radius_km
        self.routed_count = routed_count
        self.stale_timeout_ms = stale_timeout_ms

        self.mode = TopologyMode.EMERGENCY
        self.work_context = WorkContext(max_response_time=max_response_time)
        self.facilities: list[Facility] = []
        self.ranked_routes: list[RankedRoute] = []
        self.connections = []
        self.roles: dict[str, DeviceRole] = {}
        self.status = "idle"
        self.origin: Optional[Coordinate] = None

        self._generation = 0
        self._lock = asyncio.Lock()
        self._subscribers: list[Subscriber] = []
        self._snapshot = self._build_snapshot()

    # ── Subscription ──────────────────────────────────────────────────

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Add *callback*; returns a function that removes it again."""
        self._subscribers.append(callback)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def snapshot(self) -> NetworkSnapshot:
        """The most recently published snapshot."""
        return self._snapshot

    # ── Devices ───────────────────────────────────────────────────────

    async def register_device(
        self, device_id: str, name: str, role: WorkRole = WorkRole.WORKER
    ) -> Device:
        async with self._lock:
            device = self.registry.register(device_id, name, role)
            logger.info("Device %s (%s) registered", device_id, name)
            self._rebuild_and_publish()
            return device

    async def update_location(
        self,
        device_id: str,
        position: Coordinate,
        accuracy: float = 0.0,
        at: Optional[datetime] = None,
    ) -> bool:
        """Record a position report, then refresh facilities around it.

        Returns False (and publishes nothing) for an unregistered device.
        """
        async with self._lock:
            device = self.registry.update_location(device_id, position, accuracy, at)
            if device is None:
                return False
            self._rebuild_and_publish()

        await self.refresh_hospitals(position)
        return True

    async def remove_device(self, device_id: str) -> bool:
        async with self._lock:
            if self.registry.remove(device_id) is None:
                return False
            logger.info("Device %s removed", device_id)
            self._rebuild_and_publish()
            return True

    async def sweep_stale(self, now: Optional[datetime] = None) -> list[str]:
        """Mark silent devices offline; publishes only if something changed."""
        async with self._lock:
            changed = self.registry.sweep_stale(now, self.stale_timeout_ms)
            if changed:
                logger.info("Devices went offline: %s", ", ".join(changed))
                self._rebuild_and_publish()
            return changed

    # ── Facilities & routes ───────────────────────────────────────────

    async def refresh_hospitals(
        self, origin: Coordinate, radius_km: Optional[float] = None
    ) -> bool:
        """Re-rank and re-route around *origin*.

        Returns False when a newer refresh overtook this one and its results
        were discarded.
        """
        async with self._lock:
            self._generation += 1
            generation = self._generation

        facilities = await self.ranker.rank(origin, radius_km or self.radius_km)
        routes: list[RankedRoute] = []
        if facilities:
            routes = sort_by_urgency(
                await self.router.route_many(origin, facilities[: self.routed_count])
            )

        async with self._lock:
            if generation != self._generation:
                logger.debug(
                    "Discarding refresh %d, superseded by %d",
                    generation,
                    self._generation,
                )
                return False

            self.origin = origin
            self.facilities = facilities
            self.ranked_routes = routes
            auto_selected = self.selector.offer(routes)
            self.status = self._refresh_status(facilities, routes, auto_selected)
            self._rebuild_and_publish()
            return True

    # ── Modes ─────────────────────────────────────────────────────────

    async def set_topology_mode(self, mode: TopologyMode | str) -> TopologyMode:
        async with self._lock:
            self.mode = TopologyMode.coerce(mode)
            self._rebuild_and_publish()
            return self.mode

    async def set_emergency_mode(self, enabled: bool) -> None:
        """Toggle emergency mode; switching it on forces the star topology."""
        async with self._lock:
            self.work_context = replace(self.work_context, emergency_mode=enabled)
            if enabled:
                self.mode = TopologyMode.EMERGENCY
            self._rebuild_and_publish()

    async def set_auto_routing(self, enabled: bool) -> None:
        async with self._lock:
            self.selector.auto = enabled
            if self.selector.offer(self.ranked_routes):
                self.status = self._selected_status("Auto-selected")
            self._publish()

    # ── Route selection ───────────────────────────────────────────────

    async def select_route(self, facility_id: str) -> Optional[RankedRoute]:
        """Select the route to *facility_id*.

        Facilities outside the routed top-K are routed on demand from the
        last refresh origin.  Returns None for an unknown facility, or when a
        refresh moved the origin while routing and no longer routes it.
        """
        async with self._lock:
            route = next((r for r in self.ranked_routes if r.id == facility_id), None)
            facility = next((f for f in self.facilities if f.id == facility_id), None)
            origin = self.origin

        if route is None:
            if facility is None or origin is None:
                return None
            route = ranked_route(
                facility, await self.router.route_one(origin, facility.position)
            )

        async with self._lock:
            if self.origin != origin:
                # A refresh landed meanwhile; only its own routes are current.
                route = next(
                    (r for r in self.ranked_routes if r.id == facility_id), None
                )
                if route is None:
                    logger.debug("Discarding stale on-demand route to %s", facility_id)
                    return None
            self.selector.select(route)
            self.status = self._selected_status("Selected")
            self._publish()
        return route

    async def select_shortest_route(self) -> Optional[RankedRoute]:
        async with self._lock:
            route = shortest_route(self.ranked_routes)
            if route is None:
                return None
            self.selector.select(route)
            self.status = self._selected_status("Selected shortest")
            self._publish()
            return route

    async def clear_selection(self) -> None:
        async with self._lock:
            self.selector.clear()
            self._publish()

    # ── Internals (caller holds the lock) ─────────────────────────────

    def _rebuild_and_publish(self) -> None:
        self.connections, self.roles = self.topology.build(
            self.mode, self.registry.all(), self.facilities
        )
        self._publish()

    def _publish(self) -> None:
        snapshot = self._build_snapshot()
        self._snapshot = snapshot
        for callback in list(self._subscribers):
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Snapshot subscriber %r failed", callback)

    def _build_snapshot(self) -> NetworkSnapshot:
        routes = tuple(self.ranked_routes)
        return NetworkSnapshot(
            devices=tuple(
                DeviceView.of(d, self.roles.get(d.id)) for d in self.registry.all()
            ),
            connections=tuple(self.connections),
            facilities=tuple(self.facilities),
            ranked_routes=routes,
            topology=self.mode,
            work_context=self.work_context,
            emergency_route=routes[0] if routes else None,
            shortest_route=shortest_route(routes),
            selected_route=self.selector.selected,
            auto_routing=self.selector.auto,
            status=self.status,
            generation=self._generation,
            created_at=utcnow(),
        )

    def _selected_status(self, verb: str) -> str:
        route = self.selector.selected
        return f"{verb}: {route.name} ({route.road_distance:.1f} km)"

    def _refresh_status(
        self,
        facilities: list[Facility],
        routes: list[RankedRoute],
        auto_selected: bool,
    ) -> str:
        if facilities and all(f.is_fallback for f in facilities):
            return STATUS_FACILITY_FALLBACK
        if routes and all(r.route.is_fallback for r in routes):
            return STATUS_ROUTING_FALLBACK
        if auto_selected:
            return self._selected_status("Auto-selected")
        if not facilities:
            return "no facilities within radius"
        return "hospitals updated"


def create_coordinator(
    http_client: httpx.AsyncClient,
    route_cache: Optional[RouteCache] = None,
    config: Settings = default_settings,
) -> CoordinationService:
    """Wire the production collaborators from *config*."""
    ranker = HospitalRanker(
        OverpassClient(
            http_client, config.overpass_url, config.overpass_timeout_seconds
        )
    )
    router = RoutingOrchestrator(
        OsrmClient(http_client, config.osrm_base_url),
        profile=config.routing_profile,
        cache=route_cache,
    )
    return CoordinationService(
        ranker,
        router,
        TopologyEngine(SpanningStrategy(config.spanning_strategy)),
        radius_km=config.hospital_radius_km,
        routed_count=config.routed_hospital_count,
        stale_timeout_ms=config.stale_timeout_ms,
        max_response_time=config.max_response_time_minutes,
    )
