"""
Network Topology Construction
=============================

Builds the worker-to-worker connection graph over the *online, positioned*
devices.  Three strategies:

1. **emergency**    -- star around the hub: the device nearest the
   top-ranked facility connects to every other device.
2. **work-optimal** -- score every pair
   ``100 - 10 x distance`` (+20 per top-3 facility within 2 km of either
   endpoint), keep the best ``2 x N`` edges.  The result may be
   disconnected; the mode favours useful pairs over coverage.
3. **mst**          -- pairs sorted by distance, greedily accepting an edge
   while one of its endpoints is still unconnected, stopping at ``N - 1``.

Note on "mst"
-------------
The greedy rule never joins two components that are already non-empty, so
with several clusters it can return fewer than ``N - 1`` edges and a
disconnected forest.  ``SpanningStrategy.KRUSKAL`` swaps in a union-find
minimum spanning tree behind the same entry point.

Complexity
----------
N = online devices, F = facilities considered (<= 3).

* emergency:    O(N)
* work-optimal: O(N^2 x F + N^2 log N)
* mst:          O(N^2 log N)

Role assignment is a projection: it returns ``DeviceRole`` values keyed by
device id and never mutates ``Device``.
"""

from __future__ import annotations

from itertools import combinations
from typing import Iterable, Optional, Sequence

from .distance import haversine_km
from .entities import Connection, Device, DeviceRole, Facility
from .enums import SpanningStrategy, TopologyMode, WorkRole

PAIR_BASE_SCORE = 100.0
PAIR_DISTANCE_PENALTY = 10.0  # per km
FACILITY_BONUS = 20.0
FACILITY_BONUS_RADIUS_KM = 2.0
FACILITY_BONUS_LIMIT = 3  # only the top-ranked facilities count
EDGES_PER_DEVICE = 2


def locatable(devices: Iterable[Device]) -> list[Device]:
    return [d for d in devices if d.is_locatable]


def nearest_to(nodes: Sequence[Device], facility: Facility) -> Optional[Device]:
    """Device closest to *facility*; the earliest one wins ties."""
    best, best_dist = None, 0.0
    for node in nodes:
        dist = haversine_km(node.position, facility.position)
        if best is None or dist < best_dist:
            best, best_dist = node, dist
    return best


# ── Strategies ────────────────────────────────────────────────────────


def emergency_star(
    nodes: Sequence[Device], facilities: Sequence[Facility]
) -> list[Connection]:
    if len(nodes) < 2 or not facilities:
        return []

    hub = nearest_to(nodes, facilities[0])
    return [
        Connection(
            source_id=hub.id,
            target_id=node.id,
            positions=(hub.position, node.position),
            distance=haversine_km(hub.position, node.position),
            is_emergency_path=True,
        )
        for node in nodes
        if node.id != hub.id
    ]


def work_optimal_paths(
    nodes: Sequence[Device], facilities: Sequence[Facility]
) -> list[Connection]:
    """Every pair, scored, best first.  The caller applies the edge cap."""
    if len(nodes) < 2:
        return []

    anchors = [f.position for f in facilities[:FACILITY_BONUS_LIMIT]]
    paths = []
    for a, b in combinations(nodes, 2):
        dist = haversine_km(a.position, b.position)
        score = PAIR_BASE_SCORE - dist * PAIR_DISTANCE_PENALTY
        for anchor in anchors:
            if (
                haversine_km(a.position, anchor) < FACILITY_BONUS_RADIUS_KM
                or haversine_km(b.position, anchor) < FACILITY_BONUS_RADIUS_KM
            ):
                score += FACILITY_BONUS
        paths.append(
            Connection(
                source_id=a.id,
                target_id=b.id,
                positions=(a.position, b.position),
                distance=dist,
                work_score=score,
            )
        )
    return sorted(paths, key=lambda c: c.work_score, reverse=True)


def greedy_spanning(
    nodes: Sequence[Device], facilities: Sequence[Facility]
) -> list[Connection]:
    paths = sorted(work_optimal_paths(nodes, facilities), key=lambda c: c.distance)
    limit = len(nodes) - 1
    tree: list[Connection] = []
    connected: set[str] = set()
    for path in paths:
        if len(tree) >= limit:
            break
        if path.source_id not in connected or path.target_id not in connected:
            tree.append(path)
            connected.add(path.source_id)
            connected.add(path.target_id)
    return tree


def kruskal_spanning(
    nodes: Sequence[Device], facilities: Sequence[Facility]
) -> list[Connection]:
    paths = sorted(work_optimal_paths(nodes, facilities), key=lambda c: c.distance)
    parent = {node.id: node.id for node in nodes}

    def find(x: str) -> str:
        while parent[x] != x:
            parent[x] = parent[parent[x]]
            x = parent[x]
        return x

    limit = len(nodes) - 1
    tree: list[Connection] = []
    for path in paths:
        if len(tree) >= limit:
            break
        root_a, root_b = find(path.source_id), find(path.target_id)
        if root_a != root_b:
            parent[root_a] = root_b
            tree.append(path)
    return tree


# ── Roles ─────────────────────────────────────────────────────────────


def assign_roles(
    nodes: Sequence[Device], facilities: Sequence[Facility]
) -> dict[str, DeviceRole]:
    """Everyone is a worker except the device nearest the top facility."""
    roles = {node.id: DeviceRole() for node in nodes}
    if nodes and facilities:
        responder = nearest_to(nodes, facilities[0])
        roles[responder.id] = DeviceRole(
            work_role=WorkRole.EMERGENCY_RESPONDER, emergency_responder=True
        )
    return roles


# ── Engine facade ─────────────────────────────────────────────────────


class TopologyEngine:
    """High-level API used by the coordination service."""

    def __init__(self, spanning: SpanningStrategy = SpanningStrategy.GREEDY):
        self.spanning = SpanningStrategy(spanning)

    def build(
        self,
        mode: TopologyMode,
        devices: Iterable[Device],
        facilities: Sequence[Facility],
    ) -> tuple[list[Connection], dict[str, DeviceRole]]:
        nodes = locatable(devices)
        return (
            self.connections(mode, nodes, facilities),
            assign_roles(nodes, facilities),
        )

    def connections(
        self,
        mode: TopologyMode,
        nodes: Sequence[Device],
        facilities: Sequence[Facility],
    ) -> list[Connection]:
        if len(nodes) < 2:
            return []

        mode = TopologyMode.coerce(mode)
        if mode is TopologyMode.WORK_OPTIMAL:
            return work_optimal_paths(nodes, facilities)[
                : len(nodes) * EDGES_PER_DEVICE
            ]
        if mode is TopologyMode.MST:
            if self.spanning is SpanningStrategy.KRUSKAL:
                return kruskal_spanning(nodes, facilities)
            return greedy_spanning(nodes, facilities)
        return emergency_star(nodes, facilities)
