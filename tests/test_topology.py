"""Unit tests for topology construction and role assignment."""

import pytest

from rescuemesh.domain.entities import Coordinate
from rescuemesh.domain.enums import SpanningStrategy, TopologyMode, WorkRole
from rescuemesh.domain.topology import (
    TopologyEngine,
    assign_roles,
    emergency_star,
    greedy_spanning,
    kruskal_spanning,
    work_optimal_paths,
)
from tests.conftest import ORIGIN, make_device, make_facility, north_of

ALL_MODES = [TopologyMode.EMERGENCY, TopologyMode.WORK_OPTIMAL, TopologyMode.MST, "bogus"]


def east_of(origin: Coordinate, steps: int, step_deg: float = 0.01) -> Coordinate:
    return Coordinate(origin.latitude, origin.longitude + steps * step_deg)


@pytest.fixture
def engine():
    return TopologyEngine()


class TestEmptyInput:
    @pytest.mark.parametrize("mode", ALL_MODES)
    def test_no_devices(self, engine, mode):
        connections, roles = engine.build(mode, [], [make_facility("h", ORIGIN)])
        assert connections == []
        assert roles == {}

    @pytest.mark.parametrize("mode", ALL_MODES)
    def test_single_device(self, engine, mode):
        devices = [make_device("a", ORIGIN)]
        connections, _ = engine.build(mode, devices, [make_facility("h", ORIGIN)])
        assert connections == []

    @pytest.mark.parametrize("mode", ALL_MODES)
    def test_offline_and_unpositioned_devices_are_ignored(self, engine, mode):
        devices = [
            make_device("a", ORIGIN),
            make_device("b", north_of(ORIGIN, 1), online=False),
            make_device("c", None),
        ]
        connections, roles = engine.build(mode, devices, [make_facility("h", ORIGIN)])
        assert connections == []
        assert set(roles) == {"a"}


class TestEmergencyStar:
    def test_two_device_scenario(self, engine):
        """A and B 5 km apart, facility within 2 km of A."""
        a = make_device("a", ORIGIN)
        b = make_device("b", north_of(ORIGIN, 5.0))
        hospital = make_facility("h", north_of(ORIGIN, -0.5))

        connections, roles = engine.build(TopologyMode.EMERGENCY, [a, b], [hospital])

        assert len(connections) == 1
        [c] = connections
        assert (c.source_id, c.target_id) == ("a", "b")
        assert c.is_emergency_path
        assert c.distance == pytest.approx(5.0, abs=0.01)
        assert c.positions == (a.position, b.position)
        assert roles["a"].work_role is WorkRole.EMERGENCY_RESPONDER
        assert roles["a"].emergency_responder
        assert roles["b"].work_role is WorkRole.WORKER

    def test_hub_connects_to_everyone_else(self):
        devices = [make_device(str(i), east_of(ORIGIN, i)) for i in range(5)]
        hospital = make_facility("h", east_of(ORIGIN, 3))

        connections = emergency_star(devices, [hospital])

        assert len(connections) == 4
        assert {c.source_id for c in connections} == {"3"}
        assert {c.target_id for c in connections} == {"0", "1", "2", "4"}

    def test_hub_follows_top_facility_only(self):
        devices = [make_device("west", east_of(ORIGIN, -2)), make_device("east", east_of(ORIGIN, 2))]
        top = make_facility("top", east_of(ORIGIN, 2), priority=20)
        other = make_facility("other", east_of(ORIGIN, -2), priority=1)
        assert {c.source_id for c in emergency_star(devices, [top, other])} == {"east"}

    def test_no_facilities_no_connections(self):
        devices = [make_device("a", ORIGIN), make_device("b", north_of(ORIGIN, 1))]
        assert emergency_star(devices, []) == []

    def test_unknown_mode_behaves_like_emergency(self, engine):
        devices = [make_device(str(i), east_of(ORIGIN, i)) for i in range(3)]
        facilities = [make_facility("h", ORIGIN)]
        bogus, _ = engine.build("bogus", devices, facilities)
        emergency, _ = engine.build(TopologyMode.EMERGENCY, devices, facilities)
        assert bogus == emergency


class TestWorkOptimal:
    def test_score_without_facilities(self):
        a, b = make_device("a", ORIGIN), make_device("b", north_of(ORIGIN, 2.0))
        [path] = work_optimal_paths([a, b], [])
        assert path.work_score == pytest.approx(100 - path.distance * 10)

    def test_facility_bonus_stacks_for_top_three_only(self):
        a, b = make_device("a", ORIGIN), make_device("b", north_of(ORIGIN, 1.0))
        near = [make_facility(f"h{i}", north_of(ORIGIN, 0.1 * i)) for i in range(4)]
        [path] = work_optimal_paths([a, b], near)
        assert path.work_score == pytest.approx(100 - path.distance * 10 + 3 * 20)

    def test_bonus_needs_an_endpoint_within_two_km(self):
        a, b = make_device("a", ORIGIN), make_device("b", north_of(ORIGIN, 1.0))
        far = make_facility("far", north_of(ORIGIN, 6.0))
        [path] = work_optimal_paths([a, b], [far])
        assert path.work_score == pytest.approx(100 - path.distance * 10)

    def test_sorted_best_first(self):
        devices = [make_device(str(i), east_of(ORIGIN, i * i)) for i in range(5)]
        paths = work_optimal_paths(devices, [])
        scores = [p.work_score for p in paths]
        assert scores == sorted(scores, reverse=True)
        assert len(paths) == 10

    def test_edge_cap_is_twice_device_count(self, engine):
        devices = [make_device(str(i), east_of(ORIGIN, i)) for i in range(6)]
        connections, _ = engine.build(TopologyMode.WORK_OPTIMAL, devices, [])
        assert len(connections) == 12  # 15 pairs, capped

    def test_small_graph_keeps_all_pairs(self, engine):
        devices = [make_device(str(i), east_of(ORIGIN, i)) for i in range(3)]
        connections, _ = engine.build(TopologyMode.WORK_OPTIMAL, devices, [])
        assert len(connections) == 3
        assert not any(c.is_emergency_path for c in connections)


class TestSpanning:
    @pytest.mark.parametrize("count", [2, 3, 5, 8])
    @pytest.mark.parametrize("strategy", list(SpanningStrategy))
    def test_never_more_than_n_minus_one(self, count, strategy):
        engine = TopologyEngine(strategy)
        devices = [
            make_device(str(i), Coordinate(22.5 + (i % 3) * 0.013, 88.2 + i * 0.007))
            for i in range(count)
        ]
        connections, _ = engine.build(TopologyMode.MST, devices, [])
        assert len(connections) <= count - 1

    def test_chain_picks_adjacent_links(self):
        # gaps of 1, 3 and 5 steps along one parallel
        devices = [make_device(str(i), east_of(ORIGIN, i * i)) for i in range(4)]
        tree = greedy_spanning(devices, [])
        assert {frozenset((c.source_id, c.target_id)) for c in tree} == {
            frozenset(("0", "1")), frozenset(("1", "2")), frozenset(("2", "3")),
        }

    def test_greedy_leaves_separate_clusters_apart(self):
        """Two tight pairs 10 km apart: greedy stops at two edges."""
        far = north_of(ORIGIN, 10.0)
        devices = [
            make_device("a", ORIGIN),
            make_device("b", east_of(ORIGIN, 1, 0.001)),
            make_device("c", far),
            make_device("d", east_of(far, 1, 0.001)),
        ]
        greedy = greedy_spanning(devices, [])
        kruskal = kruskal_spanning(devices, [])

        assert len(greedy) == 2
        assert len(kruskal) == 3
        bridge = max(kruskal, key=lambda c: c.distance)
        assert bridge.distance == pytest.approx(10.0, abs=0.2)

    def test_engine_uses_configured_strategy(self):
        far = north_of(ORIGIN, 10.0)
        devices = [
            make_device("a", ORIGIN),
            make_device("b", east_of(ORIGIN, 1, 0.001)),
            make_device("c", far),
            make_device("d", east_of(far, 1, 0.001)),
        ]
        greedy, _ = TopologyEngine().build(TopologyMode.MST, devices, [])
        kruskal, _ = TopologyEngine(SpanningStrategy.KRUSKAL).build(
            TopologyMode.MST, devices, []
        )
        assert (len(greedy), len(kruskal)) == (2, 3)


class TestRoles:
    def test_exactly_one_responder(self):
        devices = [make_device(str(i), east_of(ORIGIN, i)) for i in range(6)]
        roles = assign_roles(devices, [make_facility("h", east_of(ORIGIN, 4))])
        responders = [k for k, r in roles.items() if r.emergency_responder]
        assert responders == ["4"]
        assert all(
            r.work_role is WorkRole.WORKER for k, r in roles.items() if k != "4"
        )

    def test_single_device_is_responder(self):
        roles = assign_roles([make_device("solo", ORIGIN)], [make_facility("h", ORIGIN)])
        assert roles["solo"].emergency_responder

    def test_no_facilities_no_responder(self):
        devices = [make_device("a", ORIGIN), make_device("b", north_of(ORIGIN, 1))]
        roles = assign_roles(devices, [])
        assert not any(r.emergency_responder for r in roles.values())
        assert all(r.work_role is WorkRole.WORKER for r in roles.values())

    def test_roles_do_not_touch_devices(self, engine):
        a = make_device("a", ORIGIN)
        engine.build(TopologyMode.EMERGENCY, [a], [make_facility("h", ORIGIN)])
        assert a.work_role is WorkRole.WORKER
        assert not hasattr(a, "emergency_responder")
