"""Unit tests for the device registry and staleness sweep."""

from datetime import datetime, timedelta, timezone

import pytest

from rescuemesh.domain.entities import Coordinate
from rescuemesh.domain.enums import WorkRole
from rescuemesh.domain.registry import DeviceRegistry
from tests.conftest import ORIGIN

NOW = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def registry():
    reg = DeviceRegistry()
    reg.register("a", "Worker-A")
    return reg


class TestRegistration:
    def test_new_device_defaults(self, registry):
        device = registry.get("a")
        assert device.name == "Worker-A"
        assert device.position is None
        assert device.last_update is None
        assert device.is_online
        assert device.work_role is WorkRole.WORKER

    def test_register_same_id_replaces(self, registry):
        registry.update_location("a", ORIGIN, at=NOW)
        registry.register("a", "Renamed", WorkRole.EMERGENCY_RESPONDER)
        assert len(registry) == 1
        assert registry.get("a").name == "Renamed"
        assert registry.get("a").position is None

    def test_remove(self, registry):
        assert registry.remove("a").id == "a"
        assert "a" not in registry
        assert registry.remove("a") is None


class TestLocationUpdates:
    def test_update_sets_fields(self, registry):
        device = registry.update_location("a", ORIGIN, accuracy=12.5, at=NOW)
        assert device.position == ORIGIN
        assert device.accuracy == 12.5
        assert device.last_update == NOW

    def test_unknown_device_is_not_created(self, registry):
        assert registry.update_location("ghost", ORIGIN, at=NOW) is None
        assert "ghost" not in registry
        assert len(registry) == 1

    def test_update_brings_device_back_online(self, registry):
        registry.update_location("a", ORIGIN, at=NOW - timedelta(minutes=5))
        registry.sweep_stale(NOW)
        assert not registry.get("a").is_online

        registry.update_location("a", Coordinate(22.6, 88.27), at=NOW)
        assert registry.get("a").is_online


class TestSweep:
    @pytest.mark.parametrize(
        "age_ms, online",
        [(30_001, False), (30_000, True), (29_999, True), (0, True), (120_000, False)],
    )
    def test_timeout_boundary(self, registry, age_ms, online):
        registry.update_location("a", ORIGIN, at=NOW - timedelta(milliseconds=age_ms))
        registry.sweep_stale(NOW, timeout_ms=30_000)
        assert registry.get("a").is_online is online

    def test_never_reported_device_is_untouched(self, registry):
        assert registry.sweep_stale(NOW + timedelta(days=1)) == []
        assert registry.get("a").is_online

    def test_reports_only_changes(self, registry):
        registry.register("b", "Worker-B")
        registry.update_location("a", ORIGIN, at=NOW - timedelta(seconds=40))
        registry.update_location("b", ORIGIN, at=NOW - timedelta(seconds=10))

        assert registry.sweep_stale(NOW) == ["a"]
        assert registry.sweep_stale(NOW) == []

    def test_custom_timeout(self, registry):
        registry.update_location("a", ORIGIN, at=NOW - timedelta(seconds=6))
        assert registry.sweep_stale(NOW, timeout_ms=5_000) == ["a"]
