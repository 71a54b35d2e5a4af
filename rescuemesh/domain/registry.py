"""
Device registry: the single owner of ``Device`` state.

Unknown ids are never auto-created; updates and removals that reference
them are no-ops.  A device goes offline once its last report is older than
the staleness timeout, and comes back online on its next report.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from .entities import Coordinate, Device
from .enums import WorkRole

logger = logging.getLogger(__name__)

DEFAULT_STALE_TIMEOUT_MS = 30_000


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DeviceRegistry:
    def __init__(self):
        self._devices: dict[str, Device] = {}

    def __contains__(self, device_id: str) -> bool:
        return device_id in self._devices

    def __len__(self) -> int:
        return len(self._devices)

    def get(self, device_id: str) -> Optional[Device]:
        return self._devices.get(device_id)

    def all(self) -> list[Device]:
        return list(self._devices.values())

    def register(
        self, device_id: str, name: str, role: WorkRole = WorkRole.WORKER
    ) -> Device:
        """Register *device_id*; an existing entry is replaced."""
        if device_id in self._devices:
            logger.info("Re-registering device %s", device_id)
        device = Device(id=device_id, name=name, work_role=WorkRole(role))
        self._devices[device_id] = device
        return device

    def update_location(
        self,
        device_id: str,
        position: Coordinate,
        accuracy: float = 0.0,
        at: Optional[datetime] = None,
    ) -> Optional[Device]:
        device = self._devices.get(device_id)
        if device is None:
            logger.debug("Location update for unknown device %s ignored", device_id)
            return None
        device.position = position
        device.accuracy = accuracy
        device.last_update = at or utcnow()
        device.is_online = True
        return device

    def remove(self, device_id: str) -> Optional[Device]:
        return self._devices.pop(device_id, None)

    def sweep_stale(
        self,
        now: Optional[datetime] = None,
        timeout_ms: int = DEFAULT_STALE_TIMEOUT_MS,
    ) -> list[str]:
        """Mark silent devices offline.  Returns the ids that changed."""
        now = now or utcnow()
        timeout = timedelta(milliseconds=timeout_ms)
        changed = []
        for device in self._devices.values():
            if device.last_update is None or not device.is_online:
                continue
            if now - device.last_update > timeout:
                device.is_online = False
                changed.append(device.id)
        return changed
