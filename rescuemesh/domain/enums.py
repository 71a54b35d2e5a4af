"""Domain enumerations."""

import enum
import logging

logger = logging.getLogger(__name__)


class TopologyMode(str, enum.Enum):
    EMERGENCY = "emergency"
    WORK_OPTIMAL = "work-optimal"
    MST = "mst"

    @classmethod
    def coerce(cls, value: "str | TopologyMode") -> "TopologyMode":
        """Map unknown mode names to ``EMERGENCY``."""
        try:
            return cls(value)
        except ValueError:
            logger.warning("Unknown topology mode %r, using emergency", value)
            return cls.EMERGENCY


class WorkRole(str, enum.Enum):
    WORKER = "worker"
    EMERGENCY_RESPONDER = "emergency-responder"


class FacilityType(str, enum.Enum):
    HOSPITAL = "hospital"
    CLINIC = "clinic"


class SpanningStrategy(str, enum.Enum):
    GREEDY = "greedy"  # connect-an-unconnected-endpoint heuristic
    KRUSKAL = "kruskal"  # union-find, true minimum spanning forest
