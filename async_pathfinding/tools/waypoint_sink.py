"""Waypoint Sinks - debug markers for computed routes"""
from abc import ABC, abstractmethod
from typing import Sequence

import structlog

from ..schemas.paths import Waypoint

logger = structlog.get_logger(__name__)

# Marker colours by role (RGB)
MARKER_COLORS = {
    "start": (0, 255, 0),
    "middle": (255, 255, 255),
    "end": (255, 0, 0),
}


class WaypointSink(ABC):
    """Receives every successfully computed route"""

    @abstractmethod
    def show(self, entity: int, waypoints: Sequence[Waypoint]) -> None:
        pass


def marker_role(index: int, count: int) -> str:
    if index == 0:
        return "start"
    if index == count - 1:
        return "end"
    return "middle"


class LoggingWaypointSink(WaypointSink):
    """Emit one structured log event per route marker"""

    def show(self, entity: int, waypoints: Sequence[Waypoint]) -> None:
        count = len(waypoints)
        for index, waypoint in enumerate(waypoints):
            role = marker_role(index, count)
            logger.info(
                "Path marker",
                marker=f"PathPoint_{entity}_{index}",
                role=role,
                color=MARKER_COLORS[role],
                action=waypoint.action.value,
                x=waypoint.position.x,
                y=waypoint.position.y,
                z=waypoint.position.z,
            )
