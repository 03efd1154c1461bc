"""
Pydantic schemas for path requests, results and entity components.
"""

from .paths import (
    Vector3,
    AgentParameters,
    PathRequest,
    PathStatus,
    ProviderStatus,
    WaypointAction,
    Waypoint,
    ErrorKind,
    PathResult,
    RetryPolicy,
)
from .components import (
    Transform,
    NavAgent,
    PlayerUnit,
    Movable,
    PathInfo,
)

__all__ = [
    "Vector3",
    "AgentParameters",
    "PathRequest",
    "PathStatus",
    "ProviderStatus",
    "WaypointAction",
    "Waypoint",
    "ErrorKind",
    "PathResult",
    "RetryPolicy",
    "Transform",
    "NavAgent",
    "PlayerUnit",
    "Movable",
    "PathInfo",
]
