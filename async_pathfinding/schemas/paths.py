"""
Path Schemas

Pydantic models shared by the provider adapters, the computation engine
and the retry coordinator. All of them are frozen: a request or a result
is never mutated once created.
"""

import math
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Vector3(BaseModel):
    """Point in world space."""

    model_config = ConfigDict(frozen=True)

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    @field_validator("x", "y", "z")
    @classmethod
    def _finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("coordinates must be finite")
        return value

    def distance_to(self, other: "Vector3") -> float:
        return math.sqrt(
            (other.x - self.x) ** 2 + (other.y - self.y) ** 2 + (other.z - self.z) ** 2
        )

    def lerp(self, other: "Vector3", t: float) -> "Vector3":
        return Vector3(
            x=self.x + (other.x - self.x) * t,
            y=self.y + (other.y - self.y) * t,
            z=self.z + (other.z - self.z) * t,
        )


class AgentParameters(BaseModel):
    """
    Movement constraints of the agent a route is computed for.

    Defaults are tuned for long-distance routes: a small radius for
    better clearance and a wide waypoint spacing to keep the route short.
    """

    model_config = ConfigDict(frozen=True)

    radius: float = Field(default=6.0, gt=0, description="Agent radius")
    height: float = Field(default=5.0, gt=0, description="Agent height")
    max_slope: float = Field(default=89.0, ge=0, le=90, description="Max climbable slope in degrees")
    waypoint_spacing: float = Field(default=10.0, gt=0, description="Distance between waypoints")
    can_jump: bool = True


class PathRequest(BaseModel):
    """One path computation request: start, goal and agent parameters."""

    model_config = ConfigDict(frozen=True)

    start: Vector3
    goal: Vector3
    agent: AgentParameters = Field(default_factory=AgentParameters)


class PathStatus(str, Enum):
    """Provider-side status of a submitted computation"""

    PENDING = "pending"
    NO_PATH_YET = "no_path_yet"
    SUCCESS = "success"
    FAILED = "failed"


class ProviderStatus(BaseModel):
    """Status report returned by a provider on each poll"""

    model_config = ConfigDict(frozen=True)

    status: PathStatus
    reason: Optional[str] = None

    @property
    def in_progress(self) -> bool:
        return self.status in (PathStatus.PENDING, PathStatus.NO_PATH_YET)

    def describe(self) -> str:
        if self.reason:
            return f"{self.status.value}: {self.reason}"
        return self.status.value


class WaypointAction(str, Enum):
    """Movement action needed to reach a waypoint"""

    WALK = "walk"
    JUMP = "jump"


class Waypoint(BaseModel):
    """One point along a computed route."""

    model_config = ConfigDict(frozen=True)

    position: Vector3
    action: WaypointAction = WaypointAction.WALK


class ErrorKind(str, Enum):
    """Why a computation did not produce a route"""

    PROVIDER_TIMEOUT = "provider_timeout"
    PROVIDER_NO_PATH_YET_EXHAUSTED = "provider_no_path_yet_exhausted"
    PROVIDER_FAILURE = "provider_failure"
    RETRIES_EXHAUSTED = "retries_exhausted"


class PathResult(BaseModel):
    """
    Terminal outcome of a computation.

    Exactly one of ``waypoints`` (on success) or ``error`` (on failure)
    is populated. Waypoint order runs from the start-adjacent point to
    the goal-adjacent point.
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    waypoints: Optional[Tuple[Waypoint, ...]] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    attempts: int = Field(default=1, ge=1)

    @model_validator(mode="after")
    def _check_exclusive(self) -> "PathResult":
        if self.success:
            if self.waypoints is None or self.error is not None:
                raise ValueError("a successful result carries waypoints and no error")
        elif self.error is None or self.waypoints is not None:
            raise ValueError("a failed result carries an error and no waypoints")
        return self

    @classmethod
    def ok(cls, waypoints, attempts: int = 1) -> "PathResult":
        return cls(success=True, waypoints=tuple(waypoints), attempts=attempts)

    @classmethod
    def failed(
        cls,
        error: str,
        error_kind: Optional[ErrorKind] = None,
        attempts: int = 1,
    ) -> "PathResult":
        return cls(success=False, error=error, error_kind=error_kind, attempts=attempts)


class RetryPolicy(BaseModel):
    """Bounded retry configuration"""

    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(default=3, ge=1, description="Total attempts, first one included")
    inter_attempt_delay: float = Field(default=0.2, ge=0, description="Seconds between failed attempts")
