"""
Entity Components

Components the path calculation system reads from and writes to an
entity. The movement side of the simulation owns PathInfo after it is
attached and advances the waypoint indices as the agent walks.
"""

from typing import Tuple

from pydantic import BaseModel, Field

from .paths import Vector3, Waypoint


class Transform(BaseModel):
    """World position of an entity"""
    position: Vector3 = Field(default_factory=Vector3)


class NavAgent(BaseModel):
    """Capability marker: the entity steers itself along computed routes"""
    max_speed: float = Field(default=16.0, gt=0)
    radius: float = Field(default=2.0, gt=0)


class PlayerUnit(BaseModel):
    """Exclusion marker: player-controlled units never get computed routes"""
    player_id: str = ""


class Movable(BaseModel):
    """Marker: the entity has a route and may start moving"""


class PathInfo(BaseModel):
    """Route progress attached to an entity once its route is computed"""
    current_waypoint: int = 0
    next_waypoint: int = 1
    goal_position: Vector3 = Field(default_factory=Vector3)
    is_arrive_next_point: bool = False
    is_arrive_goal: bool = False
    waypoints: Tuple[Waypoint, ...] = ()

    @classmethod
    def from_waypoints(cls, waypoints: Tuple[Waypoint, ...], fallback_goal: Vector3) -> "PathInfo":
        """
        Build initial progress for a fresh route.

        A route with fewer than two waypoints is already complete, so both
        arrival flags start out true and the goal is the last point.
        """
        if len(waypoints) < 2:
            goal = waypoints[-1].position if waypoints else fallback_goal
            return cls(
                goal_position=goal,
                is_arrive_next_point=True,
                is_arrive_goal=True,
                waypoints=waypoints,
            )

        return cls(
            current_waypoint=0,
            next_waypoint=1,
            goal_position=waypoints[1].position,
            waypoints=waypoints,
        )
