"""
Simulated Path Provider

In-process provider for demos and local runs when no navigation service
is reachable. Routes are straight lines from start to goal, split by the
agent's waypoint spacing.
"""

import asyncio
import math
import random
from dataclasses import dataclass, field
from typing import Optional, Tuple
from uuid import uuid4

import structlog

from ..schemas.paths import (
    AgentParameters,
    PathStatus,
    ProviderStatus,
    Vector3,
    Waypoint,
    WaypointAction,
)
from .provider import PathProvider, PathProviderError

logger = structlog.get_logger(__name__)


@dataclass
class _SimulatedJob:
    start: Vector3
    goal: Vector3
    agent: AgentParameters
    status: PathStatus = PathStatus.NO_PATH_YET
    reason: Optional[str] = None
    waypoints: Tuple[Waypoint, ...] = ()
    task: Optional[asyncio.Task] = field(default=None, repr=False)
    expiry: Optional[asyncio.TimerHandle] = field(default=None, repr=False)


class SimulatedPathProvider(PathProvider):
    """
    Simulate asynchronous path computation.

    Each submission runs in its own background task for ``latency_seconds``
    and then either fails with ``"blocked"`` (with probability
    ``failure_rate``) or succeeds with a straight-line route.

    A job is forgotten once its terminal status has been read, or
    ``retention_seconds`` after it finishes if nobody reads it.
    """

    def __init__(
        self,
        latency_seconds: float = 0.05,
        failure_rate: float = 0.0,
        rng: Optional[random.Random] = None,
        retention_seconds: float = 5.0,
    ):
        self.latency_seconds = latency_seconds
        self.failure_rate = failure_rate
        self._rng = rng or random.Random()
        self.retention_seconds = retention_seconds
        self._jobs: dict[str, _SimulatedJob] = {}

    async def submit(self, start: Vector3, goal: Vector3, agent: AgentParameters) -> str:
        handle = f"job-{uuid4().hex[:8]}"
        job = _SimulatedJob(start=start, goal=goal, agent=agent)
        self._jobs[handle] = job
        job.task = asyncio.create_task(self._run(handle, job))
        job.task.add_done_callback(lambda _: self._schedule_expiry(handle))

        logger.debug("Simulated computation submitted", handle=handle)
        return handle

    async def status(self, handle: str) -> ProviderStatus:
        job = self._get_job(handle)
        if job.status == PathStatus.FAILED:
            self._forget(handle)
        return ProviderStatus(status=job.status, reason=job.reason)

    async def waypoints(self, handle: str) -> Tuple[Waypoint, ...]:
        job = self._get_job(handle)
        if job.status != PathStatus.SUCCESS:
            raise PathProviderError(f"waypoints requested for {handle} in status {job.status.value}")
        self._forget(handle)
        return job.waypoints

    @property
    def running_jobs(self) -> int:
        """Computations still running, including ones nobody polls anymore"""
        return sum(1 for job in self._jobs.values() if job.task and not job.task.done())

    @property
    def tracked_jobs(self) -> int:
        """Jobs still held, finished or not"""
        return len(self._jobs)

    async def close(self) -> None:
        """Stop background simulation tasks"""
        for job in self._jobs.values():
            if job.task and not job.task.done():
                job.task.cancel()
            if job.expiry is not None:
                job.expiry.cancel()
        self._jobs.clear()

    def _get_job(self, handle: str) -> _SimulatedJob:
        job = self._jobs.get(handle)
        if job is None:
            raise PathProviderError(f"unknown handle {handle}")
        return job

    def _schedule_expiry(self, handle: str) -> None:
        job = self._jobs.get(handle)
        if job is None:
            return
        loop = asyncio.get_running_loop()
        job.expiry = loop.call_later(self.retention_seconds, self._forget, handle)

    def _forget(self, handle: str) -> None:
        job = self._jobs.pop(handle, None)
        if job is not None and job.expiry is not None:
            job.expiry.cancel()

    async def _run(self, handle: str, job: _SimulatedJob) -> None:
        job.status = PathStatus.PENDING
        await asyncio.sleep(self.latency_seconds)

        if self._rng.random() < self.failure_rate:
            job.reason = "blocked"
            job.status = PathStatus.FAILED
            logger.debug("Simulated computation failed", handle=handle, reason=job.reason)
            return

        try:
            job.waypoints = build_straight_route(job.start, job.goal, job.agent)
        except PathProviderError as e:
            job.reason = str(e)
            job.status = PathStatus.FAILED
            return

        job.status = PathStatus.SUCCESS
        logger.debug("Simulated computation finished", handle=handle, waypoints=len(job.waypoints))


def build_straight_route(
    start: Vector3,
    goal: Vector3,
    agent: AgentParameters,
) -> Tuple[Waypoint, ...]:
    """
    Split the start-goal segment into waypoints spaced by the agent spacing.

    Rises taller than half the agent height are tagged as jumps; a slope
    steeper than the agent can climb fails unless the agent can jump.
    """
    distance = start.distance_to(goal)
    segments = max(1, math.ceil(distance / agent.waypoint_spacing))

    horizontal = math.hypot(goal.x - start.x, goal.z - start.z)
    rise = goal.y - start.y
    slope = math.degrees(math.atan2(abs(rise), horizontal)) if distance else 0.0
    if slope > agent.max_slope and not agent.can_jump:
        raise PathProviderError(f"slope {slope:.1f} exceeds agent max slope {agent.max_slope}")

    step_rise = rise / segments
    points = [start.lerp(goal, i / segments) for i in range(segments + 1)]

    waypoints = [Waypoint(position=points[0], action=WaypointAction.WALK)]
    for point in points[1:]:
        if agent.can_jump and step_rise > agent.height / 2:
            action = WaypointAction.JUMP
        else:
            action = WaypointAction.WALK
        waypoints.append(Waypoint(position=point, action=action))

    return tuple(waypoints)
