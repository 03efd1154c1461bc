"""
Path Calculate System

Per-frame system that starts a path computation whenever an entity gains
the NavAgent capability, and attaches route progress once the
computation succeeds.

Computations run as independent asyncio tasks and may outlive the frame,
the capability, or the entity itself. Every trigger takes a fresh value
from a monotonically increasing generation counter; a finished
computation is applied only if its generation is still the entity's
current one and the entity still exists.
"""

import asyncio
import itertools
from typing import Optional

import structlog

from ..schemas.components import Movable, NavAgent, PathInfo, PlayerUnit, Transform
from ..schemas.paths import AgentParameters, PathRequest, PathResult, RetryPolicy, Vector3
from ..tools.retry import RetryCoordinator
from ..tools.waypoint_sink import WaypointSink
from .world import World

logger = structlog.get_logger(__name__)


class PathCalculateSystem:
    """
    Edge-triggered path calculation.

    Example:
        system = PathCalculateSystem(coordinator, goal_position=Vector3(x=10, y=0, z=5))
        system.setup(world)        # before agents spawn
        system.run(world)          # once per frame
        await system.drain()       # on shutdown
    """

    def __init__(
        self,
        coordinator: RetryCoordinator,
        goal_position: Vector3,
        agent_parameters: Optional[AgentParameters] = None,
        policy: Optional[RetryPolicy] = None,
        sink: Optional[WaypointSink] = None,
    ):
        """
        Initialize system.

        Args:
            coordinator: Retry coordinator used for every computation
            goal_position: Target every agent is routed to
            agent_parameters: Movement constraints for the provider
            policy: Retry policy; coordinator default when omitted
            sink: Optional receiver for debug route markers
        """
        self.coordinator = coordinator
        self.goal_position = goal_position
        self.agent_parameters = agent_parameters or AgentParameters()
        self.policy = policy
        self.sink = sink

        self._counter = itertools.count(1)
        self._generations: dict[int, int] = {}
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        """Computations still in flight"""
        return len(self._tasks)

    def generation(self, entity: int) -> Optional[int]:
        return self._generations.get(entity)

    def setup(self, world: World) -> None:
        """Register the component changes this system consumes"""
        world.track(NavAgent)

    def run(self, world: World) -> None:
        """Process NavAgent changes recorded since the previous frame"""
        for change in world.query_changed(NavAgent):
            entity = change.entity

            if change.removed:
                self._invalidate(world, entity)
                continue

            if not change.added:
                continue

            if not world.contains(entity):
                continue

            if world.get(entity, PlayerUnit) is not None:
                continue

            transform = world.get(entity, Transform)
            if transform is None:
                logger.warning("Entity has no Transform component", entity=entity)
                continue

            request = PathRequest(
                start=transform.position,
                goal=self.goal_position,
                agent=self.agent_parameters,
            )
            generation = next(self._counter)
            self._generations[entity] = generation

            task = asyncio.create_task(
                self._compute_and_apply(world, entity, generation, request),
                name=f"path-calculate-{entity}-{generation}",
            )
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

            logger.debug("Path computation started", entity=entity, generation=generation)

    def apply(self, world: World, entity: int, generation: int, result: PathResult) -> bool:
        """
        Apply a finished computation to the entity.

        Returns:
            True if route progress was attached
        """
        current = self._generations.get(entity)
        if current != generation:
            logger.debug(
                "Discarding stale path result",
                entity=entity,
                generation=generation,
                current_generation=current,
            )
            return False

        if not world.contains(entity):
            logger.debug("Entity removed before path was computed", entity=entity)
            self._generations.pop(entity, None)
            return False

        if not result.success:
            logger.warning("Path computation failed", entity=entity, error=result.error)
            return False

        waypoints = result.waypoints or ()
        if self.sink is not None:
            self.sink.show(entity, waypoints)

        world.insert(entity, PathInfo.from_waypoints(waypoints, self.goal_position))
        world.insert(entity, Movable())

        logger.info(
            "Path attached",
            entity=entity,
            waypoints=len(waypoints),
            attempts=result.attempts,
        )
        return True

    async def drain(self) -> None:
        """Wait for every in-flight computation to settle"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def _compute_and_apply(
        self,
        world: World,
        entity: int,
        generation: int,
        request: PathRequest,
    ) -> None:
        try:
            result = await self.coordinator.compute_with_retry(request, self.policy)
        except Exception:
            logger.exception("Path computation raised", entity=entity)
            return

        self.apply(world, entity, generation, result)

    def _invalidate(self, world: World, entity: int) -> None:
        if entity not in self._generations:
            return
        if world.contains(entity):
            self._generations[entity] = next(self._counter)
        else:
            self._generations.pop(entity, None)
