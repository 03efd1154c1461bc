"""
Tests for the Path Calculate System
"""

from unittest.mock import AsyncMock

import pytest

from ..schemas.components import Movable, NavAgent, PathInfo, PlayerUnit, Transform
from ..schemas.paths import ErrorKind, PathResult, Vector3
from ..systems.path_calculate import PathCalculateSystem
from ..systems.world import InMemoryWorld
from .fakes import ControlledCoordinator, RecordingWaypointSink, make_waypoints, settle

GOAL = Vector3(x=58.727, y=1.5, z=25.179)


@pytest.fixture
def world():
    return InMemoryWorld()


@pytest.fixture
def coordinator():
    return ControlledCoordinator()


@pytest.fixture
def sink():
    return RecordingWaypointSink()


@pytest.fixture
def system(world, coordinator, sink):
    system = PathCalculateSystem(coordinator, goal_position=GOAL, sink=sink)
    system.setup(world)
    return system


def spawn_agent(world, *extra):
    return world.spawn(Transform(position=Vector3(x=1.0, y=1.5, z=2.0)), NavAgent(), *extra)


class TestTrigger:
    """Edge detection and filtering"""

    @pytest.mark.asyncio
    async def test_new_agent_triggers_one_computation(self, world, coordinator, system):
        spawn_agent(world)

        system.run(world)
        await settle()

        assert len(coordinator.calls) == 1
        request, _ = coordinator.calls[0]
        assert request.start == Vector3(x=1.0, y=1.5, z=2.0)
        assert request.goal == GOAL

    @pytest.mark.asyncio
    async def test_unchanged_capability_does_not_retrigger(self, world, coordinator, system):
        entity = spawn_agent(world)
        system.run(world)
        await settle()

        system.run(world)
        world.insert(entity, NavAgent(max_speed=20.0))
        system.run(world)
        await settle()

        assert len(coordinator.calls) == 1

    @pytest.mark.asyncio
    async def test_player_units_are_skipped(self, world, coordinator, system):
        spawn_agent(world, PlayerUnit(player_id="p1"))

        system.run(world)
        await settle()

        assert coordinator.calls == []

    @pytest.mark.asyncio
    async def test_missing_transform_is_skipped(self, world, coordinator, system):
        world.spawn(NavAgent())

        system.run(world)
        await settle()

        assert coordinator.calls == []

    @pytest.mark.asyncio
    async def test_agent_despawned_same_frame_is_skipped(self, world, coordinator, system):
        entity = spawn_agent(world)
        world.despawn(entity)

        system.run(world)
        await settle()

        assert coordinator.calls == []


class TestApply:
    """Applying finished computations"""

    @pytest.mark.asyncio
    async def test_success_attaches_progress_and_movable(self, world, coordinator, system, sink):
        entity = spawn_agent(world)
        waypoints = make_waypoints(4)

        system.run(world)
        await settle()
        coordinator.calls[0][1].set_result(PathResult.ok(waypoints))
        await system.drain()

        info = world.get(entity, PathInfo)
        assert info is not None
        assert info.current_waypoint == 0
        assert info.next_waypoint == 1
        assert info.goal_position == waypoints[1].position
        assert info.is_arrive_next_point is False
        assert info.is_arrive_goal is False
        assert info.waypoints == waypoints
        assert world.get(entity, Movable) is not None
        assert sink.routes[entity] == waypoints

    @pytest.mark.asyncio
    async def test_single_waypoint_route_is_already_arrived(self, world, coordinator, system):
        entity = spawn_agent(world)
        waypoints = make_waypoints(1)

        system.run(world)
        await settle()
        coordinator.calls[0][1].set_result(PathResult.ok(waypoints))
        await system.drain()

        info = world.get(entity, PathInfo)
        assert info.is_arrive_next_point is True
        assert info.is_arrive_goal is True
        assert info.goal_position == waypoints[0].position

    @pytest.mark.asyncio
    async def test_failure_leaves_entity_unmodified(self, world, coordinator, system, sink):
        entity = spawn_agent(world)

        system.run(world)
        await settle()
        coordinator.calls[0][1].set_result(
            PathResult.failed("failed after 3 attempts; last error: blocked", ErrorKind.RETRIES_EXHAUSTED, attempts=3)
        )
        await system.drain()

        assert world.get(entity, PathInfo) is None
        assert world.get(entity, Movable) is None
        assert entity not in sink.routes

    @pytest.mark.asyncio
    async def test_entity_removed_while_pending(self, world, coordinator, system, sink):
        entity = spawn_agent(world)

        system.run(world)
        await settle()
        world.despawn(entity)
        coordinator.calls[0][1].set_result(PathResult.ok(make_waypoints(3)))
        await system.drain()

        assert not world.contains(entity)
        assert world.get(entity, PathInfo) is None
        assert sink.routes == {}
        assert system.generation(entity) is None

    @pytest.mark.asyncio
    async def test_overlapping_triggers_keep_latest(self, world, coordinator, system):
        entity = spawn_agent(world)
        system.run(world)
        await settle()

        world.remove(entity, NavAgent)
        world.insert(entity, NavAgent())
        system.run(world)
        await settle()
        assert len(coordinator.calls) == 2

        latest = make_waypoints(5)
        stale = make_waypoints(2)
        coordinator.calls[1][1].set_result(PathResult.ok(latest))
        await settle()
        coordinator.calls[0][1].set_result(PathResult.ok(stale))
        await system.drain()

        assert world.get(entity, PathInfo).waypoints == latest

    @pytest.mark.asyncio
    async def test_capability_removed_invalidates_pending(self, world, coordinator, system):
        entity = spawn_agent(world)
        system.run(world)
        await settle()

        world.remove(entity, NavAgent)
        system.run(world)
        coordinator.calls[0][1].set_result(PathResult.ok(make_waypoints(3)))
        await system.drain()

        assert world.get(entity, PathInfo) is None

    def test_stale_generation_is_noop(self, world, system):
        entity = spawn_agent(world)

        applied = system.apply(world, entity, generation=42, result=PathResult.ok(make_waypoints(2)))

        assert applied is False
        assert world.get(entity, PathInfo) is None


    @pytest.mark.asyncio
    async def test_coordinator_result_applied(self, world):
        waypoints = make_waypoints(3)
        coordinator = AsyncMock()
        coordinator.compute_with_retry.return_value = PathResult.ok(waypoints)
        system = PathCalculateSystem(coordinator, goal_position=GOAL)
        system.setup(world)
        entity = spawn_agent(world)

        system.run(world)
        await system.drain()

        coordinator.compute_with_retry.assert_awaited_once()
        request, policy = coordinator.compute_with_retry.await_args.args
        assert request.goal == GOAL
        assert policy is None
        assert world.get(entity, PathInfo).waypoints == waypoints


class TestDrain:
    """Tests for drain and pending bookkeeping"""

    @pytest.mark.asyncio
    async def test_pending_counts_in_flight(self, world, coordinator, system):
        spawn_agent(world)
        spawn_agent(world)

        system.run(world)
        await settle()
        assert system.pending == 2

        for _, future in coordinator.calls:
            future.set_result(PathResult.ok(make_waypoints(2)))
        await system.drain()

        assert system.pending == 0


class TestWaypointSink:
    """Tests for debug marker sinks"""

    def test_marker_roles(self):
        from ..tools.waypoint_sink import marker_role

        assert [marker_role(i, 4) for i in range(4)] == ["start", "middle", "middle", "end"]
        assert marker_role(0, 1) == "start"

    def test_logging_sink_accepts_route(self):
        from ..tools.waypoint_sink import LoggingWaypointSink

        LoggingWaypointSink().show(7, make_waypoints(3))


class TestWorldChanges:
    """Tests for InMemoryWorld change tracking"""

    def test_untracked_types_keep_no_history(self, world):
        world.track(NavAgent)
        entity = spawn_agent(world)
        world.insert(entity, Movable())
        world.despawn(entity)

        assert world.pending_changes() == {"NavAgent": 2}
        assert list(world.query_changed(Transform)) == []

    def test_query_starts_tracking(self, world):
        assert list(world.query_changed(PathInfo)) == []
        entity = spawn_agent(world)
        world.insert(entity, PathInfo.from_waypoints(make_waypoints(2), GOAL))

        changes = list(world.query_changed(PathInfo))

        assert [change.added for change in changes] == [True]
        assert world.pending_changes() == {}

    @pytest.mark.asyncio
    async def test_applied_routes_leave_no_unread_changes(self, world, coordinator, system):
        for _ in range(3):
            spawn_agent(world)

        system.run(world)
        await settle()
        for _, future in coordinator.calls:
            future.set_result(PathResult.ok(make_waypoints(3)))
        await system.drain()
        system.run(world)

        assert world.pending_changes() == {}
