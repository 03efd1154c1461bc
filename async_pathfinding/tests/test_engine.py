"""
Tests for the Computation Engine
"""

import asyncio

import pytest

from ..schemas.paths import ErrorKind, PathStatus, ProviderStatus
from ..tools.engine import ComputationEngine
from .fakes import ScriptedProvider, SlowSubmitProvider, make_request, make_waypoints

NO_PATH_YET = ProviderStatus(status=PathStatus.NO_PATH_YET)
PENDING = ProviderStatus(status=PathStatus.PENDING)
SUCCESS = ProviderStatus(status=PathStatus.SUCCESS)
BLOCKED = ProviderStatus(status=PathStatus.FAILED, reason="blocked")


class TestCompute:
    """Tests for ComputationEngine.compute"""

    @pytest.mark.asyncio
    async def test_success_after_no_path_yet_polls(self):
        provider = ScriptedProvider(
            [NO_PATH_YET, NO_PATH_YET, NO_PATH_YET, SUCCESS],
            waypoints=make_waypoints(2),
        )
        engine = ComputationEngine(provider, poll_interval=0.01)

        result = await engine.compute(make_request(), timeout=1.0)

        assert result.success is True
        assert len(result.waypoints) == 2
        assert result.error is None
        assert provider.status_calls == 4

    @pytest.mark.asyncio
    async def test_success_after_no_path_yet_polls_within_40ms(self):
        provider = ScriptedProvider(
            [NO_PATH_YET, NO_PATH_YET, NO_PATH_YET, SUCCESS],
            waypoints=make_waypoints(2),
        )
        engine = ComputationEngine(provider, poll_interval=0.01)

        result = await engine.compute(make_request(), timeout=0.04)

        assert result.success is True
        assert len(result.waypoints) == 2
        assert provider.status_calls == 4

    @pytest.mark.asyncio
    async def test_waypoint_order_preserved(self):
        waypoints = make_waypoints(6)
        provider = ScriptedProvider([SUCCESS], waypoints=waypoints)
        engine = ComputationEngine(provider)

        result = await engine.compute(make_request(), timeout=1.0)

        assert result.waypoints == waypoints

    @pytest.mark.asyncio
    async def test_request_forwarded_to_provider(self):
        provider = ScriptedProvider([SUCCESS], waypoints=make_waypoints(2))
        engine = ComputationEngine(provider)
        request = make_request()

        await engine.compute(request, timeout=1.0)

        assert provider.submissions == [(request.start, request.goal, request.agent)]

    @pytest.mark.asyncio
    async def test_failure_status_stops_polling(self):
        provider = ScriptedProvider([PENDING, BLOCKED])
        engine = ComputationEngine(provider, poll_interval=0.01)

        result = await engine.compute(make_request(), timeout=1.0)

        assert result.success is False
        assert result.waypoints is None
        assert "blocked" in result.error
        assert result.error_kind == ErrorKind.PROVIDER_FAILURE
        assert provider.status_calls == 2

    @pytest.mark.asyncio
    async def test_timeout_returns_once_and_stops_polling(self):
        provider = ScriptedProvider([PENDING])
        engine = ComputationEngine(provider, poll_interval=0.01)

        result = await engine.compute(make_request(), timeout=0.05)
        calls_at_return = provider.status_calls

        assert result.success is False
        assert "timeout" in result.error
        assert result.error_kind == ErrorKind.PROVIDER_TIMEOUT

        await asyncio.sleep(0.05)
        assert provider.status_calls == calls_at_return

    @pytest.mark.asyncio
    async def test_no_path_yet_until_timeout(self):
        provider = ScriptedProvider([NO_PATH_YET])
        engine = ComputationEngine(provider, poll_interval=0.01)

        result = await engine.compute(make_request(), timeout=0.05)

        assert result.success is False
        assert result.error == "timeout after 0.05s"
        assert result.error_kind == ErrorKind.PROVIDER_NO_PATH_YET_EXHAUSTED

    @pytest.mark.asyncio
    async def test_slow_submission_times_out(self):
        engine = ComputationEngine(SlowSubmitProvider(submit_delay=0.2))

        result = await asyncio.wait_for(engine.compute(make_request(), timeout=0.05), timeout=1.0)

        assert result.success is False
        assert result.error == "timeout after 0.05s"
        assert result.error_kind == ErrorKind.PROVIDER_TIMEOUT
        await asyncio.sleep(0.25)

    @pytest.mark.asyncio
    async def test_timeout_leaves_inflight_submission_running(self):
        provider = SlowSubmitProvider(submit_delay=0.2)
        engine = ComputationEngine(provider, poll_interval=0.01)

        result = await engine.compute(make_request(), timeout=0.05)

        assert result.error_kind == ErrorKind.PROVIDER_TIMEOUT
        assert engine.abandoned_calls == 1

        await asyncio.sleep(0.25)

        assert provider.submit_cancelled is False
        assert provider.submitted is True
        assert provider.status_calls == 0
        assert engine.abandoned_calls == 0

    @pytest.mark.asyncio
    async def test_caller_cancellation_reaches_provider(self):
        provider = SlowSubmitProvider(submit_delay=1.0)
        engine = ComputationEngine(provider)

        task = asyncio.create_task(engine.compute(make_request(), timeout=0.5))
        await asyncio.sleep(0.02)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        await asyncio.sleep(0)

        assert provider.submit_cancelled is True
        assert engine.abandoned_calls == 0

    @pytest.mark.asyncio
    async def test_late_success_is_discarded(self):
        provider = ScriptedProvider([SUCCESS], waypoints=make_waypoints(2), waypoint_delay=0.2)
        engine = ComputationEngine(provider)

        result = await engine.compute(make_request(), timeout=0.05)
        await asyncio.sleep(0.25)

        assert result.success is False
        assert "timeout" in result.error
        assert engine.abandoned_calls == 0

    @pytest.mark.asyncio
    async def test_submit_error_becomes_failure(self):
        provider = ScriptedProvider([SUCCESS], submit_error=RuntimeError("navmesh not ready"))
        engine = ComputationEngine(provider)

        result = await engine.compute(make_request(), timeout=1.0)

        assert result.success is False
        assert "navmesh not ready" in result.error
        assert result.error_kind == ErrorKind.PROVIDER_FAILURE

    @pytest.mark.asyncio
    async def test_invalid_waypoints_become_failure(self):
        provider = ScriptedProvider([SUCCESS], waypoints=("not a waypoint",))
        engine = ComputationEngine(provider)

        result = await asyncio.wait_for(engine.compute(make_request(), timeout=1.0), timeout=0.5)

        assert result.success is False
        assert result.error.startswith("path computation failed:")
        assert result.error_kind == ErrorKind.PROVIDER_FAILURE

    @pytest.mark.asyncio
    async def test_malformed_status_becomes_failure(self):
        provider = ScriptedProvider([None])
        engine = ComputationEngine(provider)

        result = await asyncio.wait_for(engine.compute(make_request(), timeout=1.0), timeout=0.5)

        assert result.success is False
        assert result.error_kind == ErrorKind.PROVIDER_FAILURE
        assert provider.status_calls == 1

    @pytest.mark.asyncio
    async def test_non_positive_timeout_rejected(self):
        engine = ComputationEngine(ScriptedProvider([SUCCESS]))

        with pytest.raises(ValueError):
            await engine.compute(make_request(), timeout=0)


def test_non_positive_poll_interval_rejected():
    with pytest.raises(ValueError):
        ComputationEngine(ScriptedProvider([SUCCESS]), poll_interval=0)
