"""
Computation Engine

Submits one request to a path provider, polls it at a fixed interval and
races the poll loop against a timeout. Whichever side settles first
decides the result; the other side is abandoned.

The provider has no cancellation primitive. When the timeout wins, the
engine stops polling but the provider computation keeps running until
it finishes on its own, and its eventual result is discarded. Keep the
timeout and poll interval small enough that these leftover computations
stay cheap.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

import structlog

from ..schemas.paths import ErrorKind, PathRequest, PathResult, PathStatus
from .provider import PathProvider

logger = structlog.get_logger(__name__)

DEFAULT_POLL_INTERVAL = 0.01
DEFAULT_TIMEOUT = 5.0


class EngineState(str, Enum):
    """Lifecycle of a single computation"""

    SUBMITTED = "submitted"
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass
class _Attempt:
    """Mutable bookkeeping for one in-flight computation"""

    outcome: asyncio.Future
    state: EngineState = EngineState.SUBMITTED
    last_status: Optional[PathStatus] = None
    polls: int = 0


class ComputationEngine:
    """
    Run one path computation with a bounded wait.

    Example:
        engine = ComputationEngine(provider)
        result = await engine.compute(request, timeout=5.0)
    """

    def __init__(
        self,
        provider: PathProvider,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        """
        Initialize engine.

        Args:
            provider: Path provider to submit requests to
            poll_interval: Seconds between status reads
        """
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self.provider = provider
        self.poll_interval = poll_interval

        self._abandoned: set[asyncio.Task] = set()

    @property
    def abandoned_calls(self) -> int:
        """Provider calls still running for attempts that already timed out"""
        return len(self._abandoned)

    async def compute(self, request: PathRequest, timeout: float) -> PathResult:
        """
        Compute a path, giving up after ``timeout`` seconds.

        Args:
            request: Path request to submit
            timeout: Seconds from submission before the attempt times out

        Returns:
            Terminal PathResult, produced exactly once
        """
        if timeout <= 0:
            raise ValueError("timeout must be positive")

        loop = asyncio.get_running_loop()
        attempt = _Attempt(outcome=loop.create_future())

        poller = asyncio.create_task(self._poll(request, attempt))
        timer = asyncio.create_task(self._expire(timeout, attempt))

        try:
            return await attempt.outcome
        finally:
            if not timer.done():
                timer.cancel()
            if not poller.done():
                if attempt.outcome.cancelled():
                    # Caller was cancelled, nobody reads the outcome
                    poller.cancel()
                else:
                    # The provider call in flight runs to completion; its outcome is dropped
                    self._abandoned.add(poller)
                    poller.add_done_callback(self._abandoned.discard)

    def _settle(self, attempt: _Attempt, state: EngineState, result: PathResult) -> bool:
        """Resolve the attempt unless the other side already did"""
        if attempt.outcome.done():
            logger.debug(
                "Discarding late computation outcome",
                state=state.value,
                settled_state=attempt.state.value,
            )
            return False

        attempt.state = state
        attempt.outcome.set_result(result)
        return True

    def _settled_meanwhile(self, attempt: _Attempt, step: str, handle: Any) -> bool:
        if not attempt.outcome.done():
            return False
        logger.debug(
            "Provider call returned after attempt settled",
            step=step,
            handle=handle,
            settled_state=attempt.state.value,
        )
        return True

    async def _poll(self, request: PathRequest, attempt: _Attempt) -> None:
        handle = None
        try:
            handle = await self.provider.submit(request.start, request.goal, request.agent)
            if self._settled_meanwhile(attempt, "submit", handle):
                return

            attempt.state = EngineState.POLLING

            while True:
                report = await self.provider.status(handle)
                if self._settled_meanwhile(attempt, "status", handle):
                    return

                attempt.polls += 1
                attempt.last_status = report.status

                if report.status == PathStatus.SUCCESS:
                    waypoints = await self.provider.waypoints(handle)
                    if self._settle(attempt, EngineState.SUCCEEDED, PathResult.ok(waypoints)):
                        logger.debug(
                            "Path computed",
                            handle=handle,
                            polls=attempt.polls,
                            waypoints=len(waypoints),
                        )
                    return

                if not report.in_progress:
                    self._settle(
                        attempt,
                        EngineState.FAILED,
                        PathResult.failed(
                            f"path computation failed, status: {report.describe()}",
                            ErrorKind.PROVIDER_FAILURE,
                        ),
                    )
                    return

                await asyncio.sleep(self.poll_interval)
                if attempt.outcome.done():
                    return

        except Exception as e:
            if self._settle(
                attempt,
                EngineState.FAILED,
                PathResult.failed(f"path computation failed: {e}", ErrorKind.PROVIDER_FAILURE),
            ):
                logger.warning("Path computation failed", handle=handle, error=str(e))

    async def _expire(self, timeout: float, attempt: _Attempt) -> None:
        await asyncio.sleep(timeout)

        if attempt.last_status == PathStatus.NO_PATH_YET:
            kind = ErrorKind.PROVIDER_NO_PATH_YET_EXHAUSTED
        else:
            kind = ErrorKind.PROVIDER_TIMEOUT

        if self._settle(
            attempt,
            EngineState.TIMED_OUT,
            PathResult.failed(f"timeout after {timeout}s", kind),
        ):
            logger.warning(
                "Path computation timed out, abandoning provider call",
                timeout=timeout,
                polls=attempt.polls,
                last_status=attempt.last_status.value if attempt.last_status else None,
            )
