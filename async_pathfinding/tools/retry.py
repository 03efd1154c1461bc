"""
Retry Coordinator

Wraps the computation engine in a bounded retry loop with a fixed delay
between attempts. Provider failures are mostly transient (the navmesh is
not ready yet, a computation stalls), so every failure kind is retried
the same way and attempts are cheap and bounded in count.
"""

import asyncio
from typing import Awaitable, Callable, Optional

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    wait_fixed,
)

from ..schemas.paths import ErrorKind, PathRequest, PathResult, RetryPolicy
from .engine import DEFAULT_TIMEOUT, ComputationEngine

logger = structlog.get_logger(__name__)


def _is_failure(result: PathResult) -> bool:
    return not result.success


def _error_text(retry_state: RetryCallState) -> str:
    outcome = retry_state.outcome
    if outcome is None:
        return "unknown error"
    if outcome.failed:
        return str(outcome.exception()) or type(outcome.exception()).__name__
    return outcome.result().error or "unknown error"


class RetryCoordinator:
    """
    Compute a path with bounded retries.

    Never raises for a failed computation: exhaustion is returned as a
    normal failed PathResult.
    """

    def __init__(
        self,
        engine: ComputationEngine,
        default_timeout: float = DEFAULT_TIMEOUT,
        default_policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize coordinator.

        Args:
            engine: Computation engine used for each attempt
            default_timeout: Per-attempt timeout in seconds
            default_policy: Policy used when a call passes none
            sleep: Coroutine used for inter-attempt delays
        """
        self.engine = engine
        self.default_timeout = default_timeout
        self.default_policy = default_policy or RetryPolicy()
        self._sleep = sleep

    async def compute_with_retry(
        self,
        request: PathRequest,
        policy: Optional[RetryPolicy] = None,
    ) -> PathResult:
        """
        Run up to ``policy.max_attempts`` computations.

        Args:
            request: Path request, reused unchanged for every attempt
            policy: Retry policy; defaults to the coordinator's policy

        Returns:
            First successful result, or a RETRIES_EXHAUSTED failure
        """
        policy = policy or self.default_policy

        def exhausted(retry_state: RetryCallState) -> PathResult:
            last_error = _error_text(retry_state)
            logger.warning(
                "Path computation retries exhausted",
                attempts=retry_state.attempt_number,
                last_error=last_error,
            )
            return PathResult.failed(
                f"failed after {retry_state.attempt_number} attempts; last error: {last_error}",
                ErrorKind.RETRIES_EXHAUSTED,
                attempts=retry_state.attempt_number,
            )

        def before_sleep(retry_state: RetryCallState) -> None:
            logger.info(
                "Path computation attempt failed, retrying",
                attempt=retry_state.attempt_number,
                max_attempts=policy.max_attempts,
                delay=policy.inter_attempt_delay,
                error=_error_text(retry_state),
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(policy.max_attempts),
            wait=wait_fixed(policy.inter_attempt_delay),
            retry=retry_if_result(_is_failure) | retry_if_exception_type(Exception),
            retry_error_callback=exhausted,
            before_sleep=before_sleep,
            sleep=self._sleep,
        )

        attempts = 0

        async def attempt() -> PathResult:
            nonlocal attempts
            attempts += 1
            return await self.engine.compute(request, self.default_timeout)

        result = await retrying(attempt)

        if result.success:
            logger.debug("Path computation succeeded", attempts=attempts)
            return result.model_copy(update={"attempts": attempts})
        return result


async def compute_path_with_retry(
    engine: ComputationEngine,
    request: PathRequest,
    max_attempts: int = 3,
    inter_attempt_delay: float = 0.2,
    timeout: float = DEFAULT_TIMEOUT,
) -> PathResult:
    """
    Compute a path with retries (convenience function).

    Args:
        engine: Computation engine
        request: Path request
        max_attempts: Total attempts
        inter_attempt_delay: Seconds between failed attempts
        timeout: Per-attempt timeout in seconds

    Returns:
        PathResult
    """
    coordinator = RetryCoordinator(engine, default_timeout=timeout)
    return await coordinator.compute_with_retry(
        request,
        RetryPolicy(max_attempts=max_attempts, inter_attempt_delay=inter_attempt_delay),
    )
