"""
HTTP Navigation Service Client

Provider adapter for a remote navigation service exposing asynchronous
path jobs:

- POST /paths - submit a computation, returns {"job_id"}
- GET /paths/{job_id} - current status, returns {"status", "reason"}
- GET /paths/{job_id}/waypoints - ordered waypoints once finished
"""

import os
from typing import Any, Optional, Tuple

import httpx
import structlog

from ..schemas.paths import (
    AgentParameters,
    PathStatus,
    ProviderStatus,
    Vector3,
    Waypoint,
)
from .provider import PathProvider, PathProviderError

logger = structlog.get_logger(__name__)


class HttpPathProvider(PathProvider):
    """
    Client for an HTTP navigation service.

    The service offers no way to cancel a job; abandoned jobs run to
    completion server-side.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 2.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize navigation client.

        Args:
            base_url: Navigation service base URL
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests)
        """
        self.base_url = base_url or os.getenv("NAV_SERVICE_URL", "http://nav-service:8080/api/v1")
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def submit(self, start: Vector3, goal: Vector3, agent: AgentParameters) -> str:
        client = await self._get_client()
        payload = {
            "start": start.model_dump(),
            "goal": goal.model_dump(),
            "agent": agent.model_dump(),
        }

        try:
            response = await client.post("/paths", json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Path job submission failed", error=str(e))
            raise PathProviderError(f"submit failed: {e}") from e

        job_id = response.json().get("job_id")
        if not job_id:
            raise PathProviderError("submit response carried no job_id")

        logger.debug("Path job submitted", job_id=job_id)
        return job_id

    async def status(self, handle: str) -> ProviderStatus:
        client = await self._get_client()

        try:
            response = await client.get(f"/paths/{handle}")
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Path job status unavailable", job_id=handle, error=str(e))
            return ProviderStatus(status=PathStatus.FAILED, reason=f"status request failed: {e}")

        data = response.json()
        try:
            status = PathStatus(data.get("status"))
        except ValueError:
            return ProviderStatus(
                status=PathStatus.FAILED,
                reason=f"unknown status {data.get('status')!r}",
            )

        return ProviderStatus(status=status, reason=data.get("reason"))

    async def waypoints(self, handle: str) -> Tuple[Waypoint, ...]:
        client = await self._get_client()

        try:
            response = await client.get(f"/paths/{handle}/waypoints")
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise PathProviderError(f"waypoints request failed: {e}") from e

        items: list[dict[str, Any]] = response.json().get("waypoints", [])
        return tuple(Waypoint.model_validate(item) for item in items)

    async def close(self) -> None:
        """Close HTTP client"""
        if self._client:
            await self._client.aclose()
            self._client = None
