"""
Path Provider Interface

Abstract boundary to the external service that actually computes routes.
A submitted computation cannot be cancelled: once ``submit`` returns, the
provider keeps working on it until it reaches a terminal status, whether
or not anyone is still polling.
"""

from abc import ABC, abstractmethod
from typing import Any, Tuple

from ..schemas.paths import AgentParameters, ProviderStatus, Vector3, Waypoint


class PathProviderError(Exception):
    """Base exception for provider adapter errors"""
    pass


class PathProvider(ABC):
    """
    Asynchronous route computation service.

    Handles are opaque to callers; only the provider that issued a handle
    can interpret it.
    """

    @abstractmethod
    async def submit(self, start: Vector3, goal: Vector3, agent: AgentParameters) -> Any:
        """Start a computation and return its handle"""
        pass

    @abstractmethod
    async def status(self, handle: Any) -> ProviderStatus:
        """Read the current status of a computation"""
        pass

    @abstractmethod
    async def waypoints(self, handle: Any) -> Tuple[Waypoint, ...]:
        """Ordered waypoints; only valid once status is SUCCESS"""
        pass

    async def close(self) -> None:
        """Release adapter resources"""
        return None
