"""
Async Pathfinding Package

Asynchronous path computation against a non-cancellable provider: submit,
poll, bound the wait with a timeout and retry a bounded number of times.

Quick Start:
    from async_pathfinding import ComputationEngine, RetryCoordinator
    from async_pathfinding.tools import SimulatedPathProvider
    from async_pathfinding.schemas import PathRequest, Vector3

    engine = ComputationEngine(SimulatedPathProvider())
    coordinator = RetryCoordinator(engine)
    result = await coordinator.compute_with_retry(
        PathRequest(start=Vector3(), goal=Vector3(x=30, y=0, z=10))
    )
"""

from .tools.engine import ComputationEngine
from .tools.retry import RetryCoordinator, compute_path_with_retry
from .systems.path_calculate import PathCalculateSystem
from .config_loader import load_config, get_config, Config

__version__ = "1.0.0"

__all__ = [
    "ComputationEngine",
    "RetryCoordinator",
    "compute_path_with_retry",
    "PathCalculateSystem",
    "load_config",
    "get_config",
    "Config",
]
