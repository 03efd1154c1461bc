"""
Path provider adapters, the computation engine and the retry coordinator.
"""

from .provider import PathProvider, PathProviderError
from .simulated_provider import SimulatedPathProvider
from .http_provider import HttpPathProvider
from .engine import ComputationEngine, EngineState, DEFAULT_POLL_INTERVAL, DEFAULT_TIMEOUT
from .retry import RetryCoordinator, compute_path_with_retry
from .waypoint_sink import WaypointSink, LoggingWaypointSink

__all__ = [
    "PathProvider",
    "PathProviderError",
    "SimulatedPathProvider",
    "HttpPathProvider",
    "ComputationEngine",
    "EngineState",
    "DEFAULT_POLL_INTERVAL",
    "DEFAULT_TIMEOUT",
    "RetryCoordinator",
    "compute_path_with_retry",
    "WaypointSink",
    "LoggingWaypointSink",
]
