"""
Pathfinding Runner Main Entry Point

Builds the provider, engine, retry coordinator and path calculation
system from configuration, then drives a simulated world at a fixed
frame rate until every spawned agent has a route or has given up.

Run with: python -m async_pathfinding.main
"""

import asyncio
import logging
import random
from typing import Optional

import structlog
from dotenv import load_dotenv

from .config_loader import Config, load_config
from .schemas.components import NavAgent, PathInfo, Transform
from .schemas.paths import Vector3
from .systems.path_calculate import PathCalculateSystem
from .systems.world import InMemoryWorld
from .tools.engine import ComputationEngine
from .tools.http_provider import HttpPathProvider
from .tools.provider import PathProvider
from .tools.retry import RetryCoordinator
from .tools.simulated_provider import SimulatedPathProvider
from .tools.waypoint_sink import LoggingWaypointSink

logger = structlog.get_logger(__name__)


def configure_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """Configure structured logging"""
    logging.basicConfig(format="%(message)s", level=log_level.upper())

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
            if log_format == "json"
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def build_provider(config: Config) -> PathProvider:
    """Create the configured path provider"""
    if config.provider.kind == "http":
        return HttpPathProvider(
            base_url=config.provider.base_url,
            timeout=config.provider.request_timeout_seconds,
        )
    return SimulatedPathProvider(
        latency_seconds=config.provider.simulated_latency_seconds,
        failure_rate=config.provider.simulated_failure_rate,
        retention_seconds=config.provider.simulated_retention_seconds,
    )


class PathfindingRunner:
    """
    Pathfinding Runner

    Wires the components together and runs the frame loop.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        config_path: Optional[str] = None,
        provider: Optional[PathProvider] = None,
    ):
        """
        Initialize runner.

        Args:
            config: Ready configuration; loaded from config_path when omitted
            config_path: Path to config.yaml
            provider: Provider override, built from config when omitted
        """
        self.config = config or load_config(config_path)
        self.provider = provider or build_provider(self.config)
        self.engine = ComputationEngine(
            self.provider,
            poll_interval=self.config.compute.poll_interval_seconds,
        )
        self.coordinator = RetryCoordinator(
            self.engine,
            default_timeout=self.config.compute.attempt_timeout_seconds,
            default_policy=self.config.retry.to_policy(),
        )
        self.system = PathCalculateSystem(
            self.coordinator,
            goal_position=self.config.target.goal_position(),
            agent_parameters=self.config.agent.to_parameters(),
            sink=LoggingWaypointSink() if self.config.visualization.enabled else None,
        )
        self.world = InMemoryWorld()
        self.system.setup(self.world)

    def spawn_agents(self, count: int, rng: Optional[random.Random] = None) -> list[int]:
        """Spawn agents scattered around the origin"""
        rng = rng or random.Random()
        entities = []
        for _ in range(count):
            position = Vector3(x=rng.uniform(-50, 50), y=1.5, z=rng.uniform(-50, 50))
            entities.append(self.world.spawn(Transform(position=position), NavAgent()))
        return entities

    async def run(self) -> dict[str, int]:
        """
        Run frames until all computations settle.

        Returns:
            Counts of routed and unrouted agents
        """
        logger.info(
            "Starting pathfinding run",
            service=self.config.service.name,
            agents=self.config.runner.agents,
            provider=self.config.provider.kind,
        )

        entities = self.spawn_agents(self.config.runner.agents)
        frame_time = 1.0 / self.config.runner.frame_rate

        try:
            for frame in range(self.config.runner.max_frames):
                self.system.run(self.world)
                if frame > 0 and self.system.pending == 0:
                    break
                await asyncio.sleep(frame_time)
            else:
                logger.warning("Frame limit reached with computations pending", pending=self.system.pending)

            await self.system.drain()
        finally:
            await self.provider.close()

        routed = sum(1 for entity in entities if self.world.get(entity, PathInfo) is not None)
        summary = {"routed": routed, "unrouted": len(entities) - routed}

        logger.info("Pathfinding run finished", **summary)
        return summary


def main(config_path: Optional[str] = None) -> None:
    """Run the pathfinding demo"""
    load_dotenv()

    config = load_config(config_path)
    configure_logging(config.observability.log_level, config.observability.log_format)

    runner = PathfindingRunner(config=config)
    asyncio.run(runner.run())


if __name__ == "__main__":
    main()
