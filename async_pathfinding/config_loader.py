"""
Configuration Loader

Loads pathfinding configuration from YAML file with environment variable substitution.
"""

import os
import re
from typing import Any, Literal, Optional
from pathlib import Path

import yaml
import structlog
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .schemas.paths import AgentParameters, RetryPolicy, Vector3

logger = structlog.get_logger(__name__)


def _substitute_env_vars(value: Any) -> Any:
    """
    Recursively substitute environment variables in configuration.

    Supports format: ${VAR_NAME:-default_value}
    """
    if isinstance(value, str):
        # Pattern: ${VAR:-default} or ${VAR}
        pattern = r"\$\{([^}:]+)(?::-([^}]*))?\}"

        def replace(match):
            var_name = match.group(1)
            default = match.group(2) if match.group(2) is not None else ""
            return os.getenv(var_name, default)

        return re.sub(pattern, replace, value)

    elif isinstance(value, dict):
        return {k: _substitute_env_vars(v) for k, v in value.items()}

    elif isinstance(value, list):
        return [_substitute_env_vars(item) for item in value]

    return value


class RuntimeSettings(BaseSettings):
    """Process-level settings read from PATHFINDING_* environment variables"""
    model_config = SettingsConfigDict(env_prefix="PATHFINDING_")

    config_path: str = "config.yaml"
    log_level: Optional[str] = None
    log_format: Optional[str] = None


class ServiceConfig(BaseModel):
    """Service identification"""
    name: str = "async_pathfinding"
    version: str = "1.0.0"
    description: str = "Asynchronous path computation with timeout and retry"


class ProviderConfig(BaseModel):
    """Path provider selection"""
    kind: Literal["simulated", "http"] = "simulated"
    base_url: Optional[str] = None
    request_timeout_seconds: float = 2.0
    # Simulated provider knobs
    simulated_latency_seconds: float = Field(default=0.05, ge=0)
    simulated_failure_rate: float = Field(default=0.0, ge=0, le=1)
    simulated_retention_seconds: float = Field(default=5.0, gt=0)


class ComputeConfig(BaseModel):
    """Computation engine configuration"""
    poll_interval_seconds: float = Field(default=0.01, gt=0)
    attempt_timeout_seconds: float = Field(default=5.0, gt=0)


class RetryConfig(BaseModel):
    """Retry configuration"""
    max_attempts: int = Field(default=3, ge=1)
    inter_attempt_delay_seconds: float = Field(default=0.2, ge=0)

    def to_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            inter_attempt_delay=self.inter_attempt_delay_seconds,
        )


class AgentParametersConfig(BaseModel):
    """Agent movement constraints handed to the provider"""
    radius: float = 6.0
    height: float = 5.0
    max_slope: float = 89.0
    waypoint_spacing: float = 10.0
    can_jump: bool = True

    def to_parameters(self) -> AgentParameters:
        return AgentParameters(**self.model_dump())


class TargetConfig(BaseModel):
    """Goal every agent is routed to"""
    goal: list[float] = Field(default_factory=lambda: [58.727, 1.5, 25.179], min_length=3, max_length=3)

    def goal_position(self) -> Vector3:
        x, y, z = self.goal
        return Vector3(x=x, y=y, z=z)


class VisualizationConfig(BaseModel):
    """Debug route markers"""
    enabled: bool = False


class RunnerConfig(BaseModel):
    """Demo runner configuration"""
    agents: int = Field(default=5, ge=0)
    frame_rate: float = Field(default=60.0, gt=0)
    max_frames: int = Field(default=3600, ge=1)


class ObservabilityConfig(BaseModel):
    """Observability configuration"""
    log_level: str = "INFO"
    log_format: str = "json"


class Config(BaseModel):
    """Complete pathfinding configuration"""
    service: ServiceConfig = Field(default_factory=lambda: ServiceConfig())
    provider: ProviderConfig = Field(default_factory=lambda: ProviderConfig())
    compute: ComputeConfig = Field(default_factory=lambda: ComputeConfig())
    retry: RetryConfig = Field(default_factory=lambda: RetryConfig())
    agent: AgentParametersConfig = Field(default_factory=lambda: AgentParametersConfig())
    target: TargetConfig = Field(default_factory=lambda: TargetConfig())
    visualization: VisualizationConfig = Field(default_factory=lambda: VisualizationConfig())
    runner: RunnerConfig = Field(default_factory=lambda: RunnerConfig())
    observability: ObservabilityConfig = Field(default_factory=lambda: ObservabilityConfig())


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to config file. If None, uses PATHFINDING_CONFIG_PATH or config.yaml.

    Returns:
        Parsed Config object
    """
    settings = RuntimeSettings()
    if config_path is None:
        config_path = settings.config_path

    path = Path(config_path)
    if not path.exists():
        logger.warning(
            "Config file not found, using defaults",
            path=str(path),
        )
        config = Config()
    else:
        logger.info("Loading configuration", path=str(path))

        with open(path, "r") as f:
            raw_config = yaml.safe_load(f) or {}

        # Substitute environment variables
        config_data = _substitute_env_vars(raw_config)
        config = Config(**config_data)

    # Environment wins over the file for logging
    overrides = {}
    if settings.log_level:
        overrides["log_level"] = settings.log_level
    if settings.log_format:
        overrides["log_format"] = settings.log_format
    if overrides:
        config.observability = config.observability.model_copy(update=overrides)

    logger.info(
        "Configuration loaded",
        service=config.service.name,
        provider=config.provider.kind,
        max_attempts=config.retry.max_attempts,
    )

    return config


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get global configuration (loads on first call)"""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: Config) -> None:
    """Set global configuration (for testing)"""
    global _config
    _config = config
