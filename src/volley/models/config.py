"""Project configuration model for Volley.

Captures volley.yaml fields with sensible defaults for the stress run,
the resilience policies and the simulated target.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from volley.resilience.classifiers import DEFAULT_RETRYABLE_MESSAGES
from volley.resilience.failover import DEFAULT_FAILOVER_REGIONS
from volley.resilience.pipeline import THROTTLE_POLICY, TRANSIENT_POLICY
from volley.resilience.policy import RetryPolicyConfig

CONFIG_FILENAME = "volley.yaml"
STORAGE_DIRNAME = ".volley"


class ResilienceConfig(BaseModel):
    """Retry policies and failover regions applied to every target call."""

    model_config = {"extra": "forbid"}

    transient: RetryPolicyConfig = TRANSIENT_POLICY
    throttle: RetryPolicyConfig = THROTTLE_POLICY
    regions: list[str] = Field(default_factory=lambda: list(DEFAULT_FAILOVER_REGIONS))
    retryable_messages: list[str] = Field(
        default_factory=lambda: list(DEFAULT_RETRYABLE_MESSAGES)
    )
    stop_on_threshold: bool = False


class SimulatedTargetConfig(BaseModel):
    """Fault injection settings for the built-in simulated target.

    Rates are independent probabilities checked in order: throttle,
    unavailable, timeout, not found.
    """

    model_config = {"extra": "forbid"}

    min_latency_ms: int = Field(default=5, ge=0)
    max_latency_ms: int = Field(default=50, ge=0)
    throttle_rate: float = Field(default=0.05, ge=0.0, le=1.0)
    unavailable_rate: float = Field(default=0.05, ge=0.0, le=1.0)
    timeout_rate: float = Field(default=0.02, ge=0.0, le=1.0)
    not_found_rate: float = Field(default=0.0, ge=0.0, le=1.0)
    healthy_regions: list[str] = Field(default_factory=lambda: ["East US"])
    seed: int | None = None

    @model_validator(mode="after")
    def _check_latency_range(self) -> SimulatedTargetConfig:
        if self.min_latency_ms > self.max_latency_ms:
            raise ValueError("min_latency_ms must be <= max_latency_ms")
        return self


class ThinkTimeConfig(BaseModel):
    """Random pause between iterations of a worker, in milliseconds."""

    model_config = {"extra": "forbid"}

    min_ms: int = Field(default=500, ge=0)
    max_ms: int = Field(default=5000, ge=0)

    @model_validator(mode="after")
    def _check_range(self) -> ThinkTimeConfig:
        if self.min_ms > self.max_ms:
            raise ValueError("min_ms must be <= max_ms")
        return self


class ProjectConfig(BaseModel):
    """Project-level configuration loaded from volley.yaml."""

    model_config = {"extra": "forbid"}

    target: str = "simulated"
    operations: list[str] = Field(default_factory=lambda: ["read", "write", "query"])
    workers: int = Field(default=10, ge=1)
    iterations: int = Field(default=20, ge=1)
    duration_seconds: float = Field(default=60.0, gt=0.0)
    think_time: ThinkTimeConfig = Field(default_factory=ThinkTimeConfig)
    sample_interval_ms: int = Field(default=50, ge=1)
    max_failure_rate: float = Field(default=0.05, ge=0.0, le=1.0)
    storage_dir: str = STORAGE_DIRNAME
    log_format: Literal["console", "json"] = "console"
    resilience: ResilienceConfig = Field(default_factory=ResilienceConfig)
    simulated: SimulatedTargetConfig = Field(default_factory=SimulatedTargetConfig)


def find_project_root(start: Path | None = None) -> Path:
    """Walk up from start (default: cwd) looking for volley.yaml or .volley/.

    Args:
        start: Starting path (file or directory). Defaults to cwd.

    Returns:
        Path to the project root directory containing volley.yaml or .volley/,
        or cwd if neither is found.
    """
    current = (start or Path.cwd()).resolve()
    if current.is_file():
        current = current.parent
    while current != current.parent:
        if (current / CONFIG_FILENAME).exists() or (current / STORAGE_DIRNAME).exists():
            return current
        current = current.parent
    return Path.cwd()


def load_project_config(config_path: Path | None = None) -> ProjectConfig:
    """Load ProjectConfig from volley.yaml. Returns defaults if not found.

    Args:
        config_path: Path to a config file. If None, looks for volley.yaml
            in the directory found by find_project_root().

    Returns:
        Validated ProjectConfig instance.
    """
    if config_path is None:
        config_path = find_project_root() / CONFIG_FILENAME
    if not config_path.exists():
        return ProjectConfig()
    import yaml

    raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    if raw is None:
        return ProjectConfig()
    return ProjectConfig.model_validate(raw)
