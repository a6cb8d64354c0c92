"""Volley data models - re-exports all public model classes."""

from volley.models.config import (
    ProjectConfig,
    ResilienceConfig,
    SimulatedTargetConfig,
    ThinkTimeConfig,
)
from volley.models.run import (
    IterationResult,
    IterationStatus,
    RunStatus,
    RunStatusSnapshot,
    StressRunResult,
    Verdict,
)

__all__ = [
    "IterationResult",
    "IterationStatus",
    "ProjectConfig",
    "ResilienceConfig",
    "RunStatus",
    "RunStatusSnapshot",
    "SimulatedTargetConfig",
    "StressRunResult",
    "ThinkTimeConfig",
    "Verdict",
]
