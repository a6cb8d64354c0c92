"""SimulatedTarget: an in-process storage service with injected faults.

Lets the harness exercise retries, throttling failover and timeouts
without a real database. Latency and faults are drawn from a private
random.Random, so a seeded target replays the same fault sequence.
"""

from __future__ import annotations

import asyncio
import random
from typing import Any

from volley.models.config import SimulatedTargetConfig
from volley.resilience.errors import StorageError
from volley.targets.base import BaseTarget


class SimulatedTarget(BaseTarget):
    """Target whose calls sleep for a random latency and sometimes fail.

    Faults, checked in order:
        throttle_rate     StorageError 429 (never in a healthy region)
        unavailable_rate  StorageError 503
        timeout_rate      StorageError wrapping TimeoutError
        not_found_rate    StorageError 404
    """

    def __init__(self, config: SimulatedTargetConfig | None = None) -> None:
        self.config = config or SimulatedTargetConfig()
        self._random = random.Random(self.config.seed)  # noqa: S311
        self.calls = 0

    async def execute(self, operation: str, region: str | None = None) -> Any:
        self.calls += 1
        cfg = self.config
        latency_ms = self._random.randint(cfg.min_latency_ms, cfg.max_latency_ms)
        await asyncio.sleep(latency_ms / 1000)

        if region not in cfg.healthy_regions and self._roll(cfg.throttle_rate):
            raise StorageError("Request rate is large", status_code=429)
        if self._roll(cfg.unavailable_rate):
            raise StorageError("Service is unavailable", status_code=503)
        if self._roll(cfg.timeout_rate):
            error = StorageError("Request timed out")
            error.__cause__ = TimeoutError(f"{operation} exceeded its deadline")
            raise error
        if self._roll(cfg.not_found_rate):
            raise StorageError("Resource not found", status_code=404)

        return {
            "operation": operation,
            "region": region or "primary",
            "latency_ms": latency_ms,
        }

    def target_name(self) -> str:
        return "simulated"

    def _roll(self, rate: float) -> bool:
        return rate > 0 and self._random.random() < rate
