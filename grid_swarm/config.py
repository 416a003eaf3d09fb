"""Orchestrator settings, read from environment variables with demo-friendly defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass, field


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    return float(raw) if raw else default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if raw else default


@dataclass
class OrchestratorConfig:
    # Event log ring buffer size
    log_capacity: int = field(default_factory=lambda: _env_int("GRID_SWARM_LOG_CAPACITY", 50))
    # Tick period against the offline narrator: fast so a live demo looks busy
    offline_period_s: float = field(default_factory=lambda: _env_float("GRID_SWARM_OFFLINE_PERIOD_S", 1.5))
    # Tick period against a real provider: bounds request volume / cost
    online_period_s: float = field(default_factory=lambda: _env_float("GRID_SWARM_ONLINE_PERIOD_S", 10.0))
    backoff_s: float = field(default_factory=lambda: _env_float("GRID_SWARM_BACKOFF_S", 30.0))
    max_retries: int = field(default_factory=lambda: _env_int("GRID_SWARM_MAX_RETRIES", 2))
    retry_delay_s: float = field(default_factory=lambda: _env_float("GRID_SWARM_RETRY_DELAY_S", 1.0))
    offline_latency_s: float = field(default_factory=lambda: _env_float("GRID_SWARM_OFFLINE_LATENCY_S", 0.2))
    noise_probability: float = field(default_factory=lambda: _env_float("GRID_SWARM_NOISE_PROBABILITY", 0.5))

    def __post_init__(self) -> None:
        if self.log_capacity < 1:
            raise ValueError("log_capacity must be >= 1")
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if not 0.0 <= self.noise_probability <= 1.0:
            raise ValueError("noise_probability must be within [0, 1]")

    def period_for(self, provider_configured: bool) -> float:
        return self.online_period_s if provider_configured else self.offline_period_s
