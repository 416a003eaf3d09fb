"""grid_swarm package.

A recurring multi-stage agent pipeline for grid operations:
Weather -> Load -> Stability -> Market -> Synthesis.

Design principles:
- Each cycle threads one stage's narrative into the next; the last stage is a
  headline synthesis of the whole cycle.
- Without an inference provider the swarm replays a deterministic offline
  storyline, so the demo loop needs no network access.
- Rate-limit rejections pause the whole swarm (circuit breaker) instead of
  being retried.
"""

from .config import OrchestratorConfig
from .llm import StructuredLLMClient
from .orchestrator import AgentOrchestrator
from .schemas import OrchestratorStatus, Severity, Stage, StageEvent

__all__ = [
    "AgentOrchestrator",
    "OrchestratorConfig",
    "OrchestratorStatus",
    "Severity",
    "Stage",
    "StageEvent",
    "StructuredLLMClient",
]
