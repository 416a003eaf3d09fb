"""Sequential runner for the five-stage grid pipeline.

One call to `PipelineRunner.run_cycle()` executes WA -> LF -> GS -> OP -> CM in
order. Each stage sees fresh seed data for its own domain plus the previous
stage's narrative; the terminal stage fans in every short code of the cycle.

A stage failure aborts the rest of the cycle with `StageAborted`. Events
already published stay in the log; no placeholder events are emitted.

Usage (example):
    from grid_swarm.runner import PipelineRunner

    runner = PipelineRunner(llm=StructuredLLMClient(), publish=print)
    runner.run_cycle()
"""

from __future__ import annotations

import json
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from .agents import (
    BaseAgent,
    GridStabilityAgent,
    LoadForecastAgent,
    MarketOptimizerAgent,
    PipelineContext,
    SynthesisAgent,
    WeatherAnalystAgent,
)
from .backoff import BackoffCircuitBreaker
from .errors import ErrorKind, InferenceError, StageAborted
from .llm import StructuredLLMClient
from .narratives import system_noise
from .providers import EnvironmentalProvider, KnowledgeProvider, StaticEnvironment, StaticTelemetry, TelemetryProvider
from .schemas import SYSTEM_SOURCE, SYSTEM_TARGET, Severity, StageEvent

logger = logging.getLogger(__name__)

# Substituted when a collaborator fails or returns nothing
WEATHER_FALLBACK = "SENSOR_DATA_NULL (Assume Nominal)"
LOAD_FALLBACK = "TELEMETRY_OFFLINE (Assume Forecast)"
GRID_STATUS_FALLBACK = "NORMAL"


@dataclass
class CycleResult:
    cycle: int
    events: List[StageEvent] = field(default_factory=list)


class PipelineRunner:
    def __init__(
        self,
        llm: StructuredLLMClient,
        publish: Callable[[StageEvent], None],
        *,
        telemetry: Optional[TelemetryProvider] = None,
        environment: Optional[EnvironmentalProvider] = None,
        knowledge: Optional[KnowledgeProvider] = None,
        breaker: Optional[BackoffCircuitBreaker] = None,
        noise_probability: float = 0.5,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.llm = llm
        self.publish = publish
        self.telemetry = telemetry or StaticTelemetry()
        self.environment = environment or StaticEnvironment()
        self.breaker = breaker
        self.noise_probability = noise_probability
        self.rng = rng or random.Random()
        self.cycles = 0
        self.pipeline: List[BaseAgent] = [
            WeatherAnalystAgent(llm=llm, knowledge=knowledge),
            LoadForecastAgent(llm=llm, knowledge=knowledge),
            GridStabilityAgent(llm=llm, knowledge=knowledge),
            MarketOptimizerAgent(llm=llm, knowledge=knowledge),
            SynthesisAgent(llm=llm, knowledge=knowledge),
        ]

    def run_cycle(self) -> CycleResult:
        cycle = self.cycles
        self.cycles += 1

        # Liveliness only: consumers may drop SYSTEM events freely.
        if not self.llm.is_configured and self.rng.random() < self.noise_probability:
            self.publish(
                StageEvent(
                    source_stage=SYSTEM_SOURCE,
                    target_stage=SYSTEM_TARGET,
                    short_code=system_noise(self.rng),
                    severity=Severity.SYSTEM,
                )
            )

        ctx = self._gather(cycle)
        result = CycleResult(cycle=cycle)

        for agent in self.pipeline:
            stage_id = agent.stage.value
            if self.breaker is not None and self.breaker.engaged:
                raise StageAborted(stage_id, ErrorKind.RATE_LIMITED, "backoff engaged")
            try:
                run = agent.run(ctx)
            except InferenceError as exc:
                if exc.kind == ErrorKind.RATE_LIMITED and self.breaker is not None:
                    self.breaker.trip(f"{stage_id}: {exc}")
                raise StageAborted(stage_id, exc.kind, str(exc)) from exc

            ctx.record(agent.stage, run.packet)
            self.publish(run.event)
            result.events.append(run.event)

        logger.info("cycle %d completed with %d stage events", cycle, len(result.events))
        return result

    def _gather(self, cycle: int) -> PipelineContext:
        conditions = self._safe_read("environment", self.environment.current_conditions)
        load = self._safe_read("telemetry", self.telemetry.current_reading)
        grid = self._safe_read("grid status", self.telemetry.grid_status)

        return PipelineContext(
            cycle=cycle,
            weather=json.dumps(conditions, default=str) if conditions else WEATHER_FALLBACK,
            load=f"{load}MW" if load not in (None, "") else LOAD_FALLBACK,
            grid_status=str(grid) if grid else GRID_STATUS_FALLBACK,
        )

    @staticmethod
    def _safe_read(label: str, fn: Callable[[], Any]) -> Any:
        try:
            return fn()
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("%s read failed, using fallback: %s", label, exc)
            return None
