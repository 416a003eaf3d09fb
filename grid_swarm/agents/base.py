"""Base classes and helpers shared by all stage agents."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Optional, TYPE_CHECKING

from ..prompts import build_stage_prompt
from ..providers import KnowledgeProvider
from ..schemas import Severity, Stage, StageEvent, StagePacket, next_target

if TYPE_CHECKING:
    from ..llm import StructuredLLMClient  # pragma: no cover

logger = logging.getLogger(__name__)

CRITICAL_TOKENS = ("CRITICAL", "SHED")
WARNING_TOKENS = ("SPIKE", "INCREASE", "SURGE")


def classify_severity(short_code: str, baseline: Severity) -> Severity:
    """Keyword-based presentation hint; not a safety signal."""
    code = (short_code or "").upper()
    if any(token in code for token in CRITICAL_TOKENS):
        return Severity.CRITICAL
    if any(token in code for token in WARNING_TOKENS):
        return Severity.WARNING
    return baseline


@dataclass
class PipelineContext:
    """Cycle-scoped inputs; discarded when the cycle ends."""

    cycle: int
    weather: str
    load: str
    grid_status: str
    previous: Optional[StagePacket] = None
    packets: Dict[str, StagePacket] = field(default_factory=dict)

    def record(self, stage: Stage, packet: StagePacket) -> None:
        self.previous = packet
        self.packets[stage.value] = packet


@dataclass
class StageInputs:
    seed: str
    upstream: str = ""


@dataclass
class AgentRunResult:
    event: StageEvent
    packet: StagePacket


class BaseAgent(ABC):
    """Shared logic for turning a stage prompt into a StageEvent."""

    baseline_severity: Severity = Severity.INFO

    def __init__(
        self,
        stage: Stage,
        name: str,
        llm: "StructuredLLMClient",
        knowledge: Optional[KnowledgeProvider] = None,
    ) -> None:
        self.stage = stage
        self.name = name
        self.llm = llm
        self.knowledge = knowledge

    @abstractmethod
    def inputs(self, ctx: PipelineContext) -> StageInputs:
        ...

    def run(self, ctx: PipelineContext) -> AgentRunResult:
        stage_inputs = self.inputs(ctx)
        prompt = build_stage_prompt(
            self.stage.value,
            seed=stage_inputs.seed,
            upstream=stage_inputs.upstream,
            knowledge=self._knowledge_context(),
        )
        packet = self.llm.generate(self.stage.value, prompt, cycle=ctx.cycle)
        return AgentRunResult(event=self._create_event(packet), packet=packet)

    def _knowledge_context(self) -> str:
        if self.knowledge is None:
            return ""
        try:
            return self.knowledge.context_for(self.stage.value) or ""
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("knowledge lookup for %s failed, continuing without: %s", self.stage.value, exc)
            return ""

    def _create_event(self, packet: StagePacket) -> StageEvent:
        return StageEvent(
            source_stage=self.stage.value,
            target_stage=next_target(self.stage),
            short_code=packet.log_code,
            severity=classify_severity(packet.log_code, self.baseline_severity),
            analysis=packet.analysis,
            recommendation=packet.recommendation,
            financial_impact=packet.financial_impact,
        )

    def _previous(self, ctx: PipelineContext) -> StagePacket:
        # Stages after the first always run with a predecessor in the same cycle.
        if ctx.previous is None:
            raise RuntimeError(f"{self.name} requires upstream output")
        return ctx.previous
