"""GridStabilityAgent: balances the load forecast against physical constraints."""

from __future__ import annotations

from typing import Optional

from .base import BaseAgent, PipelineContext, StageInputs
from ..llm import StructuredLLMClient
from ..providers import KnowledgeProvider
from ..schemas import Severity, Stage


class GridStabilityAgent(BaseAgent):
    baseline_severity = Severity.SUCCESS

    def __init__(self, llm: StructuredLLMClient, knowledge: Optional[KnowledgeProvider] = None) -> None:
        super().__init__(stage=Stage.STABILITY, name="grid_stabilizer", llm=llm, knowledge=knowledge)

    def inputs(self, ctx: PipelineContext) -> StageInputs:
        load = self._previous(ctx)
        return StageInputs(seed=f"GridStatus:{ctx.grid_status}", upstream=f"Load Prediction: {load.analysis}")
