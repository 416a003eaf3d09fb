"""MarketOptimizerAgent: prices the dispatch order issued by the stabilizer."""

from __future__ import annotations

from typing import Optional

from .base import BaseAgent, PipelineContext, StageInputs
from ..llm import StructuredLLMClient
from ..providers import KnowledgeProvider
from ..schemas import Severity, Stage

MARKET_SEED = "Market Conditions: Normal"


class MarketOptimizerAgent(BaseAgent):
    baseline_severity = Severity.SUCCESS

    def __init__(self, llm: StructuredLLMClient, knowledge: Optional[KnowledgeProvider] = None) -> None:
        super().__init__(stage=Stage.MARKET, name="market_optimizer", llm=llm, knowledge=knowledge)

    def inputs(self, ctx: PipelineContext) -> StageInputs:
        stability = self._previous(ctx)
        return StageInputs(seed=MARKET_SEED, upstream=f"Dispatch Order: {stability.recommendation}")
