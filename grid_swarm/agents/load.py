"""LoadForecastAgent: refines the demand curve from the weather analyst's read."""

from __future__ import annotations

from typing import Optional

from .base import BaseAgent, PipelineContext, StageInputs
from ..llm import StructuredLLMClient
from ..providers import KnowledgeProvider
from ..schemas import Stage


class LoadForecastAgent(BaseAgent):
    def __init__(self, llm: StructuredLLMClient, knowledge: Optional[KnowledgeProvider] = None) -> None:
        super().__init__(stage=Stage.LOAD, name="load_forecaster", llm=llm, knowledge=knowledge)

    def inputs(self, ctx: PipelineContext) -> StageInputs:
        weather = self._previous(ctx)
        return StageInputs(seed=f"CurrentLoad:{ctx.load}", upstream=f"Weather Impact: {weather.analysis}")
