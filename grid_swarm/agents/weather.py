"""WeatherAnalystAgent

First stage: reads the environmental snapshot and frames weather-driven grid
risk. Has no upstream context.
"""

from __future__ import annotations

from typing import Optional

from .base import BaseAgent, PipelineContext, StageInputs
from ..llm import StructuredLLMClient
from ..providers import KnowledgeProvider
from ..schemas import Stage


class WeatherAnalystAgent(BaseAgent):
    def __init__(self, llm: StructuredLLMClient, knowledge: Optional[KnowledgeProvider] = None) -> None:
        super().__init__(stage=Stage.WEATHER, name="weather_analyst", llm=llm, knowledge=knowledge)

    def inputs(self, ctx: PipelineContext) -> StageInputs:
        return StageInputs(seed=ctx.weather)
