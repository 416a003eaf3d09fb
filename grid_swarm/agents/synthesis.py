"""SynthesisAgent

Terminal stage. Unlike the other stages it fans in the whole cycle: its
upstream context is the short code of every prior stage, and its event is the
headline addressed to the dashboard sink.
"""

from __future__ import annotations

from typing import Optional

from .base import BaseAgent, PipelineContext, StageInputs
from ..llm import StructuredLLMClient
from ..providers import KnowledgeProvider
from ..schemas import STAGE_ORDER, Stage

SYNTHESIS_SEED = "Synthesis Phase"


class SynthesisAgent(BaseAgent):
    def __init__(self, llm: StructuredLLMClient, knowledge: Optional[KnowledgeProvider] = None) -> None:
        super().__init__(stage=Stage.SYNTHESIS, name="communications_manager", llm=llm, knowledge=knowledge)

    def inputs(self, ctx: PipelineContext) -> StageInputs:
        codes = []
        for stage in STAGE_ORDER:
            if stage is self.stage:
                break
            packet = ctx.packets.get(stage.value)
            codes.append(f"{stage.value}: {packet.log_code if packet else 'N/A'}")
        return StageInputs(seed=SYNTHESIS_SEED, upstream=", ".join(codes))
