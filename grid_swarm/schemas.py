"""Core schemas shared across the stage agents.

Backend modeling policy:
- Use **Pydantic** models for stable schema + validation.
- `StageEvent` is frozen: once it is in the event log it is never mutated.

Each stage agent parses the provider output into a `StagePacket` and the runner
turns it into a `StageEvent` addressed to the next stage.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Stage(str, Enum):
    """Pipeline stages, in execution order."""

    WEATHER = "WA"    # Weather analyst: climate risk on grid assets
    LOAD = "LF"       # Load forecaster: demand deviation
    STABILITY = "GS"  # Grid stabilizer: frequency / N-1 contingency
    MARKET = "OP"     # Market optimizer: LMP spreads, arbitrage
    SYNTHESIS = "CM"  # Communications manager: headline for the operator


STAGE_ORDER = (Stage.WEATHER, Stage.LOAD, Stage.STABILITY, Stage.MARKET, Stage.SYNTHESIS)

SINK_ID = "DASHBOARD"
SYSTEM_SOURCE = "SYS"
SYSTEM_TARGET = "KERNEL"


class Severity(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"
    SUCCESS = "SUCCESS"
    SYSTEM = "SYSTEM"


class OrchestratorStatus(str, Enum):
    IDLE = "IDLE"
    RUNNING = "RUNNING"
    BACKOFF = "BACKOFF"
    ERROR = "ERROR"


def next_target(stage: Stage) -> str:
    """Return the id of the stage that consumes `stage`'s output."""
    idx = STAGE_ORDER.index(stage)
    if idx + 1 < len(STAGE_ORDER):
        return STAGE_ORDER[idx + 1].value
    return SINK_ID


def event_timestamp(now: Optional[datetime] = None) -> str:
    # HH:MM:SS.mmm, local wall clock
    now = now or datetime.now()
    return now.strftime("%H:%M:%S.") + f"{now.microsecond // 1000:03d}"


class StagePacket(BaseModel):
    """Structured output every stage must produce (strict JSON contract)."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    log_code: str = Field(..., min_length=1)
    analysis: str = ""
    recommendation: str = ""
    financial_impact: str = ""

    @field_validator("log_code")
    @classmethod
    def normalize_log_code(cls, value: str) -> str:
        return value.upper().replace(" ", "_")


class StageEvent(BaseModel):
    model_config = ConfigDict(frozen=True, use_enum_values=True)

    source_stage: str
    target_stage: str
    short_code: str
    timestamp: str = Field(default_factory=event_timestamp)
    severity: Severity = Severity.INFO
    analysis: Optional[str] = None
    recommendation: Optional[str] = None
    financial_impact: Optional[str] = None

    @property
    def is_system(self) -> bool:
        return self.severity == Severity.SYSTEM.value

    def as_dict(self) -> Dict[str, Any]:
        # keep field names stable for the frontend
        return self.model_dump()
