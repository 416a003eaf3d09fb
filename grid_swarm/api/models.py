"""Pydantic models exposed by the FastAPI service."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ..schemas import OrchestratorStatus


class StatusResponse(BaseModel):
    status: OrchestratorStatus
    running: bool
    provider_configured: bool
    backoff_engaged: bool
    period_s: Optional[float] = None
    cycles: int = 0


class LifecycleResponse(BaseModel):
    changed: bool = Field(description="False when the call was an idempotent no-op")
    status: OrchestratorStatus


class CredentialsRequest(BaseModel):
    api_key: Optional[str] = None
    base_url: Optional[str] = None


class KnowledgeRequest(BaseModel):
    """Incoming payload describing a knowledge document."""

    name: str
    content: str
    summary: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name is required")
        return value


class KnowledgeItemResponse(BaseModel):
    item_id: str
    name: str
    kind: str
    size: int
    uploaded_at: str
    summary: Optional[str] = None


class NotificationResponse(BaseModel):
    level: str
    title: str
    body: str
    created_at: datetime
