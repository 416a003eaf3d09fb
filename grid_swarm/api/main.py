"""FastAPI application exposing orchestrator lifecycle, log and knowledge interfaces."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from ..knowledge import KnowledgeBase, KnowledgeItem
from ..orchestrator import AgentOrchestrator
from ..providers import RecordingNotificationSink
from ..schemas import STAGE_ORDER, StageEvent
from .models import (
    CredentialsRequest,
    KnowledgeItemResponse,
    KnowledgeRequest,
    LifecycleResponse,
    NotificationResponse,
    StatusResponse,
)
from .websocket import WebSocketManager, log_message, status_message

logger = logging.getLogger(__name__)

tags_metadata = [
    {"name": "orchestrator", "description": "Start, stop and inspect the agent swarm"},
    {"name": "knowledge", "description": "Reference documents injected into stage prompts"},
]


def _to_item(item: KnowledgeItem) -> KnowledgeItemResponse:
    return KnowledgeItemResponse(
        item_id=item.item_id,
        name=item.name,
        kind=item.kind,
        size=item.size,
        uploaded_at=item.uploaded_at,
        summary=item.summary,
    )


def create_app(
    orchestrator: Optional[AgentOrchestrator] = None,
    knowledge: Optional[KnowledgeBase] = None,
) -> FastAPI:
    if orchestrator is None:
        knowledge = knowledge or KnowledgeBase()
        orchestrator = AgentOrchestrator(knowledge=knowledge, notifier=RecordingNotificationSink())
    elif knowledge is None and isinstance(orchestrator.knowledge, KnowledgeBase):
        knowledge = orchestrator.knowledge

    app = FastAPI(
        title="grid_swarm API",
        version="0.1.0",
        openapi_tags=tags_metadata,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    ws_manager = WebSocketManager()
    unsubscribers = []
    app.state.orchestrator = orchestrator
    app.state.ws_manager = ws_manager

    def _status() -> StatusResponse:
        return StatusResponse(
            status=orchestrator.status,
            running=orchestrator.is_running,
            provider_configured=orchestrator.provider_configured,
            backoff_engaged=orchestrator.breaker.engaged,
            period_s=orchestrator.scheduler.period if orchestrator.is_running else None,
            cycles=orchestrator.runner.cycles,
        )

    def _knowledge() -> KnowledgeBase:
        if knowledge is None:
            raise HTTPException(status_code=503, detail="knowledge base not available")
        return knowledge

    @app.on_event("startup")
    async def on_startup() -> None:
        ws_manager.bind_loop(asyncio.get_running_loop())
        unsubscribers.append(orchestrator.subscribe_status(lambda s: ws_manager.push(status_message(s))))
        unsubscribers.append(orchestrator.subscribe_log(lambda events: ws_manager.push(log_message(events))))

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        while unsubscribers:
            unsubscribers.pop()()
        orchestrator.stop()

    @app.get("/healthz", tags=["health"])
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok", "stages": ",".join(stage.value for stage in STAGE_ORDER)}

    @app.get("/api/v1/orchestrator/status", response_model=StatusResponse, tags=["orchestrator"])
    async def get_status() -> StatusResponse:
        return _status()

    @app.post("/api/v1/orchestrator/start", response_model=LifecycleResponse, tags=["orchestrator"])
    async def start() -> LifecycleResponse:
        changed = orchestrator.start()
        return LifecycleResponse(changed=changed, status=orchestrator.status)

    @app.post("/api/v1/orchestrator/stop", response_model=LifecycleResponse, tags=["orchestrator"])
    async def stop() -> LifecycleResponse:
        changed = orchestrator.stop()
        return LifecycleResponse(changed=changed, status=orchestrator.status)

    @app.get("/api/v1/orchestrator/log", response_model=List[StageEvent], tags=["orchestrator"])
    async def get_log(
        include_system: bool = Query(True, description="Include SYSTEM noise events"),
    ) -> List[StageEvent]:
        events = orchestrator.current_log()
        if not include_system:
            events = [event for event in events if not event.is_system]
        return events

    @app.put("/api/v1/orchestrator/credentials", response_model=StatusResponse, tags=["orchestrator"])
    async def update_credentials(request: CredentialsRequest) -> StatusResponse:
        orchestrator.update_credentials(request.api_key, request.base_url)
        return _status()

    @app.get("/api/v1/notifications", response_model=List[NotificationResponse], tags=["orchestrator"])
    async def list_notifications() -> List[NotificationResponse]:
        # only a recording sink keeps history; other sinks just log
        notifier = orchestrator.notifier
        if not isinstance(notifier, RecordingNotificationSink):
            return []
        return [
            NotificationResponse(level=note.level, title=note.title, body=note.body, created_at=note.created_at)
            for note in notifier.records
        ]

    @app.post("/api/v1/knowledge", status_code=201, response_model=KnowledgeItemResponse, tags=["knowledge"])
    async def ingest_knowledge(request: KnowledgeRequest) -> KnowledgeItemResponse:
        item = _knowledge().ingest(request.name, request.content, summary=request.summary)
        return _to_item(item)

    @app.get("/api/v1/knowledge", response_model=List[KnowledgeItemResponse], tags=["knowledge"])
    async def list_knowledge() -> List[KnowledgeItemResponse]:
        return [_to_item(item) for item in _knowledge().items()]

    @app.delete("/api/v1/knowledge/{item_id}", status_code=204, tags=["knowledge"])
    async def delete_knowledge(item_id: str) -> None:
        if not _knowledge().delete(item_id):
            raise HTTPException(status_code=404, detail=f"Knowledge item {item_id} not found")

    @app.websocket("/ws/orchestrator")
    async def orchestrator_feed(websocket: WebSocket) -> None:
        await ws_manager.connect(websocket)
        try:
            await websocket.send_json(status_message(orchestrator.status))
            await websocket.send_json(log_message(orchestrator.current_log()))
            while True:
                await websocket.receive_text()
        except Exception:  # pylint: disable=broad-except
            pass
        finally:
            ws_manager.disconnect(websocket)

    return app


app = create_app()
