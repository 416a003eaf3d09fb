"""Utilities for pushing orchestrator status and log snapshots to WebSocket clients."""

from __future__ import annotations

import asyncio
import threading
from typing import Any, Dict, List, Set

from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect

from ..schemas import OrchestratorStatus, StageEvent


def status_message(status: OrchestratorStatus) -> Dict[str, Any]:
    return {"type": "status", "status": OrchestratorStatus(status).value}


def log_message(events: List[StageEvent]) -> Dict[str, Any]:
    return {"type": "log", "events": [event.as_dict() for event in events]}


class WebSocketManager:
    """Keeps track of open WebSocket connections.

    Hub listeners run on the scheduler thread; `push` hands the message to the
    server loop with `run_coroutine_threadsafe`.
    """

    def __init__(self) -> None:
        self._connections: Set[WebSocket] = set()
        self._lock = threading.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None

    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        with self._lock:
            self._connections.add(websocket)

    def disconnect(self, websocket: WebSocket) -> None:
        with self._lock:
            self._connections.discard(websocket)

    def connection_count(self) -> int:
        with self._lock:
            return len(self._connections)

    async def _broadcast(self, message: Dict[str, Any]) -> None:
        with self._lock:
            targets = list(self._connections)
        to_remove: list[WebSocket] = []
        for ws in targets:
            try:
                await ws.send_json(message)
            except WebSocketDisconnect:
                to_remove.append(ws)
            except RuntimeError:
                to_remove.append(ws)
        if to_remove:
            with self._lock:
                for ws in to_remove:
                    self._connections.discard(ws)

    def push(self, message: Dict[str, Any]) -> None:
        if not self._loop or self._loop.is_closed():
            return
        asyncio.run_coroutine_threadsafe(self._broadcast(message), self._loop)


__all__ = ["WebSocketManager", "status_message", "log_message"]
