"""Collaborator interfaces consumed by the pipeline, plus simple implementations."""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Deque, List, Optional, Protocol, Union

logger = logging.getLogger(__name__)

Reading = Union[float, int, str]


class TelemetryProvider(Protocol):
    def current_reading(self) -> Optional[Reading]:
        """Current system load in MW, or None when telemetry is offline."""

    def grid_status(self) -> Optional[str]:
        ...


class EnvironmentalProvider(Protocol):
    def current_conditions(self) -> Optional[Any]:
        """Regional weather snapshot (JSON-serializable), or None."""


class KnowledgeProvider(Protocol):
    def context_for(self, stage_id: str) -> str:
        ...


class NotificationSink(Protocol):
    def warn(self, title: str, body: str) -> None:
        ...

    def info(self, title: str, body: str) -> None:
        ...


@dataclass
class StaticTelemetry:
    reading: Optional[Reading] = None
    status: Optional[str] = None

    def current_reading(self) -> Optional[Reading]:
        return self.reading

    def grid_status(self) -> Optional[str]:
        return self.status


@dataclass
class StaticEnvironment:
    conditions: Optional[Any] = None

    def current_conditions(self) -> Optional[Any]:
        return self.conditions


class LoggingNotificationSink:
    """Forwards notifications to the standard logger."""

    def __init__(self, log: Optional[logging.Logger] = None) -> None:
        self._log = log or logger

    def warn(self, title: str, body: str) -> None:
        self._log.warning("%s: %s", title, body)

    def info(self, title: str, body: str) -> None:
        self._log.info("%s: %s", title, body)


@dataclass(frozen=True)
class Notification:
    level: str
    title: str
    body: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class RecordingNotificationSink(LoggingNotificationSink):
    """Logs and keeps the most recent `capacity` notifications for later inspection."""

    def __init__(self, log: Optional[logging.Logger] = None, capacity: int = 100) -> None:
        super().__init__(log)
        self._records: Deque[Notification] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def warn(self, title: str, body: str) -> None:
        super().warn(title, body)
        self._append(Notification("warning", title, body))

    def info(self, title: str, body: str) -> None:
        super().info(title, body)
        self._append(Notification("info", title, body))

    def _append(self, note: Notification) -> None:
        with self._lock:
            self._records.append(note)

    @property
    def records(self) -> List[Notification]:
        with self._lock:
            return list(self._records)
