"""Event broadcast hub: bounded event log + current status, pushed to listeners."""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Callable, Deque, Dict, List

from .schemas import OrchestratorStatus, StageEvent

logger = logging.getLogger(__name__)

StatusListener = Callable[[OrchestratorStatus], None]
LogListener = Callable[[List[StageEvent]], None]
Unsubscribe = Callable[[], None]


class EventBroadcastHub:
    """Owns the event log and the orchestrator status.

    Publishing happens from the single scheduler context. Listener registries
    may be mutated from any thread: dispatch iterates over a copy taken under
    the registry lock, so unsubscribing mid-dispatch never skips other listeners.
    Listeners always receive full snapshots, never diffs.
    """

    def __init__(self, capacity: int = 50) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self._log: Deque[StageEvent] = deque(maxlen=capacity)
        self._status = OrchestratorStatus.IDLE
        self._status_listeners: Dict[int, StatusListener] = {}
        self._log_listeners: Dict[int, LogListener] = {}
        self._next_token = 0
        self._lock = threading.RLock()
        # Serialize dispatch so listeners see transitions in the order they happened.
        self._status_dispatch = threading.RLock()
        self._log_dispatch = threading.RLock()

    # ------------------------------------------------------------------ status

    @property
    def status(self) -> OrchestratorStatus:
        with self._lock:
            return self._status

    def set_status(self, value: OrchestratorStatus) -> bool:
        """Update the status; returns False (and notifies nobody) if unchanged."""
        with self._status_dispatch:
            with self._lock:
                if value == self._status:
                    return False
                previous, self._status = self._status, value
                targets = list(self._status_listeners.values())
            logger.info("status %s -> %s", previous.value, value.value)
            for listener in targets:
                self._deliver(listener, value)
        return True

    def subscribe_status(self, listener: StatusListener) -> Unsubscribe:
        with self._status_dispatch:
            with self._lock:
                token = self._register(self._status_listeners, listener)
                current = self._status
            self._deliver(listener, current)
        return self._unsubscriber(self._status_listeners, token)

    # --------------------------------------------------------------------- log

    def publish(self, event: StageEvent) -> None:
        with self._log_dispatch:
            with self._lock:
                self._log.append(event)  # deque(maxlen) evicts the oldest entry
                snapshot = list(self._log)
                targets = list(self._log_listeners.values())
            for listener in targets:
                self._deliver(listener, snapshot)

    def current_log(self) -> List[StageEvent]:
        with self._lock:
            return list(self._log)

    def subscribe_log(self, listener: LogListener) -> Unsubscribe:
        with self._log_dispatch:
            with self._lock:
                token = self._register(self._log_listeners, listener)
                snapshot = list(self._log)
            self._deliver(listener, snapshot)
        return self._unsubscriber(self._log_listeners, token)

    def listener_count(self) -> int:
        with self._lock:
            return len(self._status_listeners) + len(self._log_listeners)

    # ----------------------------------------------------------------- helpers

    def _register(self, registry: Dict[int, Callable], listener: Callable) -> int:
        token = self._next_token
        self._next_token += 1
        registry[token] = listener
        return token

    def _unsubscriber(self, registry: Dict[int, Callable], token: int) -> Unsubscribe:
        def unsubscribe() -> None:
            with self._lock:
                registry.pop(token, None)

        return unsubscribe

    @staticmethod
    def _deliver(listener: Callable, payload) -> None:
        try:
            listener(payload)
        except Exception:  # pylint: disable=broad-except
            # A faulty consumer must not break the pipeline or other consumers.
            logger.exception("listener %r raised during dispatch", listener)
