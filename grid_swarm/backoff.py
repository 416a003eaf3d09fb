"""Rate-limit circuit breaker: pauses the whole swarm for a cool-down window."""

from __future__ import annotations

import logging
import threading
from typing import Optional

from .hub import EventBroadcastHub
from .providers import NotificationSink
from .scheduler import TimerFactory, TimerHandle
from .schemas import OrchestratorStatus

logger = logging.getLogger(__name__)


class BackoffCircuitBreaker:
    """Engages on the first rate-limit signal; disengages when the cool-down elapses.

    Engagement is idempotent: a second signal while engaged neither resets nor
    extends the armed timer.
    """

    def __init__(
        self,
        hub: EventBroadcastHub,
        notifier: NotificationSink,
        timers: TimerFactory,
        cooldown_s: float = 30.0,
    ) -> None:
        self.hub = hub
        self.notifier = notifier
        self.timers = timers
        self.cooldown_s = cooldown_s
        self._lock = threading.Lock()
        self._engaged = False
        self._timer: Optional[TimerHandle] = None
        # Bumped on every engage/reset so a stale timer cannot disengage a newer window.
        self._generation = 0
        self.trips = 0

    @property
    def engaged(self) -> bool:
        with self._lock:
            return self._engaged

    def trip(self, reason: str = "") -> bool:
        """Engage the breaker; returns False if it was already engaged."""
        with self._lock:
            if self._engaged:
                return False
            self._engaged = True
            self._generation += 1
            generation = self._generation
            self.trips += 1

        logger.warning("Rate limit hit, backing off for %.0fs: %s", self.cooldown_s, reason)
        self.hub.set_status(OrchestratorStatus.BACKOFF)
        self.notifier.warn(
            "Orchestrator Rate Limit",
            f"Inference provider limit reached. Pausing swarm for {self.cooldown_s:.0f}s.",
        )
        timer = self.timers.call_later(self.cooldown_s, lambda: self._elapse(generation))
        with self._lock:
            if self._generation == generation:
                self._timer = timer
            else:
                timer.cancel()
        return True

    def reset(self) -> None:
        """Disengage silently (fresh credentials invalidate the cool-down)."""
        with self._lock:
            self._generation += 1
            self._engaged = False
            timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()

    def _elapse(self, generation: int) -> None:
        with self._lock:
            if not self._engaged or generation != self._generation:
                return
            self._engaged = False
            self._timer = None

        logger.info("Backoff cool-down elapsed, swarm resuming")
        self.hub.set_status(OrchestratorStatus.IDLE)
        self.notifier.info("Orchestrator Resumed", "Swarm active.")
